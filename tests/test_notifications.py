import logging

import pytest
import requests

from contractdesk.services import client_notifications as messages
from contractdesk.services.notification_service import NotificationDispatcher, mask_phone


class FakeResponse:
    def __init__(self, status_code=201):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeHttp:
    def __init__(self, response=None, exc=None):
        self.response = response or FakeResponse()
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc:
            raise self.exc
        return self.response


def _dispatcher(http, **kwargs):
    params = dict(account_sid="AC123", auth_token="tok", from_number="+14155238886", timeout=3, http=http)
    params.update(kwargs)
    return NotificationDispatcher(**params)


def test_to_e164_prefixes_ten_digit_numbers():
    d = NotificationDispatcher()
    assert d.to_e164("98765 43210") == "+919876543210"
    assert d.to_e164("+1 (415) 523-8886") == "+14155238886"
    assert d.to_e164("12") is None


def test_send_posts_to_twilio_with_timeout():
    http = FakeHttp()
    assert _dispatcher(http).send("9876543210", "hello", "quotation_created") is True
    url, kwargs = http.calls[0]
    assert url.endswith("/Accounts/AC123/Messages.json")
    assert kwargs["data"]["To"] == "whatsapp:+919876543210"
    assert kwargs["data"]["From"] == "whatsapp:+14155238886"
    assert kwargs["timeout"] == 3
    assert kwargs["auth"] == ("AC123", "tok")


@pytest.mark.parametrize("http", [
    FakeHttp(response=FakeResponse(500)),
    FakeHttp(exc=requests.Timeout("slow")),
])
def test_send_failures_return_false(http):
    assert _dispatcher(http).send("9876543210", "hello") is False


def test_suppressed_or_unconfigured_sends_nothing():
    http = FakeHttp()
    assert _dispatcher(http, suppress=True).send("9876543210", "hello") is True
    assert NotificationDispatcher(http=http).send("9876543210", "hello") is True
    assert http.calls == []


def test_invalid_phone_is_reported():
    http = FakeHttp()
    assert _dispatcher(http).send("123", "hello") is False
    assert http.calls == []


def test_logs_mask_phone_and_omit_body(caplog):
    with caplog.at_level(logging.INFO, logger="contractdesk.services.notification_service"):
        _dispatcher(FakeHttp()).send("9876543210", "secret body text", "quotation_created")
    assert "secret body text" not in caplog.text
    assert "9876543210" not in caplog.text
    assert mask_phone("9876543210") in caplog.text


def test_from_config_reads_flask_config():
    d = NotificationDispatcher.from_config({
        "TWILIO_ACCOUNT_SID": "AC1", "TWILIO_AUTH_TOKEN": "t", "TWILIO_WHATSAPP_FROM": "+1",
        "NOTIFY_TIMEOUT_SECONDS": 4, "NOTIFY_SUPPRESS_SEND": True, "NOTIFY_DEFAULT_COUNTRY_CODE": "44",
    })
    assert d.configured and d.suppress and d.timeout == 4.0
    assert d.to_e164("7700900123") == "+447700900123"


# -----------------
# Message bodies
# -----------------

QUOTATION = {
    "number": "QT00001",
    "client_name": "Ravi Kumar",
    "status": "accepted",
    "line_items": [{"description": "Wall painting", "area": 100, "rate": 100, "total": 10000}],
    "subtotal": 10000,
    "discount": 500,
    "grand_total": 9500,
}


def test_quotation_summary_message():
    text = messages.quotation_summary_message(QUOTATION, created=True, base_url="https://cd.in/")
    assert "Quotation #QT00001 has been created" in text
    assert "1. Wall painting, Area: 100 sq.ft, Rate: ₹100.00, Total: ₹10000.00" in text
    assert "Discount: ₹500.00" in text and "Grand Total: ₹9500.00" in text
    assert text.endswith("https://cd.in/quotations/QT00001")


def test_updated_summary_invites_a_new_decision():
    text = messages.quotation_summary_message(dict(QUOTATION, discount=0), created=False, base_url="")
    assert "has been updated" in text and "accept or reject it again" in text
    assert "Discount" not in text


def test_status_message():
    text = messages.quotation_status_message(QUOTATION, base_url="https://cd.in")
    assert "Quotation #QT00001 is now accepted" in text


def test_payment_received_message_links_invoice():
    project = {"client_name": "Ravi Kumar", "quotation_number": "QT00001", "total_paid": 4000, "amount_due": 6000}
    invoice = {"invoice_id": "INV00001", "access_token": "abc"}
    text = messages.payment_received_message(project, invoice, 4000, base_url="https://cd.in")
    assert "payment of ₹4000.00" in text
    assert "Amount Due: ₹6000.00" in text
    assert "https://cd.in/invoice/INV00001?token=abc" in text
