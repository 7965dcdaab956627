# contractdesk/services/notification_service.py
from __future__ import annotations
import logging
import re

import requests

log = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"

_NON_DIGITS = re.compile(r"[^\d+]")


def mask_phone(phone: str | None) -> str:
    digits = re.sub(r"\D", "", phone or "")
    return f"***{digits[-4:]}" if len(digits) >= 4 else "***"


class NotificationDispatcher:
    """WhatsApp delivery through Twilio's REST API.

    One attempt per call with a bounded timeout. ``send`` never raises: it
    returns False on failure and the caller turns that into a warning.
    """

    def __init__(self, *, account_sid=None, auth_token=None, from_number=None,
                 timeout: float = 10.0, suppress: bool = False,
                 default_country_code: str = "91", http=None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self.suppress = suppress
        self.default_country_code = default_country_code
        self.http = http or requests

    @classmethod
    def from_config(cls, config) -> "NotificationDispatcher":
        return cls(
            account_sid=config.get("TWILIO_ACCOUNT_SID"),
            auth_token=config.get("TWILIO_AUTH_TOKEN"),
            from_number=config.get("TWILIO_WHATSAPP_FROM"),
            timeout=float(config.get("NOTIFY_TIMEOUT_SECONDS", 10)),
            suppress=bool(config.get("NOTIFY_SUPPRESS_SEND", False)),
            default_country_code=str(config.get("NOTIFY_DEFAULT_COUNTRY_CODE", "91")),
        )

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def to_e164(self, phone: str) -> str | None:
        cleaned = _NON_DIGITS.sub("", phone or "")
        if cleaned.startswith("+"):
            digits = cleaned[1:]
        elif len(cleaned) == 10:
            digits = f"{self.default_country_code}{cleaned}"
        else:
            digits = cleaned
        if not digits.isdigit() or not 8 <= len(digits) <= 15:
            return None
        return f"+{digits}"

    def send(self, to: str, message: str, action: str = "default") -> bool:
        destination = self.to_e164(to)
        if not destination:
            log.warning("notify[%s]: invalid phone number %s", action, mask_phone(to))
            return False

        if self.suppress or not self.configured:
            log.info("[notify stub] would send %s -> %s", action, mask_phone(destination))
            return True

        try:
            r = self.http.post(
                f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json",
                data={
                    "From": f"whatsapp:{self.from_number}",
                    "To": f"whatsapp:{destination}",
                    "Body": message,
                },
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
            if r.status_code >= 400:
                log.error("notify[%s] Twilio error %s for %s", action, r.status_code, mask_phone(destination))
            r.raise_for_status()
            log.info("notify[%s] sent to %s", action, mask_phone(destination))
            return True
        except Exception as e:
            log.warning("notify[%s] failed for %s: %s", action, mask_phone(destination), e)
            return False
