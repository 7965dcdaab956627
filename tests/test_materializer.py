import logging

import pytest

from contractdesk.extensions import db
from contractdesk.models.invoice import Invoice
from contractdesk.models.project import Project, ONGOING
from contractdesk.models.quotation import ACCEPTED, REJECTED
from contractdesk.schemas import QuotationCreate
from contractdesk.services.materializer import Materializer
from contractdesk.services.quotation_store import QuotationStore
from contractdesk.services.sequence import SequenceGenerator
from conftest import quotation_input


@pytest.fixture
def parts(ctx):
    seq = SequenceGenerator(db.session)
    return QuotationStore(db.session, seq), Materializer(db.session, seq)


def _quotation(store, actor_id, status=ACCEPTED, **overrides):
    q = store.create(QuotationCreate.model_validate(quotation_input(**overrides)), actor_id)
    q.status = status
    db.session.flush()
    return q


def test_not_accepted_is_skipped(parts, admin_id):
    store, materializer = parts
    q = _quotation(store, admin_id, status=REJECTED)
    assert materializer.materialize_if_accepted(q) is None
    assert Project.query.count() == 0


def test_accepted_creates_project_and_invoice(parts, admin_id):
    store, materializer = parts
    q = _quotation(store, admin_id)
    docs = materializer.materialize_if_accepted(q)
    db.session.commit()

    project, invoice = docs.project, docs.invoice
    assert project.project_id == "PRJ00001"
    assert invoice.invoice_id == "INV00001"
    assert invoice.project_id == project.project_id
    assert project.quotation_number == invoice.quotation_number == q.number
    assert project.client_name == invoice.client_name == "Ravi Kumar"
    assert project.line_items == q.line_items
    assert project.payment_history == [] and project.site_images == [] and project.extra_work == []
    assert project.amount_due == invoice.amount_due == 10000
    assert project.status == ONGOING
    # 32 random bytes, base64url without padding
    assert len(invoice.access_token) >= 43


def test_second_call_is_idempotent(parts, admin_id):
    store, materializer = parts
    q = _quotation(store, admin_id)
    assert materializer.materialize_if_accepted(q) is not None
    assert materializer.materialize_if_accepted(q) is None
    assert Project.query.count() == 1
    assert Invoice.query.count() == 1


def test_tokens_differ_between_invoices(parts, admin_id):
    store, materializer = parts
    a = materializer.materialize_if_accepted(_quotation(store, admin_id))
    b = materializer.materialize_if_accepted(_quotation(store, admin_id))
    assert a.invoice.access_token != b.invoice.access_token


@pytest.mark.parametrize("grand_total", [None, 0])
def test_missing_or_zero_grand_total_leaves_nothing_due(parts, admin_id, caplog, grand_total):
    store, materializer = parts
    q = _quotation(store, admin_id, grand_total=grand_total, subtotal=None)
    with caplog.at_level(logging.WARNING, logger="contractdesk.services.materializer"):
        docs = materializer.materialize_if_accepted(q)
    assert docs.project.amount_due == 0
    assert docs.invoice.amount_due == 0
    assert docs.project.grand_total == grand_total
    assert docs.invoice.grand_total == 0
    assert docs.invoice.subtotal == 0
    assert "without a grand total" in caplog.text


def test_records_project_on_quotation(parts, admin_id):
    store, materializer = parts
    q = _quotation(store, admin_id)
    docs = materializer.materialize_if_accepted(q)
    assert q.materialized_project_id == docs.project.project_id


def test_deleted_project_is_not_recreated(parts, admin_id):
    store, materializer = parts
    q = _quotation(store, admin_id)
    docs = materializer.materialize_if_accepted(q)
    db.session.delete(docs.invoice)
    db.session.delete(docs.project)
    db.session.flush()

    assert materializer.materialize_if_accepted(q) is None
    assert Project.query.count() == 0
    assert Invoice.query.count() == 0
