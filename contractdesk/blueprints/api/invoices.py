# contractdesk/blueprints/api/invoices.py
from flask import jsonify
from flask_login import current_user, login_required

from ...schemas import PaymentIn, parse_payload
from ...security import roles_required
from . import api_bp
from .utils import coordinator, json_body, page_args


@api_bp.get("/invoices")
@login_required
@roles_required("admin")
def invoice_list():
    page, per_page = page_args()
    return jsonify(coordinator().billing.list_invoices(page, per_page))


@api_bp.get("/invoices/<invoice_id>")
@login_required
@roles_required("admin")
def invoice_detail(invoice_id):
    inv = coordinator().billing.get_invoice(invoice_id)
    return jsonify({"invoice": inv.to_dict(include_token=True)})


@api_bp.post("/invoices/<invoice_id>/payments")
@login_required
@roles_required("admin")
def invoice_payment(invoice_id):
    payment = parse_payload(PaymentIn, json_body())
    outcome = coordinator().record_payment(payment, current_user.id, invoice_id=invoice_id)
    return jsonify(outcome.to_dict()), 201
