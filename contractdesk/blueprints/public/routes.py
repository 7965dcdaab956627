# contractdesk/blueprints/public/routes.py
from flask import jsonify, request

from ...extensions import db
from ...services.billing import BillingService
from . import public_bp

TOKEN_HEADER = "X-Invoice-Token"


@public_bp.get("/invoice/<invoice_id>")
def invoice_view(invoice_id):
    """Client-facing invoice. The token in the link is the only credential.

    Clients that can set headers should send it as ``X-Invoice-Token`` so it
    stays out of access logs; the ``?token=`` form backs the shared link.
    """
    token = request.headers.get(TOKEN_HEADER) or request.args.get("token")
    invoice = BillingService(db.session).get_public_invoice(invoice_id, token)
    resp = jsonify({"invoice": invoice.to_dict()})
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Referrer-Policy"] = "no-referrer"
    return resp
