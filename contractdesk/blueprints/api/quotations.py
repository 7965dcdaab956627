# contractdesk/blueprints/api/quotations.py
from flask import jsonify
from flask_login import current_user, login_required

from ...schemas import QuotationCreate, QuotationPatch, StatusChange, parse_payload
from ...security import roles_required
from . import api_bp
from .utils import coordinator, if_match_version, json_body, page_args


@api_bp.get("/quotations")
@login_required
@roles_required("admin")
def quotation_list():
    page, per_page = page_args()
    return jsonify(coordinator().quotations.list(current_user.id, page, per_page))


@api_bp.post("/quotations")
@login_required
@roles_required("admin")
def quotation_create():
    data = parse_payload(QuotationCreate, json_body())
    outcome = coordinator().create_quotation(data, current_user.id)
    return jsonify(outcome.to_dict()), 201


@api_bp.get("/quotations/<number>")
@login_required
@roles_required("admin")
def quotation_detail(number):
    q = coordinator().quotations.get(number, current_user.id)
    return jsonify({"quotation": q.to_dict()})


@api_bp.route("/quotations/<number>", methods=["PATCH", "PUT"])
@login_required
@roles_required("admin")
def quotation_update(number):
    patch = parse_payload(QuotationPatch, json_body())
    pinned = if_match_version()
    if patch.expected_version is None and pinned is not None:
        patch.expected_version = pinned
    outcome = coordinator().update_quotation(number, patch, current_user.id)
    return jsonify(outcome.to_dict())


@api_bp.post("/quotations/<number>/status")
@login_required
@roles_required("admin")
def quotation_status(number):
    change = parse_payload(StatusChange, json_body())
    expected = change.expected_version if change.expected_version is not None else if_match_version()
    outcome = coordinator().change_status(number, change.status, current_user.id, expected_version=expected)
    return jsonify(outcome.to_dict())


@api_bp.delete("/quotations/<number>")
@login_required
@roles_required("admin")
def quotation_delete(number):
    outcome = coordinator().delete_quotation(number, current_user.id)
    return jsonify({"deleted": number, "warnings": outcome.warnings})
