# contractdesk/blueprints/api/projects.py
from flask import jsonify, request
from flask_login import current_user, login_required

from ...errors import ValidationError
from ...models.project import PROJECT_STATUSES
from ...schemas import PaymentIn, ProjectPatch, clean_text, parse_payload
from ...security import roles_required
from . import api_bp
from .utils import coordinator, if_match_version, json_body, page_args


@api_bp.get("/projects")
@login_required
@roles_required("admin")
def project_list():
    page, per_page = page_args()
    status = (request.args.get("status") or "").strip().lower() or None
    if status and status not in PROJECT_STATUSES:
        raise ValidationError(f"Unknown project status: {status}")
    return jsonify(coordinator().billing.list_projects(page, per_page, status=status))


@api_bp.get("/projects/<project_id>")
@login_required
@roles_required("admin")
def project_detail(project_id):
    billing = coordinator().billing
    project = billing.get_project(project_id)
    invoice = billing.invoice_for(project_id)
    return jsonify({
        "project": project.to_dict(),
        "invoice": invoice.to_dict(include_token=True) if invoice else None,
    })


@api_bp.patch("/projects/<project_id>")
@login_required
@roles_required("admin")
def project_update(project_id):
    patch = parse_payload(ProjectPatch, json_body())
    pinned = if_match_version()
    if patch.expected_version is None and pinned is not None:
        patch.expected_version = pinned
    outcome = coordinator().update_project(project_id, patch, current_user.id)
    return jsonify(outcome.to_dict())


@api_bp.delete("/projects/<project_id>")
@login_required
@roles_required("admin")
def project_delete(project_id):
    outcome = coordinator().delete_project(project_id, current_user.id)
    return jsonify({"deleted": project_id, "warnings": outcome.warnings})


@api_bp.post("/projects/<project_id>/payments")
@login_required
@roles_required("admin")
def project_payment(project_id):
    payment = parse_payload(PaymentIn, json_body())
    outcome = coordinator().record_payment(payment, current_user.id, project_id=project_id)
    return jsonify(outcome.to_dict()), 201


@api_bp.post("/projects/<project_id>/images")
@login_required
@roles_required("admin")
def project_image_upload(project_id):
    upload = request.files.get("image")
    if upload is None or not upload.filename:
        raise ValidationError("Attach an image in the 'image' field")
    description = clean_text(request.form.get("description") or "") or None
    if description and len(description) > 200:
        raise ValidationError("Description must be at most 200 characters")
    outcome = coordinator().add_site_image(project_id, upload, current_user.id, description=description)
    return jsonify(outcome.to_dict()), 201
