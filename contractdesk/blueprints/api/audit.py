# contractdesk/blueprints/api/audit.py
from flask import jsonify
from flask_login import login_required

from ...security import roles_required
from . import api_bp
from .utils import coordinator, page_args


@api_bp.get("/audit-logs")
@login_required
@roles_required("admin")
def audit_log_list():
    page, per_page = page_args(default_per_page=20)
    return jsonify(coordinator().audit.list(page, per_page))
