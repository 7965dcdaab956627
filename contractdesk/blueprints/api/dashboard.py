# contractdesk/blueprints/api/dashboard.py
from flask import jsonify
from flask_login import login_required

from ...extensions import db
from ...security import roles_required
from ...services.dashboard import dashboard_stats
from . import api_bp


@api_bp.get("/dashboard/stats")
@login_required
@roles_required("admin")
def dashboard_stats_view():
    return jsonify(dashboard_stats(db.session))
