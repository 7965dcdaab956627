# contractdesk/blueprints/main/routes.py
from datetime import datetime

from flask import current_app, jsonify, request, send_from_directory
from flask_login import login_required

from ...extensions import db
from ...security import roles_required
from ...services.storage_service import upload_root
from . import main_bp


@main_bp.get("/status")
def status():
    ok_db = True
    try:
        db.session.execute(db.text("SELECT 1"))
    except Exception as e:
        current_app.logger.error(f"DB health failed: {e}")
        db.session.rollback()
        ok_db = False

    payload = {
        "service": "contractdesk",
        "version": current_app.config.get("APP_VERSION"),
        "time_utc": datetime.utcnow().isoformat() + "Z",
        "checks": {"database": "ok" if ok_db else "fail"},
    }
    code = 200 if ok_db else 503

    # ?pretty=1 -> pretty JSON
    if request.args.get("pretty"):
        import json
        return current_app.response_class(
            json.dumps(payload, indent=2) + "\n",
            mimetype="application/json"
        ), code
    return jsonify(payload), code


@main_bp.get("/uploads/<path:public_id>")
@login_required
@roles_required("admin")
def uploaded_file(public_id):
    # send_from_directory refuses paths outside the upload folder
    return send_from_directory(upload_root(), public_id)
