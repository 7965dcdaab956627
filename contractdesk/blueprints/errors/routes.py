from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException
from flask_wtf.csrf import CSRFError
from ...errors import ContractDeskError
from ...extensions import db
from . import errors_bp


def _json_error(message, code, details=None):
    payload = {"error": message}
    if details is not None:
        payload["details"] = details
    return jsonify(payload), code


# Domain errors raised by the services
@errors_bp.app_errorhandler(ContractDeskError)
def err_domain(e: ContractDeskError):
    if e.status_code >= 500:
        current_app.logger.warning("%s %s -> %s: %s", request.method, request.path, e.status_code, e.message)
    return jsonify(e.to_dict()), e.status_code


# CSRF – treated as 400 Bad Request
@errors_bp.app_errorhandler(CSRFError)
def err_csrf(e):
    return _json_error(e.description or "CSRF token missing or invalid", 400)


# 413 – Payload Too Large (image uploads)
@errors_bp.app_errorhandler(413)
def err_413(e):
    return _json_error("Uploaded file is too large", 413)


# 500 – Internal Server Error
@errors_bp.app_errorhandler(500)
def err_500(e):
    db.session.rollback()
    return _json_error("Internal server error", 500)


# Fallback for other HTTP errors (401, 403, 404, 405 ...)
@errors_bp.app_errorhandler(HTTPException)
def err_http(e: HTTPException):
    return _json_error(e.description or e.name, e.code)


# Last-resort: any other Exception
@errors_bp.app_errorhandler(Exception)
def err_unexpected(e):
    db.session.rollback()
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    # Don't leak internals
    return _json_error("Internal server error", 500)
