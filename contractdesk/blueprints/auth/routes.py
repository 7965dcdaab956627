# contractdesk/blueprints/auth/routes.py
from datetime import datetime

from flask import current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from ...errors import ValidationError
from ...extensions import db
from ...models.user import User
from . import auth_bp
from .forms import LoginForm


@auth_bp.get("/csrf")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


# -----------------
# Login / Logout
# -----------------

@auth_bp.post("/login")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise ValidationError("Invalid input", details=form.errors)

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(form.password.data):
        current_app.logger.info("Failed login for %s", email)
        return jsonify({"error": "Invalid email or password"}), 401
    if not user.is_active:
        return jsonify({"error": "This account is disabled"}), 403

    login_user(user, remember=bool(form.remember.data))
    user.last_login_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info("User %s logged in", user.id)
    return jsonify({"user": user.to_dict()})


@auth_bp.post("/logout")
@login_required
def logout():
    current_app.logger.info("User %s logged out", current_user.id)
    logout_user()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
