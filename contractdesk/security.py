# contractdesk/security.py
from functools import wraps

from flask import abort
from flask_login import current_user


def roles_required(*roles):
    """Allow the view only for authenticated, active users holding one of ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not getattr(current_user, "is_authenticated", False):
                abort(401)
            if getattr(current_user, "role", None) not in roles:
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator
