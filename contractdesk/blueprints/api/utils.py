from flask import current_app, request

from ...errors import ValidationError
from ...extensions import db
from ...services.transactions import TransactionCoordinator

NOTIFIER_KEY = "contractdesk.notifier"
ASSETS_KEY = "contractdesk.assets"


def coordinator() -> TransactionCoordinator:
    cfg = current_app.config
    return TransactionCoordinator(
        db.session,
        notifier=current_app.extensions.get(NOTIFIER_KEY),
        assets=current_app.extensions[ASSETS_KEY],
        base_url=cfg.get("EXTERNAL_BASE_URL", ""),
        currency=cfg.get("CURRENCY_SYMBOL", "₹"),
        max_attempts=cfg.get("TRANSACTION_MAX_ATTEMPTS", 3),
    )


def json_body():
    payload = request.get_json(silent=True)
    if payload is None and request.data:
        raise ValidationError("Request body must be valid JSON")
    return {} if payload is None else payload


def page_args(default_per_page: int = 10):
    try:
        page = int(request.args.get("page", 1))
        per_page = int(request.args.get("per_page", default_per_page))
    except (TypeError, ValueError):
        raise ValidationError("page and per_page must be integers")
    return page, per_page


def if_match_version():
    """``If-Match: 3`` (or ``"3"``, ``W/"3"``) -> 3; None when absent."""
    raw = (request.headers.get("If-Match") or "").strip()
    if not raw:
        return None
    raw = raw.removeprefix("W/").strip('"')
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("If-Match must carry a document version") from None
