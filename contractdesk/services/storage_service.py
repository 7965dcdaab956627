# contractdesk/services/storage_service.py
import logging
import uuid
from pathlib import Path
from werkzeug.utils import secure_filename
from flask import current_app

from ..errors import ValidationError

log = logging.getLogger(__name__)


def upload_root() -> Path:
    # Fallback to <instance>/uploads if UPLOAD_FOLDER not configured yet
    base = current_app.config.get("UPLOAD_FOLDER")
    if not base:
        base = Path(current_app.instance_path) / "uploads"
    else:
        base = Path(base)
    base.mkdir(parents=True, exist_ok=True)
    return base


def _resolve(public_id: str) -> Path:
    base = upload_root().resolve()
    target = (base / (public_id or "")).resolve()
    if base not in target.parents:
        raise ValueError(f"public id escapes the upload folder: {public_id!r}")
    return target


def allowed_ext(filename: str) -> bool:
    exts = current_app.config.get("ALLOWED_IMAGE_EXTENSIONS") or {"png", "jpg", "jpeg", "webp"}
    suffix = Path(filename).suffix.lower().lstrip(".")
    return bool(suffix) and suffix in exts


def save_upload(file_storage, subdir: str = "") -> dict:
    """
    Saves an image to UPLOAD_FOLDER / subdir / <uuid>-<safe_name>.
    Returns {"url", "public_id"}; public_id is the path relative to the base.
    """
    base = upload_root()
    safe_name = secure_filename(file_storage.filename or "")
    if not safe_name:
        raise ValidationError("Empty filename")
    if not allowed_ext(safe_name):
        raise ValidationError(f"Unsupported file type: {safe_name}")

    target_dir = base / subdir if subdir else base
    target_dir.mkdir(parents=True, exist_ok=True)

    dest = target_dir / f"{uuid.uuid4().hex[:10]}-{safe_name}"
    file_storage.save(dest)

    public_id = dest.relative_to(base).as_posix()
    return {"url": f"/uploads/{public_id}", "public_id": public_id}


def delete_upload(public_id: str) -> bool:
    """Remove a stored asset. Never raises; returns False when nothing was deleted."""
    try:
        path = _resolve(public_id)
        if not path.exists():
            log.warning("delete_upload: %s not found", public_id)
            return False
        path.unlink()
        log.info("Deleted asset %s", public_id)
        return True
    except Exception as e:
        log.exception("delete_upload failed for %s: %s", public_id, e)
        return False
