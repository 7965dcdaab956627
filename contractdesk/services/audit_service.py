# contractdesk/services/audit_service.py
import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import TransientStorageError
from ..models.audit import AuditLogEntry

log = logging.getLogger(__name__)


class AuditSink:
    def __init__(self, session):
        self.session = session

    def append(self, action: str, actor_id, details: dict | None = None) -> AuditLogEntry:
        """Stage an audit row in the current transaction.

        Storage errors come back as TransientStorageError so the coordinator
        aborts cleanly instead of leaking a driver exception.
        """
        entry = AuditLogEntry(
            action=action,
            actor_id=actor_id,
            details=details or {},
            created_at=datetime.utcnow(),
        )
        try:
            self.session.add(entry)
            self.session.flush()
        except SQLAlchemyError as e:
            log.error("audit append failed for %s: %s", action, e)
            raise TransientStorageError("Could not record the audit entry") from e
        return entry

    def list(self, page: int = 1, per_page: int = 10) -> dict:
        page = max(int(page or 1), 1)
        per_page = min(max(int(per_page or 10), 1), 100)
        total = self.session.execute(select(func.count(AuditLogEntry.id))).scalar_one()
        rows = self.session.execute(
            select(AuditLogEntry)
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).scalars().all()
        return {
            "logs": [r.to_dict() for r in rows],
            "total": total,
            "page": page,
            "pages": (total + per_page - 1) // per_page,
        }
