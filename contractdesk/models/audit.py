# contractdesk/models/audit.py
from datetime import datetime
from ..extensions import db
from .quotation import _iso


class AuditLogEntry(db.Model):
    """Append-only. Rows are inserted by AuditSink and never updated."""
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    actor_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), index=True)
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "actor_id": self.actor_id,
            "details": self.details,
            "created_at": _iso(self.created_at),
        }
