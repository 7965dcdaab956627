# contractdesk/models/project.py
from datetime import datetime
from ..extensions import db
from .quotation import _iso

ONGOING = "ongoing"
COMPLETED = "completed"
CANCELLED = "cancelled"
PROJECT_STATUSES = (ONGOING, COMPLETED, CANCELLED)


def total_paid(payment_history) -> float:
    return round(sum(float(p.get("amount") or 0) for p in (payment_history or [])), 2)


class Project(db.Model):
    __tablename__ = "project"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    # at most one project per quotation
    quotation_number = db.Column(db.String(32), unique=True, nullable=False, index=True)

    client_name = db.Column(db.String(100), nullable=False)
    client_address = db.Column(db.Text, nullable=False)
    client_phone = db.Column(db.String(20), nullable=False)
    date = db.Column(db.Date, nullable=False)

    line_items = db.Column(db.JSON, nullable=False, default=list)
    extra_work = db.Column(db.JSON, nullable=False, default=list)   # [{description, total, note}]
    subtotal = db.Column(db.Float)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    grand_total = db.Column(db.Float)
    amount_due = db.Column(db.Float, nullable=False, default=0.0)
    payment_history = db.Column(db.JSON, nullable=False, default=list)  # [{amount, date, note}]
    site_images = db.Column(db.JSON, nullable=False, default=list)      # [{url, public_id, description}]
    terms = db.Column(db.JSON, nullable=False, default=list)
    note = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default=ONGOING, index=True)  # ongoing|completed|cancelled

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "quotation_number": self.quotation_number,
            "client_name": self.client_name,
            "client_address": self.client_address,
            "client_phone": self.client_phone,
            "date": _iso(self.date),
            "line_items": list(self.line_items or []),
            "extra_work": list(self.extra_work or []),
            "subtotal": self.subtotal,
            "discount": self.discount,
            "grand_total": self.grand_total,
            "amount_due": self.amount_due,
            "total_paid": total_paid(self.payment_history),
            "payment_history": list(self.payment_history or []),
            "site_images": list(self.site_images or []),
            "terms": list(self.terms or []),
            "note": self.note,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "last_updated_at": _iso(self.last_updated_at),
            "version": self.version,
        }

    def __repr__(self):
        return f"<Project {self.project_id} for {self.quotation_number}>"
