# contractdesk/models/quotation.py
from datetime import datetime, date
from ..extensions import db

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
QUOTATION_STATUSES = (PENDING, ACCEPTED, REJECTED)

# Editing any of these without an explicit status puts the quotation back to pending
FINANCIAL_FIELDS = ("line_items", "subtotal", "discount", "grand_total")


def _iso(val):
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    return val


class Quotation(db.Model):
    __tablename__ = "quotation"

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(32), unique=True, nullable=False, index=True)

    client_name = db.Column(db.String(100), nullable=False)
    client_address = db.Column(db.Text, nullable=False)
    client_phone = db.Column(db.String(20), nullable=False)
    date = db.Column(db.Date, nullable=False, default=date.today)

    # [{description, area, rate, total, note}] -- area/total/note are None when absent
    line_items = db.Column(db.JSON, nullable=False, default=list)
    subtotal = db.Column(db.Float)              # None = not provided
    discount = db.Column(db.Float, nullable=False, default=0.0)
    grand_total = db.Column(db.Float)           # None = not provided
    terms = db.Column(db.JSON, nullable=False, default=list)
    note = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)  # pending|accepted|rejected
    # set once by the first acceptance; survives deletion of the project
    materialized_project_id = db.Column(db.String(32))

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "client_name": self.client_name,
            "client_address": self.client_address,
            "client_phone": self.client_phone,
            "date": _iso(self.date),
            "line_items": list(self.line_items or []),
            "subtotal": self.subtotal,
            "discount": self.discount,
            "grand_total": self.grand_total,
            "terms": list(self.terms or []),
            "note": self.note,
            "status": self.status,
            "materialized_project_id": self.materialized_project_id,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "last_updated_at": _iso(self.last_updated_at),
            "version": self.version,
        }

    def __repr__(self):
        return f"<Quotation {self.number} {self.status}>"
