from datetime import datetime
from ..extensions import db
from .quotation import _iso
from .project import total_paid


class Invoice(db.Model):
    __tablename__ = "invoice"

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    # one invoice per project
    project_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    quotation_number = db.Column(db.String(32), nullable=False, index=True)

    client_name = db.Column(db.String(100), nullable=False)
    client_address = db.Column(db.Text, nullable=False)
    client_phone = db.Column(db.String(20), nullable=False)
    date = db.Column(db.Date, nullable=False)

    line_items = db.Column(db.JSON, nullable=False, default=list)
    extra_work = db.Column(db.JSON, nullable=False, default=list)
    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    grand_total = db.Column(db.Float, nullable=False, default=0.0)
    payment_history = db.Column(db.JSON, nullable=False, default=list)
    amount_due = db.Column(db.Float, nullable=False, default=0.0)
    terms = db.Column(db.JSON, nullable=False, default=list)
    note = db.Column(db.Text)

    # bearer credential for the public invoice link; never log it
    access_token = db.Column(db.String(64), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self, include_token: bool = False) -> dict:
        data = {
            "invoice_id": self.invoice_id,
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
            "payment_history": list(self.payment_history or []),
            "total_paid": total_paid(self.payment_history),
            "amount_due": self.amount_due,
            "terms": list(self.terms or []),
            "note": self.note,
            "created_at": _iso(self.created_at),
            "last_updated_at": _iso(self.last_updated_at),
        }
        if include_token:
            data["access_token"] = self.access_token
        return data

    def __repr__(self):
        return f"<Invoice {self.invoice_id} for {self.project_id}>"
