# contractdesk/models/counter.py
from ..extensions import db


class Counter(db.Model):
    """Named sequence. Only ever changed through SequenceGenerator.next()."""
    __tablename__ = "counter"

    name = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Integer, nullable=False, default=0)
