# contractdesk/services/quotation_store.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.invoice import Invoice
from ..models.project import Project
from ..models.quotation import Quotation, PENDING, FINANCIAL_FIELDS
from . import identifiers

log = logging.getLogger(__name__)

_LABELS = {
    "client_name": "Client name",
    "client_address": "Client address",
    "client_phone": "Client phone",
    "date": "Date",
    "subtotal": "Subtotal",
    "discount": "Discount",
    "grand_total": "Grand total",
    "note": "Note",
}


def _format_item(item: dict) -> str:
    parts = [str(item.get("description", ""))]
    if item.get("area") is not None:
        parts.append(f"Area: {item['area']} sq.ft")
    if item.get("rate") is not None:
        parts.append(f"Rate: {float(item['rate']):.2f}")
    if item.get("total") is not None:
        parts.append(f"Total: {float(item['total']):.2f}")
    if item.get("note"):
        parts.append(f"Note: {item['note']}")
    return ", ".join(parts)


def describe_changes(current: dict, incoming: dict) -> list[str]:
    """Human-readable diff between stored values and a patch."""
    changes = []
    for name, new in incoming.items():
        old = current.get(name)
        if name in ("line_items", "extra_work"):
            noun = "item" if name == "line_items" else "extra work"
            old_items = old or []
            added = [i for i in new if i not in old_items]
            removed = [i for i in old_items if i not in new]
            changes += [f"New {noun} added: {_format_item(i)}" for i in added]
            changes += [f"{noun.capitalize()} removed: {_format_item(i)}" for i in removed]
            if not added and not removed and old_items != new:
                changes.append("Items reordered")
        elif name == "terms":
            if list(old or []) != list(new or []):
                changes.append("Terms updated")
        elif old != new:
            label = _LABELS.get(name, name)
            if old is None:
                changes.append(f'{label} set to "{new}"')
            elif new is None:
                changes.append(f"{label} cleared")
            else:
                changes.append(f'{label} changed from "{old}" to "{new}"')
    return changes


@dataclass
class QuotationUpdate:
    quotation: Quotation
    changes: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    status_changed: bool = False
    previous_status: str | None = None


@dataclass
class QuotationRemoval:
    snapshot: dict
    project_id: str | None = None
    invoice_id: str | None = None
    image_ids: list[str] = field(default_factory=list)


class QuotationStore:
    """Owns Quotation rows. Never commits; the coordinator does."""

    def __init__(self, session, sequence=None):
        self.session = session
        self.sequence = sequence

    # -----------------
    # Reads
    # -----------------

    def get(self, number: str, actor_id) -> Quotation:
        stmt = select(Quotation).where(Quotation.number == number)
        if actor_id is not None:
            stmt = stmt.where(Quotation.created_by == actor_id)
        q = self.session.execute(stmt).scalar_one_or_none()
        if q is None:
            raise NotFoundError("Quotation not found")
        return q

    def list(self, actor_id, page: int = 1, per_page: int = 10) -> dict:
        page = max(int(page or 1), 1)
        per_page = min(max(int(per_page or 10), 1), 100)
        scope = Quotation.created_by == actor_id
        total = self.session.execute(select(func.count(Quotation.id)).where(scope)).scalar_one()
        rows = self.session.execute(
            select(Quotation)
            .where(scope)
            .order_by(Quotation.created_at.desc(), Quotation.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).scalars().all()
        return {
            "quotations": [q.to_dict() for q in rows],
            "total": total,
            "page": page,
            "pages": (total + per_page - 1) // per_page,
        }

    # -----------------
    # Writes
    # -----------------

    def create(self, data, actor_id) -> Quotation:
        number = identifiers.next_identifier(self.sequence, identifiers.QUOTATION)
        values = data.model_dump()
        q = Quotation(
            number=number,
            client_name=values["client_name"],
            client_address=values["client_address"],
            client_phone=values["client_phone"],
            date=values["date"],
            line_items=values["line_items"],
            subtotal=values["subtotal"],
            discount=values["discount"],
            grand_total=values["grand_total"],
            terms=values["terms"],
            note=values["note"],
            status=PENDING,
            created_by=actor_id,
        )
        self.session.add(q)
        self.session.flush()
        log.info("Quotation %s created by user %s", number, actor_id)
        return q

    def update(self, number: str, patch, actor_id) -> QuotationUpdate:
        q = self.get(number, actor_id)
        if patch.expected_version is not None and patch.expected_version != q.version:
            raise ConflictError(
                "Quotation was changed by someone else",
                details={"expected_version": patch.expected_version, "current_version": q.version},
            )

        incoming = patch.changes()
        if not incoming and patch.status is None:
            raise ValidationError("Nothing to update")
        current = {name: getattr(q, name) for name in incoming}
        result = QuotationUpdate(quotation=q, previous_status=q.status)
        result.changes = describe_changes(current, incoming)

        for name, value in incoming.items():
            setattr(q, name, value)
        result.fields = list(incoming)

        if patch.status is not None:
            result.status_changed = True
            if patch.status != q.status:
                result.changes.append(f'Status changed from "{q.status}" to "{patch.status}"')
            q.status = patch.status
            result.fields.append("status")
        elif any(name in incoming for name in FINANCIAL_FIELDS) and q.status != PENDING:
            result.changes.append(f'Status reset from "{q.status}" to "{PENDING}" after a price change')
            q.status = PENDING
            result.fields.append("status")

        self.session.flush()
        return result

    def delete(self, number: str, actor_id) -> QuotationRemoval:
        """Delete the quotation and its derived project and invoice.

        Site images are not touched here; their ids are returned so they can be
        removed after the commit.
        """
        q = self.get(number, actor_id)
        removal = QuotationRemoval(snapshot=q.to_dict())

        project = self.session.execute(
            select(Project).where(Project.quotation_number == number)
        ).scalar_one_or_none()
        if project is not None:
            removal.project_id = project.project_id
            removal.image_ids = [img.get("public_id") for img in (project.site_images or []) if img.get("public_id")]
            invoice = self.session.execute(
                select(Invoice).where(Invoice.project_id == project.project_id)
            ).scalar_one_or_none()
            if invoice is not None:
                removal.invoice_id = invoice.invoice_id
                self.session.delete(invoice)
            self.session.delete(project)

        self.session.delete(q)
        self.session.flush()
        return removal
