# contractdesk/services/billing.py
from __future__ import annotations
import copy
import hmac
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import func, select

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.invoice import Invoice
from ..models.project import Project, COMPLETED, CANCELLED, total_paid
from .quotation_store import describe_changes

log = logging.getLogger(__name__)

# Fields the invoice mirrors from its project
_SYNCED_FIELDS = (
    "client_name", "client_address", "client_phone", "date",
    "line_items", "extra_work", "discount", "terms", "note",
)


def _paginate(session, stmt, count_stmt, page, per_page):
    page = max(int(page or 1), 1)
    per_page = min(max(int(per_page or 10), 1), 100)
    total = session.execute(count_stmt).scalar_one()
    rows = session.execute(stmt.offset((page - 1) * per_page).limit(per_page)).scalars().all()
    return rows, total, page, (total + per_page - 1) // per_page


@dataclass
class BillingChange:
    project: Project
    invoice: Invoice | None
    changes: list[str] = field(default_factory=list)
    dropped_images: list[str] = field(default_factory=list)


@dataclass
class ProjectRemoval:
    snapshot: dict
    invoice_id: str | None = None
    image_ids: list[str] = field(default_factory=list)


class BillingService:
    """Projects, invoices and payments. Like the other stores it flushes but never commits."""

    def __init__(self, session):
        self.session = session

    # -----------------
    # Lookups
    # -----------------

    def get_project(self, project_id: str) -> Project:
        p = self.session.execute(
            select(Project).where(Project.project_id == project_id)
        ).scalar_one_or_none()
        if p is None:
            raise NotFoundError("Project not found")
        return p

    def invoice_for(self, project_id: str) -> Invoice | None:
        return self.session.execute(
            select(Invoice).where(Invoice.project_id == project_id)
        ).scalar_one_or_none()

    def get_invoice(self, invoice_id: str) -> Invoice:
        inv = self.session.execute(
            select(Invoice).where(Invoice.invoice_id == invoice_id)
        ).scalar_one_or_none()
        if inv is None:
            raise NotFoundError("Invoice not found")
        return inv

    def get_public_invoice(self, invoice_id: str, token: str | None) -> Invoice:
        """Invoice for the public link. Wrong token and unknown id look the same."""
        inv = self.session.execute(
            select(Invoice).where(Invoice.invoice_id == invoice_id)
        ).scalar_one_or_none()
        expected = inv.access_token if inv is not None else ""
        if inv is None or not token or not hmac.compare_digest(expected.encode(), str(token).encode()):
            log.info("Public invoice lookup rejected for %s", invoice_id)
            raise NotFoundError("Invoice not found")
        return inv

    def list_projects(self, page=1, per_page=10, status: str | None = None) -> dict:
        stmt = select(Project).order_by(Project.created_at.desc(), Project.id.desc())
        count_stmt = select(func.count(Project.id))
        if status:
            stmt = stmt.where(Project.status == status)
            count_stmt = count_stmt.where(Project.status == status)
        rows, total, page, pages = _paginate(self.session, stmt, count_stmt, page, per_page)
        return {"projects": [p.to_dict() for p in rows], "total": total, "page": page, "pages": pages}

    def list_invoices(self, page=1, per_page=10) -> dict:
        stmt = select(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc())
        rows, total, page, pages = _paginate(
            self.session, stmt, select(func.count(Invoice.id)), page, per_page
        )
        return {"invoices": [i.to_dict() for i in rows], "total": total, "page": page, "pages": pages}

    # -----------------
    # Mutations
    # -----------------

    def update_project(self, project_id: str, patch) -> BillingChange:
        project = self.get_project(project_id)
        if patch.expected_version is not None and patch.expected_version != project.version:
            raise ConflictError(
                "Project was changed by someone else",
                details={"expected_version": patch.expected_version, "current_version": project.version},
            )

        incoming = patch.changes()
        if not incoming:
            raise ValidationError("Nothing to update")
        result = BillingChange(project=project, invoice=None)
        result.changes = describe_changes(
            {name: getattr(project, name) for name in incoming if name != "site_images"},
            {name: value for name, value in incoming.items() if name != "site_images"},
        )
        if "site_images" in incoming:
            kept = {img.get("public_id") for img in incoming["site_images"]}
            result.dropped_images = [
                img.get("public_id") for img in (project.site_images or [])
                if img.get("public_id") and img.get("public_id") not in kept
            ]
            if result.dropped_images:
                result.changes.append(f"{len(result.dropped_images)} site image(s) removed")
        for name, value in incoming.items():
            setattr(project, name, value)

        paid = total_paid(project.payment_history)
        due = round((project.grand_total or 0) - paid, 2)
        if due < 0:
            raise ValidationError("Grand total cannot be less than the amount already paid")
        project.amount_due = due

        result.invoice = self._sync_invoice(project)
        self.session.flush()
        return result

    def record_payment(self, project_id: str, payment) -> BillingChange:
        project = self.get_project(project_id)
        if project.status == CANCELLED:
            raise ValidationError("Cannot record a payment on a cancelled project")

        entry = {
            "amount": round(float(payment.amount), 2),
            "date": (payment.date or date.today()).isoformat(),
            "note": payment.note,
        }
        history = list(project.payment_history or []) + [entry]
        grand_total = project.grand_total or 0
        paid = total_paid(history)
        if paid > grand_total:
            raise ValidationError(
                "Total payments exceed grand total",
                details={"grand_total": grand_total, "total_paid": paid},
            )

        project.payment_history = history
        project.amount_due = round(grand_total - paid, 2)
        if project.amount_due <= 0:
            project.status = COMPLETED

        invoice = self.invoice_for(project.project_id)
        if invoice is not None:
            invoice.payment_history = list(history)
            invoice.amount_due = project.amount_due
        self.session.flush()
        log.info("Payment of %.2f recorded on %s; %.2f due", entry["amount"], project_id, project.amount_due)
        return BillingChange(
            project=project,
            invoice=invoice,
            changes=[f"Payment of {entry['amount']:.2f} recorded"],
        )

    def record_invoice_payment(self, invoice_id: str, payment) -> BillingChange:
        invoice = self.get_invoice(invoice_id)
        return self.record_payment(invoice.project_id, payment)

    def add_site_image(self, project_id: str, image: dict) -> Project:
        project = self.get_project(project_id)
        project.site_images = list(project.site_images or []) + [image]
        self.session.flush()
        return project

    def delete_project(self, project_id: str) -> ProjectRemoval:
        project = self.get_project(project_id)
        removal = ProjectRemoval(
            snapshot=project.to_dict(),
            image_ids=[img.get("public_id") for img in (project.site_images or []) if img.get("public_id")],
        )
        invoice = self.invoice_for(project_id)
        if invoice is not None:
            removal.invoice_id = invoice.invoice_id
            self.session.delete(invoice)
        self.session.delete(project)
        self.session.flush()
        return removal

    def _sync_invoice(self, project: Project) -> Invoice | None:
        invoice = self.invoice_for(project.project_id)
        if invoice is None:
            log.warning("Project %s has no invoice to sync", project.project_id)
            return None
        for name in _SYNCED_FIELDS:
            setattr(invoice, name, copy.deepcopy(getattr(project, name)))
        invoice.subtotal = project.subtotal or 0
        invoice.grand_total = project.grand_total or 0
        invoice.payment_history = list(project.payment_history or [])
        invoice.amount_due = project.amount_due
        return invoice
