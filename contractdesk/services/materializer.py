# contractdesk/services/materializer.py
from __future__ import annotations
import copy
import logging
import secrets
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models.invoice import Invoice
from ..models.project import Project, ONGOING
from ..models.quotation import ACCEPTED
from . import identifiers

log = logging.getLogger(__name__)


def new_access_token() -> str:
    # 32 random bytes, url-safe
    return secrets.token_urlsafe(32)


@dataclass
class MaterializedDocuments:
    project: Project
    invoice: Invoice


class Materializer:
    """Turns an accepted quotation into its Project and Invoice, once."""

    def __init__(self, session, sequence):
        self.session = session
        self.sequence = sequence

    def find_project(self, quotation_number: str) -> Project | None:
        return self.session.execute(
            select(Project).where(Project.quotation_number == quotation_number)
        ).scalar_one_or_none()

    def materialize_if_accepted(self, quotation) -> MaterializedDocuments | None:
        if quotation.status != ACCEPTED:
            return None
        if quotation.materialized_project_id is not None:
            log.debug("Quotation %s was already materialized as %s; skipping",
                      quotation.number, quotation.materialized_project_id)
            return None
        if self.find_project(quotation.number) is not None:
            log.debug("Quotation %s already has a project; skipping", quotation.number)
            return None

        if not quotation.grand_total:
            log.warning(
                "Quotation %s accepted without a grand total; amount due starts at 0",
                quotation.number,
            )
        amount_due = quotation.grand_total or 0

        project_id = identifiers.next_identifier(self.sequence, identifiers.PROJECT)
        invoice_id = identifiers.next_identifier(self.sequence, identifiers.INVOICE)

        project = Project(
            project_id=project_id,
            subtotal=quotation.subtotal,
            grand_total=quotation.grand_total,
            site_images=[],
            status=ONGOING,
            created_by=quotation.created_by,
            **self._copied_fields(quotation, amount_due),
        )
        invoice = Invoice(
            invoice_id=invoice_id,
            project_id=project_id,
            subtotal=quotation.subtotal or 0,
            grand_total=quotation.grand_total or 0,
            access_token=new_access_token(),
            **self._copied_fields(quotation, amount_due),
        )

        # the unique keys on quotation_number / project_id decide a race here
        try:
            self.session.add(project)
            self.session.flush()
            self.session.add(invoice)
            self.session.flush()
        except IntegrityError as e:
            log.warning("Materialization for %s lost a race: %s", quotation.number, e.orig)
            raise ConflictError("Project for this quotation already exists") from e

        quotation.materialized_project_id = project_id
        self.session.flush()
        log.info("Quotation %s materialized as %s / %s", quotation.number, project_id, invoice_id)
        return MaterializedDocuments(project=project, invoice=invoice)

    @staticmethod
    def _copied_fields(quotation, amount_due) -> dict:
        return dict(
            quotation_number=quotation.number,
            client_name=quotation.client_name,
            client_address=quotation.client_address,
            client_phone=quotation.client_phone,
            date=quotation.date,
            line_items=copy.deepcopy(quotation.line_items or []),
            extra_work=[],
            discount=quotation.discount or 0,
            payment_history=[],
            amount_due=amount_due,
            terms=list(quotation.terms or []),
            note=quotation.note,
        )
