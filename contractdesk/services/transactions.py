# contractdesk/services/transactions.py
"""Atomic multi-document workflows.

Every mutating operation runs as one database transaction that walks a fixed
path of named states::

    STARTED -> PRIMARY_UPDATED -> DERIVED_SYNCED -> AUDIT_LOGGED -> COMMITTED

and can fall to ABORTED from any state before COMMITTED. Abort rolls the
session back, so a failure anywhere before the commit leaves nothing behind.
Notifications and asset cleanup run only after the commit and report
failures as warnings on the outcome.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, ContractDeskError, TransientStorageError
from ..models.quotation import ACCEPTED, REJECTED
from ..schemas import QuotationPatch
from . import client_notifications as messages
from . import storage_service
from .audit_service import AuditSink
from .billing import BillingService
from .materializer import Materializer
from .quotation_store import QuotationStore
from .sequence import SequenceGenerator

log = logging.getLogger(__name__)

# Post-commit warnings reported on an otherwise successful outcome
NOTIFY_FAILED = "Client notification could not be delivered"
CLEANUP_FAILED = "{count} site image(s) could not be deleted"


class TxState(str, enum.Enum):
    STARTED = "started"
    PRIMARY_UPDATED = "primary_updated"
    DERIVED_SYNCED = "derived_synced"
    AUDIT_LOGGED = "audit_logged"
    COMMITTED = "committed"
    ABORTED = "aborted"


_TRANSITIONS = {
    TxState.STARTED: {TxState.PRIMARY_UPDATED, TxState.ABORTED},
    TxState.PRIMARY_UPDATED: {TxState.DERIVED_SYNCED, TxState.ABORTED},
    TxState.DERIVED_SYNCED: {TxState.AUDIT_LOGGED, TxState.ABORTED},
    TxState.AUDIT_LOGGED: {TxState.COMMITTED, TxState.ABORTED},
    TxState.COMMITTED: set(),
    TxState.ABORTED: set(),
}


class Transaction:
    def __init__(self, session, name: str):
        self.session = session
        self.name = name
        self.state = TxState.STARTED
        self.history = [TxState.STARTED]

    def advance(self, target: TxState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.name}: illegal transition {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    def commit(self) -> None:
        if TxState.COMMITTED not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.name}: cannot commit from {self.state.value}")
        self.session.commit()
        self.advance(TxState.COMMITTED)

    def abort(self) -> None:
        self.session.rollback()
        if self.state is not TxState.ABORTED:
            self.advance(TxState.ABORTED)


@dataclass
class Outcome:
    quotation: dict | None = None
    project: dict | None = None
    invoice: dict | None = None
    changes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    state: TxState = TxState.STARTED
    history: list[TxState] = field(default_factory=list)

    @property
    def materialized(self) -> bool:
        return self.project is not None

    def to_dict(self) -> dict:
        data = {}
        for key in ("quotation", "project", "invoice"):
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        data["changes"] = list(self.changes)
        data["warnings"] = list(self.warnings)
        return data


def _translate(exc: Exception) -> Exception:
    if isinstance(exc, ContractDeskError):
        return exc
    if isinstance(exc, (IntegrityError, StaleDataError)):
        return ConflictError()
    if isinstance(exc, (OperationalError, DBAPIError)):
        return TransientStorageError()
    return exc


class TransactionCoordinator:
    def __init__(self, session, *, notifier=None, assets=storage_service,
                 base_url: str = "", currency: str = "₹", max_attempts: int = 3):
        self.session = session
        self.notifier = notifier
        self.assets = assets
        self.base_url = base_url
        self.currency = currency
        self.max_attempts = max(int(max_attempts or 1), 1)

        self.sequence = SequenceGenerator(session)
        self.quotations = QuotationStore(session, self.sequence)
        self.materializer = Materializer(session, self.sequence)
        self.billing = BillingService(session)
        self.audit = AuditSink(session)

    # -----------------
    # Engine
    # -----------------

    def _run(self, name: str, work, *, retry: bool = True):
        """Run ``work(tx)`` inside a transaction and commit it.

        Conflicts are retried from scratch when ``retry`` is set; the caller
        passes ``retry=False`` when the request pinned a version.
        """
        attempts = self.max_attempts if retry else 1
        for attempt in range(1, attempts + 1):
            tx = Transaction(self.session, name)
            try:
                result = work(tx)
                tx.commit()
                return result, tx
            except Exception as exc:
                tx.abort()
                err = _translate(exc)
                if isinstance(err, ConflictError) and attempt < attempts:
                    log.warning("%s hit a conflict (attempt %s/%s), retrying", name, attempt, attempts)
                    continue
                if err is not exc:
                    log.warning("%s aborted: %s", name, exc)
                    raise err from exc
                raise

    @staticmethod
    def _finish(outcome: Outcome, tx: Transaction) -> Outcome:
        outcome.state = tx.state
        outcome.history = list(tx.history)
        return outcome

    def _notify(self, outcome: Outcome, phone: str, message: str, action: str) -> None:
        if self.notifier is None:
            return
        try:
            delivered = self.notifier.send(phone, message, action)
        except Exception:
            log.exception("notifier raised for %s", action)
            delivered = False
        if not delivered:
            outcome.warnings.append(NOTIFY_FAILED)

    def _remove_assets(self, outcome: Outcome, public_ids) -> None:
        failed = 0
        for public_id in public_ids:
            try:
                ok = self.assets.delete_upload(public_id)
            except Exception:
                log.exception("asset cleanup raised for %s", public_id)
                ok = False
            if not ok:
                failed += 1
        if failed:
            outcome.warnings.append(CLEANUP_FAILED.format(count=failed))

    # -----------------
    # Quotations
    # -----------------

    def create_quotation(self, data, actor_id) -> Outcome:
        def work(tx):
            q = self.quotations.create(data, actor_id)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("create_quotation", actor_id, {
                "quotation_number": q.number,
                "client_name": q.client_name,
                "grand_total": q.grand_total,
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return q

        q, tx = self._run("create_quotation", work)
        outcome = self._finish(Outcome(quotation=q.to_dict()), tx)
        self._notify(
            outcome, q.client_phone,
            messages.quotation_summary_message(
                outcome.quotation, created=True, base_url=self.base_url, symbol=self.currency,
            ),
            "quotation_created",
        )
        return outcome

    def update_quotation(self, number: str, patch, actor_id) -> Outcome:
        def work(tx):
            upd = self.quotations.update(number, patch, actor_id)
            tx.advance(TxState.PRIMARY_UPDATED)
            docs = None
            if upd.status_changed:
                docs = self.materializer.materialize_if_accepted(upd.quotation)
            tx.advance(TxState.DERIVED_SYNCED)
            action = "update_quotation_status" if upd.fields == ["status"] else "update_quotation"
            details = {
                "quotation_number": number,
                "changes": upd.changes,
                "status": upd.quotation.status,
            }
            if docs is not None:
                details["project_id"] = docs.project.project_id
                details["invoice_id"] = docs.invoice.invoice_id
            self.audit.append(action, actor_id, details)
            tx.advance(TxState.AUDIT_LOGGED)
            return upd, docs

        (upd, docs), tx = self._run("update_quotation", work, retry=patch.expected_version is None)
        q = upd.quotation
        outcome = Outcome(quotation=q.to_dict(), changes=list(upd.changes))
        if docs is not None:
            outcome.project = docs.project.to_dict()
            outcome.invoice = docs.invoice.to_dict(include_token=True)
        self._finish(outcome, tx)

        if upd.fields == ["status"]:
            if q.status in (ACCEPTED, REJECTED) and q.status != upd.previous_status:
                self._notify(
                    outcome, q.client_phone,
                    messages.quotation_status_message(outcome.quotation, base_url=self.base_url),
                    f"quotation_{q.status}",
                )
        elif upd.changes:
            self._notify(
                outcome, q.client_phone,
                messages.quotation_summary_message(
                    outcome.quotation, created=False, base_url=self.base_url, symbol=self.currency,
                ),
                "quotation_updated",
            )
        return outcome

    def change_status(self, number: str, status: str, actor_id, expected_version: int | None = None) -> Outcome:
        patch = QuotationPatch(status=status, expected_version=expected_version)
        return self.update_quotation(number, patch, actor_id)

    def delete_quotation(self, number: str, actor_id) -> Outcome:
        def work(tx):
            removal = self.quotations.delete(number, actor_id)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("delete_quotation", actor_id, {
                "quotation_number": number,
                "project_id": removal.project_id,
                "invoice_id": removal.invoice_id,
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return removal

        removal, tx = self._run("delete_quotation", work)
        outcome = self._finish(Outcome(quotation=removal.snapshot), tx)
        self._remove_assets(outcome, removal.image_ids)
        return outcome

    # -----------------
    # Projects and payments
    # -----------------

    def update_project(self, project_id: str, patch, actor_id) -> Outcome:
        def work(tx):
            change = self.billing.update_project(project_id, patch)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("update_project", actor_id, {
                "project_id": project_id,
                "changes": change.changes,
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return change

        change, tx = self._run("update_project", work, retry=patch.expected_version is None)
        outcome = Outcome(project=change.project.to_dict(), changes=list(change.changes))
        if change.invoice is not None:
            outcome.invoice = change.invoice.to_dict(include_token=True)
        self._finish(outcome, tx)
        self._remove_assets(outcome, change.dropped_images)
        return outcome

    def record_payment(self, payment, actor_id, *, project_id: str | None = None,
                       invoice_id: str | None = None) -> Outcome:
        if (project_id is None) == (invoice_id is None):
            raise ValueError("pass exactly one of project_id or invoice_id")

        def work(tx):
            if project_id is not None:
                change = self.billing.record_payment(project_id, payment)
            else:
                change = self.billing.record_invoice_payment(invoice_id, payment)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("add_project_payment", actor_id, {
                "project_id": change.project.project_id,
                "invoice_id": change.invoice.invoice_id if change.invoice is not None else None,
                "amount": float(payment.amount),
                "amount_due": change.project.amount_due,
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return change

        change, tx = self._run("record_payment", work)
        outcome = Outcome(project=change.project.to_dict(), changes=list(change.changes))
        if change.invoice is not None:
            outcome.invoice = change.invoice.to_dict(include_token=True)
        self._finish(outcome, tx)
        self._notify(
            outcome, change.project.client_phone,
            messages.payment_received_message(
                outcome.project, outcome.invoice, float(payment.amount),
                base_url=self.base_url, symbol=self.currency,
            ),
            "payment_received",
        )
        return outcome

    def delete_project(self, project_id: str, actor_id) -> Outcome:
        def work(tx):
            removal = self.billing.delete_project(project_id)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("delete_project", actor_id, {
                "project_id": project_id,
                "invoice_id": removal.invoice_id,
                "quotation_number": removal.snapshot.get("quotation_number"),
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return removal

        removal, tx = self._run("delete_project", work)
        outcome = self._finish(Outcome(project=removal.snapshot), tx)
        self._remove_assets(outcome, removal.image_ids)
        return outcome

    def add_site_image(self, project_id: str, upload, actor_id, description: str | None = None) -> Outcome:
        # fail fast before anything is written to disk
        self.billing.get_project(project_id)
        saved = self.assets.save_upload(upload, project_id)
        image = {"url": saved["url"], "public_id": saved["public_id"], "description": description}

        def work(tx):
            project = self.billing.add_site_image(project_id, image)
            tx.advance(TxState.PRIMARY_UPDATED)
            tx.advance(TxState.DERIVED_SYNCED)
            self.audit.append("add_site_image", actor_id, {
                "project_id": project_id,
                "public_id": image["public_id"],
            })
            tx.advance(TxState.AUDIT_LOGGED)
            return project

        try:
            project, tx = self._run("add_site_image", work)
        except Exception:
            self.assets.delete_upload(saved["public_id"])
            raise
        return self._finish(Outcome(project=project.to_dict(), changes=["Site image added"]), tx)
