# contractdesk/services/dashboard.py
from sqlalchemy import func, select

from ..models.invoice import Invoice
from ..models.project import Project
from ..models.quotation import Quotation, QUOTATION_STATUSES


def dashboard_stats(session) -> dict:
    """Document counts for the admin dashboard. Quotations are counted for every creator."""
    by_status = {s: 0 for s in QUOTATION_STATUSES}
    rows = session.execute(
        select(Quotation.status, func.count()).group_by(Quotation.status)
    ).all()
    for status, count in rows:
        if status in by_status:
            by_status[status] = count

    return {
        "quotations": {"total": sum(count for _, count in rows), **by_status},
        "projects": {"total": session.execute(select(func.count()).select_from(Project)).scalar_one()},
        "invoices": {"total": session.execute(select(func.count()).select_from(Invoice)).scalar_one()},
    }
