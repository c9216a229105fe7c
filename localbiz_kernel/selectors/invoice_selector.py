"""
Module: localbiz_kernel.selectors.invoice_selector
Responsibility: Read-side queries over invoices: owner listings filtered by
    effective status, and the dashboard summary.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Listings report the effective status: a draft or pending invoice past
      its due date is reported as overdue even before the sweep persists it.
    - Revenue counts issued invoices only (pending, overdue, paid).  Drafts
      are not invoices yet and cancelled invoices are void.
"""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from localbiz_kernel.db.types import ZERO, round_money
from localbiz_kernel.domain.dtos import Invoice, InvoiceStatus, InvoiceSummary
from localbiz_kernel.domain.lifecycle import effective_status
from localbiz_kernel.models.invoice import InvoiceModel
from localbiz_kernel.selectors.base import BaseSelector

REVENUE_STATES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.OVERDUE, InvoiceStatus.PAID})
UNPAID_STATES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.OVERDUE})


def _month_bounds(as_of: date) -> tuple[date, date, date]:
    """(first day of last month, first day of this month, first day of next month)."""
    this_month = as_of.replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    next_month = (this_month + timedelta(days=32)).replace(day=1)
    return last_month, this_month, next_month


def _sum_totals(invoices) -> Decimal:
    return round_money(sum((inv.total for inv in invoices), ZERO))


class InvoiceSelector(BaseSelector[InvoiceModel]):
    """Queries invoices of one owner as of a given day."""

    def _owner_invoices(self, owner_id: UUID) -> list[Invoice]:
        stmt = (
            select(InvoiceModel)
            .where(InvoiceModel.owner_id == owner_id)
            .order_by(InvoiceModel.created_at.desc(), InvoiceModel.invoice_number.desc())
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def with_effective_status(self, invoice: Invoice, today: date) -> Invoice:
        status = effective_status(invoice.status, invoice.due_date, today)
        if status == invoice.status:
            return invoice
        return replace(invoice, status=status)

    def list_for_owner(
        self,
        owner_id: UUID,
        today: date,
        status: InvoiceStatus | None = None,
    ) -> list[Invoice]:
        """
        Invoices of an owner, newest first, with their effective status.

        ``status`` filters on the effective status, so asking for OVERDUE
        includes pending invoices the sweep has not reached yet.
        """
        invoices = [self.with_effective_status(inv, today) for inv in self._owner_invoices(owner_id)]
        if status is None:
            return invoices
        return [inv for inv in invoices if inv.status == status]

    def summarize(self, owner_id: UUID, as_of: date) -> InvoiceSummary:
        """Dashboard figures for ``owner_id`` on ``as_of``."""
        invoices = self.list_for_owner(owner_id, as_of)
        issued = [inv for inv in invoices if inv.status in REVENUE_STATES]
        unpaid = [inv for inv in invoices if inv.status in UNPAID_STATES]

        last_month, this_month, next_month = _month_bounds(as_of)
        revenue_this_month = _sum_totals(
            inv for inv in issued if this_month <= inv.invoice_date < next_month
        )
        revenue_last_month = _sum_totals(
            inv for inv in issued if last_month <= inv.invoice_date < this_month
        )
        if revenue_last_month > 0:
            trend = round_money(
                (revenue_this_month - revenue_last_month) / revenue_last_month * 100
            )
        else:
            trend = ZERO

        return InvoiceSummary(
            total_revenue=_sum_totals(issued),
            revenue_this_month=revenue_this_month,
            revenue_last_month=revenue_last_month,
            revenue_trend_percent=trend,
            invoice_count=len(invoices),
            unpaid_count=len(unpaid),
            unpaid_amount=_sum_totals(unpaid),
            overdue_count=sum(1 for inv in invoices if inv.status == InvoiceStatus.OVERDUE),
        )
