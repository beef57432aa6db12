"""
Cash Reports

Window-based totals for the Accounts, Day Book and Dashboard pages.

CRITICAL: Totals are always computed over every transaction in the window.
Collapsing the Day Book to one entry per bill only changes what is listed.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from pawnbook.models.ledger import BillStatus, Transaction, TransactionType
from pawnbook.models.reports import (
    AccountSummary,
    DashboardStats,
    DateWindow,
    DayBookSummary,
    WindowPreset,
)
from pawnbook.queries.views import LedgerViews


MONEY_IN = frozenset({TransactionType.INTEREST_PAID, TransactionType.EXTRA_AMOUNT})
MONEY_OUT = frozenset({TransactionType.BILL_CREATED})

# The Accounts page reports redemptions as collected and customer payments
# routed through an account as disbursed.
COLLECTED = frozenset({TransactionType.BILL_RELEASED})
DISBURSED = frozenset({TransactionType.INTEREST_PAID, TransactionType.EXTRA_AMOUNT})


def _total(transactions: Iterable[Transaction]) -> tuple[Decimal, int]:
    amount = Decimal("0")
    count = 0
    for t in transactions:
        amount += t.amount
        count += 1
    return amount, count


class ReportQueries:
    """Window totals over the transaction ledger."""

    def __init__(self, views: LedgerViews):
        self._views = views
        self._store = views.store

    def date_window(
        self,
        preset: WindowPreset,
        reference: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> DateWindow:
        """
        Resolve a report preset to inclusive local bounds.

        Args:
            preset: today, month, year or custom
            reference: Day the preset is relative to (defaults to local today)
            start: First day of a custom window
            end: Last day of a custom window

        Raises:
            ValueError: A custom window without both days
        """
        reference = reference or self._views.local_today()

        if preset == WindowPreset.TODAY:
            first = last = reference
        elif preset == WindowPreset.MONTH:
            days_in_month = calendar.monthrange(reference.year, reference.month)[1]
            first = reference.replace(day=1)
            last = reference.replace(day=days_in_month)
        elif preset == WindowPreset.YEAR:
            first = date(reference.year, 1, 1)
            last = date(reference.year, 12, 31)
        else:
            if start is None or end is None:
                raise ValueError("A custom window needs both a start and an end day")
            first, last = start, end

        window_start, _ = self._views.day_bounds(first)
        _, window_end = self._views.day_bounds(last)
        return DateWindow(start=window_start, end=window_end)

    def account_summary(
        self,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> AccountSummary:
        """
        Totals over transactions routed through an account.

        Args:
            account_id: Restrict to one account; by default every
                        transaction with any account counts.
        """
        in_window = self._views.get_transactions_by_date_range(start, end)
        linked = [
            t for t in in_window
            if t.account_id and (account_id is None or t.account_id == account_id)
        ]

        collected, collected_count = _total(t for t in linked if t.type in COLLECTED)
        disbursed, disbursed_count = _total(t for t in linked if t.type in DISBURSED)

        return AccountSummary(
            window=DateWindow(start=self._views.as_aware(start), end=self._views.as_aware(end)),
            total_collected=collected,
            collected_count=collected_count,
            total_disbursed=disbursed,
            disbursed_count=disbursed_count,
            transactions=linked,
        )

    def day_book(
        self,
        start: datetime,
        end: datetime,
        latest_per_bill: bool = False,
    ) -> DayBookSummary:
        """Money in (interest, part payments) and out (new loans)."""
        in_window = self._views.get_transactions_by_date_range(start, end)

        total_in, in_count = _total(t for t in in_window if t.type in MONEY_IN)
        total_out, out_count = _total(t for t in in_window if t.type in MONEY_OUT)

        entries = in_window
        if latest_per_bill:
            seen: set[str] = set()
            entries = []
            # in_window is newest first, so the first hit per bill is its latest
            for t in in_window:
                if t.bill_id not in seen:
                    seen.add(t.bill_id)
                    entries.append(t)

        return DayBookSummary(
            window=DateWindow(start=self._views.as_aware(start), end=self._views.as_aware(end)),
            total_in=total_in,
            in_count=in_count,
            total_out=total_out,
            out_count=out_count,
            entries=entries,
        )

    def dashboard_stats(self, today: Optional[date] = None) -> DashboardStats:
        today_transactions = self._views.get_today_transactions(today)
        revenue, count = _total(today_transactions)
        bills = self._store.bills

        return DashboardStats(
            total_customers=len(self._store.customers),
            active_bills=sum(1 for b in bills if b.status == BillStatus.ACTIVE),
            released_bills=sum(1 for b in bills if b.status == BillStatus.RELEASED),
            cleared_bills=sum(1 for b in bills if b.status == BillStatus.CLEARED),
            today_revenue=revenue,
            today_transaction_count=count,
        )

