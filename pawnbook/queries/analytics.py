"""
Customer Analytics

Builds the numbers behind a customer's detail page: totals over their
bills, what they have pledged, and a month-by-month view of their ledger.

Filter semantics:
- ``bill_number`` (exact) and ``status`` narrow the bill list, the totals
  and the ornament breakdown. They do not hide transactions.
- ``year`` and ``month`` narrow transactions by their local date.
- ``ornament_name`` and ``metal_type`` are two-hop: among the bills left by
  the bill filters, keep those holding a matching ornament, then keep the
  transactions of those bills.
"""

from collections import Counter, defaultdict
from datetime import datetime
from decimal import Decimal
from operator import attrgetter
from typing import Optional

from pawnbook.models.ledger import Bill, BillStatus, MetalType, Ornament, Transaction
from pawnbook.models.reports import (
    AnalyticsFilter,
    BillSortField,
    CustomerAnalytics,
    DistributionEntry,
    SortOrder,
    TimelineBucket,
)
from pawnbook.queries.views import LedgerViews


METAL_LABELS = {
    MetalType.GOLD: "Gold",
    MetalType.SILVER: "Silver",
}


class CustomerAnalyticsQuery:
    """Computes CustomerAnalytics from the ledger views."""

    def __init__(self, views: LedgerViews, timeline_months: int = 12):
        self._views = views
        self._timeline_months = timeline_months

    def run(
        self,
        customer_id: str,
        filters: Optional[AnalyticsFilter] = None,
    ) -> CustomerAnalytics:
        filters = filters or AnalyticsFilter()

        all_transactions = self._views.get_customer_transactions(customer_id)
        bills = self._filter_bills(self._views.get_customer_bills(customer_id), filters)

        ornaments_by_bill = {
            bill.bill_id: self._views.get_bill_ornaments(bill.bill_id)
            for bill in bills
        }
        ornaments = [o for bill in bills for o in ornaments_by_bill[bill.bill_id]]

        transactions = self._filter_transactions(
            all_transactions, ornaments_by_bill, filters
        )

        return CustomerAnalytics(
            customer_id=customer_id,
            total_amount=sum((b.amount for b in bills), Decimal("0")),
            bill_count=len(bills),
            active_loans=sum(1 for b in bills if b.status == BillStatus.ACTIVE),
            ornament_distribution=self._ornament_distribution(ornaments),
            metal_distribution=self._metal_distribution(ornaments),
            timeline=self._timeline(transactions),
            available_years=sorted(
                {self._views.local_date(t.date).year for t in all_transactions},
                reverse=True,
            ),
            bills=bills,
            ornaments=ornaments,
            transactions=transactions,
        )

    @staticmethod
    def _filter_bills(bills: list[Bill], filters: AnalyticsFilter) -> list[Bill]:
        if filters.bill_number:
            bills = [b for b in bills if b.bill_id == filters.bill_number]
        if filters.status:
            bills = [b for b in bills if b.status == filters.status]

        field = "amount" if filters.sort_by == BillSortField.AMOUNT else "created_at"
        key = attrgetter(field)
        return sorted(bills, key=key, reverse=filters.sort_order == SortOrder.DESC)

    def _filter_transactions(
        self,
        transactions: list[Transaction],
        ornaments_by_bill: dict[str, list[Ornament]],
        filters: AnalyticsFilter,
    ) -> list[Transaction]:
        if filters.year is not None:
            transactions = [
                t for t in transactions
                if self._views.local_date(t.date).year == filters.year
            ]
        if filters.month is not None:
            transactions = [
                t for t in transactions
                if self._views.local_date(t.date).month == filters.month
            ]

        if filters.ornament_name:
            needle = filters.ornament_name.strip().lower()
            matching = {
                bill_number for bill_number, items in ornaments_by_bill.items()
                if any(needle in o.name.lower() for o in items)
            }
            transactions = [t for t in transactions if t.bill_id in matching]

        if filters.metal_type:
            matching = {
                bill_number for bill_number, items in ornaments_by_bill.items()
                if any(o.type == filters.metal_type for o in items)
            }
            transactions = [t for t in transactions if t.bill_id in matching]

        return transactions

    @staticmethod
    def _ornament_distribution(ornaments: list[Ornament]) -> list[DistributionEntry]:
        counts = Counter(o.name for o in ornaments)
        return [DistributionEntry(name=name, value=value) for name, value in counts.items()]

    @staticmethod
    def _metal_distribution(ornaments: list[Ornament]) -> list[DistributionEntry]:
        counts = Counter(o.type for o in ornaments if o.type is not None)
        return [
            DistributionEntry(name=label, value=counts[metal])
            for metal, label in METAL_LABELS.items()
            if counts[metal] > 0
        ]

    def _timeline(self, transactions: list[Transaction]) -> list[TimelineBucket]:
        """Monthly sums, the most recent months only, oldest first."""
        totals: dict[tuple[int, int], Decimal] = defaultdict(Decimal)
        for t in transactions:
            day = self._views.local_date(t.date)
            totals[(day.year, day.month)] += t.amount

        recent = sorted(totals)[-self._timeline_months:] if self._timeline_months else []
        return [
            TimelineBucket(
                label=datetime(year, month, 1).strftime("%b %Y"),
                year=year,
                month=month,
                amount=totals[(year, month)],
            )
            for year, month in recent
        ]
