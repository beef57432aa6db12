"""
Derived Views

DESIGN DECISION: Views are DETERMINISTIC filters over the store's current
collections. Nothing here is cached or persisted; every call recomputes
from the records, so a view can never disagree with the ledger.

Day boundaries are taken in the shop's local timezone. Stored timestamps
are UTC.
"""

from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Optional

from pawnbook.models.ledger import (
    CASH_FLOW_DIRECTION,
    Bill,
    BillStatus,
    Customer,
    Ornament,
    Transaction,
)
from pawnbook.store import EntityStore


def newest_first(transactions) -> list[Transaction]:
    """Sort by date descending; ties keep their ledger order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


class LedgerViews:
    """
    Read-only queries used by the pages of the application.

    GUARANTEES:
    - Only returns records that exist in the store
    - Empty list (never an error) when nothing matches
    """

    def __init__(self, store: EntityStore, tz: tzinfo):
        self._store = store
        self._tz = tz

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def local_date(self, moment: datetime) -> date:
        """Calendar day of a stored timestamp in the shop's timezone."""
        return moment.astimezone(self._tz).date()

    def local_today(self) -> date:
        return self.local_date(self._store.now())

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """First and last instant of a local calendar day."""
        start = datetime.combine(day, time.min, tzinfo=self._tz)
        end = datetime.combine(day, time.max, tzinfo=self._tz)
        return start, end

    def as_aware(self, moment: datetime) -> datetime:
        """Caller-supplied naive datetimes are read as local time."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self._tz)
        return moment

    # ------------------------------------------------------------------
    # Bills and ornaments
    # ------------------------------------------------------------------

    def get_customer_bills(self, customer_id: str) -> list[Bill]:
        return [b for b in self._store.bills if b.customer_id == customer_id]

    def get_bill_ornaments(self, bill_number: str) -> list[Ornament]:
        """Ornaments pledged to a bill number. Templates never match."""
        return [
            o for o in self._store.ornaments
            if o.pledged_bill_id == bill_number
        ]

    def get_bills_by_status(self, status: BillStatus) -> list[Bill]:
        return [b for b in self._store.bills if b.status == status]

    def get_ornament_templates(self) -> list[Ornament]:
        return [o for o in self._store.ornaments if o.is_template]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def get_today_transactions(self, today: Optional[date] = None) -> list[Transaction]:
        """
        Transactions dated on one local calendar day.

        Args:
            today: Day to report on. Defaults to the current local day.
        """
        day = today or self.local_today()
        return [
            t for t in self._store.transactions
            if self.local_date(t.date) == day
        ]

    def get_transactions_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        """
        Transactions with start <= date <= end, newest first.

        A reversed range is empty rather than an error.
        """
        start = self.as_aware(start)
        end = self.as_aware(end)
        if start > end:
            return []
        return newest_first(
            t for t in self._store.transactions
            if start <= t.date <= end
        )

    def get_account_transactions(self, account_id: str) -> list[Transaction]:
        return [t for t in self._store.transactions if t.account_id == account_id]

    def get_customer_transactions(self, customer_id: str) -> list[Transaction]:
        return newest_first(
            t for t in self._store.transactions
            if t.customer_id == customer_id
        )

    # ------------------------------------------------------------------
    # Customers and accounts
    # ------------------------------------------------------------------

    def search_customers(self, term: str) -> list[Customer]:
        """
        Match name or village (case-insensitive) or phone number (substring).

        A blank term returns every customer.
        """
        needle = term.strip().lower()
        if not needle:
            return list(self._store.customers)
        return [
            c for c in self._store.customers
            if needle in c.name.lower()
            or needle in c.village.lower()
            or term.strip() in c.phone_number
        ]

    def get_account_balance(self, account_id: str) -> Decimal:
        """
        Opening balance plus the signed cash flow of linked transactions.

        Raises:
            NotFoundError: Unknown account
        """
        account = self._store.require_account(account_id)
        flow = sum(
            (CASH_FLOW_DIRECTION[t.type] * t.amount
             for t in self.get_account_transactions(account_id)),
            Decimal("0"),
        )
        return account.balance + flow

