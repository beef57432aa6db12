"""
Report Models

Filters and result shapes for the derived views: customer analytics,
account summaries, the day book and the dashboard. These are computed on
demand and never persisted.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from pawnbook.models.ledger import (
    Bill,
    BillStatus,
    MetalType,
    Ornament,
    Transaction,
)


class BillSortField(str, Enum):
    AMOUNT = "amount"
    DATE = "date"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class WindowPreset(str, Enum):
    """Date ranges offered by the reports screens."""
    TODAY = "today"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


class DateWindow(BaseModel):
    """Inclusive time window, both ends timezone-aware."""

    start: datetime
    end: datetime


class AnalyticsFilter(BaseModel):
    """
    Filters for the customer analytics view.

    All filters are optional and compose with AND. ``metal_type`` and
    ``ornament_name`` are two-hop: they select the customer's bills that
    hold a matching ornament, then keep only transactions of those bills.
    """

    year: Optional[int] = Field(default=None, ge=1900, le=9999)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    metal_type: Optional[MetalType] = None
    ornament_name: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the ornament name"
    )
    bill_number: Optional[str] = None
    status: Optional[BillStatus] = None
    sort_by: BillSortField = BillSortField.DATE
    sort_order: SortOrder = SortOrder.DESC


class DistributionEntry(BaseModel):
    name: str
    value: int = Field(ge=0)


class TimelineBucket(BaseModel):
    """Sum of transaction amounts for one calendar month."""

    label: str = Field(..., description="e.g. 'Jan 2025'")
    year: int
    month: int
    amount: Decimal


class CustomerAnalytics(BaseModel):
    customer_id: str
    total_amount: Decimal = Field(..., description="Sum of principal over the bills shown")
    bill_count: int
    active_loans: int
    ornament_distribution: list[DistributionEntry] = Field(default_factory=list)
    metal_distribution: list[DistributionEntry] = Field(default_factory=list)
    timeline: list[TimelineBucket] = Field(default_factory=list)
    available_years: list[int] = Field(default_factory=list)
    bills: list[Bill] = Field(default_factory=list)
    ornaments: list[Ornament] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)


class AccountSummary(BaseModel):
    """Totals over account-linked transactions inside a window."""

    window: DateWindow
    total_collected: Decimal
    collected_count: int
    total_disbursed: Decimal
    disbursed_count: int
    transactions: list[Transaction] = Field(default_factory=list)


class DayBookSummary(BaseModel):
    """
    Money in and out for a window.

    ``entries`` may be collapsed to the latest transaction per bill for
    display; the totals always cover every transaction in the window.
    """

    window: DateWindow
    total_in: Decimal
    in_count: int
    total_out: Decimal
    out_count: int
    entries: list[Transaction] = Field(default_factory=list)


class DashboardStats(BaseModel):
    total_customers: int
    active_bills: int
    released_bills: int
    cleared_bills: int
    today_revenue: Decimal
    today_transaction_count: int
