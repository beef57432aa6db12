"""Derived views and reports over the ledger."""

from pawnbook.queries.analytics import CustomerAnalyticsQuery
from pawnbook.queries.reports import ReportQueries
from pawnbook.queries.views import LedgerViews, newest_first

__all__ = [
    "CustomerAnalyticsQuery",
    "LedgerViews",
    "ReportQueries",
    "newest_first",
]
