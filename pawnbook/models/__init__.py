"""
Data Models Package

This package contains all Pydantic models used in PawnBook.
All records flowing through the system must conform to these schemas.
"""

from pawnbook.models.ledger import (
    ALLOWED_TRANSITIONS,
    CASH_FLOW_DIRECTION,
    TEMPLATE_BILL_ID,
    Account,
    AccountCreate,
    AccountType,
    AccountUpdate,
    Bill,
    BillCreate,
    BillStatus,
    BillUpdate,
    Customer,
    CustomerCreate,
    CustomerUpdate,
    MetalType,
    Ornament,
    OrnamentCreate,
    OrnamentUpdate,
    PledgedPlacement,
    TemplatePlacement,
    Transaction,
    TransactionCreate,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from pawnbook.models.reports import (
    AccountSummary,
    AnalyticsFilter,
    BillSortField,
    CustomerAnalytics,
    DashboardStats,
    DateWindow,
    DayBookSummary,
    DistributionEntry,
    SortOrder,
    TimelineBucket,
    WindowPreset,
)
from pawnbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ALLOWED_TRANSITIONS",
    "CASH_FLOW_DIRECTION",
    "TEMPLATE_BILL_ID",
    "Account",
    "AccountCreate",
    "AccountType",
    "AccountUpdate",
    "Bill",
    "BillCreate",
    "BillStatus",
    "BillUpdate",
    "Customer",
    "CustomerCreate",
    "CustomerUpdate",
    "MetalType",
    "Ornament",
    "OrnamentCreate",
    "OrnamentUpdate",
    "PledgedPlacement",
    "TemplatePlacement",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Report models
    "AccountSummary",
    "AnalyticsFilter",
    "BillSortField",
    "CustomerAnalytics",
    "DashboardStats",
    "DateWindow",
    "DayBookSummary",
    "DistributionEntry",
    "SortOrder",
    "TimelineBucket",
    "WindowPreset",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
