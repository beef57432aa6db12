"""
Application Root for PawnBook

This module wires the components together:
1. Settings -> storage backend
2. Storage -> entity store (loads every collection)
3. Store -> ledger service (mutations) and queries (derived views)

DESIGN DECISION: There is no global state. The application root owns one
store and hands it to everything that needs it, so tests can build as many
isolated ledgers as they like with in-memory storage and a fixed clock.
"""

from datetime import date, datetime, tzinfo
from typing import Optional

import structlog

from pawnbook.audit import AuditLogger, configure_logging
from pawnbook.config import Settings, get_settings, resolve_timezone
from pawnbook.ledger import LedgerService
from pawnbook.models.reports import (
    AccountSummary,
    AnalyticsFilter,
    CustomerAnalytics,
    DashboardStats,
    DateWindow,
    DayBookSummary,
    WindowPreset,
)
from pawnbook.queries import CustomerAnalyticsQuery, LedgerViews, ReportQueries
from pawnbook.services.storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from pawnbook.store import EntityStore
from pawnbook.store.entity_store import Clock
from pawnbook.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class PawnLedger:
    """
    The object the presentation layer talks to.

    Mutations go through ``service``; read-only pages use ``views`` or the
    report helpers below.
    """

    def __init__(
        self,
        store: EntityStore,
        service: LedgerService,
        views: LedgerViews,
        timeline_months: int = 12,
    ):
        self.store = store
        self.service = service
        self.views = views
        self._analytics = CustomerAnalyticsQuery(views, timeline_months)
        self._reports = ReportQueries(views)

    def customer_analytics(
        self,
        customer_id: str,
        filters: Optional[AnalyticsFilter] = None,
    ) -> CustomerAnalytics:
        return self._analytics.run(customer_id, filters)

    def date_window(
        self,
        preset: WindowPreset,
        reference: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> DateWindow:
        return self._reports.date_window(preset, reference, start, end)

    def account_summary(
        self,
        start: datetime,
        end: datetime,
        account_id: Optional[str] = None,
    ) -> AccountSummary:
        return self._reports.account_summary(start, end, account_id)

    def day_book(
        self,
        start: datetime,
        end: datetime,
        latest_per_bill: bool = False,
    ) -> DayBookSummary:
        return self._reports.day_book(start, end, latest_per_bill)

    def dashboard_stats(self, today: Optional[date] = None) -> DashboardStats:
        return self._reports.dashboard_stats(today)


def create_storage(settings: Settings) -> KeyValueStorage:
    """Build the configured storage backend."""
    storage_settings = settings.storage
    if storage_settings.backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(storage_settings.data_dir)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    clock: Optional[Clock] = None,
    tz: Optional[tzinfo] = None,
) -> PawnLedger:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings
        storage: Overrides the configured backend (tests pass InMemoryStorage)
        clock: Source of "now"; must return timezone-aware datetimes
        tz: Overrides the configured local timezone

    Returns:
        A fully loaded PawnLedger

    Raises:
        PersistenceError: If a stored collection is unreadable
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.debug_mode)

    storage = storage if storage is not None else create_storage(settings)
    audit_logger = AuditLogger()
    validator = LedgerValidator(
        max_bill_amount=app_settings.max_bill_amount,
        currency_symbol=app_settings.currency_symbol,
    )

    store = EntityStore(
        storage,
        key_prefix=settings.storage.key_prefix,
        clock=clock,
        validator=validator,
        audit_logger=audit_logger,
    )
    service = LedgerService(store, validator=validator, audit_logger=audit_logger)
    views = LedgerViews(store, tz or resolve_timezone(app_settings.timezone))

    logger.info(
        "ledger_ready",
        environment=app_settings.app_environment,
        storage=type(storage).__name__,
    )
    return PawnLedger(store, service, views, app_settings.timeline_months)
