"""
Audit Logger

DESIGN DECISION: Every mutation of the shop's records is logged.
This provides:
1. Complete traceability of each bill's lifecycle
2. Debugging capability when a write fails
3. A trail of input that was rejected

The audit logger:
- Writes structured JSON lines through structlog
- Gracefully handles failures (never breaks the mutation that called it)
- Supports correlation IDs to tie a bill to the ornaments written with it
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from pawnbook.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Route structlog output through the stdlib root logger."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service.

    One instance is owned by the application root and shared by the
    store and the ledger service.
    """

    def __init__(self, logger: Optional[Any] = None):
        """
        Initialize audit logger.

        Args:
            logger: structlog-compatible logger. Defaults to the
                    ``pawnbook.audit`` logger.
        """
        self._logger = logger or structlog.get_logger("pawnbook.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the logging backend failed; never raises.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    def log_customer_added(self, customer_id: str, name: str) -> None:
        self.log(AuditEventBuilder.customer_added(customer_id, name))

    def log_customer_updated(self, customer_id: str, fields: list[str]) -> None:
        self.log(AuditEventBuilder.customer_updated(customer_id, fields))

    def log_bill_created(
        self,
        bill_id: str,
        bill_number: str,
        amount: str,
        customer_name: str,
        ornament_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill creation."""
        self.log(AuditEventBuilder.bill_created(
            bill_id=bill_id,
            bill_number=bill_number,
            amount=amount,
            customer_name=customer_name,
            ornament_count=ornament_count,
            correlation_id=correlation_id,
        ))

    def log_bill_modified(self, bill_id: str, bill_number: str, changes: dict[str, str]) -> None:
        self.log(AuditEventBuilder.bill_modified(bill_id, bill_number, changes))

    def log_payment(
        self,
        bill_id: str,
        bill_number: str,
        kind: str,
        amount: str,
        account_id: Optional[str],
    ) -> None:
        """Log an interest or extra payment."""
        self.log(AuditEventBuilder.payment_recorded(
            bill_id=bill_id,
            bill_number=bill_number,
            kind=kind,
            amount=amount,
            account_id=account_id,
        ))

    def log_bill_released(self, bill_id: str, bill_number: str, account_id: Optional[str]) -> None:
        self.log(AuditEventBuilder.bill_released(bill_id, bill_number, account_id))

    def log_bill_cleared(self, bill_id: str, bill_number: str) -> None:
        self.log(AuditEventBuilder.bill_cleared(bill_id, bill_number))

    def log_ornaments_added(
        self,
        ornament_ids: list[str],
        bill_number: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ornaments_added(ornament_ids, bill_number, correlation_id))

    def log_ornament_updated(self, ornament_id: str, fields: list[str]) -> None:
        self.log(AuditEventBuilder.ornament_updated(ornament_id, fields))

    def log_account_added(self, account_id: str, name: str, account_type: str) -> None:
        self.log(AuditEventBuilder.account_added(account_id, name, account_type))

    def log_account_updated(self, account_id: str, fields: list[str]) -> None:
        self.log(AuditEventBuilder.account_updated(account_id, fields))

    def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        entity_id: Optional[str] = None,
    ) -> None:
        """Log a rejected mutation."""
        self.log(AuditEventBuilder.validation_failed(operation, issues, entity_id))

    def log_persistence_failed(self, collection: str, error_message: str) -> None:
        self.log(AuditEventBuilder.persistence_failed(collection, error_message))

    def log_collections_loaded(self, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.collections_loaded(counts))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a compound action (e.g., writing a bill with
    its ornaments) and pass it to every event of that action.
    """
    return uuid4()
