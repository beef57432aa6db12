"""
Audit Models for PawnBook

Every mutation of the shop's records is logged for audit purposes.
This provides:
1. Complete traceability of who-did-what to each bill
2. Debugging information when a write fails
3. A record of rejected input that never reached the ledger

DESIGN DECISION: Audit events are operational log lines. The financial
history itself lives in the Transaction collection, which is append-only.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutation operation has its own event type.
    """
    # Customers
    CUSTOMER_ADDED = "customer_added"
    CUSTOMER_UPDATED = "customer_updated"

    # Bills
    BILL_CREATED = "bill_created"
    BILL_MODIFIED = "bill_modified"
    INTEREST_RECORDED = "interest_recorded"
    EXTRA_PAYMENT_RECORDED = "extra_payment_recorded"
    BILL_RELEASED = "bill_released"
    BILL_CLEARED = "bill_cleared"

    # Ornaments
    ORNAMENTS_ADDED = "ornaments_added"
    ORNAMENT_UPDATED = "ornament_updated"
    TEMPLATE_ADDED = "template_added"

    # Accounts
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"

    # Store lifecycle
    COLLECTIONS_LOADED = "collections_loaded"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'bill', 'customer', 'account')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., bill + its ornaments)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.bill_created(bill_id, number, amount, customer)
        event = AuditEventBuilder.bill_released(bill_id, number, account_id)
    """

    @staticmethod
    def customer_added(customer_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CUSTOMER_ADDED,
            entity_type="customer",
            entity_id=customer_id,
            description=f"Customer added: {name}",
            details={"name": name},
        )

    @staticmethod
    def customer_updated(customer_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CUSTOMER_UPDATED,
            entity_type="customer",
            entity_id=customer_id,
            description=f"Customer updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def bill_created(
        bill_id: str,
        bill_number: str,
        amount: str,
        customer_name: str,
        ornament_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_CREATED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill {bill_number} created for {customer_name} - ₹{amount}",
            details={
                "bill_number": bill_number,
                "amount": amount,
                "ornament_count": ornament_count,
            },
        )

    @staticmethod
    def bill_modified(bill_id: str, bill_number: str, changes: dict[str, str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_MODIFIED,
            entity_type="bill",
            entity_id=bill_id,
            description=f"Bill {bill_number} modified",
            details={"bill_number": bill_number, "changes": changes},
        )

    @staticmethod
    def payment_recorded(
        bill_id: str,
        bill_number: str,
        kind: str,
        amount: str,
        account_id: Optional[str],
    ) -> AuditEvent:
        event_type = (
            AuditEventType.INTEREST_RECORDED
            if kind == "interest"
            else AuditEventType.EXTRA_PAYMENT_RECORDED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="bill",
            entity_id=bill_id,
            description=f"{kind.capitalize()} payment of ₹{amount} on bill {bill_number}",
            details={
                "bill_number": bill_number,
                "amount": amount,
                "account_id": account_id,
            },
        )

    @staticmethod
    def bill_released(bill_id: str, bill_number: str, account_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_RELEASED,
            entity_type="bill",
            entity_id=bill_id,
            description=f"Bill {bill_number} released",
            details={"bill_number": bill_number, "account_id": account_id},
        )

    @staticmethod
    def bill_cleared(bill_id: str, bill_number: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_CLEARED,
            entity_type="bill",
            entity_id=bill_id,
            description=f"Bill {bill_number} cleared",
            details={"bill_number": bill_number},
        )

    @staticmethod
    def ornaments_added(
        ornament_ids: list[str],
        bill_number: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if bill_number is None:
            return AuditEvent(
                event_type=AuditEventType.TEMPLATE_ADDED,
                entity_type="ornament",
                entity_id=ornament_ids[0] if ornament_ids else None,
                correlation_id=correlation_id,
                description="Ornament template added to catalog",
                details={"ornament_ids": ornament_ids},
            )
        return AuditEvent(
            event_type=AuditEventType.ORNAMENTS_ADDED,
            entity_type="ornament",
            correlation_id=correlation_id,
            description=f"{len(ornament_ids)} ornament(s) pledged on bill {bill_number}",
            details={"ornament_ids": ornament_ids, "bill_number": bill_number},
        )

    @staticmethod
    def ornament_updated(ornament_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORNAMENT_UPDATED,
            entity_type="ornament",
            entity_id=ornament_id,
            description=f"Ornament updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def account_added(account_id: str, name: str, account_type: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ADDED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account added: {name} ({account_type})",
            details={"name": name, "type": account_type},
        )

    @staticmethod
    def account_updated(account_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        entity_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_id=entity_id,
            description=f"{operation} rejected with {len(issues)} issue(s)",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def persistence_failed(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Could not write {collection}",
            error_message=error_message,
            details={"collection": collection},
        )

    @staticmethod
    def collections_loaded(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTIONS_LOADED,
            severity=AuditSeverity.DEBUG,
            description="Collections loaded from storage",
            details=counts,
        )
