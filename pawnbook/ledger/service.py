"""
Ledger Service

Defines the operations the counter performs on a bill:
1. Write a bill with its pledged ornaments
2. Take interest or a part payment
3. Release the ornaments back to the customer
4. Clear (close) a released bill

DESIGN DECISION: Each operation updates the bill AND appends the matching
ledger entry. Callers never have to remember to do both. The bill is
written first, then the transaction; there is no atomicity across the two
collections.

Every operation is validated before it touches the store, and every
outcome (success or rejection) is audited.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

import pydantic
import structlog

from pawnbook.audit import AuditLogger, create_correlation_id
from pawnbook.models.ledger import (
    Account,
    Bill,
    BillStatus,
    Customer,
    Ornament,
    OrnamentCreate,
    Transaction,
    TransactionType,
    ValidationIssue,
)
from pawnbook.store import EntityStore
from pawnbook.store.entity_store import Fields
from pawnbook.validation import LedgerValidator, ValidationError


# Fields a bill row copies from a catalog template
TEMPLATE_FIELDS = {"name", "type", "gross_weight", "net_weight", "interest", "image"}


class LedgerService:
    """
    The mutation surface used by the presentation layer.

    Operations take the bill's internal id, raise on any problem, and
    return the updated record.
    """

    def __init__(
        self,
        store: EntityStore,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or LedgerValidator()
        self._audit = audit_logger or AuditLogger()
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> EntityStore:
        return self._store

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def add_customer(self, fields: Fields) -> Customer:
        customer = self._guarded("add_customer", None, self._store.add_customer, fields)
        self._audit.log_customer_added(customer.id, customer.name)
        return customer

    def update_customer(self, customer_id: str, fields: Fields) -> Customer:
        """
        Update a customer's profile.

        Bills and transactions keep the name they were written with.
        """
        customer = self._guarded(
            "update_customer", customer_id, self._store.update_customer, customer_id, fields
        )
        self._audit.log_customer_updated(customer.id, _changed_fields(fields))
        return customer

    # ------------------------------------------------------------------
    # Bill lifecycle
    # ------------------------------------------------------------------

    def create_bill(
        self,
        customer_id: str,
        bill_number: str,
        amount: Any,
        interest_rate: Any,
        ornaments: Sequence[dict[str, Any]] = (),
        account_id: Optional[str] = None,
    ) -> Bill:
        """
        Write a new active bill and pledge its ornaments.

        Args:
            customer_id: Internal id of the customer
            bill_number: Number printed on the paper receipt
            amount: Principal lent
            interest_rate: Monthly interest in percent
            ornaments: Ornament fields; each is pledged to ``bill_number``.
                An item with a ``template_id`` copies that catalog entry,
                and its other keys override the copied fields.
            account_id: Account the loan was paid out from

        Returns:
            The new bill; its bill_created transaction is already recorded
        """
        correlation_id = create_correlation_id()
        placement = {"kind": "pledged", "bill_id": bill_number}
        rows = [self._guarded("create_bill", None, self._from_template, item) for item in ornaments]
        pledged = [{**_without_placement(row), "placement": placement} for row in rows]

        # Reject bad ornaments before the bill is written
        for position, item in enumerate(pledged):
            try:
                self._validator.enforce(
                    self._validator.check_ornament(_ornament_preview(item)),
                    f"ornament {position + 1}",
                )
            except ValidationError as e:
                self._audit.log_validation_failed("create_bill", e.to_dicts())
                raise

        amount_value = self._parse("create_bill", amount, "amount")
        rate_value = self._parse("create_bill", interest_rate, "interest_rate")

        bill = self._guarded(
            "create_bill",
            None,
            self._store.add_bill,
            {
                "bill_id": bill_number,
                "customer_id": customer_id,
                "amount": amount_value,
                "interest_rate": float(rate_value),
            },
            account_id,
        )
        added = self._guarded("create_bill", bill.id, self._store.add_ornaments, pledged)

        self._audit.log_bill_created(
            bill_id=bill.id,
            bill_number=bill.bill_id,
            amount=str(bill.amount),
            customer_name=bill.customer_name,
            ornament_count=len(added),
            correlation_id=correlation_id,
        )
        if added:
            self._audit.log_ornaments_added(
                [o.id for o in added], bill.bill_id, correlation_id
            )
        return bill

    def record_interest_payment(
        self,
        bill_id: str,
        amount: Any,
        account_id: Optional[str] = None,
    ) -> Bill:
        """Add to the bill's interest collected and record interest_paid."""
        return self._record_payment(
            bill_id, amount, account_id,
            kind="interest",
            field="total_interest_paid",
            transaction_type=TransactionType.INTEREST_PAID,
        )

    def record_extra_payment(
        self,
        bill_id: str,
        amount: Any,
        account_id: Optional[str] = None,
    ) -> Bill:
        """Add to the bill's part payments and record extra_amount."""
        return self._record_payment(
            bill_id, amount, account_id,
            kind="extra",
            field="extra_amount_paid",
            transaction_type=TransactionType.EXTRA_AMOUNT,
        )

    def modify_bill(
        self,
        bill_id: str,
        amount: Any = None,
        interest_rate: Any = None,
    ) -> Bill:
        """
        Correct the principal or rate of an active bill.

        Records a bill_modified entry carrying the (new) principal.
        """
        operation = "modify_bill"
        bill = self._guarded(operation, bill_id, self._store.require_bill, bill_id)
        self._check_status(operation, bill, BillStatus.ACTIVE, "modified")

        changes: dict[str, Any] = {}
        if amount is not None:
            changes["amount"] = self._parse(operation, amount, "amount")
        if interest_rate is not None:
            changes["interest_rate"] = float(self._parse(operation, interest_rate, "interest_rate"))
        if not changes:
            return bill

        updated = self._guarded(operation, bill_id, self._store.update_bill, bill_id, changes)
        self._append(
            updated,
            TransactionType.BILL_MODIFIED,
            updated.amount,
            f"Bill #{updated.bill_id} modified",
        )
        self._audit.log_bill_modified(
            updated.id, updated.bill_id, {k: str(v) for k, v in changes.items()}
        )
        return updated

    def release_bill(
        self,
        bill_id: str,
        release_image: Optional[str],
        account_id: Optional[str] = None,
    ) -> Bill:
        """
        Return the ornaments to the customer.

        PRECONDITIONS:
        - The bill is active
        - A photo of the handover is supplied
        """
        operation = "release_bill"
        bill = self._guarded(operation, bill_id, self._store.require_bill, bill_id)
        self._check_status(operation, bill, BillStatus.ACTIVE, "released")
        self._enforce(operation, bill_id, self._validator.check_release(release_image))
        if account_id is not None:
            self._guarded(operation, bill_id, self._store.require_account, account_id)

        changes: dict[str, Any] = {
            "status": BillStatus.RELEASED,
            "released_at": self._store.now(),
            "release_image": release_image,
        }
        if account_id is not None:
            changes["release_account_id"] = account_id

        updated = self._guarded(operation, bill_id, self._store.update_bill, bill_id, changes)
        self._append(
            updated,
            TransactionType.BILL_RELEASED,
            updated.amount,
            f"Bill #{updated.bill_id} released",
            account_id,
        )
        self._audit.log_bill_released(updated.id, updated.bill_id, account_id)
        return updated

    def clear_bill(self, bill_id: str, account_id: Optional[str] = None) -> Bill:
        """Close a released bill."""
        operation = "clear_bill"
        bill = self._guarded(operation, bill_id, self._store.require_bill, bill_id)
        self._check_status(operation, bill, BillStatus.RELEASED, "cleared")
        if account_id is not None:
            self._guarded(operation, bill_id, self._store.require_account, account_id)

        updated = self._guarded(
            operation,
            bill_id,
            self._store.update_bill,
            bill_id,
            {"status": BillStatus.CLEARED, "cleared_at": self._store.now()},
        )
        self._append(
            updated,
            TransactionType.BILL_CLEARED,
            updated.amount,
            f"Bill #{updated.bill_id} cleared",
            account_id,
        )
        self._audit.log_bill_cleared(updated.id, updated.bill_id)
        return updated

    # ------------------------------------------------------------------
    # Ornaments
    # ------------------------------------------------------------------

    def add_ornament_template(self, fields: dict[str, Any]) -> Ornament:
        """Add a reusable catalog entry that is not pledged to any bill."""
        payload = {**_without_placement(fields), "placement": {"kind": "template"}}
        created = self._guarded("add_ornament_template", None, self._store.add_ornaments, [payload])
        template = created[0]
        self._audit.log_ornaments_added([template.id], None)
        return template

    def update_ornament(self, ornament_id: str, fields: Fields) -> Ornament:
        ornament = self._guarded(
            "update_ornament", ornament_id, self._store.update_ornament, ornament_id, fields
        )
        self._audit.log_ornament_updated(ornament.id, _changed_fields(fields))
        return ornament

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_account(self, fields: Fields) -> Account:
        account = self._guarded("add_account", None, self._store.add_account, fields)
        self._audit.log_account_added(account.id, account.name, account.type.value)
        return account

    def update_account(self, account_id: str, fields: Fields) -> Account:
        account = self._guarded(
            "update_account", account_id, self._store.update_account, account_id, fields
        )
        self._audit.log_account_updated(account.id, _changed_fields(fields))
        return account

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _from_template(self, item: dict[str, Any]) -> dict[str, Any]:
        """Prefill an ornament row from a catalog template."""
        if "template_id" not in item:
            return item
        template = self._store.require_ornament(item["template_id"])
        if not template.is_template:
            raise ValidationError(
                f"Ornament {template.id} is pledged, not a catalog template",
                [ValidationIssue(
                    field="template_id",
                    issue_type="invalid_value",
                    message=f"Ornament {template.id} is not a catalog template",
                    severity="error",
                )],
            )
        copied = template.model_dump(include=TEMPLATE_FIELDS, exclude_none=True)
        copied.update((k, v) for k, v in item.items() if k != "template_id")
        return copied

    def _record_payment(
        self,
        bill_id: str,
        amount: Any,
        account_id: Optional[str],
        kind: str,
        field: str,
        transaction_type: TransactionType,
    ) -> Bill:
        operation = f"record_{kind}_payment"
        value = self._parse(operation, amount, "amount")
        self._enforce(operation, bill_id, self._validator.check_payment(value))

        bill = self._guarded(operation, bill_id, self._store.require_bill, bill_id)
        self._check_status(operation, bill, BillStatus.ACTIVE, "paid")
        if account_id is not None:
            self._guarded(operation, bill_id, self._store.require_account, account_id)

        running_total: Decimal = getattr(bill, field) + value
        updated = self._guarded(
            operation, bill_id, self._store.update_bill, bill_id, {field: running_total}
        )

        label = "Interest payment" if kind == "interest" else "Extra amount payment"
        self._append(
            updated,
            transaction_type,
            value,
            f"{label} for Bill #{updated.bill_id}",
            account_id,
        )
        self._audit.log_payment(updated.id, updated.bill_id, kind, str(value), account_id)
        return updated

    def _append(
        self,
        bill: Bill,
        transaction_type: TransactionType,
        amount: Decimal,
        description: str,
        account_id: Optional[str] = None,
    ) -> Transaction:
        return self._store.add_transaction({
            "bill_id": bill.bill_id,
            "customer_id": bill.customer_id,
            "customer_name": bill.customer_name,
            "type": transaction_type,
            "amount": amount,
            "description": description,
            "account_id": account_id,
        })

    def _parse(self, operation: str, value: Any, field: str) -> Decimal:
        try:
            return self._validator.parse_amount(value, field)
        except ValidationError as e:
            self._audit.log_validation_failed(operation, e.to_dicts())
            raise

    def _enforce(self, operation: str, entity_id: Optional[str], issues: list) -> None:
        try:
            result = self._validator.enforce(issues, operation)
        except ValidationError as e:
            self._audit.log_validation_failed(operation, e.to_dicts(), entity_id)
            raise
        for warning in result.warnings:
            self._logger.warning("validation_warning", operation=operation, warning=warning)

    def _check_status(self, operation: str, bill: Bill, required: BillStatus, action: str) -> None:
        try:
            self._validator.check_status(bill, required, action)
        except ValidationError as e:
            self._audit.log_validation_failed(operation, e.to_dicts(), bill.id)
            raise

    def _guarded(self, operation: str, entity_id: Optional[str], func, *args):
        """Run a store call, auditing validation failures before re-raising."""
        try:
            return func(*args)
        except ValidationError as e:
            self._audit.log_validation_failed(operation, e.to_dicts(), entity_id)
            raise


def _changed_fields(fields: Fields) -> list[str]:
    if isinstance(fields, dict):
        return sorted(fields)
    return sorted(fields.model_dump(exclude_unset=True))


def _ornament_preview(item: dict[str, Any]) -> OrnamentCreate:
    """Schema-check one ornament so weight rules can run before any write."""
    try:
        return OrnamentCreate.model_validate(item)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e, "ornament")


def _without_placement(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        k: v for k, v in fields.items()
        if k not in ("placement", "bill_id", "billId")
    }
