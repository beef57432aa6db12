"""
Entity Store

Holds the five collections (customers, bills, ornaments, transactions,
accounts) in memory and persists each one as a whole JSON array under its
own key.

GUARANTEES:
- Collections are exposed read-only, in insertion order
- Input is validated before anything is written
- A collection in memory is replaced only after its write succeeded, so a
  failed write leaves the last-known-good state
- Every update of an unknown id raises NotFoundError

NOT GUARANTEED: atomicity across collections. Creating a bill writes the
bills collection, then the transactions collection; a crash in between
leaves a bill without its bill_created entry.
"""

import json
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, TypeVar, Union

import pydantic
import structlog

from pawnbook.audit import AuditLogger
from pawnbook.models.ledger import (
    Account,
    AccountCreate,
    AccountUpdate,
    Bill,
    BillCreate,
    BillUpdate,
    Customer,
    CustomerCreate,
    CustomerUpdate,
    LedgerModel,
    Ornament,
    OrnamentCreate,
    OrnamentUpdate,
    PledgedPlacement,
    Transaction,
    TransactionCreate,
    TransactionType,
    ValidationIssue,
)
from pawnbook.services.storage import (
    KeyValueStorage,
    NotFoundError,
    PersistenceError,
    StorageError,
)
from pawnbook.validation import LedgerValidator, ValidationError


CUSTOMERS = "customers"
BILLS = "bills"
ORNAMENTS = "ornaments"
TRANSACTIONS = "transactions"
ACCOUNTS = "accounts"

COLLECTION_MODELS: dict[str, type[LedgerModel]] = {
    CUSTOMERS: Customer,
    BILLS: Bill,
    ORNAMENTS: Ornament,
    TRANSACTIONS: Transaction,
    ACCOUNTS: Account,
}

M = TypeVar("M", bound=pydantic.BaseModel)
Fields = Union[pydantic.BaseModel, dict[str, Any]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntityStore:
    """
    In-memory collections backed by a key-value medium.

    Construct one per application; it loads every collection immediately.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key_prefix: str = "pawn_",
        clock: Optional[Clock] = None,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._key_prefix = key_prefix
        self._clock = clock or utc_now
        self._validator = validator or LedgerValidator()
        self._audit = audit_logger or AuditLogger()
        self._logger = structlog.get_logger(__name__)
        self._collections: dict[str, tuple] = {name: () for name in COLLECTION_MODELS}
        self.reload()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def customers(self) -> tuple[Customer, ...]:
        return self._collections[CUSTOMERS]

    @property
    def bills(self) -> tuple[Bill, ...]:
        return self._collections[BILLS]

    @property
    def ornaments(self) -> tuple[Ornament, ...]:
        return self._collections[ORNAMENTS]

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._collections[TRANSACTIONS]

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._collections[ACCOUNTS]

    def now(self) -> datetime:
        return self._clock()

    def key_for(self, collection: str) -> str:
        return f"{self._key_prefix}{collection}"

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._find(CUSTOMERS, customer_id)

    def get_bill(self, bill_id: str) -> Optional[Bill]:
        """Look up a bill by its internal id."""
        return self._find(BILLS, bill_id)

    def get_bill_by_number(self, bill_number: str) -> Optional[Bill]:
        """Look up a bill by the number on its receipt (first match)."""
        for bill in self.bills:
            if bill.bill_id == bill_number:
                return bill
        return None

    def get_ornament(self, ornament_id: str) -> Optional[Ornament]:
        return self._find(ORNAMENTS, ornament_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._find(ACCOUNTS, account_id)

    def require_customer(self, customer_id: str) -> Customer:
        return self._require(CUSTOMERS, customer_id)

    def require_bill(self, bill_id: str) -> Bill:
        return self._require(BILLS, bill_id)

    def require_ornament(self, ornament_id: str) -> Ornament:
        return self._require(ORNAMENTS, ornament_id)

    def require_account(self, account_id: str) -> Account:
        return self._require(ACCOUNTS, account_id)

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def reload(self) -> None:
        """
        Re-read every collection from storage.

        Raises:
            PersistenceError: If any collection is unreadable or malformed.
                              The previously loaded state is kept.
        """
        loaded = {
            name: self._load(name, model)
            for name, model in COLLECTION_MODELS.items()
        }
        self._collections = loaded
        self._audit.log_collections_loaded({name: len(records) for name, records in loaded.items()})

    def export_snapshot(self) -> dict[str, list[dict]]:
        """Every collection in its persisted form, keyed by storage key."""
        return {
            self.key_for(name): [self._dump(record) for record in records]
            for name, records in self._collections.items()
        }

    def _load(self, name: str, model: type[LedgerModel]) -> tuple:
        key = self.key_for(name)
        raw = self._storage.read(key)
        if raw is None:
            return ()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Collection {key} is not valid JSON: {e}")

        if not isinstance(data, list):
            raise PersistenceError(
                f"Collection {key} must be a JSON array, got {type(data).__name__}"
            )

        records = []
        for index, item in enumerate(data):
            try:
                records.append(model.model_validate(item))
            except pydantic.ValidationError as e:
                raise PersistenceError(
                    f"Malformed record {index} in {key}: {e.error_count()} error(s)"
                )
        return tuple(records)

    @staticmethod
    def _dump(record: pydantic.BaseModel) -> dict:
        return record.model_dump(mode="json", by_alias=True, exclude_none=True)

    def _commit(self, name: str, records: Sequence) -> None:
        """Write a whole collection, then swap it in memory."""
        key = self.key_for(name)
        payload = json.dumps([self._dump(r) for r in records], ensure_ascii=False)

        try:
            self._storage.write(key, payload)
        except StorageError as e:
            self._audit.log_persistence_failed(name, str(e))
            raise
        except Exception as e:
            self._audit.log_persistence_failed(name, str(e))
            raise PersistenceError(f"Failed to write {key}: {e}") from e

        self._collections[name] = tuple(records)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        """Millisecond timestamp plus a random suffix, unique within one tick."""
        millis = int(self._clock().timestamp() * 1000)
        return f"{millis}-{secrets.token_hex(4)}"

    def _find(self, name: str, record_id: str):
        for record in self._collections[name]:
            if record.id == record_id:
                return record
        return None

    def _index_of(self, name: str, record_id: str) -> int:
        for index, record in enumerate(self._collections[name]):
            if record.id == record_id:
                return index
        raise NotFoundError(f"{name[:-1].capitalize()} not found: {record_id}")

    def _require(self, name: str, record_id: str):
        return self._collections[name][self._index_of(name, record_id)]

    def _replace(self, name: str, index: int, record: LedgerModel) -> None:
        records = list(self._collections[name])
        records[index] = record
        self._commit(name, records)

    @staticmethod
    def _coerce(model: type[M], fields: Fields, context: str) -> M:
        """Schema stage: turn caller input into a validated payload."""
        if isinstance(fields, model):
            return fields
        if isinstance(fields, pydantic.BaseModel):
            fields = fields.model_dump(exclude_unset=True)
        try:
            return model.model_validate(fields)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e, context)

    def _merge(self, record: M, patch: pydantic.BaseModel, context: str) -> M:
        data = record.model_dump()
        data.update(patch.model_dump(exclude_unset=True))
        return self._coerce(type(record), data, context)

    def _enforce(self, issues: list[ValidationIssue], context: str) -> None:
        result = self._validator.enforce(issues, context)
        for warning in result.warnings:
            self._logger.warning("validation_warning", context=context, warning=warning)

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def add_customer(self, fields: Fields) -> Customer:
        """Create a customer; id and createdAt are assigned here."""
        payload = self._coerce(CustomerCreate, fields, "customer")
        customer = self._coerce(
            Customer,
            {**payload.model_dump(), "id": self._new_id(), "created_at": self._clock()},
            "customer",
        )
        self._commit(CUSTOMERS, self.customers + (customer,))
        return customer

    def update_customer(self, customer_id: str, fields: Fields) -> Customer:
        """Merge partial fields into a customer."""
        patch = self._coerce(CustomerUpdate, fields, "customer update")
        index = self._index_of(CUSTOMERS, customer_id)
        updated = self._merge(self.customers[index], patch, "customer")
        self._replace(CUSTOMERS, index, updated)
        return updated

    # ------------------------------------------------------------------
    # Bills
    # ------------------------------------------------------------------

    def add_bill(self, fields: Fields, account_id: Optional[str] = None) -> Bill:
        """
        Create an active bill and its bill_created ledger entry.

        The customer's current name is copied onto the bill unless the
        caller supplies one.

        Raises:
            NotFoundError: Unknown customer or account
            ValidationError: Malformed input
        """
        payload = self._coerce(BillCreate, fields, "bill")
        customer = self.require_customer(payload.customer_id)
        if account_id is not None:
            self.require_account(account_id)

        bill = self._coerce(
            Bill,
            {
                **payload.model_dump(),
                "customer_name": payload.customer_name or customer.name,
                "id": self._new_id(),
                "created_at": self._clock(),
            },
            "bill",
        )
        self._enforce(self._validator.check_bill(bill), "bill")

        self._commit(BILLS, self.bills + (bill,))
        self.add_transaction({
            "bill_id": bill.bill_id,
            "customer_id": bill.customer_id,
            "customer_name": bill.customer_name,
            "type": TransactionType.BILL_CREATED,
            "amount": bill.amount,
            "description": f"Bill {bill.bill_id} created",
            "account_id": account_id,
        })
        return bill

    def update_bill(self, bill_id: str, fields: Fields) -> Bill:
        """
        Merge partial fields into a bill.

        Raises:
            NotFoundError: Unknown bill
            InvalidTransitionError: Status moved backward or skipped a step
            ValidationError: Timestamps out of order, negative sums
        """
        patch = self._coerce(BillUpdate, fields, "bill update")
        index = self._index_of(BILLS, bill_id)
        current = self.bills[index]
        updated = self._merge(current, patch, "bill")
        self._validator.check_transition(current.status, updated.status)
        self._replace(BILLS, index, updated)
        return updated

    # ------------------------------------------------------------------
    # Ornaments
    # ------------------------------------------------------------------

    def add_ornaments(self, items: Sequence[Fields]) -> list[Ornament]:
        """
        Add a batch of ornaments in a single write.

        Raises:
            NotFoundError: An ornament is pledged to an unknown bill number
            ValidationError: Malformed input or net weight above gross
        """
        created = []
        for position, fields in enumerate(items):
            context = f"ornament {position + 1}"
            payload = self._coerce(OrnamentCreate, fields, context)
            self._enforce(self._validator.check_ornament(payload), context)

            placement = payload.placement
            if isinstance(placement, PledgedPlacement):
                if self.get_bill_by_number(placement.bill_id) is None:
                    raise NotFoundError(f"Bill not found: {placement.bill_id}")

            created.append(self._coerce(
                Ornament,
                {**payload.model_dump(), "id": self._new_id()},
                context,
            ))

        if created:
            self._commit(ORNAMENTS, self.ornaments + tuple(created))
        return created

    def update_ornament(self, ornament_id: str, fields: Fields) -> Ornament:
        patch = self._coerce(OrnamentUpdate, fields, "ornament update")
        index = self._index_of(ORNAMENTS, ornament_id)
        updated = self._merge(self.ornaments[index], patch, "ornament")
        self._enforce(self._validator.check_ornament(updated), "ornament")
        self._replace(ORNAMENTS, index, updated)
        return updated

    # ------------------------------------------------------------------
    # Transactions (append-only)
    # ------------------------------------------------------------------

    def add_transaction(self, fields: Fields) -> Transaction:
        """Append a ledger entry; id and date are assigned here."""
        payload = self._coerce(TransactionCreate, fields, "transaction")
        if payload.account_id is not None:
            self.require_account(payload.account_id)

        transaction = self._coerce(
            Transaction,
            {**payload.model_dump(), "id": self._new_id(), "date": self._clock()},
            "transaction",
        )
        self._commit(TRANSACTIONS, self.transactions + (transaction,))
        return transaction

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_account(self, fields: Fields) -> Account:
        """Create an account with a zero opening balance."""
        payload = self._coerce(AccountCreate, fields, "account")
        account = self._coerce(
            Account,
            {
                **payload.model_dump(),
                "id": self._new_id(),
                "balance": 0,
                "created_at": self._clock(),
            },
            "account",
        )
        self._commit(ACCOUNTS, self.accounts + (account,))
        return account

    def update_account(self, account_id: str, fields: Fields) -> Account:
        patch = self._coerce(AccountUpdate, fields, "account update")
        index = self._index_of(ACCOUNTS, account_id)
        updated = self._merge(self.accounts[index], patch, "account")
        self._replace(ACCOUNTS, index, updated)
        return updated
