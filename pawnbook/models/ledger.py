"""
Core Data Models for PawnBook

These models define the schemas for every record the shop keeps:
customers, bills, pledged ornaments, cash/bank accounts and the
transaction ledger. They are designed to:
1. Reject malformed financial input (NaN, negatives, non-numbers)
2. Round-trip through the persisted JSON collections without field loss
3. Load records written by earlier versions of the shop software

DESIGN DECISION: Persisted field names are camelCase (``phoneNumber``,
``totalInterestPaid``) so existing collections load unchanged. Python code
always uses the snake_case attribute names.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# Marker used by older records for catalog ornaments not tied to a bill.
# Some records leave billId empty instead.
TEMPLATE_BILL_ID = "TEMPLATE"


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps in old collections were written in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _money_to_json(value: Decimal) -> Union[int, float]:
    """Money is persisted as a plain JSON number, never a string."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]
Balance = Annotated[Decimal, PlainSerializer(_money_to_json, when_used="json")]
Money = Annotated[Balance, Field(ge=0)]
Weight = Annotated[float, Field(ge=0, allow_inf_nan=False)]
Percent = Annotated[float, Field(ge=0, allow_inf_nan=False)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillStatus(str, Enum):
    """
    Lifecycle of a pawn bill.

    CRITICAL: Status only moves forward: active -> released -> cleared.
    """
    ACTIVE = "active"        # Ornaments are with the shop
    RELEASED = "released"    # Ornaments returned to the customer
    CLEARED = "cleared"      # Account closed


ALLOWED_TRANSITIONS: dict[BillStatus, frozenset[BillStatus]] = {
    BillStatus.ACTIVE: frozenset({BillStatus.RELEASED}),
    BillStatus.RELEASED: frozenset({BillStatus.CLEARED}),
    BillStatus.CLEARED: frozenset(),
}


class MetalType(str, Enum):
    """Metal of a pledged ornament."""
    GOLD = "gold"
    SILVER = "silver"


class AccountType(str, Enum):
    """Where the shop keeps its money."""
    CASH = "cash"
    BANK = "bank"


class TransactionType(str, Enum):
    """Financial events recorded in the ledger."""
    BILL_CREATED = "bill_created"
    INTEREST_PAID = "interest_paid"
    EXTRA_AMOUNT = "extra_amount"
    BILL_MODIFIED = "bill_modified"
    BILL_RELEASED = "bill_released"
    BILL_CLEARED = "bill_cleared"


# Sign of each transaction type on the cash position of a linked account.
# Loans go out of the drawer; interest, part payments and redemptions come in.
CASH_FLOW_DIRECTION: dict[TransactionType, int] = {
    TransactionType.BILL_CREATED: -1,
    TransactionType.INTEREST_PAID: 1,
    TransactionType.EXTRA_AMOUNT: 1,
    TransactionType.BILL_RELEASED: 1,
    TransactionType.BILL_MODIFIED: 0,
    TransactionType.BILL_CLEARED: 0,
}


class LedgerModel(BaseModel):
    """Base for every persisted record and every mutation payload."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class LedgerInput(LedgerModel):
    """Base for mutation payloads: unknown fields are an error, not ignored."""
    model_config = ConfigDict(extra="forbid")


# =============================================================================
# CUSTOMER
# =============================================================================

class CustomerProfile(LedgerModel):
    """Identity and contact details of a customer."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Customer name"
    )
    village: str = Field(..., max_length=200)
    phone_number: str = Field(..., max_length=20)
    father_husband_name: str = Field(
        ...,
        max_length=200,
        description="Father's or husband's name"
    )
    father_husband_village: str = Field(..., max_length=200)
    image: Optional[str] = Field(
        default=None,
        description="Opaque reference to the customer photo"
    )
    description: Optional[str] = Field(default=None, max_length=1000)
    email: Optional[str] = Field(default=None, max_length=200)
    id_proof_type: Optional[str] = Field(default=None, max_length=50)
    id_proof_num: Optional[str] = Field(default=None, max_length=50)
    id_proof_image: Optional[str] = None


class Customer(CustomerProfile):
    """A customer as stored. Never deleted."""

    id: str
    created_at: Timestamp


class CustomerCreate(CustomerProfile, LedgerInput):
    pass


class CustomerUpdate(LedgerInput):
    name: Optional[str] = None
    village: Optional[str] = None
    phone_number: Optional[str] = None
    father_husband_name: Optional[str] = None
    father_husband_village: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    id_proof_type: Optional[str] = None
    id_proof_num: Optional[str] = None
    id_proof_image: Optional[str] = None


# =============================================================================
# BILL
# =============================================================================

class Bill(LedgerModel):
    """
    A loan against pledged ornaments.

    ``customer_name`` is a snapshot taken when the bill was written.
    Renaming the customer later does NOT rewrite historical bills; the
    bill keeps the name the customer had when the pledge was made.
    """

    id: str = Field(..., description="Internal identifier")
    bill_id: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Bill number written on the paper receipt"
    )
    customer_id: str
    customer_name: str
    amount: Money = Field(..., description="Principal lent")
    interest_rate: Percent = Field(..., description="Monthly interest in percent")
    status: BillStatus = BillStatus.ACTIVE
    created_at: Timestamp
    released_at: Optional[Timestamp] = None
    cleared_at: Optional[Timestamp] = None
    release_image: Optional[str] = None
    total_interest_paid: Money = Decimal("0")
    extra_amount_paid: Money = Decimal("0")
    release_account_id: Optional[str] = None

    @property
    def total_due(self) -> Decimal:
        """Principal plus interest collected, less part payments."""
        return self.amount + self.total_interest_paid - self.extra_amount_paid

    @model_validator(mode='after')
    def validate_dates(self) -> 'Bill':
        """Lifecycle timestamps must be in order."""
        if self.released_at and self.released_at < self.created_at:
            raise ValueError("Release date cannot be before bill creation")

        if self.cleared_at:
            floor = self.released_at or self.created_at
            if self.cleared_at < floor:
                raise ValueError("Clear date cannot be before release")

        return self


class BillCreate(LedgerInput):
    bill_id: str = Field(..., min_length=1, max_length=50)
    customer_id: str = Field(..., min_length=1)
    customer_name: Optional[str] = Field(
        default=None,
        description="Filled from the customer record when omitted"
    )
    amount: Money
    interest_rate: Percent
    status: BillStatus = BillStatus.ACTIVE

    @field_validator('status')
    @classmethod
    def only_active(cls, v: BillStatus) -> BillStatus:
        """Bills are always written as active."""
        if v != BillStatus.ACTIVE:
            raise ValueError("A new bill must start in the active state")
        return v


class BillUpdate(LedgerInput):
    amount: Optional[Money] = None
    interest_rate: Optional[Percent] = None
    status: Optional[BillStatus] = None
    released_at: Optional[Timestamp] = None
    cleared_at: Optional[Timestamp] = None
    release_image: Optional[str] = None
    total_interest_paid: Optional[Money] = None
    extra_amount_paid: Optional[Money] = None
    release_account_id: Optional[str] = None


# =============================================================================
# ORNAMENT
# =============================================================================

class PledgedPlacement(LedgerModel):
    """The ornament is pledged against a bill."""
    kind: Literal["pledged"] = "pledged"
    bill_id: str = Field(..., min_length=1, description="Bill number")


class TemplatePlacement(LedgerModel):
    """The ornament is a reusable catalog entry, not a real pledge."""
    kind: Literal["template"] = "template"


Placement = Annotated[
    Union[PledgedPlacement, TemplatePlacement],
    Field(discriminator="kind"),
]


def _placement_from_legacy(data: Any) -> Any:
    """Translate the flat ``billId`` of older records into a placement."""
    if not isinstance(data, dict) or "placement" in data:
        return data
    legacy = data.get("billId", data.get("bill_id"))
    if legacy is None:
        return data
    data = {k: v for k, v in data.items() if k not in ("billId", "bill_id")}
    if legacy in ("", TEMPLATE_BILL_ID):
        data["placement"] = {"kind": "template"}
    else:
        data["placement"] = {"kind": "pledged", "billId": legacy}
    return data


class OrnamentDetails(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Optional[MetalType] = None
    gross_weight: Weight = Field(..., description="Weight in grams")
    net_weight: Weight = Field(..., description="Weight in grams")
    interest: Percent
    image: Optional[str] = None


class Ornament(OrnamentDetails):
    """A pledged item, or a catalog template."""

    id: str
    placement: Placement

    @model_validator(mode='before')
    @classmethod
    def accept_legacy_bill_id(cls, data: Any) -> Any:
        return _placement_from_legacy(data)

    @property
    def is_template(self) -> bool:
        return isinstance(self.placement, TemplatePlacement)

    @property
    def pledged_bill_id(self) -> Optional[str]:
        """Bill number this ornament is pledged to, None for templates."""
        if isinstance(self.placement, PledgedPlacement):
            return self.placement.bill_id
        return None


class OrnamentCreate(OrnamentDetails, LedgerInput):
    placement: Placement

    @model_validator(mode='before')
    @classmethod
    def accept_legacy_bill_id(cls, data: Any) -> Any:
        return _placement_from_legacy(data)


class OrnamentUpdate(LedgerInput):
    name: Optional[str] = None
    type: Optional[MetalType] = None
    gross_weight: Optional[Weight] = None
    net_weight: Optional[Weight] = None
    interest: Optional[Percent] = None
    image: Optional[str] = None


# =============================================================================
# ACCOUNT
# =============================================================================

class Account(LedgerModel):
    """
    A cash drawer or bank account.

    ``balance`` is the opening balance. The running position is derived
    from linked transactions by the balance query.
    """

    id: str
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    balance: Balance = Decimal("0")
    created_at: Timestamp


class AccountCreate(LedgerInput):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType


class AccountUpdate(LedgerInput):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    balance: Optional[Balance] = None


# =============================================================================
# TRANSACTION
# =============================================================================

class TransactionDetails(LedgerModel):
    bill_id: str = Field(..., description="Bill number the event belongs to")
    customer_id: str
    customer_name: str = Field(..., description="Snapshot at the time of the event")
    type: TransactionType
    amount: Money
    description: str = Field(default="", max_length=500)
    account_id: Optional[str] = None


class Transaction(TransactionDetails):
    """
    An immutable ledger entry.

    CRITICAL: Transactions are append-only. Every report is derived by
    filtering this collection.
    """

    id: str
    date: Timestamp


class TransactionCreate(TransactionDetails, LedgerInput):
    pass


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (business rules)
    """

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors
