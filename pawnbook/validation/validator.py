"""
Two-Stage Validation at the Mutation Boundary

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking, required fields, non-negative money
- NaN / infinity / non-numeric strings rejected
- Done by the pydantic models; failures are converted into our
  ValidationError so callers see one error type

STAGE 2 - SEMANTIC VALIDATION:
- Gross weight at least net weight
- Payments strictly positive
- Release requires a photo of the returned ornaments
- Status moves only forward
- Unusually large loans flagged (warning only)

IMPORTANT: Validation NEVER silently fixes input.
It reports issues and the mutation is rejected before any state changes.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import pydantic

from pawnbook.config import get_settings
from pawnbook.models.ledger import (
    ALLOWED_TRANSITIONS,
    Bill,
    BillStatus,
    OrnamentDetails,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """Input rejected at the mutation boundary."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError, context: str) -> "ValidationError":
        """Convert a pydantic schema failure into a ledger validation error."""
        issues = [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or context,
                issue_type=err["type"],
                message=err["msg"],
                severity="error",
            )
            for err in exc.errors()
        ]
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        return cls(f"Invalid {context}: {summary}", issues)

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


class InvalidTransitionError(ValidationError):
    """A bill status change that the lifecycle does not allow."""
    pass


class LedgerValidator:
    """
    Semantic checks for ledger mutations.

    Each ``check_*`` method returns the issues found; ``enforce`` raises
    if any of them is an error.
    """

    def __init__(
        self,
        max_bill_amount: Optional[float] = None,
        currency_symbol: Optional[str] = None,
    ):
        if max_bill_amount is None or currency_symbol is None:
            app_settings = get_settings().app
            if max_bill_amount is None:
                max_bill_amount = app_settings.max_bill_amount
            if currency_symbol is None:
                currency_symbol = app_settings.currency_symbol
        self._max_bill_amount = Decimal(str(max_bill_amount))
        self._currency = currency_symbol

    def parse_amount(self, value: Any, field: str = "amount") -> Decimal:
        """
        Convert caller input to a finite Decimal.

        Raises:
            ValidationError: For non-numeric, NaN or infinite input
        """
        if isinstance(value, bool):
            value = None
        try:
            amount = Decimal(str(value).strip()) if value is not None else None
        except InvalidOperation:
            amount = None

        if amount is None or not amount.is_finite():
            raise ValidationError(
                f"{field} must be a number, got {value!r}",
                [ValidationIssue(
                    field=field,
                    issue_type="invalid_number",
                    message=f"'{value}' is not a valid amount",
                    severity="error",
                    suggested_fix="Enter digits only, e.g. 2500 or 2500.50",
                )],
            )
        return amount

    def check_bill(self, bill: Bill) -> list[ValidationIssue]:
        issues = []

        if bill.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Bill {bill.bill_id} has a zero loan amount",
                severity="warning",
                suggested_fix="Check the amount written on the receipt",
            ))
        elif bill.amount > self._max_bill_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Loan amount ({self._currency}{bill.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def check_ornament(self, ornament: OrnamentDetails) -> list[ValidationIssue]:
        issues = []

        if not ornament.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Ornament name is required",
                severity="error",
            ))

        if ornament.gross_weight < ornament.net_weight:
            issues.append(ValidationIssue(
                field="net_weight",
                issue_type="inconsistent",
                message=(
                    f"Net weight ({ornament.net_weight} g) cannot exceed "
                    f"gross weight ({ornament.gross_weight} g)"
                ),
                severity="error",
                suggested_fix="Net weight excludes stones and wax, so it is never more than gross",
            ))

        return issues

    def check_payment(self, amount: Decimal, field: str = "amount") -> list[ValidationIssue]:
        if amount <= 0:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Payment amount must be greater than zero",
                severity="error",
            )]
        return []

    def check_release(self, release_image: Optional[str]) -> list[ValidationIssue]:
        if not release_image or not release_image.strip():
            return [ValidationIssue(
                field="release_image",
                issue_type="missing",
                message="A photo of the returned ornaments is required to release a bill",
                severity="error",
                suggested_fix="Take a photo of the customer receiving the ornaments",
            )]
        return []

    def check_transition(self, current: BillStatus, target: BillStatus) -> None:
        """
        Raises:
            InvalidTransitionError: If target is not reachable from current
        """
        if current == target:
            return
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot move bill from {current.value} to {target.value}",
                [ValidationIssue(
                    field="status",
                    issue_type="invalid_transition",
                    message=f"A {current.value} bill cannot become {target.value}",
                    severity="error",
                )],
            )

    def check_status(self, bill: Bill, required: BillStatus, action: str) -> None:
        """Operations like payments and release need the bill in one state."""
        if bill.status != required:
            raise InvalidTransitionError(
                f"Cannot {action} bill {bill.bill_id}: it is {bill.status.value}",
                [ValidationIssue(
                    field="status",
                    issue_type="invalid_state",
                    message=f"Only {required.value} bills can be {action}",
                    severity="error",
                )],
            )

    def enforce(self, issues: list[ValidationIssue], context: str) -> ValidationResult:
        """
        Raise if any issue is an error; otherwise return the result so the
        caller can log warnings.
        """
        result = ValidationResult(issues=issues)
        if result.has_errors:
            errors = [i for i in issues if i.severity == "error"]
            summary = "; ".join(i.message for i in errors)
            raise ValidationError(f"Invalid {context}: {summary}", errors)
        return result

    def get_user_friendly_summary(self, error: ValidationError) -> str:
        """
        Generate a short summary of a rejection for the counter operator.
        """
        lines = ["❌ Could not save:"]
        for issue in error.issues:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
