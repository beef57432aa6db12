"""
Tests for PawnBook

Test strategy:
1. Unit tests for individual components (models, validators, storage)
2. Integration tests for the ledger flows over in-memory storage
3. No files outside pytest's tmp_path, no real clock
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pydantic import ValidationError as SchemaError

from pawnbook.models.ledger import (
    Account,
    Bill,
    BillCreate,
    BillStatus,
    Customer,
    CustomerCreate,
    MetalType,
    Ornament,
    OrnamentCreate,
    PledgedPlacement,
    TemplatePlacement,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from pawnbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


NOW = datetime(2025, 3, 10, 4, 30, tzinfo=timezone.utc)


def make_bill(**overrides) -> Bill:
    data = {
        "id": "1741581000000-ab12cd34",
        "bill_id": "101",
        "customer_id": "c1",
        "customer_name": "Asha",
        "amount": Decimal("10000"),
        "interest_rate": 2,
        "created_at": NOW,
    }
    data.update(overrides)
    return Bill(**data)


class TestCustomerModels:
    """Tests for customer models."""

    def test_customer_create_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        customer = CustomerCreate(
            name="  Asha  ",
            village="Rampur",
            phone_number="9876543210",
            father_husband_name="Mohan",
            father_husband_village="Rampur",
        )
        assert customer.name == "Asha"

    def test_customer_create_rejects_unknown_fields(self):
        """Test that a typo in a field name is an error, not ignored."""
        with pytest.raises(SchemaError):
            CustomerCreate(
                name="Asha",
                village="Rampur",
                phone_number="1",
                father_husband_name="Mohan",
                father_husband_village="Rampur",
                vilage="typo",
            )

    def test_customer_loads_camel_case_record(self):
        """Test that a persisted record with camelCase keys loads."""
        customer = Customer.model_validate({
            "id": "c1",
            "name": "Asha",
            "village": "Rampur",
            "phoneNumber": "9876543210",
            "fatherHusbandName": "Mohan",
            "fatherHusbandVillage": "Rampur",
            "createdAt": "2025-03-10T04:30:00.000Z",
        })
        assert customer.phone_number == "9876543210"
        assert customer.created_at == NOW
        assert customer.email is None


class TestBillModels:
    """Tests for bill models."""

    def test_total_due(self):
        """Test principal plus interest less part payments."""
        bill = make_bill(
            total_interest_paid=Decimal("200"),
            extra_amount_paid=Decimal("1000"),
        )
        assert bill.total_due == Decimal("9200")

    def test_bill_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(SchemaError):
            make_bill(amount=Decimal("-100"))

    def test_bill_rejects_nan_rate(self):
        """Test that NaN interest is rejected."""
        with pytest.raises(SchemaError):
            make_bill(interest_rate=float("nan"))

    def test_bill_release_before_creation(self):
        """Test that lifecycle timestamps must be in order."""
        with pytest.raises(SchemaError):
            make_bill(
                status=BillStatus.RELEASED,
                released_at=NOW - timedelta(days=1),
            )

    def test_naive_timestamps_read_as_utc(self):
        """Test that naive timestamps from old records are treated as UTC."""
        bill = make_bill(created_at=datetime(2025, 3, 10, 4, 30))
        assert bill.created_at == NOW
        assert bill.created_at.tzinfo is not None

    def test_bill_create_must_be_active(self):
        """Test that a new bill cannot start released."""
        with pytest.raises(SchemaError):
            BillCreate(
                bill_id="101",
                customer_id="c1",
                amount=Decimal("100"),
                interest_rate=2,
                status=BillStatus.RELEASED,
            )

    def test_bill_dump_is_camel_case(self):
        """Test that the persisted form uses camelCase and string money."""
        dumped = make_bill().model_dump(mode="json", by_alias=True, exclude_none=True)
        assert dumped["billId"] == "101"
        assert dumped["totalInterestPaid"] == "0"
        assert "releasedAt" not in dumped


class TestOrnamentModels:
    """Tests for ornament placement."""

    def test_legacy_bill_id_becomes_pledged_placement(self):
        """Test that a flat billId loads as a pledge."""
        ornament = Ornament.model_validate({
            "id": "o1",
            "billId": "101",
            "name": "Ring",
            "type": "gold",
            "grossWeight": 5.2,
            "netWeight": 4.8,
            "interest": 2,
        })
        assert isinstance(ornament.placement, PledgedPlacement)
        assert ornament.pledged_bill_id == "101"
        assert ornament.is_template is False

    def test_legacy_template_sentinel(self):
        """Test that the TEMPLATE marker loads as a catalog entry."""
        ornament = Ornament.model_validate({
            "id": "o2",
            "billId": "TEMPLATE",
            "name": "Chain",
            "grossWeight": 0,
            "netWeight": 0,
            "interest": 0,
        })
        assert isinstance(ornament.placement, TemplatePlacement)
        assert ornament.is_template is True
        assert ornament.pledged_bill_id is None

    def test_ornament_create_with_placement(self):
        """Test explicit placement on input."""
        ornament = OrnamentCreate(
            name="Ring",
            type=MetalType.GOLD,
            gross_weight=5.2,
            net_weight=4.8,
            interest=2,
            placement={"kind": "pledged", "bill_id": "101"},
        )
        assert ornament.placement.bill_id == "101"

    def test_ornament_rejects_unknown_placement(self):
        """Test that the placement kind is checked."""
        with pytest.raises(SchemaError):
            OrnamentCreate(
                name="Ring",
                gross_weight=1,
                net_weight=1,
                interest=0,
                placement={"kind": "lost"},
            )


class TestTransactionModels:
    """Tests for ledger entries and accounts."""

    def test_transaction_type_values(self):
        """Test the persisted type strings."""
        expected = [
            "bill_created", "interest_paid", "extra_amount",
            "bill_modified", "bill_released", "bill_cleared",
        ]
        for value in expected:
            assert TransactionType(value) is not None

    def test_transaction_rejects_unknown_type(self):
        """Test that an unknown transaction type is rejected."""
        with pytest.raises(SchemaError):
            Transaction(
                id="t1",
                bill_id="101",
                customer_id="c1",
                customer_name="Asha",
                type="gift",
                amount=Decimal("1"),
                date=NOW,
            )

    def test_account_defaults_to_zero_balance(self):
        """Test that accounts open at zero."""
        account = Account(id="a1", name="Cash", type="cash", created_at=NOW)
        assert account.balance == Decimal("0")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CUSTOMER_ADDED,
            description="Customer added",
        )
        assert event.event_type == AuditEventType.CUSTOMER_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.bill_created(
            bill_id="b1",
            bill_number="101",
            amount="10000",
            customer_name="Asha",
            ornament_count=1,
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "bill_created"
        assert log_dict["entity_id"] == "b1"
        assert log_dict["details"]["bill_number"] == "101"

    def test_payment_builder_picks_event_type(self):
        """Test that interest and extra payments are told apart."""
        interest = AuditEventBuilder.payment_recorded("b1", "101", "interest", "200", None)
        extra = AuditEventBuilder.payment_recorded("b1", "101", "extra", "500", "a1")
        assert interest.event_type == AuditEventType.INTEREST_RECORDED
        assert extra.event_type == AuditEventType.EXTRA_PAYMENT_RECORDED
        assert extra.details["account_id"] == "a1"

    def test_template_builder(self):
        """Test that catalog entries get their own event type."""
        event = AuditEventBuilder.ornaments_added(["o1"], None)
        assert event.event_type == AuditEventType.TEMPLATE_ADDED
        assert event.entity_id == "o1"

    def test_failure_severities(self):
        """Test that failures are logged above info."""
        rejected = AuditEventBuilder.validation_failed("create_bill", [{"field": "amount"}])
        failed = AuditEventBuilder.persistence_failed("bills", "disk full")
        assert rejected.severity == AuditSeverity.WARNING
        assert failed.severity == AuditSeverity.ERROR
        assert failed.error_message == "disk full"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="Loan amount seems unusually high",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Loan amount seems unusually high"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
