"""Tests for the bill lifecycle operations."""

from decimal import Decimal

import pytest

from pawnbook.models.ledger import BillStatus, TransactionType
from pawnbook.services.storage import NotFoundError, PersistenceError
from pawnbook.validation import InvalidTransitionError, ValidationError

from conftest import ANKLET, CUSTOMER_FIELDS, RING


def types_of(store):
    return [t.type for t in store.transactions]


class TestCreateBill:
    """Tests for writing a bill with its ornaments."""

    def test_create_bill_with_ornaments(self, service, store, customer):
        """Test the bill, its pledge and its ledger entry."""
        bill = service.create_bill(customer.id, "101", 10000, 2, [RING, ANKLET])

        assert bill.status == BillStatus.ACTIVE
        assert bill.customer_name == "Asha"
        assert bill.amount == Decimal("10000")
        assert [o.pledged_bill_id for o in store.ornaments] == ["101", "101"]
        assert types_of(store) == [TransactionType.BILL_CREATED]
        assert store.transactions[0].description == "Bill 101 created"

    def test_create_bill_links_account(self, service, store, customer, cash_account):
        """Test that the loan's payout account is recorded."""
        service.create_bill(customer.id, "101", 5000, 2, [], account_id=cash_account.id)
        assert store.transactions[0].account_id == cash_account.id

    def test_create_bill_bad_ornament_writes_nothing(self, service, store, customer):
        """Test that ornaments are checked before the bill is written."""
        bad = {**RING, "gross_weight": 1, "net_weight": 2}
        with pytest.raises(ValidationError):
            service.create_bill(customer.id, "101", 10000, 2, [RING, bad])
        assert store.bills == ()
        assert store.transactions == ()

    @pytest.mark.parametrize("amount", ["abc", "NaN", float("inf"), None, True])
    def test_create_bill_rejects_non_numbers(self, service, store, customer, amount):
        """Test that non-numeric amounts never reach the ledger."""
        with pytest.raises(ValidationError):
            service.create_bill(customer.id, "101", amount, 2)
        assert store.bills == ()

    def test_create_bill_rejects_negative_amount(self, service, store, customer):
        """Test that negative money is rejected."""
        with pytest.raises(ValidationError):
            service.create_bill(customer.id, "101", -5, 2)
        assert store.bills == ()

    def test_create_bill_unknown_customer(self, service):
        """Test that a bill needs an existing customer."""
        with pytest.raises(NotFoundError):
            service.create_bill("nobody", "101", 1000, 2)

    def test_create_bill_caller_placement_ignored(self, service, store, customer):
        """Test that ornaments always pledge to the new bill."""
        stray = {**RING, "bill_id": "999"}
        service.create_bill(customer.id, "101", 10000, 2, [stray])
        assert store.ornaments[0].pledged_bill_id == "101"

    def test_create_bill_from_template(self, service, store, customer):
        """Test that a catalog entry prefills a pledged ornament."""
        template = service.add_ornament_template({**RING, "name": "Bangle"})
        service.create_bill(
            customer.id, "101", 10000, 2, [{"template_id": template.id, "net_weight": 4}]
        )

        pledged = store.ornaments[-1]
        assert pledged.id != template.id
        assert pledged.name == "Bangle"
        assert pledged.gross_weight == 5.2
        assert pledged.net_weight == 4
        assert pledged.pledged_bill_id == "101"
        assert store.get_ornament(template.id).is_template is True

    def test_create_bill_unknown_template(self, service, store, customer):
        """Test that a missing template writes nothing."""
        with pytest.raises(NotFoundError):
            service.create_bill(customer.id, "101", 10000, 2, [{"template_id": "nope"}])
        assert store.bills == ()

    def test_create_bill_pledged_ornament_is_not_a_template(self, service, store, bill):
        """Test that only catalog entries can prefill a row."""
        pledged = store.ornaments[0]
        with pytest.raises(ValidationError):
            service.create_bill(
                bill.customer_id, "102", 10000, 2, [{"template_id": pledged.id}]
            )
        assert [b.bill_id for b in store.bills] == ["101"]


class TestPayments:
    """Tests for interest and part payments."""

    def test_interest_payment(self, service, store, bill, cash_account):
        """Test that interest raises the amount due."""
        updated = service.record_interest_payment(bill.id, 200, cash_account.id)

        assert updated.total_interest_paid == Decimal("200")
        assert updated.total_due == Decimal("10200")
        payment = store.transactions[-1]
        assert payment.type == TransactionType.INTEREST_PAID
        assert payment.amount == Decimal("200")
        assert payment.bill_id == "101"
        assert payment.account_id == cash_account.id
        assert payment.description == "Interest payment for Bill #101"

    def test_payments_accumulate(self, service, bill):
        """Test running sums across several payments."""
        service.record_interest_payment(bill.id, "150.50")
        service.record_interest_payment(bill.id, 49.5)
        updated = service.record_extra_payment(bill.id, 1000)

        assert updated.total_interest_paid == Decimal("200.00")
        assert updated.extra_amount_paid == Decimal("1000")
        assert updated.total_due == Decimal("9200.00")

    def test_extra_payment_entry(self, service, store, bill):
        """Test the part payment ledger entry."""
        service.record_extra_payment(bill.id, 500)
        payment = store.transactions[-1]
        assert payment.type == TransactionType.EXTRA_AMOUNT
        assert payment.description == "Extra amount payment for Bill #101"

    @pytest.mark.parametrize("amount", [0, -10, "NaN", "twenty"])
    def test_payment_rejects_bad_amounts(self, service, store, bill, amount):
        """Test that only positive numbers are accepted."""
        before = store.transactions
        with pytest.raises(ValidationError):
            service.record_interest_payment(bill.id, amount)
        assert store.transactions == before
        assert store.get_bill(bill.id).total_interest_paid == Decimal("0")

    def test_payment_on_released_bill(self, service, bill):
        """Test that a returned pledge takes no more payments."""
        service.release_bill(bill.id, "photo-1")
        with pytest.raises(InvalidTransitionError):
            service.record_interest_payment(bill.id, 100)

    def test_payment_unknown_bill(self, service):
        """Test NotFoundError for a missing bill."""
        with pytest.raises(NotFoundError):
            service.record_extra_payment("missing", 100)


class TestLifecycle:
    """Tests for modify, release and clear."""

    def test_full_lifecycle(self, service, store, clock, customer, cash_account):
        """Test a loan from the counter to closing."""
        bill = service.create_bill(customer.id, "101", 10000, 2, [RING])
        clock.advance(days=30)
        service.record_interest_payment(bill.id, 200)
        release_time = clock.advance(days=30)
        released = service.release_bill(bill.id, "photo-1", cash_account.id)
        clock.advance(days=1)
        cleared = service.clear_bill(bill.id)

        assert released.status == BillStatus.RELEASED
        assert released.release_image == "photo-1"
        assert released.release_account_id == cash_account.id
        assert released.released_at == release_time
        assert cleared.status == BillStatus.CLEARED
        assert cleared.cleared_at == clock()
        assert types_of(store) == [
            TransactionType.BILL_CREATED,
            TransactionType.INTEREST_PAID,
            TransactionType.BILL_RELEASED,
            TransactionType.BILL_CLEARED,
        ]
        release_entry = store.transactions[2]
        assert release_entry.amount == Decimal("10000")
        assert release_entry.description == "Bill #101 released"
        assert store.transactions[3].description == "Bill #101 cleared"

    def test_release_requires_image(self, service, store, bill):
        """Test that release needs a photo of the handover."""
        with pytest.raises(ValidationError):
            service.release_bill(bill.id, "")
        with pytest.raises(ValidationError):
            service.release_bill(bill.id, None)
        assert store.get_bill(bill.id).status == BillStatus.ACTIVE

    def test_release_twice(self, service, bill):
        """Test that a bill is released only once."""
        service.release_bill(bill.id, "photo-1")
        with pytest.raises(InvalidTransitionError):
            service.release_bill(bill.id, "photo-2")

    def test_clear_requires_release(self, service, store, bill):
        """Test that an active bill cannot be cleared."""
        with pytest.raises(InvalidTransitionError):
            service.clear_bill(bill.id)
        assert store.get_bill(bill.id).status == BillStatus.ACTIVE

    def test_release_unknown_account(self, service, store, bill):
        """Test that release rejects a missing account before writing."""
        with pytest.raises(NotFoundError):
            service.release_bill(bill.id, "photo-1", "missing")
        assert store.get_bill(bill.id).status == BillStatus.ACTIVE

    def test_modify_bill(self, service, store, bill):
        """Test correcting the principal of an active bill."""
        updated = service.modify_bill(bill.id, amount=12000)
        assert updated.amount == Decimal("12000")
        assert updated.interest_rate == 2
        entry = store.transactions[-1]
        assert entry.type == TransactionType.BILL_MODIFIED
        assert entry.amount == Decimal("12000")

    def test_modify_without_changes(self, service, store, bill):
        """Test that an empty modification records nothing."""
        before = store.transactions
        assert service.modify_bill(bill.id) == bill
        assert store.transactions == before

    def test_modify_released_bill(self, service, bill):
        """Test that only active bills can be modified."""
        service.release_bill(bill.id, "photo-1")
        with pytest.raises(InvalidTransitionError):
            service.modify_bill(bill.id, interest_rate=3)

    def test_bill_write_failure_records_nothing(self, service, store, storage, bill):
        """Test that a failed bill write leaves bill and ledger unchanged."""
        original_write = storage.write

        def refuse_bills(key, payload):
            if key == "pawn_bills":
                raise PersistenceError("disk full")
            original_write(key, payload)

        storage.write = refuse_bills
        before = store.transactions
        with pytest.raises(PersistenceError):
            service.record_interest_payment(bill.id, 200)
        assert store.get_bill(bill.id).total_interest_paid == Decimal("0")
        assert store.transactions == before


class TestCatalogAndProfiles:
    """Tests for templates, customers and accounts through the service."""

    def test_add_ornament_template(self, service, store):
        """Test that a template is not pledged to anything."""
        template = service.add_ornament_template({**RING, "bill_id": "TEMPLATE"})
        assert template.is_template is True
        assert template.pledged_bill_id is None
        assert store.ornaments == (template,)

    def test_update_ornament(self, service, store, bill):
        """Test editing a pledged ornament."""
        ornament = store.ornaments[0]
        updated = service.update_ornament(ornament.id, {"net_weight": 4.5})
        assert updated.net_weight == 4.5
        assert updated.pledged_bill_id == "101"

    def test_update_ornament_weight_rule(self, service, store, bill):
        """Test that an edit cannot make net exceed gross."""
        ornament = store.ornaments[0]
        with pytest.raises(ValidationError):
            service.update_ornament(ornament.id, {"net_weight": 9})
        assert store.ornaments[0].net_weight == ornament.net_weight

    def test_customer_rename_keeps_history(self, service, store, customer, bill):
        """Test that old bills and entries keep the old name."""
        service.update_customer(customer.id, {"name": "Asha Devi"})
        service.record_interest_payment(bill.id, 100)

        assert store.get_customer(customer.id).name == "Asha Devi"
        assert store.get_bill(bill.id).customer_name == "Asha"
        assert store.transactions[-1].customer_name == "Asha"

    def test_blank_customer_name(self, service):
        """Test that a customer needs a name."""
        with pytest.raises(ValidationError):
            service.add_customer({**CUSTOMER_FIELDS, "name": "   "})

    def test_update_account(self, service, cash_account):
        """Test renaming an account."""
        updated = service.update_account(cash_account.id, {"name": "Drawer"})
        assert updated.name == "Drawer"
        assert updated.type == cash_account.type
