"""
Shared fixtures.

Every test gets its own in-memory ledger, a clock it can move by hand, and
the shop's timezone (IST) so day boundaries are exercised away from UTC.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pawnbook.orchestrator import create_app_components
from pawnbook.services.storage import InMemoryStorage


IST = timezone(timedelta(hours=5, minutes=30))

# 10:00 IST on 10 March 2025
START = datetime(2025, 3, 10, 4, 30, tzinfo=timezone.utc)

CUSTOMER_FIELDS = {
    "name": "Asha",
    "village": "Rampur",
    "phone_number": "9876543210",
    "father_husband_name": "Mohan",
    "father_husband_village": "Rampur",
}

RING = {
    "name": "Ring",
    "type": "gold",
    "gross_weight": 5.2,
    "net_weight": 4.8,
    "interest": 2,
}

ANKLET = {
    "name": "Anklet",
    "type": "silver",
    "gross_weight": 40,
    "net_weight": 38,
    "interest": 1.5,
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, moment: datetime) -> datetime:
        self.current = moment
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def app(storage, clock):
    return create_app_components(storage=storage, clock=clock, tz=IST)


@pytest.fixture
def store(app):
    return app.store


@pytest.fixture
def service(app):
    return app.service


@pytest.fixture
def views(app):
    return app.views


@pytest.fixture
def customer(service):
    return service.add_customer(CUSTOMER_FIELDS)


@pytest.fixture
def cash_account(service):
    return service.add_account({"name": "Counter cash", "type": "cash"})


@pytest.fixture
def bill(service, customer):
    """Bill 101: 10000 at 2% with one gold ring."""
    return service.create_bill(customer.id, "101", 10000, 2, [RING])
