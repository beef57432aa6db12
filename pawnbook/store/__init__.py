"""Entity store package."""

from pawnbook.store.entity_store import (
    ACCOUNTS,
    BILLS,
    COLLECTION_MODELS,
    CUSTOMERS,
    ORNAMENTS,
    TRANSACTIONS,
    EntityStore,
    utc_now,
)

__all__ = [
    "ACCOUNTS",
    "BILLS",
    "COLLECTION_MODELS",
    "CUSTOMERS",
    "ORNAMENTS",
    "TRANSACTIONS",
    "EntityStore",
    "utc_now",
]
