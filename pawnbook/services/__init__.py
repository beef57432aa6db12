"""Services package."""

from pawnbook.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    NotFoundError,
    PersistenceError,
    StorageError,
)

__all__ = [
    # Storage services
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
]
