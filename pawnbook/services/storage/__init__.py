"""
Storage Services Package

Provides the abstract key-value interface and its implementations.
JSON files are the default backend; the in-memory one backs the tests.
"""

from pawnbook.services.storage.interface import (
    KeyValueStorage,
    NotFoundError,
    PersistenceError,
    StorageError,
)
from pawnbook.services.storage.json_file import JsonFileStorage
from pawnbook.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "KeyValueStorage",
    # Exceptions
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]
