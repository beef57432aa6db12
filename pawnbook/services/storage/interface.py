"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the persistence medium.
This allows us to:
1. Keep the shop's data in plain JSON files on the counter machine
2. Use in-memory storage for testing
3. Swap in another key-value medium later without touching the ledger

The interface is intentionally tiny: whole collections are stored as one
JSON document per key. There is no partial update and no transaction
across keys.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorage(ABC):
    """
    Abstract interface for a key-value persistence medium.

    Any storage implementation (JSON files, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the document stored under a key.

        Args:
            key: Collection key (e.g. 'pawn_bills')

        Returns:
            The stored document, or None if the key was never written

        Raises:
            PersistenceError: If the medium cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, payload: str) -> None:
        """
        Replace the document stored under a key.

        Args:
            key: Collection key
            payload: Serialized collection

        Raises:
            PersistenceError: If the write did not complete
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """
        List every key that has been written.

        Returns:
            Keys in sorted order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class PersistenceError(StorageError):
    """The storage medium could not be read or written."""
    pass
