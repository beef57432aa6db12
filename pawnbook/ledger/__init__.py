"""Bill lifecycle operations."""

from pawnbook.ledger.service import LedgerService

__all__ = ["LedgerService"]
