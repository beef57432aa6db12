"""
PawnBook - Source Package

Record keeping for a small pawn-broking shop: customers, pawn bills,
pledged ornaments, cash/bank accounts and an append-only transaction
ledger, with the reports the counter needs every day.

DESIGN PRINCIPLES:
1. Fail early, fail visibly
2. No silent corrections
3. Every mutation must be auditable
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "PawnBook Team"
