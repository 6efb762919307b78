"""
Ledger Service

Account balances and money movements with double-entry bookkeeping,
exact Decimal arithmetic and row-level locking for concurrent safety.
"""

__version__ = "1.0.0"
