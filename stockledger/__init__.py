"""Stock ledger: warehouse stock derived from an append-only transaction ledger."""

__version__ = "1.0.0"
