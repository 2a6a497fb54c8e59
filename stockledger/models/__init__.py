"""
SQLAlchemy models for the stock ledger.
Import all models here to ensure they're registered with SQLAlchemy.
"""
from stockledger.models.product import Product
from stockledger.models.transaction import Transaction, TransactionLine

__all__ = [
    "Product",
    "Transaction",
    "TransactionLine",
]
