"""
Pydantic schemas for request/response validation.
"""
from stockledger.schemas.product import (
    Category, StockStatus, ProductBase, ProductCreate, ProductUpdate,
    ProductResponse, ProductWithStock
)
from stockledger.schemas.transaction import (
    TransactionType, AdjustmentDirection, TransactionLineCreate, TransactionCreate,
    TransactionLineResponse, TransactionResponse, TransactionListResponse
)
from stockledger.schemas.inventory import (
    InventoryItem, InventorySummary, SortField, SortOrder, InventoryQuery
)

__all__ = [
    # Product schemas
    "Category", "StockStatus", "ProductBase", "ProductCreate", "ProductUpdate",
    "ProductResponse", "ProductWithStock",

    # Transaction schemas
    "TransactionType", "AdjustmentDirection", "TransactionLineCreate", "TransactionCreate",
    "TransactionLineResponse", "TransactionResponse", "TransactionListResponse",

    # Inventory schemas
    "InventoryItem", "InventorySummary", "SortField", "SortOrder", "InventoryQuery",
]
