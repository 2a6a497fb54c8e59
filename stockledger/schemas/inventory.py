"""
Pydantic schemas for inventory snapshots, summaries and queries.
"""
from typing import Optional
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, ConfigDict, field_validator

from stockledger.schemas.product import Category, StockStatus


class InventoryItem(BaseModel):
    """One snapshot row: a catalog product with its projected stock."""
    model_config = ConfigDict(frozen=True)

    product_id: int
    code: str
    name: str
    category: Category
    unit_price: Decimal
    min_stock_level: int
    current_stock: int
    stock_value: Decimal  # current_stock * unit_price
    is_low_stock: bool  # current_stock <= min_stock_level
    stock_status: StockStatus


class InventorySummary(BaseModel):
    """Fleet-wide totals over a snapshot."""
    total_products: int
    total_stock_value: Decimal
    low_stock_items: int
    total_transactions: int


class SortField(str, Enum):
    """Fields the inventory view can be sorted by."""
    NAME = "name"
    CODE = "code"
    CURRENT_STOCK = "current_stock"
    UNIT_PRICE = "unit_price"
    STOCK_VALUE = "stock_value"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class InventoryQuery(BaseModel):
    """Search, filter and sort criteria for the inventory view."""
    search: str = ""
    category: Optional[Category] = None
    low_stock_only: bool = False
    sort_by: SortField = SortField.NAME
    sort_order: SortOrder = SortOrder.ASC

    @field_validator("search", mode="before")
    @classmethod
    def none_search_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("category", mode="before")
    @classmethod
    def empty_category_is_unset(cls, value):
        return None if value == "" else value
