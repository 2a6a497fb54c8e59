"""
Pydantic schemas for Product model.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator

from stockledger.core.config import settings


class Category(str, Enum):
    """Closed set of product categories."""
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    FOOD = "food"
    BOOKS = "books"
    OTHER = "other"


class StockStatus(str, Enum):
    """Human-readable stock classification."""
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


class ProductBase(BaseModel):
    """Base product schema."""
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    category: Category = Category.OTHER
    unit_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    min_stock_level: int = Field(default=settings.default_min_stock_level, ge=0)

    @field_validator("code", "name", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class ProductCreate(ProductBase):
    """Schema for creating a product."""


class ProductUpdate(BaseModel):
    """Schema for updating a product. Omitted fields are left unchanged."""
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[Category] = None
    unit_price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    min_stock_level: Optional[int] = Field(None, ge=0)

    @field_validator("code", "name", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class ProductResponse(ProductBase):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductWithStock(ProductResponse):
    """Product with its projected stock."""
    current_stock: int = 0
    is_low_stock: bool
    stock_status: StockStatus
