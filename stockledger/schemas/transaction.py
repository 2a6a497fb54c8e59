"""
Pydantic schemas for ledger transactions.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, AliasChoices, model_validator


class TransactionType(str, Enum):
    """Stock transaction types."""
    IN = "IN"
    OUT = "OUT"
    ADJ = "ADJ"


class AdjustmentDirection(str, Enum):
    """Which way an ADJ transaction moves stock."""
    INCREASE = "increase"
    DECREASE = "decrease"


class TransactionLineCreate(BaseModel):
    """One line of a transaction submission.

    Values are not range-checked here; the ledger rejects non-positive
    quantities and costs with a structured error naming the line.
    """
    product_id: int = Field(..., validation_alias=AliasChoices("product_id", "product"))
    quantity: int
    unit_cost: Decimal


class TransactionCreate(BaseModel):
    """A complete transaction, built client-side and submitted in one go."""
    transaction_type: TransactionType = Field(
        ...,
        validation_alias=AliasChoices("transaction_type", "trans_type", "type")
    )
    adjustment_direction: Optional[AdjustmentDirection] = None
    timestamp: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("timestamp", "trans_date")
    )
    reference: Optional[str] = Field(
        None,
        max_length=100,
        validation_alias=AliasChoices("reference", "reference_no")
    )
    remarks: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)
    lines: list[TransactionLineCreate] = Field(
        default_factory=list,
        validation_alias=AliasChoices("lines", "details")
    )

    @model_validator(mode="after")
    def check_adjustment_direction(self):
        if self.transaction_type != TransactionType.ADJ and self.adjustment_direction is not None:
            raise ValueError("adjustment_direction is only allowed on ADJ transactions")
        return self


class TransactionLineResponse(BaseModel):
    """Stored transaction line."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    line_no: int
    product_id: int
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal


class TransactionResponse(BaseModel):
    """Stored transaction with its derived total."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    transaction_type: TransactionType
    adjustment_direction: Optional[AdjustmentDirection] = None
    reference: Optional[str] = None
    remarks: Optional[str] = None
    created_by: str
    lines: list[TransactionLineResponse]
    total_amount: Decimal
    line_count: int


class TransactionListResponse(BaseModel):
    """Paginated transaction list."""
    items: list[TransactionResponse]
    total: int
    page: int
    page_size: int
    pages: int
