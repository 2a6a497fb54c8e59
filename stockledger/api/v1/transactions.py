"""
Transaction API endpoints for recording stock movements.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockledger import ledger
from stockledger.core.config import settings
from stockledger.core.database import get_db
from stockledger.schemas.transaction import (
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
    TransactionType,
)
from stockledger.service import InventoryService, get_inventory_service

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction_data: TransactionCreate,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Record a stock transaction with one or more lines.

    - **transaction_type**: IN, OUT or ADJ
    - **adjustment_direction**: increase (default) or decrease, ADJ only
    - **lines**: product_id, quantity and unit_cost per line

    The whole transaction is rejected if any line is invalid or an outgoing
    movement exceeds the available stock.
    """
    return service.submit_transaction(db, transaction_data)


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    transaction_type: Optional[TransactionType] = None,
    product_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """
    List transactions, newest first.

    - **transaction_type**: Filter by type (IN/OUT/ADJ)
    - **product_id**: Only transactions with a line for this product
    """
    items, total = ledger.list_transactions(
        db,
        transaction_type=transaction_type,
        product_id=product_id,
        page=page,
        page_size=page_size
    )

    return TransactionListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        pages=(total + page_size - 1) // page_size
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db)
):
    """Get a specific transaction."""
    return ledger.get_transaction(db, transaction_id)
