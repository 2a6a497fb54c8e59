"""
Inventory API endpoints: snapshot, summary, search and export.
"""
import csv
import io
from typing import Annotated
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from stockledger.core.database import get_db
from stockledger.schemas.inventory import InventoryItem, InventoryQuery, InventorySummary
from stockledger.schemas.product import Category
from stockledger.service import InventoryService, get_inventory_service

router = APIRouter(prefix="/inventory", tags=["Inventory"])

EXPORT_COLUMNS = [
    "code", "name", "category", "unit_price", "current_stock",
    "min_stock_level", "stock_value", "is_low_stock",
]


@router.get("", response_model=list[InventoryItem])
def get_snapshot(
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Every catalog product with its current stock, in catalog order."""
    return service.get_snapshot(db)


@router.get("/summary", response_model=InventorySummary)
def get_summary(
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Total products, total stock value, low-stock count and transaction count."""
    return service.get_summary(db)


@router.get("/query", response_model=list[InventoryItem])
def query_inventory(
    criteria: Annotated[InventoryQuery, Query()],
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Search, filter and sort the inventory.

    - **search**: Case-insensitive match on name or code
    - **category**: Exact category, empty for all
    - **low_stock_only**: Only rows at or below their minimum level
    - **sort_by**: name, code, current_stock, unit_price or stock_value
    - **sort_order**: asc or desc
    """
    return service.query_inventory(db, criteria)


@router.get("/low-stock", response_model=list[InventoryItem])
def get_low_stock(
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Products at or below their minimum stock level, lowest stock first."""
    return service.query_inventory(
        db,
        InventoryQuery(low_stock_only=True, sort_by="current_stock", sort_order="asc")
    )


@router.get("/categories", response_model=list[Category])
def get_categories(
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Categories that currently have products."""
    return service.get_categories(db)


@router.get("/export.csv")
def export_inventory_csv(
    criteria: Annotated[InventoryQuery, Query()],
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Export the queried inventory view as CSV."""
    rows = service.query_inventory(db, criteria)

    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(EXPORT_COLUMNS)

    for row in rows:
        w.writerow([
            row.code,
            row.name,
            row.category.value,
            f"{row.unit_price:.2f}",
            row.current_stock,
            row.min_stock_level,
            f"{row.stock_value:.2f}",
            "yes" if row.is_low_stock else "no",
        ])

    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'}
    )
