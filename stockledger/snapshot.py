"""
Inventory snapshot builder and summary aggregator.
"""
from decimal import Decimal
from typing import Iterable, Mapping, Sequence, Sized

from stockledger.schemas.inventory import InventoryItem, InventorySummary
from stockledger.schemas.product import Category, StockStatus

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a monetary amount to cents."""
    return Decimal(value).quantize(CENTS)


def stock_status(current_stock: int, min_stock_level: int) -> StockStatus:
    """Get human-readable stock status."""
    if current_stock == 0:
        return StockStatus.OUT_OF_STOCK
    elif current_stock <= min_stock_level:
        return StockStatus.LOW_STOCK
    else:
        return StockStatus.IN_STOCK


def build_row(product, current_stock: int) -> InventoryItem:
    unit_price = to_money(product.unit_price)
    return InventoryItem(
        product_id=product.id,
        code=product.code,
        name=product.name,
        category=product.category,
        unit_price=unit_price,
        min_stock_level=product.min_stock_level,
        current_stock=current_stock,
        stock_value=to_money(current_stock * unit_price),
        is_low_stock=current_stock <= product.min_stock_level,
        stock_status=stock_status(current_stock, product.min_stock_level),
    )


def build_snapshot(products: Iterable, stock: Mapping[int, int]) -> list[InventoryItem]:
    """
    Combine catalog products with projected stock.

    One row per product, in catalog order. Products missing from ``stock``
    have never moved and are reported with zero stock.
    """
    return [build_row(product, stock.get(product.id, 0)) for product in products]


def summarize(snapshot: Sequence[InventoryItem], ledger: Sized) -> InventorySummary:
    """Aggregate a snapshot. An empty snapshot yields zeros, never an error."""
    return InventorySummary(
        total_products=len(snapshot),
        total_stock_value=to_money(sum((row.stock_value for row in snapshot), ZERO)),
        low_stock_items=sum(1 for row in snapshot if row.is_low_stock),
        total_transactions=len(ledger),
    )


def categories(snapshot: Iterable[InventoryItem]) -> list[Category]:
    """Distinct categories present in the snapshot, in order of first appearance."""
    seen = []
    for row in snapshot:
        if row.category not in seen:
            seen.append(row.category)
    return seen
