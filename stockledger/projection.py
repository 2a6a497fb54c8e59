"""
Stock projection: folds the ledger into per-product current stock.

The fold is pure and re-playable. Feeding it the same ledger prefix always
yields the same mapping; nothing here touches the database.
"""
from typing import Iterable, Optional, Tuple, Union

from stockledger.schemas.transaction import AdjustmentDirection, TransactionType

Movement = Tuple[int, int]  # (product_id, signed quantity)


def line_delta(
    transaction_type: Union[TransactionType, str],
    quantity: int,
    adjustment_direction: Union[AdjustmentDirection, str, None] = None,
) -> int:
    """Signed stock change contributed by one line.

    IN adds, OUT subtracts. ADJ adds unless its direction is ``decrease``.
    """
    transaction_type = TransactionType(transaction_type)
    if transaction_type == TransactionType.IN:
        return quantity
    if transaction_type == TransactionType.OUT:
        return -quantity
    if adjustment_direction is not None and AdjustmentDirection(adjustment_direction) == AdjustmentDirection.DECREASE:
        return -quantity
    return quantity


def transaction_movements(transaction) -> Iterable[Movement]:
    """Yield the signed movements of a transaction-like object, line by line."""
    for line in transaction.lines:
        yield line.product_id, line_delta(
            transaction.transaction_type,
            line.quantity,
            getattr(transaction, "adjustment_direction", None),
        )


def fold_movements(movements: Iterable[Movement], initial: Optional[dict] = None) -> dict[int, int]:
    """Apply movements in order on top of ``initial`` and return a new mapping."""
    stock = dict(initial or {})
    for product_id, delta in movements:
        stock[product_id] = stock.get(product_id, 0) + delta
    return stock


def project_stock(transactions: Iterable, product_ids: Iterable[int] = ()) -> dict[int, int]:
    """
    Derive current stock for every product from the ledger.

    Args:
        transactions: Ledger entries in ascending id order
        product_ids: Catalog ids; products without movements start at 0

    Returns:
        Mapping of product_id to current stock
    """
    initial = {product_id: 0 for product_id in product_ids}
    movements = (
        movement
        for transaction in transactions
        for movement in transaction_movements(transaction)
    )
    return fold_movements(movements, initial)
