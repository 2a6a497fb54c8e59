"""
Transaction ledger: validation and append.

A submission is checked in a fixed order and rejected as a whole on the
first failing step:

    1. at least one line
    2. every line references an existing product
    3. every line has a quantity and unit_cost that are positive and fit
       their columns (unit_cost in whole cents)
    4. stock-reducing transactions leave no product below zero

Only then is the transaction appended. Accepted entries are never updated
or deleted (see the mapper guards in stockledger.models.transaction).
"""
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.error_handlers import (
    EmptyTransactionError,
    InsufficientStockError,
    InvalidLineValueError,
    LedgerValidationError,
    ResourceNotFoundError,
    UnknownProductError,
)
from stockledger.logging_config import get_logger
from stockledger.models import Product, Transaction, TransactionLine
from stockledger.projection import fold_movements, line_delta
from stockledger.schemas.transaction import AdjustmentDirection, TransactionCreate, TransactionType

logger = get_logger("ledger")

# Column bounds: Integer quantity, Numeric(10, 2) unit cost
MAX_QUANTITY = 2**31 - 1
MAX_UNIT_COST = Decimal("99999999.99")
CENTS = Decimal("0.01")


def reduces_stock(data: TransactionCreate) -> bool:
    """OUT and decreasing ADJ transactions take stock away."""
    if data.transaction_type == TransactionType.OUT:
        return True
    return (
        data.transaction_type == TransactionType.ADJ
        and data.adjustment_direction == AdjustmentDirection.DECREASE
    )


def ledger_head(db: Session) -> int:
    """Id of the newest ledger entry, 0 for an empty ledger."""
    return db.scalar(select(func.max(Transaction.id))) or 0


def load_ledger(db: Session, upto_id: Optional[int] = None) -> list[Transaction]:
    """Ledger entries in ascending id order, optionally bounded to a fixed prefix."""
    query = select(Transaction).order_by(Transaction.id)
    if upto_id is not None:
        query = query.where(Transaction.id <= upto_id)
    return list(db.scalars(query).all())


def current_stock(db: Session, product_ids: Iterable[int]) -> dict[int, int]:
    """Project current stock for a subset of products straight from their ledger lines."""
    product_ids = list(product_ids)
    rows = db.execute(
        select(
            TransactionLine.product_id,
            TransactionLine.quantity,
            Transaction.transaction_type,
            Transaction.adjustment_direction,
        )
        .select_from(TransactionLine)
        .join(Transaction, TransactionLine.transaction_id == Transaction.id)
        .where(TransactionLine.product_id.in_(product_ids))
        .order_by(Transaction.id, TransactionLine.line_no)
    )
    movements = (
        (product_id, line_delta(trans_type, quantity, direction))
        for product_id, quantity, trans_type, direction in rows
    )
    return fold_movements(movements, {product_id: 0 for product_id in product_ids})


def _lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """Load the referenced products, row-locked until the session commits or rolls back."""
    products = db.scalars(
        select(Product)
        .where(Product.id.in_(sorted(set(product_ids))))
        .order_by(Product.id)
        .with_for_update()
    ).all()
    return {product.id: product for product in products}


def _check_lines_present(data: TransactionCreate) -> None:
    if not data.lines:
        raise EmptyTransactionError()


def _check_products_exist(data: TransactionCreate, products: dict[int, Product]) -> None:
    unknown = [
        {"line": line_no, "product_id": line.product_id}
        for line_no, line in enumerate(data.lines, start=1)
        if line.product_id not in products
    ]
    if unknown:
        raise UnknownProductError(unknown)


def _check_line_values(data: TransactionCreate) -> None:
    invalid = []
    for line_no, line in enumerate(data.lines, start=1):
        if line.quantity <= 0:
            invalid.append({"line": line_no, "field": "quantity", "value": line.quantity})
        elif line.quantity > MAX_QUANTITY:
            invalid.append({
                "line": line_no,
                "field": "quantity",
                "value": line.quantity,
                "reason": f"at most {MAX_QUANTITY}",
            })
        if line.unit_cost <= 0:
            invalid.append({"line": line_no, "field": "unit_cost", "value": str(line.unit_cost)})
        elif line.unit_cost > MAX_UNIT_COST:
            invalid.append({
                "line": line_no,
                "field": "unit_cost",
                "value": str(line.unit_cost),
                "reason": f"at most {MAX_UNIT_COST}",
            })
        elif line.unit_cost != line.unit_cost.quantize(CENTS):
            invalid.append({
                "line": line_no,
                "field": "unit_cost",
                "value": str(line.unit_cost),
                "reason": "at most 2 decimal places",
            })
    if invalid:
        raise InvalidLineValueError(invalid)



def _check_sufficient_stock(db: Session, data: TransactionCreate) -> None:
    if not reduces_stock(data):
        return

    requested: dict[int, int] = defaultdict(int)
    for line in data.lines:
        requested[line.product_id] += line.quantity

    available = current_stock(db, requested)
    shortages = []
    for product_id in sorted(requested):
        remaining = available[product_id] - requested[product_id]
        if remaining < 0:
            shortages.append({
                "product_id": product_id,
                "available": available[product_id],
                "requested": requested[product_id],
                "shortfall": -remaining,
            })
    if shortages:
        raise InsufficientStockError(shortages)


def validate_transaction(db: Session, data: TransactionCreate) -> dict[int, Product]:
    """Run every validation step in order. Returns the referenced products."""
    _check_lines_present(data)
    products = _lock_products(db, (line.product_id for line in data.lines))
    _check_products_exist(data, products)
    _check_line_values(data)
    _check_sufficient_stock(db, data)
    return products


def submit_transaction(db: Session, data: TransactionCreate) -> Transaction:
    """
    Validate and append a transaction.

    Callers must hold the product locks for every product referenced by
    ``data`` (see InventoryService.submit_transaction) so the stock check
    sees an up-to-date projection.

    Raises:
        LedgerValidationError: the submission was rejected, ledger unchanged
    """
    try:
        validate_transaction(db, data)
    except LedgerValidationError as exc:
        # Release any row locks taken during validation
        db.rollback()
        logger.warning(
            f"[LEDGER] Rejected {data.transaction_type.value} transaction: {exc.message}",
            extra={"details": exc.details}
        )
        raise

    direction = None
    if data.transaction_type == TransactionType.ADJ:
        direction = (data.adjustment_direction or AdjustmentDirection.INCREASE).value

    transaction = Transaction(
        timestamp=data.timestamp or datetime.now(timezone.utc),
        transaction_type=data.transaction_type.value,
        adjustment_direction=direction,
        reference=data.reference or None,
        remarks=data.remarks or None,
        created_by=data.created_by or settings.default_created_by,
        lines=[
            TransactionLine(
                line_no=line_no,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_cost=line.unit_cost.quantize(CENTS),
            )
            for line_no, line in enumerate(data.lines, start=1)
        ],
    )
    db.add(transaction)
    db.commit()

    logger.info(
        f"[LEDGER] Accepted transaction id={transaction.id} type={transaction.transaction_type} "
        f"lines={transaction.line_count} total={transaction.total_amount}"
    )
    return transaction


def get_transaction(db: Session, transaction_id: int) -> Transaction:
    transaction = db.get(Transaction, transaction_id)
    if transaction is None:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return transaction


def list_transactions(
    db: Session,
    transaction_type: Optional[TransactionType] = None,
    product_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[list[Transaction], int]:
    """Newest-first page of the ledger plus the total number of matching entries."""
    query = select(Transaction)

    if transaction_type is not None:
        query = query.where(Transaction.transaction_type == TransactionType(transaction_type).value)

    if product_id is not None:
        query = query.where(
            Transaction.id.in_(
                select(TransactionLine.transaction_id).where(TransactionLine.product_id == product_id)
            )
        )

    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0

    query = query.order_by(Transaction.id.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)

    return list(db.scalars(query).all()), total
