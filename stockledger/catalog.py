"""
Product catalog management.

Products carry identity, pricing and thresholds only. Once a product is
referenced by a ledger line its code is frozen and it can no longer be
deleted.
"""
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockledger.error_handlers import (
    DuplicateResourceError,
    ProductInUseError,
    ResourceNotFoundError,
)
from stockledger.logging_config import get_logger
from stockledger.models import Product, TransactionLine
from stockledger.schemas.product import Category, ProductCreate, ProductUpdate

logger = get_logger("catalog")


def list_products(db: Session, category: Optional[Category] = None) -> list[Product]:
    """All products in catalog order (ascending id)."""
    query = select(Product).order_by(Product.id)
    if category is not None:
        query = query.where(Product.category == Category(category).value)
    return list(db.scalars(query).all())


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ResourceNotFoundError("Product", product_id)
    return product


def count_references(db: Session, product_id: int) -> int:
    """Number of ledger lines pointing at the product."""
    return db.scalar(
        select(func.count(TransactionLine.id)).where(TransactionLine.product_id == product_id)
    ) or 0


def _ensure_code_available(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    query = select(Product.id).where(Product.code == code)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if db.scalar(query) is not None:
        raise DuplicateResourceError("Product", "code", code)


def _commit_unique(db: Session, code: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent insert of the same code
        db.rollback()
        raise DuplicateResourceError("Product", "code", code)


def create_product(db: Session, data: ProductCreate) -> Product:
    """Add a product to the catalog. Codes are unique."""
    _ensure_code_available(db, data.code)

    product = Product(
        code=data.code,
        name=data.name,
        category=data.category.value,
        unit_price=data.unit_price,
        min_stock_level=data.min_stock_level,
    )
    db.add(product)
    _commit_unique(db, data.code)

    logger.info(f"[CATALOG] Created product id={product.id} code={product.code}")
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
    """
    Apply a partial update.

    Changing the code of a product that the ledger already references is
    rejected with ProductInUseError.
    """
    product = get_product(db, product_id)
    changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}

    new_code = changes.get("code")
    if new_code is not None and new_code != product.code:
        references = count_references(db, product_id)
        if references:
            raise ProductInUseError(product_id, references, action="change the code of")
        _ensure_code_available(db, new_code, exclude_id=product_id)

    if "category" in changes:
        changes["category"] = Category(changes["category"]).value

    for field, value in changes.items():
        setattr(product, field, value)

    _commit_unique(db, product.code)

    logger.info(f"[CATALOG] Updated product id={product_id} fields={sorted(changes)}")
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Remove a product that no ledger line references."""
    product = get_product(db, product_id)

    references = count_references(db, product_id)
    if references:
        logger.warning(f"[CATALOG] Refused to delete product id={product_id}: {references} reference(s)")
        raise ProductInUseError(product_id, references)

    db.delete(product)
    db.commit()

    logger.info(f"[CATALOG] Deleted product id={product_id} code={product.code}")
