"""
Inventory service: the single entry point the API layer talks to.

Writes go through the product lock registry and invalidate the cached
inventory view. Reads rebuild the view from a fixed ledger prefix when the
cache is empty.
"""
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from stockledger import catalog, ledger
from stockledger.core.config import settings
from stockledger.locks import ProductLockRegistry
from stockledger.logging_config import get_logger
from stockledger.models import Product, Transaction
from stockledger.projection import project_stock
from stockledger.query import query_inventory
from stockledger.schemas.inventory import InventoryItem, InventoryQuery, InventorySummary
from stockledger.schemas.product import Category, ProductCreate, ProductUpdate, ProductWithStock
from stockledger.schemas.transaction import TransactionCreate
from stockledger.snapshot import build_row, build_snapshot, categories, summarize

logger = get_logger("service")


@dataclass(frozen=True)
class InventoryView:
    """Snapshot and summary derived from the ledger up to ``ledger_head``."""
    ledger_head: int
    snapshot: tuple[InventoryItem, ...]
    summary: InventorySummary


def _with_stock(product: Product, row: InventoryItem) -> ProductWithStock:
    return ProductWithStock(
        id=product.id,
        code=product.code,
        name=product.name,
        category=product.category,
        unit_price=product.unit_price,
        min_stock_level=product.min_stock_level,
        created_at=product.created_at,
        updated_at=product.updated_at,
        current_stock=row.current_stock,
        is_low_stock=row.is_low_stock,
        stock_status=row.stock_status,
    )


class InventoryService:
    """Ledger writes, catalog management and derived inventory views."""

    def __init__(self, cache_enabled: bool = settings.snapshot_cache_enabled):
        self.cache_enabled = cache_enabled
        self.locks = ProductLockRegistry()
        self._cache_lock = threading.Lock()
        self._view: Optional[InventoryView] = None
        self._generation = 0
        self._listeners: list[Callable[[str], None]] = []

    # Invalidation

    def add_invalidation_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with a reason string after every successful write."""
        self._listeners.append(callback)

    def invalidate(self, reason: str) -> None:
        with self._cache_lock:
            self._generation += 1
            self._view = None
        logger.debug(f"[SNAPSHOT] Invalidated: {reason}")
        for callback in self._listeners:
            try:
                callback(reason)
            except Exception:
                # The write is already committed; report it as done
                logger.exception(f"[SNAPSHOT] Invalidation listener {callback!r} failed for: {reason}")

    # Writes

    def submit_transaction(self, db: Session, data: TransactionCreate) -> Transaction:
        """Validate and append a transaction while holding its products' locks."""
        with self.locks.hold(line.product_id for line in data.lines):
            transaction = ledger.submit_transaction(db, data)
        self.invalidate(f"transaction {transaction.id}")
        return transaction

    def create_product(self, db: Session, data: ProductCreate) -> Product:
        product = catalog.create_product(db, data)
        self.invalidate(f"product {product.id} created")
        return product

    def update_product(self, db: Session, product_id: int, data: ProductUpdate) -> Product:
        with self.locks.hold([product_id]):
            product = catalog.update_product(db, product_id, data)
        self.invalidate(f"product {product_id} updated")
        return product

    def delete_product(self, db: Session, product_id: int) -> None:
        with self.locks.hold([product_id]):
            catalog.delete_product(db, product_id)
        self.invalidate(f"product {product_id} deleted")

    # Reads

    def build_view(self, db: Session) -> InventoryView:
        """Derive a fresh view. The ledger is read up to a head fixed before the fold starts."""
        head = ledger.ledger_head(db)
        products = catalog.list_products(db)
        transactions = ledger.load_ledger(db, upto_id=head)

        stock = project_stock(transactions, (product.id for product in products))
        snapshot = tuple(build_snapshot(products, stock))
        summary = summarize(snapshot, transactions)

        logger.debug(
            f"[SNAPSHOT] Rebuilt at ledger head {head}: "
            f"{len(snapshot)} products, {len(transactions)} transactions"
        )
        return InventoryView(ledger_head=head, snapshot=snapshot, summary=summary)

    def get_view(self, db: Session) -> InventoryView:
        if not self.cache_enabled:
            return self.build_view(db)

        with self._cache_lock:
            if self._view is not None:
                return self._view
            generation = self._generation

        view = self.build_view(db)

        with self._cache_lock:
            # A write may have landed while we were building
            if generation == self._generation:
                self._view = view
        return view

    def get_snapshot(self, db: Session) -> list[InventoryItem]:
        return list(self.get_view(db).snapshot)

    def get_summary(self, db: Session) -> InventorySummary:
        return self.get_view(db).summary

    def query_inventory(self, db: Session, criteria: Optional[InventoryQuery] = None) -> list[InventoryItem]:
        return query_inventory(self.get_view(db).snapshot, criteria)

    def get_categories(self, db: Session) -> list[Category]:
        return categories(self.get_view(db).snapshot)

    def list_products(self, db: Session, category: Optional[Category] = None) -> list[ProductWithStock]:
        """Catalog products with their projected stock."""
        rows = {row.product_id: row for row in self.get_view(db).snapshot}
        result = []
        for product in catalog.list_products(db, category):
            row = rows.get(product.id) or build_row(product, 0)
            result.append(_with_stock(product, row))
        return result

    def get_product(self, db: Session, product_id: int) -> ProductWithStock:
        product = catalog.get_product(db, product_id)
        row = build_row(product, ledger.current_stock(db, [product_id])[product_id])
        return _with_stock(product, row)


# Process-wide service instance
inventory_service = InventoryService()


def get_inventory_service() -> InventoryService:
    """Dependency injection for FastAPI."""
    return inventory_service
