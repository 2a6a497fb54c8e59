"""Tests for the inventory service: external interface, caching and locking."""
import logging
import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from stockledger import ledger
from stockledger.core.database import Base, create_db_engine
from stockledger.error_handlers import InsufficientStockError, ProductInUseError
from stockledger.locks import ProductLockRegistry
from stockledger.models import Product
from stockledger.schemas import InventoryQuery, ProductCreate, ProductUpdate, StockStatus, TransactionCreate
from stockledger.service import InventoryService


class TestScenarios:
    """End-to-end scenarios through the service."""

    def test_in_then_out_leaves_low_stock(self, test_db, service, sample_products, submit):
        """min 5, IN 10 @ 2.00, OUT 7 @ 2.00 -> 3 units, low stock, valued at unit price."""
        mouse = sample_products[0]
        submit("IN", [(mouse.id, 10, "2.00")])
        submit("OUT", [(mouse.id, 7, "2.00")])

        row = next(r for r in service.get_snapshot(test_db) if r.product_id == mouse.id)
        assert row.current_stock == 3
        assert row.is_low_stock is True
        assert row.stock_value == 3 * mouse.unit_price

    def test_overdraw_rejected_and_ledger_unchanged(self, test_db, service, sample_products, submit):
        mouse = sample_products[0]
        submit("IN", [(mouse.id, 3, "2.00")])
        before = service.get_summary(test_db).total_transactions

        with pytest.raises(InsufficientStockError):
            submit("OUT", [(mouse.id, 100, "2.00")])

        assert service.get_summary(test_db).total_transactions == before

    def test_delete_product(self, test_db, service, sample_products, submit):
        mouse, _, tea = sample_products
        submit("IN", [(mouse.id, 1, "1.00")])

        service.delete_product(test_db, tea.id)
        with pytest.raises(ProductInUseError):
            service.delete_product(test_db, mouse.id)

        assert [row.code for row in service.get_snapshot(test_db)] == ["ELEC-001", "BOOK-001"]


class TestViews:
    """Tests for snapshot, summary and query reads."""

    def test_snapshot_includes_unmoved_products(self, test_db, service, sample_products):
        rows = service.get_snapshot(test_db)
        assert [row.current_stock for row in rows] == [0, 0, 0]
        assert all(row.stock_status == StockStatus.OUT_OF_STOCK for row in rows)

    def test_summary(self, test_db, service, sample_products, submit):
        mouse, book, tea = sample_products
        submit("IN", [(mouse.id, 10, "20.00"), (book.id, 1, "40.00"), (tea.id, 20, "2.00")])

        summary = service.get_summary(test_db)
        assert summary.total_products == 3
        # 10 x 25.00 + 1 x 45.50 + 20 x 3.20
        assert summary.total_stock_value == Decimal("359.50")
        assert summary.low_stock_items == 1  # the book, 1 <= 2
        assert summary.total_transactions == 1

    def test_empty_catalog(self, test_db, service):
        summary = service.get_summary(test_db)
        assert summary.total_products == 0
        assert summary.total_stock_value == Decimal("0")
        assert service.get_snapshot(test_db) == []
        assert service.query_inventory(test_db, InventoryQuery(search="x")) == []

    def test_query(self, test_db, service, sample_products, submit):
        mouse, book, tea = sample_products
        submit("IN", [(mouse.id, 10, "1.00"), (tea.id, 3, "1.00")])

        rows = service.query_inventory(test_db, InventoryQuery(sort_by="current_stock", sort_order="desc"))
        assert [row.code for row in rows] == ["ELEC-001", "FOOD-001", "BOOK-001"]

    def test_list_products_with_stock(self, test_db, service, sample_products, submit):
        mouse = sample_products[0]
        submit("IN", [(mouse.id, 8, "1.00")])

        products = service.list_products(test_db)
        assert [(p.code, p.current_stock) for p in products] == [
            ("ELEC-001", 8), ("BOOK-001", 0), ("FOOD-001", 0),
        ]
        assert products[0].stock_status == StockStatus.IN_STOCK

    def test_get_product_with_stock(self, test_db, service, sample_products, submit):
        book = sample_products[1]
        submit("IN", [(book.id, 2, "1.00")])

        product = service.get_product(test_db, book.id)
        assert product.current_stock == 2
        assert product.is_low_stock is True

    def test_categories(self, test_db, service, sample_products):
        assert [c.value for c in service.get_categories(test_db)] == ["electronics", "books", "food"]


class TestInvalidation:
    """Every successful write drops the cached view."""

    def test_view_is_cached_between_writes(self, test_db, service, sample_products):
        assert service.get_view(test_db) is service.get_view(test_db)

    def test_transaction_invalidates(self, test_db, service, sample_products, submit):
        mouse = sample_products[0]
        first = service.get_view(test_db)
        submit("IN", [(mouse.id, 4, "1.00")])
        second = service.get_view(test_db)

        assert second is not first
        assert second.ledger_head > first.ledger_head
        assert second.snapshot[0].current_stock == 4

    def test_catalog_writes_invalidate(self, test_db, service, sample_products):
        service.get_view(test_db)
        service.create_product(test_db, ProductCreate(code="NEW-1", name="New", unit_price="1.00"))
        assert len(service.get_snapshot(test_db)) == 4

        service.update_product(test_db, sample_products[0].id, ProductUpdate(min_stock_level=0))
        assert service.get_snapshot(test_db)[0].min_stock_level == 0

        service.delete_product(test_db, sample_products[2].id)
        assert len(service.get_snapshot(test_db)) == 3

    def test_rejected_write_keeps_cache(self, test_db, service, sample_products, submit):
        view = service.get_view(test_db)
        with pytest.raises(InsufficientStockError):
            submit("OUT", [(sample_products[0].id, 1, "1.00")])
        assert service.get_view(test_db) is view

    def test_listeners_are_notified(self, test_db, service, sample_products, submit):
        reasons = []
        service.add_invalidation_listener(reasons.append)

        transaction = submit("IN", [(sample_products[0].id, 1, "1.00")])
        service.delete_product(test_db, sample_products[2].id)

        assert reasons == [f"transaction {transaction.id}", f"product {sample_products[2].id} deleted"]

    def test_failing_listener_does_not_fail_the_write(self, test_db, service, sample_products, submit, caplog):
        """A committed transaction is reported as accepted even if a listener raises."""
        reasons = []

        def broken(reason):
            raise RuntimeError("listener down")

        service.add_invalidation_listener(broken)
        service.add_invalidation_listener(reasons.append)

        with caplog.at_level(logging.ERROR, logger="stockledger.service"):
            transaction = submit("IN", [(sample_products[0].id, 5, "1.00")])

        assert transaction.id == ledger.ledger_head(test_db)
        assert reasons == [f"transaction {transaction.id}"]
        assert service.get_snapshot(test_db)[0].current_stock == 5
        assert "listener down" in caplog.text

    def test_cache_disabled_always_rebuilds(self, test_db, sample_products):
        uncached = InventoryService(cache_enabled=False)
        assert uncached.get_view(test_db) is not uncached.get_view(test_db)


class TestProductLockRegistry:
    """Tests for per-product locking."""

    def test_same_product_is_exclusive(self):
        registry = ProductLockRegistry()
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with registry.hold([1, 2]):
                entered.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        entered.wait(5)

        lock = registry._lock_for(2)
        assert lock.acquire(blocking=False) is False

        release.set()
        thread.join(5)
        assert lock.acquire(blocking=False) is True
        lock.release()

    def test_disjoint_products_do_not_block(self):
        registry = ProductLockRegistry()
        with registry.hold([1]):
            with registry.hold([2]) as held:
                assert held == [2]

    def test_acquires_in_sorted_order_without_duplicates(self):
        registry = ProductLockRegistry()
        with registry.hold([3, 1, 3, 2]) as held:
            assert held == [1, 2, 3]
        assert len(registry) == 3


class TestConcurrentSubmissions:
    """Concurrent writers against a shared file-backed database."""

    @pytest.fixture
    def session_factory(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        engine.dispose()

    def _seed(self, session_factory, service, quantity):
        with session_factory() as db:
            product = Product(code="HOT-1", name="Hot Item", unit_price=Decimal("1.00"))
            db.add(product)
            db.commit()
            service.submit_transaction(db, TransactionCreate(
                transaction_type="IN",
                lines=[{"product_id": product.id, "quantity": quantity, "unit_cost": "1.00"}],
            ))
            return product.id

    def _run_parallel(self, workers):
        barrier = threading.Barrier(len(workers))
        threads = [threading.Thread(target=lambda w=w: (barrier.wait(5), w())) for w in workers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(30)

    def test_concurrent_outs_cannot_overdraw(self, session_factory):
        """Eight writers each take 3 of 10 units; exactly three succeed."""
        service = InventoryService()
        product_id = self._seed(session_factory, service, 10)
        accepted, rejected = [], []

        def take_three():
            with session_factory() as db:
                try:
                    service.submit_transaction(db, TransactionCreate(
                        transaction_type="OUT",
                        lines=[{"product_id": product_id, "quantity": 3, "unit_cost": "1.00"}],
                    ))
                    accepted.append(1)
                except InsufficientStockError:
                    rejected.append(1)

        self._run_parallel([take_three] * 8)

        assert len(accepted) == 3
        assert len(rejected) == 5
        with session_factory() as db:
            [row] = service.get_snapshot(db)
            assert row.current_stock == 1
            assert service.get_summary(db).total_transactions == 4

    def test_disjoint_products_both_succeed(self, session_factory):
        service = InventoryService()
        with session_factory() as db:
            first = Product(code="A", name="A", unit_price=Decimal("1.00"))
            second = Product(code="B", name="B", unit_price=Decimal("1.00"))
            db.add_all([first, second])
            db.commit()
            ids = [first.id, second.id]

        results = []

        def receive(product_id):
            with session_factory() as db:
                transaction = service.submit_transaction(db, TransactionCreate(
                    transaction_type="IN",
                    lines=[{"product_id": product_id, "quantity": 5, "unit_cost": "1.00"}],
                ))
                results.append(transaction.id)

        self._run_parallel([lambda: receive(ids[0]), lambda: receive(ids[1])])

        assert len(results) == 2
        with session_factory() as db:
            assert [row.current_stock for row in service.get_snapshot(db)] == [5, 5]
