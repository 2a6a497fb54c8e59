"""Tests for database models and constraints."""
from decimal import Decimal

import pytest
from sqlalchemy import delete, text
from sqlalchemy.exc import IntegrityError

from stockledger.error_handlers import LedgerImmutableError
from stockledger.models import Product, Transaction


class TestProductModel:
    """Tests for Product model."""

    def test_create_product(self, test_db):
        product = Product(code="TEST001", name="Test Product", category="books", unit_price=Decimal("9.99"))
        test_db.add(product)
        test_db.commit()

        assert product.id is not None
        assert product.min_stock_level == 0

    def test_unique_code_constraint(self, test_db):
        test_db.add(Product(code="DUP001", name="Product 1", unit_price=Decimal("1.00")))
        test_db.commit()

        test_db.add(Product(code="DUP001", name="Product 2", unit_price=Decimal("1.00")))
        with pytest.raises(IntegrityError):
            test_db.commit()

    def test_positive_price_constraint(self, test_db):
        test_db.add(Product(code="FREE", name="Free", unit_price=Decimal("0.00")))
        with pytest.raises(IntegrityError):
            test_db.commit()


class TestLedgerImmutability:
    """Accepted transactions can be neither modified nor removed."""

    def test_transaction_update_rejected(self, test_db, sample_products, submit):
        transaction = submit("IN", [(sample_products[0].id, 1, "1.00")])

        transaction.remarks = "rewritten"
        with pytest.raises(LedgerImmutableError):
            test_db.commit()
        test_db.rollback()

        assert test_db.get(Transaction, transaction.id).remarks is None

    def test_line_update_rejected(self, test_db, sample_products, submit):
        transaction = submit("IN", [(sample_products[0].id, 1, "1.00")])

        transaction.lines[0].quantity = 500
        with pytest.raises(LedgerImmutableError):
            test_db.commit()

    def test_transaction_delete_rejected(self, test_db, sample_products, submit):
        transaction = submit("IN", [(sample_products[0].id, 1, "1.00")])

        test_db.delete(transaction)
        with pytest.raises(LedgerImmutableError):
            test_db.commit()

    def test_total_amount_property(self, test_db, sample_products, submit):
        mouse, book, _ = sample_products
        transaction = submit("IN", [(mouse.id, 3, "10.00"), (book.id, 2, "5.50")])

        assert transaction.total_amount == Decimal("41.00")
        assert transaction.line_count == 2


class TestReferentialIntegrity:
    """The database itself refuses to orphan transaction lines."""

    def test_foreign_keys_enforced(self, test_db):
        assert test_db.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_referenced_product_delete_restricted(self, test_db, sample_products, submit):
        mouse = sample_products[0]
        submit("IN", [(mouse.id, 1, "1.00")])

        # Bulk delete bypasses the catalog and the mapper listeners
        with pytest.raises(IntegrityError):
            test_db.execute(delete(Product).where(Product.id == mouse.id))
        test_db.rollback()

        assert test_db.get(Product, mouse.id) is not None
