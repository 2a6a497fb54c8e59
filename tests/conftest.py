"""Shared test fixtures for all tests."""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "stockledger-test-logs"))

import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from stockledger.core.database import Base, create_db_engine, get_db
from stockledger.models import Product
from stockledger.main import app
from stockledger.schemas import TransactionCreate
from stockledger.service import InventoryService, get_inventory_service


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_db_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def service():
    """A fresh inventory service with an empty cache and lock registry."""
    return InventoryService(cache_enabled=True)


@pytest.fixture(scope="function")
def client(test_db, service):
    """Create a test client with dependency overrides."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inventory_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_products(test_db):
    """Create sample products for testing, in catalog order."""
    products = [
        Product(
            code="ELEC-001",
            name="Wireless Mouse",
            category="electronics",
            unit_price=Decimal("25.00"),
            min_stock_level=5
        ),
        Product(
            code="BOOK-001",
            name="python Cookbook",
            category="books",
            unit_price=Decimal("45.50"),
            min_stock_level=2
        ),
        Product(
            code="FOOD-001",
            name="Green Tea",
            category="food",
            unit_price=Decimal("3.20"),
            min_stock_level=10
        ),
    ]
    for p in products:
        test_db.add(p)
    test_db.commit()
    return products


@pytest.fixture
def submit(test_db, service):
    """Submit a transaction through the service.

    Lines are (product_id, quantity, unit_cost) tuples.
    """
    def _submit(transaction_type, lines, **kwargs):
        data = TransactionCreate(
            transaction_type=transaction_type,
            lines=[
                {"product_id": product_id, "quantity": quantity, "unit_cost": unit_cost}
                for product_id, quantity, unit_cost in lines
            ],
            **kwargs
        )
        return service.submit_transaction(test_db, data)

    return _submit
