"""
Product model for the inventory catalog.
"""
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stockledger.core.database import Base


class Product(Base):
    """Catalog product. Stock is never stored here; it is projected from the ledger."""

    __tablename__ = "products"

    # Product identification
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="other")

    # Pricing and thresholds
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("unit_price > 0", name="unit_price_positive"),
        CheckConstraint("min_stock_level >= 0", name="min_stock_level_non_negative"),
        Index("idx_products_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, code={self.code}, name={self.name})>"
