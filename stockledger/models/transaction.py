"""
Ledger models: transactions and their lines.

Rows in both tables are append-only. Mapper listeners reject any UPDATE or
DELETE issued through the ORM.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    String, Integer, Numeric, ForeignKey, Index, Text, DateTime, CheckConstraint, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.core.database import Base
from stockledger.error_handlers import LedgerImmutableError


class Transaction(Base):
    """A stock movement event (IN, OUT or ADJ) owning one or more lines."""

    __tablename__ = "transactions"

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(3), nullable=False)  # 'IN', 'OUT', 'ADJ'
    adjustment_direction: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True
    )  # 'increase' / 'decrease', ADJ only
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    lines: Mapped[list["TransactionLine"]] = relationship(
        back_populates="transaction",
        order_by="TransactionLine.line_no",
        cascade="save-update, merge",
        lazy="selectin"
    )

    __table_args__ = (
        Index("idx_transactions_type", "transaction_type"),
        Index("idx_transactions_timestamp", "timestamp"),
    )

    @property
    def total_amount(self) -> Decimal:
        """Sum of quantity * unit_cost over all lines."""
        return sum((line.total_cost for line in self.lines), Decimal("0.00"))

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.transaction_type}, lines={len(self.lines)})>"


class TransactionLine(Base):
    """One product / quantity / cost entry of a transaction."""

    __tablename__ = "transaction_lines"

    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    transaction = relationship("Transaction", back_populates="lines")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_cost > 0", name="unit_cost_positive"),
        Index("idx_transaction_lines_product", "product_id", "transaction_id"),
    )

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.unit_cost

    @property
    def product_code(self) -> Optional[str]:
        return self.product.code if self.product is not None else None

    @property
    def product_name(self) -> Optional[str]:
        return self.product.name if self.product is not None else None

    def __repr__(self) -> str:
        return f"<TransactionLine(id={self.id}, product_id={self.product_id}, qty={self.quantity})>"


def _reject_ledger_update(mapper, connection, target):
    raise LedgerImmutableError(type(target).__name__, target.id)


def _reject_ledger_delete(mapper, connection, target):
    raise LedgerImmutableError(type(target).__name__, target.id)


for _model in (Transaction, TransactionLine):
    event.listen(_model, "before_update", _reject_ledger_update)
    event.listen(_model, "before_delete", _reject_ledger_delete)
