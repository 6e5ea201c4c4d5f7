import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, CheckConstraint
from sqlalchemy.orm import relationship
from stockroom.core.database import Base

TRANSACTION_TYPES = ("sale", "stock_addition")


class StockTransaction(Base):
    __tablename__ = "stock_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    type = Column(String, nullable=False, index=True)  # "sale" | "stock_addition"
    status = Column(String, nullable=False, default="completed")
    notes = Column(Text, nullable=True)
    created_by = Column(String, nullable=False, default="system", index=True)

    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(6, 4), nullable=False, default=0)
    tax = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    lines = relationship(
        "StockTransactionLine",
        back_populates="transaction",
        order_by="StockTransactionLine.id",
        cascade="all, delete-orphan",
    )


class StockTransactionLine(Base):
    __tablename__ = "stock_transaction_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_tx_lines_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    transaction_id = Column(
        String(36), ForeignKey("stock_transactions.id"), nullable=False, index=True
    )

    # snapshot of the item at posting time
    item_id = Column(String(36), nullable=False, index=True)
    sku = Column(String, nullable=False)
    name = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    transaction = relationship("StockTransaction", back_populates="lines")
