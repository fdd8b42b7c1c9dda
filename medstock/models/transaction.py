from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Enum, Index
)
from sqlalchemy.orm import relationship

from medstock.db.base import Base
from medstock.models.inventory import Money, MYSQL_ARGS


class TxType(str, enum.Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"


class TxStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Transaction(Base):
    """
    Generic stock movement header shared by inbound and outbound flows.
    OUTBOUND rows carry source_warehouse_id + department_id.
    """
    __tablename__ = "inv_transactions"
    __table_args__ = (
        Index("ix_inv_tx_date_type", "transaction_date", "type"),
        Index("ix_inv_tx_status", "status"),
        Index("ix_inv_tx_reference", "reference_code"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(TxType, name="inv_tx_type"), nullable=False)
    status = Column(Enum(TxStatus, name="inv_tx_status"), nullable=False, default=TxStatus.DRAFT)
    reference_code = Column(String(64), nullable=True)
    notes = Column(Text, nullable=False, default="")
    transaction_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(Integer, nullable=True)

    # INBOUND
    supplier_id = Column(Integer, nullable=True)
    destination_warehouse_id = Column(Integer, ForeignKey("inv_warehouses.id"), nullable=True)

    # OUTBOUND
    department_id = Column(Integer, ForeignKey("inv_departments.id"), nullable=True)
    source_warehouse_id = Column(Integer, ForeignKey("inv_warehouses.id"), nullable=True)

    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    details = relationship("TransactionDetail", back_populates="transaction", cascade="all, delete-orphan")


class TransactionDetail(Base):
    __tablename__ = "inv_transaction_details"
    __table_args__ = (
        Index("ix_inv_txd_tx", "transaction_id"),
        Index("ix_inv_txd_product", "product_id"),
        Index("ix_inv_txd_lot", "inventory_lot_id"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("inv_transactions.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("inv_products.id"), nullable=False)
    inventory_lot_id = Column(Integer, ForeignKey("inv_lots.id"), nullable=True)  # required for OUTBOUND
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False, default=Decimal("0"))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    transaction = relationship("Transaction", back_populates="details")
