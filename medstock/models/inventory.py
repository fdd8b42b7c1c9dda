# FILE: medstock/models/inventory.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Text, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from medstock.db.base import Base

Money = Numeric(14, 2)
Cost = Numeric(14, 4)

MYSQL_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


# -------------------------
# Masters (read-only to the issue flow)
# -------------------------
class Warehouse(Base):
    __tablename__ = "inv_warehouses"
    __table_args__ = (MYSQL_ARGS, )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False)
    address = Column(String(500), default="")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lots = relationship("InventoryLot", back_populates="warehouse")


class Product(Base):
    __tablename__ = "inv_products"
    __table_args__ = (MYSQL_ARGS, )

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(250), nullable=False, index=True)
    description = Column(Text, nullable=True)
    active_ingredient = Column(String(250), nullable=True)
    unit = Column(String(32), nullable=False)  # tablet / ampoule / bottle ...
    minimum_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lots = relationship("InventoryLot", back_populates="product")


# -------------------------
# Lot ledger
# -------------------------
class InventoryLot(Base):
    """
    One dated batch of a product at a warehouse.
    Lots at quantity 0 are kept for history; they are never deleted.
    """
    __tablename__ = "inv_lots"
    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", "lot_number", name="uq_inv_lots_product_wh_lot"),
        Index("ix_inv_lots_product_wh", "product_id", "warehouse_id"),
        Index("ix_inv_lots_expiry", "expiry_date"),
        CheckConstraint("quantity >= 0", name="ck_inv_lots_quantity_non_negative"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("inv_products.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("inv_warehouses.id"), nullable=False, index=True)

    lot_number = Column(String(100), nullable=False)
    expiry_date = Column(Date, nullable=True)

    quantity = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Cost, nullable=False, default=Decimal("0"))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="lots")
    warehouse = relationship("Warehouse", back_populates="lots")


class InvNumberSeries(Base):
    __tablename__ = "inv_number_series"
    __table_args__ = (
        UniqueConstraint("key", "date_key", name="uq_inv_number_series_key_date"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True)
    key = Column(String(30), nullable=False)         # ISSUE etc.
    date_key = Column(Integer, nullable=False)      # YYYYMMDD
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
