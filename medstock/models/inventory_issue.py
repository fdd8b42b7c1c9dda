from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, Numeric,
    ForeignKey, Enum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from medstock.db.base import Base
from medstock.models.inventory import Money, Cost, MYSQL_ARGS


class IssueStatus(str, enum.Enum):
    CONFIRMED = "confirmed"


class InventoryIssue(Base):
    """
    Outbound issue document (phieu xuat kho) to a hospital department.
    Written once, already CONFIRMED, never edited afterwards.
    """
    __tablename__ = "inv_issues"
    __table_args__ = (
        UniqueConstraint("issue_code", name="uq_inv_issues_issue_code"),
        Index("ix_inv_issues_wh_date", "warehouse_id", "issue_date"),
        Index("ix_inv_issues_department", "department"),
        Index("ix_inv_issues_status", "status"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    issue_code = Column(String(64), nullable=False, index=True)

    warehouse_id = Column(Integer, ForeignKey("inv_warehouses.id"), nullable=False, index=True)
    department = Column(String(200), nullable=False)
    department_id = Column(Integer, ForeignKey("inv_departments.id"), nullable=True, index=True)

    issue_date = Column(Date, nullable=False, default=date.today)
    notes = Column(Text, nullable=False, default="")

    total_amount = Column(Money, nullable=False, default=Decimal("0"))
    status = Column(Enum(IssueStatus, name="inv_issue_status",
                         values_callable=lambda e: [x.value for x in e]),
                    nullable=False, default=IssueStatus.CONFIRMED)

    # actor ids come from the token; users live outside this service
    created_by_id = Column(Integer, nullable=True, index=True)
    confirmed_by_id = Column(Integer, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    warehouse = relationship("Warehouse")
    department_ref = relationship("Department")

    details = relationship(
        "InventoryIssueDetail",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="InventoryIssueDetail.line_no",
    )


class InventoryIssueDetail(Base):
    __tablename__ = "inv_issue_details"
    __table_args__ = (
        Index("ix_inv_issue_details_issue", "issue_id"),
        Index("ix_inv_issue_details_product", "product_id"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    issue_id = Column(Integer, ForeignKey("inv_issues.id", ondelete="CASCADE"), nullable=False)
    line_no = Column(Integer, nullable=False, default=1)

    product_id = Column(Integer, ForeignKey("inv_products.id"), nullable=False)
    total_quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False, default=Decimal("0"))
    line_total = Column(Money, nullable=False, default=Decimal("0"))

    issue = relationship("InventoryIssue", back_populates="details")
    product = relationship("Product")

    lot_allocations = relationship(
        "InventoryIssueLotAllocation",
        back_populates="detail",
        cascade="all, delete-orphan",
        order_by="InventoryIssueLotAllocation.seq",
    )


class InventoryIssueLotAllocation(Base):
    """Snapshot of the lot as it was when stock was taken from it."""
    __tablename__ = "inv_issue_lot_allocations"
    __table_args__ = (
        Index("ix_inv_issue_alloc_detail", "detail_id"),
        Index("ix_inv_issue_alloc_lot", "inventory_lot_id"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    detail_id = Column(Integer, ForeignKey("inv_issue_details.id", ondelete="CASCADE"), nullable=False)
    seq = Column(Integer, nullable=False, default=1)

    inventory_lot_id = Column(Integer, ForeignKey("inv_lots.id"), nullable=False)
    lot_number = Column(String(100), nullable=False)
    expiry_date = Column(Date, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Cost, nullable=False, default=Decimal("0"))

    detail = relationship("InventoryIssueDetail", back_populates="lot_allocations")
