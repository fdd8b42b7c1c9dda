# FILE: medstock/schemas/inventory_issue.py
from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from medstock.models.inventory_issue import IssueStatus


class CamelOut(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


# -------------------------
# ISSUE
# -------------------------
class LotAllocationOut(CamelOut):
    inventory_lot_id: int
    lot_number: str
    expiry_date: Optional[date] = None
    quantity: int
    unit_cost: Decimal


class IssueDetailOut(CamelOut):
    product_id: int
    total_quantity: int
    unit_price: Decimal
    line_total: Decimal
    lot_allocations: List[LotAllocationOut] = []


class IssueOut(CamelOut):
    id: int
    issue_code: str
    warehouse_id: int
    department: str
    department_id: Optional[int] = None
    issue_date: date
    notes: str
    details: List[IssueDetailOut] = []
    total_amount: Decimal
    status: IssueStatus
    created_by_id: Optional[int] = None
    confirmed_by_id: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# -------------------------
# SUGGESTIONS
# -------------------------
class ProductSuggestionOut(CamelOut):
    id: int
    sku: str
    name: str
    unit: str
    available_qty: int
    unit_price: Decimal
    nearest_expiry: Optional[date] = None
    lot_number: Optional[str] = None


# -------------------------
# EXPIRY ALERTS
# -------------------------
class ExpiringLotOut(CamelOut):
    lot_id: int
    product_id: int
    warehouse_id: int
    lot_number: str
    expiry_date: date
    quantity: int
    days_left: int
