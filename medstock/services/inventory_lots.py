# FILE: medstock/services/inventory_lots.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, List, Tuple, Dict, Any

from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from medstock.models.inventory import InventoryLot, Product
from medstock.services.inventory_errors import IssueError, IssueErrorKind, MESSAGES
from medstock.utils.timezone import now_local, today_local

logger = logging.getLogger(__name__)


def D(v, default="0") -> Decimal:
    try:
        if v is None:
            return Decimal(default)
        if isinstance(v, Decimal):
            return v
        return Decimal(str(v))
    except Exception:
        return Decimal(default)


def _eligible_filters(product_id: int, warehouse_id: int, today: date):
    return (
        InventoryLot.product_id == product_id,
        InventoryLot.warehouse_id == warehouse_id,
        InventoryLot.quantity > 0,
        or_(InventoryLot.expiry_date.is_(None), InventoryLot.expiry_date >= today),
    )


def _fefo_order():
    # no-expiry lots last, then soonest expiry, then oldest lot
    return (
        InventoryLot.expiry_date.is_(None),
        InventoryLot.expiry_date.asc(),
        InventoryLot.created_at.asc(),
        InventoryLot.id.asc(),
    )


def available_quantity(db: Session, product_id: int, warehouse_id: int, *, today: Optional[date] = None) -> int:
    """Sum of on-hand quantity over unexpired lots with stock."""
    total = (
        db.query(func.coalesce(func.sum(InventoryLot.quantity), 0))
        .filter(*_eligible_filters(product_id, warehouse_id, today or today_local()))
        .scalar()
    )
    return int(total or 0)


def aggregate_stock(db: Session, product_id: int, warehouse_id: int, *, today: Optional[date] = None) -> Dict[str, Any]:
    row = (
        db.query(
            func.coalesce(func.sum(InventoryLot.quantity), 0),
            func.min(InventoryLot.expiry_date),
            func.coalesce(func.sum(InventoryLot.quantity * InventoryLot.unit_cost), 0),
        )
        .filter(*_eligible_filters(product_id, warehouse_id, today or today_local()))
        .one()
    )
    stock_qty, nearest_expiry, stock_value = row
    return {
        "stock_qty": int(stock_qty or 0),
        "nearest_expiry": nearest_expiry,
        "stock_value": D(stock_value),
    }


def nearest_expiry_lot(db: Session, product_id: int, warehouse_id: int, *, today: Optional[date] = None) -> Optional[InventoryLot]:
    return (
        db.query(InventoryLot)
        .filter(*_eligible_filters(product_id, warehouse_id, today or today_local()))
        .order_by(*_fefo_order())
        .first()
    )


def pick_lots_fefo(
    db: Session,
    *,
    product: Product,
    warehouse_id: int,
    qty_needed: int,
    today: Optional[date] = None,
) -> List[Tuple[InventoryLot, int]]:
    """
    Greedy first-expired-first-out pick list for one product line.
    All or nothing: a shortfall raises instead of returning a partial pick.
    Candidate rows are locked so concurrent issuers queue on the same lots.
    """
    if qty_needed <= 0:
        return []

    lots = (
        db.query(InventoryLot)
        .filter(*_eligible_filters(product.id, warehouse_id, today or today_local()))
        .order_by(*_fefo_order())
        .with_for_update()
        .populate_existing()
        .all()
    )

    if not lots:
        raise IssueError(
            IssueErrorKind.LOT_NOT_FOUND,
            f"{MESSAGES[IssueErrorKind.LOT_NOT_FOUND]} for product \"{product.name}\" ({product.sku})",
            status_code=400,
        )

    remaining = int(qty_needed)
    picks: List[Tuple[InventoryLot, int]] = []

    for lot in lots:
        available = int(lot.quantity or 0)
        if available <= 0:
            continue
        take = min(available, remaining)
        picks.append((lot, take))
        remaining -= take
        if remaining <= 0:
            break

    if remaining > 0:
        raise IssueError(
            IssueErrorKind.INSUFFICIENT_STOCK,
            f"{MESSAGES[IssueErrorKind.INSUFFICIENT_STOCK]} for product \"{product.name}\". "
            f"Short by: {remaining} {product.unit or 'unit'}",
        )
    return picks


def get_lot_for_update(db: Session, lot_id: int) -> Optional[InventoryLot]:
    return (
        db.query(InventoryLot)
        .filter(InventoryLot.id == lot_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def take_from_lot(db: Session, lot: InventoryLot, qty: int) -> None:
    """
    Decrement one lot inside the caller's transaction.
    The UPDATE only matches while the lot still holds `qty`, so a concurrent
    decrement can never drive quantity below zero or be lost.
    """
    matched = (
        db.query(InventoryLot)
        .filter(InventoryLot.id == lot.id, InventoryLot.quantity >= qty)
        .update(
            {
                InventoryLot.quantity: InventoryLot.quantity - qty,
                InventoryLot.updated_at: now_local(),
            },
            synchronize_session=False,
        )
    )
    if matched != 1:
        logger.warning("Lot decrement rejected lot_id=%s lot_number=%s qty=%s", lot.id, lot.lot_number, qty)
        raise IssueError(IssueErrorKind.STOCK_CONFLICT)
    db.expire(lot, ["quantity", "updated_at"])


def expiring_lots(
    db: Session,
    days: int = 30,
    *,
    warehouse_id: Optional[int] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Lots with stock whose expiry falls on or before today + `days`
    (already expired lots included, days_left negative).
    """
    today = today or today_local()
    limit_date = today + timedelta(days=days)

    q = db.query(InventoryLot).filter(
        InventoryLot.expiry_date.isnot(None),
        InventoryLot.expiry_date <= limit_date,
        InventoryLot.quantity > 0,
    )
    if warehouse_id:
        q = q.filter(InventoryLot.warehouse_id == warehouse_id)

    out = []
    for lot in q.order_by(InventoryLot.expiry_date.asc(), InventoryLot.id.asc()).all():
        out.append({
            "lot_id": lot.id,
            "product_id": lot.product_id,
            "warehouse_id": lot.warehouse_id,
            "lot_number": lot.lot_number,
            "expiry_date": lot.expiry_date,
            "quantity": int(lot.quantity),
            "days_left": (lot.expiry_date - today).days,
        })
    return out
