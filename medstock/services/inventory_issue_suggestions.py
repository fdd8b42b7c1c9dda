# FILE: medstock/services/inventory_issue_suggestions.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from medstock.core.config import settings
from medstock.models.inventory import Product
from medstock.services.inventory_lots import aggregate_stock, nearest_expiry_lot

D0 = Decimal("0")


def _like_escape(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def product_suggestions(db: Session, warehouse_id: int, q: Optional[str] = None, limit: Optional[int] = None):
    """
    Used by the issue screen while typing a product:
    - matches name or SKU (case-insensitive, literal text)
    - available qty counts unexpired lots with stock in this warehouse
    - price/expiry/lot hint comes from the lot FEFO would take first
    """
    query = db.query(Product)
    if q and q.strip():
        like = f"%{_like_escape(q.strip())}%"
        query = query.filter(Product.name.ilike(like, escape="\\") | Product.sku.ilike(like, escape="\\"))

    rows = query.order_by(Product.name.asc(), Product.id.asc()).limit(limit or settings.SUGGESTION_LIMIT).all()

    out: list[dict[str, Any]] = []
    for product in rows:
        stock = aggregate_stock(db, product.id, warehouse_id)
        lot = nearest_expiry_lot(db, product.id, warehouse_id)
        out.append({
            "id": product.id,
            "sku": product.sku,
            "name": product.name,
            "unit": product.unit,
            "availableQty": stock["stock_qty"],
            "unitPrice": lot.unit_cost if lot else D0,
            "nearestExpiry": lot.expiry_date if lot else None,
            "lotNumber": lot.lot_number if lot else None,
        })
    return out
