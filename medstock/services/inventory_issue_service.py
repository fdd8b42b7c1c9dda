# FILE: medstock/services/inventory_issue_service.py
from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session, selectinload

from medstock.models.department import Department
from medstock.models.inventory import Product, Warehouse, InventoryLot
from medstock.models.inventory_issue import (
    InventoryIssue,
    InventoryIssueDetail,
    InventoryIssueLotAllocation,
    IssueStatus,
)
from medstock.models.transaction import Transaction, TransactionDetail, TxType, TxStatus
from medstock.services.inventory_errors import IssueError, IssueErrorKind, MESSAGES
from medstock.services.inventory_lots import (
    available_quantity,
    get_lot_for_update,
    pick_lots_fefo,
    take_from_lot,
)
from medstock.services.inventory_number_series import next_issue_code
from medstock.utils.timezone import now_local, today_local

logger = logging.getLogger(__name__)

K = IssueErrorKind
CENT = Decimal("0.01")
# Money columns are Numeric(14, 2)
MAX_MONEY = Decimal("1e12")


# ============================================================
# NORMALIZED REQUEST
# ============================================================
@dataclass
class LotAllocationSpec:
    lot_id: int
    quantity: int


@dataclass
class SimpleLine:
    """{productId, quantity, unitPrice}: lots are picked FEFO."""
    line_no: int
    product_id: int
    quantity: int
    unit_price: Decimal


@dataclass
class ManualLine:
    """{productId, totalQuantity, unitPrice, lotAllocations}: caller's split is used as-is."""
    line_no: int
    product_id: int
    quantity: int
    unit_price: Decimal
    allocations: List[LotAllocationSpec] = field(default_factory=list)


LineItemSpec = Union[SimpleLine, ManualLine]


@dataclass
class IssueRequest:
    warehouse_id: int
    department: str
    issue_date: date
    notes: str
    lines: List[LineItemSpec]


def _money(v: Decimal) -> Decimal:
    return v.quantize(CENT, rounding=ROUND_HALF_UP)


def _as_number(v: Any) -> Optional[Decimal]:
    if isinstance(v, bool):
        return None
    try:
        n = Decimal(str(v).strip())
    except (InvalidOperation, ValueError):
        return None
    if not n.is_finite():
        return None
    return n


def parse_id(v: Any, path: str) -> int:
    if isinstance(v, bool):
        raise IssueError(K.INVALID_ID, f"{MESSAGES[K.INVALID_ID]}: {path} = {v}")
    if isinstance(v, int) and v > 0:
        return v
    if isinstance(v, str) and v.strip().isdigit() and int(v.strip()) > 0:
        return int(v.strip())
    raise IssueError(K.INVALID_ID, f"{MESSAGES[K.INVALID_ID]}: {path} = {v}")


def _as_date(v: Any) -> date:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        s = v.strip()
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise IssueError(K.ISSUE_DATE_INVALID, f"{MESSAGES[K.ISSUE_DATE_INVALID]}: {v}")


def _check_line_shape(item: Any, line_no: int) -> Tuple[int, Decimal]:
    if not isinstance(item, dict) or not item.get("productId"):
        raise IssueError.at_line(K.PRODUCT_ID_REQUIRED, line_no)

    # 0 is falsy here, so it reports "required" rather than "invalid"
    raw_qty = item.get("quantity") or item.get("totalQuantity")
    if not raw_qty:
        raise IssueError.at_line(K.QUANTITY_REQUIRED, line_no)
    qty = _as_number(raw_qty)
    if qty is None or qty <= 0 or qty != qty.to_integral_value():
        raise IssueError.at_line(K.QUANTITY_INVALID, line_no)

    raw_price = item.get("unitPrice")
    if raw_price is None:
        raise IssueError.at_line(K.UNIT_PRICE_REQUIRED, line_no)
    price = _as_number(raw_price)
    if price is None or price < 0 or price >= MAX_MONEY:
        raise IssueError.at_line(K.UNIT_PRICE_INVALID, line_no)

    return int(qty), _money(price)


def _manual_allocations(raw: List[Any], line_no: int, line_qty: int) -> List[LotAllocationSpec]:
    out: List[LotAllocationSpec] = []
    for a in raw:
        if not isinstance(a, dict) or not a.get("inventoryLotId"):
            raise IssueError(K.ALLOCATION_INVALID, f"Lot allocation is missing inventoryLotId (line {line_no})")
        q = _as_number(a.get("quantity"))
        if q is None or q <= 0 or q != q.to_integral_value():
            raise IssueError(K.ALLOCATION_INVALID, f"Lot allocation quantity must be greater than 0 (line {line_no})")
        out.append(LotAllocationSpec(
            lot_id=parse_id(a.get("inventoryLotId"), f"lotAllocations.inventoryLotId (line {line_no})"),
            quantity=int(q),
        ))

    allocated = sum(x.quantity for x in out)
    if allocated != line_qty:
        raise IssueError(
            K.ALLOCATION_INVALID,
            f"Lot allocations total {allocated} but line quantity is {line_qty} (line {line_no})",
        )
    return out


def normalize_issue_request(body: Any) -> IssueRequest:
    """
    Gate checks in a fixed order; the first failure wins.
    Accepts `details` (manual form) or `items` (simple form); a present `details` wins even when empty.
    """
    body = body if isinstance(body, dict) else {}

    warehouse_raw = body.get("warehouseId")
    if not warehouse_raw:
        raise IssueError(K.WAREHOUSE_REQUIRED)

    department = body.get("department")
    if not isinstance(department, str) or not department.strip():
        raise IssueError(K.DEPARTMENT_REQUIRED)

    issue_date_raw = body.get("issueDate")
    if not issue_date_raw:
        raise IssueError(K.ISSUE_DATE_REQUIRED)

    raw_lines = body.get("details")
    if raw_lines is None:
        raw_lines = body.get("items")
    if raw_lines is None:
        raise IssueError(K.ITEMS_REQUIRED)
    if not isinstance(raw_lines, list):
        raise IssueError(K.ITEMS_MUST_BE_ARRAY)
    if not raw_lines:
        raise IssueError(K.ITEMS_REQUIRED)

    shapes = [_check_line_shape(item, i) for i, item in enumerate(raw_lines, start=1)]

    warehouse_id = parse_id(warehouse_raw, "warehouseId")
    issue_date = _as_date(issue_date_raw)

    lines: List[LineItemSpec] = []
    for i, (item, (qty, price)) in enumerate(zip(raw_lines, shapes), start=1):
        product_id = parse_id(item.get("productId"), f"productId (line {i})")
        provided = item.get("lotAllocations")
        if isinstance(provided, list) and provided:
            lines.append(ManualLine(
                line_no=i,
                product_id=product_id,
                quantity=qty,
                unit_price=price,
                allocations=_manual_allocations(provided, i, qty),
            ))
        else:
            lines.append(SimpleLine(line_no=i, product_id=product_id, quantity=qty, unit_price=price))

    return IssueRequest(
        warehouse_id=warehouse_id,
        department=department.strip(),
        issue_date=issue_date,
        notes=str(body.get("notes") or "").strip(),
        lines=lines,
    )


# ============================================================
# STOCK AVAILABILITY
# ============================================================
def validate_stock_availability(
    db: Session,
    warehouse_id: int,
    requested: List[Tuple[int, int]],
) -> List[Dict[str, Any]]:
    """
    Advisory pre-check, nothing is reserved.
    Quantities for the same product on several lines are summed.
    Unknown products are skipped here and reported as not found later.
    """
    wanted: Dict[int, int] = {}
    for product_id, qty in requested:
        wanted[product_id] = wanted.get(product_id, 0) + int(qty)

    shortages: List[Dict[str, Any]] = []
    for product_id, qty in wanted.items():
        product = db.get(Product, product_id)
        if not product:
            continue
        available = available_quantity(db, product_id, warehouse_id)
        if qty > available:
            short = qty - available
            shortages.append({
                "productId": product_id,
                "productName": product.name,
                "requested": qty,
                "available": available,
                "shortage": short,
                "message": (
                    f"Product \"{product.name}\" has insufficient stock. "
                    f"Requested: {qty}, available: {available}, short: {short}"
                ),
            })
    return shortages


# ============================================================
# DEPARTMENT
# ============================================================
def resolve_department(db: Session, name: str) -> Department:
    name = name.strip()
    dept = db.query(Department).filter(Department.name == name).first()
    if dept:
        return dept

    slug = "-".join(name.upper().split())
    dept = Department(
        code=f"DEPT-{slug}-{int(_time.time() * 1000)}",
        name=name,
        is_active=True,
    )
    db.add(dept)
    db.flush()
    logger.info("Department auto-created id=%s name=%s", dept.id, name)
    return dept


# ============================================================
# LOT RESOLUTION
# ============================================================
def _snapshot(lot: InventoryLot, qty: int, seq: int) -> InventoryIssueLotAllocation:
    return InventoryIssueLotAllocation(
        seq=seq,
        inventory_lot_id=lot.id,
        lot_number=lot.lot_number,
        expiry_date=lot.expiry_date,
        quantity=qty,
        unit_cost=lot.unit_cost,
    )


def allocate_manual(db: Session, warehouse_id: int, product: Product, line: ManualLine) -> List[InventoryIssueLotAllocation]:
    out: List[InventoryIssueLotAllocation] = []
    for seq, a in enumerate(line.allocations, start=1):
        lot = get_lot_for_update(db, a.lot_id)
        if not lot:
            raise IssueError(K.LOT_NOT_FOUND, f"Lot not found: {a.lot_id}")
        if lot.product_id != product.id or lot.warehouse_id != warehouse_id:
            raise IssueError(
                K.LOT_MISMATCH,
                f"Lot '{lot.lot_number}' does not belong to product \"{product.name}\" in this warehouse",
            )
        if int(lot.quantity) < a.quantity:
            raise IssueError(
                K.INSUFFICIENT_STOCK,
                f"Lot '{lot.lot_number}' insufficient quantity; "
                f"available: {lot.quantity}, requested: {a.quantity}",
            )
        out.append(_snapshot(lot, a.quantity, seq))
        take_from_lot(db, lot, a.quantity)
    return out


def allocate_fefo(db: Session, warehouse_id: int, product: Product, line: SimpleLine) -> List[InventoryIssueLotAllocation]:
    picks = pick_lots_fefo(db, product=product, warehouse_id=warehouse_id, qty_needed=line.quantity)
    out: List[InventoryIssueLotAllocation] = []
    for seq, (lot, take) in enumerate(picks, start=1):
        out.append(_snapshot(lot, take, seq))
        take_from_lot(db, lot, take)
    return out


# ============================================================
# ISSUE
# ============================================================
def create_inventory_issue(db: Session, body: Any, user_id: Optional[int]) -> InventoryIssue:
    """
    Build and persist one confirmed issue. Only flushes: the caller owns the
    transaction (`with db.begin(): ...`) and any raise rolls everything back.
    """
    req = normalize_issue_request(body)

    if not db.get(Warehouse, req.warehouse_id):
        raise IssueError(K.WAREHOUSE_NOT_FOUND, f"{MESSAGES[K.WAREHOUSE_NOT_FOUND]}: {req.warehouse_id}")

    shortages = validate_stock_availability(
        db, req.warehouse_id, [(ln.product_id, ln.quantity) for ln in req.lines]
    )
    if shortages:
        raise IssueError(K.INSUFFICIENT_STOCK, errors=shortages)

    dept = resolve_department(db, req.department)

    details: List[InventoryIssueDetail] = []
    for ln in req.lines:
        product = db.get(Product, ln.product_id)
        if not product:
            raise IssueError(K.PRODUCT_NOT_FOUND, f"{MESSAGES[K.PRODUCT_NOT_FOUND]}: {ln.product_id}")

        if isinstance(ln, ManualLine):
            allocations = allocate_manual(db, req.warehouse_id, product, ln)
        else:
            allocations = allocate_fefo(db, req.warehouse_id, product, ln)

        details.append(InventoryIssueDetail(
            line_no=ln.line_no,
            product_id=ln.product_id,
            total_quantity=ln.quantity,
            unit_price=ln.unit_price,
            line_total=_money(Decimal(ln.quantity) * ln.unit_price),
            lot_allocations=allocations,
        ))

    total_amount = sum((d.line_total for d in details), Decimal("0"))
    now = now_local()
    issue_code = next_issue_code(db, today_local())

    issue = InventoryIssue(
        issue_code=issue_code,
        warehouse_id=req.warehouse_id,
        department=req.department,
        department_id=dept.id,
        issue_date=req.issue_date,
        notes=req.notes,
        total_amount=total_amount,
        status=IssueStatus.CONFIRMED,
        created_by_id=user_id,
        confirmed_by_id=user_id,
        confirmed_at=now,
        created_at=now,
        updated_at=now,
        details=details,
    )
    db.add(issue)

    tx = Transaction(
        type=TxType.OUTBOUND,
        status=TxStatus.COMPLETED,
        reference_code=issue_code,
        notes=req.notes,
        transaction_date=datetime.combine(req.issue_date, time.min),
        user_id=user_id,
        source_warehouse_id=req.warehouse_id,
        department_id=dept.id,
        completed_at=now,
    )
    for d in details:
        for a in d.lot_allocations:
            tx.details.append(TransactionDetail(
                product_id=d.product_id,
                inventory_lot_id=a.inventory_lot_id,
                quantity=a.quantity,
                unit_price=d.unit_price,
            ))
    db.add(tx)
    db.flush()

    logger.info(
        "Inventory issue created code=%s warehouse_id=%s department=%s lines=%s total=%s user_id=%s",
        issue_code, req.warehouse_id, req.department, len(details), total_amount, user_id,
    )
    return issue


def get_inventory_issue(db: Session, issue_id: int) -> InventoryIssue:
    issue = (
        db.query(InventoryIssue)
        .options(selectinload(InventoryIssue.details).selectinload(InventoryIssueDetail.lot_allocations))
        .filter(InventoryIssue.id == issue_id)
        .first()
    )
    if not issue:
        raise IssueError(K.ISSUE_NOT_FOUND, f"{MESSAGES[K.ISSUE_NOT_FOUND]}: {issue_id}")
    return issue
