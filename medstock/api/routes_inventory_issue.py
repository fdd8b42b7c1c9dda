# FILE: medstock/api/routes_inventory_issue.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from medstock.api.deps import Actor, current_actor, get_db
from medstock.core.config import settings
from medstock.core.rbac import require_any
from medstock.schemas.inventory_issue import ExpiringLotOut, IssueOut, ProductSuggestionOut
from medstock.services.inventory_errors import IssueError, IssueErrorKind, MESSAGES
from medstock.services.inventory_issue_service import (
    parse_id,
    create_inventory_issue,
    get_inventory_issue,
)
from medstock.services.inventory_issue_suggestions import product_suggestions
from medstock.services.inventory_lots import expiring_lots
from medstock.utils.resp import ok, err

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/inventory-issues", tags=["inventory-issues"])

P_ISSUE_VIEW = ["inventory.issues.view", "inventory.issues.create", "inventory.issues.manage"]
P_ISSUE_CREATE = ["inventory.issues.create", "inventory.issues.manage"]

SERVER_ERROR = "Server error while processing the inventory issue. Please try again later."


def _safe_err(e: Exception):
    if isinstance(e, IssueError):
        return err(e.message, e.status_code, e.errors)
    if isinstance(e, (IntegrityError, DataError)):
        # store-level constraint failures: surface the driver messages
        orig = getattr(e, "orig", None)
        details = [str(a) for a in getattr(orig, "args", ())] or [str(orig or e)]
        return err(MESSAGES[IssueErrorKind.DATA_VALIDATION], 400, details)
    status_code = getattr(e, "status_code", None)
    if status_code and getattr(e, "detail", None):
        return err(str(e.detail), status_code)
    return err(SERVER_ERROR, 500)


@router.get("/product-suggestions")
def product_suggestions_api(
    warehouseId: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
):
    try:
        require_any(actor, P_ISSUE_VIEW)
        if not warehouseId:
            raise IssueError(IssueErrorKind.WAREHOUSE_REQUIRED)
        warehouse_id = parse_id(warehouseId, "warehouseId")

        rows = product_suggestions(db, warehouse_id, q)
        data = [ProductSuggestionOut.model_validate(r).model_dump(by_alias=True) for r in rows]
        return ok(data, "Product suggestions loaded")
    except IssueError as e:
        return _safe_err(e)
    except Exception as e:
        if not getattr(e, "status_code", None):
            logger.exception("Product suggestions failed warehouse_id=%s q=%s", warehouseId, q)
        return _safe_err(e)


@router.post("")
def create_inventory_issue_api(
    body: Any = Body(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
):
    try:
        require_any(actor, P_ISSUE_CREATE)
        with db.begin():
            issue = create_inventory_issue(db, body, actor.id)
        issue = get_inventory_issue(db, issue.id)
        return ok(IssueOut.model_validate(issue).model_dump(by_alias=True),
                  "Inventory issue created successfully", status_code=201)

    except IssueError as e:
        logger.info("Inventory issue rejected user_id=%s kind=%s msg=%s", actor.id, e.kind.value, e.message)
        return _safe_err(e)

    except (IntegrityError, DataError) as e:
        logger.exception("Inventory issue store validation failed user_id=%s", actor.id)
        return _safe_err(e)

    except Exception as e:
        if not getattr(e, "status_code", None):
            logger.exception("Unexpected error in create_inventory_issue_api user_id=%s", actor.id)
        return _safe_err(e)


@router.get("/expiring-lots")
def expiring_lots_api(
    warehouseId: Optional[str] = Query(None),
    days: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
):
    try:
        require_any(actor, P_ISSUE_VIEW)
        warehouse_id = parse_id(warehouseId, "warehouseId") if warehouseId else None
        window = settings.EXPIRY_ALERT_DAYS if days is None else days

        rows = expiring_lots(db, window, warehouse_id=warehouse_id)
        data = [ExpiringLotOut.model_validate(r).model_dump(by_alias=True) for r in rows]
        return ok(data, "Expiring lots loaded")
    except IssueError as e:
        return _safe_err(e)
    except Exception as e:
        if not getattr(e, "status_code", None):
            logger.exception("Expiring lots failed warehouse_id=%s days=%s", warehouseId, days)
        return _safe_err(e)


@router.get("/{issue_id}")
def get_inventory_issue_api(issue_id: int, db: Session = Depends(get_db), actor: Actor = Depends(current_actor)):
    try:
        require_any(actor, P_ISSUE_VIEW)
        issue = get_inventory_issue(db, issue_id)
        return ok(IssueOut.model_validate(issue).model_dump(by_alias=True))
    except IssueError as e:
        return _safe_err(e)
    except Exception as e:
        if not getattr(e, "status_code", None):
            logger.exception("Unexpected error in get_inventory_issue_api issue_id=%s", issue_id)
        return _safe_err(e)
