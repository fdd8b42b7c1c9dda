# FILE: medstock/services/inventory_number_series.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from medstock.core.config import settings
from medstock.models.inventory import InvNumberSeries
from medstock.models.inventory_issue import InventoryIssue
from medstock.utils.timezone import today_local

ISSUE_SERIES_KEY = "ISSUE"


def _date_key(d: date) -> int:
    return int(d.strftime("%Y%m%d"))


def _lock_series(db: Session, key: str, dk: int) -> Optional[InvNumberSeries]:
    return (
        db.query(InvNumberSeries)
        .filter(InvNumberSeries.key == key, InvNumberSeries.date_key == dk)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _issues_created_on(db: Session, d: date) -> int:
    start = datetime.combine(d, time.min)
    end = start + timedelta(days=1)
    return int(
        db.query(func.count(InventoryIssue.id))
        .filter(InventoryIssue.created_at >= start, InventoryIssue.created_at < end)
        .scalar()
        or 0
    )


def next_document_number(
    db: Session,
    key: str,
    doc_date: date,
    *,
    seed: int = 1,
) -> int:
    """
    Reserve the next daily sequence number for `key`.
    Runs inside the caller's transaction; the series row is locked so two
    issuers on the same day cannot draw the same number.
    """
    dk = _date_key(doc_date)

    row = _lock_series(db, key, dk)
    if not row:
        row = InvNumberSeries(key=key, date_key=dk, next_seq=seed)
        try:
            # savepoint keeps the surrounding unit-of-work alive on a lost race
            with db.begin_nested():
                db.add(row)
                db.flush()
        except IntegrityError:
            row = _lock_series(db, key, dk)
            if not row:
                raise

    seq = int(row.next_seq or 1)
    row.next_seq = seq + 1
    db.flush()
    return seq


def next_issue_code(db: Session, doc_date: Optional[date] = None) -> str:
    """
    Example: PX-20251105-001
    First issue of the day seeds the series from issues already stored for
    that date, so codes keep counting when the series row is missing.
    """
    d = doc_date or today_local()
    seed = _issues_created_on(db, d) + 1
    seq = next_document_number(db, ISSUE_SERIES_KEY, d, seed=seed)
    return f"{settings.ISSUE_CODE_PREFIX}-{d.strftime('%Y%m%d')}-{seq:0{settings.ISSUE_CODE_PAD}d}"
