"""FEFO picking and stock aggregation over inventory lots."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from medstock.services.inventory_errors import IssueError, IssueErrorKind
from medstock.services.inventory_lots import (
    aggregate_stock,
    available_quantity,
    expiring_lots,
    nearest_expiry_lot,
    pick_lots_fefo,
    take_from_lot,
)
from medstock.utils.timezone import now_local
from tests.conftest import add_lot, add_product, add_warehouse


@pytest.fixture
def wh(db):
    return add_warehouse(db)


@pytest.fixture
def para(db):
    return add_product(db)


def _picked(picks):
    return [(lot.lot_number, take) for lot, take in picks]


class TestPickLotsFefo:

    def test_earliest_expiry_first(self, db, wh, para):
        add_lot(db, para, wh, "LATE", 50, expires_in=200)
        add_lot(db, para, wh, "SOON", 30, expires_in=20)

        picks = pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=40)

        assert _picked(picks) == [("SOON", 30), ("LATE", 10)]

    def test_lots_without_expiry_go_last(self, db, wh, para):
        add_lot(db, para, wh, "NO-EXP", 100)
        add_lot(db, para, wh, "DATED", 10, expires_in=400)

        picks = pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=15)

        assert _picked(picks) == [("DATED", 10), ("NO-EXP", 5)]

    def test_same_expiry_takes_older_lot_first(self, db, wh, para):
        base = datetime(2026, 1, 1, 8, 0, 0)
        add_lot(db, para, wh, "NEWER", 10, expires_in=90, created_at=base + timedelta(days=3))
        add_lot(db, para, wh, "OLDER", 10, expires_in=90, created_at=base)

        picks = pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=12)

        assert _picked(picks) == [("OLDER", 10), ("NEWER", 2)]

    def test_expired_and_empty_lots_are_skipped(self, db, wh, para):
        add_lot(db, para, wh, "EXPIRED", 100, expires_in=-1)
        add_lot(db, para, wh, "EMPTY", 0, expires_in=10)
        add_lot(db, para, wh, "GOOD", 20, expires_in=60)

        picks = pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=20)

        assert _picked(picks) == [("GOOD", 20)]

    def test_lot_expiring_today_is_still_eligible(self, db, wh, para):
        add_lot(db, para, wh, "TODAY", 5, expires_in=0)

        picks = pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=5)

        assert _picked(picks) == [("TODAY", 5)]

    def test_other_warehouse_is_ignored(self, db, wh, para):
        ward = add_warehouse(db, code="WH-WARD", name="Ward store")
        add_lot(db, para, ward, "WARD-1", 100, expires_in=30)

        with pytest.raises(IssueError) as exc:
            pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=1)

        assert exc.value.kind == IssueErrorKind.LOT_NOT_FOUND
        assert exc.value.status_code == 400

    def test_shortfall_raises_and_reports_missing_units(self, db, wh, para):
        add_lot(db, para, wh, "A", 30, expires_in=30)
        add_lot(db, para, wh, "B", 20, expires_in=60)

        with pytest.raises(IssueError, match="Short by: 10 tablet") as exc:
            pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=60)

        assert exc.value.kind == IssueErrorKind.INSUFFICIENT_STOCK

    def test_picking_does_not_change_quantities(self, db, wh, para):
        lot = add_lot(db, para, wh, "A", 30, expires_in=30)

        pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=25)
        db.rollback()
        db.refresh(lot)

        assert lot.quantity == 30

    def test_zero_needed_returns_nothing(self, db, wh, para):
        assert pick_lots_fefo(db, product=para, warehouse_id=wh.id, qty_needed=0) == []


class TestTakeFromLot:

    def test_decrements_quantity(self, db, wh, para):
        lot = add_lot(db, para, wh, "A", 30, expires_in=30)

        take_from_lot(db, lot, 12)
        db.commit()

        assert lot.quantity == 18
        assert abs(lot.updated_at - now_local()) < timedelta(minutes=5)

    def test_refuses_to_go_below_zero(self, db, wh, para):
        lot = add_lot(db, para, wh, "A", 5, expires_in=30)

        with pytest.raises(IssueError) as exc:
            take_from_lot(db, lot, 6)
        db.rollback()

        assert exc.value.kind == IssueErrorKind.STOCK_CONFLICT
        assert exc.value.status_code == 409
        db.refresh(lot)
        assert lot.quantity == 5


class TestStockQueries:

    def test_available_quantity_counts_only_usable_lots(self, db, wh, para):
        add_lot(db, para, wh, "A", 30, expires_in=30)
        add_lot(db, para, wh, "B", 20)
        add_lot(db, para, wh, "OLD", 99, expires_in=-5)

        assert available_quantity(db, para.id, wh.id) == 50

    def test_available_quantity_without_lots_is_zero(self, db, wh, para):
        assert available_quantity(db, para.id, wh.id) == 0

    def test_aggregate_stock(self, db, wh, para):
        add_lot(db, para, wh, "A", 10, expires_in=30, unit_cost="2000")
        add_lot(db, para, wh, "B", 5, expires_in=10, unit_cost="3000")

        stock = aggregate_stock(db, para.id, wh.id)

        assert stock["stock_qty"] == 15
        assert stock["stock_value"] == Decimal("35000")
        assert stock["nearest_expiry"] is not None

    def test_nearest_expiry_lot_follows_fefo(self, db, wh, para):
        add_lot(db, para, wh, "A", 10, expires_in=30)
        add_lot(db, para, wh, "B", 5, expires_in=10)

        assert nearest_expiry_lot(db, para.id, wh.id).lot_number == "B"

    def test_expiring_lots_window(self, db, wh, para):
        add_lot(db, para, wh, "SOON", 10, expires_in=5)
        add_lot(db, para, wh, "GONE", 3, expires_in=-2)
        add_lot(db, para, wh, "FAR", 10, expires_in=120)
        add_lot(db, para, wh, "NONE", 10)

        rows = expiring_lots(db, days=30, warehouse_id=wh.id)

        assert [(r["lot_number"], r["days_left"]) for r in rows] == [("GONE", -2), ("SOON", 5)]
