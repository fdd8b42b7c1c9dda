"""Request gate checks run before any store access."""

from datetime import date
from decimal import Decimal

import pytest

from medstock.services.inventory_errors import IssueError, IssueErrorKind
from medstock.services.inventory_issue_service import (
    ManualLine,
    SimpleLine,
    normalize_issue_request,
)

K = IssueErrorKind


def _body(**overrides):
    body = {
        "warehouseId": "1",
        "department": "Internal Medicine",
        "issueDate": "2026-10-17",
        "items": [{"productId": "7", "quantity": 10, "unitPrice": 5000}],
    }
    body.update(overrides)
    return body


def _kind(body):
    with pytest.raises(IssueError) as exc:
        normalize_issue_request(body)
    return exc.value


class TestGateOrder:

    def test_empty_body_reports_warehouse_first(self):
        assert _kind({}).kind == K.WAREHOUSE_REQUIRED

    def test_non_object_body(self):
        assert _kind(None).kind == K.WAREHOUSE_REQUIRED
        assert _kind(["x"]).kind == K.WAREHOUSE_REQUIRED

    def test_department_checked_after_warehouse(self):
        assert _kind(_body(department="  ")).kind == K.DEPARTMENT_REQUIRED
        assert _kind(_body(department=None, warehouseId=None)).kind == K.WAREHOUSE_REQUIRED

    def test_issue_date_required(self):
        assert _kind(_body(issueDate="")).kind == K.ISSUE_DATE_REQUIRED

    def test_items_absent_or_empty(self):
        assert _kind(_body(items=None)).kind == K.ITEMS_REQUIRED
        assert _kind(_body(items=[])).kind == K.ITEMS_REQUIRED

    def test_items_not_a_list(self):
        err = _kind(_body(items={"productId": "7"}))
        assert err.kind == K.ITEMS_MUST_BE_ARRAY
        assert err.status_code == 400

    def test_empty_object_is_not_a_list(self):
        assert _kind(_body(items={})).kind == K.ITEMS_MUST_BE_ARRAY

    def test_empty_details_are_not_replaced_by_items(self):
        assert _kind(_body(details=[])).kind == K.ITEMS_REQUIRED

    def test_details_of_wrong_type(self):
        assert _kind(_body(details="none")).kind == K.ITEMS_MUST_BE_ARRAY

    def test_line_shape_checked_before_id_casts(self):
        err = _kind(_body(warehouseId="abc", items=[{"productId": "7", "unitPrice": 1}]))
        assert err.kind == K.QUANTITY_REQUIRED


class TestLineChecks:

    def test_missing_product(self):
        err = _kind(_body(items=[{"quantity": 1, "unitPrice": 1}]))
        assert err.kind == K.PRODUCT_ID_REQUIRED
        assert err.message.endswith("(line 1)")

    def test_zero_quantity_reports_required(self):
        err = _kind(_body(items=[{"productId": "7", "quantity": 0, "unitPrice": 1}]))
        assert err.kind == K.QUANTITY_REQUIRED

    @pytest.mark.parametrize("qty", [-3, "abc", 1.5])
    def test_bad_quantity(self, qty):
        err = _kind(_body(items=[{"productId": "7", "quantity": qty, "unitPrice": 1}]))
        assert err.kind == K.QUANTITY_INVALID

    def test_missing_price(self):
        err = _kind(_body(items=[{"productId": "7", "quantity": 1}]))
        assert err.kind == K.UNIT_PRICE_REQUIRED

    def test_negative_price(self):
        err = _kind(_body(items=[{"productId": "7", "quantity": 1, "unitPrice": -1}]))
        assert err.kind == K.UNIT_PRICE_INVALID

    @pytest.mark.parametrize("price", ["1e30", 10**12])
    def test_price_beyond_money_range(self, price):
        err = _kind(_body(items=[{"productId": "7", "quantity": 1, "unitPrice": price}]))
        assert err.kind == K.UNIT_PRICE_INVALID
        assert err.message.endswith("(line 1)")

    def test_largest_money_price_is_accepted(self):
        req = normalize_issue_request(_body(items=[{"productId": "7", "quantity": 1, "unitPrice": "999999999999.99"}]))
        assert req.lines[0].unit_price == Decimal("999999999999.99")

    def test_zero_price_is_allowed(self):
        req = normalize_issue_request(_body(items=[{"productId": "7", "quantity": 1, "unitPrice": 0}]))
        assert req.lines[0].unit_price == Decimal("0.00")

    def test_error_names_the_failing_line(self):
        items = [
            {"productId": "7", "quantity": 1, "unitPrice": 1},
            {"productId": "8", "quantity": 1, "unitPrice": 1},
            {"productId": "9", "quantity": -1, "unitPrice": 1},
        ]
        err = _kind(_body(items=items))
        assert err.message == "Quantity must be greater than 0 (line 3)"


class TestIds:

    def test_invalid_warehouse_id(self):
        err = _kind(_body(warehouseId="wh-1"))
        assert err.kind == K.INVALID_ID
        assert err.message == "Invalid ID: warehouseId = wh-1"
        assert err.status_code == 400

    def test_invalid_product_id_mentions_line(self):
        err = _kind(_body(items=[{"productId": "P1", "quantity": 1, "unitPrice": 1}]))
        assert err.kind == K.INVALID_ID
        assert "(line 1)" in err.message

    def test_bad_issue_date(self):
        assert _kind(_body(issueDate="17/10/2026")).kind == K.ISSUE_DATE_INVALID


class TestNormalizedShape:

    def test_simple_items(self):
        req = normalize_issue_request(_body(notes="  night shift  ", department=" ICU "))

        assert req.warehouse_id == 1
        assert req.department == "ICU"
        assert req.issue_date == date(2026, 10, 17)
        assert req.notes == "night shift"
        line = req.lines[0]
        assert isinstance(line, SimpleLine)
        assert (line.product_id, line.quantity, line.unit_price) == (7, 10, Decimal("5000.00"))

    def test_iso_datetime_issue_date(self):
        req = normalize_issue_request(_body(issueDate="2026-10-17T03:00:00.000Z"))
        assert req.issue_date == date(2026, 10, 17)

    def test_details_with_allocations_become_manual_lines(self):
        details = [{
            "productId": "7",
            "totalQuantity": 30,
            "unitPrice": 100,
            "lotAllocations": [
                {"inventoryLotId": "11", "quantity": 20},
                {"inventoryLotId": "12", "quantity": 10},
            ],
        }]
        req = normalize_issue_request(_body(items=None, details=details))

        line = req.lines[0]
        assert isinstance(line, ManualLine)
        assert line.quantity == 30
        assert [(a.lot_id, a.quantity) for a in line.allocations] == [(11, 20), (12, 10)]

    def test_details_win_over_items(self):
        details = [{"productId": "9", "totalQuantity": 2, "unitPrice": 1}]
        req = normalize_issue_request(_body(details=details))
        assert [ln.product_id for ln in req.lines] == [9]

    def test_details_without_allocations_use_fefo(self):
        details = [{"productId": "9", "totalQuantity": 2, "unitPrice": 1, "lotAllocations": []}]
        req = normalize_issue_request(_body(items=None, details=details))
        assert isinstance(req.lines[0], SimpleLine)

    def test_allocations_must_cover_line_quantity(self):
        details = [{
            "productId": "7",
            "totalQuantity": 30,
            "unitPrice": 100,
            "lotAllocations": [{"inventoryLotId": "11", "quantity": 20}],
        }]
        err = _kind(_body(items=None, details=details))
        assert err.kind == K.ALLOCATION_INVALID
