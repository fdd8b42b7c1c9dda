# FILE: medstock/services/inventory_errors.py
from __future__ import annotations

import enum
from typing import Any, Optional


class IssueErrorKind(str, enum.Enum):
    # request shape
    WAREHOUSE_REQUIRED = "WAREHOUSE_REQUIRED"
    DEPARTMENT_REQUIRED = "DEPARTMENT_REQUIRED"
    ISSUE_DATE_REQUIRED = "ISSUE_DATE_REQUIRED"
    ISSUE_DATE_INVALID = "ISSUE_DATE_INVALID"
    ITEMS_REQUIRED = "ITEMS_REQUIRED"
    ITEMS_MUST_BE_ARRAY = "ITEMS_MUST_BE_ARRAY"
    PRODUCT_ID_REQUIRED = "PRODUCT_ID_REQUIRED"
    QUANTITY_REQUIRED = "QUANTITY_REQUIRED"
    QUANTITY_INVALID = "QUANTITY_INVALID"
    UNIT_PRICE_REQUIRED = "UNIT_PRICE_REQUIRED"
    UNIT_PRICE_INVALID = "UNIT_PRICE_INVALID"
    ALLOCATION_INVALID = "ALLOCATION_INVALID"
    INVALID_ID = "INVALID_ID"

    # business rules
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    LOT_MISMATCH = "LOT_MISMATCH"
    STOCK_CONFLICT = "STOCK_CONFLICT"
    DATA_VALIDATION = "DATA_VALIDATION"

    # lookups
    WAREHOUSE_NOT_FOUND = "WAREHOUSE_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    LOT_NOT_FOUND = "LOT_NOT_FOUND"
    ISSUE_NOT_FOUND = "ISSUE_NOT_FOUND"


MESSAGES = {
    IssueErrorKind.WAREHOUSE_REQUIRED: "Warehouse is required",
    IssueErrorKind.DEPARTMENT_REQUIRED: "Receiving department is required",
    IssueErrorKind.ISSUE_DATE_REQUIRED: "Issue date is required",
    IssueErrorKind.ISSUE_DATE_INVALID: "Issue date is not a valid date",
    IssueErrorKind.ITEMS_REQUIRED: "Item list must not be empty",
    IssueErrorKind.ITEMS_MUST_BE_ARRAY: "Item list must be an array",
    IssueErrorKind.PRODUCT_ID_REQUIRED: "Product is required",
    IssueErrorKind.QUANTITY_REQUIRED: "Quantity is required",
    IssueErrorKind.QUANTITY_INVALID: "Quantity must be greater than 0",
    IssueErrorKind.UNIT_PRICE_REQUIRED: "Unit price is required",
    IssueErrorKind.UNIT_PRICE_INVALID: "Unit price must be greater than or equal to 0",
    IssueErrorKind.ALLOCATION_INVALID: "Invalid lot allocation",
    IssueErrorKind.INVALID_ID: "Invalid ID",
    IssueErrorKind.INSUFFICIENT_STOCK: "Insufficient stock",
    IssueErrorKind.LOT_MISMATCH: "Lot does not belong to this product/warehouse",
    IssueErrorKind.STOCK_CONFLICT: "Stock changed while the issue was being saved, please retry",
    IssueErrorKind.DATA_VALIDATION: "Data validation error",
    IssueErrorKind.WAREHOUSE_NOT_FOUND: "Warehouse not found",
    IssueErrorKind.PRODUCT_NOT_FOUND: "Product not found",
    IssueErrorKind.LOT_NOT_FOUND: "No suitable lot found",
    IssueErrorKind.ISSUE_NOT_FOUND: "Inventory issue not found",
}

_NOT_FOUND = {
    IssueErrorKind.WAREHOUSE_NOT_FOUND,
    IssueErrorKind.PRODUCT_NOT_FOUND,
    IssueErrorKind.LOT_NOT_FOUND,
    IssueErrorKind.ISSUE_NOT_FOUND,
}


def default_status(kind: IssueErrorKind) -> int:
    if kind in _NOT_FOUND:
        return 404
    if kind == IssueErrorKind.STOCK_CONFLICT:
        return 409
    return 400


class IssueError(RuntimeError):
    """
    Raised by the issue services; the route turns it into the error envelope.
    `errors` carries structured detail (shortage records, field messages).
    """

    def __init__(
        self,
        kind: IssueErrorKind,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        errors: Any = None,
    ):
        self.kind = kind
        self.message = message or MESSAGES[kind]
        self.status_code = status_code or default_status(kind)
        self.errors = errors
        super().__init__(self.message)

    @classmethod
    def at_line(cls, kind: IssueErrorKind, line_no: int) -> "IssueError":
        return cls(kind, f"{MESSAGES[kind]} (line {line_no})")
