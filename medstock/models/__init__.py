# medstock/models/__init__.py
from .inventory import Product, Warehouse, InventoryLot, InvNumberSeries
from .department import Department
from .inventory_issue import (
    InventoryIssue, InventoryIssueDetail, InventoryIssueLotAllocation, IssueStatus
)
from .transaction import Transaction, TransactionDetail, TxType, TxStatus

__all__ = [
    "Product",
    "Warehouse",
    "InventoryLot",
    "InvNumberSeries",
    "Department",
    "InventoryIssue",
    "InventoryIssueDetail",
    "InventoryIssueLotAllocation",
    "IssueStatus",
    "Transaction",
    "TransactionDetail",
    "TxType",
    "TxStatus",
]
