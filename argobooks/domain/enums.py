from __future__ import annotations
from enum import Enum


class EntityStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ARCHIVED = "Archived"


class CategoryType(str, Enum):
    SALES = "Sales"
    PURCHASE = "Purchase"
    RENTAL = "Rental"


class InvoiceStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    SENT = "Sent"
    VIEWED = "Viewed"
    PARTIAL = "Partial"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class RentalStatus(str, Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class RateType(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class InventoryStatus(str, Enum):
    IN_STOCK = "InStock"
    LOW_STOCK = "LowStock"
    OUT_OF_STOCK = "OutOfStock"
    OVERSTOCK = "Overstock"


class SortDirection(str, Enum):
    NONE = "None"
    ASCENDING = "Ascending"
    DESCENDING = "Descending"


class ConfirmationResult(str, Enum):
    NONE = "None"
    PRIMARY = "Primary"
    SECONDARY = "Secondary"
    CANCEL = "Cancel"


class AdjustmentType(str, Enum):
    ADD = "Add"
    REMOVE = "Remove"
    SET = "Set"
