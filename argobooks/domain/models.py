from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from math import ceil
from typing import Any, Callable, Dict, List, Optional

from .enums import (
    AdjustmentType,
    CategoryType,
    EntityStatus,
    InventoryStatus,
    InvoiceStatus,
    RateType,
    RentalStatus,
)

# --- Constants ---
ZERO = Decimal("0")
CENT = Decimal("0.01")
DEFAULT_CATEGORY_COLOR = "#4A90D9"
DEFAULT_CATEGORY_ICON = "box"


# --- Helper Functions ---
def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _date_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value)
    return date.fromisoformat(text[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _money_str(value: Decimal) -> str:
    return str(value)


# --- Shared Value Objects ---

@dataclass
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    def __str__(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(p for p in parts if p and p.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Address":
        data = data or {}
        return cls(
            street=str(data.get("street", "")),
            city=str(data.get("city", "")),
            state=str(data.get("state", "")),
            zip_code=str(data.get("zipCode", "")),
            country=str(data.get("country", "")),
        )


@dataclass
class MonetaryValue:
    """An amount captured in its original currency together with its USD equivalent."""
    original_amount: Decimal = ZERO
    original_currency: str = "USD"
    amount_usd: Decimal = ZERO
    rate_date: Optional[date] = None

    def display_amount(self, target_currency: str, get_rate: Callable[[str, str, date], Any]) -> Decimal:
        """
        Amount to show when the company displays `target_currency`.
        Falls back to the USD amount when no rate is known for the date.
        """
        target = (target_currency or "USD").upper()
        if target == (self.original_currency or "USD").upper():
            return self.original_amount
        if target == "USD":
            return self.amount_usd
        rate = to_decimal(get_rate("USD", target, self.rate_date or date.today()))
        if rate <= 0:
            return self.amount_usd
        return round_money(self.amount_usd * rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalAmount": _money_str(self.original_amount),
            "originalCurrency": self.original_currency,
            "amountUsd": _money_str(self.amount_usd),
            "rateDate": _date_str(self.rate_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MonetaryValue":
        data = data or {}
        return cls(
            original_amount=to_decimal(data.get("originalAmount")),
            original_currency=str(data.get("originalCurrency") or "USD").upper(),
            amount_usd=to_decimal(data.get("amountUsd")),
            rate_date=_parse_date(data.get("rateDate")),
        )


# --- Customers ---

@dataclass
class Customer:
    id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    company_name: str = ""
    address: Address = field(default_factory=Address)
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    status: EntityStatus = EntityStatus.ACTIVE
    total_purchases: Decimal = ZERO
    last_transaction_date: Optional[date] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "companyName": self.company_name,
            "address": self.address.to_dict(),
            "notes": self.notes,
            "tags": list(self.tags),
            "status": self.status.value,
            "totalPurchases": _money_str(self.total_purchases),
            "lastTransactionDate": _date_str(self.last_transaction_date),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            email=str(data.get("email", "")),
            phone=str(data.get("phone", "")),
            company_name=str(data.get("companyName", "")),
            address=Address.from_dict(data.get("address")),
            notes=str(data.get("notes", "")),
            tags=list(data.get("tags") or []),
            status=EntityStatus(data.get("status", EntityStatus.ACTIVE.value)),
            total_purchases=to_decimal(data.get("totalPurchases")),
            last_transaction_date=_parse_date(data.get("lastTransactionDate")),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
            updated_at=_parse_datetime(data.get("updatedAt")) or utc_now(),
        )


# --- Products & Categories ---

@dataclass
class Product:
    id: str = ""
    name: str = ""
    sku: str = ""
    description: str = ""
    item_type: str = "Product"
    category_id: Optional[str] = None
    unit_price: Decimal = ZERO
    cost_price: Decimal = ZERO
    tax_rate: Decimal = ZERO
    track_inventory: bool = True
    reorder_point: int = 0
    overstock_threshold: int = 0
    status: EntityStatus = EntityStatus.ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def profit_margin(self) -> Decimal:
        if self.unit_price <= 0:
            return ZERO
        return (self.unit_price - self.cost_price) / self.unit_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "description": self.description,
            "itemType": self.item_type,
            "categoryId": self.category_id,
            "unitPrice": _money_str(self.unit_price),
            "costPrice": _money_str(self.cost_price),
            "taxRate": _money_str(self.tax_rate),
            "trackInventory": self.track_inventory,
            "reorderPoint": self.reorder_point,
            "overstockThreshold": self.overstock_threshold,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            sku=str(data.get("sku", "")),
            description=str(data.get("description", "")),
            item_type=str(data.get("itemType", "Product")),
            category_id=data.get("categoryId"),
            unit_price=to_decimal(data.get("unitPrice")),
            cost_price=to_decimal(data.get("costPrice")),
            tax_rate=to_decimal(data.get("taxRate")),
            track_inventory=bool(data.get("trackInventory", True)),
            reorder_point=int(data.get("reorderPoint", 0) or 0),
            overstock_threshold=int(data.get("overstockThreshold", 0) or 0),
            status=EntityStatus(data.get("status", EntityStatus.ACTIVE.value)),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
            updated_at=_parse_datetime(data.get("updatedAt")) or utc_now(),
        )


@dataclass
class Category:
    id: str = ""
    type: CategoryType = CategoryType.SALES
    name: str = ""
    description: str = ""
    item_type: str = "Product"
    parent_id: Optional[str] = None
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str = DEFAULT_CATEGORY_ICON
    default_tax_rate: Decimal = ZERO
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "itemType": self.item_type,
            "parentId": self.parent_id,
            "color": self.color,
            "icon": self.icon,
            "defaultTaxRate": _money_str(self.default_tax_rate),
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=str(data.get("id", "")),
            type=CategoryType(data.get("type", CategoryType.SALES.value)),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            item_type=str(data.get("itemType", "Product")),
            parent_id=data.get("parentId"),
            color=str(data.get("color", DEFAULT_CATEGORY_COLOR)),
            icon=str(data.get("icon", DEFAULT_CATEGORY_ICON)),
            default_tax_rate=to_decimal(data.get("defaultTaxRate")),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
        )


# --- Locations & Inventory ---

@dataclass
class Location:
    id: str = ""
    name: str = ""
    address: Address = field(default_factory=Address)
    contact_person: str = ""
    phone: str = ""
    capacity: int = 0
    current_utilization: int = 0
    created_at: datetime = field(default_factory=utc_now)

    @property
    def utilization_percentage(self) -> float:
        if self.capacity <= 0:
            return 0.0
        return self.current_utilization / self.capacity * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address.to_dict(),
            "contactPerson": self.contact_person,
            "phone": self.phone,
            "capacity": self.capacity,
            "currentUtilization": self.current_utilization,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            address=Address.from_dict(data.get("address")),
            contact_person=str(data.get("contactPerson", "")),
            phone=str(data.get("phone", "")),
            capacity=int(data.get("capacity", 0) or 0),
            current_utilization=int(data.get("currentUtilization", 0) or 0),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
        )


@dataclass
class InventoryItem:
    """Stock of one product at one location."""
    id: str = ""
    product_id: str = ""
    sku: str = ""
    location_id: str = ""
    in_stock: int = 0
    reserved: int = 0
    reorder_point: int = 0
    overstock_threshold: int = 0
    unit_cost: Decimal = ZERO
    unit_of_measure: str = "Each"
    status: InventoryStatus = InventoryStatus.IN_STOCK
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def available(self) -> int:
        return self.in_stock - self.reserved

    @property
    def total_value(self) -> Decimal:
        return self.unit_cost * self.in_stock

    def calculate_status(self) -> InventoryStatus:
        if self.in_stock == 0:
            return InventoryStatus.OUT_OF_STOCK
        if self.overstock_threshold > 0 and self.in_stock >= self.overstock_threshold:
            return InventoryStatus.OVERSTOCK
        if self.in_stock <= self.reorder_point:
            return InventoryStatus.LOW_STOCK
        return InventoryStatus.IN_STOCK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "sku": self.sku,
            "locationId": self.location_id,
            "inStock": self.in_stock,
            "reserved": self.reserved,
            "reorderPoint": self.reorder_point,
            "overstockThreshold": self.overstock_threshold,
            "unitCost": _money_str(self.unit_cost),
            "unitOfMeasure": self.unit_of_measure,
            "status": self.status.value,
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        return cls(
            id=str(data.get("id", "")),
            product_id=str(data.get("productId", "")),
            sku=str(data.get("sku", "")),
            location_id=str(data.get("locationId", "")),
            in_stock=int(data.get("inStock", 0) or 0),
            reserved=int(data.get("reserved", 0) or 0),
            reorder_point=int(data.get("reorderPoint", 0) or 0),
            overstock_threshold=int(data.get("overstockThreshold", 0) or 0),
            unit_cost=to_decimal(data.get("unitCost")),
            unit_of_measure=str(data.get("unitOfMeasure", "Each")),
            status=InventoryStatus(data.get("status", InventoryStatus.IN_STOCK.value)),
            last_updated=_parse_datetime(data.get("lastUpdated")) or utc_now(),
        )


@dataclass
class StockAdjustment:
    id: str = ""
    inventory_item_id: str = ""
    adjustment_type: AdjustmentType = AdjustmentType.ADD
    quantity: int = 0
    previous_stock: int = 0
    new_stock: int = 0
    reason: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "inventoryItemId": self.inventory_item_id,
            "adjustmentType": self.adjustment_type.value,
            "quantity": self.quantity,
            "previousStock": self.previous_stock,
            "newStock": self.new_stock,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StockAdjustment":
        return cls(
            id=str(data.get("id", "")),
            inventory_item_id=str(data.get("inventoryItemId", "")),
            adjustment_type=AdjustmentType(data.get("adjustmentType", AdjustmentType.ADD.value)),
            quantity=int(data.get("quantity", 0) or 0),
            previous_stock=int(data.get("previousStock", 0) or 0),
            new_stock=int(data.get("newStock", 0) or 0),
            reason=str(data.get("reason", "")),
            timestamp=_parse_datetime(data.get("timestamp")) or utc_now(),
        )


# --- Invoices ---

@dataclass
class LineItem:
    id: str = ""
    product_id: Optional[str] = None
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = ZERO
    tax_rate: Decimal = ZERO
    discount: Decimal = ZERO

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price - self.discount

    @property
    def tax_amount(self) -> Decimal:
        return self.subtotal * self.tax_rate

    @property
    def amount(self) -> Decimal:
        return self.subtotal + self.tax_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "description": self.description,
            "quantity": _money_str(self.quantity),
            "unitPrice": _money_str(self.unit_price),
            "taxRate": _money_str(self.tax_rate),
            "discount": _money_str(self.discount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        return cls(
            id=str(data.get("id", "")),
            product_id=data.get("productId"),
            description=str(data.get("description", "")),
            quantity=to_decimal(data.get("quantity"), Decimal("1")),
            unit_price=to_decimal(data.get("unitPrice")),
            tax_rate=to_decimal(data.get("taxRate")),
            discount=to_decimal(data.get("discount")),
        )


@dataclass
class InvoiceHistoryEntry:
    action: str
    details: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "details": self.details, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceHistoryEntry":
        return cls(
            action=str(data.get("action", "")),
            details=str(data.get("details", "")),
            timestamp=_parse_datetime(data.get("timestamp")) or utc_now(),
        )


@dataclass
class Invoice:
    id: str = ""
    invoice_number: str = ""
    customer_id: str = ""
    issue_date: date = field(default_factory=date.today)
    due_date: date = field(default_factory=date.today)
    line_items: List[LineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    tax_rate: Decimal = ZERO
    tax_amount: Decimal = ZERO
    security_deposit: Decimal = ZERO
    total: Decimal = ZERO
    amount_paid: Decimal = ZERO
    balance: Decimal = ZERO
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str = ""
    history: List[InvoiceHistoryEntry] = field(default_factory=list)
    original_currency: str = "USD"
    total_usd: Decimal = ZERO
    balance_usd: Decimal = ZERO
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def recalculate(self) -> None:
        """Recompute totals from the line items and the invoice-level tax rate."""
        self.subtotal = round_money(sum((li.subtotal for li in self.line_items), ZERO))
        line_tax = sum((li.tax_amount for li in self.line_items), ZERO)
        self.tax_amount = round_money(line_tax + self.subtotal * self.tax_rate)
        self.total = round_money(self.subtotal + self.tax_amount + self.security_deposit)
        self.balance = round_money(self.total - self.amount_paid)

    def is_overdue(self, today: Optional[date] = None) -> bool:
        if self.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
            return False
        return (today or date.today()) > self.due_date

    @property
    def effective_total_usd(self) -> Decimal:
        return self.total_usd if self.total_usd > 0 else self.total

    @property
    def effective_balance_usd(self) -> Decimal:
        return self.balance_usd if self.balance_usd > 0 else self.balance

    def add_history(self, action: str, details: str = "") -> None:
        self.history.append(InvoiceHistoryEntry(action=action, details=details))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "customerId": self.customer_id,
            "issueDate": _date_str(self.issue_date),
            "dueDate": _date_str(self.due_date),
            "lineItems": [li.to_dict() for li in self.line_items],
            "subtotal": _money_str(self.subtotal),
            "taxRate": _money_str(self.tax_rate),
            "taxAmount": _money_str(self.tax_amount),
            "securityDeposit": _money_str(self.security_deposit),
            "total": _money_str(self.total),
            "amountPaid": _money_str(self.amount_paid),
            "balance": _money_str(self.balance),
            "status": self.status.value,
            "notes": self.notes,
            "history": [h.to_dict() for h in self.history],
            "originalCurrency": self.original_currency,
            "totalUSD": _money_str(self.total_usd),
            "balanceUSD": _money_str(self.balance_usd),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Invoice":
        return cls(
            id=str(data.get("id", "")),
            invoice_number=str(data.get("invoiceNumber", "")),
            customer_id=str(data.get("customerId", "")),
            issue_date=_parse_date(data.get("issueDate")) or date.today(),
            due_date=_parse_date(data.get("dueDate")) or date.today(),
            line_items=[LineItem.from_dict(li) for li in data.get("lineItems") or []],
            subtotal=to_decimal(data.get("subtotal")),
            tax_rate=to_decimal(data.get("taxRate")),
            tax_amount=to_decimal(data.get("taxAmount")),
            security_deposit=to_decimal(data.get("securityDeposit")),
            total=to_decimal(data.get("total")),
            amount_paid=to_decimal(data.get("amountPaid")),
            balance=to_decimal(data.get("balance")),
            status=InvoiceStatus(data.get("status", InvoiceStatus.DRAFT.value)),
            notes=str(data.get("notes", "")),
            history=[InvoiceHistoryEntry.from_dict(h) for h in data.get("history") or []],
            original_currency=str(data.get("originalCurrency", "USD")),
            total_usd=to_decimal(data.get("totalUSD")),
            balance_usd=to_decimal(data.get("balanceUSD")),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
            updated_at=_parse_datetime(data.get("updatedAt")) or utc_now(),
        )


# --- Rentals ---

@dataclass
class RentalItem:
    id: str = ""
    name: str = ""
    description: str = ""
    total_quantity: int = 0
    available_quantity: int = 0
    rented_quantity: int = 0
    daily_rate: Decimal = ZERO
    weekly_rate: Decimal = ZERO
    monthly_rate: Decimal = ZERO
    security_deposit: Decimal = ZERO
    status: EntityStatus = EntityStatus.ACTIVE
    notes: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_available(self) -> bool:
        return self.status == EntityStatus.ACTIVE and self.available_quantity > 0

    def rate_for(self, rate_type: RateType) -> Decimal:
        if rate_type == RateType.WEEKLY:
            return self.weekly_rate
        if rate_type == RateType.MONTHLY:
            return self.monthly_rate
        return self.daily_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "totalQuantity": self.total_quantity,
            "availableQuantity": self.available_quantity,
            "rentedQuantity": self.rented_quantity,
            "dailyRate": _money_str(self.daily_rate),
            "weeklyRate": _money_str(self.weekly_rate),
            "monthlyRate": _money_str(self.monthly_rate),
            "securityDeposit": _money_str(self.security_deposit),
            "status": self.status.value,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RentalItem":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            total_quantity=int(data.get("totalQuantity", 0) or 0),
            available_quantity=int(data.get("availableQuantity", 0) or 0),
            rented_quantity=int(data.get("rentedQuantity", 0) or 0),
            daily_rate=to_decimal(data.get("dailyRate")),
            weekly_rate=to_decimal(data.get("weeklyRate")),
            monthly_rate=to_decimal(data.get("monthlyRate")),
            security_deposit=to_decimal(data.get("securityDeposit")),
            status=EntityStatus(data.get("status", EntityStatus.ACTIVE.value)),
            notes=str(data.get("notes", "")),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
            updated_at=_parse_datetime(data.get("updatedAt")) or utc_now(),
        )


@dataclass
class RentalRecord:
    id: str = ""
    rental_item_id: str = ""
    customer_id: str = ""
    quantity: int = 1
    rate_type: RateType = RateType.DAILY
    rate_amount: Decimal = ZERO
    security_deposit: Decimal = ZERO
    start_date: date = field(default_factory=date.today)
    due_date: date = field(default_factory=date.today)
    return_date: Optional[date] = None
    status: RentalStatus = RentalStatus.ACTIVE
    total_cost: Optional[Decimal] = None
    deposit_refunded: Optional[Decimal] = None
    paid: bool = False
    notes: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_overdue(self, today: Optional[date] = None) -> bool:
        return self.status == RentalStatus.ACTIVE and (today or date.today()) > self.due_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        if self.status not in (RentalStatus.ACTIVE, RentalStatus.OVERDUE) or today <= self.due_date:
            return 0
        return (today - self.due_date).days

    def calculate_cost(self, return_date: date) -> Decimal:
        """Rental charge for returning on `return_date`; partial weeks and months round up."""
        days = max(1, (return_date - self.start_date).days)
        if self.rate_type == RateType.WEEKLY:
            periods = ceil(days / 7)
        elif self.rate_type == RateType.MONTHLY:
            periods = ceil(days / 30)
        else:
            periods = days
        return round_money(self.rate_amount * periods * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rentalItemId": self.rental_item_id,
            "customerId": self.customer_id,
            "quantity": self.quantity,
            "rateType": self.rate_type.value,
            "rateAmount": _money_str(self.rate_amount),
            "securityDeposit": _money_str(self.security_deposit),
            "startDate": _date_str(self.start_date),
            "dueDate": _date_str(self.due_date),
            "returnDate": _date_str(self.return_date),
            "status": self.status.value,
            "totalCost": _money_str(self.total_cost) if self.total_cost is not None else None,
            "depositRefunded": _money_str(self.deposit_refunded) if self.deposit_refunded is not None else None,
            "paid": self.paid,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RentalRecord":
        total_cost = data.get("totalCost")
        refunded = data.get("depositRefunded")
        return cls(
            id=str(data.get("id", "")),
            rental_item_id=str(data.get("rentalItemId", "")),
            customer_id=str(data.get("customerId", "")),
            quantity=int(data.get("quantity", 1) or 0),
            rate_type=RateType(data.get("rateType", RateType.DAILY.value)),
            rate_amount=to_decimal(data.get("rateAmount")),
            security_deposit=to_decimal(data.get("securityDeposit")),
            start_date=_parse_date(data.get("startDate")) or date.today(),
            due_date=_parse_date(data.get("dueDate")) or date.today(),
            return_date=_parse_date(data.get("returnDate")),
            status=RentalStatus(data.get("status", RentalStatus.ACTIVE.value)),
            total_cost=to_decimal(total_cost) if total_cost is not None else None,
            deposit_refunded=to_decimal(refunded) if refunded is not None else None,
            paid=bool(data.get("paid", False)),
            notes=str(data.get("notes", "")),
            created_at=_parse_datetime(data.get("createdAt")) or utc_now(),
            updated_at=_parse_datetime(data.get("updatedAt")) or utc_now(),
        )
