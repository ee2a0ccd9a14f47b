from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .. import config
from .models import (
    Category,
    Customer,
    InventoryItem,
    Invoice,
    Location,
    Product,
    RentalItem,
    RentalRecord,
    StockAdjustment,
)

# --- Settings ---

@dataclass
class IdCounters:
    """Last issued sequence number per id family."""
    customer: int = 0
    product: int = 0
    category: int = 0
    location: int = 0
    invoice: int = 0
    payment: int = 0
    inventory_item: int = 0
    stock_adjustment: int = 0
    rental_item: int = 0
    rental: int = 0
    line_item: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {_camel(f.name): int(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "IdCounters":
        data = data or {}
        counters = cls()
        for f in fields(counters):
            setattr(counters, f.name, int(data.get(_camel(f.name), 0) or 0))
        return counters


@dataclass
class InvoiceEmailSettings:
    from_name: str = ""
    from_email: str = ""
    reply_to_email: str = ""
    bcc_email: str = ""
    subject_template: str = "Invoice {InvoiceNumber} from {CompanyName}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromName": self.from_name,
            "fromEmail": self.from_email,
            "replyToEmail": self.reply_to_email,
            "bccEmail": self.bcc_email,
            "subjectTemplate": self.subject_template,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InvoiceEmailSettings":
        data = data or {}
        defaults = cls()
        return cls(
            from_name=str(data.get("fromName", "")),
            from_email=str(data.get("fromEmail", "")),
            reply_to_email=str(data.get("replyToEmail", "")),
            bcc_email=str(data.get("bccEmail", "")),
            subject_template=str(data.get("subjectTemplate", defaults.subject_template)),
        )


@dataclass
class CompanySettings:
    company_name: str = ""
    currency: str = config.DEFAULT_CURRENCY
    email: str = ""
    phone: str = ""
    changes_made: bool = False
    invoice_email: InvoiceEmailSettings = field(default_factory=InvoiceEmailSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companyName": self.company_name,
            "currency": self.currency,
            "email": self.email,
            "phone": self.phone,
            "invoiceEmail": self.invoice_email.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CompanySettings":
        data = data or {}
        return cls(
            company_name=str(data.get("companyName", "")),
            currency=str(data.get("currency", config.DEFAULT_CURRENCY)),
            email=str(data.get("email", "")),
            phone=str(data.get("phone", "")),
            invoice_email=InvoiceEmailSettings.from_dict(data.get("invoiceEmail")),
        )


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)


# --- Aggregate ---

@dataclass
class CompanyData:
    """
    In-memory aggregate for one open company file.
    View-models mutate the lists directly and call mark_as_modified().
    """
    settings: CompanySettings = field(default_factory=CompanySettings)
    id_counters: IdCounters = field(default_factory=IdCounters)
    customers: List[Customer] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    locations: List[Location] = field(default_factory=list)
    inventory: List[InventoryItem] = field(default_factory=list)
    stock_adjustments: List[StockAdjustment] = field(default_factory=list)
    rental_inventory: List[RentalItem] = field(default_factory=list)
    rentals: List[RentalRecord] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)

    # --- Change tracking ---

    @property
    def changes_made(self) -> bool:
        return self.settings.changes_made

    def mark_as_modified(self) -> None:
        self.settings.changes_made = True

    def mark_as_saved(self) -> None:
        self.settings.changes_made = False

    # --- Lookups ---

    def get_customer(self, customer_id: Optional[str]) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def get_product(self, product_id: Optional[str]) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def get_category(self, category_id: Optional[str]) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def get_invoice(self, invoice_id: Optional[str]) -> Optional[Invoice]:
        return next((i for i in self.invoices if i.id == invoice_id), None)

    def get_rental_item(self, item_id: Optional[str]) -> Optional[RentalItem]:
        return next((r for r in self.rental_inventory if r.id == item_id), None)

    def get_rental(self, rental_id: Optional[str]) -> Optional[RentalRecord]:
        return next((r for r in self.rentals if r.id == rental_id), None)

    def get_inventory_item_by_id(self, item_id: Optional[str]) -> Optional[InventoryItem]:
        return next((i for i in self.inventory if i.id == item_id), None)

    def get_inventory_item(self, product_id: str, location_id: str) -> Optional[InventoryItem]:
        return next(
            (i for i in self.inventory if i.product_id == product_id and i.location_id == location_id),
            None,
        )

    # --- Serialization ---

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": self.settings.to_dict(),
            "idCounters": self.id_counters.to_dict(),
            "customers": [c.to_dict() for c in self.customers],
            "products": [p.to_dict() for p in self.products],
            "categories": [c.to_dict() for c in self.categories],
            "locations": [loc.to_dict() for loc in self.locations],
            "inventory": [i.to_dict() for i in self.inventory],
            "stockAdjustments": [a.to_dict() for a in self.stock_adjustments],
            "rentalInventory": [r.to_dict() for r in self.rental_inventory],
            "rentals": [r.to_dict() for r in self.rentals],
            "invoices": [i.to_dict() for i in self.invoices],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompanyData":
        return cls(
            settings=CompanySettings.from_dict(data.get("settings")),
            id_counters=IdCounters.from_dict(data.get("idCounters")),
            customers=[Customer.from_dict(d) for d in data.get("customers") or []],
            products=[Product.from_dict(d) for d in data.get("products") or []],
            categories=[Category.from_dict(d) for d in data.get("categories") or []],
            locations=[Location.from_dict(d) for d in data.get("locations") or []],
            inventory=[InventoryItem.from_dict(d) for d in data.get("inventory") or []],
            stock_adjustments=[StockAdjustment.from_dict(d) for d in data.get("stockAdjustments") or []],
            rental_inventory=[RentalItem.from_dict(d) for d in data.get("rentalInventory") or []],
            rentals=[RentalRecord.from_dict(d) for d in data.get("rentals") or []],
            invoices=[Invoice.from_dict(d) for d in data.get("invoices") or []],
        )
