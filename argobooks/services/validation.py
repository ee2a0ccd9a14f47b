from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..domain.company_data import CompanyData
from ..domain.models import (
    Category,
    Customer,
    InventoryItem,
    Invoice,
    LineItem,
    Location,
    Product,
    RentalItem,
    RentalRecord,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", re.IGNORECASE)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def _same_name(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


# --- Results ---

@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass
class ValidationResult:
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, field_name: str, message: str) -> "ValidationResult":
        result = cls()
        result.add_error(field_name, message)
        return result

    def add_error(self, field_name: str, message: str) -> None:
        self.errors.append(ValidationError(field_name, message))

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)

    def error_message(self, separator: str = "\n") -> str:
        return separator.join(e.message for e in self.errors)

    def errors_for(self, field_name: str) -> List[ValidationError]:
        return [e for e in self.errors if e.field == field_name]

    def first_error(self, field_name: str) -> Optional[str]:
        errors = self.errors_for(field_name)
        return errors[0].message if errors else None


# --- Validator ---

class DataValidator:
    """
    Business-rule checks against the open company.
    Every method returns a ValidationResult; nothing here raises.
    """

    def __init__(self, company: CompanyData):
        self.company = company

    def validate_customer(self, customer: Customer) -> ValidationResult:
        result = ValidationResult()
        if _blank(customer.name):
            result.add_error("name", "Customer name is required.")
        if not _blank(customer.email) and not is_valid_email(customer.email):
            result.add_error("email", "Invalid email address format.")
        if not _blank(customer.name) and any(
            c.id != customer.id and _same_name(c.name, customer.name) for c in self.company.customers
        ):
            result.add_error("name", "A customer with this name already exists.")
        return result

    def validate_product(self, product: Product) -> ValidationResult:
        result = ValidationResult()
        if _blank(product.name):
            result.add_error("name", "Product name is required.")
        elif any(p.id != product.id and _same_name(p.name, product.name) for p in self.company.products):
            result.add_error("name", "A product with this name already exists.")
        if product.unit_price < 0:
            result.add_error("unit_price", "Unit price cannot be negative.")
        if product.cost_price < 0:
            result.add_error("cost_price", "Cost price cannot be negative.")
        if product.tax_rate < 0 or product.tax_rate > 1:
            result.add_error("tax_rate", "Tax rate must be between 0 and 1 (0% to 100%).")
        if not _blank(product.sku) and any(
            p.id != product.id and _same_name(p.sku, product.sku) for p in self.company.products
        ):
            result.add_error("sku", "A product with this SKU already exists.")
        if not _blank(product.category_id) and self.company.get_category(product.category_id) is None:
            result.add_error("category_id", "Category not found.")
        return result

    def validate_category(self, category: Category) -> ValidationResult:
        result = ValidationResult()
        if _blank(category.name):
            result.add_error("name", "Category name is required.")
        if category.default_tax_rate < 0 or category.default_tax_rate > 1:
            result.add_error("default_tax_rate", "Tax rate must be between 0 and 1.")
        if not _blank(category.name) and any(
            c.id != category.id and c.type == category.type and _same_name(c.name, category.name)
            for c in self.company.categories
        ):
            result.add_error("name", "A category with this name already exists.")
        if not _blank(category.parent_id):
            parent = self.company.get_category(category.parent_id)
            if category.parent_id == category.id:
                result.add_error("parent_id", "Category cannot be its own parent.")
            elif parent is None:
                result.add_error("parent_id", "Parent category not found.")
            elif parent.type != category.type:
                result.add_error("parent_id", "Parent category must be the same type.")
        return result

    def validate_location(self, location: Location) -> ValidationResult:
        result = ValidationResult()
        if _blank(location.name):
            result.add_error("name", "Location name is required.")
        if location.capacity < 0:
            result.add_error("capacity", "Capacity cannot be negative.")
        if not _blank(location.name) and any(
            loc.id != location.id and _same_name(loc.name, location.name) for loc in self.company.locations
        ):
            result.add_error("name", "A location with this name already exists.")
        return result

    def validate_line_item(self, item: LineItem) -> ValidationResult:
        result = ValidationResult()
        if _blank(item.description) and _blank(item.product_id):
            result.add_error("description", "Description or product is required.")
        if item.quantity <= 0:
            result.add_error("quantity", "Quantity must be greater than zero.")
        if item.unit_price < 0:
            result.add_error("unit_price", "Unit price cannot be negative.")
        if item.tax_rate < 0 or item.tax_rate > 1:
            result.add_error("tax_rate", "Tax rate must be between 0 and 1.")
        return result

    def validate_invoice(self, invoice: Invoice) -> ValidationResult:
        result = ValidationResult()
        if _blank(invoice.customer_id):
            result.add_error("customer_id", "Customer is required.")
        elif self.company.get_customer(invoice.customer_id) is None:
            result.add_error("customer_id", "Customer not found.")
        if invoice.due_date < invoice.issue_date:
            result.add_error("due_date", "Due date cannot be before issue date.")
        if not invoice.line_items:
            result.add_error("line_items", "Invoice must have at least one line item.")
        for item in invoice.line_items:
            result.merge(self.validate_line_item(item))
        if invoice.total < 0:
            result.add_error("total", "Total cannot be negative.")
        return result

    def validate_inventory_item(self, item: InventoryItem) -> ValidationResult:
        result = ValidationResult()
        if _blank(item.product_id):
            result.add_error("product_id", "Product is required.")
        elif self.company.get_product(item.product_id) is None:
            result.add_error("product_id", "Product not found.")
        if _blank(item.location_id):
            result.add_error("location_id", "Location is required.")
        elif self.company.get_location(item.location_id) is None:
            result.add_error("location_id", "Location not found.")
        if item.in_stock < 0:
            result.add_error("in_stock", "Stock quantity cannot be negative.")
        if item.reserved < 0:
            result.add_error("reserved", "Reserved quantity cannot be negative.")
        if item.reserved > item.in_stock:
            result.add_error("reserved", "Reserved quantity cannot exceed stock quantity.")
        if item.reorder_point < 0:
            result.add_error("reorder_point", "Reorder point cannot be negative.")
        if item.unit_cost < 0:
            result.add_error("unit_cost", "Unit cost cannot be negative.")
        return result

    def validate_rental_item(self, item: RentalItem) -> ValidationResult:
        result = ValidationResult()
        if _blank(item.name):
            result.add_error("name", "Name is required.")
        elif any(i.id != item.id and _same_name(i.name, item.name) for i in self.company.rental_inventory):
            result.add_error("name", "An item with this name already exists.")
        if item.total_quantity < 0:
            result.add_error("total_quantity", "Total quantity cannot be negative.")
        if item.daily_rate < 0:
            result.add_error("daily_rate", "Daily rate cannot be negative.")
        if item.weekly_rate < 0:
            result.add_error("weekly_rate", "Weekly rate cannot be negative.")
        if item.monthly_rate < 0:
            result.add_error("monthly_rate", "Monthly rate cannot be negative.")
        if item.security_deposit < 0:
            result.add_error("security_deposit", "Security deposit cannot be negative.")
        return result

    def validate_rental_record(self, rental: RentalRecord) -> ValidationResult:
        result = ValidationResult()
        if _blank(rental.rental_item_id):
            result.add_error("rental_item_id", "Rental item is required.")
        if _blank(rental.customer_id):
            result.add_error("customer_id", "Customer is required.")
        elif self.company.get_customer(rental.customer_id) is None:
            result.add_error("customer_id", "Customer not found.")
        if rental.quantity <= 0:
            result.add_error("quantity", "Quantity must be greater than zero.")
        if rental.due_date < rental.start_date:
            result.add_error("due_date", "Due date cannot be before start date.")
        if rental.rate_amount < 0:
            result.add_error("rate_amount", "Rate amount cannot be negative.")
        return result
