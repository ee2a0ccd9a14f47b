"""Tests for the business-rule validator."""
from datetime import date
from decimal import Decimal

import pytest

from argobooks.domain.company_data import CompanyData
from argobooks.domain.enums import CategoryType
from argobooks.domain.models import (
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
from argobooks.services.validation import DataValidator, ValidationResult, is_valid_email

from .factories import add_category, add_customer, add_location, add_product


@pytest.fixture
def company():
    company = CompanyData()
    add_customer(company, "Ada Lovelace", id="CUS-001")
    add_category(company, "Office", CategoryType.PURCHASE, id="CAT-001")
    add_category(company, "Sales", CategoryType.SALES, id="CAT-002")
    add_product(company, "Paper", id="PRD-001", sku="PAP-1")
    add_location(company, "Main Warehouse", id="LOC-001")
    return company


@pytest.fixture
def validator(company):
    return DataValidator(company)


def test_email_pattern():
    assert is_valid_email("ada@example.com")
    assert not is_valid_email("ada@example")
    assert not is_valid_email("ada example.com")
    assert not is_valid_email("")


def test_result_helpers():
    result = ValidationResult.failure("name", "Name is required.")
    result.add_error("name", "Second")
    assert not result.is_valid
    assert result.first_error("name") == "Name is required."
    assert result.first_error("email") is None
    assert result.error_message("; ") == "Name is required.; Second"


class TestCustomers:

    def test_blank_name(self, validator):
        assert validator.validate_customer(Customer(id="CUS-009", name=" ")).first_error("name") == "Customer name is required."

    def test_invalid_email(self, validator):
        result = validator.validate_customer(Customer(id="CUS-009", name="Grace", email="nope"))
        assert result.first_error("email") == "Invalid email address format."

    def test_duplicate_name_is_case_insensitive(self, validator):
        result = validator.validate_customer(Customer(id="CUS-009", name="ada lovelace"))
        assert result.first_error("name") == "A customer with this name already exists."

    def test_same_customer_is_not_a_duplicate(self, validator):
        assert validator.validate_customer(Customer(id="CUS-001", name="Ada Lovelace")).is_valid


class TestProducts:

    def test_negative_prices(self, validator):
        result = validator.validate_product(Product(id="PRD-009", name="X", unit_price=Decimal("-1"), cost_price=Decimal("-2")))
        assert result.first_error("unit_price")
        assert result.first_error("cost_price")

    def test_tax_rate_range(self, validator):
        result = validator.validate_product(Product(id="PRD-009", name="X", tax_rate=Decimal("1.5")))
        assert result.first_error("tax_rate")

    def test_duplicate_sku(self, validator):
        result = validator.validate_product(Product(id="PRD-009", name="X", sku="pap-1"))
        assert result.first_error("sku") == "A product with this SKU already exists."

    def test_unknown_category(self, validator):
        result = validator.validate_product(Product(id="PRD-009", name="X", category_id="CAT-404"))
        assert result.first_error("category_id") == "Category not found."


class TestCategories:

    def test_own_parent(self, validator):
        result = validator.validate_category(Category(id="CAT-001", name="Office", parent_id="CAT-001"))
        assert result.first_error("parent_id") == "Category cannot be its own parent."

    def test_parent_type_must_match(self, validator):
        category = Category(id="CAT-009", name="Pens", type=CategoryType.PURCHASE, parent_id="CAT-002")
        assert validator.validate_category(category).first_error("parent_id") == "Parent category must be the same type."

    def test_duplicate_name_only_within_type(self, validator):
        assert not validator.validate_category(Category(id="CAT-009", name="office", type=CategoryType.PURCHASE)).is_valid
        assert validator.validate_category(Category(id="CAT-009", name="office", type=CategoryType.RENTAL)).is_valid


class TestInventoryAndLocations:

    def test_reserved_exceeds_stock(self, validator):
        item = InventoryItem(product_id="PRD-001", location_id="LOC-001", in_stock=2, reserved=3)
        assert validator.validate_inventory_item(item).first_error("reserved") == "Reserved quantity cannot exceed stock quantity."

    def test_unknown_references(self, validator):
        result = validator.validate_inventory_item(InventoryItem(product_id="PRD-404", location_id="LOC-404"))
        assert result.first_error("product_id") == "Product not found."
        assert result.first_error("location_id") == "Location not found."

    def test_location_capacity(self, validator):
        result = validator.validate_location(Location(id="LOC-009", name="Annex", capacity=-5))
        assert result.first_error("capacity") == "Capacity cannot be negative."


class TestInvoicesAndRentals:

    def test_invoice_rules(self, validator):
        invoice = Invoice(customer_id="", issue_date=date(2024, 2, 1), due_date=date(2024, 1, 1))
        result = validator.validate_invoice(invoice)
        assert result.first_error("customer_id") == "Customer is required."
        assert result.first_error("due_date") == "Due date cannot be before issue date."
        assert result.first_error("line_items") == "Invoice must have at least one line item."

    def test_invoice_line_items_are_checked(self, validator):
        invoice = Invoice(customer_id="CUS-001", line_items=[LineItem(quantity=Decimal("0"))])
        result = validator.validate_invoice(invoice)
        assert result.first_error("description") == "Description or product is required."
        assert result.first_error("quantity") == "Quantity must be greater than zero."

    def test_rental_dates(self, validator):
        rental = RentalRecord(rental_item_id="RNT-ITM-001", customer_id="CUS-001",
                              start_date=date(2024, 1, 5), due_date=date(2024, 1, 1))
        assert validator.validate_rental_record(rental).first_error("due_date") == "Due date cannot be before start date."

    def test_rental_item_rates(self, validator):
        result = validator.validate_rental_item(RentalItem(name="Saw", daily_rate=Decimal("-1")))
        assert result.first_error("daily_rate") == "Daily rate cannot be negative."
