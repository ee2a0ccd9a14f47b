"""Tests for the products page and its modals."""
from decimal import Decimal

import pytest

from argobooks.domain.enums import CategoryType
from argobooks.ui.viewmodels.products import REVENUE_TAB, ProductsPageViewModel

from .factories import add_category, add_product


@pytest.fixture
def page(app):
    return ProductsPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.product_modals


@pytest.fixture
def categories(company):
    office = add_category(company, "Office", CategoryType.PURCHASE)
    retail = add_category(company, "Retail", CategoryType.SALES)
    return office, retail


def names(page):
    return [row.name for row in page.items]


class TestAddProduct:

    def test_category_required_when_categories_exist(self, modals, categories):
        modals.open_add_modal(is_expenses_tab=True)
        modals.product_name = "Printer Paper"
        assert [c.name for c in modals.available_categories] == ["Office"]
        assert modals.save_new_product() is None
        assert modals.category_error == "Category is required."

    def test_add_defaults_sku_to_id(self, app, page, modals, company, categories):
        office, _ = categories
        modals.open_add_modal(is_expenses_tab=True)
        modals.product_name = "Printer Paper"
        modals.category_id = office.id
        modals.unit_price = "$12.50"
        modals.cost_price = "7"
        modals.reorder_point = "10"

        product = modals.save_new_product()
        assert product.id == "PRD-001"
        assert product.sku == "PRD-001"
        assert product.unit_price == Decimal("12.50")
        assert product.track_inventory
        assert names(page) == ["Printer Paper"]
        assert page.items[0].category_name == "Office"

        app.undo_redo.undo()
        assert company.products == []
        assert page.items == []

    def test_service_does_not_track_inventory(self, modals):
        modals.open_add_modal()
        modals.product_name = "Consulting"
        modals.item_type = "Service"
        modals.reorder_point = "5"
        assert not modals.save_new_product().track_inventory

    def test_invalid_prices(self, modals):
        modals.open_add_modal()
        modals.product_name = "Widget"
        modals.unit_price = "abc"
        modals.cost_price = "-1"
        assert modals.save_new_product() is None
        assert modals.unit_price_error == "Please enter a valid price."
        assert modals.cost_price_error == "Cost price cannot be negative."

    def test_duplicate_name_and_sku(self, modals, company):
        add_product(company, "Widget", sku="WID-001")
        modals.open_add_modal()
        modals.product_name = "widget"
        modals.sku = "wid-001"
        assert modals.save_new_product() is None
        assert modals.product_name_error == "A product with this name already exists."
        assert modals.sku_error == "A product with this SKU already exists."

    def test_unknown_category_is_rejected(self, modals):
        modals.open_add_modal()
        modals.product_name = "Widget"
        modals.category_id = "CAT-404"
        assert modals.save_new_product() is None
        assert modals.category_error == "Category not found."

    def test_edit_keeps_own_name_and_sku(self, modals, company):
        product = add_product(company, "Widget", sku="WID-001")
        assert modals.open_edit_modal(product.id)
        modals.unit_price = "15"
        assert modals.save_edited_product()
        assert product.unit_price == Decimal("15")
        assert modals.product_name_error is None

    def test_generate_sku(self, modals):
        modals.open_add_modal()
        modals.product_name = "Blue Widget"
        modals.generate_sku()
        assert modals.sku == "BLUWID-000"


class TestEditAndDelete:

    def test_edit_then_undo(self, app, page, modals, company):
        product = add_product(company, "Widget", sku="WID-001")
        assert modals.open_edit_modal(product.id)
        assert modals.unit_price == "10.00"
        modals.unit_price = "15"
        assert modals.save_edited_product()
        assert product.unit_price == Decimal("15")

        app.undo_redo.undo()
        assert product.unit_price == Decimal("10.00")

    def test_delete_and_undo(self, app, page, company):
        add_product(company, "Widget")
        add_product(company, "Gadget")
        page.load()
        assert page.delete("PRD-001")
        assert [p.name for p in company.products] == ["Gadget"]
        app.undo_redo.undo()
        assert [p.name for p in company.products] == ["Widget", "Gadget"]


class TestProductsPage:

    def test_tabs_split_by_category_type(self, page, company, categories):
        office, retail = categories
        add_product(company, "Paper", category_id=office.id)
        add_product(company, "Loose Item")
        add_product(company, "Gift Card", category_id=retail.id, item_type="Service")
        page.load()

        assert names(page) == ["Loose Item", "Paper"]
        assert page.expense_products_count == 2
        assert page.revenue_products_count == 1
        assert page.services == 1

        page.selected_tab_index = REVENUE_TAB
        assert names(page) == ["Gift Card"]

    def test_item_type_filter(self, page, modals, company):
        add_product(company, "Paper")
        add_product(company, "Delivery", item_type="Service")
        page.load()
        modals.filter_item_type = "Service"
        modals.apply_filters()
        assert names(page) == ["Delivery"]

    def test_margin_sort(self, page, company):
        add_product(company, "Thin", unit_price=Decimal("10"), cost_price=Decimal("9"))
        add_product(company, "Fat", unit_price=Decimal("10"), cost_price=Decimal("2"))
        page.load()
        page.sort_by("Margin")
        page.sort_by("Margin")
        assert names(page) == ["Fat", "Thin"]
