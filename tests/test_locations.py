"""Tests for the locations page and its modals."""
from decimal import Decimal

import pytest

from argobooks.domain.models import Location
from argobooks.ui.viewmodels.locations import LocationsPageViewModel, location_type

from .factories import add_inventory, add_location, add_product


@pytest.fixture
def page(app):
    return LocationsPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.location_modals


def test_location_type_from_name():
    assert location_type(Location(name="North Storage Unit")) == "Storage Facility"
    assert location_type(Location(name="High Street Store")) == "Retail Store"
    assert location_type(Location(name="HQ")) == "Warehouse"


class TestAddLocation:

    def test_code_becomes_id(self, app, page, modals, company):
        modals.open_add_modal()
        modals.location_name = "Main Warehouse"
        modals.code = " main-1 "
        modals.capacity = "200"
        location = modals.save_new_location()

        assert location.id == "MAIN-1"
        assert location.capacity == 200
        assert [row.name for row in page.items] == ["Main Warehouse"]

        app.undo_redo.undo()
        assert company.locations == []

    def test_generated_id_without_code(self, modals):
        modals.open_add_modal()
        modals.location_name = "Annex"
        assert modals.save_new_location().id == "LOC-001"

    def test_duplicate_code(self, modals, company):
        add_location(company, "Main Warehouse", id="MAIN-1")
        modals.open_add_modal()
        modals.location_name = "Second Site"
        modals.code = "main-1"
        assert modals.save_new_location() is None
        assert modals.modal_error == "A location with this code already exists."

    def test_duplicate_name(self, modals, company):
        add_location(company, "Main Warehouse")
        modals.open_add_modal()
        modals.location_name = "main warehouse"
        assert modals.save_new_location() is None
        assert modals.location_name_error == "A location with this name already exists."

    @pytest.mark.parametrize("capacity,error", [
        ("lots", "Please enter a valid capacity."),
        ("-5", "Capacity cannot be negative."),
    ])
    def test_capacity_errors(self, modals, capacity, error):
        modals.open_add_modal()
        modals.location_name = "Annex"
        modals.capacity = capacity
        assert modals.save_new_location() is None
        assert modals.capacity_error == error


class TestEditAndDelete:

    def test_edit_then_undo(self, app, modals, company):
        location = add_location(company, "Main Warehouse", contact_person="Sam")
        assert modals.open_edit_modal(location.id)
        assert modals.code == location.id
        modals.contact_person = "Alex"
        assert modals.save_edited_location()
        assert location.contact_person == "Alex"
        app.undo_redo.undo()
        assert location.contact_person == "Sam"

    def test_delete(self, page, company):
        add_location(company, "Main Warehouse")
        page.load()
        assert page.delete("LOC-001")
        assert page.total_locations == 0


class TestLocationsPage:

    def test_statistics(self, page, company):
        main = add_location(company, "Main Warehouse", capacity=100, current_utilization=50)
        add_location(company, "Corner Store", capacity=100, current_utilization=0)
        product = add_product(company, "Widget", cost_price=Decimal("2.50"))
        add_inventory(company, product, main, 40)
        page.load()

        assert page.total_locations == 2
        assert page.total_stock_items == 40
        assert page.total_inventory_value == Decimal("100.00")
        assert page.total_inventory_value_display == "$100"
        assert page.average_capacity_display == "25%"
        assert page.items[1].utilization_display == "50/100 (50%)"

    def test_type_filter(self, page, modals, company):
        add_location(company, "Main Warehouse")
        add_location(company, "Corner Store")
        page.load()
        modals.filter_type = "Retail Store"
        modals.apply_filters()
        assert [row.name for row in page.items] == ["Corner Store"]
