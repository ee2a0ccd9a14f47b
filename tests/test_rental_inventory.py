"""Tests for the rental inventory page: item add/edit/delete, filters and rent-out."""
from decimal import Decimal

import pytest

from argobooks.domain.enums import EntityStatus
from argobooks.ui.viewmodels.rental_inventory import RentalInventoryPageViewModel

from .factories import add_customer, add_rental_item


@pytest.fixture
def page(app):
    return RentalInventoryPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.rental_inventory_modals


def fill_form(modals, name="Projector", quantity="4", daily="25.00"):
    modals.open_add_modal()
    modals.item_name = name
    modals.total_quantity = quantity
    modals.daily_rate = daily
    modals.weekly_rate = "150.00"
    modals.security_deposit = "100.00"


class TestAddRentalItem:

    def test_add_and_undo(self, app, page, modals, company):
        fill_form(modals)
        item = modals.save_new_item()

        assert item.id == "RNT-ITM-001"
        assert (item.total_quantity, item.available_quantity, item.rented_quantity) == (4, 4, 0)
        assert item.daily_rate == Decimal("25.00")
        assert item.status == EntityStatus.ACTIVE
        assert not modals.is_add_modal_open
        assert page.total_items == 4
        assert [row.status for row in page.items] == ["Available"]

        app.undo_redo.undo()
        assert company.rental_inventory == []
        assert page.total_items == 0
        app.undo_redo.redo()
        assert company.rental_inventory == [item]

    def test_required_fields(self, modals):
        modals.open_add_modal()
        modals.total_quantity = "0"
        modals.daily_rate = "abc"
        assert modals.save_new_item() is None
        assert modals.item_name_error == "Item name is required."
        assert modals.quantity_error == "Please enter a valid quantity."
        assert modals.daily_rate_error == "Please enter a valid daily rate."

    def test_duplicate_name_is_rejected(self, modals, company):
        add_rental_item(company, "Projector")
        fill_form(modals, name=" projector ")
        assert modals.save_new_item() is None
        assert modals.item_name_error == "An item with this name already exists."

    def test_negative_deposit_is_rejected(self, modals):
        fill_form(modals)
        modals.security_deposit = "-5"
        assert modals.save_new_item() is None
        assert modals.daily_rate_error == "Security deposit cannot be negative."

    def test_maintenance_status(self, modals):
        fill_form(modals)
        modals.status = "In Maintenance"
        item = modals.save_new_item()
        assert item.status == EntityStatus.INACTIVE
        assert not item.is_available


class TestEditRentalItem:

    def test_quantity_change_keeps_rented_units(self, app, modals, company):
        item = add_rental_item(company, "Projector", quantity=5)
        item.available_quantity, item.rented_quantity = 2, 3

        assert modals.open_edit_modal(item.id)
        assert modals.total_quantity == "5"
        assert modals.daily_rate == "25.00"
        modals.total_quantity = "7"
        assert modals.save_edited_item()
        assert (item.total_quantity, item.available_quantity, item.rented_quantity) == (7, 4, 3)

        app.undo_redo.undo()
        assert (item.total_quantity, item.available_quantity) == (5, 2)

    def test_shrinking_never_goes_negative(self, modals, company):
        item = add_rental_item(company, "Projector", quantity=5)
        item.available_quantity, item.rented_quantity = 1, 4
        modals.open_edit_modal(item.id)
        modals.total_quantity = "2"
        assert modals.save_edited_item()
        assert item.available_quantity == 0

    def test_edit_keeps_own_name(self, modals, company):
        item = add_rental_item(company, "Projector")
        modals.open_edit_modal(item.id)
        modals.notes = "Spare bulb in the case"
        assert modals.save_edited_item()
        assert modals.item_name_error is None
        assert item.notes == "Spare bulb in the case"

    def test_unchanged_form_records_nothing(self, app, modals, company):
        item = add_rental_item(company, "Projector")
        modals.open_edit_modal(item.id)
        assert modals.save_edited_item()
        assert not app.undo_redo.can_undo


class TestRentalInventoryPage:

    @pytest.fixture
    def stock(self, company):
        projector = add_rental_item(company, "Projector", quantity=3)
        ladder = add_rental_item(company, "Ladder", quantity=2, daily_rate=Decimal("8.00"))
        ladder.available_quantity, ladder.rented_quantity = 0, 2
        tent = add_rental_item(company, "Tent", quantity=1, status=EntityStatus.INACTIVE)
        return projector, ladder, tent

    def test_statistics(self, page, stock):
        page.load()
        assert page.total_items == 6
        assert page.available_items == 4
        assert page.rented_out_items == 2
        assert page.maintenance_items == 1
        assert [row.name for row in page.items] == ["Ladder", "Projector", "Tent"]

    @pytest.mark.parametrize("status, expected", [
        ("Available", ["Projector"]),
        ("In Maintenance", ["Tent"]),
        ("All Rented", ["Ladder"]),
    ])
    def test_status_filter(self, page, modals, stock, status, expected):
        modals.filter_status = status
        modals.apply_filters()
        assert [row.name for row in page.items] == expected

    def test_availability_and_rate_filters(self, page, modals, stock):
        modals.filter_availability = "Unavailable Only"
        modals.apply_filters()
        assert [row.name for row in page.items] == ["Ladder", "Tent"]

        modals.filter_daily_rate_min = "10"
        modals.apply_filters()
        assert [row.name for row in page.items] == ["Tent"]

    def test_delete_and_undo(self, app, page, company, stock):
        projector, _, _ = stock
        page.load()
        assert page.delete(projector.id)
        assert projector not in company.rental_inventory

        app.undo_redo.undo()
        assert company.rental_inventory[0] is projector

    def test_rent_out_reserves_units(self, app, page, company, stock):
        projector, ladder, _ = stock
        customer = add_customer(company, "Ada Lovelace")
        assert not page.open_rent_out_modal(ladder.id)

        assert page.open_rent_out_modal(projector.id)
        rentals = app.rental_modals
        assert rentals.is_add_modal_open
        assert rentals.rate_amount == "25.00"
        rentals.customer_id = customer.id
        rentals.quantity = "2"
        assert rentals.save_new_rental() is not None

        assert (projector.available_quantity, projector.rented_quantity) == (1, 2)
        assert page.rented_out_items == 4
