"""Tests for the customers page and its modals."""
from decimal import Decimal

import pytest

from argobooks.domain.enums import ConfirmationResult, EntityStatus, SortDirection
from argobooks.ui.viewmodels.customers import CustomersPageViewModel, payment_status

from .factories import add_customer


@pytest.fixture
def page(app):
    return CustomersPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.customer_modals


def fill_form(modals, first="Ada", last="Lovelace", email="ada@example.com"):
    modals.open_add_modal()
    modals.first_name = first
    modals.last_name = last
    modals.email = email


def names(page):
    return [row.name for row in page.items]


class TestAddCustomer:

    def test_add_then_undo_and_redo(self, app, page, modals, company):
        fill_form(modals)
        customer = modals.save_new_customer()

        assert customer.id == "CUS-001"
        assert customer.name == "Ada Lovelace"
        assert not modals.is_add_modal_open
        assert company.changes_made
        assert names(page) == ["Ada Lovelace"]
        assert page.total_customers == 1

        assert app.undo_redo.undo_description == "Add customer 'Ada Lovelace'"
        app.undo_redo.undo()
        assert company.customers == []
        assert page.items == []

        app.undo_redo.redo()
        assert names(page) == ["Ada Lovelace"]

    def test_required_names_and_email_format(self, modals, company):
        fill_form(modals, first=" ", last="", email="not-an-email")
        assert modals.save_new_customer() is None
        assert modals.first_name_error == "First name is required."
        assert modals.last_name_error == "Last name is required."
        assert modals.email_error == "Please enter a valid email address."
        assert modals.is_add_modal_open
        assert company.customers == []

    def test_duplicate_name(self, modals, company):
        add_customer(company, "Ada Lovelace")
        fill_form(modals, first="ada", last="lovelace")
        assert modals.save_new_customer() is None
        assert modals.first_name_error == "A customer with this name already exists."

    def test_errors_clear_on_reopen(self, modals):
        fill_form(modals, first="")
        modals.save_new_customer()
        assert modals.has_errors
        modals.close_add_modal()
        modals.open_add_modal()
        assert not modals.has_errors


class TestEditCustomer:

    def test_edit_then_undo(self, app, page, modals, company):
        customer = add_customer(company, "Grace Hopper", email="grace@navy.test")
        page.load()

        assert page.open_edit_modal(customer.id)
        assert (modals.first_name, modals.last_name) == ("Grace", "Hopper")
        assert not modals.has_edit_modal_changes

        modals.email = "grace@example.com"
        modals.status = "Banned"
        assert modals.has_edit_modal_changes
        assert modals.save_edited_customer()
        assert customer.email == "grace@example.com"
        assert customer.status == EntityStatus.ARCHIVED
        assert page.banned_customers == 1

        app.undo_redo.undo()
        assert customer.email == "grace@navy.test"
        assert customer.status == EntityStatus.ACTIVE
        assert page.banned_customers == 0

    def test_unchanged_edit_records_nothing(self, app, modals, company):
        customer = add_customer(company, "Grace Hopper")
        modals.open_edit_modal(customer.id)
        assert modals.save_edited_customer()
        assert not app.undo_redo.can_undo

    def test_unknown_customer(self, modals):
        assert not modals.open_edit_modal("CUS-404")


class TestDeleteCustomer:

    def test_cancelled_delete(self, confirmation, page, company):
        add_customer(company, "Ada Lovelace")
        confirmation.result = ConfirmationResult.CANCEL
        assert not page.delete("CUS-001")
        assert len(company.customers) == 1

    def test_delete_and_undo_restores_position(self, app, confirmation, page, company):
        for name in ("Ada Lovelace", "Grace Hopper", "Alan Turing"):
            add_customer(company, name)
        page.load()

        assert page.delete("CUS-002")
        assert confirmation.prompts[-1] == "Delete Customer"
        assert [c.name for c in company.customers] == ["Ada Lovelace", "Alan Turing"]
        assert page.total_customers == 2

        app.undo_redo.undo()
        assert [c.name for c in company.customers] == ["Ada Lovelace", "Grace Hopper", "Alan Turing"]
        assert page.total_customers == 3


class TestDirtyClose:

    def test_empty_form_closes_without_asking(self, confirmation, modals):
        modals.open_add_modal()
        modals.first_name = "   "
        assert modals.request_close_add_modal()
        assert confirmation.prompts == []

    def test_entered_data_asks_first(self, confirmation, modals):
        fill_form(modals)
        confirmation.result = ConfirmationResult.CANCEL
        assert not modals.request_close_add_modal()
        assert modals.is_add_modal_open
        assert modals.first_name == "Ada"

        confirmation.result = ConfirmationResult.PRIMARY
        assert modals.request_close_add_modal()
        assert not modals.is_add_modal_open
        assert modals.first_name == ""

    def test_edit_changes_ask_first(self, confirmation, modals, company):
        customer = add_customer(company, "Ada Lovelace")
        modals.open_edit_modal(customer.id)
        modals.phone = "555-0100"
        confirmation.result = ConfirmationResult.CANCEL
        assert not modals.request_close_edit_modal()
        assert modals.is_edit_modal_open


class TestCustomersPage:

    @pytest.fixture
    def crowded(self, company, page):
        for i in range(1, 26):
            add_customer(company, f"Customer {i:02d}")
        page.load()
        return page

    def test_pagination(self, crowded):
        assert crowded.pagination_text == "1-10 of 25 customers"
        assert crowded.total_pages == 3
        crowded.go_to_next_page()
        assert crowded.pagination_text == "11-20 of 25 customers"
        assert names(crowded)[0] == "Customer 11"
        crowded.page_size = 25
        assert crowded.current_page == 1
        assert crowded.pagination_text == "25 customers"

    def test_sort_descending(self, crowded):
        crowded.sort_by("Name")
        assert crowded.sort_direction == SortDirection.ASCENDING
        crowded.sort_by("Name")
        assert crowded.is_sorted_descending("Name")
        assert names(crowded)[0] == "Customer 25"

    def test_highlight_moves_to_page(self, crowded):
        crowded.highlight("CUS-015")
        assert crowded.current_page == 2
        assert "CUS-015" in [row.id for row in crowded.items]
        assert crowded.highlight_id is None

    def test_search(self, page, company):
        add_customer(company, "Ada Lovelace", email="ada@example.com")
        add_customer(company, "Grace Hopper")
        page.load()
        page.search_query = "grace"
        assert names(page) == ["Grace Hopper"]
        page.clear_search()
        assert len(page.items) == 2

    def test_status_filter(self, page, modals, company):
        add_customer(company, "Ada Lovelace")
        add_customer(company, "Grace Hopper", status=EntityStatus.ARCHIVED)
        page.load()

        modals.filter_customer_status = "Banned"
        modals.apply_filters()
        assert page.has_active_filters
        assert names(page) == ["Grace Hopper"]
        assert page.items[0].status_label == "Banned"

        modals.clear_filters()
        assert not page.has_active_filters
        assert len(page.items) == 2

    def test_outstanding_filter_and_stats(self, page, modals, company):
        add_customer(company, "Ada Lovelace", total_purchases=Decimal("120"))
        add_customer(company, "Grace Hopper", total_purchases=Decimal("900"))
        add_customer(company, "Alan Turing")
        page.load()
        assert page.overdue_payments == 2
        assert page.active_customers == 3

        modals.filter_outstanding_min = "500"
        modals.apply_filters()
        assert names(page) == ["Grace Hopper"]
        assert page.items[0].payment_status == "Delinquent"

    def test_company_closed_empties_table(self, app, page, company):
        add_customer(company, "Ada Lovelace")
        page.load()
        app.company_manager.close_company()
        assert page.items == []
        assert page.pagination_text == "0 customers"


def test_payment_status_thresholds():
    assert payment_status(Decimal("0")) == "Current"
    assert payment_status(Decimal("499.99")) == "Overdue"
    assert payment_status(Decimal("500")) == "Delinquent"
