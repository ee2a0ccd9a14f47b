"""Tests for invoices: creation, payment, currency amounts, emailing and the invoices page."""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
import requests

from argobooks.domain.enums import ConfirmationResult, InvoiceStatus
from argobooks.services.connectivity import ConnectivityService
from argobooks.services.exchange_rates import ExchangeRateService
from argobooks.services.invoice_email import InvoiceEmailService
from argobooks.ui.viewmodels.invoices import InvoicesPageViewModel, LineItemDraft, status_display

from .factories import add_customer, add_invoice, add_product
from .fakes import FakeResponse, FakeSession

TODAY = date.today()
YEAR = datetime.now(timezone.utc).year


@pytest.fixture
def page(app):
    return InvoicesPageViewModel(app)


@pytest.fixture
def modals(app):
    return app.invoice_modals


@pytest.fixture
def customer(company):
    return add_customer(company, "Ada Lovelace", email="ada@example.com")


def fill_form(modals, customer, price="200", tax="10"):
    modals.open_add_modal()
    modals.customer_id = customer.id
    modals.update_line_item(0, description="Consulting", unit_price=price)
    modals.tax_rate = tax


class TestLineItems:

    def test_open_adds_one_blank_line(self, modals):
        modals.open_add_modal()
        assert modals.line_items == (LineItemDraft(),)
        assert not modals.has_add_modal_entered_data

    def test_product_line_uses_unit_price(self, modals, company):
        product = add_product(company, "Widget", unit_price=Decimal("12.5"))
        modals.open_add_modal()
        modals.add_line_item(product.id)
        modals.update_line_item(1, quantity="3")
        assert modals.line_items[1].description == "Widget"
        assert modals.subtotal_preview == Decimal("37.50")
        assert modals.has_add_modal_entered_data

        modals.remove_line_item(1)
        assert len(modals.line_items) == 1


class TestCreateInvoice:

    def test_create_then_undo(self, app, page, modals, company, customer):
        fill_form(modals, customer)
        invoice = modals.save_new_invoice()

        assert invoice.id == f"INV-{YEAR}-00001"
        assert invoice.invoice_number == f"#INV-{YEAR}-001"
        assert invoice.line_items[0].id == "LI-001"
        assert (invoice.subtotal, invoice.tax_amount, invoice.total) == (Decimal("200"), Decimal("20.00"), Decimal("220.00"))
        assert invoice.due_date == invoice.issue_date + timedelta(days=30)
        assert invoice.status == InvoiceStatus.PENDING
        assert [h.action for h in invoice.history] == ["Created"]
        assert invoice.total_usd == Decimal("220.00")
        assert not modals.is_add_modal_open
        assert page.items[0].customer_name == "Ada Lovelace"
        assert page.total_outstanding == Decimal("220.00")

        app.undo_redo.undo()
        assert company.invoices == []
        assert page.items == []

    def test_blank_lines_are_skipped(self, modals, customer):
        fill_form(modals, customer)
        modals.add_line_item()
        assert len(modals.save_new_invoice().line_items) == 1

    def test_needs_customer_and_line_items(self, modals):
        modals.open_add_modal()
        assert modals.save_new_invoice() is None
        assert modals.customer_error == "Please select a customer."
        assert modals.line_items_error == "Please add at least one line item."

    def test_invalid_line_and_tax(self, modals, customer):
        fill_form(modals, customer, price="abc", tax="150")
        assert modals.save_new_invoice() is None
        assert modals.line_items_error == "Please enter a valid quantity and price for every line item."
        assert modals.tax_rate_error == "Tax rate must be between 0 and 100."

    def test_due_before_issue(self, modals, customer):
        fill_form(modals, customer)
        modals.issue_date = date(2024, 3, 1)
        modals.due_date = date(2024, 2, 1)
        assert modals.save_new_invoice() is None
        assert modals.modal_error == "Due date cannot be before issue date."

    def test_usd_amounts_from_cached_rate(self, app, modals, company, customer):
        company.settings.currency = "EUR"
        app.exchange_rates.cache.set_rate("EUR", "USD", TODAY, "1.10")
        fill_form(modals, customer)
        invoice = modals.save_new_invoice()
        assert invoice.original_currency == "EUR"
        assert invoice.total_usd == Decimal("242.00")

    def test_usd_amounts_from_background_fetch(self, app, modals, company, customer):
        company.settings.currency = "EUR"
        app.exchange_rates = ExchangeRateService(
            api_key="k", cache=app.exchange_rates.cache,
            session=FakeSession(FakeResponse(200, {"rates": {"EUR": "0.5"}})),
        )
        fill_form(modals, customer)
        invoice = modals.save_new_invoice()
        assert invoice.total_usd == Decimal("440.00")
        assert app.notifications.notifications == []

    def test_rate_fetch_failure_posts_warning(self, app, modals, company, customer):
        company.settings.currency = "EUR"
        app.exchange_rates = ExchangeRateService(
            api_key="k", cache=app.exchange_rates.cache, session=FakeSession(error=requests.ConnectionError("down")),
        )
        fill_form(modals, customer)
        invoice = modals.save_new_invoice()

        assert invoice is not None
        note = app.notifications.notifications[-1]
        assert (note.level, note.title) == ("warning", "Exchange Rate Unavailable")
        assert invoice.invoice_number in note.message

    def test_dirty_add_modal_asks_before_closing(self, confirmation, modals, customer):
        fill_form(modals, customer)
        confirmation.result = ConfirmationResult.CANCEL
        assert not modals.request_close_add_modal()
        assert modals.is_add_modal_open


class TestPayment:

    def test_mark_as_paid_and_undo(self, app, page, company, customer):
        invoice = add_invoice(company, customer, Decimal("80.00"), TODAY, TODAY + timedelta(days=30))
        page.load()

        assert page.mark_as_paid(invoice.id)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance == Decimal("0")
        assert invoice.amount_paid == Decimal("80.00")
        assert invoice.history[-1].action == "Payment Recorded"
        assert page.total_outstanding == Decimal("0")
        assert not page.mark_as_paid(invoice.id)

        app.undo_redo.undo()
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.balance == Decimal("80.00")
        assert invoice.history == []

    def test_delete(self, app, page, company, customer):
        invoice = add_invoice(company, customer, Decimal("80.00"), TODAY, TODAY + timedelta(days=30))
        page.load()
        assert page.delete(invoice.id)
        assert company.invoices == []
        app.undo_redo.undo()
        assert company.invoices == [invoice]


class TestSendInvoice:

    @pytest.fixture
    def invoice(self, company, customer):
        return add_invoice(company, customer, Decimal("80.00"), TODAY, TODAY + timedelta(days=30),
                           invoice_number="#INV-T-001")

    def configure_email(self, app, response=None):
        session = FakeSession(response or FakeResponse(200, {"success": True, "messageId": "msg-1"}))
        app.invoice_email = InvoiceEmailService(api_key="secret", api_url="https://mail.test/send", session=session)
        return session

    def test_not_configured(self, app, page, invoice):
        assert not page.send(invoice.id)
        assert app.notifications.notifications[-1].title == "Email Not Configured"
        assert invoice.status == InvoiceStatus.PENDING

    def test_sent(self, app, page, invoice):
        session = self.configure_email(app)
        assert page.send(invoice.id)

        assert len(session.calls) == 1
        assert invoice.status == InvoiceStatus.SENT
        assert invoice.history[-1].action == "Email Sent"
        assert invoice.history[-1].details == "Invoice emailed to ada@example.com"
        note = app.notifications.notifications[-1]
        assert (note.level, note.title) == ("success", "Invoice Sent")
        assert not page.modals.is_sending
        assert app.company.changes_made

    def test_api_failure(self, app, page, invoice):
        self.configure_email(app, FakeResponse(400, {"success": False, "errorCode": "BAD", "message": "Rejected"}))
        page.send(invoice.id)
        note = app.notifications.notifications[-1]
        assert (note.level, note.title, note.message) == ("error", "Failed to Send Invoice", "Rejected")
        assert invoice.status == InvoiceStatus.PENDING

    def test_no_internet(self, app, page, invoice):
        session = self.configure_email(app)
        app.connectivity = ConnectivityService(check_urls=["https://a.test"], session=FakeSession(FakeResponse(500)))
        page.send(invoice.id)
        assert session.calls == []
        assert app.notifications.notifications[-1].message.startswith("No internet connection")
        assert not page.modals.is_sending


class TestInvoicesPage:

    def test_overdue_status_and_filter(self, page, modals, company, customer):
        late = add_invoice(company, customer, Decimal("50.00"), TODAY - timedelta(days=40), TODAY - timedelta(days=10))
        add_invoice(company, customer, Decimal("70.00"), TODAY, TODAY + timedelta(days=3))
        page.load()

        assert status_display(late) == "Overdue"
        assert page.overdue_amount == Decimal("50.00")
        assert page.total_outstanding == Decimal("120.00")
        assert page.due_this_week_count == 1

        modals.filter_status = "Overdue"
        modals.apply_filters()
        assert [row.id for row in page.items] == [late.id]
        assert page.items[0].is_overdue

    def test_drafts_tab(self, page, company, customer):
        add_invoice(company, customer, Decimal("10.00"), TODAY, TODAY, status=InvoiceStatus.DRAFT)
        add_invoice(company, customer, Decimal("20.00"), TODAY, TODAY)
        page.load()
        page.selected_tab = "Drafts"
        assert [row.status for row in page.items] == [InvoiceStatus.DRAFT]

    def test_amount_filter(self, page, modals, company, customer):
        add_invoice(company, customer, Decimal("10.00"), TODAY, TODAY)
        big = add_invoice(company, customer, Decimal("900.00"), TODAY, TODAY)
        page.load()
        modals.filter_amount_min = "100"
        modals.apply_filters()
        assert [row.id for row in page.items] == [big.id]
