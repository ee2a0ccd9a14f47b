from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ... import config
from ...domain.enums import InvoiceStatus
from ...domain.models import Invoice, LineItem, MonetaryValue, ZERO, round_money, utc_now
from ...services.invoice_email import InvoiceEmailResponse
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import parse_decimal

logger = logging.getLogger(__name__)

STATUS_OPTIONS = ("Draft", "Pending", "Sent", "Partial", "Paid", "Cancelled")
STATUS_FILTER_OPTIONS = (config.FILTER_ALL, "Draft", "Pending", "Sent", "Partial", "Paid", "Overdue", "Cancelled")
TAB_OPTIONS = ("All", "Drafts")
DEFAULT_PAYMENT_TERMS_DAYS = 30
CLOSED_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


@dataclass(frozen=True)
class LineItemDraft:
    """One editable line in the invoice form; numbers stay text until saved."""
    product_id: Optional[str] = None
    description: str = ""
    quantity: str = "1"
    unit_price: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.product_id and not self.description.strip() and not self.unit_price.strip()

    @property
    def amount(self) -> Decimal:
        quantity = parse_decimal(self.quantity) or ZERO
        price = parse_decimal(self.unit_price) or ZERO
        return round_money(quantity * price)


@dataclass
class InvoiceRow:
    id: str
    invoice_number: str
    customer_name: str
    issue_date: date
    due_date: date
    total: Decimal
    balance: Decimal
    currency: str
    status: InvoiceStatus
    status_display: str
    history_count: int

    @property
    def is_overdue(self) -> bool:
        return self.status_display == "Overdue"


def status_display(invoice: Invoice, today: Optional[date] = None) -> str:
    if invoice.is_overdue(today):
        return "Overdue"
    return invoice.status.value


# --- Modals ---

class InvoiceModalsViewModel(ModalViewModelBase):
    """Create, mark-paid, delete, send and filter dialogs for invoices."""
    entity_label = "Invoice"

    customer_id = observable(None)
    issue_date = observable(None)
    due_date = observable(None)
    tax_rate = observable("")
    security_deposit = observable("")
    notes = observable("")
    line_items = observable(())

    customer_error = observable(None)
    line_items_error = observable(None)
    tax_rate_error = observable(None)
    modal_error = observable(None)

    is_sending = observable(False)

    filter_status = observable(config.FILTER_ALL)
    filter_customer_id = observable(None)
    filter_amount_min = observable(None)
    filter_amount_max = observable(None)
    filter_issue_date_from = observable(None)
    filter_issue_date_to = observable(None)
    filter_due_date_from = observable(None)
    filter_due_date_to = observable(None)

    FORM_FIELDS = ("customer_id", "issue_date", "due_date", "tax_rate", "security_deposit", "notes", "line_items")
    ERROR_FIELDS = ("customer_error", "line_items_error", "tax_rate_error", "modal_error")
    FILTER_FIELDS = (
        "filter_status", "filter_customer_id", "filter_amount_min", "filter_amount_max",
        "filter_issue_date_from", "filter_issue_date_to", "filter_due_date_from", "filter_due_date_to",
    )

    status_options = STATUS_OPTIONS
    status_filter_options = STATUS_FILTER_OPTIONS

    # --- Line items ---

    def add_line_item(self, product_id: Optional[str] = None) -> None:
        draft = LineItemDraft()
        product = self.company.get_product(product_id) if self.company and product_id else None
        if product is not None:
            draft = LineItemDraft(product_id=product.id, description=product.name, unit_price=f"{product.unit_price:.2f}")
        self.line_items = self.line_items + (draft,)

    def update_line_item(self, index: int, **changes: Any) -> None:
        items = list(self.line_items)
        items[index] = replace(items[index], **changes)
        self.line_items = tuple(items)

    def remove_line_item(self, index: int) -> None:
        items = list(self.line_items)
        del items[index]
        self.line_items = tuple(items)

    @property
    def subtotal_preview(self) -> Decimal:
        return round_money(sum((li.amount for li in self.line_items), ZERO))

    # --- Validation ---

    def build_invoice(self) -> Optional[Invoice]:
        """Assemble an unsaved invoice from the form; None with field errors when invalid."""
        self.clear_errors()
        valid = True
        if not self.customer_id:
            self.customer_error = "Please select a customer."
            valid = False

        items: List[LineItem] = []
        for draft in self.line_items:
            if draft.is_blank:
                continue
            quantity = parse_decimal(draft.quantity)
            price = parse_decimal(draft.unit_price)
            if quantity is None or price is None:
                self.line_items_error = "Please enter a valid quantity and price for every line item."
                valid = False
                continue
            items.append(LineItem(product_id=draft.product_id, description=draft.description.strip(), quantity=quantity, unit_price=price))
        if not items and self.line_items_error is None:
            self.line_items_error = "Please add at least one line item."
            valid = False

        tax_percent = parse_decimal(self.tax_rate) if self.tax_rate.strip() else ZERO
        if tax_percent is None or tax_percent < 0 or tax_percent > 100:
            self.tax_rate_error = "Tax rate must be between 0 and 100."
            valid = False
        if not valid:
            return None

        issue = self.issue_date or date.today()
        invoice = Invoice(
            customer_id=self.customer_id,
            issue_date=issue,
            due_date=self.due_date or issue + timedelta(days=DEFAULT_PAYMENT_TERMS_DAYS),
            line_items=items,
            tax_rate=tax_percent / Decimal(100),
            security_deposit=parse_decimal(self.security_deposit) or ZERO,
            notes=self.notes.strip(),
            status=InvoiceStatus.PENDING,
            original_currency=self.app.currency,
        )
        invoice.recalculate()

        result = self.app.validator().validate_invoice(invoice)
        if not result.is_valid:
            self.customer_error = result.first_error("customer_id")
            self.line_items_error = (
                result.first_error("line_items") or result.first_error("description") or result.first_error("quantity")
            )
            self.modal_error = result.first_error("due_date") or result.first_error("total")
            return None
        return invoice

    # --- Create ---

    def open_add_modal(self) -> None:
        super().open_add_modal()
        self.line_items = (LineItemDraft(),)

    @property
    def has_add_modal_entered_data(self) -> bool:
        if any(not li.is_blank for li in self.line_items):
            return True
        values = {k: v for k, v in self.form_values().items() if k != "line_items"}
        return any((v.strip() if isinstance(v, str) else v is not None) for v in values.values())

    def save_new_invoice(self) -> Optional[Invoice]:
        if self.company is None:
            return None
        invoice = self.build_invoice()
        if invoice is None:
            return None
        company = self.company
        ids = self.app.id_generator()
        invoice.id = ids.next_invoice_id()
        invoice.invoice_number = ids.next_invoice_number()
        for item in invoice.line_items:
            item.id = ids.next_line_item_id()
        invoice.add_history("Created", f"Invoice {invoice.invoice_number} created")

        company.invoices.append(invoice)
        self._apply_usd_amounts(invoice)
        self.record(
            f"Create invoice '{invoice.invoice_number}'",
            undo=lambda: company.invoices.remove(invoice),
            redo=lambda: company.invoices.append(invoice),
        )
        logger.info(f"Created invoice {invoice.id} for {invoice.customer_id}: {invoice.total} {invoice.original_currency}")
        self.item_saved.emit()
        self.close_add_modal()
        return invoice

    # --- Currency ---

    def _apply_usd_amounts(self, invoice: Invoice) -> None:
        """Fill the USD amounts from cached rates, fetching in the background when none is cached."""
        currency = (invoice.original_currency or "USD").upper()
        if currency == "USD":
            invoice.total_usd = invoice.total
            invoice.balance_usd = invoice.balance
            return
        rates = self.app.exchange_rates
        rate = rates.cached_rate(currency, "USD", invoice.issue_date)
        if rate > 0:
            self._set_usd(invoice, rate)
            return
        if rates.has_api_key:
            invoice_id = invoice.id
            self.app.tasks.submit(
                lambda: (invoice_id, rates.get_exchange_rate(currency, "USD", invoice.issue_date)),
                self._on_usd_rate,
                self._on_usd_rate_failed,
            )

    @staticmethod
    def _set_usd(invoice: Invoice, rate: Decimal) -> None:
        invoice.total_usd = round_money(invoice.total * rate)
        invoice.balance_usd = round_money(invoice.balance * rate)

    def _on_usd_rate(self, result: Tuple[str, Decimal]) -> None:
        invoice_id, rate = result
        invoice = self.company.get_invoice(invoice_id) if self.company else None
        if invoice is None:
            return
        if rate <= 0:
            self._on_usd_rate_failed(
                f"No {invoice.original_currency} to USD rate for {invoice.issue_date.isoformat()}; "
                f"USD amounts for {invoice.invoice_number} were not updated."
            )
            return
        self._set_usd(invoice, rate)
        self.mark_modified()
        self.item_saved.emit()

    def _on_usd_rate_failed(self, message: str) -> None:
        self.app.notifications.warning("Exchange Rate Unavailable", message)

    # --- Payment ---

    def mark_as_paid(self, invoice_id: str) -> bool:
        invoice = self.company.get_invoice(invoice_id) if self.company else None
        if invoice is None or invoice.status in CLOSED_STATUSES:
            return False
        fields = ("amount_paid", "balance", "balance_usd", "status", "updated_at")
        old_values = {name: getattr(invoice, name) for name in fields}
        old_history = list(invoice.history)

        invoice.amount_paid = invoice.total
        invoice.balance = ZERO
        invoice.balance_usd = ZERO
        invoice.status = InvoiceStatus.PAID
        invoice.updated_at = utc_now()
        invoice.add_history("Payment Recorded", f"Marked as paid in full ({invoice.total:,.2f} {invoice.original_currency})")
        new_values = {name: getattr(invoice, name) for name in fields}
        new_history = list(invoice.history)

        def apply(values: Dict[str, Any], history: List[Any]) -> None:
            for name, value in values.items():
                setattr(invoice, name, value)
            invoice.history = list(history)

        self.record(
            f"Mark invoice '{invoice.invoice_number}' as paid",
            undo=lambda: apply(old_values, old_history),
            redo=lambda: apply(new_values, new_history),
        )
        self.item_saved.emit()
        return True

    # --- Delete ---

    def delete_invoice(self, invoice_id: str) -> bool:
        company = self.company
        invoice = company.get_invoice(invoice_id) if company else None
        if invoice is None or not self.confirm_delete(invoice.invoice_number or invoice.id):
            return False
        index = company.invoices.index(invoice)
        company.invoices.remove(invoice)
        self.record(
            f"Delete invoice '{invoice.invoice_number}'",
            undo=lambda: company.invoices.insert(index, invoice),
            redo=lambda: company.invoices.remove(invoice),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True

    # --- Email ---

    def send_invoice(self, invoice_id: str) -> bool:
        """
        Email the invoice to its customer on a worker. The connectivity check runs
        first; the outcome is reported through the notification center.
        """
        company = self.company
        invoice = company.get_invoice(invoice_id) if company else None
        if invoice is None or self.is_sending:
            return False
        email = self.app.invoice_email
        if not email.is_configured:
            self.app.notifications.error(
                "Email Not Configured",
                "Email API is not configured. Please set INVOICE_EMAIL_API_URL and INVOICE_EMAIL_API_KEY.",
            )
            return False

        connectivity = self.app.connectivity

        def work() -> Tuple[str, InvoiceEmailResponse]:
            if not connectivity.is_internet_available():
                return invoice_id, InvoiceEmailResponse.failure(
                    "NO_INTERNET", "No internet connection. Please check your connection and try again."
                )
            return invoice_id, email.send_invoice(invoice, company)

        self.is_sending = True
        self.app.tasks.submit(work, self._on_send_result, self._on_send_failed)
        return True

    def _on_send_result(self, result: Tuple[str, InvoiceEmailResponse]) -> None:
        self.is_sending = False
        invoice_id, response = result
        invoice = self.company.get_invoice(invoice_id) if self.company else None
        if invoice is None:
            return
        if not response.success:
            logger.warning(f"Sending invoice {invoice_id} failed: {response.error_code} {response.message}")
            self.app.notifications.error("Failed to Send Invoice", response.message)
            return
        customer = self.company.get_customer(invoice.customer_id)
        recipient = customer.email if customer else ""
        if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
            invoice.status = InvoiceStatus.SENT
        invoice.updated_at = utc_now()
        invoice.add_history("Email Sent", f"Invoice emailed to {recipient}")
        self.mark_modified()
        self.app.notifications.success("Invoice Sent", f"Invoice {invoice.invoice_number} was sent to {recipient}.")
        self.item_saved.emit()

    def _on_send_failed(self, message: str) -> None:
        self.is_sending = False
        self.app.notifications.error("Failed to Send Invoice", message)


# --- Page ---

class InvoicesPageViewModel(TablePageViewModelBase):
    """Invoices with totals shown in the company currency."""
    item_singular = "invoice"
    COLUMNS = ("Id", "Customer", "IssueDate", "DueDate", "Amount", "Status")

    selected_tab = observable("All", on_change="_on_tab_changed")

    total_outstanding = observable(ZERO)
    paid_this_month = observable(ZERO)
    overdue_amount = observable(ZERO)
    due_this_week_count = observable(0)

    filter_status = observable(config.FILTER_ALL)
    filter_customer_id = observable(None)
    filter_amount_min = observable(None)
    filter_amount_max = observable(None)
    filter_issue_date_from = observable(None)
    filter_issue_date_to = observable(None)
    filter_due_date_from = observable(None)
    filter_due_date_to = observable(None)
    FILTER_FIELDS = InvoiceModalsViewModel.FILTER_FIELDS

    tab_options = TAB_OPTIONS

    SORT_KEYS = {
        "Id": lambda r: r.invoice_number,
        "Customer": lambda r: r.customer_name,
        "IssueDate": lambda r: r.issue_date,
        "DueDate": lambda r: r.due_date,
        "Amount": lambda r: r.total,
        "Status": lambda r: r.status_display,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self._invoices: List[Invoice] = []
        self.modals = app.invoice_modals
        self.bind_modals(self.modals)
        self.load()

    def _on_tab_changed(self, value: str) -> None:
        self.current_page = 1
        self.refresh()

    # --- Currency ---

    def display_amount(self, invoice: Invoice, amount: Decimal, amount_usd: Decimal) -> Decimal:
        value = MonetaryValue(
            original_amount=amount,
            original_currency=invoice.original_currency,
            amount_usd=amount_usd if amount_usd > 0 else amount,
            rate_date=invoice.issue_date,
        )
        rates = self.app.exchange_rates
        return value.display_amount(self.app.currency, lambda f, t, on: rates.cached_rate(f, t, on))

    def display_total(self, invoice: Invoice) -> Decimal:
        return self.display_amount(invoice, invoice.total, invoice.effective_total_usd)

    def display_balance(self, invoice: Invoice) -> Decimal:
        return self.display_amount(invoice, invoice.balance, invoice.effective_balance_usd)

    # --- Data ---

    def load_records(self) -> None:
        company = self.company
        self._invoices = list(company.invoices) if company else []
        today = date.today()
        month_start = today.replace(day=1)
        week_end = today + timedelta(days=7)
        open_invoices = [i for i in self._invoices if i.status not in CLOSED_STATUSES]
        self.total_outstanding = sum((self.display_balance(i) for i in open_invoices), ZERO)
        self.paid_this_month = sum(
            (self.display_total(i) for i in self._invoices
             if i.status == InvoiceStatus.PAID and i.updated_at.date() >= month_start),
            ZERO,
        )
        self.overdue_amount = sum(
            (self.display_balance(i) for i in self._invoices
             if i.is_overdue(today) or i.status == InvoiceStatus.OVERDUE),
            ZERO,
        )
        self.due_this_week_count = sum(1 for i in open_invoices if today <= i.due_date <= week_end)

    def build_rows(self) -> List[InvoiceRow]:
        company = self.company
        if company is None:
            return []

        def customer_name(invoice: Invoice) -> str:
            customer = company.get_customer(invoice.customer_id)
            return customer.name if customer else "Unknown"

        records = self._invoices
        if self.selected_tab == "Drafts":
            records = [i for i in records if i.status == InvoiceStatus.DRAFT]
        records = self.apply_search(records, lambda i: (i.id, customer_name(i), i.invoice_number))

        today = date.today()
        if self.filter_status != config.FILTER_ALL:
            if self.filter_status == "Overdue":
                records = [i for i in records if i.status == InvoiceStatus.OVERDUE or i.is_overdue(today)]
            else:
                records = [i for i in records if i.status.value == self.filter_status]
        if self.filter_customer_id:
            records = [i for i in records if i.customer_id == self.filter_customer_id]

        minimum = parse_decimal(self.filter_amount_min)
        if minimum is not None:
            records = [i for i in records if self.display_total(i) >= minimum]
        maximum = parse_decimal(self.filter_amount_max)
        if maximum is not None:
            records = [i for i in records if self.display_total(i) <= maximum]
        if self.filter_issue_date_from is not None:
            records = [i for i in records if i.issue_date >= self.filter_issue_date_from]
        if self.filter_issue_date_to is not None:
            records = [i for i in records if i.issue_date <= self.filter_issue_date_to]
        if self.filter_due_date_from is not None:
            records = [i for i in records if i.due_date >= self.filter_due_date_from]
        if self.filter_due_date_to is not None:
            records = [i for i in records if i.due_date <= self.filter_due_date_to]

        rows = [
            InvoiceRow(
                id=i.id,
                invoice_number=i.invoice_number,
                customer_name=customer_name(i),
                issue_date=i.issue_date,
                due_date=i.due_date,
                total=self.display_total(i),
                balance=self.display_balance(i),
                currency=self.app.currency,
                status=i.status,
                status_display=status_display(i, today),
                history_count=len(i.history),
            )
            for i in records
        ]
        return self.sort_rows(rows, self.SORT_KEYS, default=lambda r: r.issue_date)

    # --- Commands ---

    def mark_as_paid(self, invoice_id: str) -> bool:
        return self.modals.mark_as_paid(invoice_id)

    def send(self, invoice_id: str) -> bool:
        return self.modals.send_invoice(invoice_id)

    def delete(self, invoice_id: str) -> bool:
        return self.modals.delete_invoice(invoice_id)
