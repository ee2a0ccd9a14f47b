from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ... import config
from ...domain.enums import EntityStatus
from ...domain.models import Address, Customer, utc_now
from ...services.validation import is_valid_email
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import parse_decimal

logger = logging.getLogger(__name__)

STATUS_OPTIONS = ("Active", "Inactive", "Banned")
CUSTOMER_STATUS_FILTER_OPTIONS = (config.FILTER_ALL,) + STATUS_OPTIONS
PAYMENT_STATUS_OPTIONS = (config.FILTER_ALL, "Current", "Overdue", "Delinquent")

# "Banned" is how archived customers are shown
STATUS_BY_LABEL = {
    "Active": EntityStatus.ACTIVE,
    "Inactive": EntityStatus.INACTIVE,
    "Banned": EntityStatus.ARCHIVED,
}
LABEL_BY_STATUS = {v: k for k, v in STATUS_BY_LABEL.items()}

DELINQUENT_THRESHOLD = Decimal("500")


def payment_status(outstanding: Decimal) -> str:
    if outstanding == 0:
        return "Current"
    if outstanding < DELINQUENT_THRESHOLD:
        return "Overdue"
    return "Delinquent"


@dataclass
class CustomerRow:
    id: str
    name: str
    email: str
    phone: str
    address: str
    payment_status: str
    outstanding: Decimal
    last_transaction: Optional[date]
    status: EntityStatus

    @property
    def status_label(self) -> str:
        return LABEL_BY_STATUS.get(self.status, "Active")

    @property
    def initials(self) -> str:
        parts = self.name.split()
        if not parts:
            return "?"
        if len(parts) == 1:
            return parts[0][:1].upper()
        return (parts[0][:1] + parts[-1][:1]).upper()


def to_row(customer: Customer) -> CustomerRow:
    addr = customer.address
    address_parts = [p for p in (addr.street, addr.city, addr.state) if p and p.strip()]
    return CustomerRow(
        id=customer.id,
        name=customer.name,
        email=customer.email or "-",
        phone=customer.phone or "-",
        address=", ".join(address_parts) if address_parts else "-",
        payment_status=payment_status(customer.total_purchases),
        outstanding=customer.total_purchases,
        last_transaction=customer.last_transaction_date,
        status=customer.status,
    )


# --- Modals ---

class CustomerModalsViewModel(ModalViewModelBase):
    """
    Add, edit, delete and filter dialogs for customers.
    """
    entity_label = "Customer"

    first_name = observable("")
    last_name = observable("")
    company_name = observable("")
    email = observable("")
    phone = observable("")
    street_address = observable("")
    city = observable("")
    state_province = observable("")
    zip_code = observable("")
    country = observable("")
    notes = observable("")
    status = observable("Active")

    first_name_error = observable(None)
    last_name_error = observable(None)
    email_error = observable(None)

    filter_payment_status = observable(config.FILTER_ALL)
    filter_customer_status = observable(config.FILTER_ALL)
    filter_outstanding_min = observable(None)
    filter_outstanding_max = observable(None)
    filter_last_transaction_from = observable(None)
    filter_last_transaction_to = observable(None)

    FORM_FIELDS = (
        "first_name", "last_name", "company_name", "email", "phone", "street_address",
        "city", "state_province", "zip_code", "country", "notes", "status",
    )
    ERROR_FIELDS = ("first_name_error", "last_name_error", "email_error")
    FILTER_FIELDS = (
        "filter_payment_status", "filter_customer_status", "filter_outstanding_min",
        "filter_outstanding_max", "filter_last_transaction_from", "filter_last_transaction_to",
    )

    status_options = STATUS_OPTIONS
    payment_status_options = PAYMENT_STATUS_OPTIONS
    customer_status_options = CUSTOMER_STATUS_FILTER_OPTIONS

    # --- Form helpers ---

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()

    def _form_to_values(self) -> Dict[str, Any]:
        return {
            "name": self.full_name,
            "company_name": self.company_name.strip(),
            "email": self.email.strip(),
            "phone": self.phone.strip(),
            "address": Address(
                street=self.street_address.strip(),
                city=self.city.strip(),
                state=self.state_province.strip(),
                zip_code=self.zip_code.strip(),
                country=self.country.strip(),
            ),
            "notes": self.notes.strip(),
            "status": STATUS_BY_LABEL.get(self.status, EntityStatus.ACTIVE),
        }

    @staticmethod
    def _capture(customer: Customer) -> Dict[str, Any]:
        return {name: getattr(customer, name) for name in
                ("name", "company_name", "email", "phone", "address", "notes", "status")}

    @staticmethod
    def _apply(customer: Customer, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(customer, name, value)
        customer.updated_at = utc_now()

    def validate_form(self) -> bool:
        self.clear_errors()
        valid = True
        if not self.first_name.strip():
            self.first_name_error = "First name is required."
            valid = False
        if not self.last_name.strip():
            self.last_name_error = "Last name is required."
            valid = False
        if self.email.strip() and not is_valid_email(self.email.strip()):
            self.email_error = "Please enter a valid email address."
            valid = False
        if valid:
            candidate = Customer(id=self._editing_id or "", name=self.full_name)
            result = self.app.validator().validate_customer(candidate)
            duplicate = result.first_error("name")
            if duplicate:
                self.first_name_error = duplicate
                valid = False
        return valid

    # --- Add ---

    def save_new_customer(self) -> Optional[Customer]:
        if self.company is None or not self.validate_form():
            return None
        company = self.company
        now = utc_now()
        customer = Customer(id=self.app.id_generator().next_customer_id(), created_at=now, updated_at=now)
        self._apply(customer, self._form_to_values())
        company.customers.append(customer)

        self.record(
            f"Add customer '{customer.name}'",
            undo=lambda: company.customers.remove(customer),
            redo=lambda: company.customers.append(customer),
        )
        logger.info(f"Added customer {customer.id}")
        self.item_saved.emit()
        self.close_add_modal()
        return customer

    # --- Edit ---

    def open_edit_modal(self, customer_id: str) -> bool:
        customer = self.company.get_customer(customer_id) if self.company else None
        if customer is None:
            return False
        self._editing_id = customer.id
        first, _, last = customer.name.partition(" ")
        self.first_name = first
        self.last_name = last
        self.company_name = customer.company_name
        self.email = customer.email
        self.phone = customer.phone
        self.street_address = customer.address.street
        self.city = customer.address.city
        self.state_province = customer.address.state
        self.zip_code = customer.address.zip_code
        self.country = customer.address.country
        self.notes = customer.notes
        self.status = LABEL_BY_STATUS.get(customer.status, "Active")
        self.clear_errors()
        self._snapshot_form()
        self.is_edit_modal_open = True
        return True

    def save_edited_customer(self) -> bool:
        customer = self.company.get_customer(self._editing_id) if self.company else None
        if customer is None or not self.validate_form():
            return False
        old_values = self._capture(customer)
        new_values = self._form_to_values()
        if old_values == new_values:
            self.close_edit_modal()
            return True

        self._apply(customer, new_values)
        self.record(
            f"Edit customer '{customer.name}'",
            undo=lambda: self._apply(customer, old_values),
            redo=lambda: self._apply(customer, new_values),
        )
        self.item_saved.emit()
        self.close_edit_modal()
        return True

    # --- Delete ---

    def delete_customer(self, customer_id: str) -> bool:
        company = self.company
        customer = company.get_customer(customer_id) if company else None
        if customer is None or not self.confirm_delete(customer.name):
            return False
        index = company.customers.index(customer)
        company.customers.remove(customer)
        self.record(
            f"Delete customer '{customer.name}'",
            undo=lambda: company.customers.insert(index, customer),
            redo=lambda: company.customers.remove(customer),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True


# --- Page ---

class CustomersPageViewModel(TablePageViewModelBase):
    """Customers table: statistics, filters, fuzzy search, sorting and paging."""
    item_singular = "customer"
    COLUMNS = ("Name", "Email", "Phone", "Address", "PaymentStatus", "Outstanding", "LastTransaction", "Status")

    total_customers = observable(0)
    active_customers = observable(0)
    overdue_payments = observable(0)
    banned_customers = observable(0)

    filter_payment_status = observable(config.FILTER_ALL)
    filter_customer_status = observable(config.FILTER_ALL)
    filter_outstanding_min = observable(None)
    filter_outstanding_max = observable(None)
    filter_last_transaction_from = observable(None)
    filter_last_transaction_to = observable(None)
    FILTER_FIELDS = CustomerModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Name": lambda r: r.name,
        "Email": lambda r: r.email,
        "Phone": lambda r: r.phone,
        "Address": lambda r: r.address,
        "PaymentStatus": lambda r: r.payment_status,
        "Outstanding": lambda r: r.outstanding,
        "LastTransaction": lambda r: r.last_transaction,
        "Status": lambda r: r.status.value,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self.sort_column = "Name"
        self._customers: List[Customer] = []
        self.modals = app.customer_modals
        self.bind_modals(self.modals)
        self.load()

    def load_records(self) -> None:
        self._customers = list(self.company.customers) if self.company else []
        self.total_customers = len(self._customers)
        self.active_customers = sum(1 for c in self._customers if c.status == EntityStatus.ACTIVE)
        self.overdue_payments = sum(1 for c in self._customers if c.total_purchases > 0 and c.status == EntityStatus.ACTIVE)
        self.banned_customers = sum(1 for c in self._customers if c.status == EntityStatus.ARCHIVED)

    def build_rows(self) -> List[CustomerRow]:
        records = self.apply_search(self._customers, lambda c: (c.name, c.email, c.phone, c.id))

        if self.filter_payment_status != config.FILTER_ALL:
            records = [c for c in records if payment_status(c.total_purchases) == self.filter_payment_status]
        if self.filter_customer_status != config.FILTER_ALL:
            status = STATUS_BY_LABEL.get(self.filter_customer_status, EntityStatus.ACTIVE)
            records = [c for c in records if c.status == status]

        minimum = parse_decimal(self.filter_outstanding_min)
        if minimum is not None:
            records = [c for c in records if c.total_purchases >= minimum]
        maximum = parse_decimal(self.filter_outstanding_max)
        if maximum is not None:
            records = [c for c in records if c.total_purchases <= maximum]

        if self.filter_last_transaction_from is not None:
            start = self.filter_last_transaction_from
            records = [c for c in records if c.last_transaction_date is not None and c.last_transaction_date >= start]
        if self.filter_last_transaction_to is not None:
            end = self.filter_last_transaction_to
            records = [c for c in records if c.last_transaction_date is not None and c.last_transaction_date <= end]

        rows = [to_row(c) for c in records]
        return self.sort_rows(rows, self.SORT_KEYS, default=self.SORT_KEYS["Name"])

    # --- Commands ---

    def open_edit_modal(self, customer_id: str) -> bool:
        return self.modals.open_edit_modal(customer_id)

    def delete(self, customer_id: str) -> bool:
        return self.modals.delete_customer(customer_id)
