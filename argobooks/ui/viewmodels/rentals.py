from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ... import config
from ...domain.enums import RateType, RentalStatus
from ...domain.models import RentalItem, RentalRecord, ZERO, round_money, utc_now
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import format_money, parse_decimal, parse_int

logger = logging.getLogger(__name__)

RATE_TYPE_OPTIONS = tuple(r.value for r in RateType)
STATUS_FILTER_OPTIONS = (config.FILTER_ALL, "Active", "Returned", "Overdue", "Cancelled")


@dataclass
class RentalRow:
    id: str
    item_name: str
    customer_name: str
    quantity: int
    rate_type: RateType
    rate_amount: Decimal
    start_date: date
    due_date: date
    return_date: Optional[date]
    status: RentalStatus
    days_overdue: int
    total_cost: Optional[Decimal]
    security_deposit: Decimal
    paid: bool

    @property
    def is_active(self) -> bool:
        return self.status in (RentalStatus.ACTIVE, RentalStatus.OVERDUE)

    @property
    def rate_display(self) -> str:
        return f"${self.rate_amount:,.2f}/{self.rate_type.value.lower()}"


def _set_quantities(item: RentalItem, available: int, rented: int) -> None:
    item.available_quantity = available
    item.rented_quantity = rented
    item.updated_at = utc_now()


def _restore_fields(obj: Any, values: Dict[str, Any]) -> None:
    for name, value in values.items():
        setattr(obj, name, value)


# --- Modals ---

class RentalModalsViewModel(ModalViewModelBase):
    """Rental record dialogs: add, return, delete and filters."""
    entity_label = "Rental Record"

    customer_id = observable(None)
    rental_item_id = observable(None, on_change="_on_item_selected")
    quantity = observable("1")
    rate_type = observable(RateType.DAILY.value, on_change="_on_rate_type_selected")
    rate_amount = observable("")
    security_deposit = observable("")
    start_date = observable(None)
    due_date = observable(None)
    notes = observable("")

    customer_error = observable(None)
    item_error = observable(None)
    quantity_error = observable(None)
    rate_error = observable(None)
    date_error = observable(None)

    is_return_modal_open = observable(False)
    return_date = observable(None)
    return_refund_deposit = observable(True)
    return_mark_as_paid = observable(False)
    return_notes = observable("")
    return_total_cost = observable(ZERO)

    filter_status = observable(config.FILTER_ALL)
    filter_customer = observable(None)
    filter_item = observable(None)
    filter_start_date_from = observable(None)
    filter_start_date_to = observable(None)
    filter_due_date_from = observable(None)
    filter_due_date_to = observable(None)

    FORM_FIELDS = (
        "customer_id", "rental_item_id", "quantity", "rate_type", "rate_amount",
        "security_deposit", "start_date", "due_date", "notes",
    )
    ERROR_FIELDS = ("customer_error", "item_error", "quantity_error", "rate_error", "date_error")
    FILTER_FIELDS = (
        "filter_status", "filter_customer", "filter_item", "filter_start_date_from",
        "filter_start_date_to", "filter_due_date_from", "filter_due_date_to",
    )

    rate_type_options = RATE_TYPE_OPTIONS
    status_options = STATUS_FILTER_OPTIONS

    def __init__(self, app: Any):
        super().__init__(app)
        self._returning_id: Optional[str] = None

    # --- Form helpers ---

    def _selected_item(self) -> Optional[RentalItem]:
        return self.company.get_rental_item(self.rental_item_id) if self.company and self.rental_item_id else None

    def _fill_rate(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self.rate_amount = format_money(item.rate_for(RateType(self.rate_type)))
        self.security_deposit = format_money(item.security_deposit)

    def _on_item_selected(self, value: Optional[str]) -> None:
        self._fill_rate()

    def _on_rate_type_selected(self, value: str) -> None:
        self._fill_rate()

    @property
    def available_items(self) -> List[RentalItem]:
        if self.company is None:
            return []
        return [i for i in self.company.rental_inventory if i.is_available]

    # --- Add ---

    def validate_form(self) -> Optional[RentalRecord]:
        """Build the candidate record from the form; None (with field errors set) when invalid."""
        self.clear_errors()
        valid = True
        item = self._selected_item()
        if not self.customer_id:
            self.customer_error = "Please select a customer."
            valid = False
        if item is None:
            self.item_error = "Please select an item."
            valid = False

        quantity = parse_int(self.quantity)
        if quantity is None or quantity <= 0:
            self.quantity_error = "Quantity must be greater than zero."
            valid = False
        elif item is not None and item.available_quantity < quantity:
            self.quantity_error = f"Only {item.available_quantity} available."
            valid = False

        rate = parse_decimal(self.rate_amount)
        if rate is None or rate < 0:
            self.rate_error = "Please enter a valid rate."
            valid = False
        deposit = parse_decimal(self.security_deposit) or ZERO

        start = self.start_date or date.today()
        due = self.due_date
        if due is None:
            self.date_error = "Please select a due date."
            valid = False
        elif due < start:
            self.date_error = "Due date cannot be before start date."
            valid = False
        if not valid:
            return None

        candidate = RentalRecord(
            rental_item_id=item.id,
            customer_id=self.customer_id,
            quantity=quantity,
            rate_type=RateType(self.rate_type),
            rate_amount=rate,
            security_deposit=round_money(deposit * quantity),
            start_date=start,
            due_date=due,
            notes=self.notes.strip(),
        )
        result = self.app.validator().validate_rental_record(candidate)
        if not result.is_valid:
            self.customer_error = result.first_error("customer_id")
            self.quantity_error = result.first_error("quantity")
            self.date_error = result.first_error("due_date")
            self.rate_error = result.first_error("rate_amount")
            return None
        return candidate

    def save_new_rental(self) -> Optional[RentalRecord]:
        if self.company is None:
            return None
        rental = self.validate_form()
        if rental is None:
            return None
        company = self.company
        item = company.get_rental_item(rental.rental_item_id)
        rental.id = self.app.id_generator().next_rental_id()
        before = (item.available_quantity, item.rented_quantity)
        after = (item.available_quantity - rental.quantity, item.rented_quantity + rental.quantity)

        company.rentals.append(rental)
        _set_quantities(item, *after)

        def undo() -> None:
            company.rentals.remove(rental)
            _set_quantities(item, *before)

        def redo() -> None:
            company.rentals.append(rental)
            _set_quantities(item, *after)

        self.record(f"Add rental '{rental.id}'", undo=undo, redo=redo)
        logger.info(f"Added rental {rental.id}: {rental.quantity} x {item.id} for {rental.customer_id}")
        self.item_saved.emit()
        self.close_add_modal()
        return rental

    # --- Return ---

    def open_return_modal(self, rental_id: str, return_date: Optional[date] = None) -> bool:
        rental = self.company.get_rental(rental_id) if self.company else None
        if rental is None or rental.status not in (RentalStatus.ACTIVE, RentalStatus.OVERDUE):
            return False
        self._returning_id = rental.id
        self.return_refund_deposit = True
        self.return_mark_as_paid = False
        self.return_notes = ""
        self.return_date = return_date or date.today()
        self.recalculate_return_cost()
        self.is_return_modal_open = True
        return True

    def recalculate_return_cost(self) -> None:
        rental = self.company.get_rental(self._returning_id) if self.company and self._returning_id else None
        if rental is not None:
            self.return_total_cost = rental.calculate_cost(self.return_date or date.today())

    def close_return_modal(self) -> None:
        self.is_return_modal_open = False
        self._returning_id = None

    def confirm_return(self) -> bool:
        company = self.company
        rental = company.get_rental(self._returning_id) if company and self._returning_id else None
        if rental is None:
            return False
        returned_on = self.return_date or date.today()
        item = company.get_rental_item(rental.rental_item_id)

        old_values = {name: getattr(rental, name) for name in
                      ("status", "return_date", "total_cost", "deposit_refunded", "paid", "notes", "updated_at")}
        notes = rental.notes
        if self.return_notes.strip():
            notes = self.return_notes.strip() if not notes.strip() else f"{notes}\n\nReturn notes: {self.return_notes.strip()}"
        new_values = {
            "status": RentalStatus.RETURNED,
            "return_date": returned_on,
            "total_cost": rental.calculate_cost(returned_on),
            "deposit_refunded": rental.security_deposit if self.return_refund_deposit else ZERO,
            "paid": self.return_mark_as_paid,
            "notes": notes,
            "updated_at": utc_now(),
        }
        item_before = (item.available_quantity, item.rented_quantity) if item else None
        item_after = (item.available_quantity + rental.quantity, item.rented_quantity - rental.quantity) if item else None

        def forward() -> None:
            _restore_fields(rental, new_values)
            if item is not None:
                _set_quantities(item, *item_after)

        def backward() -> None:
            _restore_fields(rental, old_values)
            if item is not None:
                _set_quantities(item, *item_before)

        forward()
        self.record(f"Return rental '{rental.id}'", undo=backward, redo=forward)
        logger.info(f"Returned rental {rental.id}, cost {new_values['total_cost']}")
        self.item_saved.emit()
        self.close_return_modal()
        return True

    # --- Delete ---

    def delete_rental(self, rental_id: str) -> bool:
        company = self.company
        rental = company.get_rental(rental_id) if company else None
        if rental is None or not self.confirm_delete(rental.id):
            return False
        item = company.get_rental_item(rental.rental_item_id)
        # Deleting an outstanding rental puts its units back
        releases = item is not None and rental.status in (RentalStatus.ACTIVE, RentalStatus.OVERDUE)
        item_before = (item.available_quantity, item.rented_quantity) if releases else None
        item_after = (item.available_quantity + rental.quantity, item.rented_quantity - rental.quantity) if releases else None
        index = company.rentals.index(rental)

        def forward() -> None:
            company.rentals.remove(rental)
            if releases:
                _set_quantities(item, *item_after)

        def backward() -> None:
            company.rentals.insert(index, rental)
            if releases:
                _set_quantities(item, *item_before)

        forward()
        self.record(f"Delete rental '{rental.id}'", undo=backward, redo=forward, signal=self.item_deleted)
        self.item_deleted.emit()
        return True


# --- Page ---

class RentalsPageViewModel(TablePageViewModelBase):
    item_singular = "record"
    COLUMNS = ("Id", "Item", "Customer", "Quantity", "Rate", "StartDate", "DueDate", "Status", "Total")

    total_rentals = observable(0)
    active_rentals = observable(0)
    overdue_rentals = observable(0)
    total_revenue = observable(ZERO)

    filter_status = observable(config.FILTER_ALL)
    filter_customer = observable(None)
    filter_item = observable(None)
    filter_start_date_from = observable(None)
    filter_start_date_to = observable(None)
    filter_due_date_from = observable(None)
    filter_due_date_to = observable(None)
    FILTER_FIELDS = RentalModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Id": lambda r: r.id,
        "Item": lambda r: r.item_name,
        "Customer": lambda r: r.customer_name,
        "Quantity": lambda r: r.quantity,
        "Rate": lambda r: r.rate_amount,
        "StartDate": lambda r: r.start_date,
        "DueDate": lambda r: r.due_date,
        "Status": lambda r: r.status.value,
        "Total": lambda r: r.total_cost,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self._rentals: List[RentalRecord] = []
        self.modals = app.rental_modals
        self.bind_modals(self.modals)
        self.load()

    @property
    def total_revenue_display(self) -> str:
        return f"${self.total_revenue:,.2f}"

    def load_records(self) -> None:
        company = self.company
        self._rentals = list(company.rentals) if company else []
        self.refresh_overdue()
        self.total_rentals = len(self._rentals)
        self.active_rentals = sum(1 for r in self._rentals if r.status == RentalStatus.ACTIVE)
        self.overdue_rentals = sum(1 for r in self._rentals if r.status == RentalStatus.OVERDUE)
        self.total_revenue = sum(
            (r.total_cost or ZERO for r in self._rentals if r.status == RentalStatus.RETURNED), ZERO
        )

    def refresh_overdue(self, today: Optional[date] = None) -> int:
        """Flag active rentals past their due date as overdue."""
        changed = 0
        for rental in self._rentals:
            if rental.is_overdue(today):
                rental.status = RentalStatus.OVERDUE
                changed += 1
        if changed:
            logger.info(f"{changed} rental(s) now overdue")
        return changed

    def build_rows(self) -> List[RentalRow]:
        company = self.company
        if company is None:
            return []

        def item_name(r: RentalRecord) -> str:
            item = company.get_rental_item(r.rental_item_id)
            return item.name if item else "Unknown"

        def customer_name(r: RentalRecord) -> str:
            customer = company.get_customer(r.customer_id)
            return customer.name if customer else "Unknown"

        records = self.apply_search(self._rentals, lambda r: (r.id, item_name(r), customer_name(r)))

        if self.filter_status != config.FILTER_ALL:
            records = [r for r in records if r.status.value == self.filter_status]
        if self.filter_customer:
            records = [r for r in records if r.customer_id == self.filter_customer]
        if self.filter_item:
            records = [r for r in records if r.rental_item_id == self.filter_item]
        if self.filter_start_date_from is not None:
            records = [r for r in records if r.start_date >= self.filter_start_date_from]
        if self.filter_start_date_to is not None:
            records = [r for r in records if r.start_date <= self.filter_start_date_to]
        if self.filter_due_date_from is not None:
            records = [r for r in records if r.due_date >= self.filter_due_date_from]
        if self.filter_due_date_to is not None:
            records = [r for r in records if r.due_date <= self.filter_due_date_to]

        today = date.today()
        rows = [
            RentalRow(
                id=r.id,
                item_name=item_name(r),
                customer_name=customer_name(r),
                quantity=r.quantity,
                rate_type=r.rate_type,
                rate_amount=r.rate_amount,
                start_date=r.start_date,
                due_date=r.due_date,
                return_date=r.return_date,
                status=r.status,
                days_overdue=r.days_overdue(today),
                total_cost=r.total_cost,
                security_deposit=r.security_deposit,
                paid=r.paid,
            )
            for r in records
        ]
        return self.sort_rows(rows, self.SORT_KEYS, default=lambda r: r.start_date)

    def open_return_modal(self, rental_id: str) -> bool:
        return self.modals.open_return_modal(rental_id)

    def delete(self, rental_id: str) -> bool:
        return self.modals.delete_rental(rental_id)
