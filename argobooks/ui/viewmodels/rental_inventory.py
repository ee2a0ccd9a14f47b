from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ... import config
from ...domain.enums import EntityStatus
from ...domain.models import RentalItem, ZERO, utc_now
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import format_money, parse_decimal, parse_int

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "Active"
STATUS_MAINTENANCE = "In Maintenance"
ITEM_STATUS_OPTIONS = (STATUS_ACTIVE, STATUS_MAINTENANCE)
STATUS_FILTER_OPTIONS = (config.FILTER_ALL, "Available", STATUS_MAINTENANCE, "All Rented")
AVAILABILITY_FILTER_OPTIONS = (config.FILTER_ALL, "Available Only", "Unavailable Only")

EDITABLE_ATTRS = (
    "name", "description", "total_quantity", "available_quantity", "daily_rate",
    "weekly_rate", "monthly_rate", "security_deposit", "status", "notes",
)


def status_label(item: RentalItem) -> str:
    if item.status == EntityStatus.INACTIVE:
        return STATUS_MAINTENANCE
    return "All Rented" if item.available_quantity == 0 else "Available"


@dataclass
class RentalItemRow:
    id: str
    name: str
    status: str
    total_quantity: int
    available_quantity: int
    rented_quantity: int
    daily_rate: Decimal
    weekly_rate: Decimal
    monthly_rate: Decimal
    security_deposit: Decimal
    is_available: bool


# --- Modals ---

class RentalInventoryModalsViewModel(ModalViewModelBase):
    """Rental item dialogs: add, edit, delete and filters."""
    entity_label = "Rental Item"

    item_name = observable("")
    description = observable("")
    total_quantity = observable("1")
    daily_rate = observable("")
    weekly_rate = observable("")
    monthly_rate = observable("")
    security_deposit = observable("")
    status = observable(STATUS_ACTIVE)
    notes = observable("")

    item_name_error = observable(None)
    quantity_error = observable(None)
    daily_rate_error = observable(None)

    filter_status = observable(config.FILTER_ALL)
    filter_availability = observable(config.FILTER_ALL)
    filter_daily_rate_min = observable("")
    filter_daily_rate_max = observable("")

    FORM_FIELDS = (
        "item_name", "description", "total_quantity", "daily_rate", "weekly_rate",
        "monthly_rate", "security_deposit", "status", "notes",
    )
    ERROR_FIELDS = ("item_name_error", "quantity_error", "daily_rate_error")
    FILTER_FIELDS = ("filter_status", "filter_availability", "filter_daily_rate_min", "filter_daily_rate_max")

    status_options = ITEM_STATUS_OPTIONS
    filter_status_options = STATUS_FILTER_OPTIONS
    availability_options = AVAILABILITY_FILTER_OPTIONS

    # --- Validation ---

    def validate_form(self) -> Tuple[bool, Dict[str, Any]]:
        """Check the form; on success also return the parsed values."""
        self.clear_errors()
        valid = True
        if not self.item_name.strip():
            self.item_name_error = "Item name is required."
            valid = False

        quantity = parse_int(self.total_quantity)
        if quantity is None or quantity <= 0:
            self.quantity_error = "Please enter a valid quantity."
            valid = False
        daily = parse_decimal(self.daily_rate)
        if daily is None or daily < 0:
            self.daily_rate_error = "Please enter a valid daily rate."
            valid = False

        values = {
            "name": self.item_name.strip(),
            "description": self.description.strip(),
            "total_quantity": quantity or 0,
            "daily_rate": daily if daily is not None else ZERO,
            "weekly_rate": parse_decimal(self.weekly_rate) or ZERO,
            "monthly_rate": parse_decimal(self.monthly_rate) or ZERO,
            "security_deposit": parse_decimal(self.security_deposit) or ZERO,
            "status": EntityStatus.INACTIVE if self.status == STATUS_MAINTENANCE else EntityStatus.ACTIVE,
            "notes": self.notes.strip(),
        }
        if not valid:
            return False, values

        candidate = RentalItem(id=self._editing_id or "")
        _apply(candidate, values)
        result = self.app.validator().validate_rental_item(candidate)
        self.item_name_error = result.first_error("name")
        self.quantity_error = result.first_error("total_quantity")
        self.daily_rate_error = next(
            (result.first_error(f) for f in ("daily_rate", "weekly_rate", "monthly_rate", "security_deposit")
             if result.first_error(f)),
            None,
        )
        return result.is_valid, values

    # --- Add ---

    def save_new_item(self) -> Optional[RentalItem]:
        if self.company is None:
            return None
        valid, values = self.validate_form()
        if not valid:
            return None
        company = self.company
        item = RentalItem(id=self.app.id_generator().next_rental_item_id())
        values["available_quantity"] = values["total_quantity"]
        _apply(item, values)
        item.created_at = item.updated_at
        company.rental_inventory.append(item)
        self.record(
            f"Add rental item '{item.name}'",
            undo=lambda: company.rental_inventory.remove(item),
            redo=lambda: company.rental_inventory.append(item),
        )
        logger.info(f"Added rental item {item.id} ({item.total_quantity} units)")
        self.item_saved.emit()
        self.close_add_modal()
        return item

    # --- Edit ---

    def open_edit_modal(self, item_id: str) -> bool:
        item = self.company.get_rental_item(item_id) if self.company else None
        if item is None:
            return False
        self._editing_id = item.id
        self.item_name = item.name
        self.description = item.description
        self.total_quantity = str(item.total_quantity)
        self.daily_rate = format_money(item.daily_rate)
        self.weekly_rate = format_money(item.weekly_rate)
        self.monthly_rate = format_money(item.monthly_rate)
        self.security_deposit = format_money(item.security_deposit)
        self.status = STATUS_MAINTENANCE if item.status == EntityStatus.INACTIVE else STATUS_ACTIVE
        self.notes = item.notes
        self.clear_errors()
        self._snapshot_form()
        self.is_edit_modal_open = True
        return True

    def save_edited_item(self) -> bool:
        item = self.company.get_rental_item(self._editing_id) if self.company else None
        if item is None:
            return False
        valid, new_values = self.validate_form()
        if not valid:
            return False
        # Units out on rent stay out; only the idle pool follows the new total
        new_values["available_quantity"] = max(
            0, item.available_quantity + new_values["total_quantity"] - item.total_quantity
        )
        old_values = {name: getattr(item, name) for name in EDITABLE_ATTRS}
        if old_values == new_values:
            self.close_edit_modal()
            return True
        _apply(item, new_values)
        self.record(
            f"Edit rental item '{item.name}'",
            undo=lambda: _apply(item, old_values),
            redo=lambda: _apply(item, new_values),
        )
        self.item_saved.emit()
        self.close_edit_modal()
        return True

    # --- Delete ---

    def delete_item(self, item_id: str) -> bool:
        company = self.company
        item = company.get_rental_item(item_id) if company else None
        if item is None or not self.confirm_delete(item.name):
            return False
        index = company.rental_inventory.index(item)
        company.rental_inventory.remove(item)
        self.record(
            f"Delete rental item '{item.name}'",
            undo=lambda: company.rental_inventory.insert(index, item),
            redo=lambda: company.rental_inventory.remove(item),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True


def _apply(item: RentalItem, values: Dict[str, Any]) -> None:
    for name, value in values.items():
        setattr(item, name, value)
    item.updated_at = utc_now()


# --- Page ---

class RentalInventoryPageViewModel(TablePageViewModelBase):
    item_singular = "item"
    COLUMNS = ("Name", "Status", "TotalQty", "Available", "Rented", "DailyRate", "WeeklyRate", "Deposit")

    total_items = observable(0)
    available_items = observable(0)
    rented_out_items = observable(0)
    maintenance_items = observable(0)

    filter_status = observable(config.FILTER_ALL)
    filter_availability = observable(config.FILTER_ALL)
    filter_daily_rate_min = observable("")
    filter_daily_rate_max = observable("")
    FILTER_FIELDS = RentalInventoryModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Name": lambda r: r.name,
        "Status": lambda r: r.status,
        "TotalQty": lambda r: r.total_quantity,
        "Available": lambda r: r.available_quantity,
        "Rented": lambda r: r.rented_quantity,
        "DailyRate": lambda r: r.daily_rate,
        "WeeklyRate": lambda r: r.weekly_rate,
        "Deposit": lambda r: r.security_deposit,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self.sort_column = "Name"
        self._items: List[RentalItem] = []
        self.modals = app.rental_inventory_modals
        self.bind_modals(self.modals)
        app.rental_modals.item_saved.connect(self._on_item_changed)
        self.load()

    def load_records(self) -> None:
        company = self.company
        self._items = list(company.rental_inventory) if company else []
        self.total_items = sum(i.total_quantity for i in self._items)
        self.available_items = sum(i.available_quantity for i in self._items)
        self.rented_out_items = sum(i.rented_quantity for i in self._items)
        self.maintenance_items = sum(i.total_quantity for i in self._items if i.status == EntityStatus.INACTIVE)

    def build_rows(self) -> List[RentalItemRow]:
        records = self.apply_search(self._items, lambda i: (i.name, i.id))

        if self.filter_status == "Available":
            records = [i for i in records if i.status == EntityStatus.ACTIVE and i.available_quantity > 0]
        elif self.filter_status == STATUS_MAINTENANCE:
            records = [i for i in records if i.status == EntityStatus.INACTIVE]
        elif self.filter_status == "All Rented":
            records = [i for i in records if i.status == EntityStatus.ACTIVE and i.available_quantity == 0]

        if self.filter_availability == "Available Only":
            records = [i for i in records if i.is_available]
        elif self.filter_availability == "Unavailable Only":
            records = [i for i in records if not i.is_available]

        min_rate = parse_decimal(self.filter_daily_rate_min) if self.filter_daily_rate_min else None
        if min_rate is not None:
            records = [i for i in records if i.daily_rate >= min_rate]
        max_rate = parse_decimal(self.filter_daily_rate_max) if self.filter_daily_rate_max else None
        if max_rate is not None:
            records = [i for i in records if i.daily_rate <= max_rate]

        rows = [
            RentalItemRow(
                id=i.id,
                name=i.name,
                status=status_label(i),
                total_quantity=i.total_quantity,
                available_quantity=i.available_quantity,
                rented_quantity=i.rented_quantity,
                daily_rate=i.daily_rate,
                weekly_rate=i.weekly_rate,
                monthly_rate=i.monthly_rate,
                security_deposit=i.security_deposit,
                is_available=i.is_available,
            )
            for i in records
        ]
        return self.sort_rows(rows, self.SORT_KEYS, default=self.SORT_KEYS["Name"])

    def open_edit_modal(self, item_id: str) -> bool:
        return self.modals.open_edit_modal(item_id)

    def open_rent_out_modal(self, item_id: str) -> bool:
        """Open the rental record form with this item preselected."""
        item = self.company.get_rental_item(item_id) if self.company else None
        if item is None or not item.is_available:
            return False
        rentals = self.app.rental_modals
        rentals.open_add_modal()
        rentals.rental_item_id = item.id
        rentals.start_date = date.today()
        rentals.due_date = date.today() + timedelta(days=1)
        return True

    def delete(self, item_id: str) -> bool:
        return self.modals.delete_item(item_id)
