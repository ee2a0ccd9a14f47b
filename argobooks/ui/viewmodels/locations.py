from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ... import config
from ...domain.models import Address, Location, ZERO, utc_now
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import parse_int

logger = logging.getLogger(__name__)

LOCATION_TYPES = ("Warehouse", "Storage Facility", "Factory", "Retail Store", "Distribution Center")
TYPE_FILTER_OPTIONS = (config.FILTER_ALL,) + LOCATION_TYPES

_TYPE_KEYWORDS = (
    (("warehouse",), "Warehouse"),
    (("storage",), "Storage Facility"),
    (("factory",), "Factory"),
    (("retail", "store"), "Retail Store"),
    (("distribution",), "Distribution Center"),
)


def location_type(location: Location) -> str:
    """Locations carry no type field; the name decides, defaulting to Warehouse."""
    name = location.name.lower()
    for keywords, label in _TYPE_KEYWORDS:
        if any(k in name for k in keywords):
            return label
    return "Warehouse"


@dataclass
class LocationRow:
    id: str
    name: str
    type: str
    address: str
    manager: str
    phone: str
    capacity: int
    current_utilization: int
    utilization_percentage: float

    @property
    def utilization_display(self) -> str:
        if self.capacity <= 0:
            return "-"
        return f"{self.current_utilization}/{self.capacity} ({self.utilization_percentage:.0f}%)"


# --- Modals ---

class LocationModalsViewModel(ModalViewModelBase):
    entity_label = "Location"

    location_name = observable("")
    code = observable("")
    location_type = observable("Warehouse")
    street_address = observable("")
    city = observable("")
    state_province = observable("")
    postal_code = observable("")
    country = observable("")
    contact_person = observable("")
    phone = observable("")
    capacity = observable("")

    location_name_error = observable(None)
    capacity_error = observable(None)
    modal_error = observable(None)

    filter_type = observable(config.FILTER_ALL)

    FORM_FIELDS = (
        "location_name", "code", "location_type", "street_address", "city", "state_province",
        "postal_code", "country", "contact_person", "phone", "capacity",
    )
    ERROR_FIELDS = ("location_name_error", "capacity_error", "modal_error")
    FILTER_FIELDS = ("filter_type",)

    type_options = LOCATION_TYPES
    filter_type_options = TYPE_FILTER_OPTIONS

    def _form_to_values(self, capacity: int) -> Dict[str, Any]:
        return {
            "name": self.location_name.strip(),
            "address": Address(
                street=self.street_address.strip(),
                city=self.city.strip(),
                state=self.state_province.strip(),
                zip_code=self.postal_code.strip(),
                country=self.country.strip(),
            ),
            "contact_person": self.contact_person.strip(),
            "phone": self.phone.strip(),
            "capacity": capacity,
        }

    @staticmethod
    def _capture(location: Location) -> Dict[str, Any]:
        return {name: getattr(location, name) for name in ("name", "address", "contact_person", "phone", "capacity")}

    @staticmethod
    def _apply(location: Location, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(location, name, value)

    def validate_form(self) -> Optional[int]:
        """Returns the parsed capacity when the form is valid, None otherwise."""
        self.clear_errors()
        valid = True
        if not self.location_name.strip():
            self.location_name_error = "Location name is required."
            valid = False
        capacity = 0
        if self.capacity.strip():
            parsed = parse_int(self.capacity)
            if parsed is None:
                self.capacity_error = "Please enter a valid capacity."
                valid = False
            else:
                capacity = parsed
        if not valid:
            return None
        candidate = Location(id=self._editing_id or "", name=self.location_name.strip(), capacity=capacity)
        result = self.app.validator().validate_location(candidate)
        if not result.is_valid:
            self.location_name_error = result.first_error("name")
            self.capacity_error = result.first_error("capacity")
            return None
        return capacity

    # --- Add ---

    def save_new_location(self) -> Optional[Location]:
        if self.company is None:
            return None
        capacity = self.validate_form()
        if capacity is None:
            return None
        company = self.company
        code = self.code.strip().upper()
        if code and company.get_location(code) is not None:
            self.modal_error = "A location with this code already exists."
            return None
        location_id = code or self.app.id_generator().next_location_id()
        location = Location(id=location_id, created_at=utc_now())
        self._apply(location, self._form_to_values(capacity))
        company.locations.append(location)
        self.record(
            f"Add location '{location.name}'",
            undo=lambda: company.locations.remove(location),
            redo=lambda: company.locations.append(location),
        )
        logger.info(f"Added location {location.id}")
        self.item_saved.emit()
        self.close_add_modal()
        return location

    # --- Edit ---

    def open_edit_modal(self, location_id: str) -> bool:
        location = self.company.get_location(location_id) if self.company else None
        if location is None:
            return False
        self._editing_id = location.id
        self.location_name = location.name
        self.code = location.id
        self.location_type = location_type(location)
        self.street_address = location.address.street
        self.city = location.address.city
        self.state_province = location.address.state
        self.postal_code = location.address.zip_code
        self.country = location.address.country
        self.contact_person = location.contact_person
        self.phone = location.phone
        self.capacity = str(location.capacity) if location.capacity else ""
        self.clear_errors()
        self._snapshot_form()
        self.is_edit_modal_open = True
        return True

    def save_edited_location(self) -> bool:
        location = self.company.get_location(self._editing_id) if self.company else None
        if location is None:
            return False
        capacity = self.validate_form()
        if capacity is None:
            return False
        old_values = self._capture(location)
        new_values = self._form_to_values(capacity)
        if old_values == new_values:
            self.close_edit_modal()
            return True
        self._apply(location, new_values)
        self.record(
            f"Edit location '{location.name}'",
            undo=lambda: self._apply(location, old_values),
            redo=lambda: self._apply(location, new_values),
        )
        self.item_saved.emit()
        self.close_edit_modal()
        return True

    # --- Delete ---

    def delete_location(self, location_id: str) -> bool:
        company = self.company
        location = company.get_location(location_id) if company else None
        if location is None or not self.confirm_delete(location.name):
            return False
        index = company.locations.index(location)
        company.locations.remove(location)
        self.record(
            f"Delete location '{location.name}'",
            undo=lambda: company.locations.insert(index, location),
            redo=lambda: company.locations.remove(location),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True


# --- Page ---

class LocationsPageViewModel(TablePageViewModelBase):
    item_singular = "location"
    COLUMNS = ("Location", "Type", "Address", "Manager", "Capacity")

    total_locations = observable(0)
    total_stock_items = observable(0)
    total_inventory_value = observable(ZERO)
    average_capacity_used = observable(0.0)

    filter_type = observable(config.FILTER_ALL)
    FILTER_FIELDS = LocationModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Location": lambda r: r.name,
        "Type": lambda r: r.type,
        "Address": lambda r: r.address,
        "Manager": lambda r: r.manager,
        "Capacity": lambda r: r.utilization_percentage,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self.sort_column = "Location"
        self._locations: List[Location] = []
        self.modals = app.location_modals
        self.bind_modals(self.modals)
        self.load()

    @property
    def total_inventory_value_display(self) -> str:
        return f"${self.total_inventory_value:,.0f}"

    @property
    def average_capacity_display(self) -> str:
        return f"{self.average_capacity_used:.0f}%"

    def load_records(self) -> None:
        company = self.company
        self._locations = list(company.locations) if company else []
        inventory = company.inventory if company else []
        self.total_locations = len(self._locations)
        self.total_stock_items = sum(i.in_stock for i in inventory)
        self.total_inventory_value = sum((i.total_value for i in inventory), Decimal(0))
        capacity = sum(loc.capacity for loc in self._locations)
        used = sum(loc.current_utilization for loc in self._locations)
        self.average_capacity_used = used / capacity * 100.0 if capacity > 0 else 0.0

    def build_rows(self) -> List[LocationRow]:
        records = self.apply_search(
            self._locations, lambda loc: (loc.name, loc.address.city, loc.contact_person, loc.id)
        )
        if self.filter_type != config.FILTER_ALL:
            records = [loc for loc in records if location_type(loc) == self.filter_type]

        rows = []
        for loc in records:
            parts = [p for p in (loc.address.street, loc.address.city, loc.address.state) if p and p.strip()]
            rows.append(LocationRow(
                id=loc.id,
                name=loc.name,
                type=location_type(loc),
                address=", ".join(parts) if parts else "-",
                manager=loc.contact_person or "-",
                phone=loc.phone,
                capacity=loc.capacity,
                current_utilization=loc.current_utilization,
                utilization_percentage=loc.utilization_percentage,
            ))
        return self.sort_rows(rows, self.SORT_KEYS, default=self.SORT_KEYS["Location"])

    def open_edit_modal(self, location_id: str) -> bool:
        return self.modals.open_edit_modal(location_id)

    def delete(self, location_id: str) -> bool:
        return self.modals.delete_location(location_id)
