from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, List, Optional

from ... import config
from ...domain.enums import AdjustmentType, InventoryStatus
from ...domain.models import InventoryItem, StockAdjustment, ZERO
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import parse_int

logger = logging.getLogger(__name__)

ALL_TAB, LOW_STOCK_TAB, OUT_OF_STOCK_TAB, OVERSTOCK_TAB = range(4)
TAB_STATUS = {
    LOW_STOCK_TAB: InventoryStatus.LOW_STOCK,
    OUT_OF_STOCK_TAB: InventoryStatus.OUT_OF_STOCK,
    OVERSTOCK_TAB: InventoryStatus.OVERSTOCK,
}

STATUS_LABELS = {
    InventoryStatus.IN_STOCK: "In Stock",
    InventoryStatus.LOW_STOCK: "Low Stock",
    InventoryStatus.OUT_OF_STOCK: "Out of Stock",
    InventoryStatus.OVERSTOCK: "Overstock",
}
STATUS_BY_LABEL = {v: k for k, v in STATUS_LABELS.items()}
STATUS_FILTER_OPTIONS = (config.FILTER_ALL,) + tuple(STATUS_LABELS.values())
ADJUSTMENT_TYPE_OPTIONS = tuple(a.value for a in AdjustmentType)

DEFAULT_REORDER_POINT = "10"
DEFAULT_OVERSTOCK_THRESHOLD = "100"


@dataclass
class StockRow:
    id: str
    product_id: str
    product_name: str
    sku: str
    category_name: str
    location_id: str
    location_name: str
    in_stock: int
    reserved: int
    available: int
    reorder_point: int
    overstock_threshold: int
    unit_cost: Decimal
    total_value: Decimal
    status: InventoryStatus

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]


def adjusted_stock(current: int, adjustment: AdjustmentType, quantity: int) -> int:
    if adjustment == AdjustmentType.ADD:
        return current + quantity
    if adjustment == AdjustmentType.REMOVE:
        return current - quantity
    return quantity


# --- Modals ---

class StockLevelsModalsViewModel(ModalViewModelBase):
    """
    Inventory dialogs. The add modal creates a stock record for a product at a
    location; the adjust modal changes its quantity and logs a StockAdjustment.
    """
    entity_label = "Inventory Item"

    product_id = observable(None)
    location_id = observable(None)
    sku = observable("")
    quantity = observable("")
    reorder_point = observable(DEFAULT_REORDER_POINT)
    overstock_threshold = observable(DEFAULT_OVERSTOCK_THRESHOLD)

    product_error = observable(None)
    location_error = observable(None)
    quantity_error = observable(None)
    modal_error = observable(None)

    is_adjust_modal_open = observable(False)
    adjust_item_id = observable(None)
    adjustment_type = observable(AdjustmentType.ADD.value)
    adjustment_quantity = observable("")
    adjustment_reason = observable("")
    adjustment_error = observable(None)

    filter_category = observable(None)
    filter_location = observable(None)
    filter_status = observable(config.FILTER_ALL)

    FORM_FIELDS = ("product_id", "location_id", "sku", "quantity", "reorder_point", "overstock_threshold")
    ERROR_FIELDS = ("product_error", "location_error", "quantity_error", "modal_error")
    FILTER_FIELDS = ("filter_category", "filter_location", "filter_status")

    status_options = STATUS_FILTER_OPTIONS
    adjustment_type_options = ADJUSTMENT_TYPE_OPTIONS

    # --- Add item ---

    def save_new_item(self) -> Optional[InventoryItem]:
        company = self.company
        if company is None:
            return None
        self.clear_errors()
        valid = True
        product = company.get_product(self.product_id) if self.product_id else None
        if product is None:
            self.product_error = "Please select a product."
            valid = False
        if not self.location_id or company.get_location(self.location_id) is None:
            self.location_error = "Please select a location."
            valid = False
        quantity = parse_int(self.quantity)
        if quantity is None or quantity < 0:
            self.quantity_error = "Please enter a valid quantity."
            valid = False
        if not valid:
            return None
        if company.get_inventory_item(product.id, self.location_id) is not None:
            self.modal_error = "An inventory item already exists for this product and location."
            return None

        item = InventoryItem(
            product_id=product.id,
            sku=self.sku.strip() or product.sku,
            location_id=self.location_id,
            in_stock=quantity,
            reorder_point=parse_int(self.reorder_point) or 0,
            overstock_threshold=parse_int(self.overstock_threshold) or 0,
            unit_cost=product.cost_price,
        )
        result = self.app.validator().validate_inventory_item(item)
        if not result.is_valid:
            self.modal_error = result.error_message()
            return None
        item.id = self.app.id_generator().next_inventory_item_id()
        item.status = item.calculate_status()
        company.inventory.append(item)
        self.record(
            f"Add inventory item for '{product.name}'",
            undo=lambda: company.inventory.remove(item),
            redo=lambda: company.inventory.append(item),
        )
        logger.info(f"Added inventory item {item.id}: {product.id} @ {item.location_id} = {item.in_stock}")
        self.item_saved.emit()
        self.close_add_modal()
        return item

    # --- Adjust ---

    def open_adjust_modal(self, item_id: str) -> bool:
        item = self.company.get_inventory_item_by_id(item_id) if self.company else None
        if item is None:
            return False
        self.adjust_item_id = item.id
        self.adjustment_type = AdjustmentType.ADD.value
        self.adjustment_quantity = ""
        self.adjustment_reason = ""
        self.adjustment_error = None
        self.is_adjust_modal_open = True
        return True

    def close_adjust_modal(self) -> None:
        self.is_adjust_modal_open = False
        self.adjust_item_id = None
        self.adjustment_quantity = ""
        self.adjustment_reason = ""
        self.adjustment_error = None

    @property
    def adjust_item(self) -> Optional[InventoryItem]:
        if self.company is None or not self.adjust_item_id:
            return None
        return self.company.get_inventory_item_by_id(self.adjust_item_id)

    @property
    def new_stock_preview(self) -> Optional[int]:
        item = self.adjust_item
        quantity = parse_int(self.adjustment_quantity)
        if item is None or quantity is None or quantity < 0:
            return None
        return adjusted_stock(item.in_stock, AdjustmentType(self.adjustment_type), quantity)

    def save_adjustment(self) -> Optional[StockAdjustment]:
        company = self.company
        item = self.adjust_item
        if company is None or item is None:
            return None
        self.adjustment_error = None
        quantity = parse_int(self.adjustment_quantity)
        if quantity is None or quantity < 0:
            self.adjustment_error = "Please enter a valid quantity."
            return None
        adjustment = AdjustmentType(self.adjustment_type)
        new_stock = adjusted_stock(item.in_stock, adjustment, quantity)
        if new_stock < 0:
            self.adjustment_error = f"Cannot remove more than the {item.in_stock} in stock."
            return None
        result = self.app.validator().validate_inventory_item(replace(item, in_stock=new_stock))
        if not result.is_valid:
            self.adjustment_error = result.error_message()
            return None

        old_stock, old_status, old_updated = item.in_stock, item.status, item.last_updated
        record = StockAdjustment(
            id=self.app.id_generator().next_stock_adjustment_id(),
            inventory_item_id=item.id,
            adjustment_type=adjustment,
            quantity=quantity,
            previous_stock=old_stock,
            new_stock=new_stock,
            reason=self.adjustment_reason.strip(),
        )

        def forward() -> None:
            item.in_stock = new_stock
            item.status = item.calculate_status()
            item.last_updated = record.timestamp
            company.stock_adjustments.append(record)

        def backward() -> None:
            item.in_stock = old_stock
            item.status = old_status
            item.last_updated = old_updated
            company.stock_adjustments.remove(record)

        forward()
        product = company.get_product(item.product_id)
        name = product.name if product else item.sku
        self.record(f"Adjust stock for '{name}'", undo=backward, redo=forward)
        logger.info(f"Stock {item.id}: {old_stock} -> {new_stock} ({adjustment.value} {quantity})")
        self.item_saved.emit()
        self.close_adjust_modal()
        return record

    # --- Delete ---

    def delete_item(self, item_id: str) -> bool:
        company = self.company
        item = company.get_inventory_item_by_id(item_id) if company else None
        if item is None:
            return False
        product = company.get_product(item.product_id)
        if not self.confirm_delete(product.name if product else item.sku):
            return False
        index = company.inventory.index(item)
        company.inventory.remove(item)
        self.record(
            f"Delete inventory item '{item.id}'",
            undo=lambda: company.inventory.insert(index, item),
            redo=lambda: company.inventory.remove(item),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True


# --- Page ---

class StockLevelsPageViewModel(TablePageViewModelBase):
    item_singular = "item"
    COLUMNS = ("Product", "Sku", "Category", "Location", "InStock", "Reserved", "Available", "Value", "Status")

    selected_tab_index = observable(ALL_TAB, on_change="_on_tab_changed")

    total_items = observable(0)
    low_stock_count = observable(0)
    out_of_stock_count = observable(0)
    overstock_count = observable(0)
    total_value = observable(ZERO)

    filter_category = observable(None)
    filter_location = observable(None)
    filter_status = observable(config.FILTER_ALL)
    FILTER_FIELDS = StockLevelsModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Product": lambda r: r.product_name,
        "Sku": lambda r: r.sku,
        "Category": lambda r: r.category_name,
        "Location": lambda r: r.location_name,
        "InStock": lambda r: r.in_stock,
        "Reserved": lambda r: r.reserved,
        "Available": lambda r: r.available,
        "Value": lambda r: r.total_value,
        "Status": lambda r: r.status_label,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self.sort_column = "Product"
        self._items: List[InventoryItem] = []
        self.modals = app.stock_modals
        self.bind_modals(self.modals)
        self.load()

    def _on_tab_changed(self, value: int) -> None:
        self.current_page = 1
        self.refresh()

    def load_records(self) -> None:
        self._items = list(self.company.inventory) if self.company else []
        statuses = [i.calculate_status() for i in self._items]
        self.total_items = sum(i.in_stock for i in self._items)
        self.low_stock_count = statuses.count(InventoryStatus.LOW_STOCK)
        self.out_of_stock_count = statuses.count(InventoryStatus.OUT_OF_STOCK)
        self.overstock_count = statuses.count(InventoryStatus.OVERSTOCK)
        self.total_value = sum((i.total_value for i in self._items), ZERO)

    def build_rows(self) -> List[StockRow]:
        company = self.company
        if company is None:
            return []

        def product_name(item: InventoryItem) -> str:
            product = company.get_product(item.product_id)
            return product.name if product else "Unknown"

        records = self._items
        tab_status = TAB_STATUS.get(self.selected_tab_index)
        if tab_status is not None:
            records = [i for i in records if i.calculate_status() == tab_status]
        records = self.apply_search(records, lambda i: (product_name(i), i.sku))

        if self.filter_category:
            records = [
                i for i in records
                if (company.get_product(i.product_id) is not None
                    and company.get_product(i.product_id).category_id == self.filter_category)
            ]
        if self.filter_location:
            records = [i for i in records if i.location_id == self.filter_location]
        if self.filter_status != config.FILTER_ALL:
            wanted = STATUS_BY_LABEL.get(self.filter_status)
            records = [i for i in records if i.calculate_status() == wanted]

        rows = []
        for i in records:
            product = company.get_product(i.product_id)
            category = company.get_category(product.category_id) if product else None
            location = company.get_location(i.location_id)
            rows.append(StockRow(
                id=i.id,
                product_id=i.product_id,
                product_name=product.name if product else "Unknown",
                sku=i.sku,
                category_name=category.name if category else "-",
                location_id=i.location_id,
                location_name=location.name if location else "Unknown",
                in_stock=i.in_stock,
                reserved=i.reserved,
                available=i.available,
                reorder_point=i.reorder_point,
                overstock_threshold=i.overstock_threshold,
                unit_cost=i.unit_cost,
                total_value=i.total_value,
                status=i.calculate_status(),
            ))
        return self.sort_rows(rows, self.SORT_KEYS, default=self.SORT_KEYS["Product"])

    def open_adjust_modal(self, item_id: str) -> bool:
        return self.modals.open_adjust_modal(item_id)

    def delete(self, item_id: str) -> bool:
        return self.modals.delete_item(item_id)
