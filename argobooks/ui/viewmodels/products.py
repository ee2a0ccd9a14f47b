from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ... import config
from ...domain.enums import CategoryType, EntityStatus
from ...domain.models import Product, ZERO, utc_now
from .base import ModalViewModelBase, TablePageViewModelBase, observable
from .parsing import format_money, parse_decimal, parse_int

logger = logging.getLogger(__name__)

ITEM_TYPE_OPTIONS = (config.FILTER_ALL, "Product", "Service")
STATUS_FILTER_OPTIONS = (config.FILTER_ALL, "Active", "Inactive", "Archived")

EXPENSES_TAB = 0
REVENUE_TAB = 1


def category_type_for_tab(tab_index: int) -> CategoryType:
    return CategoryType.PURCHASE if tab_index == EXPENSES_TAB else CategoryType.SALES


@dataclass
class ProductRow:
    id: str
    name: str
    sku: str
    description: str
    item_type: str
    category_name: str
    unit_price: Decimal
    cost_price: Decimal
    profit_margin: Decimal
    reorder_point: int
    overstock_threshold: int
    status: EntityStatus


@dataclass(frozen=True)
class CategoryOption:
    id: Optional[str]
    name: str
    item_type: str = "Product"


# --- Modals ---

class ProductModalsViewModel(ModalViewModelBase):
    """
    Product add/edit/delete/filter dialogs. The tab decides which category type
    (purchase or sales) the category picker offers.
    """
    entity_label = "Product"

    product_name = observable("")
    description = observable("")
    item_type = observable("Product")
    category_id = observable(None)
    sku = observable("")
    unit_price = observable("")
    cost_price = observable("")
    reorder_point = observable("")
    overstock_threshold = observable("")

    product_name_error = observable(None)
    category_error = observable(None)
    unit_price_error = observable(None)
    cost_price_error = observable(None)
    sku_error = observable(None)

    filter_item_type = observable(config.FILTER_ALL)
    filter_category = observable(None)
    filter_status = observable(config.FILTER_ALL)

    is_expenses_tab = observable(True)

    FORM_FIELDS = (
        "product_name", "description", "item_type", "category_id", "sku",
        "unit_price", "cost_price", "reorder_point", "overstock_threshold",
    )
    ERROR_FIELDS = ("product_name_error", "category_error", "unit_price_error", "cost_price_error", "sku_error")
    FILTER_FIELDS = ("filter_item_type", "filter_category", "filter_status")

    item_type_options = ITEM_TYPE_OPTIONS
    status_options = STATUS_FILTER_OPTIONS

    @property
    def category_type(self) -> CategoryType:
        return CategoryType.PURCHASE if self.is_expenses_tab else CategoryType.SALES

    @property
    def available_categories(self) -> List[CategoryOption]:
        if self.company is None:
            return []
        categories = [c for c in self.company.categories if c.type == self.category_type]
        return [CategoryOption(c.id, c.name, c.item_type) for c in sorted(categories, key=lambda c: c.name.lower())]

    @property
    def has_categories(self) -> bool:
        return bool(self.available_categories)

    def open_add_modal(self, is_expenses_tab: Optional[bool] = None) -> None:
        if is_expenses_tab is not None:
            self.is_expenses_tab = is_expenses_tab
        super().open_add_modal()

    def generate_sku(self) -> None:
        if self.company is not None and self.product_name.strip():
            self.sku = self.app.id_generator().generate_sku(self.product_name)

    # --- Validation ---

    def validate_form(self) -> Tuple[bool, Dict[str, Any]]:
        """Check the form; on success also return the parsed values."""
        self.clear_errors()
        valid = True
        if self.has_categories and not self.category_id:
            self.category_error = "Category is required."
            valid = False

        unit_price = parse_decimal(self.unit_price) if self.unit_price.strip() else ZERO
        if unit_price is None:
            self.unit_price_error = "Please enter a valid price."
            valid = False
        cost_price = parse_decimal(self.cost_price) if self.cost_price.strip() else ZERO
        if cost_price is None:
            self.cost_price_error = "Please enter a valid price."
            valid = False

        reorder = parse_int(self.reorder_point) or 0
        overstock = parse_int(self.overstock_threshold) or 0
        values = {
            "name": self.product_name.strip(),
            "description": self.description.strip(),
            "item_type": self.item_type,
            "category_id": self.category_id or None,
            "sku": self.sku.strip(),
            "unit_price": unit_price if unit_price is not None else ZERO,
            "cost_price": cost_price if cost_price is not None else ZERO,
            "reorder_point": max(0, reorder),
            "overstock_threshold": max(0, overstock),
            "track_inventory": self.item_type == "Product" and (reorder > 0 or overstock > 0),
        }

        candidate = Product(id=self._editing_id or "")
        for name, value in values.items():
            setattr(candidate, name, value)
        result = self.app.validator().validate_product(candidate)
        self.product_name_error = result.first_error("name")
        self.category_error = self.category_error or result.first_error("category_id")
        self.unit_price_error = self.unit_price_error or result.first_error("unit_price")
        self.cost_price_error = self.cost_price_error or result.first_error("cost_price")
        self.sku_error = result.first_error("sku")
        return valid and result.is_valid, values

    @staticmethod
    def _capture(product: Product) -> Dict[str, Any]:
        return {name: getattr(product, name) for name in (
            "name", "description", "item_type", "category_id", "sku", "unit_price",
            "cost_price", "reorder_point", "overstock_threshold", "track_inventory",
        )}

    @staticmethod
    def _apply(product: Product, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(product, name, value)
        product.updated_at = utc_now()

    # --- Add ---

    def save_new_product(self) -> Optional[Product]:
        if self.company is None:
            return None
        valid, values = self.validate_form()
        if not valid:
            return None
        company = self.company
        product = Product(id=self.app.id_generator().next_product_id())
        if not values["sku"]:
            values["sku"] = product.id
        self._apply(product, values)
        product.created_at = product.updated_at
        company.products.append(product)
        self.record(
            f"Add product '{product.name}'",
            undo=lambda: company.products.remove(product),
            redo=lambda: company.products.append(product),
        )
        logger.info(f"Added product {product.id}")
        self.item_saved.emit()
        self.close_add_modal()
        return product

    # --- Edit ---

    def open_edit_modal(self, product_id: str) -> bool:
        product = self.company.get_product(product_id) if self.company else None
        if product is None:
            return False
        self._editing_id = product.id
        category = self.company.get_category(product.category_id)
        if category is not None:
            self.is_expenses_tab = category.type == CategoryType.PURCHASE
        self.product_name = product.name
        self.description = product.description
        self.item_type = product.item_type
        self.category_id = product.category_id
        self.sku = product.sku
        self.unit_price = format_money(product.unit_price)
        self.cost_price = format_money(product.cost_price)
        self.reorder_point = str(product.reorder_point) if product.reorder_point > 0 else ""
        self.overstock_threshold = str(product.overstock_threshold) if product.overstock_threshold > 0 else ""
        self.clear_errors()
        self._snapshot_form()
        self.is_edit_modal_open = True
        return True

    def save_edited_product(self) -> bool:
        product = self.company.get_product(self._editing_id) if self.company else None
        if product is None:
            return False
        valid, new_values = self.validate_form()
        if not valid:
            return False
        if not new_values["sku"]:
            new_values["sku"] = product.sku or product.id
        old_values = self._capture(product)
        if old_values == new_values:
            self.close_edit_modal()
            return True
        self._apply(product, new_values)
        self.record(
            f"Edit product '{product.name}'",
            undo=lambda: self._apply(product, old_values),
            redo=lambda: self._apply(product, new_values),
        )
        self.item_saved.emit()
        self.close_edit_modal()
        return True

    # --- Delete ---

    def delete_product(self, product_id: str) -> bool:
        company = self.company
        product = company.get_product(product_id) if company else None
        if product is None or not self.confirm_delete(product.name):
            return False
        index = company.products.index(product)
        company.products.remove(product)
        self.record(
            f"Delete product '{product.name}'",
            undo=lambda: company.products.insert(index, product),
            redo=lambda: company.products.remove(product),
            signal=self.item_deleted,
        )
        self.item_deleted.emit()
        return True


# --- Page ---

class ProductsPageViewModel(TablePageViewModelBase):
    """Products split into expense (purchase) and revenue (sales) tabs."""
    item_singular = "product"
    COLUMNS = ("Name", "Sku", "ItemType", "Category", "UnitPrice", "CostPrice", "Margin", "Status")

    selected_tab_index = observable(EXPENSES_TAB, on_change="_on_tab_changed")

    total_products = observable(0)
    physical_products = observable(0)
    services = observable(0)
    expense_products_count = observable(0)
    revenue_products_count = observable(0)

    filter_item_type = observable(config.FILTER_ALL)
    filter_category = observable(None)
    filter_status = observable(config.FILTER_ALL)
    FILTER_FIELDS = ProductModalsViewModel.FILTER_FIELDS

    SORT_KEYS = {
        "Name": lambda r: r.name,
        "Sku": lambda r: r.sku,
        "ItemType": lambda r: r.item_type,
        "Category": lambda r: r.category_name,
        "UnitPrice": lambda r: r.unit_price,
        "CostPrice": lambda r: r.cost_price,
        "Margin": lambda r: r.profit_margin,
        "Status": lambda r: r.status.value,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self.sort_column = "Name"
        self._products: List[Product] = []
        self.modals = app.product_modals
        self.bind_modals(self.modals)
        self.load()

    @property
    def is_expenses_tab_selected(self) -> bool:
        return self.selected_tab_index == EXPENSES_TAB

    def _on_tab_changed(self, value: int) -> None:
        self.current_page = 1
        self.refresh()

    def load_records(self) -> None:
        company = self.company
        self._products = list(company.products) if company else []
        self.total_products = len(self._products)
        self.physical_products = sum(1 for p in self._products if p.item_type == "Product")
        self.services = sum(1 for p in self._products if p.item_type == "Service")
        if company is None:
            self.expense_products_count = 0
            self.revenue_products_count = 0
            return
        purchase_ids = {c.id for c in company.categories if c.type == CategoryType.PURCHASE}
        sales_ids = {c.id for c in company.categories if c.type == CategoryType.SALES}
        self.expense_products_count = sum(1 for p in self._products if not p.category_id or p.category_id in purchase_ids)
        self.revenue_products_count = sum(1 for p in self._products if p.category_id in sales_ids)

    def build_rows(self) -> List[ProductRow]:
        company = self.company
        if company is None:
            return []
        tab_type = category_type_for_tab(self.selected_tab_index)
        tab_ids = {c.id for c in company.categories if c.type == tab_type}
        # Uncategorised products live on the expenses tab
        records = [
            p for p in self._products
            if p.category_id in tab_ids or (not p.category_id and tab_type == CategoryType.PURCHASE)
        ]
        records = self.apply_search(records, lambda p: (p.name, p.sku, p.description))

        if self.filter_item_type != config.FILTER_ALL:
            records = [p for p in records if p.item_type == self.filter_item_type]
        if self.filter_category:
            records = [p for p in records if p.category_id == self.filter_category]
        if self.filter_status != config.FILTER_ALL:
            records = [p for p in records if p.status.value == self.filter_status]

        rows = []
        for p in records:
            category = company.get_category(p.category_id)
            rows.append(ProductRow(
                id=p.id,
                name=p.name,
                sku=p.sku,
                description=p.description,
                item_type=p.item_type,
                category_name=category.name if category else "-",
                unit_price=p.unit_price,
                cost_price=p.cost_price,
                profit_margin=p.profit_margin,
                reorder_point=p.reorder_point,
                overstock_threshold=p.overstock_threshold,
                status=p.status,
            ))
        return self.sort_rows(rows, self.SORT_KEYS, default=self.SORT_KEYS["Name"])

    def open_add_modal(self) -> None:
        self.modals.open_add_modal(self.is_expenses_tab_selected)

    def open_edit_modal(self, product_id: str) -> bool:
        return self.modals.open_edit_modal(product_id)

    def delete(self, product_id: str) -> bool:
        return self.modals.delete_product(product_id)
