from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ...domain.enums import CategoryType, ConfirmationResult
from ...domain.models import Category, utc_now
from .base import ModalViewModelBase, TablePageViewModelBase, observable

logger = logging.getLogger(__name__)

TOP_LEVEL_LABEL = "None (Make Top-Level)"


@dataclass
class CategoryRow:
    id: str
    name: str
    description: str
    type: CategoryType
    item_type: str
    parent_id: Optional[str]
    parent_name: Optional[str]
    product_count: int
    child_count: int
    color: str
    icon: str
    is_child: bool = False

    @property
    def product_count_display(self) -> str:
        return "1 item" if self.product_count == 1 else f"{self.product_count} items"


@dataclass(frozen=True)
class ParentOption:
    id: Optional[str]
    name: str


# --- Modals ---

class CategoryModalsViewModel(ModalViewModelBase):
    entity_label = "Category"

    category_name = observable("")
    description = observable("")
    item_type = observable("Product")
    parent_id = observable(None)
    icon = observable("box")

    category_name_error = observable(None)
    modal_error = observable(None)

    is_move_modal_open = observable(False)
    move_target_id = observable(None)
    move_error = observable(None)

    category_type = observable(CategoryType.PURCHASE)

    FORM_FIELDS = ("category_name", "description", "item_type", "parent_id", "icon")
    ERROR_FIELDS = ("category_name_error", "modal_error")
    # Re-parenting goes through the move modal
    EDITABLE_ATTRS = ("name", "description", "item_type", "icon")

    def __init__(self, app: Any):
        super().__init__(app)
        self._moving_id: Optional[str] = None

    # --- Parent choices ---

    def parent_options(self, exclude_id: Optional[str] = None) -> List[ParentOption]:
        """Top-level categories of the current type, led by the top-level choice."""
        options = [ParentOption(None, TOP_LEVEL_LABEL)]
        if self.company is None:
            return options
        top_level = sorted(
            (c for c in self.company.categories if c.type == self.category_type and not c.parent_id and c.id != exclude_id),
            key=lambda c: c.name.lower(),
        )
        options.extend(ParentOption(c.id, c.name) for c in top_level)
        return options

    # --- Validation ---

    def validate_form(self) -> bool:
        self.clear_errors()
        if not self.category_name.strip():
            self.category_name_error = "Category name is required."
            return False
        parent_id = self.parent_id or None
        editing = self.company.get_category(self._editing_id) if self.company and self._editing_id else None
        if editing is not None:
            parent_id = editing.parent_id
        candidate = Category(
            id=self._editing_id or "",
            type=self.category_type,
            name=self.category_name.strip(),
            parent_id=parent_id,
        )
        result = self.app.validator().validate_category(candidate)
        if not result.is_valid:
            name_error = result.first_error("name")
            if name_error:
                self.category_name_error = name_error
            else:
                self.modal_error = result.error_message()
            return False
        return True

    def _capture(self, category: Category) -> Dict[str, Any]:
        return {name: getattr(category, name) for name in self.EDITABLE_ATTRS}

    def _form_to_values(self) -> Dict[str, Any]:
        return {
            "name": self.category_name.strip(),
            "description": self.description.strip(),
            "item_type": self.item_type,
            "parent_id": self.parent_id or None,
            "icon": self.icon,
        }

    # --- Add ---

    def open_add_modal(self, category_type: Optional[CategoryType] = None) -> None:
        if category_type is not None:
            self.category_type = category_type
        super().open_add_modal()

    def open_add_subcategory_modal(self, parent_id: str) -> bool:
        parent = self.company.get_category(parent_id) if self.company else None
        if parent is None:
            return False
        self.open_add_modal(parent.type)
        self.parent_id = parent.id
        self.item_type = parent.item_type
        return True

    def save_new_category(self) -> Optional[Category]:
        if self.company is None or not self.validate_form():
            return None
        company = self.company
        category = Category(id=self.app.id_generator().next_category_id(self.category_type), type=self.category_type)
        for name, value in self._form_to_values().items():
            setattr(category, name, value)
        company.categories.append(category)
        self.record(
            f"Add category '{category.name}'",
            undo=lambda: company.categories.remove(category),
            redo=lambda: company.categories.append(category),
        )
        logger.info(f"Added category {category.id}")
        self.item_saved.emit()
        self.close_add_modal()
        return category

    # --- Edit ---

    def open_edit_modal(self, category_id: str) -> bool:
        category = self.company.get_category(category_id) if self.company else None
        if category is None:
            return False
        self._editing_id = category.id
        self.category_type = category.type
        self.category_name = category.name
        self.description = category.description
        self.item_type = category.item_type
        self.parent_id = category.parent_id
        self.icon = category.icon
        self.clear_errors()
        self._snapshot_form()
        self.is_edit_modal_open = True
        return True

    def save_edited_category(self) -> bool:
        category = self.company.get_category(self._editing_id) if self.company else None
        if category is None or not self.validate_form():
            return False
        old_values = self._capture(category)
        new_values = {k: v for k, v in self._form_to_values().items() if k in self.EDITABLE_ATTRS}
        if old_values == new_values:
            self.close_edit_modal()
            return True

        def apply(values: Dict[str, Any]) -> None:
            for name, value in values.items():
                setattr(category, name, value)

        apply(new_values)
        self.record(
            f"Edit category '{category.name}'",
            undo=lambda: apply(old_values),
            redo=lambda: apply(new_values),
        )
        self.item_saved.emit()
        self.close_edit_modal()
        return True

    # --- Delete ---

    def delete_category(self, category_id: str) -> bool:
        """
        Remove a category. Subcategories are either deleted with it or moved to
        the top level; products using any removed category become uncategorised.
        """
        company = self.company
        category = company.get_category(category_id) if company else None
        if category is None:
            return False

        children = [c for c in company.categories if c.parent_id == category.id]
        delete_children = False
        if children:
            result = self.app.confirmation.confirm(
                title="Delete Category",
                message=(
                    f"This category has {len(children)} subcategories.\n\n"
                    "Do you want to delete them as well, or move them to the top level?"
                ),
                primary="Delete All",
                secondary="Move to Top Level",
                cancel="Cancel",
                destructive=True,
            )
            if result not in (ConfirmationResult.PRIMARY, ConfirmationResult.SECONDARY):
                return False
            delete_children = result == ConfirmationResult.PRIMARY
        elif not self.confirm_delete(category.name):
            return False

        removed = [category] + (children if delete_children else [])
        removed_ids = {c.id for c in removed}
        # Original positions, ascending, so re-inserting restores the order
        positions = sorted((company.categories.index(c), c) for c in removed)
        reparented = {} if delete_children else {c.id: c.parent_id for c in children}
        uncategorised = [p for p in company.products if p.category_id in removed_ids]
        product_categories = {p.id: p.category_id for p in uncategorised}

        def forward() -> None:
            for c in removed:
                company.categories.remove(c)
            for c in children:
                if c.id in reparented:
                    c.parent_id = None
            for p in uncategorised:
                p.category_id = None
                p.updated_at = utc_now()

        def backward() -> None:
            for index, c in positions:
                company.categories.insert(index, c)
            for c in children:
                if c.id in reparented:
                    c.parent_id = reparented[c.id]
            for p in uncategorised:
                p.category_id = product_categories[p.id]

        forward()
        self.record(f"Delete category '{category.name}'", undo=backward, redo=forward, signal=self.item_deleted)
        logger.info(f"Deleted category {category.id} ({len(removed) - 1} subcategories, {len(uncategorised)} products cleared)")
        self.item_deleted.emit()
        return True

    # --- Move ---

    @property
    def move_target_options(self) -> List[ParentOption]:
        return self.parent_options(exclude_id=self._moving_id)

    def open_move_modal(self, category_id: str) -> bool:
        category = self.company.get_category(category_id) if self.company else None
        if category is None:
            return False
        self._moving_id = category.id
        self.category_type = category.type
        self.move_target_id = category.parent_id
        self.move_error = None
        self.is_move_modal_open = True
        return True

    def close_move_modal(self) -> None:
        self.is_move_modal_open = False
        self._moving_id = None
        self.move_target_id = None
        self.move_error = None

    def confirm_move(self) -> bool:
        category = self.company.get_category(self._moving_id) if self.company and self._moving_id else None
        if category is None:
            self.move_error = "Please select a target category."
            return False
        old_parent = category.parent_id
        new_parent = self.move_target_id or None
        if old_parent == new_parent:
            self.move_error = "Category is already under this parent."
            return False
        if new_parent == category.id:
            self.move_error = "Category cannot be its own parent."
            return False
        if any(c.parent_id == category.id for c in self.company.categories) and new_parent is not None:
            self.move_error = "A category with subcategories must stay at the top level."
            return False

        def set_parent(parent_id: Optional[str]) -> None:
            category.parent_id = parent_id

        set_parent(new_parent)
        self.record(
            f"Move category '{category.name}'",
            undo=lambda: set_parent(old_parent),
            redo=lambda: set_parent(new_parent),
        )
        self.item_saved.emit()
        self.close_move_modal()
        return True


# --- Page ---

class CategoriesPageViewModel(TablePageViewModelBase):
    """Category tree for one category type; children follow their parent."""
    item_singular = "category"
    item_plural = "categories"
    COLUMNS = ("Name", "Parent", "Description", "Type", "ProductCount")

    selected_type = observable(CategoryType.PURCHASE, on_change="_on_selected_type_changed")

    purchase_count = observable(0)
    sales_count = observable(0)
    rental_count = observable(0)

    SORT_KEYS = {
        "Name": lambda r: r.name,
        "Parent": lambda r: r.parent_name,
        "Description": lambda r: r.description,
        "Type": lambda r: r.item_type,
        "ProductCount": lambda r: r.product_count,
    }

    def __init__(self, app: Any):
        super().__init__(app)
        self._categories: List[Category] = []
        self._product_counts: Dict[str, int] = {}
        self.modals = app.category_modals
        self.bind_modals(self.modals)
        self.load()

    def _on_selected_type_changed(self, value: CategoryType) -> None:
        self.current_page = 1
        self.refresh()

    def load_records(self) -> None:
        company = self.company
        self._categories = list(company.categories) if company else []
        self._product_counts = {}
        for product in company.products if company else []:
            if product.category_id:
                self._product_counts[product.category_id] = self._product_counts.get(product.category_id, 0) + 1
        self.purchase_count = sum(1 for c in self._categories if c.type == CategoryType.PURCHASE)
        self.sales_count = sum(1 for c in self._categories if c.type == CategoryType.SALES)
        self.rental_count = sum(1 for c in self._categories if c.type == CategoryType.RENTAL)

    def product_count(self, category_id: str) -> int:
        return self._product_counts.get(category_id, 0)

    def _row(self, category: Category, parent_name: Optional[str], is_child: bool) -> CategoryRow:
        return CategoryRow(
            id=category.id,
            name=category.name,
            description=category.description,
            type=category.type,
            item_type=category.item_type,
            parent_id=category.parent_id,
            parent_name=parent_name,
            product_count=self.product_count(category.id),
            child_count=sum(1 for c in self._categories if c.parent_id == category.id),
            color=category.color,
            icon=category.icon,
            is_child=is_child,
        )

    def build_rows(self) -> List[CategoryRow]:
        of_type = [c for c in self._categories if c.type == self.selected_type]
        if self.is_searching:
            matches = self.apply_search(of_type, lambda c: (c.name, c.description))
            by_id = {c.id: c for c in of_type}
            rows = []
            for c in matches:
                parent = by_id.get(c.parent_id) if c.parent_id else None
                rows.append(self._row(c, parent.name if parent else None, parent is not None))
            return self.sort_rows(rows, self.SORT_KEYS)

        ids = {c.id for c in of_type}
        rows = []
        parents = sorted((c for c in of_type if not c.parent_id), key=lambda c: c.name.lower())
        for parent in parents:
            rows.append(self._row(parent, None, False))
            children = sorted((c for c in of_type if c.parent_id == parent.id), key=lambda c: c.name.lower())
            rows.extend(self._row(child, parent.name, True) for child in children)
        orphans = [c for c in of_type if c.parent_id and c.parent_id not in ids]
        rows.extend(self._row(o, "Unknown", False) for o in sorted(orphans, key=lambda c: c.name.lower()))
        return self.sort_rows(rows, self.SORT_KEYS)

    def open_add_modal(self) -> None:
        self.modals.open_add_modal(self.selected_type)

    def open_edit_modal(self, category_id: str) -> bool:
        return self.modals.open_edit_modal(category_id)

    def open_move_modal(self, category_id: str) -> bool:
        return self.modals.open_move_modal(category_id)

    def delete(self, category_id: str) -> bool:
        return self.modals.delete_category(category_id)
