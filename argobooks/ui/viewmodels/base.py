from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from PySide6 import QtCore

from ... import config
from ...domain.enums import ConfirmationResult, SortDirection
from ...utilities.levenshtein import search_score
from ...services.undo_redo import DelegateAction
from ...utilities import pagination
from ...utilities.sorting import KeySelector, apply_sort, next_direction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class observable:
    """
    Class-level declaration of a view-model property.
    Assigning a different value stores it, emits property_changed(name) and
    calls the optional `on_change` hook method with the new value.
    """

    def __init__(self, default: Any = None, on_change: Optional[str] = None):
        self.default = default
        self.on_change = on_change
        self.name = ""
        self.attr = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.attr = f"_obs_{name}"

    def __get__(self, obj: Any, objtype: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return getattr(obj, self.attr, self.default)

    def __set__(self, obj: Any, value: Any) -> None:
        if getattr(obj, self.attr, self.default) == value:
            return
        setattr(obj, self.attr, value)
        obj.property_changed.emit(self.name)
        if self.on_change:
            getattr(obj, self.on_change)(value)


def observable_default(obj: Any, name: str) -> Any:
    descriptor = getattr(type(obj), name)
    return descriptor.default


class ViewModelBase(QtCore.QObject):
    """Base for all view-models: a QObject that announces property changes by name."""
    property_changed = QtCore.Signal(str)

    def __init__(self):
        super().__init__()

    def reset_to_defaults(self, names: Sequence[str]) -> None:
        for name in names:
            setattr(self, name, observable_default(self, name))


# --- Table pages ---

class SortablePageViewModelBase(ViewModelBase):
    """
    Sorting, paging and highlight navigation shared by every table page.
    Subclasses rebuild their rows in refresh().
    """
    sort_column = observable("")
    sort_direction = observable(SortDirection.NONE)
    current_page = observable(1, on_change="_on_current_page_changed")
    total_pages = observable(1)
    page_size = observable(config.DEFAULT_PAGE_SIZE, on_change="_on_page_size_changed")
    page_numbers = observable(())
    highlight_id = observable(None)

    page_size_options: Tuple[int, ...] = config.PAGE_SIZE_OPTIONS

    def __init__(self):
        super().__init__()
        self._refreshing = False

    # --- Sorting ---

    def sort_by(self, column: str) -> None:
        if self.sort_column == column:
            self.sort_direction = next_direction(self.sort_direction)
        else:
            self.sort_column = column
            self.sort_direction = SortDirection.ASCENDING
        self.refresh()

    def is_sorted_ascending(self, column: str) -> bool:
        return self.sort_column == column and self.sort_direction == SortDirection.ASCENDING

    def is_sorted_descending(self, column: str) -> bool:
        return self.sort_column == column and self.sort_direction == SortDirection.DESCENDING

    # --- Paging ---

    @property
    def can_go_to_previous_page(self) -> bool:
        return self.current_page > 1

    @property
    def can_go_to_next_page(self) -> bool:
        return self.current_page < self.total_pages

    def go_to_previous_page(self) -> None:
        if self.can_go_to_previous_page:
            self.current_page -= 1

    def go_to_next_page(self) -> None:
        if self.can_go_to_next_page:
            self.current_page += 1

    def go_to_page(self, page: int) -> None:
        if 1 <= page <= self.total_pages:
            self.current_page = page

    def calculate_pagination(self, count: int) -> None:
        self.total_pages = pagination.total_pages(count, self.page_size)
        if self.current_page > self.total_pages:
            self.current_page = pagination.clamp_page(self.current_page, self.total_pages)
        self.page_numbers = tuple(pagination.page_window(self.current_page, self.total_pages))
        self.property_changed.emit("can_go_to_previous_page")
        self.property_changed.emit("can_go_to_next_page")

    def paged(self, items: Sequence[T]) -> List[T]:
        return pagination.page_slice(items, self.current_page, self.page_size)

    def navigate_to_highlighted(self, items: Sequence[Any], id_of: Callable[[Any], Optional[str]]) -> None:
        """Move to the page holding `highlight_id`, then forget it."""
        if not self.highlight_id:
            return
        for index, item in enumerate(items):
            if id_of(item) == self.highlight_id:
                self.current_page = pagination.page_for_index(index, self.page_size)
                self.page_numbers = tuple(pagination.page_window(self.current_page, self.total_pages))
                break
        self.highlight_id = None

    def highlight(self, item_id: str) -> None:
        self.highlight_id = item_id
        self.refresh()

    # --- Hooks ---

    def _on_current_page_changed(self, value: int) -> None:
        if not self._refreshing:
            self.refresh()

    def _on_page_size_changed(self, value: int) -> None:
        self.current_page = 1
        if not self._refreshing:
            self.refresh()

    def refresh(self) -> None:
        raise NotImplementedError


class TablePageViewModelBase(SortablePageViewModelBase):
    """
    Table page with search, column visibility and a rows pipeline:
    build_rows() filters, searches and sorts; refresh() paginates the result.
    """
    items_changed = QtCore.Signal()

    search_query = observable(None, on_change="_on_search_query_changed")
    pagination_text = observable("")
    is_column_menu_open = observable(False)

    item_singular = "item"
    item_plural: Optional[str] = None
    COLUMNS: Tuple[str, ...] = ()
    FILTER_FIELDS: Tuple[str, ...] = ()

    def __init__(self, app: Any):
        super().__init__()
        self.app = app
        self.items: List[Any] = []
        self.filtered_count = 0
        self.column_visibility: Dict[str, bool] = {c: True for c in self.COLUMNS}
        self._modals: Any = None
        self.pagination_text = pagination.format_pagination_text(0, 1, self.page_size, 1, self.item_singular, self.item_plural)
        app.undo_redo.state_changed.connect(self._on_undo_redo_state_changed)
        app.company_manager.company_opened.connect(self._on_company_opened)
        app.company_manager.company_closed.connect(self._on_company_closed)

    # --- Data ---

    @property
    def company(self):
        return self.app.company_manager.company_data

    @property
    def is_searching(self) -> bool:
        return bool(self.search_query and self.search_query.strip())

    def load(self) -> None:
        """Re-read the open company and rebuild the table."""
        self.load_records()
        self.refresh()

    def load_records(self) -> None:
        """Pull entities out of the company and recompute statistics."""

    def build_rows(self) -> List[Any]:
        raise NotImplementedError

    def refresh(self) -> None:
        if self._refreshing:
            return
        self._refreshing = True
        try:
            rows = self.build_rows()
            self.filtered_count = len(rows)
            self.calculate_pagination(len(rows))
            self.navigate_to_highlighted(rows, lambda r: getattr(r, "id", None))
            self.items = self.paged(rows)
            self.pagination_text = pagination.format_pagination_text(
                len(rows), self.current_page, self.page_size, self.total_pages, self.item_singular, self.item_plural
            )
        finally:
            self._refreshing = False
        self.items_changed.emit()

    # --- Search ---

    def apply_search(self, records: Sequence[Any], fields: Callable[[Any], Sequence[Optional[str]]]) -> List[Any]:
        """Keep records whose best field score is >= 0, most relevant first."""
        if not self.is_searching:
            return list(records)
        query = self.search_query.strip()
        scored = []
        for record in records:
            best = max((search_score(query, value) for value in fields(record) if value), default=-1.0)
            if best >= 0:
                scored.append((best, record))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [record for _, record in scored]

    def sort_rows(self, rows: Sequence[T], selectors: Dict[str, KeySelector], default: Optional[KeySelector] = None) -> List[T]:
        # Search relevance wins when no explicit sort is set
        if self.sort_direction == SortDirection.NONE and self.is_searching:
            return list(rows)
        return apply_sort(rows, self.sort_column, self.sort_direction, selectors, default)

    def clear_search(self) -> None:
        self.search_query = None

    def _on_search_query_changed(self, value: Optional[str]) -> None:
        self.current_page = 1
        self.refresh()

    # --- Columns ---

    def toggle_column_menu(self) -> None:
        self.is_column_menu_open = not self.is_column_menu_open

    def close_column_menu(self) -> None:
        self.is_column_menu_open = False

    def set_column_visible(self, column: str, visible: bool) -> None:
        if self.column_visibility.get(column) == visible:
            return
        self.column_visibility[column] = visible
        self.property_changed.emit("column_visibility")

    def is_column_visible(self, column: str) -> bool:
        return self.column_visibility.get(column, True)

    # --- Modal wiring ---

    def bind_modals(self, modals: Any) -> None:
        self._modals = modals
        modals.item_saved.connect(self._on_item_changed)
        modals.item_deleted.connect(self._on_item_changed)
        modals.filters_applied.connect(self._on_filters_applied)
        modals.filters_cleared.connect(self._on_filters_cleared)

    def open_add_modal(self) -> None:
        self._modals.open_add_modal()

    def open_filter_modal(self) -> None:
        self._modals.open_filter_modal()

    def _on_item_changed(self) -> None:
        self.load()

    def _on_undo_redo_state_changed(self) -> None:
        self.load()

    def _on_company_opened(self, company: Any) -> None:
        self.current_page = 1
        self.load()

    def _on_company_closed(self) -> None:
        self.current_page = 1
        self.load()

    def _on_filters_applied(self) -> None:
        for name, value in self._modals.filter_values().items():
            setattr(self, name, value)
        self.current_page = 1
        self.refresh()

    def _on_filters_cleared(self) -> None:
        self.reset_to_defaults(self.FILTER_FIELDS)
        self.search_query = None
        self.current_page = 1
        self.refresh()

    @property
    def filter_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.FILTER_FIELDS}

    @property
    def has_active_filters(self) -> bool:
        return any(getattr(self, n) != observable_default(self, n) for n in self.FILTER_FIELDS)


# --- Modals ---

class ModalViewModelBase(ViewModelBase):
    """
    Add/edit/delete/filter modal state for one entity type.
    FORM_FIELDS, ERROR_FIELDS and FILTER_FIELDS name observables declared by the subclass.
    """
    item_saved = QtCore.Signal()
    item_deleted = QtCore.Signal()
    filters_applied = QtCore.Signal()
    filters_cleared = QtCore.Signal()

    is_add_modal_open = observable(False)
    is_edit_modal_open = observable(False)
    is_filter_modal_open = observable(False)

    FORM_FIELDS: Tuple[str, ...] = ()
    ERROR_FIELDS: Tuple[str, ...] = ()
    FILTER_FIELDS: Tuple[str, ...] = ()
    entity_label = "Item"

    def __init__(self, app: Any):
        super().__init__()
        self.app = app
        self._original_form: Dict[str, Any] = {}
        self._editing_id: Optional[str] = None

    @property
    def company(self):
        return self.app.company_manager.company_data

    @property
    def editing_id(self) -> Optional[str]:
        return self._editing_id

    # --- Form state ---

    def form_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.FORM_FIELDS}

    def filter_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.FILTER_FIELDS}

    def clear_form(self) -> None:
        self.reset_to_defaults(self.FORM_FIELDS)
        self.clear_errors()

    def clear_errors(self) -> None:
        self.reset_to_defaults(self.ERROR_FIELDS)

    @property
    def has_errors(self) -> bool:
        return any(getattr(self, name) for name in self.ERROR_FIELDS)

    @property
    def has_add_modal_entered_data(self) -> bool:
        for name in self.FORM_FIELDS:
            value = getattr(self, name)
            default = observable_default(self, name)
            if isinstance(value, str) and isinstance(default, str):
                if value.strip() != default.strip():
                    return True
            elif value != default:
                return True
        return False

    @property
    def has_edit_modal_changes(self) -> bool:
        return self.form_values() != self._original_form

    def _snapshot_form(self) -> None:
        self._original_form = self.form_values()

    # --- Open/close ---

    def open_add_modal(self) -> None:
        self._editing_id = None
        self.clear_form()
        self.is_add_modal_open = True

    def close_add_modal(self) -> None:
        self.is_add_modal_open = False
        self.clear_form()

    def close_edit_modal(self) -> None:
        self.is_edit_modal_open = False
        self._editing_id = None
        self._original_form = {}
        self.clear_form()

    def request_close_add_modal(self) -> bool:
        """Close unless the user backs out of discarding entered data. Returns True when closed."""
        if self.has_add_modal_entered_data and not self._confirm_discard():
            return False
        self.close_add_modal()
        return True

    def request_close_edit_modal(self) -> bool:
        if self.has_edit_modal_changes and not self._confirm_discard():
            return False
        self.close_edit_modal()
        return True

    def _confirm_discard(self) -> bool:
        result = self.app.confirmation.confirm(
            title="Discard Changes?",
            message="You have entered data that will be lost. Are you sure you want to close?",
            primary="Discard",
            cancel="Cancel",
            destructive=True,
        )
        return result == ConfirmationResult.PRIMARY

    def confirm_delete(self, name: str) -> bool:
        result = self.app.confirmation.confirm(
            title=f"Delete {self.entity_label}",
            message=f"Are you sure you want to delete this {self.entity_label.lower()}?\n\n{name}",
            primary="Delete",
            cancel="Cancel",
            destructive=True,
        )
        return result == ConfirmationResult.PRIMARY

    # --- Filters ---

    def open_filter_modal(self) -> None:
        self.is_filter_modal_open = True

    def close_filter_modal(self) -> None:
        self.is_filter_modal_open = False

    def apply_filters(self) -> None:
        self.filters_applied.emit()
        self.close_filter_modal()

    def clear_filters(self) -> None:
        self.reset_to_defaults(self.FILTER_FIELDS)
        self.filters_cleared.emit()
        self.close_filter_modal()

    # --- Change recording ---

    def record(self, description: str, undo: Callable[[], None], redo: Callable[[], None], signal: Any = None) -> None:
        """
        Register an already-applied change with the undo manager.
        Both directions flag the company as modified and re-emit `signal`.
        """
        signal = signal if signal is not None else self.item_saved

        def run(fn: Callable[[], None]) -> Callable[[], None]:
            def wrapped() -> None:
                fn()
                self.mark_modified()
                signal.emit()
            return wrapped

        self.mark_modified()
        self.app.undo_redo.record_action(DelegateAction(description, run(undo), run(redo)))

    def mark_modified(self) -> None:
        self.app.company_manager.mark_modified()
