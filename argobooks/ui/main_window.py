from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from PySide6 import QtCore, QtWidgets

from .. import config
from ..app import AppContext
from ..domain.enums import ConfirmationResult
from ..errors import ArgoBooksError
from ..services.export import export_table
from .viewmodels.categories import CategoriesPageViewModel
from .viewmodels.customers import CustomersPageViewModel
from .viewmodels.invoices import InvoicesPageViewModel
from .viewmodels.locations import LocationsPageViewModel
from .viewmodels.products import ProductsPageViewModel
from .viewmodels.rental_inventory import RentalInventoryPageViewModel
from .viewmodels.rentals import RentalsPageViewModel
from .viewmodels.stock_levels import StockLevelsPageViewModel
from .viewmodels.undo_redo import UndoRedoButtonGroupViewModel

logger = logging.getLogger(__name__)

# (header, sort column, row attribute)
ColumnSpec = Tuple[str, str, str]

PAGES: Sequence[Tuple[str, Callable[[AppContext], Any], Sequence[ColumnSpec]]] = (
    ("Customers", CustomersPageViewModel, (
        ("Name", "Name", "name"),
        ("Email", "Email", "email"),
        ("Phone", "Phone", "phone"),
        ("Payment", "PaymentStatus", "payment_status"),
        ("Outstanding", "Outstanding", "outstanding"),
        ("Status", "Status", "status_label"),
    )),
    ("Products", ProductsPageViewModel, (
        ("Name", "Name", "name"),
        ("SKU", "Sku", "sku"),
        ("Type", "ItemType", "item_type"),
        ("Category", "Category", "category_name"),
        ("Unit Price", "UnitPrice", "unit_price"),
        ("Cost", "CostPrice", "cost_price"),
    )),
    ("Categories", CategoriesPageViewModel, (
        ("Name", "Name", "name"),
        ("Parent", "Parent", "parent_name"),
        ("Type", "Type", "type"),
        ("Products", "ProductCount", "product_count"),
    )),
    ("Locations", LocationsPageViewModel, (
        ("Location", "Location", "name"),
        ("Type", "Type", "type"),
        ("Address", "Address", "address"),
        ("Manager", "Manager", "manager"),
        ("Capacity", "Capacity", "utilization_display"),
    )),
    ("Stock Levels", StockLevelsPageViewModel, (
        ("Product", "Product", "product_name"),
        ("SKU", "Sku", "sku"),
        ("Location", "Location", "location_name"),
        ("In Stock", "InStock", "in_stock"),
        ("Available", "Available", "available"),
        ("Status", "Status", "status_label"),
    )),
    ("Rental Inventory", RentalInventoryPageViewModel, (
        ("Item", "Name", "name"),
        ("Status", "Status", "status"),
        ("Total", "TotalQty", "total_quantity"),
        ("Available", "Available", "available_quantity"),
        ("Rented", "Rented", "rented_quantity"),
        ("Daily Rate", "DailyRate", "daily_rate"),
    )),
    ("Rentals", RentalsPageViewModel, (
        ("Id", "Id", "id"),
        ("Item", "Item", "item_name"),
        ("Customer", "Customer", "customer_name"),
        ("Due", "DueDate", "due_date"),
        ("Status", "Status", "status"),
    )),
    ("Invoices", InvoicesPageViewModel, (
        ("Invoice", "Id", "invoice_number"),
        ("Customer", "Customer", "customer_name"),
        ("Due", "DueDate", "due_date"),
        ("Total", "Amount", "total"),
        ("Status", "Status", "status_display"),
    )),
)


def _cell_text(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class TablePageWidget(QtWidgets.QWidget):
    """Search box, table and pager bound to one table page view-model."""

    def __init__(self, vm: Any, columns: Sequence[ColumnSpec], parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.vm = vm
        self.columns = list(columns)
        self._setup_ui()
        self._connect_signals()
        self._populate()

    def _setup_ui(self) -> None:
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)

        top = QtWidgets.QHBoxLayout()
        self.search_edit = QtWidgets.QLineEdit()
        self.search_edit.setPlaceholderText("Search...")
        self.search_edit.setClearButtonEnabled(True)
        self.delete_btn = QtWidgets.QPushButton("Delete")
        top.addWidget(self.search_edit, 1)
        top.addWidget(self.delete_btn)
        layout.addLayout(top)

        self.table = QtWidgets.QTableWidget(0, len(self.columns))
        self.table.setHorizontalHeaderLabels([c[0] for c in self.columns])
        self.table.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.verticalHeader().setVisible(False)
        layout.addWidget(self.table, 1)

        pager = QtWidgets.QHBoxLayout()
        self.prev_btn = QtWidgets.QPushButton("<")
        self.next_btn = QtWidgets.QPushButton(">")
        self.page_label = QtWidgets.QLabel("")
        self.page_size_combo = QtWidgets.QComboBox()
        for size in self.vm.page_size_options:
            self.page_size_combo.addItem(str(size), size)
        self.page_size_combo.setCurrentText(str(self.vm.page_size))
        pager.addWidget(self.page_label)
        pager.addStretch(1)
        pager.addWidget(self.page_size_combo)
        pager.addWidget(self.prev_btn)
        pager.addWidget(self.next_btn)
        layout.addLayout(pager)

    def _connect_signals(self) -> None:
        self.vm.items_changed.connect(self._populate)
        self.search_edit.textChanged.connect(self._on_search)
        self.prev_btn.clicked.connect(self.vm.go_to_previous_page)
        self.next_btn.clicked.connect(self.vm.go_to_next_page)
        self.page_size_combo.currentIndexChanged.connect(self._on_page_size)
        self.table.horizontalHeader().sectionClicked.connect(self._on_header_clicked)
        self.delete_btn.clicked.connect(self._on_delete)

    def _populate(self) -> None:
        rows = list(self.vm.items)
        self.table.setRowCount(len(rows))
        for r, row in enumerate(rows):
            for c, (_, _, attr) in enumerate(self.columns):
                item = QtWidgets.QTableWidgetItem(_cell_text(getattr(row, attr, None)))
                item.setData(QtCore.Qt.UserRole, getattr(row, "id", None))
                self.table.setItem(r, c, item)
        self.page_label.setText(self.vm.pagination_text)
        self.prev_btn.setEnabled(self.vm.can_go_to_previous_page)
        self.next_btn.setEnabled(self.vm.can_go_to_next_page)

    def _selected_id(self) -> Optional[str]:
        items = self.table.selectedItems()
        if not items:
            return None
        return items[0].data(QtCore.Qt.UserRole)

    def _on_search(self, text: str) -> None:
        self.vm.search_query = text or None

    def _on_page_size(self, index: int) -> None:
        size = self.page_size_combo.itemData(index)
        if size:
            self.vm.page_size = int(size)

    def _on_header_clicked(self, section: int) -> None:
        if 0 <= section < len(self.columns):
            self.vm.sort_by(self.columns[section][1])

    def _on_delete(self) -> None:
        row_id = self._selected_id()
        if row_id:
            self.vm.delete(row_id)

    def table_rows(self) -> List[List[Any]]:
        return [[getattr(row, attr, None) for _, _, attr in self.columns] for row in self.vm.items]


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, context: AppContext) -> None:
        super().__init__()
        self.context = context
        self.undo_redo_vm = UndoRedoButtonGroupViewModel(context.undo_redo)
        self.pages: List[TablePageWidget] = []

        self._setup_ui()
        self._setup_menus()
        self._connect_signals()
        self._update_title()

    def _setup_ui(self) -> None:
        self.setWindowTitle("ArgoBooks")

        self.toolbar = self.addToolBar("Edit")
        self.undo_action = self.toolbar.addAction("Undo")
        self.redo_action = self.toolbar.addAction("Redo")
        self._sync_undo_redo()

        self.tabs = QtWidgets.QTabWidget()
        for title, factory, columns in PAGES:
            page = TablePageWidget(factory(self.context), columns)
            self.pages.append(page)
            self.tabs.addTab(page, title)
        self.setCentralWidget(self.tabs)

        self.status_label = QtWidgets.QLabel("No company open")
        self.statusBar().addPermanentWidget(self.status_label)

    def _setup_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction("&New Company...", self._on_new_company)
        file_menu.addAction("&Open...", self._on_open)
        file_menu.addAction("&Save", self._on_save)
        file_menu.addAction("Save &As...", self._on_save_as)
        file_menu.addAction("&Export Table...", self._on_export)
        file_menu.addSeparator()
        file_menu.addAction("&Close Company", self._on_close_company)

    def _connect_signals(self) -> None:
        self.undo_action.triggered.connect(self.undo_redo_vm.undo)
        self.redo_action.triggered.connect(self.undo_redo_vm.redo)
        self.undo_redo_vm.property_changed.connect(lambda _name: self._sync_undo_redo())
        self.context.undo_redo.state_changed.connect(self._update_title)
        self.context.company_manager.company_opened.connect(lambda _c: self._update_title())
        self.context.company_manager.company_closed.connect(self._update_title)
        self.context.company_manager.company_changed.connect(self._update_title)
        self.context.company_manager.company_saved.connect(lambda _p: self._update_title())
        self.context.notifications.notification_posted.connect(self._on_notification)

    # --- View sync ---

    def _sync_undo_redo(self) -> None:
        vm = self.undo_redo_vm
        self.undo_action.setEnabled(vm.can_undo)
        self.redo_action.setEnabled(vm.can_redo)
        self.undo_action.setToolTip(vm.undo_tooltip)
        self.redo_action.setToolTip(vm.redo_tooltip)

    def _update_title(self) -> None:
        company = self.context.company_manager.company_data
        if company is None:
            self.setWindowTitle("ArgoBooks")
            self.status_label.setText("No company open")
            return
        marker = "*" if company.changes_made else ""
        self.setWindowTitle(f"{company.settings.company_name}{marker} - ArgoBooks")
        self.status_label.setText(self.context.company_manager.current_path or "Unsaved company")

    def _on_notification(self, note: Any) -> None:
        self.statusBar().showMessage(f"{note.title}: {note.message}", 8000)

    # --- File actions ---

    def _file_filter(self) -> str:
        return f"ArgoBooks company (*{config.COMPANY_FILE_EXTENSION})"

    def _confirm_unsaved(self) -> bool:
        if not self.context.company_manager.has_unsaved_changes:
            return True
        result = self.context.confirmation.confirm(
            title="Unsaved Changes",
            message="Save changes to the current company before continuing?",
            primary="Save",
            secondary="Don't Save",
            cancel="Cancel",
        )
        if result == ConfirmationResult.PRIMARY:
            return self._on_save()
        return result == ConfirmationResult.SECONDARY

    def _on_new_company(self) -> None:
        if not self._confirm_unsaved():
            return
        name, ok = QtWidgets.QInputDialog.getText(self, "New Company", "Company name:")
        if ok and name.strip():
            self.context.company_manager.create_company(name)

    def _on_open(self) -> None:
        if not self._confirm_unsaved():
            return
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Open Company", "", self._file_filter())
        if not path:
            return
        try:
            self.context.company_manager.open_company(path)
        except ArgoBooksError as e:
            QtWidgets.QMessageBox.critical(self, "Open Company", str(e))

    def _on_save(self) -> bool:
        manager = self.context.company_manager
        if not manager.is_company_open:
            return False
        if not manager.current_path:
            return self._on_save_as()
        try:
            manager.save_company()
        except ArgoBooksError as e:
            QtWidgets.QMessageBox.critical(self, "Save Company", str(e))
            return False
        return True

    def _on_save_as(self) -> bool:
        manager = self.context.company_manager
        if not manager.is_company_open:
            return False
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Save Company", "", self._file_filter())
        if not path:
            return False
        try:
            manager.save_company(path)
        except ArgoBooksError as e:
            QtWidgets.QMessageBox.critical(self, "Save Company", str(e))
            return False
        return True

    def _on_export(self) -> None:
        page = self.tabs.currentWidget()
        if not isinstance(page, TablePageWidget):
            return
        title = self.tabs.tabText(self.tabs.currentIndex())
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export Table", f"{title}.csv", "CSV (*.csv);;Excel Workbook (*.xlsx)"
        )
        if not path:
            return
        try:
            written = export_table(path, [c[0] for c in page.columns], page.table_rows(), sheet_title=title)
        except OSError as e:
            QtWidgets.QMessageBox.critical(self, "Export Table", str(e))
            return
        logger.info(f"Exported {title} to {written}")
        self.statusBar().showMessage(f"Exported to {written}", 5000)

    def _on_close_company(self) -> None:
        if self._confirm_unsaved():
            self.context.company_manager.close_company()

    def closeEvent(self, event) -> None:
        if self._confirm_unsaved():
            event.accept()
        else:
            event.ignore()
