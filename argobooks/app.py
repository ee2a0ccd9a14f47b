from __future__ import annotations
import logging
from typing import Optional

from . import config
from .domain.company_data import CompanyData
from .errors import NoCompanyOpenError
from .services.company_manager import CompanyManager
from .services.connectivity import ConnectivityService
from .services.exchange_rates import ExchangeRateService
from .services.id_generator import IdGenerator
from .services.invoice_email import InvoiceEmailService
from .services.undo_redo import UndoRedoManager
from .services.validation import DataValidator
from .ui.confirmation import ConfirmationService
from .ui.notifications import NotificationCenter
from .ui.workers import TaskRunner

logger = logging.getLogger(__name__)


class AppContext:
    """
    Shared services every page and modal view-model reaches through.
    Modal view-models are created on demand and shared by their pages.
    """

    def __init__(
        self,
        company_manager: CompanyManager,
        undo_redo: UndoRedoManager,
        confirmation: ConfirmationService,
        exchange_rates: ExchangeRateService,
        connectivity: ConnectivityService,
        invoice_email: InvoiceEmailService,
        notifications: Optional[NotificationCenter] = None,
        tasks: Optional[TaskRunner] = None,
    ):
        self.company_manager = company_manager
        self.undo_redo = undo_redo
        self.confirmation = confirmation
        self.exchange_rates = exchange_rates
        self.connectivity = connectivity
        self.invoice_email = invoice_email
        self.notifications = notifications or NotificationCenter()
        self.tasks = tasks or TaskRunner()
        self._modals: dict = {}

        # A different company means a different history
        self.company_manager.company_opened.connect(self._on_company_opened)
        self.company_manager.company_closed.connect(self.undo_redo.clear)
        self.company_manager.company_saved.connect(self._on_company_saved)

    # --- Company access ---

    @property
    def company(self) -> CompanyData:
        company = self.company_manager.company_data
        if company is None:
            raise NoCompanyOpenError()
        return company

    def validator(self) -> DataValidator:
        return DataValidator(self.company)

    def id_generator(self) -> IdGenerator:
        return IdGenerator(self.company)

    @property
    def currency(self) -> str:
        company = self.company_manager.company_data
        return company.settings.currency if company else config.DEFAULT_CURRENCY

    # --- Modal view-models ---

    def _modal(self, key: str, factory):
        if key not in self._modals:
            self._modals[key] = factory(self)
        return self._modals[key]

    @property
    def customer_modals(self):
        from .ui.viewmodels.customers import CustomerModalsViewModel
        return self._modal("customers", CustomerModalsViewModel)

    @property
    def product_modals(self):
        from .ui.viewmodels.products import ProductModalsViewModel
        return self._modal("products", ProductModalsViewModel)

    @property
    def category_modals(self):
        from .ui.viewmodels.categories import CategoryModalsViewModel
        return self._modal("categories", CategoryModalsViewModel)

    @property
    def location_modals(self):
        from .ui.viewmodels.locations import LocationModalsViewModel
        return self._modal("locations", LocationModalsViewModel)

    @property
    def rental_modals(self):
        from .ui.viewmodels.rentals import RentalModalsViewModel
        return self._modal("rentals", RentalModalsViewModel)

    @property
    def rental_inventory_modals(self):
        from .ui.viewmodels.rental_inventory import RentalInventoryModalsViewModel
        return self._modal("rental_inventory", RentalInventoryModalsViewModel)

    @property
    def invoice_modals(self):
        from .ui.viewmodels.invoices import InvoiceModalsViewModel
        return self._modal("invoices", InvoiceModalsViewModel)

    @property
    def stock_modals(self):
        from .ui.viewmodels.stock_levels import StockLevelsModalsViewModel
        return self._modal("stock_levels", StockLevelsModalsViewModel)

    # --- Signal handlers ---

    def _on_company_opened(self, company: CompanyData) -> None:
        self.undo_redo.clear()
        self.undo_redo.mark_saved()

    def _on_company_saved(self, path: str) -> None:
        self.undo_redo.mark_saved()


def build_app_context(confirmation: ConfirmationService, run_async: bool = True) -> AppContext:
    """Wire the production services from config."""
    exchange_rates = ExchangeRateService()
    exchange_rates.initialize()
    if not exchange_rates.has_api_key:
        logger.info("OPENEXCHANGERATES_API_KEY not set; currency conversion limited to cached rates")
    return AppContext(
        company_manager=CompanyManager(),
        undo_redo=UndoRedoManager(config.UNDO_HISTORY_SIZE),
        confirmation=confirmation,
        exchange_rates=exchange_rates,
        connectivity=ConnectivityService(),
        invoice_email=InvoiceEmailService(),
        tasks=TaskRunner(run_async=run_async),
    )
