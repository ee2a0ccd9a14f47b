import pytest
from PySide6 import QtCore

from argobooks.app import AppContext
from argobooks.services.company_manager import CompanyManager
from argobooks.services.connectivity import ConnectivityService
from argobooks.services.exchange_rates import ExchangeRateCache, ExchangeRateService
from argobooks.services.invoice_email import InvoiceEmailService
from argobooks.services.undo_redo import UndoRedoManager
from argobooks.ui.confirmation import AutoConfirmationService
from argobooks.ui.workers import TaskRunner

from .fakes import FakeResponse, FakeSession


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    """Signals and QObjects need a core application instance."""
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


@pytest.fixture
def confirmation():
    return AutoConfirmationService()


@pytest.fixture
def rate_cache(tmp_path):
    return ExchangeRateCache(str(tmp_path / "exchange_rates.json"))


@pytest.fixture
def app(confirmation, rate_cache):
    """App context with an open in-memory company and no network access."""
    context = AppContext(
        company_manager=CompanyManager(),
        undo_redo=UndoRedoManager(50),
        confirmation=confirmation,
        exchange_rates=ExchangeRateService(api_key="", cache=rate_cache),
        connectivity=ConnectivityService(
            check_urls=["https://connectivity.test/generate_204"],
            session=FakeSession(FakeResponse(204)),
        ),
        invoice_email=InvoiceEmailService(api_key="", api_url="https://mail.test/send"),
        tasks=TaskRunner(run_async=False),
    )
    context.company_manager.create_company("Test Co")
    return context


@pytest.fixture
def company(app):
    return app.company
