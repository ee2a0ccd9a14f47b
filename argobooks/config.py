import os
from typing import Tuple


# Application data (exchange-rate cache, recent files)
APP_DATA_DIR: str = os.environ.get(
    "ARGOBOOKS_DATA_DIR",
    os.path.join(os.path.expanduser("~"), ".argobooks"),
)
EXCHANGE_RATE_CACHE_FILE: str = os.path.join(APP_DATA_DIR, "exchange_rates.json")
COMPANY_FILE_EXTENSION: str = ".argo"
DEFAULT_CURRENCY: str = os.environ.get("ARGOBOOKS_DEFAULT_CURRENCY", "USD")


# Exchange rates (openexchangerates.org)
OPENEXCHANGERATES_API_KEY: str = os.environ.get("OPENEXCHANGERATES_API_KEY", "")
OPENEXCHANGERATES_BASE_URL: str = os.environ.get(
    "OPENEXCHANGERATES_BASE_URL", "https://openexchangerates.org/api"
)
EXCHANGE_RATE_TIMEOUT_S: float = float(os.environ.get("EXCHANGE_RATE_TIMEOUT_S", "10"))


# Invoice email API
INVOICE_EMAIL_API_KEY: str = os.environ.get("INVOICE_EMAIL_API_KEY", "")
INVOICE_EMAIL_API_URL: str = os.environ.get(
    "INVOICE_EMAIL_API_URL", "https://argorobots.com/api/invoice/send-email.php"
)
INVOICE_EMAIL_TIMEOUT_S: float = float(os.environ.get("INVOICE_EMAIL_TIMEOUT_S", "30"))


# Connectivity checks: any 2xx/204 answer counts as online
CONNECTIVITY_CHECK_URLS: Tuple[str, ...] = (
    "https://www.google.com/generate_204",
    "https://connectivitycheck.gstatic.com/generate_204",
    "https://cp.cloudflare.com/generate_204",
)
CONNECTIVITY_TIMEOUT_S: float = float(os.environ.get("CONNECTIVITY_TIMEOUT_S", "5"))


# Table pages
PAGE_SIZE_OPTIONS: Tuple[int, ...] = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE: int = int(os.environ.get("ARGOBOOKS_PAGE_SIZE", "10"))
PAGE_WINDOW_SIZE: int = 5
FUZZY_SEARCH_THRESHOLD: float = float(os.environ.get("FUZZY_SEARCH_THRESHOLD", "0.4"))

# Undo history depth per session
UNDO_HISTORY_SIZE: int = int(os.environ.get("UNDO_HISTORY_SIZE", "100"))

# Filter sentinel used by every "All ..." combo box
FILTER_ALL: str = "All"


def is_email_configured() -> bool:
    return bool(INVOICE_EMAIL_API_KEY.strip())


def has_exchange_rate_key() -> bool:
    return bool(OPENEXCHANGERATES_API_KEY.strip())
