from __future__ import annotations
import json
import logging
import os
import threading
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from .. import config
from ..domain.models import round_money, to_decimal
from ..infra.http_client import HttpJsonError, get_json

logger = logging.getLogger(__name__)

BASE_CURRENCY = "USD"
RATE_UNAVAILABLE = Decimal("-1")


def cache_key(from_currency: str, to_currency: str, on: date) -> str:
    return f"{on.isoformat()}_{from_currency.upper()}_{to_currency.upper()}"


class ExchangeRateCache:
    """
    Daily exchange rates keyed "YYYY-MM-DD_FROM_TO", persisted as JSON in the app data dir.
    Both directions are stored for every rate set.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.EXCHANGE_RATE_CACHE_FILE
        self._rates: Dict[str, Decimal] = {}
        self._lock = threading.Lock()
        self._dirty = False

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._rates)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def try_get_rate(self, from_currency: str, to_currency: str, on: date) -> Optional[Decimal]:
        with self._lock:
            rate = self._rates.get(cache_key(from_currency, to_currency, on))
            if rate is not None:
                return rate
            inverse = self._rates.get(cache_key(to_currency, from_currency, on))
            if inverse:
                return Decimal(1) / inverse
        return None

    def set_rate(self, from_currency: str, to_currency: str, on: date, rate: Any) -> None:
        rate = to_decimal(rate)
        if rate <= 0:
            return
        with self._lock:
            self._rates[cache_key(from_currency, to_currency, on)] = rate
            self._rates[cache_key(to_currency, from_currency, on)] = Decimal(1) / rate
            self._dirty = True

    def set_rates_from_base(self, rates: Mapping[str, Any], base_currency: str, on: date) -> None:
        with self._lock:
            for currency, value in rates.items():
                rate = to_decimal(value)
                if rate <= 0:
                    continue
                self._rates[cache_key(base_currency, currency, on)] = rate
                self._rates[cache_key(currency, base_currency, on)] = Decimal(1) / rate
            self._rates[cache_key(base_currency, base_currency, on)] = Decimal(1)
            self._dirty = True

    def has_rates_for(self, on: date, base_currency: str = BASE_CURRENCY) -> bool:
        prefix = f"{on.isoformat()}_{base_currency.upper()}_"
        with self._lock:
            return any(k.startswith(prefix) for k in self._rates)

    def load(self) -> None:
        if not os.path.isfile(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # Unreadable cache: start empty
            logger.warning(f"Ignoring exchange rate cache {self.path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Ignoring exchange rate cache {self.path}: expected an object, got {type(data).__name__}")
            return
        with self._lock:
            for key, value in data.items():
                self._rates[str(key)] = to_decimal(value)
            self._dirty = False
        logger.info(f"Loaded {len(self._rates)} cached exchange rates")

    def save(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            snapshot = {k: str(v) for k, v in self._rates.items()}
            self._dirty = False
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save exchange rate cache: {e}")

    def clear(self) -> None:
        with self._lock:
            self._rates.clear()
            self._dirty = True


class ExchangeRateService:
    """
    Currency conversion backed by openexchangerates.org.
    All fetched tables are USD based; other pairs are derived through USD.
    """

    def __init__(self, api_key: Optional[str] = None, cache: Optional[ExchangeRateCache] = None, session: Any = None):
        self._api_key = config.OPENEXCHANGERATES_API_KEY if api_key is None else api_key
        self.cache = cache or ExchangeRateCache()
        self._session = session
        self._initialized = False

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    @property
    def cached_rates_count(self) -> int:
        return self.cache.count

    def initialize(self) -> None:
        if self._initialized:
            return
        self.cache.load()
        self._initialized = True

    def get_exchange_rate(self, from_currency: str, to_currency: str, on: Optional[date] = None, fetch_if_missing: bool = True) -> Decimal:
        """Rate to multiply a `from_currency` amount by; -1 when unavailable."""
        on = on or date.today()
        from_currency = (from_currency or BASE_CURRENCY).upper()
        to_currency = (to_currency or BASE_CURRENCY).upper()
        if from_currency == to_currency:
            return Decimal(1)

        rate = self._lookup(from_currency, to_currency, on)
        if rate is not None:
            return rate

        if fetch_if_missing and self.has_api_key:
            rates = self._fetch_rates(on)
            if rates:
                self.cache.set_rates_from_base(rates, BASE_CURRENCY, on)
                self.cache.save()
                rate = self._lookup(from_currency, to_currency, on)
                if rate is not None:
                    return rate

        logger.warning(f"Exchange rate {from_currency}->{to_currency} unavailable for {on}")
        return RATE_UNAVAILABLE

    def cached_rate(self, from_currency: str, to_currency: str, on: Optional[date] = None) -> Decimal:
        """Cache-only lookup for display paths that must not block on the network."""
        return self.get_exchange_rate(from_currency, to_currency, on, fetch_if_missing=False)

    def convert(self, amount: Any, from_currency: str, to_currency: str, on: Optional[date] = None) -> Decimal:
        amount = to_decimal(amount)
        rate = self.get_exchange_rate(from_currency, to_currency, on)
        if rate <= 0:
            return amount
        return round_money(amount * rate)

    def convert_to_usd(self, amount: Any, from_currency: str, on: Optional[date] = None) -> Decimal:
        return self.convert(amount, from_currency, BASE_CURRENCY, on)

    def convert_from_usd(self, amount_usd: Any, to_currency: str, on: Optional[date] = None) -> Decimal:
        return self.convert(amount_usd, BASE_CURRENCY, to_currency, on)

    def preload_rates(self, dates: Iterable[date]) -> int:
        """Fetch the USD table for every date not already cached. Returns the number fetched."""
        fetched = 0
        for on in sorted(set(dates)):
            if self.cache.has_rates_for(on):
                continue
            rates = self._fetch_rates(on)
            if rates:
                self.cache.set_rates_from_base(rates, BASE_CURRENCY, on)
                fetched += 1
        self.cache.save()
        return fetched

    def _lookup(self, from_currency: str, to_currency: str, on: date) -> Optional[Decimal]:
        rate = self.cache.try_get_rate(from_currency, to_currency, on)
        if rate is not None:
            return rate
        # Cross rate through the USD table
        to_base = self.cache.try_get_rate(from_currency, BASE_CURRENCY, on)
        from_base = self.cache.try_get_rate(BASE_CURRENCY, to_currency, on)
        if to_base is not None and from_base is not None:
            return to_base * from_base
        return None

    def _fetch_rates(self, on: date) -> Optional[Dict[str, Any]]:
        if not self.has_api_key:
            return None
        base = config.OPENEXCHANGERATES_BASE_URL.rstrip("/")
        if on == date.today():
            url = f"{base}/latest.json"
        else:
            url = f"{base}/historical/{on.isoformat()}.json"
        try:
            payload = get_json(
                url,
                params={"app_id": self._api_key, "base": BASE_CURRENCY},
                timeout_s=config.EXCHANGE_RATE_TIMEOUT_S,
                session=self._session,
            )
        except HttpJsonError as e:
            logger.error(f"Exchange rate request failed: HTTP {e.status_code}")
            return None
        except Exception as e:
            logger.error(f"Exchange rate request failed: {e}")
            return None
        rates = payload.get("rates")
        return rates if isinstance(rates, dict) else None
