from __future__ import annotations
import logging
from typing import Any, Optional, Sequence

import requests

from .. import config
from ..infra.http_client import head_ok

logger = logging.getLogger(__name__)


class ConnectivityService:
    """Answers "are we online?" before network-backed actions such as emailing an invoice."""

    def __init__(self, check_urls: Optional[Sequence[str]] = None, timeout_s: float = config.CONNECTIVITY_TIMEOUT_S, session: Any = None):
        self.check_urls = list(check_urls or config.CONNECTIVITY_CHECK_URLS)
        self.timeout_s = float(timeout_s)
        self._session = session

    def is_internet_available(self) -> bool:
        for url in self.check_urls:
            if self.is_host_reachable(url):
                return True
        logger.warning("No connectivity check endpoint reachable")
        return False

    def is_host_reachable(self, url: str) -> bool:
        try:
            return head_ok(url, timeout_s=self.timeout_s, session=self._session)
        except requests.RequestException as e:
            logger.debug(f"Connectivity check failed for {url}: {e}")
            return False
