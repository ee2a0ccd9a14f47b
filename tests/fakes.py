from __future__ import annotations
from typing import Any, List, Optional, Tuple


class FakeResponse:
    """Stand-in for requests.Response; json() fails when no payload was given."""

    def __init__(self, status_code: int = 200, payload: Optional[dict] = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records every call; answers with one canned response or raises `error`."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[BaseException] = None):
        self.response = response or FakeResponse(200, {})
        self.error = error
        self.calls: List[Tuple[str, str, dict]] = []

    def _call(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._call("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._call("POST", url, **kwargs)

    def head(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._call("HEAD", url, **kwargs)
