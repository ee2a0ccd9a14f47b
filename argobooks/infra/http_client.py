from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests


@dataclass(frozen=True)
class HttpJsonError(RuntimeError):
    url: str
    status_code: int | None
    message: str
    response_text: str | None = None
    payload: Optional[dict] = None

    def __str__(self) -> str:  # pragma: no cover
        code = self.status_code if self.status_code is not None else "unknown"
        return f"HTTP {code} for {self.url}: {self.message}"


def _decode(resp: Any, url: str) -> dict:
    try:
        return resp.json() or {}
    except ValueError as e:
        raise HttpJsonError(url=url, status_code=int(resp.status_code), message=f"Invalid JSON response: {e}", response_text=resp.text) from e


def get_json(
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    timeout_s: float = 10.0,
    headers: Mapping[str, str] | None = None,
    session: Any = None,
) -> dict:
    http = session or requests
    resp = http.get(str(url), params=dict(params or {}), headers=dict(headers or {}), timeout=float(timeout_s))
    if resp.status_code // 100 != 2:
        raise HttpJsonError(url=str(url), status_code=int(resp.status_code), message=resp.text[:500], response_text=resp.text)
    return _decode(resp, str(url))


def post_json(
    url: str,
    body: Any,
    *,
    timeout_s: float = 30.0,
    headers: Mapping[str, str] | None = None,
    session: Any = None,
) -> dict:
    http = session or requests
    hdrs = {"Content-Type": "application/json"}
    hdrs.update(dict(headers or {}))
    resp = http.post(str(url), data=json.dumps(body), headers=hdrs, timeout=float(timeout_s))
    if resp.status_code // 100 != 2:
        # Keep the server's JSON error body when it sent one
        msg = resp.text
        payload = None
        try:
            payload = resp.json() or {}
            msg = payload.get("message") or payload.get("error") or msg
        except ValueError:
            pass
        raise HttpJsonError(url=str(url), status_code=int(resp.status_code), message=str(msg)[:500], response_text=resp.text, payload=payload)
    return _decode(resp, str(url))


def head_ok(url: str, *, timeout_s: float = 5.0, session: Any = None) -> bool:
    """True when the server answers HEAD with a 2xx status."""
    http = session or requests
    resp = http.head(str(url), timeout=float(timeout_s), allow_redirects=True)
    return resp.status_code // 100 == 2
