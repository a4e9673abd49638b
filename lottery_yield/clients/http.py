"""Shared requests session construction."""

from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lottery_yield.errors import UpstreamUnavailableError


BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


def build_http_session(retries: int, backoff_factor: float, pool_size: int = 20) -> requests.Session:
    """Create a requests session with retry/backoff for transient network errors."""

    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "POST"),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=pool_size, pool_maxsize=pool_size)

    session = requests.Session()
    session.headers.update(BROWSER_HEADERS)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def read_json(resp: requests.Response, what: str) -> Any:
    """Return the JSON body or raise UpstreamUnavailableError."""

    if not resp.ok:
        raise UpstreamUnavailableError(
            message=f"{what} returned {resp.status_code}",
            details={"status": resp.status_code},
        )
    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamUnavailableError(message=f"{what} returned invalid JSON") from exc
