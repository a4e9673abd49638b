"""Token price feed: platform token-info endpoint with a CoinGecko fallback."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from lottery_yield.clients.http import read_json
from lottery_yield.errors import UpstreamUnavailableError
from lottery_yield.services.draw_record import PricePoint, PriceQuote

logger = logging.getLogger(__name__)


TOKEN_INFO_QUERY = """query tokenInfo {
  tokenInfo {
    priceInUsd
    twentyFourHourPercentageChange
    __typename
  }
}"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PriceFeedClient:
    """Current price and daily price history.

    No fabricated prices: when every source fails the call raises.
    """

    def __init__(
        self,
        http: requests.Session,
        token_api_url: str,
        coingecko_api_url: str,
        coin_id: str,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._http = http
        self._token_api_url = token_api_url
        self._coingecko = coingecko_api_url.rstrip("/")
        self._coin_id = coin_id
        self._timeout = timeout_seconds

    def _from_token_api(self) -> PriceQuote | None:
        resp = self._http.post(
            self._token_api_url,
            json={"operationName": "tokenInfo", "query": TOKEN_INFO_QUERY, "variables": {}},
            headers={"Origin": "https://shuffle.com", "Referer": "https://shuffle.com/token"},
            timeout=self._timeout,
        )
        payload: Any = read_json(resp, "tokenInfo")
        info = ((payload or {}).get("data") or {}).get("tokenInfo") or {}
        if not info.get("priceInUsd"):
            return None
        return PriceQuote(
            usd=float(info["priceInUsd"]),
            usd_24h_change=float(info.get("twentyFourHourPercentageChange") or 0),
            as_of=_now_iso(),
            source="shuffle",
        )

    def _from_coingecko(self) -> PriceQuote | None:
        resp = self._http.get(
            f"{self._coingecko}/simple/price",
            params={
                "ids": self._coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_last_updated_at": "true",
            },
            timeout=self._timeout,
        )
        payload: Any = read_json(resp, "coingecko simple price")
        data = (payload or {}).get(self._coin_id) or {}
        if not data.get("usd"):
            return None
        updated = data.get("last_updated_at")
        as_of = datetime.fromtimestamp(int(updated), tz=timezone.utc).isoformat() if updated else _now_iso()
        return PriceQuote(
            usd=float(data["usd"]),
            usd_24h_change=float(data.get("usd_24h_change") or 0),
            as_of=as_of,
            source="coingecko",
        )

    def get_current_price(self) -> PriceQuote:
        failures: list[str] = []
        for name, source in (("shuffle", self._from_token_api), ("coingecko", self._from_coingecko)):
            try:
                quote = source()
            except (requests.RequestException, UpstreamUnavailableError, ValueError, TypeError) as exc:
                logger.warning("Price source %s failed: %s", name, exc)
                failures.append(name)
                continue
            if quote is not None and quote.usd > 0:
                return quote
            failures.append(name)

        raise UpstreamUnavailableError(
            message="Unable to fetch price from any source",
            details={"sources": failures},
        )

    def get_price_history(self, days: int = 365) -> list[PricePoint]:
        try:
            resp = self._http.get(
                f"{self._coingecko}/coins/{self._coin_id}/market_chart",
                params={"vs_currency": "usd", "days": int(days)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailableError(message=f"Price history failed: {exc}") from exc

        payload: Any = read_json(resp, "coingecko market chart")
        try:
            points = [
                PricePoint(timestamp_ms=int(ts), price=float(price))
                for ts, price in (payload or {}).get("prices") or []
            ]
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(message=f"Malformed price history: {exc}") from exc
        points.sort(key=lambda p: p.timestamp_ms)
        return points
