"""GraphQL client for the lottery draw feed."""

from __future__ import annotations

import logging
from typing import Any

import requests

from lottery_yield.clients.http import read_json
from lottery_yield.errors import UpstreamUnavailableError
from lottery_yield.services.draw_record import LiveDraw, PrizeTier

logger = logging.getLogger(__name__)


GET_LOTTERY_DRAW_QUERY = """query getLotteryDraw($id: Float) {
  lotteryDraw(drawId: $id) {
    id
    prizePoolAmount
    totalStaked
    status
    drawAt
  }
}"""

GET_PRIZES_AND_RESULTS_QUERY = """query getPrizesAndResults($drawId: Float) {
  prizesAndResults(drawId: $drawId) {
    category
    currency
    amount
    winCount
    win
    __typename
  }
}"""

GET_LATEST_DRAW_QUERY = """query getLatestLotteryDraw {
  getLatestLotteryDraw {
    id
  }
}"""


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class DrawFeedClient:
    """Draw, prize-tier and latest-id lookups.

    Transport failures raise UpstreamUnavailableError; a draw the feed does
    not know about returns None.
    """

    def __init__(self, http: requests.Session, endpoint: str, timeout_seconds: float = 5.0) -> None:
        self._http = http
        self._endpoint = endpoint
        self._timeout = timeout_seconds

    def _query(self, operation: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = self._http.post(
                self._endpoint,
                json={"operationName": operation, "query": query, "variables": variables},
                headers={"Origin": "https://shuffle.com", "Referer": "https://shuffle.com/lottery"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailableError(message=f"{operation} failed: {exc}") from exc

        payload = read_json(resp, operation)
        data = payload.get("data") if isinstance(payload, dict) else None
        return data if isinstance(data, dict) else {}

    def get_draw(self, draw_id: int) -> LiveDraw | None:
        data = self._query("getLotteryDraw", GET_LOTTERY_DRAW_QUERY, {"id": int(draw_id)})
        raw = data.get("lotteryDraw")
        if not raw:
            return None
        try:
            return LiveDraw(
                draw_id=int(raw.get("id") or draw_id),
                prize_pool_amount=_to_float(raw.get("prizePoolAmount")),
                total_staked=_to_float(raw.get("totalStaked")),
                status=raw.get("status"),
                draw_at=raw.get("drawAt"),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(message=f"Malformed lotteryDraw {draw_id}: {exc}") from exc

    def get_prizes_and_results(self, draw_id: int) -> list[PrizeTier] | None:
        data = self._query("getPrizesAndResults", GET_PRIZES_AND_RESULTS_QUERY, {"drawId": int(draw_id)})
        rows = data.get("prizesAndResults")
        if not isinstance(rows, list):
            logger.info("No prize data for draw %s", draw_id)
            return None
        try:
            return [
                PrizeTier(
                    category=str(p.get("category") or ""),
                    amount=_to_float(p.get("amount")),
                    win_count=int(p.get("winCount") or 0),
                    win=_to_float(p.get("win")),
                )
                for p in rows
            ]
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(message=f"Malformed prizesAndResults {draw_id}: {exc}") from exc

    def get_latest_draw_id(self) -> int:
        data = self._query("getLatestLotteryDraw", GET_LATEST_DRAW_QUERY, {})
        raw = data.get("getLatestLotteryDraw") or {}
        try:
            return int(raw["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(message="Latest draw id missing from response") from exc
