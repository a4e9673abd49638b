"""Reconciliation facade used by routes and scripts.

One refresh cycle (`compute_snapshot`) loads the static history, fans out to
the draw and price feeds, builds the reconciled timeline and computes every
yield figure from it. The result is committed into a `MetricsCache` and all
read operations are served from that single snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any

from flask import current_app
from sqlalchemy.orm import Session, sessionmaker

from lottery_yield.clients.draw_feed import DrawFeedClient
from lottery_yield.clients.http import build_http_session
from lottery_yield.clients.price_feed import PriceFeedClient
from lottery_yield.db import session_scope
from lottery_yield.errors import (
    InsufficientDataError,
    InvalidInputError,
    NotFoundError,
    UpstreamUnavailableError,
)
from lottery_yield.repositories.static_draw_repository import StaticDrawRecord, StaticDrawRepository
from lottery_yield.services.current_draw import CurrentDrawStats, build_current_draw_stats
from lottery_yield.services.draw_record import DrawRecord, PricePoint, PriceQuote, PrizeTier
from lottery_yield.services.draw_store import DrawRecordStore, validate_range
from lottery_yield.services.earnings import HistoricalEarnings, compute_historical_earnings
from lottery_yield.services.jackpot import apply_jackpot_adjustments
from lottery_yield.services.metrics import (
    DEFAULT_MULTIPLIERS,
    SensitivityCell,
    YieldMetrics,
    build_sensitivity_table,
    compute_yield_metrics,
)
from lottery_yield.services.metrics_cache import MetricsCache
from lottery_yield.services.ngr_resolver import NgrAttributionResolver
from lottery_yield.services.prize_delta import DeltaEstimate, PrizePoolDeltaEstimator
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules
from lottery_yield.services.sanity_check import SanityCheckReconciler, SanityCheckReport, check_draw_count
from lottery_yield.services.yield_calculator import YieldResult, compute_yield
from lottery_yield.utils.concurrency import CancelToken, fetch_batched, run_parallel
from lottery_yield.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Everything one refresh produced. Never partially populated."""

    request_id: int
    timeline: tuple[DrawRecord, ...]
    store: DrawRecordStore
    metrics: YieldMetrics
    price: PriceQuote
    computed_at: str

    def draw(self, draw_number: int) -> DrawRecord | None:
        for record in self.timeline:
            if record.draw_number == draw_number:
                return record
        return None


@dataclass(frozen=True)
class NgrEstimateResult:
    draw_number: int
    estimate: DeltaEstimate | None
    error: str | None = None


class ReconciliationService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        draw_feed: DrawFeedClient,
        price_feed: PriceFeedClient,
        rules: ReconciliationRules = DEFAULT_RULES,
        *,
        repository: StaticDrawRepository | None = None,
        batch_size: int = 10,
        cache_ttl_seconds: float = 300.0,
        prize_cache_ttl_seconds: float = 600.0,
        price_history_days: int = 365,
        recent_prize_draws: int = 8,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._session_factory = session_factory
        self._draw_feed = draw_feed
        self._price_feed = price_feed
        self._rules = rules
        self._repository = repository or StaticDrawRepository()
        self._batch_size = batch_size
        self._price_history_days = price_history_days
        self._recent_prize_draws = recent_prize_draws
        self._today = today

        self._prizes: TTLCache[int, tuple[PrizeTier, ...]] = TTLCache(prize_cache_ttl_seconds)
        self._estimator = PrizePoolDeltaEstimator(prize_cache_ttl_seconds)
        self._resolver = NgrAttributionResolver(self._estimator, rules)
        self._sanity = SanityCheckReconciler(
            self.fetch_prizes,
            rules,
            batch_size=batch_size,
            cache_ttl_seconds=cache_ttl_seconds,
        )
        self._cache: MetricsCache[MetricsSnapshot] = MetricsCache(self.compute_snapshot, cache_ttl_seconds)

    @classmethod
    def from_config(cls, config: Mapping[str, Any], session_factory: sessionmaker[Session]) -> "ReconciliationService":
        http = build_http_session(int(config["HTTP_RETRIES"]), float(config["HTTP_BACKOFF"]))
        timeout = float(config["REQUEST_TIMEOUT_SECONDS"])
        return cls(
            session_factory,
            DrawFeedClient(http, str(config["DRAW_FEED_URL"]), timeout),
            PriceFeedClient(
                http,
                str(config["TOKEN_API_URL"]),
                str(config["COINGECKO_API_URL"]),
                str(config["COINGECKO_COIN_ID"]),
                timeout,
            ),
            ReconciliationRules.from_config(config),
            batch_size=int(config["FETCH_BATCH_SIZE"]),
            cache_ttl_seconds=float(config["CACHE_TTL_SECONDS"]),
            prize_cache_ttl_seconds=float(config["PRIZE_CACHE_TTL_SECONDS"]),
            price_history_days=int(config["PRICE_HISTORY_DAYS"]),
            recent_prize_draws=int(config["RECENT_PRIZE_DRAWS"]),
        )

    @property
    def rules(self) -> ReconciliationRules:
        return self._rules

    @property
    def cache(self) -> MetricsCache[MetricsSnapshot]:
        return self._cache

    def fetch_prizes(self, draw_number: int) -> tuple[PrizeTier, ...] | None:
        """Prize tiers for a draw, cached once fetched."""

        cached = self._prizes.get(draw_number)
        if cached is not None:
            return cached
        prizes = self._draw_feed.get_prizes_and_results(draw_number)
        if prizes is None:
            return None
        result = tuple(prizes)
        self._prizes.set(draw_number, result)
        return result

    def load_static_rows(self) -> list[StaticDrawRecord]:
        with session_scope(self._session_factory) as session:
            return self._repository.list_all(session)

    def _latest_draw_number(self, fetched: object, static_rows: Sequence[StaticDrawRecord]) -> int:
        if isinstance(fetched, int) and fetched > 0:
            return fetched
        if static_rows:
            fallback = max(s.draw_number for s in static_rows)
            logger.warning("Latest draw id unavailable, falling back to static draw %s", fallback)
            return fallback
        raise InsufficientDataError("No draws known: latest draw id unavailable and no static data")

    def _prize_keys(self, store: DrawRecordStore) -> list[int]:
        """Draws whose prize tiers the estimator or the jackpot detector will need."""

        keys: list[int] = []
        for record in store.list_draws():
            n = record.draw_number
            prev = store.static_row(n - 1)
            if n > 1 and (prev is None or prev.posted_ngr_added <= 0):
                keys.extend((n - 1, n))

        recent = store.list_draws()[-self._recent_prize_draws :] if self._recent_prize_draws > 0 else []
        keys.extend(r.draw_number for r in recent)
        return sorted(set(k for k in keys if k >= 1))

    def compute_snapshot(self, request_id: int, token: CancelToken) -> MetricsSnapshot | None:
        static_rows = self.load_static_rows()
        token.raise_if_cancelled()

        upstream = run_parallel(
            {
                "price": self._price_feed.get_current_price,
                "latest": self._draw_feed.get_latest_draw_id,
                "history": lambda: self._price_feed.get_price_history(self._price_history_days),
            },
            token=token,
        )
        price = upstream["price"]
        if isinstance(price, UpstreamUnavailableError):
            raise price
        latest = self._latest_draw_number(upstream["latest"], static_rows)
        history = upstream["history"]
        price_history: Sequence[PricePoint] = [] if isinstance(history, UpstreamUnavailableError) else history

        numbers = list(range(1, latest + 1))
        live = fetch_batched(self._draw_feed.get_draw, numbers, batch_size=self._batch_size, token=token)
        store = DrawRecordStore.from_sources(static_rows, live.values, self._rules, numbers)
        if not len(store):
            raise InsufficientDataError("No draws with a prize pool")

        fetched = fetch_batched(self.fetch_prizes, self._prize_keys(store), batch_size=self._batch_size, token=token)
        prizes = fetched.values
        token.raise_if_cancelled()

        resolved = [
            replace(r, prizes=prizes[r.draw_number]) if prizes.get(r.draw_number) is not None else r
            for r in self._resolver.resolve(store, prizes.get)
        ]
        timeline = apply_jackpot_adjustments(resolved, self._rules)
        token.raise_if_cancelled()

        current_tickets = next((r.total_tickets for r in reversed(timeline) if r.total_tickets > 0), 0)
        metrics = compute_yield_metrics(
            timeline,
            price.usd,
            current_tickets,
            as_of=self._today(),
            price_history=price_history,
            rules=self._rules,
        )
        if metrics is None:
            return None

        return MetricsSnapshot(
            request_id=request_id,
            timeline=tuple(timeline),
            store=store,
            metrics=metrics,
            price=price,
            computed_at=datetime.now(timezone.utc).isoformat(),
        )

    def refresh(self) -> bool:
        return self._cache.refresh()

    def get_snapshot(self) -> MetricsSnapshot:
        return self._cache.get()

    def get_reconciled_timeline(self, start: int | None = None, end: int | None = None) -> list[DrawRecord]:
        validate_range(start, end)
        snapshot = self.get_snapshot()
        return [
            r
            for r in snapshot.timeline
            if (start is None or r.draw_number >= start) and (end is None or r.draw_number <= end)
        ]

    def get_draw(self, draw_number: int) -> DrawRecord:
        if int(draw_number) < 1:
            raise InvalidInputError("draw number must be positive", details={"draw_number": ["Must be >= 1"]})
        record = self.get_snapshot().draw(int(draw_number))
        if record is None:
            raise NotFoundError(f"Draw {draw_number} not found")
        return record

    def get_yield_metrics(self) -> MetricsSnapshot:
        return self.get_snapshot()

    def compute_personal_yield(self, staked_amount: float) -> YieldResult:
        metrics = self.get_snapshot().metrics
        return compute_yield(
            metrics.ngr_stats.avg_weekly_ngr_4week,
            metrics.total_tickets,
            metrics.price,
            metrics.current_split,
            staked_amount,
            self._rules,
        )

    def get_sensitivity_table(
        self,
        ngr_multipliers: Sequence[float] | None = None,
        price_multipliers: Sequence[float] | None = None,
    ) -> list[list[SensitivityCell]]:
        metrics = self.get_snapshot().metrics
        return build_sensitivity_table(
            metrics.ngr_stats.avg_weekly_ngr_4week,
            metrics.price,
            metrics.total_tickets,
            metrics.current_split,
            ngr_multipliers=ngr_multipliers or DEFAULT_MULTIPLIERS,
            price_multipliers=price_multipliers or DEFAULT_MULTIPLIERS,
            rules=self._rules,
        )

    def get_current_draw_stats(self, now: datetime | None = None) -> CurrentDrawStats:
        snapshot = self.get_snapshot()
        stats = build_current_draw_stats(snapshot.timeline, snapshot.price.usd, now or datetime.now(timezone.utc))
        if stats is None:
            raise InsufficientDataError("No draws on the timeline")
        return stats

    def get_historical_earnings(self, staked_amount: float | None = None) -> HistoricalEarnings:
        """What `staked_amount` (default: the reference stake) earned per completed draw."""

        snapshot = self.get_snapshot()
        staked = self._rules.reference_stake if staked_amount is None else staked_amount
        if staked < 0:
            raise InvalidInputError("staked amount must not be negative", details={"staked": ["Must be >= 0"]})
        return compute_historical_earnings(
            snapshot.timeline,
            snapshot.metrics.chart_data,
            staked,
            snapshot.metrics.total_tickets,
            self._rules,
        )

    def run_sanity_check(self, draws: Sequence[int] | str, token: CancelToken | None = None) -> SanityCheckReport:
        """Audit stored NGR. Needs only the static rows and the draw feed."""

        static_rows = self.load_static_rows()
        store = DrawRecordStore.from_sources(static_rows, {}, self._rules)
        return self._sanity.run(draws, store, token=token)

    def estimate_ngr(self, draws: Sequence[int]) -> list[NgrEstimateResult]:
        numbers = sorted(set(int(d) for d in draws))
        bad = [n for n in numbers if n < 1]
        if bad:
            raise InvalidInputError("Draw numbers must be positive", details={"draws": [str(b) for b in bad]})
        check_draw_count(len(numbers))

        needed = sorted({k for n in numbers for k in (n - 1, n) if k >= 1})
        fetched = fetch_batched(self.fetch_prizes, needed, batch_size=self._batch_size)

        results: list[NgrEstimateResult] = []
        for n in numbers:
            if n == 1:
                results.append(NgrEstimateResult(n, None, "Draw 1 has no previous draw"))
                continue
            estimate = self._estimator.estimate(n, fetched.get)
            if estimate is None:
                reason = fetched.errors.get(n) or fetched.errors.get(n - 1) or f"Missing prize data for draw {n} or {n - 1}"
                results.append(NgrEstimateResult(n, None, reason))
            else:
                results.append(NgrEstimateResult(n, estimate))
        return results


def get_service() -> ReconciliationService:
    """The service bound to the current Flask app."""

    return current_app.extensions["reconciliation_service"]
