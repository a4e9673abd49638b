"""The single pipeline step that turns a reconciled timeline into metrics.

Headline figures and the chart series come out of one call so they can never
disagree: `highest_apy` is picked from `chart_data` itself and
`last_week_apy` is the last chart point (the current APY when that point is
out of bounds).
"""

from __future__ import annotations

import logging
import math
from bisect import bisect_left
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from lottery_yield.services.draw_record import DrawRecord, PricePoint
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules
from lottery_yield.services.yield_calculator import compute_yield

logger = logging.getLogger(__name__)


DEFAULT_MULTIPLIERS = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)


@dataclass(frozen=True)
class ChartPoint:
    date: str
    draw_number: int
    ngr: float  # millions
    price: float
    apy: float
    apy_scaled: float


@dataclass(frozen=True)
class HighestApy:
    apy: float
    weeks_ago: int
    draw_number: int


@dataclass(frozen=True)
class NgrStats:
    avg_weekly_ngr_4week: float
    avg_weekly_ngr_prior4week: float
    avg_weekly_ngr_12week: float
    last_4_draws: tuple[DrawRecord, ...]


@dataclass(frozen=True)
class YieldMetrics:
    current_apy: float
    last_week_apy: float
    prior_4week_apy: float
    apy_change: float
    highest_apy: HighestApy | None
    chart_data: tuple[ChartPoint, ...]
    ngr_stats: NgrStats
    current_split: str
    total_tickets: int
    price: float


@dataclass(frozen=True)
class SensitivityCell:
    ngr_multiplier: float
    price_multiplier: float
    apy: float


def _valid(value: float | None) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def _in_bounds(apy: float, rules: ReconciliationRules) -> bool:
    return _valid(apy) and 0.0 <= apy <= rules.max_apy


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def draw_timestamp_ms(d: date) -> int:
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)


def closest_price(history: Sequence[PricePoint], timestamp_ms: int) -> float | None:
    """Price of the history point nearest to `timestamp_ms` (history sorted)."""

    if not history:
        return None
    stamps = [p.timestamp_ms for p in history]
    i = bisect_left(stamps, timestamp_ms)
    if i == 0:
        return history[0].price
    if i == len(history):
        return history[-1].price
    before, after = history[i - 1], history[i]
    if timestamp_ms - before.timestamp_ms <= after.timestamp_ms - timestamp_ms:
        return before.price
    return after.price


def completed_draws(timeline: Sequence[DrawRecord], as_of: date) -> list[DrawRecord]:
    """Draws dated strictly before `as_of`, newest first."""

    done = [r for r in timeline if r.draw_date is not None and r.draw_date < as_of]
    done.sort(key=lambda r: r.draw_number, reverse=True)
    return done


def compute_ngr_stats(completed_newest_first: Sequence[DrawRecord]) -> NgrStats:
    last4 = list(completed_newest_first[:4])
    prior4 = list(completed_newest_first[4:8])
    last12 = list(completed_newest_first[:12])

    avg4 = _mean([r.yield_ngr for r in last4])
    prior = _mean([r.yield_ngr for r in prior4]) if prior4 else avg4
    return NgrStats(
        avg_weekly_ngr_4week=avg4,
        avg_weekly_ngr_prior4week=prior,
        avg_weekly_ngr_12week=_mean([r.yield_ngr for r in last12]),
        last_4_draws=tuple(last4),
    )


def build_chart_data(
    completed_newest_first: Sequence[DrawRecord],
    price: float,
    price_history: Sequence[PricePoint],
    total_tickets: int,
    rules: ReconciliationRules = DEFAULT_RULES,
) -> list[ChartPoint]:
    """Per-draw APY series, ascending by draw number."""

    points: list[ChartPoint] = []
    for draw in sorted(completed_newest_first, key=lambda r: r.draw_number):
        ngr = draw.yield_ngr
        price_at_draw = None
        if draw.draw_date is not None:
            price_at_draw = closest_price(price_history, draw_timestamp_ms(draw.draw_date))
        if not price_at_draw or price_at_draw <= 0:
            price_at_draw = price
        tickets = draw.total_tickets or total_tickets

        apy = 0.0
        if _valid(ngr) and tickets > 0 and price_at_draw > 0:
            apy = compute_yield(ngr, tickets, price_at_draw, draw.prizepool_split, rules=rules).effective_apy
            apy = min(apy, rules.max_apy)

        points.append(
            ChartPoint(
                date=draw.draw_date.isoformat() if draw.draw_date is not None else "",
                draw_number=draw.draw_number,
                ngr=ngr / 1_000_000,
                price=price_at_draw,
                apy=apy,
                apy_scaled=apy / 100,
            )
        )
    return points


def highest_apy(chart_data: Sequence[ChartPoint]) -> HighestApy | None:
    """Maximum of the chart series. Ties keep the most recent draw."""

    best: HighestApy | None = None
    descending = sorted(chart_data, key=lambda p: p.draw_number, reverse=True)
    for weeks_ago, point in enumerate(descending):
        if best is None or point.apy > best.apy:
            best = HighestApy(apy=point.apy, weeks_ago=weeks_ago, draw_number=point.draw_number)
    return best


def compute_yield_metrics(
    timeline: Sequence[DrawRecord],
    price: float,
    total_tickets: int,
    *,
    as_of: date,
    price_history: Sequence[PricePoint] = (),
    rules: ReconciliationRules = DEFAULT_RULES,
) -> YieldMetrics | None:
    """All yield figures for one snapshot, or None when inputs are unusable."""

    if not _valid(price) or price <= 0:
        logger.warning("Invalid price: %s", price)
        return None
    if not _valid(total_tickets) or total_tickets <= 0:
        logger.warning("Invalid total tickets: %s", total_tickets)
        return None

    done = completed_draws(timeline, as_of)
    if not done:
        logger.warning("No completed draws before %s", as_of)
        return None

    stats = compute_ngr_stats(done)
    if stats.avg_weekly_ngr_4week <= 0:
        logger.warning("Invalid 4-week NGR average: %s", stats.avg_weekly_ngr_4week)
        return None

    current_split = done[0].prizepool_split or rules.default_prizepool_split
    current_apy = compute_yield(stats.avg_weekly_ngr_4week, total_tickets, price, current_split, rules=rules).effective_apy
    if not _in_bounds(current_apy, rules):
        logger.warning("Current APY out of bounds: %s", current_apy)
        return None

    prior_apy = current_apy
    if stats.avg_weekly_ngr_prior4week > 0:
        candidate = compute_yield(
            stats.avg_weekly_ngr_prior4week, total_tickets, price, current_split, rules=rules
        ).effective_apy
        if _in_bounds(candidate, rules):
            prior_apy = candidate

    apy_change = ((current_apy - prior_apy) / prior_apy) * 100 if prior_apy > 0 else 0.0

    chart = build_chart_data(done, price, price_history, int(total_tickets), rules)
    last_week_apy = chart[-1].apy if chart and _in_bounds(chart[-1].apy, rules) else current_apy
    best = highest_apy(chart)

    if best is not None:
        logger.info(
            "Metrics: current %.2f%%, last week %.2f%%, highest %.2f%% (draw #%s), %s points",
            current_apy,
            last_week_apy,
            best.apy,
            best.draw_number,
            len(chart),
        )

    return YieldMetrics(
        current_apy=current_apy,
        last_week_apy=last_week_apy,
        prior_4week_apy=prior_apy,
        apy_change=apy_change if math.isfinite(apy_change) else 0.0,
        highest_apy=best,
        chart_data=tuple(chart),
        ngr_stats=stats,
        current_split=current_split,
        total_tickets=int(total_tickets),
        price=float(price),
    )


def build_sensitivity_table(
    base_ngr: float,
    base_price: float,
    total_tickets: int,
    prize_split: str,
    *,
    ngr_multipliers: Sequence[float] = DEFAULT_MULTIPLIERS,
    price_multipliers: Sequence[float] = DEFAULT_MULTIPLIERS,
    rules: ReconciliationRules = DEFAULT_RULES,
) -> list[list[SensitivityCell]]:
    """APY grid for the reference stake over NGR x price multipliers."""

    table: list[list[SensitivityCell]] = []
    for ngr_mult in ngr_multipliers:
        row = []
        for price_mult in price_multipliers:
            result = compute_yield(
                base_ngr * ngr_mult,
                total_tickets,
                base_price * price_mult,
                prize_split,
                rules=rules,
            )
            row.append(SensitivityCell(ngr_multiplier=ngr_mult, price_multiplier=price_mult, apy=result.effective_apy))
        table.append(row)
    return table
