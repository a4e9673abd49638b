"""Backfill of what a stake would have earned in each past draw."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from lottery_yield.services.draw_record import DrawRecord
from lottery_yield.services.metrics import ChartPoint
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules
from lottery_yield.services.yield_calculator import compute_yield


@dataclass(frozen=True)
class DrawEarning:
    draw_number: int
    date: str
    ngr: float
    total_tickets: int
    price: float
    earned_usd: float
    apy: float


@dataclass(frozen=True)
class HistoricalEarnings:
    staked_amount: float
    ticket_count: int
    draws: tuple[DrawEarning, ...]
    total_earned_usd: float


def compute_historical_earnings(
    timeline: Sequence[DrawRecord],
    chart_data: Sequence[ChartPoint],
    staked_amount: float,
    fallback_tickets: int,
    rules: ReconciliationRules = DEFAULT_RULES,
) -> HistoricalEarnings:
    """Per-draw earnings over the chart's draws, at each draw's own price.

    Uses the same NGR, ticket count and price as the chart point so a
    draw's APY here equals its (uncapped) chart APY.
    """

    by_number = {r.draw_number: r for r in timeline}
    earnings: list[DrawEarning] = []
    for point in chart_data:
        record = by_number.get(point.draw_number)
        if record is None:
            continue
        tickets = record.total_tickets or fallback_tickets
        result = compute_yield(record.yield_ngr, tickets, point.price, record.prizepool_split, staked_amount, rules)
        earnings.append(
            DrawEarning(
                draw_number=record.draw_number,
                date=point.date,
                ngr=record.yield_ngr,
                total_tickets=int(tickets),
                price=point.price,
                earned_usd=result.weekly_expected_usd,
                apy=result.effective_apy,
            )
        )

    return HistoricalEarnings(
        staked_amount=float(staked_amount),
        ticket_count=int(math.floor(float(staked_amount) / rules.ticket_cost)),
        draws=tuple(earnings),
        total_earned_usd=sum(e.earned_usd for e in earnings),
    )
