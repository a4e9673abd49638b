"""NGR estimate from prize-tier totals of adjacent draws.

The prize pool of draw N is the rollover of draw N-1 (prizes not paid out)
plus the new NGR added between the two draws:

    ngr(N) = total_prizes(N) - (total_prizes(N-1) - payouts(N-1))
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from lottery_yield.services.draw_record import PrizeTier
from lottery_yield.utils.ttl_cache import TTLCache


PrizeLookup = Callable[[int], Sequence[PrizeTier] | None]

FORMULA = "NGR = CurrentPrizes - (PrevPrizes - PrevPayouts)"


@dataclass(frozen=True)
class DeltaEstimate:
    draw_number: int
    ngr: float
    current_total_prizes: float
    previous_total_prizes: float
    previous_payouts: float
    previous_rollover: float

    @property
    def breakdown(self) -> str:
        return (
            f"NGR = ${self.current_total_prizes:,.2f} - "
            f"(${self.previous_total_prizes:,.2f} - ${self.previous_payouts:,.2f}) "
            f"= ${self.ngr:,.2f}"
        )


def total_prizes(prizes: Sequence[PrizeTier]) -> float:
    return float(sum(p.amount for p in prizes))


def total_payouts(prizes: Sequence[PrizeTier]) -> float:
    return float(sum(p.win for p in prizes))


def delta_from_prizes(
    draw_number: int,
    current: Sequence[PrizeTier] | None,
    previous: Sequence[PrizeTier] | None,
) -> DeltaEstimate | None:
    """Pure delta formula. None when either side's prize data is missing."""

    if current is None or previous is None:
        return None

    current_total = total_prizes(current)
    prev_total = total_prizes(previous)
    prev_payouts = total_payouts(previous)
    prev_rollover = prev_total - prev_payouts

    return DeltaEstimate(
        draw_number=int(draw_number),
        ngr=current_total - prev_rollover,
        current_total_prizes=current_total,
        previous_total_prizes=prev_total,
        previous_payouts=prev_payouts,
        previous_rollover=prev_rollover,
    )


class PrizePoolDeltaEstimator:
    """Estimate a draw's NGR independent of posted figures.

    Closed draws never change their prize data, so successful estimates are
    cached per draw number for `ttl_seconds`. Misses are not cached.
    """

    def __init__(self, ttl_seconds: float = 600.0, cache: TTLCache[int, DeltaEstimate] | None = None) -> None:
        self._cache: TTLCache[int, DeltaEstimate] = cache or TTLCache(ttl_seconds)

    def estimate(self, draw_number: int, prizes_lookup: PrizeLookup) -> DeltaEstimate | None:
        n = int(draw_number)
        if n <= 1:
            return None

        cached = self._cache.get(n)
        if cached is not None:
            return cached

        result = delta_from_prizes(n, prizes_lookup(n), prizes_lookup(n - 1))
        if result is not None:
            self._cache.set(n, result)
        return result

    def clear(self) -> None:
        self._cache.clear()
