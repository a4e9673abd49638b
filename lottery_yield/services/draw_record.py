"""Draw timeline value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


JACKPOT_CATEGORY = "JACKPOT"


class NgrSource(str, Enum):
    """Provenance of a draw's attributed NGR, best first."""

    STATIC = "static"
    CALCULATED = "calculated"
    ESTIMATED = "estimated"
    NONE = "none"


@dataclass(frozen=True)
class PrizeTier:
    category: str
    amount: float
    win_count: int
    win: float


@dataclass(frozen=True)
class LiveDraw:
    """Per-draw figures from the draw feed."""

    draw_id: int
    prize_pool_amount: float
    total_staked: float
    status: str | None = None
    draw_at: str | None = None

    @property
    def draw_date(self) -> date | None:
        if not self.draw_at:
            return None
        try:
            return date.fromisoformat(self.draw_at[:10])
        except ValueError:
            return None


@dataclass(frozen=True)
class DrawRecord:
    """One draw on the reconciled timeline.

    `posted_*` are the figures printed in this draw's own row (they fund the
    next draw). `ngr_added`/`singles_added` are what actually funded this
    draw, attributed by the resolver.
    """

    draw_number: int
    draw_date: date | None
    prize_pool: float
    jackpotted: float
    prizepool_split: str
    draw_at: str | None = None
    posted_ngr_added: float | None = None
    posted_singles_added: float | None = None
    ngr_added: float = 0.0
    singles_added: float = 0.0
    ngr_source: NgrSource = NgrSource.NONE
    total_ngr_contribution: float = 0.0
    total_staked: float = 0.0
    total_tickets: int = 0
    status: str | None = None
    prizes: tuple[PrizeTier, ...] | None = None
    jackpot_won: bool = False
    prev_jackpot_won: bool = False
    jackpot_replenishment: float = 0.0
    adjusted_ngr: float | None = None
    jackpot_amount: float | None = None
    total_winners: int | None = None
    total_paid_out: float | None = None

    @property
    def yield_ngr(self) -> float:
        """NGR that yield figures are computed from."""

        return self.adjusted_ngr if self.adjusted_ngr is not None else self.total_ngr_contribution


@dataclass(frozen=True)
class PriceQuote:
    usd: float
    usd_24h_change: float
    as_of: str
    source: str


@dataclass(frozen=True)
class PricePoint:
    timestamp_ms: int
    price: float
