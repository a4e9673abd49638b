"""Stats for the draw currently selling tickets."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from lottery_yield.services.draw_record import DrawRecord

logger = logging.getLogger(__name__)


# Draws run every Friday at 07:00 UTC.
DRAW_WEEKDAY = 4
DRAW_HOUR_UTC = 7


@dataclass(frozen=True)
class CurrentDrawStats:
    draw_number: int
    status: str | None
    next_draw_at: datetime
    current_prize_pool: float
    jackpot_amount: float | None
    total_staked: float
    total_tickets: int
    prior_week_staked: float | None
    prior_week_tickets: int | None
    price_usd: float


def next_weekly_draw(now: datetime) -> datetime:
    """The first scheduled draw time strictly after `now`."""

    now = now.astimezone(timezone.utc)
    days_ahead = (DRAW_WEEKDAY - now.weekday()) % 7
    candidate = (now + timedelta(days=days_ahead)).replace(hour=DRAW_HOUR_UTC, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


def parse_draw_at(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparsable drawAt: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_current_draw_stats(
    timeline: Sequence[DrawRecord],
    price_usd: float,
    now: datetime,
) -> CurrentDrawStats | None:
    """Figures for the newest draw on the timeline, None for an empty one.

    The jackpot amount comes only from the draw's JACKPOT tier and prior-week
    staking only from the previous draw's live figures; unknown stays None.
    """

    if not timeline:
        return None
    current = max(timeline, key=lambda r: r.draw_number)
    prior = next((r for r in timeline if r.draw_number == current.draw_number - 1), None)

    scheduled = parse_draw_at(current.draw_at)
    next_draw_at = scheduled if scheduled is not None and scheduled > now else next_weekly_draw(now)

    has_prior_stake = prior is not None and prior.total_staked > 0
    return CurrentDrawStats(
        draw_number=current.draw_number,
        status=current.status,
        next_draw_at=next_draw_at,
        current_prize_pool=current.prize_pool,
        jackpot_amount=current.jackpot_amount,
        total_staked=current.total_staked,
        total_tickets=current.total_tickets,
        prior_week_staked=prior.total_staked if has_prior_stake else None,
        prior_week_tickets=prior.total_tickets if has_prior_stake else None,
        price_usd=float(price_usd),
    )
