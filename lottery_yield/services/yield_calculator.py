"""Yield and APY math.

Every APY shown anywhere (current, per-draw history, highest ever, the
personal calculator, the sensitivity grid) goes through `compute_yield`.

Mechanics:
- 1 ticket = `ticket_cost` tokens staked.
- A draw's attributed NGR is what was added to the prize pool. The jackpot
  tier (first entry of the split) only pays on a jackpot win, so the
  expected weekly distribution is the non-jackpot share of that NGR.
- A staker's share is ticket_count / total_tickets.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from lottery_yield.errors import InvalidInputError
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules


SPLIT_TOLERANCE = 0.5


@dataclass(frozen=True)
class YieldResult:
    weekly_expected_usd: float
    annual_expected_usd: float
    effective_apy: float
    ticket_count: int
    staking_value_usd: float


def parse_prize_split(split: str) -> list[float]:
    """Parse a dash-encoded tier split such as "30-14-8-9-7-6-5-10-11"."""

    parts = [p.strip() for p in str(split or "").split("-")]
    try:
        values = [float(p) for p in parts if p != ""]
    except ValueError as exc:
        raise InvalidInputError("Malformed prize split", details={"prizepool_split": [str(split)]}) from exc

    if len(values) < 2 or any(v < 0 for v in values):
        raise InvalidInputError("Malformed prize split", details={"prizepool_split": [str(split)]})
    if abs(sum(values) - 100.0) > SPLIT_TOLERANCE:
        raise InvalidInputError(
            "Prize split must sum to 100",
            details={"prizepool_split": [f"{split} sums to {sum(values):g}"]},
        )
    return values


def non_jackpot_share(split: str) -> float:
    """Fraction of the pool allocated to tiers other than the jackpot."""

    values = parse_prize_split(split)
    return sum(values[1:]) / sum(values)


def compute_yield(
    ngr: float,
    total_tickets: float,
    price: float,
    prize_split: str,
    staked_amount: float | None = None,
    rules: ReconciliationRules = DEFAULT_RULES,
) -> YieldResult:
    """Expected weekly/annual return and APY for a stake.

    `staked_amount` defaults to the reference stake so headline APYs are
    comparable across draws.
    """

    staked = float(rules.reference_stake if staked_amount is None else staked_amount)
    if staked < 0:
        raise InvalidInputError("staked amount must not be negative", details={"staked": ["Must be >= 0"]})

    share = non_jackpot_share(prize_split)
    ticket_count = int(math.floor(staked / rules.ticket_cost))
    staking_value_usd = staked * float(price)

    if ticket_count == 0 or total_tickets <= 0:
        return YieldResult(
            weekly_expected_usd=0.0,
            annual_expected_usd=0.0,
            effective_apy=0.0,
            ticket_count=0,
            staking_value_usd=staking_value_usd,
        )

    weekly = float(ngr) * share * (ticket_count / float(total_tickets))
    annual = weekly * rules.weeks_per_year
    apy = (annual / staking_value_usd) * 100.0 if staking_value_usd > 0 else 0.0

    return YieldResult(
        weekly_expected_usd=weekly,
        annual_expected_usd=annual,
        effective_apy=apy,
        ticket_count=ticket_count,
        staking_value_usd=staking_value_usd,
    )
