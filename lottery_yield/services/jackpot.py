"""Jackpot-win detection and replenishment adjustment."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from lottery_yield.services.draw_record import JACKPOT_CATEGORY, DrawRecord, PrizeTier
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules


def _jackpot_tier(prizes: Sequence[PrizeTier] | None) -> PrizeTier | None:
    if not prizes:
        return None
    for tier in prizes:
        if str(tier.category).upper() == JACKPOT_CATEGORY:
            return tier
    return None


def is_jackpot_won(record: DrawRecord, rules: ReconciliationRules = DEFAULT_RULES) -> bool:
    """A winning JACKPOT tier first; otherwise the rollover ratio heuristic.

    Rollover is normally 80-90% of the pool, so a jackpotted share below
    `rules.jackpot_won_ratio` means the jackpot was paid out.
    """

    tier = _jackpot_tier(record.prizes)
    if tier is not None and tier.win_count > 0:
        return True

    if record.prize_pool <= 0:
        return False
    return (record.jackpotted / record.prize_pool) < rules.jackpot_won_ratio


def replenishment(current: DrawRecord, previous: DrawRecord | None) -> float:
    """Jackpot growth attributable to refilling after a previous win."""

    if previous is None or not previous.jackpot_won:
        return 0.0
    return max(0.0, current.jackpotted - previous.jackpotted)


def _with_prize_totals(record: DrawRecord) -> DrawRecord:
    if record.prizes is None:
        return record
    tier = _jackpot_tier(record.prizes)
    return replace(
        record,
        jackpot_amount=float(tier.amount) if tier is not None else 0.0,
        total_winners=int(sum(p.win_count for p in record.prizes)),
        total_paid_out=float(sum(p.win for p in record.prizes)),
    )


def apply_jackpot_adjustments(
    timeline: Sequence[DrawRecord],
    rules: ReconciliationRules = DEFAULT_RULES,
) -> list[DrawRecord]:
    """Flag jackpot wins and compute adjusted NGR over an ascending timeline.

    Only the draw immediately preceding by number counts as the previous
    draw; a gap in the timeline means no adjustment.
    """

    flagged = [replace(_with_prize_totals(r), jackpot_won=is_jackpot_won(r, rules)) for r in timeline]
    by_number = {r.draw_number: r for r in flagged}

    out: list[DrawRecord] = []
    for record in flagged:
        previous = by_number.get(record.draw_number - 1)
        repl = replenishment(record, previous)
        if repl > 0:
            # Clamped from above too: a negative calculated delta stays as is.
            adjusted = min(record.total_ngr_contribution, max(0.0, record.total_ngr_contribution - repl))
        else:
            adjusted = record.total_ngr_contribution
        out.append(
            replace(
                record,
                prev_jackpot_won=bool(previous is not None and previous.jackpot_won),
                jackpot_replenishment=repl,
                adjusted_ngr=adjusted,
            )
        )
    return out
