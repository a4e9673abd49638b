"""Tunable business constants for reconciliation and yield math."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ReconciliationRules:
    # Jackpot considered won when jackpotted / prize_pool falls below this.
    jackpot_won_ratio: float = 0.10
    # Fixed allocation of total NGR to the prize pool; used for estimates.
    ngr_pool_ratio: float = 0.15
    singles_conversion_rate: float = 0.85
    # Assumed jackpot rollover share when no static row exists for a draw.
    default_rollover_ratio: float = 0.85
    ticket_cost: float = 50.0
    default_prizepool_split: str = "30-14-8-9-7-6-5-10-11"
    max_apy: float = 500.0
    reference_stake: float = 1000.0
    weeks_per_year: int = 52

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ReconciliationRules":
        defaults = cls()
        return cls(
            jackpot_won_ratio=float(config.get("JACKPOT_WON_RATIO", defaults.jackpot_won_ratio)),
            ngr_pool_ratio=float(config.get("NGR_POOL_RATIO", defaults.ngr_pool_ratio)),
            singles_conversion_rate=float(config.get("SINGLES_CONVERSION_RATE", defaults.singles_conversion_rate)),
            default_rollover_ratio=float(config.get("DEFAULT_ROLLOVER_RATIO", defaults.default_rollover_ratio)),
            ticket_cost=float(config.get("TICKET_COST", defaults.ticket_cost)),
            default_prizepool_split=str(config.get("DEFAULT_PRIZEPOOL_SPLIT", defaults.default_prizepool_split)),
            max_apy=float(config.get("MAX_APY", defaults.max_apy)),
            reference_stake=float(config.get("REFERENCE_STAKE", defaults.reference_stake)),
        )

    def ngr_contribution(self, ngr_added: float, singles_added: float) -> float:
        return float(ngr_added) + float(singles_added) * self.singles_conversion_rate


DEFAULT_RULES = ReconciliationRules()
