"""Attribute to each draw the NGR that actually funded it."""

from __future__ import annotations

import logging
from dataclasses import replace

from lottery_yield.services.draw_record import DrawRecord, NgrSource
from lottery_yield.services.draw_store import DrawRecordStore
from lottery_yield.services.prize_delta import PrizeLookup, PrizePoolDeltaEstimator
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules

logger = logging.getLogger(__name__)


def _no_prizes(_: int) -> None:
    return None


class NgrAttributionResolver:
    """Shift-by-one join from posted figures to attributed figures.

    Draw N is funded by draw N-1's posted NGR. When that is missing the
    resolver falls back to the prize-pool delta, then to a fixed share of the
    draw's own pool.
    """

    def __init__(
        self,
        estimator: PrizePoolDeltaEstimator | None = None,
        rules: ReconciliationRules = DEFAULT_RULES,
        *,
        estimate_first_draw: bool = False,
    ) -> None:
        self._estimator = estimator or PrizePoolDeltaEstimator()
        self._rules = rules
        self._estimate_first_draw = estimate_first_draw

    def resolve_draw(
        self,
        record: DrawRecord,
        store: DrawRecordStore,
        prizes_lookup: PrizeLookup = _no_prizes,
    ) -> DrawRecord:
        n = record.draw_number

        if n == 1 and not self._estimate_first_draw:
            return self._with(record, 0.0, 0.0, NgrSource.NONE)

        if n > 1:
            prev = store.static_row(n - 1)
            if prev is not None and prev.posted_ngr_added > 0:
                return self._with(record, prev.posted_ngr_added, prev.posted_singles_added, NgrSource.STATIC)

            delta = self._estimator.estimate(n, prizes_lookup)
            if delta is not None:
                return self._with(record, delta.ngr, 0.0, NgrSource.CALCULATED)

        estimated = record.prize_pool * self._rules.ngr_pool_ratio
        logger.debug("Draw %s NGR estimated from pool: %.2f", n, estimated)
        return self._with(record, estimated, 0.0, NgrSource.ESTIMATED)

    def resolve(self, store: DrawRecordStore, prizes_lookup: PrizeLookup = _no_prizes) -> list[DrawRecord]:
        """Resolved records in ascending draw order."""

        resolved = [self.resolve_draw(r, store, prizes_lookup) for r in store.list_draws()]
        counts: dict[str, int] = {}
        for r in resolved:
            counts[r.ngr_source.value] = counts.get(r.ngr_source.value, 0) + 1
        logger.info("Resolved NGR for %s draws: %s", len(resolved), counts)
        return resolved

    def _with(self, record: DrawRecord, ngr: float, singles: float, source: NgrSource) -> DrawRecord:
        return replace(
            record,
            ngr_added=float(ngr),
            singles_added=float(singles),
            ngr_source=source,
            total_ngr_contribution=self._rules.ngr_contribution(ngr, singles),
        )
