"""Merge of the static draw history with live per-draw feed data."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence

from lottery_yield.errors import InvalidInputError
from lottery_yield.repositories.static_draw_repository import StaticDrawRecord
from lottery_yield.services.draw_record import DrawRecord, LiveDraw
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules

logger = logging.getLogger(__name__)


def validate_range(start: int | None, end: int | None) -> None:
    if start is not None and int(start) < 1:
        raise InvalidInputError("start must be positive", details={"start": ["Must be >= 1"]})
    if end is not None and int(end) < 1:
        raise InvalidInputError("end must be positive", details={"end": ["Must be >= 1"]})
    if start is not None and end is not None and int(start) > int(end):
        raise InvalidInputError("Malformed range", details={"start": ["start must be <= end"]})


class DrawRecordStore:
    """Ordered, merged draw records keyed by draw number.

    Live prize pool and staking figures win over static ones; static rows
    supply jackpotted, the prize split and the posted NGR/singles.
    """

    def __init__(self, records: Iterable[DrawRecord], static_rows: Iterable[StaticDrawRecord] = ()) -> None:
        self._records: dict[int, DrawRecord] = {r.draw_number: r for r in records}
        self._static: dict[int, StaticDrawRecord] = {s.draw_number: s for s in static_rows}
        self._order = sorted(self._records)

    @classmethod
    def from_sources(
        cls,
        static_rows: Sequence[StaticDrawRecord],
        live_draws: Mapping[int, LiveDraw | None],
        rules: ReconciliationRules = DEFAULT_RULES,
        draw_numbers: Iterable[int] | None = None,
    ) -> "DrawRecordStore":
        static_by_no = {s.draw_number: s for s in static_rows}
        numbers = set(draw_numbers) if draw_numbers is not None else set()
        numbers.update(static_by_no)
        numbers.update(n for n, d in live_draws.items() if d is not None)

        records: list[DrawRecord] = []
        dropped: list[int] = []
        for n in sorted(x for x in numbers if x >= 1):
            record = cls._merge(n, static_by_no.get(n), live_draws.get(n), rules)
            if record is None:
                dropped.append(n)
                continue
            records.append(record)

        if dropped:
            logger.info("Dropped %s unresolved draws: %s", len(dropped), dropped)
        return cls(records, static_rows)

    @staticmethod
    def _merge(
        draw_number: int,
        static: StaticDrawRecord | None,
        live: LiveDraw | None,
        rules: ReconciliationRules,
    ) -> DrawRecord | None:
        live_pool = live.prize_pool_amount if live is not None else 0.0
        prize_pool = float(live_pool or (static.prize_pool if static is not None else 0.0))
        if prize_pool <= 0:
            return None

        if static is not None:
            jackpotted = static.jackpotted
            split = static.prizepool_split
        else:
            jackpotted = prize_pool * rules.default_rollover_ratio
            split = rules.default_prizepool_split

        draw_date = live.draw_date if live is not None else None
        if draw_date is None and static is not None:
            draw_date = static.draw_date

        total_staked = float(live.total_staked or 0.0) if live is not None else 0.0
        total_tickets = int(math.floor(total_staked / rules.ticket_cost)) if total_staked > 0 else 0

        return DrawRecord(
            draw_number=draw_number,
            draw_date=draw_date,
            prize_pool=prize_pool,
            jackpotted=float(jackpotted),
            prizepool_split=split,
            posted_ngr_added=static.posted_ngr_added if static is not None else None,
            posted_singles_added=static.posted_singles_added if static is not None else None,
            total_staked=total_staked,
            total_tickets=total_tickets,
            status=live.status if live is not None else None,
            draw_at=live.draw_at if live is not None else None,
        )

    def get_draw(self, draw_number: int) -> DrawRecord | None:
        if int(draw_number) < 1:
            raise InvalidInputError("draw number must be positive", details={"draw_number": ["Must be >= 1"]})
        return self._records.get(int(draw_number))

    def static_row(self, draw_number: int) -> StaticDrawRecord | None:
        return self._static.get(int(draw_number))

    def list_draws(self, start: int | None = None, end: int | None = None) -> list[DrawRecord]:
        """Records in ascending draw order, optionally within [start, end]."""

        validate_range(start, end)
        lo = int(start) if start is not None else None
        hi = int(end) if end is not None else None
        return [
            self._records[n]
            for n in self._order
            if (lo is None or n >= lo) and (hi is None or n <= hi)
        ]

    @property
    def latest_draw_number(self) -> int | None:
        return self._order[-1] if self._order else None

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, draw_number: object) -> bool:
        return draw_number in self._records
