"""Audit of stored NGR against NGR recomputed from prize tiers.

Read-only: the timeline is never modified. Every requested draw N > 1 is
compared as

    stored_total   = posted_ngr(N-1) + posted_singles(N-1) * 0.85
    calculated_ngr = total_prizes(N) - (total_prizes(N-1) - payouts(N-1))

and classified by |stored_total - calculated_ngr| / stored_total.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from lottery_yield.errors import InvalidInputError
from lottery_yield.services.draw_record import PrizeTier
from lottery_yield.services.draw_store import DrawRecordStore
from lottery_yield.services.prize_delta import delta_from_prizes
from lottery_yield.services.rules import DEFAULT_RULES, ReconciliationRules
from lottery_yield.utils.concurrency import CancelToken, fetch_batched
from lottery_yield.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


MATCH_THRESHOLD = 0.05
CLOSE_THRESHOLD = 0.15

ALL_DRAWS = "all"

# Upper bound on explicitly listed draws per audit or estimate request.
MAX_DRAWS_PER_REQUEST = 100
REPORT_CACHE_SIZE = 64


class SanityStatus(str, Enum):
    MATCH = "match"
    CLOSE = "close"
    MISMATCH = "mismatch"
    MISSING_DATA = "missing_data"


@dataclass(frozen=True)
class SanityCheckResult:
    draw_number: int
    status: SanityStatus
    stored_ngr: float | None = None
    stored_singles: float | None = None
    stored_total: float | None = None
    calculated_ngr: float | None = None
    difference: float | None = None
    percent_difference: float | None = None
    current_total_prizes: float | None = None
    previous_total_prizes: float | None = None
    previous_payouts: float | None = None
    previous_rollover: float | None = None
    error: str | None = None


@dataclass(frozen=True)
class SanityCheckSummary:
    total: int
    match: int
    close: int
    mismatch: int
    missing_data: int


@dataclass(frozen=True)
class SanityCheckReport:
    results: tuple[SanityCheckResult, ...]
    summary: SanityCheckSummary


def classify(stored_total: float, calculated_ngr: float) -> tuple[SanityStatus, float]:
    """Return (status, percent difference)."""

    diff = abs(stored_total - calculated_ngr)
    if stored_total == 0:
        ratio = 0.0 if diff == 0 else float("inf")
    else:
        ratio = diff / abs(stored_total)

    if ratio < MATCH_THRESHOLD:
        status = SanityStatus.MATCH
    elif ratio < CLOSE_THRESHOLD:
        status = SanityStatus.CLOSE
    else:
        status = SanityStatus.MISMATCH
    return status, ratio * 100


def summarize(results: Sequence[SanityCheckResult]) -> SanityCheckSummary:
    counts = {s: 0 for s in SanityStatus}
    for r in results:
        counts[r.status] += 1
    return SanityCheckSummary(
        total=len(results),
        match=counts[SanityStatus.MATCH],
        close=counts[SanityStatus.CLOSE],
        mismatch=counts[SanityStatus.MISMATCH],
        missing_data=counts[SanityStatus.MISSING_DATA],
    )


def check_draw_count(count: int) -> None:
    if count > MAX_DRAWS_PER_REQUEST:
        raise InvalidInputError(
            f"At most {MAX_DRAWS_PER_REQUEST} draws per request",
            details={"draws": [f"{count} requested"]},
        )


def normalize_draw_numbers(draws: Sequence[int] | str, store: DrawRecordStore) -> list[int]:
    """Requested draw numbers, deduplicated and ascending; draw 1 excluded."""

    if isinstance(draws, str):
        if draws.strip().lower() != ALL_DRAWS:
            raise InvalidInputError("draws must be a list of draw numbers or 'all'", details={"draws": [draws]})
        return [r.draw_number for r in store.list_draws() if r.draw_number > 1]

    numbers: set[int] = set()
    bad: list[int] = []
    for raw in draws:
        n = int(raw)
        if n < 1:
            bad.append(n)
        elif n > 1:
            numbers.add(n)
    if bad:
        raise InvalidInputError("Draw numbers must be positive", details={"draws": [str(b) for b in bad]})
    check_draw_count(len(numbers))
    return sorted(numbers)


class SanityCheckReconciler:
    """Classify stored vs. independently computed NGR per draw."""

    def __init__(
        self,
        fetch_prizes: Callable[[int], Sequence[PrizeTier] | None],
        rules: ReconciliationRules = DEFAULT_RULES,
        *,
        batch_size: int = 10,
        cache_ttl_seconds: float = 300.0,
    ) -> None:
        self._fetch_prizes = fetch_prizes
        self._rules = rules
        self._batch_size = batch_size
        self._reports: TTLCache[tuple[int, ...], SanityCheckReport] = TTLCache(
            cache_ttl_seconds, max_entries=REPORT_CACHE_SIZE
        )

    def run(
        self,
        draws: Sequence[int] | str,
        store: DrawRecordStore,
        *,
        token: CancelToken | None = None,
    ) -> SanityCheckReport:
        numbers = normalize_draw_numbers(draws, store)
        key = tuple(numbers)
        cached = self._reports.get(key)
        if cached is not None:
            return cached

        needed: list[int] = []
        for n in numbers:
            needed.extend((n - 1, n))
        fetched = fetch_batched(self._fetch_prizes, needed, batch_size=self._batch_size, token=token)

        results = tuple(self._check(n, store, fetched.values, fetched.errors) for n in numbers)
        report = SanityCheckReport(results=results, summary=summarize(results))
        logger.info(
            "Sanity check over %s draws: %s match, %s close, %s mismatch, %s missing",
            report.summary.total,
            report.summary.match,
            report.summary.close,
            report.summary.mismatch,
            report.summary.missing_data,
        )
        self._reports.set(key, report)
        return report

    def _check(
        self,
        n: int,
        store: DrawRecordStore,
        prizes: dict[int, Sequence[PrizeTier] | None],
        errors: dict[int, str],
    ) -> SanityCheckResult:
        stored = store.static_row(n - 1)
        if stored is None or stored.posted_ngr_added <= 0:
            return SanityCheckResult(
                draw_number=n,
                status=SanityStatus.MISSING_DATA,
                error=f"No stored NGR for draw {n - 1}",
            )

        stored_total = self._rules.ngr_contribution(stored.posted_ngr_added, stored.posted_singles_added)
        base = dict(
            draw_number=n,
            stored_ngr=stored.posted_ngr_added,
            stored_singles=stored.posted_singles_added,
            stored_total=stored_total,
        )

        delta = delta_from_prizes(n, prizes.get(n), prizes.get(n - 1))
        if delta is None:
            reason = errors.get(n) or errors.get(n - 1) or f"Missing prize data for draw {n} or {n - 1}"
            return SanityCheckResult(status=SanityStatus.MISSING_DATA, error=reason, **base)

        status, pct = classify(stored_total, delta.ngr)
        return SanityCheckResult(
            status=status,
            calculated_ngr=delta.ngr,
            difference=stored_total - delta.ngr,
            percent_difference=pct,
            current_total_prizes=delta.current_total_prizes,
            previous_total_prizes=delta.previous_total_prizes,
            previous_payouts=delta.previous_payouts,
            previous_rollover=delta.previous_rollover,
            **base,
        )
