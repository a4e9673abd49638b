from __future__ import annotations

from datetime import date

import pytest

from lottery_yield.errors import InvalidInputError
from lottery_yield.services.draw_record import LiveDraw
from lottery_yield.services.draw_store import DrawRecordStore
from lottery_yield.services.rules import DEFAULT_RULES

from conftest import SPLIT, static_row


def _live(n: int, pool: float = 0.0, staked: float = 0.0, draw_at: str | None = None) -> LiveDraw:
    return LiveDraw(draw_id=n, prize_pool_amount=pool, total_staked=staked, status="CLOSED", draw_at=draw_at)


def test_live_pool_wins_over_static():
    store = DrawRecordStore.from_sources(
        [static_row(1, pool=1_000_000.0, jackpotted=900_000.0)],
        {1: _live(1, pool=1_200_000.0, staked=500_000.0)},
    )

    record = store.get_draw(1)
    assert record.prize_pool == 1_200_000.0
    assert record.jackpotted == 900_000.0
    assert record.total_tickets == 10_000


def test_static_pool_used_when_live_missing_or_zero():
    store = DrawRecordStore.from_sources(
        [static_row(1, pool=1_000_000.0), static_row(2, pool=1_100_000.0)],
        {1: _live(1, pool=0.0), 2: None},
    )

    assert store.get_draw(1).prize_pool == 1_000_000.0
    assert store.get_draw(2).prize_pool == 1_100_000.0
    assert store.get_draw(2).total_tickets == 0


def test_live_only_draw_uses_rule_fallbacks():
    store = DrawRecordStore.from_sources([], {5: _live(5, pool=2_000_000.0, staked=1049.0, draw_at="2026-01-02T20:00:00Z")})

    record = store.get_draw(5)
    assert record.jackpotted == pytest.approx(2_000_000.0 * DEFAULT_RULES.default_rollover_ratio)
    assert record.prizepool_split == SPLIT
    assert record.draw_date == date(2026, 1, 2)
    assert record.total_tickets == 20
    assert record.posted_ngr_added is None


def test_unresolved_draws_are_dropped():
    store = DrawRecordStore.from_sources(
        [static_row(1)],
        {2: _live(2, pool=0.0), 3: _live(3, pool=500.0)},
        draw_numbers=range(1, 5),
    )

    assert [r.draw_number for r in store.list_draws()] == [1, 3]
    assert 2 not in store
    assert store.get_draw(4) is None


def test_list_draws_is_ordered_and_ranged():
    store = DrawRecordStore.from_sources([static_row(n) for n in (4, 2, 3, 1)], {})

    assert [r.draw_number for r in store.list_draws()] == [1, 2, 3, 4]
    assert [r.draw_number for r in store.list_draws(2, 3)] == [2, 3]
    assert [r.draw_number for r in store.list_draws(start=3)] == [3, 4]
    assert store.latest_draw_number == 4
    assert len(store) == 4


@pytest.mark.parametrize("start,end", [(0, 3), (3, 2), (1, -1)])
def test_invalid_ranges_raise(start, end):
    store = DrawRecordStore.from_sources([static_row(1)], {})

    with pytest.raises(InvalidInputError):
        store.list_draws(start, end)


def test_non_positive_draw_number_raises():
    store = DrawRecordStore.from_sources([static_row(1)], {})

    with pytest.raises(InvalidInputError):
        store.get_draw(0)


def test_static_row_lookup():
    store = DrawRecordStore.from_sources([static_row(1, ngr=123.0)], {})

    assert store.static_row(1).posted_ngr_added == 123.0
    assert store.static_row(2) is None
