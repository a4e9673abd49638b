from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lottery_yield.services.current_draw import build_current_draw_stats, next_weekly_draw, parse_draw_at

from conftest import draw_record


@pytest.mark.parametrize(
    "now,expected",
    [
        (datetime(2026, 1, 1, 12, tzinfo=timezone.utc), datetime(2026, 1, 2, 7, tzinfo=timezone.utc)),
        (datetime(2026, 1, 2, 6, 59, tzinfo=timezone.utc), datetime(2026, 1, 2, 7, tzinfo=timezone.utc)),
        (datetime(2026, 1, 2, 7, tzinfo=timezone.utc), datetime(2026, 1, 9, 7, tzinfo=timezone.utc)),
        (datetime(2026, 1, 4, 23, tzinfo=timezone.utc), datetime(2026, 1, 9, 7, tzinfo=timezone.utc)),
    ],
)
def test_next_weekly_draw(now, expected):
    assert next_weekly_draw(now) == expected


def test_parse_draw_at():
    assert parse_draw_at("2026-01-02T20:00:00.000Z") == datetime(2026, 1, 2, 20, tzinfo=timezone.utc)
    assert parse_draw_at("2026-01-02T20:00:00") == datetime(2026, 1, 2, 20, tzinfo=timezone.utc)
    assert parse_draw_at("soon") is None
    assert parse_draw_at(None) is None


def test_stats_without_prior_draw():
    current = draw_record(5, prize_pool=900_000.0, total_staked=5_000_000.0, total_tickets=100_000, status="OPEN")
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    stats = build_current_draw_stats([draw_record(3), current], 0.25, now)

    assert stats.draw_number == 5
    assert stats.prior_week_staked is None
    assert stats.prior_week_tickets is None
    assert stats.jackpot_amount is None
    assert stats.next_draw_at == next_weekly_draw(now)
    assert stats.price_usd == 0.25


def test_empty_timeline_has_no_stats():
    assert build_current_draw_stats([], 1.0, datetime(2026, 1, 1, tzinfo=timezone.utc)) is None
