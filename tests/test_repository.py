from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from lottery_yield.db import session_scope
from lottery_yield.repositories.static_draw_repository import (
    StaticDrawRepository,
    load_bundled_dataset,
    parse_dataset_row,
)


def test_bundled_dataset_is_ordered_and_complete():
    rows = load_bundled_dataset()

    assert [r.draw_number for r in rows] == list(range(1, 64))
    draw62 = rows[61]
    assert draw62.draw_number == 62
    assert draw62.posted_ngr_added == 173_555.0
    assert draw62.posted_singles_added == 29_042.0
    assert draw62.draw_date == date(2025, 12, 19)


def test_seed_if_empty_only_seeds_once(session_factory):
    repo = StaticDrawRepository()

    with session_scope(session_factory) as session:
        assert repo.seed_if_empty(session) == 63
    with session_scope(session_factory) as session:
        assert repo.seed_if_empty(session) == 0
        assert repo.count(session) == 63


def test_upsert_overwrites_by_draw_number(session_factory):
    repo = StaticDrawRepository()
    rows = load_bundled_dataset()[:3]

    with session_scope(session_factory) as session:
        repo.upsert_many(session, rows)
    with session_scope(session_factory) as session:
        repo.upsert_many(session, [replace(rows[1], posted_ngr_added=1.0)])

    with session_scope(session_factory) as session:
        assert repo.count(session) == 3
        assert repo.get(session, 2).posted_ngr_added == 1.0
        assert repo.get(session, 4) is None
        assert [r.draw_number for r in repo.list_all(session)] == [1, 2, 3]


def test_parse_dataset_row():
    row = parse_dataset_row(
        {
            "draw_number": 5,
            "date": "2024-11-15",
            "prize_pool": 734525,
            "jackpotted": 664529,
            "ngr_added": 193520,
            "prizepool_split": "40-14-8-8-6-5-4-7-8",
        }
    )

    assert row.draw_number == 5
    assert row.posted_singles_added == 0.0


@pytest.mark.parametrize("raw", [{}, {"draw_number": "x", "date": "2024-01-01"}, {"draw_number": 1, "date": "nope"}])
def test_parse_dataset_row_rejects_bad_rows(raw):
    with pytest.raises(ValueError):
        parse_dataset_row(raw)
