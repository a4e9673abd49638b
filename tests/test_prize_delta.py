from __future__ import annotations

import pytest

from lottery_yield.services.prize_delta import PrizePoolDeltaEstimator, delta_from_prizes

from conftest import tiers


def test_delta_formula():
    estimate = delta_from_prizes(10, tiers(1_200_000.0), tiers(1_000_000.0, paid=100_000.0))

    assert estimate.current_total_prizes == pytest.approx(1_200_000.0)
    assert estimate.previous_total_prizes == pytest.approx(1_000_000.0)
    assert estimate.previous_payouts == pytest.approx(100_000.0)
    assert estimate.previous_rollover == pytest.approx(900_000.0)
    assert estimate.ngr == pytest.approx(300_000.0)
    assert "= $300,000.00" in estimate.breakdown


def test_missing_side_returns_none():
    assert delta_from_prizes(10, None, tiers(1.0)) is None
    assert delta_from_prizes(10, tiers(1.0), None) is None


def test_empty_prize_list_is_data_not_missing():
    estimate = delta_from_prizes(10, [], [])

    assert estimate is not None
    assert estimate.ngr == 0.0


def test_estimator_skips_first_draw():
    assert PrizePoolDeltaEstimator().estimate(1, lambda n: tiers(1.0)) is None


def test_estimator_caches_hits_only():
    calls: list[int] = []
    prizes = {4: tiers(1_000_000.0), 5: tiers(1_100_000.0)}

    def lookup(n):
        calls.append(n)
        return prizes.get(n)

    estimator = PrizePoolDeltaEstimator(ttl_seconds=600)
    first = estimator.estimate(5, lookup)
    second = estimator.estimate(5, lookup)

    assert first == second
    assert calls == [5, 4]

    assert estimator.estimate(7, lookup) is None
    assert estimator.estimate(7, lookup) is None
    assert calls.count(7) == 2
