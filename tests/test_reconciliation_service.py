from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lottery_yield.db import session_scope
from lottery_yield.errors import InvalidInputError, MetricsUnavailableError, NotFoundError, UpstreamUnavailableError
from lottery_yield.repositories.static_draw_repository import StaticDrawRepository
from lottery_yield.services.draw_record import NgrSource
from lottery_yield.services.reconciliation_service import ReconciliationService
from lottery_yield.services.sanity_check import SanityStatus
from lottery_yield.services.yield_calculator import compute_yield

from conftest import TODAY, FakePriceFeed, tiers


@pytest.fixture()
def seeded(session_factory):
    with session_scope(session_factory) as session:
        StaticDrawRepository().seed_if_empty(session)
    return session_factory


def _service(session_factory, draw_feed, price_feed):
    return ReconciliationService(session_factory, draw_feed, price_feed, batch_size=4, today=lambda: TODAY)


def test_snapshot_builds_reconciled_timeline(seeded, draw_feed, price_feed):
    snapshot = _service(seeded, draw_feed, price_feed).get_snapshot()
    by_draw = {r.draw_number: r for r in snapshot.timeline}

    assert [r.draw_number for r in snapshot.timeline] == list(range(1, 65))
    assert by_draw[1].ngr_source is NgrSource.NONE
    assert all(by_draw[n].ngr_source is NgrSource.STATIC for n in range(2, 65))

    assert by_draw[62].ngr_added == 1_201_151.0
    assert by_draw[62].jackpot_replenishment == pytest.approx(1_031_044.0)
    assert by_draw[63].total_ngr_contribution == pytest.approx(198_240.70)
    assert by_draw[64].prize_pool == 1_400_000.0
    assert by_draw[64].ngr_added == 260_000.0

    assert by_draw[60].total_paid_out == 0.0
    assert snapshot.metrics.total_tickets == 200_000
    assert snapshot.request_id == 1


def test_metrics_exclude_open_draw(seeded, draw_feed, price_feed):
    metrics = _service(seeded, draw_feed, price_feed).get_yield_metrics().metrics

    assert metrics.chart_data[-1].draw_number == 63
    assert [d.draw_number for d in metrics.ngr_stats.last_4_draws] == [63, 62, 61, 60]
    assert max(p.apy for p in metrics.chart_data) == metrics.highest_apy.apy
    assert 0 < metrics.current_apy <= 500


def test_latest_id_failure_falls_back_to_static(seeded, draw_feed, price_feed):
    draw_feed.latest = None

    snapshot = _service(seeded, draw_feed, price_feed).get_snapshot()

    assert snapshot.timeline[-1].draw_number == 63


def test_failed_live_draw_falls_back_to_static(seeded, draw_feed, price_feed):
    draw_feed.failing = {10}

    snapshot = _service(seeded, draw_feed, price_feed).get_snapshot()

    assert snapshot.draw(10).prize_pool == 1_309_212.0
    assert snapshot.draw(10).total_tickets == 0


def test_price_failure_leaves_no_metrics(seeded, draw_feed):
    service = _service(seeded, draw_feed, FakePriceFeed(fail=True))

    with pytest.raises(MetricsUnavailableError) as exc_info:
        service.get_yield_metrics()
    assert "price" in exc_info.value.details["reason"]
    assert service.cache.snapshot is None


def test_timeline_range_and_draw_lookup(seeded, draw_feed, price_feed):
    service = _service(seeded, draw_feed, price_feed)

    assert [r.draw_number for r in service.get_reconciled_timeline(60, 62)] == [60, 61, 62]
    assert service.get_draw(61).jackpot_won is True
    with pytest.raises(NotFoundError):
        service.get_draw(999)
    with pytest.raises(InvalidInputError):
        service.get_draw(0)
    with pytest.raises(InvalidInputError):
        service.get_reconciled_timeline(5, 2)


def test_personal_yield_and_sensitivity_share_the_snapshot(seeded, draw_feed, price_feed):
    service = _service(seeded, draw_feed, price_feed)
    metrics = service.get_yield_metrics().metrics

    assert service.compute_personal_yield(None).effective_apy == metrics.current_apy
    assert service.compute_personal_yield(2_000.0).ticket_count == 40

    table = service.get_sensitivity_table()
    center = next(c for row in table for c in row if c.ngr_multiplier == 1.0 and c.price_multiplier == 1.0)
    assert center.apy == metrics.current_apy


def test_sanity_check_uses_static_rows_only(seeded, draw_feed, price_feed):
    service = _service(seeded, draw_feed, FakePriceFeed(fail=True))

    report = service.run_sanity_check([60])

    assert report.results[0].status is SanityStatus.MATCH
    assert report.results[0].stored_total == pytest.approx(431_594.0 + 48_357.0 * 0.85)


def test_estimate_ngr(seeded, draw_feed, price_feed):
    draw_feed.prizes[61] = tiers(3_500_000.0)
    results = {r.draw_number: r for r in _service(seeded, draw_feed, price_feed).estimate_ngr([1, 60, 61, 62])}

    assert results[1].estimate is None
    assert results[60].estimate.ngr == pytest.approx(472_697.45)
    assert results[61].estimate.ngr == pytest.approx(3_500_000.0 - 3_372_697.45)
    assert results[62].estimate is None
    assert "62" in results[62].error


def test_estimate_ngr_rejects_non_positive(seeded, draw_feed, price_feed):
    with pytest.raises(InvalidInputError):
        _service(seeded, draw_feed, price_feed).estimate_ngr([0])


class HistoryFailingPriceFeed(FakePriceFeed):
    def __init__(self, error: Exception) -> None:
        super().__init__(usd=1.0)
        self.error = error

    def get_price_history(self, days: int = 365):
        raise self.error


def test_unavailable_price_history_falls_back_to_current_price(seeded, draw_feed):
    service = _service(seeded, draw_feed, HistoryFailingPriceFeed(UpstreamUnavailableError("Malformed price history")))

    metrics = service.get_yield_metrics().metrics

    assert {p.price for p in metrics.chart_data} == {1.0}


def test_unexpected_price_history_error_leaves_no_metrics(seeded, draw_feed):
    service = _service(seeded, draw_feed, HistoryFailingPriceFeed(ValueError("could not convert string to float: None")))

    with pytest.raises(MetricsUnavailableError) as exc_info:
        service.get_snapshot()
    assert "could not convert" in exc_info.value.details["reason"]
    assert service.cache.snapshot is None


def test_current_draw_stats(seeded, draw_feed, price_feed):
    draw_feed.prizes[64] = tiers(1_400_000.0)
    service = _service(seeded, draw_feed, price_feed)

    stats = service.get_current_draw_stats(now=datetime(2026, 1, 1, 12, tzinfo=timezone.utc))

    assert stats.draw_number == 64
    assert stats.status == "OPEN"
    assert stats.current_prize_pool == 1_400_000.0
    assert stats.jackpot_amount == pytest.approx(420_000.0)
    assert stats.total_tickets == 200_000
    assert stats.prior_week_staked == 10_000_000.0
    assert stats.prior_week_tickets == 200_000
    assert stats.next_draw_at == datetime(2026, 1, 2, 20, tzinfo=timezone.utc)

    later = service.get_current_draw_stats(now=datetime(2026, 1, 3, tzinfo=timezone.utc))
    assert later.next_draw_at == datetime(2026, 1, 9, 7, tzinfo=timezone.utc)


def test_current_draw_jackpot_unknown_without_prize_data(seeded, draw_feed, price_feed):
    stats = _service(seeded, draw_feed, price_feed).get_current_draw_stats()

    assert stats.jackpot_amount is None


def test_historical_earnings_follow_chart(seeded, draw_feed, price_feed):
    service = _service(seeded, draw_feed, price_feed)
    snapshot = service.get_snapshot()
    chart = snapshot.metrics.chart_data

    earnings = service.get_historical_earnings(2_000.0)

    assert [e.draw_number for e in earnings.draws] == [p.draw_number for p in chart]
    assert earnings.ticket_count == 40
    assert earnings.total_earned_usd == pytest.approx(sum(e.earned_usd for e in earnings.draws))
    last = earnings.draws[-1]
    expected = compute_yield(last.ngr, last.total_tickets, last.price, snapshot.draw(63).prizepool_split, 2_000.0)
    assert last.earned_usd == pytest.approx(expected.weekly_expected_usd)

    for point, entry in zip(chart, service.get_historical_earnings().draws):
        if point.apy < service.rules.max_apy:
            assert entry.apy == pytest.approx(point.apy)


def test_historical_earnings_stake_bounds(seeded, draw_feed, price_feed):
    service = _service(seeded, draw_feed, price_feed)

    assert service.get_historical_earnings(0.0).total_earned_usd == 0.0
    with pytest.raises(InvalidInputError):
        service.get_historical_earnings(-1.0)
