from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from lottery_yield import create_app
from lottery_yield.db import create_app_engine
from lottery_yield.errors import UpstreamUnavailableError
from lottery_yield.models.base import Base
from lottery_yield.repositories.static_draw_repository import StaticDrawRecord
from lottery_yield.services.draw_record import DrawRecord, LiveDraw, PricePoint, PriceQuote, PrizeTier
from lottery_yield.services.reconciliation_service import ReconciliationService
from lottery_yield.services.rules import ReconciliationRules

SPLIT = "30-14-8-9-7-6-5-10-11"
TODAY = date(2026, 1, 1)


def static_row(
    n: int,
    *,
    pool: float = 1_000_000.0,
    jackpotted: float = 850_000.0,
    ngr: float = 100_000.0,
    singles: float = 0.0,
    split: str = SPLIT,
    day: date | None = None,
) -> StaticDrawRecord:
    return StaticDrawRecord(
        draw_number=n,
        draw_date=day or date(2025, 1, 3) + timedelta(weeks=n - 1),
        prize_pool=pool,
        jackpotted=jackpotted,
        posted_ngr_added=ngr,
        posted_singles_added=singles,
        prizepool_split=split,
    )


def draw_record(n: int, **overrides) -> DrawRecord:
    values = dict(
        draw_number=n,
        draw_date=date(2025, 1, 3) + timedelta(weeks=n - 1),
        prize_pool=1_000_000.0,
        jackpotted=850_000.0,
        prizepool_split=SPLIT,
    )
    values.update(overrides)
    return DrawRecord(**values)


def tiers(total: float, paid: float = 0.0, jackpot_winners: int = 0) -> list[PrizeTier]:
    """Two-tier prize table summing to `total` with `paid` paid out."""

    return [
        PrizeTier(category="JACKPOT", amount=total * 0.3, win_count=jackpot_winners, win=0.0),
        PrizeTier(category="MATCH_5", amount=total * 0.7, win_count=3 if paid else 0, win=paid),
    ]


class FakeDrawFeed:
    """In-memory draw feed. Draw numbers in `failing` raise like a timeout."""

    def __init__(
        self,
        draws: dict[int, LiveDraw] | None = None,
        prizes: dict[int, list[PrizeTier]] | None = None,
        latest: int | None = None,
        failing: Iterable[int] = (),
    ) -> None:
        self.draws = dict(draws or {})
        self.prizes = dict(prizes or {})
        self.latest = latest
        self.failing = set(failing)
        self.prize_calls: list[int] = []

    def get_draw(self, draw_id: int) -> LiveDraw | None:
        if draw_id in self.failing:
            raise UpstreamUnavailableError(f"getLotteryDraw {draw_id} timed out")
        return self.draws.get(draw_id)

    def get_prizes_and_results(self, draw_id: int) -> list[PrizeTier] | None:
        self.prize_calls.append(draw_id)
        if draw_id in self.failing:
            raise UpstreamUnavailableError(f"getPrizesAndResults {draw_id} timed out")
        prizes = self.prizes.get(draw_id)
        return list(prizes) if prizes is not None else None

    def get_latest_draw_id(self) -> int:
        if self.latest is None:
            raise UpstreamUnavailableError("getLatestLotteryDraw timed out")
        return self.latest


class FakePriceFeed:
    def __init__(self, usd: float = 1.0, history: list[PricePoint] | None = None, fail: bool = False) -> None:
        self.usd = usd
        self.history = history or []
        self.fail = fail

    def get_current_price(self) -> PriceQuote:
        if self.fail:
            raise UpstreamUnavailableError("Unable to fetch price from any source")
        return PriceQuote(usd=self.usd, usd_24h_change=1.5, as_of="2026-01-01T00:00:00+00:00", source="fake")

    def get_price_history(self, days: int = 365) -> list[PricePoint]:
        return list(self.history)


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_app_engine(f"sqlite:///{tmp_path / 'static.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def draw_feed() -> FakeDrawFeed:
    """Live feed over the bundled dataset: draws 1-63 closed, 64 open."""

    draws = {n: LiveDraw(draw_id=n, prize_pool_amount=0.0, total_staked=10_000_000.0, status="CLOSED") for n in range(1, 64)}
    draws[64] = LiveDraw(
        draw_id=64,
        prize_pool_amount=1_400_000.0,
        total_staked=10_000_000.0,
        status="OPEN",
        draw_at="2026-01-02T20:00:00.000Z",
    )
    prizes = {
        59: tiers(3_000_000.0, paid=100_000.0),
        60: tiers(3_372_697.45),
    }
    return FakeDrawFeed(draws=draws, prizes=prizes, latest=64)


@pytest.fixture()
def price_feed() -> FakePriceFeed:
    return FakePriceFeed(usd=1.0)


@pytest.fixture()
def app(tmp_path, draw_feed, price_feed):
    def _service(config, session_factory):
        return ReconciliationService(
            session_factory,
            draw_feed,
            price_feed,
            ReconciliationRules.from_config(config),
            batch_size=int(config["FETCH_BATCH_SIZE"]),
            today=lambda: TODAY,
        )

    app = create_app(
        {
            "TESTING": True,
            "DATABASE_URL": f"sqlite:///{tmp_path / 'app.db'}",
            "SEED_STATIC_DRAWS": True,
        },
        service_factory=_service,
    )
    yield app
    app.extensions["engine"].dispose()


@pytest.fixture()
def client(app):
    return app.test_client()
