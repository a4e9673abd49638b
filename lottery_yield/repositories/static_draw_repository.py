"""Repository layer for the static draw history."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from importlib import resources
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lottery_yield.models.static_draw import StaticDraw


BUNDLED_DATASET = "static_draws.json"


@dataclass(frozen=True)
class StaticDrawRecord:
    """Detached copy of a `static_draws` row.

    `posted_ngr_added`/`posted_singles_added` are the values printed in this
    draw's own row and fund draw `draw_number + 1`.
    """

    draw_number: int
    draw_date: date
    prize_pool: float
    jackpotted: float
    posted_ngr_added: float
    posted_singles_added: float
    prizepool_split: str


def _to_record(row: StaticDraw) -> StaticDrawRecord:
    return StaticDrawRecord(
        draw_number=int(row.draw_no),
        draw_date=row.draw_date,
        prize_pool=float(row.prize_pool),
        jackpotted=float(row.jackpotted),
        posted_ngr_added=float(row.posted_ngr_added or 0.0),
        posted_singles_added=float(row.posted_singles_added or 0.0),
        prizepool_split=str(row.prizepool_split),
    )


def parse_dataset_row(raw: dict[str, Any]) -> StaticDrawRecord:
    """Parse one row of the JSON dataset (keys as published)."""

    try:
        return StaticDrawRecord(
            draw_number=int(raw["draw_number"]),
            draw_date=date.fromisoformat(str(raw["date"])),
            prize_pool=float(raw["prize_pool"]),
            jackpotted=float(raw["jackpotted"]),
            posted_ngr_added=float(raw.get("ngr_added") or 0.0),
            posted_singles_added=float(raw.get("singles_added") or 0.0),
            prizepool_split=str(raw["prizepool_split"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid static draw row: {raw!r}") from exc


def load_bundled_dataset() -> list[StaticDrawRecord]:
    """Read the version-controlled dataset shipped with the package."""

    text = resources.files("lottery_yield.data").joinpath(BUNDLED_DATASET).read_text(encoding="utf-8")
    rows = [parse_dataset_row(r) for r in json.loads(text)]
    rows.sort(key=lambda r: r.draw_number)
    return rows


class StaticDrawRepository:
    """Read and seed operations for the static draw table."""

    def list_all(self, session: Session) -> list[StaticDrawRecord]:
        stmt = select(StaticDraw).order_by(StaticDraw.draw_no.asc())
        return [_to_record(row) for row in session.scalars(stmt).all()]

    def get(self, session: Session, draw_number: int) -> StaticDrawRecord | None:
        row = session.get(StaticDraw, int(draw_number))
        return _to_record(row) if row is not None else None

    def count(self, session: Session) -> int:
        return int(session.scalar(select(func.count()).select_from(StaticDraw)) or 0)

    def upsert_many(self, session: Session, records: Iterable[StaticDrawRecord]) -> int:
        """Insert or overwrite rows by draw number. Returns rows written."""

        written = 0
        for rec in records:
            row = session.get(StaticDraw, rec.draw_number)
            if row is None:
                row = StaticDraw(draw_no=rec.draw_number)
                session.add(row)
            row.draw_date = rec.draw_date
            row.prize_pool = rec.prize_pool
            row.jackpotted = rec.jackpotted
            row.posted_ngr_added = rec.posted_ngr_added
            row.posted_singles_added = rec.posted_singles_added
            row.prizepool_split = rec.prizepool_split
            written += 1
        session.flush()
        return written

    def seed_if_empty(self, session: Session, records: Sequence[StaticDrawRecord] | None = None) -> int:
        if self.count(session) > 0:
            return 0
        return self.upsert_many(session, records if records is not None else load_bundled_dataset())
