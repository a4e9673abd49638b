"""Static draw history table.

One row per closed draw as published on the official history page. The NGR
and singles columns hold the figures *posted in this draw's row*; they fund
the following draw.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lottery_yield.models.base import Base


class StaticDraw(Base):
    """One historical draw row."""

    __tablename__ = "static_draws"

    draw_no: Mapped[int] = mapped_column(Integer, primary_key=True)
    draw_date: Mapped[date] = mapped_column(Date, nullable=False)

    prize_pool: Mapped[float] = mapped_column(Float, nullable=False)
    jackpotted: Mapped[float] = mapped_column(Float, nullable=False)

    posted_ngr_added: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    posted_singles_added: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    prizepool_split: Mapped[str] = mapped_column(String(64), nullable=False)
