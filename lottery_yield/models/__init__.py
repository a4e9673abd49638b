"""ORM models."""

from lottery_yield.models.static_draw import StaticDraw

__all__ = ["StaticDraw"]
