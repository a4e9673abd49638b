"""Reconciled timeline routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from lottery_yield.schemas.timeline import CurrentDrawStatsSchema, DrawRecordSchema, TimelineQuerySchema
from lottery_yield.services.reconciliation_service import get_service
from lottery_yield.utils.responses import ok

timeline_bp = Blueprint("timeline", __name__)

_query_schema = TimelineQuerySchema()
_draw_schema = DrawRecordSchema()
_draws_schema = DrawRecordSchema(many=True)
_current_schema = CurrentDrawStatsSchema()


@timeline_bp.get("/timeline")
def get_timeline():
    """Reconciled draws in ascending order, optionally limited to [start, end]."""

    query = _query_schema.load(request.args)
    draws = get_service().get_reconciled_timeline(query["start"], query["end"])
    return ok({"draws": _draws_schema.dump(draws), "count": len(draws)})


@timeline_bp.get("/draws/<int(signed=True):draw_number>")
def get_draw(draw_number: int):
    record = get_service().get_draw(draw_number)
    return ok(_draw_schema.dump(record))


@timeline_bp.get("/current-draw")
def get_current_draw():
    """Pool, staking and schedule of the draw currently selling tickets."""

    stats = get_service().get_current_draw_stats()
    return ok(_current_schema.dump(stats))
