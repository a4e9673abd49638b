"""Schemas for the reconciled draw timeline."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema


class TimelineQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    start = fields.Integer(required=False, load_default=None, validate=validate.Range(min=1))
    end = fields.Integer(required=False, load_default=None, validate=validate.Range(min=1))

    @validates_schema
    def _validate_range(self, data, **kwargs):  # type: ignore[no-untyped-def]
        start, end = data.get("start"), data.get("end")
        if start is not None and end is not None and start > end:
            raise ValidationError({"start": ["start must be <= end"]})


class PrizeTierSchema(Schema):
    category = fields.Str()
    amount = fields.Float()
    win_count = fields.Int()
    win = fields.Float()


class DrawRecordSchema(Schema):
    """Serialize a reconciled DrawRecord."""

    draw_number = fields.Int(required=True)
    draw_date = fields.Date(allow_none=True)
    draw_at = fields.Str(allow_none=True)
    prize_pool = fields.Float()
    jackpotted = fields.Float()
    prizepool_split = fields.Str()
    posted_ngr_added = fields.Float(allow_none=True)
    posted_singles_added = fields.Float(allow_none=True)
    ngr_added = fields.Float()
    singles_added = fields.Float()
    ngr_source = fields.Function(lambda r: r.ngr_source.value)
    total_ngr_contribution = fields.Float()
    adjusted_ngr = fields.Float(allow_none=True)
    jackpot_won = fields.Bool()
    prev_jackpot_won = fields.Bool()
    jackpot_replenishment = fields.Float()
    total_staked = fields.Float()
    total_tickets = fields.Int()
    status = fields.Str(allow_none=True)
    jackpot_amount = fields.Float(allow_none=True)
    total_winners = fields.Int(allow_none=True)
    total_paid_out = fields.Float(allow_none=True)
    prizes = fields.List(fields.Nested(PrizeTierSchema), allow_none=True)


class CurrentDrawStatsSchema(Schema):
    draw_number = fields.Int()
    status = fields.Str(allow_none=True)
    next_draw_at = fields.DateTime()
    next_draw_timestamp = fields.Function(lambda s: int(s.next_draw_at.timestamp() * 1000))
    current_prize_pool = fields.Float()
    jackpot_amount = fields.Float(allow_none=True)
    total_staked = fields.Float()
    total_tickets = fields.Int()
    prior_week_staked = fields.Float(allow_none=True)
    prior_week_tickets = fields.Int(allow_none=True)
    price_usd = fields.Float()
