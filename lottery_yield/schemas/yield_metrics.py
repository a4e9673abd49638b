"""Schemas for yield metrics, the personal calculator and the sensitivity grid."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate

from lottery_yield.schemas.timeline import DrawRecordSchema


def _multipliers(value: str) -> list[float]:
    try:
        parsed = [float(p) for p in str(value).split(",") if p.strip()]
    except ValueError as exc:
        raise ValidationError("Multipliers must be comma-separated numbers") from exc
    if not parsed or any(m <= 0 for m in parsed):
        raise ValidationError("Multipliers must be positive")
    return parsed


class PersonalYieldQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    # Defaults to the reference stake when omitted.
    staked = fields.Float(required=False, load_default=None, validate=validate.Range(min=0))


class SensitivityQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    ngr_multipliers = fields.Function(deserialize=_multipliers, required=False, load_default=None)
    price_multipliers = fields.Function(deserialize=_multipliers, required=False, load_default=None)


class ChartPointSchema(Schema):
    date = fields.Str()
    draw_number = fields.Int()
    ngr = fields.Float()
    price = fields.Float()
    apy = fields.Float()
    apy_scaled = fields.Float()


class HighestApySchema(Schema):
    apy = fields.Float()
    weeks_ago = fields.Int()
    draw_number = fields.Int()


class NgrStatsSchema(Schema):
    avg_weekly_ngr_4week = fields.Float()
    avg_weekly_ngr_prior4week = fields.Float()
    avg_weekly_ngr_12week = fields.Float()
    last_4_draws = fields.List(fields.Nested(DrawRecordSchema))


class YieldMetricsSchema(Schema):
    current_apy = fields.Float()
    last_week_apy = fields.Float()
    prior_4week_apy = fields.Float()
    apy_change = fields.Float()
    highest_apy = fields.Nested(HighestApySchema, allow_none=True)
    chart_data = fields.List(fields.Nested(ChartPointSchema))
    ngr_stats = fields.Nested(NgrStatsSchema)
    current_split = fields.Str()
    total_tickets = fields.Int()
    price = fields.Float()


class PriceQuoteSchema(Schema):
    usd = fields.Float()
    usd_24h_change = fields.Float()
    as_of = fields.Str()
    source = fields.Str()


class MetricsSnapshotSchema(Schema):
    """Serialize a committed MetricsSnapshot (without the timeline)."""

    request_id = fields.Int()
    computed_at = fields.Str()
    price = fields.Nested(PriceQuoteSchema)
    metrics = fields.Nested(YieldMetricsSchema)


class YieldResultSchema(Schema):
    weekly_expected_usd = fields.Float()
    annual_expected_usd = fields.Float()
    effective_apy = fields.Float()
    ticket_count = fields.Int()
    staking_value_usd = fields.Float()


class SensitivityCellSchema(Schema):
    ngr_multiplier = fields.Float()
    price_multiplier = fields.Float()
    apy = fields.Float()


class DrawEarningSchema(Schema):
    draw_number = fields.Int()
    date = fields.Str()
    ngr = fields.Float()
    total_tickets = fields.Int()
    price = fields.Float()
    earned_usd = fields.Float()
    apy = fields.Float()


class HistoricalEarningsSchema(Schema):
    staked_amount = fields.Float()
    ticket_count = fields.Int()
    total_earned_usd = fields.Float()
    draws = fields.List(fields.Nested(DrawEarningSchema))
