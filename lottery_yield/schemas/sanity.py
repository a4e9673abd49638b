"""Schemas for the sanity check and prize-delta NGR endpoints."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields

from lottery_yield.services.sanity_check import ALL_DRAWS, MAX_DRAWS_PER_REQUEST


def parse_draw_list(value: str, allow_all: bool = False) -> list[int] | str:
    """Parse "60,61,62" (or "all" when allowed)."""

    raw = str(value or "").strip()
    if allow_all and raw.lower() == ALL_DRAWS:
        return ALL_DRAWS
    try:
        numbers = [int(p) for p in raw.split(",") if p.strip()]
    except ValueError as exc:
        raise ValidationError("draws must be comma-separated integers" + (" or 'all'" if allow_all else "")) from exc
    if not numbers:
        raise ValidationError("At least one draw number is required")
    bad = [n for n in numbers if n < 1]
    if bad:
        raise ValidationError(f"Draw numbers must be positive (got {', '.join(str(b) for b in bad)})")
    if len(set(numbers)) > MAX_DRAWS_PER_REQUEST:
        raise ValidationError(f"At most {MAX_DRAWS_PER_REQUEST} draws per request")
    return numbers


class SanityCheckQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    draws = fields.Function(deserialize=lambda v: parse_draw_list(v, allow_all=True), required=True)


class NgrQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    draws = fields.Function(deserialize=parse_draw_list, required=True)


class SanityCheckResultSchema(Schema):
    draw_number = fields.Int()
    status = fields.Function(lambda r: r.status.value)
    stored_ngr = fields.Float(allow_none=True)
    stored_singles = fields.Float(allow_none=True)
    stored_total = fields.Float(allow_none=True)
    calculated_ngr = fields.Float(allow_none=True)
    difference = fields.Float(allow_none=True)
    percent_difference = fields.Float(allow_none=True)
    current_total_prizes = fields.Float(allow_none=True)
    previous_total_prizes = fields.Float(allow_none=True)
    previous_payouts = fields.Float(allow_none=True)
    previous_rollover = fields.Float(allow_none=True)
    error = fields.Str(allow_none=True)


class SanityCheckSummarySchema(Schema):
    total = fields.Int()
    match = fields.Int()
    close = fields.Int()
    mismatch = fields.Int()
    missing_data = fields.Int()


class SanityCheckReportSchema(Schema):
    results = fields.List(fields.Nested(SanityCheckResultSchema))
    summary = fields.Nested(SanityCheckSummarySchema)


class NgrEstimateSchema(Schema):
    draw_number = fields.Int()
    ngr = fields.Function(lambda r: r.estimate.ngr if r.estimate is not None else None)
    current_total_prizes = fields.Function(lambda r: r.estimate.current_total_prizes if r.estimate else None)
    previous_total_prizes = fields.Function(lambda r: r.estimate.previous_total_prizes if r.estimate else None)
    previous_payouts = fields.Function(lambda r: r.estimate.previous_payouts if r.estimate else None)
    previous_rollover = fields.Function(lambda r: r.estimate.previous_rollover if r.estimate else None)
    breakdown = fields.Function(lambda r: r.estimate.breakdown if r.estimate else None)
    error = fields.Str(allow_none=True)
