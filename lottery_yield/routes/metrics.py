"""Yield metrics routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from lottery_yield.schemas.yield_metrics import (
    HistoricalEarningsSchema,
    MetricsSnapshotSchema,
    PersonalYieldQuerySchema,
    SensitivityCellSchema,
    SensitivityQuerySchema,
    YieldResultSchema,
)
from lottery_yield.services.reconciliation_service import get_service
from lottery_yield.utils.responses import ok

metrics_bp = Blueprint("metrics", __name__)

_snapshot_schema = MetricsSnapshotSchema()
_personal_query_schema = PersonalYieldQuerySchema()
_yield_schema = YieldResultSchema()
_sensitivity_query_schema = SensitivityQuerySchema()
_cells_schema = SensitivityCellSchema(many=True)
_earnings_schema = HistoricalEarningsSchema()


@metrics_bp.get("/yield-metrics")
def get_yield_metrics():
    """Headline APY figures and the chart series from one snapshot."""

    snapshot = get_service().get_yield_metrics()
    return ok(_snapshot_schema.dump(snapshot))


@metrics_bp.get("/yield")
def get_personal_yield():
    query = _personal_query_schema.load(request.args)
    result = get_service().compute_personal_yield(query["staked"])
    return ok(_yield_schema.dump(result))


@metrics_bp.get("/yield/sensitivity")
def get_sensitivity():
    query = _sensitivity_query_schema.load(request.args)
    table = get_service().get_sensitivity_table(query["ngr_multipliers"], query["price_multipliers"])
    return ok({"rows": [_cells_schema.dump(row) for row in table]})


@metrics_bp.get("/yield/history")
def get_historical_earnings():
    query = _personal_query_schema.load(request.args)
    earnings = get_service().get_historical_earnings(query["staked"])
    return ok(_earnings_schema.dump(earnings))
