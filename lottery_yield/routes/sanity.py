"""Audit routes: sanity check and prize-delta NGR estimates."""

from __future__ import annotations

from flask import Blueprint, request

from lottery_yield.schemas.sanity import (
    NgrEstimateSchema,
    NgrQuerySchema,
    SanityCheckQuerySchema,
    SanityCheckReportSchema,
)
from lottery_yield.services.prize_delta import FORMULA
from lottery_yield.services.reconciliation_service import get_service
from lottery_yield.utils.responses import ok

sanity_bp = Blueprint("sanity", __name__)

_sanity_query_schema = SanityCheckQuerySchema()
_report_schema = SanityCheckReportSchema()
_ngr_query_schema = NgrQuerySchema()
_estimates_schema = NgrEstimateSchema(many=True)


@sanity_bp.get("/sanity-check")
def sanity_check():
    """Compare stored NGR with NGR recomputed from prize tiers. Read-only."""

    query = _sanity_query_schema.load(request.args)
    report = get_service().run_sanity_check(query["draws"])
    return ok(_report_schema.dump(report))


@sanity_bp.get("/lottery-ngr")
def lottery_ngr():
    query = _ngr_query_schema.load(request.args)
    results = get_service().estimate_ngr(query["draws"])
    return ok({"formula": FORMULA, "results": _estimates_schema.dump(results)})
