"""Health check routes."""

from __future__ import annotations

from flask import Blueprint

from lottery_yield.services.reconciliation_service import get_service
from lottery_yield.utils.responses import ok

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health_check():
    """Liveness plus the state of the metrics snapshot. Never triggers a refresh."""

    cache = get_service().cache
    return ok(
        {
            "status": "ok",
            "metrics_ready": cache.snapshot is not None,
            "metrics_fresh": cache.is_fresh(),
            "committed_request_id": cache.committed_request_id,
            "last_error": cache.last_error,
        }
    )
