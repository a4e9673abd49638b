"""Lottery NGR reconciliation and yield service."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from dotenv import load_dotenv
from flask import Flask


def create_app(
    config_overrides: Mapping[str, Any] | None = None,
    service_factory: Callable[..., Any] | None = None,
) -> Flask:
    """Application factory.

    Args:
        config_overrides: Values applied on top of the environment config.
        service_factory: Builds the ReconciliationService from
            (config, session_factory). Defaults to the networked clients.

    Returns:
        Configured Flask application.
    """
    load_dotenv()

    from lottery_yield.config import get_config
    from lottery_yield.db import init_db, session_scope
    from lottery_yield.error_handlers import register_error_handlers
    from lottery_yield.logging_config import configure_logging
    from lottery_yield.repositories.static_draw_repository import StaticDrawRepository
    from lottery_yield.routes.health import health_bp
    from lottery_yield.routes.metrics import metrics_bp
    from lottery_yield.routes.sanity import sanity_bp
    from lottery_yield.routes.timeline import timeline_bp
    from lottery_yield.services.reconciliation_service import ReconciliationService

    app = Flask(__name__)
    app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)
    session_factory = init_db(app)
    register_error_handlers(app)

    if app.config.get("SEED_STATIC_DRAWS"):
        with session_scope(session_factory) as session:
            seeded = StaticDrawRepository().seed_if_empty(session)
        if seeded:
            app.logger.info("Seeded %s static draws", seeded)

    factory = service_factory or ReconciliationService.from_config
    app.extensions["reconciliation_service"] = factory(app.config, session_factory)

    app.register_blueprint(health_bp)
    app.register_blueprint(timeline_bp, url_prefix="/api")
    app.register_blueprint(metrics_bp, url_prefix="/api")
    app.register_blueprint(sanity_bp, url_prefix="/api")

    return app
