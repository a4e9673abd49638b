"""Environment-based configuration.

Settings are read from the environment when a config object is built, so a
`.env` file loaded beforehand is always honoured.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.engine import URL


def _parse_bool(raw: str) -> bool:
    return raw.lower() in ("1", "true", "yes", "on")


def read_env(name: str, default: Any, cast: Callable[[str], Any] = str) -> Any:
    """Typed env var; unset, blank or unparsable values give `default`."""

    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        return default


def env(name: str, default: Any, cast: Callable[[str], Any] = str) -> Any:
    return field(default_factory=lambda: read_env(name, default, cast))


def resolve_database_url() -> str:
    """DATABASE_URL, else a Postgres URL from PG* vars, else local sqlite."""

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")

    if host and user and database:
        sslmode = os.getenv("PGSSLMODE", "require")
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=os.getenv("PGPASSWORD"),
            host=host,
            port=read_env("PGPORT", 5432, int),
            database=database,
            query={"sslmode": sslmode} if sslmode else {},
        )
        return str(url)

    return "sqlite:///./lottery_yield.db"


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = env("APP_ENV", "development")
    SECRET_KEY: str = env("SECRET_KEY", "dev-secret")
    LOG_LEVEL: str = env("LOG_LEVEL", "INFO")

    DATABASE_URL: str = field(default_factory=resolve_database_url)
    # Load the bundled static dataset into an empty `static_draws` table on startup.
    SEED_STATIC_DRAWS: bool = env("SEED_STATIC_DRAWS", True, _parse_bool)

    # Upstream collaborators
    DRAW_FEED_URL: str = env("DRAW_FEED_URL", "https://shuffle.com/main-api/graphql/lottery/graphql-lottery")
    TOKEN_API_URL: str = env("TOKEN_API_URL", "https://shuffle.com/main-api/graphql/api/graphql")
    COINGECKO_API_URL: str = env("COINGECKO_API_URL", "https://api.coingecko.com/api/v3")
    COINGECKO_COIN_ID: str = env("COINGECKO_COIN_ID", "shuffle-2")
    REQUEST_TIMEOUT_SECONDS: float = env("REQUEST_TIMEOUT_SECONDS", 5.0, float)
    HTTP_RETRIES: int = env("HTTP_RETRIES", 1, int)
    HTTP_BACKOFF: float = env("HTTP_BACKOFF", 0.3, float)

    # Fan-out and caching
    FETCH_BATCH_SIZE: int = env("FETCH_BATCH_SIZE", 10, int)
    CACHE_TTL_SECONDS: float = env("CACHE_TTL_SECONDS", 300.0, float)
    PRIZE_CACHE_TTL_SECONDS: float = env("PRIZE_CACHE_TTL_SECONDS", 600.0, float)
    PRICE_HISTORY_DAYS: int = env("PRICE_HISTORY_DAYS", 365, int)
    RECENT_PRIZE_DRAWS: int = env("RECENT_PRIZE_DRAWS", 8, int)

    # Business rules. Ratios are heuristics pending business confirmation.
    JACKPOT_WON_RATIO: float = env("JACKPOT_WON_RATIO", 0.10, float)
    NGR_POOL_RATIO: float = env("NGR_POOL_RATIO", 0.15, float)
    SINGLES_CONVERSION_RATE: float = env("SINGLES_CONVERSION_RATE", 0.85, float)
    DEFAULT_ROLLOVER_RATIO: float = env("DEFAULT_ROLLOVER_RATIO", 0.85, float)
    TICKET_COST: float = env("TICKET_COST", 50.0, float)
    DEFAULT_PRIZEPOOL_SPLIT: str = env("DEFAULT_PRIZEPOOL_SPLIT", "30-14-8-9-7-6-5-10-11")
    MAX_APY: float = env("MAX_APY", 500.0, float)
    REFERENCE_STAKE: float = env("REFERENCE_STAKE", 1000.0, float)


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    DEBUG: bool = False


def get_config() -> BaseConfig:
    """Build the config for APP_ENV from the current environment."""

    if read_env("APP_ENV", "development").lower() == "production":
        return ProductionConfig()
    return DevelopmentConfig()


def config_as_dict(config: BaseConfig | None = None) -> dict[str, object]:
    """Uppercase settings, for code running outside Flask."""

    settings = config or get_config()
    return {key: getattr(settings, key) for key in dir(settings) if key.isupper()}
