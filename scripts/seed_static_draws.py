"""Create the static draw table and load the static dataset into it.

Reads DATABASE_URL (or PG* vars) from .env / environment. Existing rows with
the same draw number are overwritten.

Usage:
  python scripts/seed_static_draws.py
  python scripts/seed_static_draws.py --file path/to/static_draws.json
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from collections.abc import Sequence

from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from lottery_yield.config import resolve_database_url
from lottery_yield.db import create_app_engine, session_scope
from lottery_yield.models.base import Base
from lottery_yield.repositories.static_draw_repository import (
    StaticDrawRepository,
    load_bundled_dataset,
    parse_dataset_row,
)

# Import models so they register with Base.metadata
from lottery_yield import models  # noqa: F401


logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load the static draw dataset into the database")
    parser.add_argument("--file", dest="path", type=pathlib.Path, default=None, help="JSON dataset (default: bundled)")
    parser.add_argument("--database-url", dest="database_url", type=str, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    load_dotenv()
    env_local = PROJECT_ROOT / ".env.local"
    if env_local.exists():
        load_dotenv(dotenv_path=env_local, override=True)

    if args.path is not None:
        rows = [parse_dataset_row(r) for r in json.loads(args.path.read_text(encoding="utf-8"))]
    else:
        rows = load_bundled_dataset()

    engine = create_app_engine(args.database_url or resolve_database_url())
    Base.metadata.create_all(bind=engine)

    with session_scope(sessionmaker(bind=engine)) as session:
        written = StaticDrawRepository().upsert_many(session, rows)

    logger.info("Wrote %s static draws (%s..%s)", written, rows[0].draw_number if rows else "-", rows[-1].draw_number if rows else "-")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
