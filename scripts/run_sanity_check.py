"""Audit stored NGR against NGR recomputed from prize tiers.

Prints one line per draw and a summary. Read-only.

Usage:
  python scripts/run_sanity_check.py --draws all
  python scripts/run_sanity_check.py --draws 60,61,62 --chunk 5
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from collections.abc import Sequence

from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker
from tqdm import tqdm

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from lottery_yield.config import config_as_dict
from lottery_yield.db import create_app_engine, session_scope
from lottery_yield.repositories.static_draw_repository import StaticDrawRepository
from lottery_yield.schemas.sanity import parse_draw_list
from lottery_yield.services.draw_store import DrawRecordStore
from lottery_yield.services.reconciliation_service import ReconciliationService
from lottery_yield.services.sanity_check import (
    MAX_DRAWS_PER_REQUEST,
    SanityCheckResult,
    normalize_draw_numbers,
    summarize,
)


logger = logging.getLogger(__name__)


def _format(result: SanityCheckResult) -> str:
    if result.calculated_ngr is None:
        return f"#{result.draw_number:>4}  {result.status.value:<12} {result.error or ''}"
    return (
        f"#{result.draw_number:>4}  {result.status.value:<12} "
        f"stored={result.stored_total:>14,.2f} calculated={result.calculated_ngr:>14,.2f} "
        f"diff={result.percent_difference:6.2f}%"
    )


def load_settings(env_file: str | None = None) -> dict[str, object]:
    """Load `.env` (or `env_file`) into the environment, then build the config."""

    load_dotenv(dotenv_path=env_file)
    return config_as_dict()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the NGR sanity check")
    parser.add_argument("--draws", dest="draws", type=str, default="all", help="Comma-separated draw numbers or 'all'")
    parser.add_argument("--chunk", dest="chunk", type=int, default=10, help="Draws audited per request batch")
    parser.add_argument("--env-file", dest="env_file", type=str, default=None, help="Path to a .env file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(message)s")

    config = load_settings(args.env_file)
    engine = create_app_engine(str(config["DATABASE_URL"]))
    session_factory = sessionmaker(bind=engine)
    service = ReconciliationService.from_config(config, session_factory)

    with session_scope(session_factory) as session:
        store = DrawRecordStore.from_sources(StaticDrawRepository().list_all(session), {}, service.rules)
    if not len(store):
        raise SystemExit("No static draws found; run scripts/seed_static_draws.py first")

    numbers = normalize_draw_numbers(parse_draw_list(args.draws, allow_all=True), store)
    chunk = max(1, min(int(args.chunk), MAX_DRAWS_PER_REQUEST))

    results: list[SanityCheckResult] = []
    for i in tqdm(range(0, len(numbers), chunk), desc="Sanity check", unit="batch"):
        report = service.run_sanity_check(numbers[i : i + chunk])
        results.extend(report.results)

    for result in results:
        print(_format(result))

    summary = summarize(results)
    print(
        f"\n{summary.total} draws: {summary.match} match, {summary.close} close, "
        f"{summary.mismatch} mismatch, {summary.missing_data} missing data"
    )
    return 0 if summary.mismatch == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
