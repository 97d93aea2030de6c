"""CLI entrypoint for a full clippings sync into the SQLite catalog."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from clipsync.catalog.sqlite_catalog import SqliteCatalog
from clipsync.clippings.reader import ClippingsReadError, read_clippings_file
from clipsync.lookup.resolver import MetadataResolver
from clipsync.lookup.sources import build_default_sources
from clipsync.pipeline.config import ReviewPolicy, SyncSettings
from clipsync.pipeline.service import ClippingsSyncService, SyncOutcome


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _log_progress(stage: str, done: int, total: int, title: str) -> None:
    LOGGER.info("[%s %d/%d] %s", stage, done, total, title)


async def run_sync(clippings_path: str | Path, settings: SyncSettings, *, offline: bool = False) -> SyncOutcome:
    """Read, parse, match, look up and import one clippings file."""

    raw_text = read_clippings_file(clippings_path)
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)

    with SqliteCatalog(settings.db_path) as catalog:
        if offline:
            resolver = MetadataResolver(None, None, settings=settings.lookup)
            service = ClippingsSyncService(catalog, resolver, settings=settings)
            return await service.run(raw_text, on_progress=_log_progress)

        primary, secondary = build_default_sources(settings.lookup)
        async with primary, secondary:
            resolver = MetadataResolver(primary, secondary, settings=settings.lookup)
            service = ClippingsSyncService(catalog, resolver, settings=settings)
            return await service.run(raw_text, on_progress=_log_progress)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Kindle clippings into the catalog")
    parser.add_argument("--clippings", required=True, help="Path to My Clippings.txt")
    parser.add_argument("--db-path", default=None, help="SQLite catalog path (default: CLIPSYNC_DB_PATH)")
    parser.add_argument("--collection", default=None, help="Collection imported books are placed in")
    parser.add_argument(
        "--review",
        default=None,
        choices=[policy.value for policy in ReviewPolicy],
        help="How to resolve books that need review (default: CLIPSYNC_REVIEW_POLICY or skip)",
    )
    parser.add_argument("--offline", action="store_true", help="Skip online metadata lookups")
    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> SyncSettings:
    settings = SyncSettings.from_env()
    if args.db_path:
        settings = replace(settings, db_path=Path(args.db_path))
    if args.collection:
        settings = replace(settings, collection_name=args.collection)
    if args.review:
        settings = replace(settings, review_policy=ReviewPolicy.parse(args.review))
    return settings


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)

    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    try:
        outcome = asyncio.run(run_sync(args.clippings, settings, offline=args.offline))
    except ClippingsReadError as exc:
        LOGGER.error("%s", exc)
        return 1

    payload = {"clippings": str(args.clippings), "db_path": str(settings.db_path), **outcome.to_dict()}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 1 if outcome.report.has_failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
