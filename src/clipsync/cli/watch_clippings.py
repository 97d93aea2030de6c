"""CLI entrypoint that re-syncs whenever the Kindle clippings file changes."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import logging
from pathlib import Path

from dotenv import load_dotenv

from clipsync.automation.watcher import ClippingsFileWatcher
from clipsync.cli.sync_clippings import run_sync
from clipsync.clippings.reader import ClippingsReadError
from clipsync.importing.importer import summarize_import_report
from clipsync.pipeline.config import ReviewPolicy, SyncSettings


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch for a Kindle clippings file and sync it automatically")
    parser.add_argument("--watch-dir", required=True, help="Directory holding My Clippings.txt (e.g. the Kindle mount)")
    parser.add_argument("--db-path", default=None, help="SQLite catalog path (default: CLIPSYNC_DB_PATH)")
    parser.add_argument(
        "--review",
        default=None,
        choices=[policy.value for policy in ReviewPolicy],
        help="How to resolve books that need review",
    )
    parser.add_argument("--offline", action="store_true", help="Skip online metadata lookups")
    parser.add_argument("--recursive", action="store_true", help="Watch subdirectories too")
    parser.add_argument("--debounce", type=float, default=2.0, help="Debounce delay in seconds")
    return parser.parse_args(argv)


async def _run_watcher(args: argparse.Namespace, settings: SyncSettings) -> int:
    watch_dir = Path(args.watch_dir)
    if not watch_dir.exists() or not watch_dir.is_dir():
        LOGGER.error("watch-dir must exist and be a directory: %s", watch_dir)
        return 2

    async def _on_change(file_path: Path) -> None:
        LOGGER.info("Detected clippings change: %s", file_path)
        try:
            outcome = await run_sync(file_path, settings, offline=args.offline)
        except ClippingsReadError as exc:
            LOGGER.error("%s", exc)
            return
        for line in summarize_import_report(outcome.report).splitlines():
            LOGGER.info("%s", line)

    watcher = ClippingsFileWatcher(
        watch_dir=watch_dir,
        callback=_on_change,
        debounce_seconds=float(args.debounce),
        recursive=bool(args.recursive),
    )

    await watcher.start()
    LOGGER.info("Watching %s (debounce %.1fs)", watch_dir, float(args.debounce))

    try:
        while True:
            await asyncio.sleep(1.0)
    finally:
        watcher.stop()
        LOGGER.info("Watcher stopped cleanly")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)

    try:
        settings = SyncSettings.from_env()
        if args.db_path:
            settings = replace(settings, db_path=Path(args.db_path))
        if args.review:
            settings = replace(settings, review_policy=ReviewPolicy.parse(args.review))
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    try:
        return asyncio.run(_run_watcher(args, settings))
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
