"""CLI dry run: match parsed clippings against a catalog without writing anything."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from dotenv import load_dotenv

from clipsync.catalog.base import CatalogItem, ItemFilter
from clipsync.catalog.csv_export import load_catalog_export
from clipsync.catalog.sqlite_catalog import SqliteCatalog
from clipsync.clippings.parser import parse_clippings
from clipsync.clippings.reader import ClippingsReadError, read_clippings_file
from clipsync.matching.config import MatchThresholds
from clipsync.matching.matcher import MatchResult, match_documents, summarize_match_result


load_dotenv()

LOGGER = logging.getLogger(__name__)


def build_payload(result: MatchResult) -> dict[str, object]:
    return {
        "matched": [
            {
                "title": matched.document.display_title,
                "catalog_title": matched.item.get_title(),
                "title_score": round(matched.title_score, 4),
                "author_score": round(matched.author_score, 4),
            }
            for matched in result.matched
        ],
        "needs_review": [
            {
                "title": review.document.display_title,
                "candidates": [
                    {
                        "catalog_title": candidate.item.get_title(),
                        "title_score": round(candidate.title_score, 4),
                        "author_score": round(candidate.author_score, 4),
                    }
                    for candidate in review.candidates
                ],
            }
            for review in result.needs_review
        ],
        "new": [
            {"title": new.document.display_title, "authors": list(new.document.authors)} for new in result.new
        ],
    }


async def _load_sqlite_items(db_path: str) -> list[CatalogItem]:
    with SqliteCatalog(db_path) as catalog:
        return await catalog.list_items(ItemFilter())


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    parser = argparse.ArgumentParser(description="Match Kindle clippings against a catalog (dry run)")
    parser.add_argument("--clippings", required=True, help="Path to My Clippings.txt")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--catalog-csv", help="Zotero library CSV export")
    source.add_argument("--db-path", help="SQLite catalog database")
    parser.add_argument("--json", action="store_true", help="Print a JSON payload instead of a text summary")
    args = parser.parse_args(argv)

    try:
        thresholds = MatchThresholds.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid matching configuration: %s", exc)
        return 2

    try:
        raw_text = read_clippings_file(args.clippings)
    except ClippingsReadError as exc:
        LOGGER.error("%s", exc)
        return 1

    if args.catalog_csv:
        catalog_items: list[CatalogItem] = list(load_catalog_export(args.catalog_csv))
    else:
        catalog_items = asyncio.run(_load_sqlite_items(args.db_path))
    LOGGER.info("Loaded %d catalog items", len(catalog_items))

    parsed = parse_clippings(raw_text)
    result = match_documents(parsed.documents, catalog_items, thresholds=thresholds)

    if args.json:
        print(json.dumps(build_payload(result), ensure_ascii=True, indent=2))
    else:
        print(summarize_match_result(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
