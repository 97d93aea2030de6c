"""CLI command that parses a clippings file and reports books and annotations."""

from __future__ import annotations

import argparse
import json
import logging

from dotenv import load_dotenv

from clipsync.clippings.models import AnnotationEntry, DocumentRecord, ParseResult
from clipsync.clippings.parser import parse_clippings, summarize_parse_result
from clipsync.clippings.reader import ClippingsReadError, read_clippings_file


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _entry_payload(entry: AnnotationEntry) -> dict[str, object]:
    return {
        "kind": entry.kind.value,
        "page": entry.page,
        "location_start": entry.location_start,
        "location_end": entry.location_end,
        "added_at": entry.added_at.isoformat() if entry.added_at is not None else None,
        "text": entry.text,
    }


def _document_payload(document: DocumentRecord, *, include_entries: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "key": document.key,
        "title": document.display_title,
        "raw_title": document.raw_title,
        "authors": list(document.authors),
        "highlight_count": len(document.highlights),
        "note_count": len(document.notes),
    }
    if include_entries:
        payload["annotations"] = [_entry_payload(entry) for entry in document.merged_annotations()]
    return payload


def build_payload(result: ParseResult, *, include_entries: bool = True) -> dict[str, object]:
    return {
        "books": [
            _document_payload(document, include_entries=include_entries) for document in result.documents.values()
        ],
        "book_count": len(result.documents),
        "highlight_count": result.highlight_count,
        "note_count": result.note_count,
        "skipped_count": result.skipped_count,
        "errors": list(result.errors),
    }


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    parser = argparse.ArgumentParser(description="Parse a Kindle 'My Clippings.txt' export")
    parser.add_argument("--path", required=True, help="Path to My Clippings.txt")
    parser.add_argument("--summary", action="store_true", help="Print a text summary instead of JSON")
    parser.add_argument("--no-entries", action="store_true", help="Omit annotation bodies from the JSON payload")
    args = parser.parse_args(argv)

    try:
        raw_text = read_clippings_file(args.path)
    except ClippingsReadError as exc:
        LOGGER.error("%s", exc)
        print(json.dumps({"path": args.path, "errors": [str(exc)]}, ensure_ascii=True, indent=2))
        return 1

    result = parse_clippings(raw_text)
    if args.summary:
        print(summarize_parse_result(result))
        return 0

    payload = {"path": args.path, **build_payload(result, include_entries=not args.no_entries)}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
