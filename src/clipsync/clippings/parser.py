"""Parser for Kindle ``My Clippings.txt`` exports.

The export is a loosely delimited text file. Each entry is separated by a
line of ten ``=`` characters and looks like::

    Thinking, Fast and Slow (Kahneman, Daniel)
    - Your Highlight on page 23 | Location 342-344 | Added on Sunday, January 5, 2025 9:14:32 AM

    Highlighted passage text

Entries are grouped into one :class:`DocumentRecord` per title/author key.
Bookmarks, publisher-restricted placeholders and empty entries are counted
as skipped; unexpected failures are collected in ``errors`` without stopping
the parse.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import re

from clipsync.clippings.models import AnnotationEntry, AnnotationKind, DocumentRecord, ParseResult
from clipsync.clippings.normalization import make_document_key, normalize_title, split_authors


LOGGER = logging.getLogger(__name__)

ENTRY_SEPARATOR = "=========="
ERROR_SNIPPET_CHARS = 200

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_TITLE_AUTHOR_RE = re.compile(r"^(.*?)\s*\(([^)]+)\)\s*$")
# Only "on page N" is optional before the location, so the "on Location N-M"
# form some devices write does not match and such blocks are counted as skipped.
_METADATA_RE = re.compile(
    r"^-\s+Your\s+(Highlight|Note|Bookmark)"
    r"(?:\s+on\s+page\s+(\d+))?"
    r"(?:\s+\|\s+)?"
    r"(?:Location\s+(\d+)(?:-(\d+))?(?:\s+\|\s+)?)?"
    r"(?:Added\s+on\s+(.+))?$",
    re.IGNORECASE,
)
_WEEKDAY_PREFIX_RE = re.compile(r"^[A-Za-z]+,\s*")
_RESTRICTED_PATTERNS = (
    re.compile(r"your\s+kindle\s+account[^.]*content\s+limit", re.IGNORECASE),
    re.compile(r"you\s+have\s+reached\s+the\s+clipping\s+limit", re.IGNORECASE),
)
_DATE_FORMATS = (
    "%B %d, %Y %I:%M:%S %p",
    "%B %d, %Y %I:%M %p",
    "%d %B %Y %H:%M:%S",
)


@dataclass(slots=True)
class _TitleLine:
    title: str
    raw_title: str
    authors: list[str]


@dataclass(slots=True)
class _MetadataLine:
    kind: AnnotationKind
    page: int | None
    location_start: int | None
    location_end: int | None
    added_at: datetime | None


@dataclass(slots=True)
class _ParsedBlock:
    key: str
    title_line: _TitleLine
    entry: AnnotationEntry


def parse_clippings(raw_text: str) -> ParseResult:
    """Parse the full text of a clippings export into per-book records."""

    cleaned = raw_text[1:] if raw_text.startswith("\ufeff") else raw_text
    result = ParseResult()

    for raw_block in cleaned.split(ENTRY_SEPARATOR):
        block = raw_block.strip()
        if not block:
            continue

        try:
            parsed = _parse_block(block)
        except Exception as exc:
            LOGGER.warning("Failed to parse clipping entry: %s", exc)
            result.errors.append(f"Failed to parse entry: {exc}\nEntry was:\n{block[:ERROR_SNIPPET_CHARS]}")
            continue

        if parsed is None:
            result.skipped_count += 1
            continue

        document = result.documents.get(parsed.key)
        if document is None:
            document = DocumentRecord(
                display_title=parsed.title_line.title,
                raw_title=parsed.title_line.raw_title,
                authors=list(parsed.title_line.authors),
            )
            result.documents[parsed.key] = document

        if parsed.entry.kind is AnnotationKind.HIGHLIGHT:
            document.highlights.append(parsed.entry)
        else:
            document.notes.append(parsed.entry)

    for document in result.documents.values():
        document.highlights.sort(key=lambda entry: entry.sort_location)
        document.notes.sort(key=lambda entry: entry.sort_location)

    LOGGER.debug(
        "Parsed %d books (%d skipped, %d errors)",
        len(result.documents),
        result.skipped_count,
        len(result.errors),
    )
    return result


def summarize_parse_result(result: ParseResult) -> str:
    """Human-readable summary of a parse result."""

    lines = [
        f"Books found:       {len(result.documents)}",
        f"Highlights found:  {result.highlight_count}",
        f"Notes found:       {result.note_count}",
        f"Skipped entries:   {result.skipped_count} (bookmarks, restricted, empty, unrecognized metadata)",
    ]
    if result.errors:
        lines.append(f"Parse errors:      {len(result.errors)}")
    return "\n".join(lines)


def _parse_block(block: str) -> _ParsedBlock | None:
    lines = [line.strip() for line in _LINE_SPLIT_RE.split(block)]
    non_empty = [line for line in lines if line]
    if len(non_empty) < 2:
        return None

    title_line = _parse_title_line(non_empty[0])
    metadata = _parse_metadata_line(non_empty[1])
    if metadata is None or metadata.kind is AnnotationKind.BOOKMARK:
        return None

    text = " ".join(non_empty[2:]).strip()
    if not text or is_restricted_placeholder(text):
        return None

    entry = AnnotationEntry(
        kind=metadata.kind,
        text=text,
        page=metadata.page,
        location_start=metadata.location_start,
        location_end=metadata.location_end,
        added_at=metadata.added_at,
    )
    key = make_document_key(title_line.title, title_line.authors)
    return _ParsedBlock(key=key, title_line=title_line, entry=entry)


def _parse_title_line(line: str) -> _TitleLine:
    match = _TITLE_AUTHOR_RE.match(line)
    if match is None:
        return _TitleLine(title=normalize_title(line), raw_title=line, authors=[])

    return _TitleLine(
        title=normalize_title(match.group(1)),
        raw_title=line,
        authors=split_authors(match.group(2).strip()),
    )


def _parse_metadata_line(line: str) -> _MetadataLine | None:
    match = _METADATA_RE.match(line)
    if match is None:
        return None

    kind_raw, page_raw, start_raw, end_raw, date_raw = match.groups()
    return _MetadataLine(
        kind=AnnotationKind(kind_raw.lower()),
        page=int(page_raw) if page_raw else None,
        location_start=int(start_raw) if start_raw else None,
        location_end=int(end_raw) if end_raw else None,
        added_at=parse_added_on(date_raw.strip()) if date_raw else None,
    )


def parse_added_on(value: str) -> datetime | None:
    """Parse ``Sunday, January 5, 2025 9:14:32 AM``; ``None`` when unparseable."""

    without_weekday = _WEEKDAY_PREFIX_RE.sub("", value.strip(), count=1)
    for date_format in _DATE_FORMATS:
        try:
            return datetime.strptime(without_weekday, date_format)
        except ValueError:
            continue
    return None


def is_restricted_placeholder(text: str) -> bool:
    """True for the text Kindle writes when a publisher blocks copying."""

    return any(pattern.search(text) for pattern in _RESTRICTED_PATTERNS)
