"""Resolve bibliographic metadata for books that are new to the catalog.

Strategy, stopping at the first confident result:

1. primary source (Google Books), title + first author,
2. primary source, title only (only when an author was available),
3. secondary source (Open Library), title + first author,
4. a minimal record built from the clippings data itself.

Lookup failures never reach the caller; a failing attempt simply falls
through to the next one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
import logging
import re
from typing import Any

from clipsync.clippings.models import DocumentRecord
from clipsync.lookup.config import LookupSettings
from clipsync.lookup.models import BookMetadata, LookupQuery, LookupResult, MetadataProvenance
from clipsync.lookup.sources import BibliographicSource, Sleep
from clipsync.matching.similarity import score_title_match
from clipsync.pipeline.cancellation import CancellationToken


LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

_ISBN13_RE = re.compile(r"^(97[89])?\d{10}$")


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _positive_int(value: Any) -> int | None:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _first(values: Any) -> Any:
    if isinstance(values, (list, tuple)) and values:
        return values[0]
    return None


def extract_google_books(payload: Mapping[str, Any], query_title: str) -> BookMetadata | None:
    """Best-scoring Google Books volume as metadata, or ``None``."""

    items = payload.get("items") or []
    scored = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        info = item.get("volumeInfo") or {}
        scored.append((score_title_match(query_title, str(info.get("title") or "")), info))
    if not scored:
        return None

    scored.sort(key=lambda pair: pair[0], reverse=True)
    confidence, info = scored[0]

    identifiers = {
        entry.get("type"): entry.get("identifier")
        for entry in info.get("industryIdentifiers") or []
        if isinstance(entry, Mapping)
    }
    published = _clean_str(info.get("publishedDate"))
    return BookMetadata(
        title=str(info.get("title") or ""),
        authors=tuple(str(name) for name in info.get("authors") or []),
        publisher=_clean_str(info.get("publisher")),
        year=published[:4] if published else None,
        isbn=_clean_str(identifiers.get("ISBN_13")) or _clean_str(identifiers.get("ISBN_10")),
        language=_clean_str(info.get("language")),
        num_pages=_positive_int(info.get("pageCount")),
        provenance=MetadataProvenance.GOOGLE_BOOKS,
        confidence=confidence,
    )


def _pick_isbn(values: Any) -> str | None:
    candidates = [str(value).strip() for value in values or [] if str(value).strip()]
    for candidate in candidates:
        if len(candidate) == 13 and _ISBN13_RE.match(candidate):
            return candidate
    return candidates[0] if candidates else None


def extract_open_library(payload: Mapping[str, Any], query_title: str) -> BookMetadata | None:
    """Best-scoring Open Library document as metadata, or ``None``."""

    docs = [doc for doc in payload.get("docs") or [] if isinstance(doc, Mapping)]
    if not docs:
        return None

    scored = sorted(
        ((score_title_match(query_title, str(doc.get("title") or "")), doc) for doc in docs),
        key=lambda pair: pair[0],
        reverse=True,
    )
    confidence, doc = scored[0]

    first_year = doc.get("first_publish_year")
    return BookMetadata(
        title=str(doc.get("title") or ""),
        authors=tuple(str(name) for name in doc.get("author_name") or []),
        publisher=_clean_str(_first(doc.get("publisher"))),
        year=str(first_year) if first_year else None,
        isbn=_pick_isbn(doc.get("isbn")),
        language=_clean_str(_first(doc.get("language"))),
        num_pages=_positive_int(doc.get("number_of_pages_median")),
        provenance=MetadataProvenance.OPEN_LIBRARY,
        confidence=confidence,
    )


def kindle_fallback(document: DocumentRecord) -> BookMetadata:
    """Minimal record from the clippings data when no service found the book."""

    return BookMetadata(
        title=document.display_title,
        authors=tuple(document.authors),
        provenance=MetadataProvenance.KINDLE,
        confidence=0.0,
    )


Extractor = Callable[[Mapping[str, Any], str], BookMetadata | None]


class MetadataResolver:
    """Ordered, failure-tolerant metadata lookup over two sources.

    ``primary`` must return Google Books shaped payloads and ``secondary``
    Open Library shaped payloads. Either may be ``None`` (offline runs skip
    straight to the clippings fallback).
    """

    def __init__(
        self,
        primary: BibliographicSource | None,
        secondary: BibliographicSource | None,
        *,
        settings: LookupSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._settings = settings or LookupSettings()
        self._sleep = sleep

    @property
    def settings(self) -> LookupSettings:
        return self._settings

    async def resolve(self, document: DocumentRecord) -> BookMetadata:
        title = document.display_title
        author = document.authors[0] if document.authors else ""

        attempts: list[tuple[BibliographicSource, Extractor, LookupQuery]] = []
        if self._primary is not None:
            attempts.append((self._primary, extract_google_books, LookupQuery(title=title, author=author)))
            if author:
                attempts.append((self._primary, extract_google_books, LookupQuery(title=title)))
        if self._secondary is not None:
            attempts.append((self._secondary, extract_open_library, LookupQuery(title=title, author=author)))

        for source, extractor, query in attempts:
            metadata = await self._attempt(source, extractor, query)
            if metadata is not None:
                return metadata

        LOGGER.info("No confident metadata for %r; using clippings data", title)
        return kindle_fallback(document)

    async def resolve_all(
        self,
        documents: Sequence[DocumentRecord],
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[LookupResult]:
        """Resolve documents one by one, in order, pacing the requests."""

        results: list[LookupResult] = []
        total = len(documents)

        for index, document in enumerate(documents):
            if cancel is not None and cancel.cancelled:
                LOGGER.info("Metadata lookup cancelled after %d of %d books", index, total)
                break

            metadata = await self.resolve(document)
            needs_review = (
                metadata.provenance is MetadataProvenance.KINDLE
                or metadata.confidence < self._settings.review_floor
            )
            results.append(LookupResult(document=document, metadata=metadata, needs_review=needs_review))

            if on_progress is not None:
                on_progress(index + 1, total, document.display_title)

            if index < total - 1 and self._settings.pacing_seconds > 0:
                await self._sleep(self._settings.pacing_seconds)

        return results

    async def _attempt(
        self,
        source: BibliographicSource,
        extractor: Extractor,
        query: LookupQuery,
    ) -> BookMetadata | None:
        try:
            payload = await source.search(query)
            metadata = extractor(payload, query.title)
        except Exception as exc:
            LOGGER.warning("Lookup via %s failed for %r: %s", source.name, query.title, exc)
            return None

        if metadata is None or metadata.confidence < self._settings.confidence_floor:
            return None
        return metadata


def summarize_lookup_results(results: Sequence[LookupResult]) -> str:
    """Human-readable summary of a batch lookup."""

    from_google = sum(1 for result in results if result.metadata.provenance is MetadataProvenance.GOOGLE_BOOKS)
    from_open_library = sum(
        1 for result in results if result.metadata.provenance is MetadataProvenance.OPEN_LIBRARY
    )
    kindle_only = [result for result in results if result.metadata.provenance is MetadataProvenance.KINDLE]
    needs_review = sum(1 for result in results if result.needs_review)

    lines = [
        f"Looked up:       {len(results)} books",
        f"Google Books:    {from_google}",
        f"Open Library:    {from_open_library}",
        f"Kindle only:     {len(kindle_only)} (limited metadata, needs review)",
        f"Needs review:    {needs_review}",
    ]
    if kindle_only:
        lines.append("")
        lines.append("Limited metadata (could not find online):")
        for result in kindle_only:
            authors = ", ".join(result.document.authors) or "(unknown)"
            lines.append(f'  ? "{result.document.display_title}" by {authors}')
    return "\n".join(lines)
