from __future__ import annotations

from typing import Any, Mapping

import pytest

from clipsync.clippings.models import DocumentRecord
from clipsync.lookup.config import LookupSettings
from clipsync.lookup.models import LookupQuery, MetadataProvenance
from clipsync.lookup.resolver import (
    MetadataResolver,
    extract_google_books,
    extract_open_library,
    kindle_fallback,
    summarize_lookup_results,
)
from clipsync.pipeline.cancellation import CancellationToken


GOOGLE_PAYLOAD = {
    "items": [
        {"volumeInfo": {"title": "Unrelated Cooking Manual"}},
        {
            "volumeInfo": {
                "title": "Clean Code: A Handbook of Agile Software Craftsmanship",
                "authors": ["Robert C. Martin"],
                "publisher": "Prentice Hall",
                "publishedDate": "2008-08-01",
                "industryIdentifiers": [
                    {"type": "ISBN_10", "identifier": "0132350882"},
                    {"type": "ISBN_13", "identifier": "9780132350884"},
                ],
                "language": "en",
                "pageCount": 431,
            }
        },
    ]
}

OPEN_LIBRARY_PAYLOAD = {
    "docs": [
        {
            "title": "Deep Work",
            "author_name": ["Cal Newport"],
            "publisher": ["Grand Central", "Piatkus"],
            "first_publish_year": 2016,
            "isbn": ["1455586692", "9781455586691"],
            "language": ["eng"],
            "number_of_pages_median": 296,
        }
    ]
}


class _FakeSource:
    def __init__(self, name: str, responses: list[Any]) -> None:
        self.name = name
        self._responses = responses
        self.queries: list[LookupQuery] = []

    async def search(self, query: LookupQuery) -> Mapping[str, Any]:
        self.queries.append(query)
        response = self._responses.pop(0) if self._responses else {}
        if isinstance(response, Exception):
            raise response
        return response


def _document(title: str, authors: list[str] | None = None) -> DocumentRecord:
    return DocumentRecord(display_title=title, raw_title=title, authors=list(authors or []))


def _no_pacing() -> LookupSettings:
    return LookupSettings(pacing_seconds=0.0)


def test_extract_google_books_picks_best_title_and_isbn13() -> None:
    metadata = extract_google_books(GOOGLE_PAYLOAD, "Clean Code")

    assert metadata is not None
    assert metadata.title.startswith("Clean Code")
    assert metadata.authors == ("Robert C. Martin",)
    assert metadata.year == "2008"
    assert metadata.isbn == "9780132350884"
    assert metadata.num_pages == 431
    assert metadata.provenance is MetadataProvenance.GOOGLE_BOOKS
    assert metadata.confidence == pytest.approx(0.9)


def test_extract_open_library_fields() -> None:
    metadata = extract_open_library(OPEN_LIBRARY_PAYLOAD, "Deep Work")

    assert metadata is not None
    assert metadata.publisher == "Grand Central"
    assert metadata.year == "2016"
    assert metadata.isbn == "9781455586691"
    assert metadata.language == "eng"
    assert metadata.confidence == 1.0


def test_extractors_return_none_for_empty_payloads() -> None:
    assert extract_google_books({}, "X") is None
    assert extract_open_library({"docs": []}, "X") is None


@pytest.mark.asyncio
async def test_primary_result_wins_when_confident() -> None:
    primary = _FakeSource("google", [GOOGLE_PAYLOAD])
    secondary = _FakeSource("openlibrary", [OPEN_LIBRARY_PAYLOAD])
    resolver = MetadataResolver(primary, secondary, settings=_no_pacing())

    metadata = await resolver.resolve(_document("Clean Code", ["Robert C. Martin"]))

    assert metadata.provenance is MetadataProvenance.GOOGLE_BOOKS
    assert primary.queries == [LookupQuery(title="Clean Code", author="Robert C. Martin")]
    assert secondary.queries == []


@pytest.mark.asyncio
async def test_falls_through_title_only_then_secondary() -> None:
    primary = _FakeSource("google", [RuntimeError("quota"), {"items": []}])
    secondary = _FakeSource("openlibrary", [OPEN_LIBRARY_PAYLOAD])
    resolver = MetadataResolver(primary, secondary, settings=_no_pacing())

    metadata = await resolver.resolve(_document("Deep Work", ["Cal Newport"]))

    assert metadata.provenance is MetadataProvenance.OPEN_LIBRARY
    assert primary.queries == [
        LookupQuery(title="Deep Work", author="Cal Newport"),
        LookupQuery(title="Deep Work"),
    ]
    assert secondary.queries == [LookupQuery(title="Deep Work", author="Cal Newport")]


@pytest.mark.asyncio
async def test_title_only_attempt_skipped_without_author() -> None:
    primary = _FakeSource("google", [{"items": []}])
    secondary = _FakeSource("openlibrary", [{"docs": []}])
    resolver = MetadataResolver(primary, secondary, settings=_no_pacing())

    metadata = await resolver.resolve(_document("Meditations"))

    assert len(primary.queries) == 1
    assert metadata == kindle_fallback(_document("Meditations"))


@pytest.mark.asyncio
async def test_low_confidence_results_fall_back_to_clippings_data() -> None:
    unrelated = {"items": [{"volumeInfo": {"title": "Gardening for Beginners"}}]}
    primary = _FakeSource("google", [unrelated, unrelated])
    secondary = _FakeSource("openlibrary", [{"docs": [{"title": "Gardening for Beginners"}]}])
    resolver = MetadataResolver(primary, secondary, settings=_no_pacing())

    metadata = await resolver.resolve(_document("Deep Work", ["Cal Newport"]))

    assert metadata.provenance is MetadataProvenance.KINDLE
    assert metadata.title == "Deep Work"
    assert metadata.authors == ("Cal Newport",)
    assert metadata.publisher is None
    assert metadata.confidence == 0.0


@pytest.mark.asyncio
async def test_resolve_all_paces_reports_progress_and_flags_review() -> None:
    delays: list[float] = []
    progress: list[tuple[int, int, str]] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    primary = _FakeSource("google", [GOOGLE_PAYLOAD])
    resolver = MetadataResolver(primary, None, settings=LookupSettings(pacing_seconds=0.3), sleep=_sleep)
    documents = [_document("Clean Code", ["Robert C. Martin"]), _document("Deep Work"), _document("Sapiens")]

    results = await resolver.resolve_all(documents, on_progress=lambda *args: progress.append(args))

    assert [result.document.display_title for result in results] == ["Clean Code", "Deep Work", "Sapiens"]
    assert [result.needs_review for result in results] == [False, True, True]
    assert delays == [0.3, 0.3]
    assert progress == [(1, 3, "Clean Code"), (2, 3, "Deep Work"), (3, 3, "Sapiens")]


@pytest.mark.asyncio
async def test_resolve_all_stops_when_cancelled() -> None:
    cancel = CancellationToken()
    resolver = MetadataResolver(None, None, settings=_no_pacing())

    def _on_progress(done: int, total: int, title: str) -> None:
        cancel.cancel()

    results = await resolver.resolve_all(
        [_document("One"), _document("Two"), _document("Three")],
        on_progress=_on_progress,
        cancel=cancel,
    )

    assert [result.document.display_title for result in results] == ["One"]


@pytest.mark.asyncio
async def test_summary_lists_limited_metadata_books() -> None:
    resolver = MetadataResolver(None, None, settings=_no_pacing())
    results = await resolver.resolve_all([_document("Obscure Pamphlet", ["Anon Writer"])])

    summary = summarize_lookup_results(results)

    assert "Kindle only:     1" in summary
    assert '? "Obscure Pamphlet" by Anon Writer' in summary
