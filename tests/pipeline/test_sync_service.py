from __future__ import annotations

from pathlib import Path

import pytest

from clipsync.catalog.base import NewRecord
from clipsync.catalog.sqlite_catalog import SqliteCatalog
from clipsync.lookup.config import LookupSettings
from clipsync.lookup.resolver import MetadataResolver
from clipsync.pipeline.cancellation import CancellationToken
from clipsync.pipeline.config import ReviewPolicy, SyncSettings
from clipsync.pipeline.service import (
    ClippingsSyncService,
    ReviewAction,
    ReviewDecision,
    build_review_resolver,
)


CLIPPINGS = "\n".join(
    [
        "Clean Code (Robert C. Martin)",
        "- Your Highlight on page 7 | Location 88-90 | Added on Friday, March 1, 2024 10:00 AM",
        "",
        "Clean code reads like well-written prose.",
        "==========",
        "Deep Work (Newport, Cal)",
        "- Your Highlight on page 12 | Location 150-152 | Added on Saturday, March 2, 2024 9:00 AM",
        "",
        "Clarity about what matters provides clarity about what does not.",
        "==========",
        "Unknown Book (Someone)",
        "- Your Note on page 1 | Location 10 | Added on Sunday, March 3, 2024 8:00 AM",
        "",
        "Remember to look this one up.",
        "==========",
        "",
    ]
)


def _offline_resolver() -> MetadataResolver:
    return MetadataResolver(None, None, settings=LookupSettings(pacing_seconds=0.0))


async def _seed(catalog: SqliteCatalog) -> None:
    await catalog.create_record(NewRecord(title="Clean Code", authors=("Robert C. Martin",)))
    await catalog.create_record(NewRecord(title="Deep Work"))


@pytest.mark.asyncio
async def test_full_sync_then_rerun_is_skipped() -> None:
    with SqliteCatalog(":memory:") as catalog:
        await _seed(catalog)
        service = ClippingsSyncService(
            catalog,
            _offline_resolver(),
            settings=SyncSettings(review_policy=ReviewPolicy.ACCEPT_TOP),
        )
        stages: list[tuple[str, int, int, str]] = []

        first = await service.run(CLIPPINGS, on_progress=lambda *args: stages.append(args))
        second = await service.run(CLIPPINGS)

        assert [len(first.match.matched), len(first.match.needs_review), len(first.match.new)] == [1, 1, 1]
        assert first.confirmed == 1
        assert first.report.added == 3
        assert first.report.books_created == 1
        assert {stage for stage, *_ in stages} == {"lookup", "import"}
        assert stages[-1] == ("import", 3, 3, "Unknown Book")

        assert second.report.skipped == 3
        assert second.report.books_created == 0
        assert second.match.new == []
        assert len(await catalog.list_items()) == 3


@pytest.mark.asyncio
async def test_skip_policy_counts_review_documents() -> None:
    with SqliteCatalog(":memory:") as catalog:
        await _seed(catalog)
        service = ClippingsSyncService(catalog, _offline_resolver())

        outcome = await service.run(CLIPPINGS)

        assert outcome.review_skipped == 1
        assert outcome.confirmed == 0
        assert outcome.report.added == 2
        payload = outcome.to_dict()
        assert payload["books"] == 3
        assert payload["review_skipped"] == 1
        assert payload["import"]["books_created"] == 1


@pytest.mark.asyncio
async def test_as_new_policy_creates_a_second_record() -> None:
    with SqliteCatalog(":memory:") as catalog:
        await _seed(catalog)
        service = ClippingsSyncService(
            catalog,
            _offline_resolver(),
            settings=SyncSettings(review_policy=ReviewPolicy.AS_NEW),
        )

        outcome = await service.run(CLIPPINGS)

        assert outcome.report.books_created == 2
        titles = [item.get_title() for item in await catalog.list_items()]
        assert titles.count("Deep Work") == 2


@pytest.mark.asyncio
async def test_cancelled_before_run_writes_nothing() -> None:
    with SqliteCatalog(":memory:") as catalog:
        cancel = CancellationToken()
        cancel.cancel()

        outcome = await ClippingsSyncService(catalog, _offline_resolver()).run(CLIPPINGS, cancel=cancel)

        assert outcome.cancelled
        assert len(outcome.parse.documents) == 3
        assert outcome.match.matched == []
        assert await catalog.list_items() == []


def test_review_resolver_policies() -> None:
    class _Candidate:
        item = object()

    class _Review:
        candidates = (_Candidate(),)

    assert build_review_resolver(ReviewPolicy.ACCEPT_TOP)(_Review()).item is _Candidate.item
    assert build_review_resolver(ReviewPolicy.AS_NEW)(_Review()).action is ReviewAction.AS_NEW
    assert build_review_resolver(ReviewPolicy.SKIP)(_Review()).action is ReviewAction.SKIP

    with pytest.raises(ValueError, match="requires an item"):
        ReviewDecision(action=ReviewAction.ACCEPT)


def test_review_policy_parse_accepts_underscores() -> None:
    assert ReviewPolicy.parse("Accept_Top") is ReviewPolicy.ACCEPT_TOP
    with pytest.raises(ValueError, match="CLIPSYNC_REVIEW_POLICY"):
        ReviewPolicy.parse("maybe", name="CLIPSYNC_REVIEW_POLICY")


def test_sync_settings_from_env() -> None:
    settings = SyncSettings.from_env(
        {
            "CLIPSYNC_DB_PATH": "/tmp/clipsync/catalog.db",
            "CLIPSYNC_COLLECTION_NAME": "Highlights",
            "CLIPSYNC_REVIEW_POLICY": "as-new",
            "CLIPSYNC_CONFIDENT_THRESHOLD": "0.9",
        }
    )

    assert settings.db_path == Path("/tmp/clipsync/catalog.db")
    assert settings.collection_name == "Highlights"
    assert settings.review_policy is ReviewPolicy.AS_NEW
    assert settings.thresholds.confident_threshold == 0.9

    with pytest.raises(ValueError, match="CLIPSYNC_COLLECTION_NAME"):
        SyncSettings.from_env({"CLIPSYNC_COLLECTION_NAME": "  "})


@pytest.mark.asyncio
async def test_two_editions_matching_one_item_are_stable_across_runs() -> None:
    clippings = "\n".join(
        [
            "Thinking, Fast and Slow (Kahneman, Daniel)",
            "- Your Highlight on page 3 | Location 40-41 | Added on Monday, March 4, 2024 8:00 AM",
            "",
            "first passage",
            "==========",
            "Thinking, Fast and Slow (Daniel Kahneman;Amos Tversky)",
            "- Your Highlight on page 9 | Location 90-91 | Added on Monday, March 4, 2024 9:00 AM",
            "",
            "second passage",
            "==========",
            "",
        ]
    )
    with SqliteCatalog(":memory:") as catalog:
        item_id = await catalog.create_record(NewRecord(title="Thinking, Fast and Slow", authors=("Daniel Kahneman",)))
        service = ClippingsSyncService(catalog, _offline_resolver())

        first = await service.run(clippings)
        second = await service.run(clippings)

        assert len(first.match.matched) == 2
        assert (first.report.added, first.report.updated) == (2, 0)
        assert (second.report.updated, second.report.skipped) == (0, 2)
        contents = [note.content for note in catalog.list_notes(item_id)]
        assert len(contents) == 2
        assert any("first passage" in content for content in contents)
        assert any("second passage" in content for content in contents)
