from __future__ import annotations

from datetime import datetime

import clipsync.clippings.parser as parser_module
from clipsync.clippings.models import AnnotationKind
from clipsync.clippings.parser import (
    is_restricted_placeholder,
    parse_added_on,
    parse_clippings,
    summarize_parse_result,
)


SAMPLE = "\ufeff" + "\r\n".join(
    [
        "Thinking, Fast and Slow (Kahneman, Daniel)",
        "- Your Highlight on page 23 | Location 342-344 | Added on Sunday, January 5, 2025 9:14:32 AM",
        "",
        "Nothing in life is as important as you think it is.",
        "==========",
        "Thinking, Fast and Slow (Kahneman, Daniel)",
        "- Your Note on page 20 | Location 300 | Added on Sunday, January 5, 2025 9:15:00 AM",
        "",
        "Check the base rates.",
        "==========",
        "Thinking, Fast and Slow (Kahneman, Daniel)",
        "- Your Highlight on page 4 | Location 101-102 | Added on Saturday, January 4, 2025 8:00:00 PM",
        "",
        "A reliable way to make people believe in falsehoods",
        "is frequent repetition.",
        "==========",
        "Thinking, Fast and Slow (Kahneman, Daniel)",
        "- Your Bookmark on page 50 | Location 700 | Added on Monday, January 6, 2025 7:00:00 AM",
        "",
        "",
        "==========",
        "Clean Code (Robert C. Martin)",
        "- Your Highlight on page 7 | Location 88-90 | Added on Friday, March 1, 2024 10:00 AM",
        "",
        "Clean code reads like well-written prose.",
        "==========",
        "",
    ]
)


def test_parse_groups_entries_per_book_in_first_appearance_order() -> None:
    result = parse_clippings(SAMPLE)

    assert [document.display_title for document in result.documents.values()] == [
        "Thinking, Fast and Slow",
        "Clean Code",
    ]
    thinking = next(iter(result.documents.values()))
    assert thinking.authors == ["Daniel Kahneman"]
    assert thinking.key == "thinking, fast and slow::daniel kahneman"
    assert result.highlight_count == 3
    assert result.note_count == 1
    assert result.skipped_count == 1
    assert result.errors == []


def test_parse_sorts_highlights_by_location_and_joins_body_lines() -> None:
    result = parse_clippings(SAMPLE)
    thinking = result.documents["thinking, fast and slow::daniel kahneman"]

    assert [entry.location_start for entry in thinking.highlights] == [101, 342]
    assert thinking.highlights[0].text == "A reliable way to make people believe in falsehoods is frequent repetition."
    assert thinking.highlights[1].page == 23
    assert thinking.highlights[1].location_end == 344
    assert thinking.highlights[1].added_at == datetime(2025, 1, 5, 9, 14, 32)
    assert thinking.notes[0].kind is AnnotationKind.NOTE
    assert thinking.notes[0].location_end is None


def test_bookmarks_never_become_annotations() -> None:
    result = parse_clippings(SAMPLE)

    for document in result.documents.values():
        for entry in [*document.highlights, *document.notes]:
            assert entry.kind is not AnnotationKind.BOOKMARK


def test_parse_round_trip_of_single_highlight() -> None:
    raw = "\n".join(
        [
            "Deep Work (Newport, Cal)",
            "- Your Highlight on page 12 | Location 150-152 | Added on Tuesday, May 7, 2024 6:30:00 PM",
            "",
            "Clarity about what matters provides clarity about what does not.",
            "==========",
        ]
    )

    result = parse_clippings(raw)
    document = result.documents["deep work::cal newport"]

    assert document.display_title == "Deep Work"
    assert document.authors == ["Cal Newport"]
    assert len(document.highlights) == 1
    entry = document.highlights[0]
    assert (entry.page, entry.location_start, entry.location_end) == (12, 150, 152)
    assert entry.text == "Clarity about what matters provides clarity about what does not."


def test_restricted_placeholder_and_empty_entries_are_skipped() -> None:
    raw = "\n".join(
        [
            "Locked Book (Writer, Some)",
            "- Your Highlight on page 1 | Location 10-11 | Added on Monday, June 3, 2024 1:00:00 PM",
            "",
            "<You have reached the clipping limit for this item>",
            "==========",
            "Locked Book (Writer, Some)",
            "- Your Highlight on page 2 | Location 20 | Added on Monday, June 3, 2024 1:05:00 PM",
            "",
            "==========",
            "Only a title line",
            "==========",
        ]
    )

    result = parse_clippings(raw)

    assert result.documents == {}
    assert result.skipped_count == 3


def test_unrecognized_metadata_line_skips_block() -> None:
    raw = "Some Book (Author, An)\n- Something unexpected here\n\nBody text\n=========="

    result = parse_clippings(raw)

    assert result.documents == {}
    assert result.skipped_count == 1


def test_location_only_metadata_form_is_skipped_and_reported() -> None:
    raw = "\n".join(
        [
            "Clean Code (Robert C. Martin)",
            "- Your Highlight on Location 342-344 | Added on Sunday, January 5, 2025 9:14:32 AM",
            "",
            "Functions should do one thing.",
            "==========",
        ]
    )

    result = parse_clippings(raw)

    assert result.documents == {}
    assert result.skipped_count == 1
    summary = summarize_parse_result(result)
    assert "Skipped entries:   1 (bookmarks, restricted, empty, unrecognized metadata)" in summary


def test_title_normalization_and_multiple_authors() -> None:
    raw = "\n".join(
        [
            "Design  Patterns\uff1a Elements of Reusable Software (Gamma, Erich; Helm, Richard;)",
            "- Your Highlight | Location 5-6 | Added on Monday, June 3, 2024 1:00:00 PM",
            "",
            "Program to an interface.",
            "==========",
        ]
    )

    result = parse_clippings(raw)
    document = next(iter(result.documents.values()))

    assert document.display_title == "Design Patterns: Elements of Reusable Software"
    assert document.authors == ["Erich Gamma", "Richard Helm"]
    assert document.highlights[0].page is None
    assert document.highlights[0].location_start == 5


def test_title_without_author_keeps_whole_line() -> None:
    raw = "Untitled Notes\n- Your Note on page 3 | Added on Monday, June 3, 2024 1:00:00 PM\n\nRemember this\n=========="

    result = parse_clippings(raw)
    document = result.documents["untitled notes::"]

    assert document.authors == []
    assert document.notes[0].sort_location == 3


def test_unexpected_failure_is_recorded_and_parsing_continues(monkeypatch) -> None:
    original = parser_module._parse_block

    def _flaky(block: str):
        if block.startswith("Broken"):
            raise RuntimeError("boom")
        return original(block)

    monkeypatch.setattr(parser_module, "_parse_block", _flaky)
    raw = "\n".join(
        [
            "Broken Book (Nobody)",
            "- Your Highlight on page 1 | Location 1 | Added on Monday, June 3, 2024 1:00:00 PM",
            "",
            "text",
            "==========",
            "Fine Book (Somebody)",
            "- Your Highlight on page 1 | Location 1 | Added on Monday, June 3, 2024 1:00:00 PM",
            "",
            "text",
            "==========",
        ]
    )

    result = parse_clippings(raw)

    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to parse entry: boom\nEntry was:\nBroken Book (Nobody)")
    assert list(result.documents) == ["fine book::somebody"]


def test_parse_added_on_formats() -> None:
    assert parse_added_on("Sunday, January 5, 2025 9:14:32 AM") == datetime(2025, 1, 5, 9, 14, 32)
    assert parse_added_on("Friday, March 1, 2024 10:00 AM") == datetime(2024, 3, 1, 10, 0)
    assert parse_added_on("Friday, 1 March 2024 22:10:05") == datetime(2024, 3, 1, 22, 10, 5)
    assert parse_added_on("sometime last week") is None


def test_restricted_placeholder_detection() -> None:
    assert is_restricted_placeholder("<Your Kindle account has reached the content limit set by the publisher.>")
    assert is_restricted_placeholder("You have reached the clipping limit for this item")
    assert not is_restricted_placeholder("An ordinary highlight")


def test_summary_mentions_counts() -> None:
    summary = summarize_parse_result(parse_clippings(SAMPLE))

    assert "Books found:       2" in summary
    assert "Highlights found:  3" in summary
    assert "Notes found:       1" in summary
    assert "Skipped entries:   1" in summary
    assert "Parse errors" not in summary
