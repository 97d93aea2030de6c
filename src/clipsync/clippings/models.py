"""Canonical data structures produced by the clippings parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from clipsync.clippings.normalization import make_document_key


class AnnotationKind(str, Enum):
    HIGHLIGHT = "highlight"
    NOTE = "note"
    BOOKMARK = "bookmark"


@dataclass(frozen=True, slots=True)
class AnnotationEntry:
    """One highlight or note with its location metadata."""

    kind: AnnotationKind
    text: str
    page: int | None = None
    location_start: int | None = None
    location_end: int | None = None
    added_at: datetime | None = None

    @property
    def sort_location(self) -> int:
        """Location used for ordering: start location, then page, then 0."""

        if self.location_start is not None:
            return self.location_start
        if self.page is not None:
            return self.page
        return 0


@dataclass(slots=True)
class DocumentRecord:
    """All annotations of one source book, keyed by title and authors."""

    display_title: str
    raw_title: str
    authors: list[str] = field(default_factory=list)
    highlights: list[AnnotationEntry] = field(default_factory=list)
    notes: list[AnnotationEntry] = field(default_factory=list)

    @property
    def key(self) -> str:
        return make_document_key(self.display_title, self.authors)

    @property
    def annotation_count(self) -> int:
        return len(self.highlights) + len(self.notes)

    def merged_annotations(self) -> list[AnnotationEntry]:
        """Highlights and notes merged in location order (stable)."""

        return sorted([*self.highlights, *self.notes], key=lambda entry: entry.sort_location)


@dataclass(slots=True)
class ParseResult:
    """Parser output: documents by key plus skip and error accounting."""

    documents: dict[str, DocumentRecord] = field(default_factory=dict)
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def highlight_count(self) -> int:
        return sum(len(document.highlights) for document in self.documents.values())

    @property
    def note_count(self) -> int:
        return sum(len(document.notes) for document in self.documents.values())
