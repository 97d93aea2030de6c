"""Bibliographic metadata records returned by the resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from clipsync.clippings.models import DocumentRecord


class MetadataProvenance(str, Enum):
    GOOGLE_BOOKS = "google"
    OPEN_LIBRARY = "openlibrary"
    KINDLE = "kindle"


@dataclass(frozen=True, slots=True)
class LookupQuery:
    title: str
    author: str = ""


@dataclass(frozen=True, slots=True)
class BookMetadata:
    """Normalized bibliographic record for one book."""

    title: str
    authors: tuple[str, ...] = ()
    publisher: str | None = None
    year: str | None = None
    isbn: str | None = None
    language: str | None = None
    num_pages: int | None = None
    provenance: MetadataProvenance = MetadataProvenance.KINDLE
    confidence: float = 0.0


@dataclass(slots=True)
class LookupResult:
    document: DocumentRecord
    metadata: BookMetadata
    needs_review: bool = field(default=False)
