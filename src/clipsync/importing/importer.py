"""Idempotent write path from matched and looked-up books into the catalog.

Every book ends up with exactly one managed highlights note. Whether an
existing note is kept, replaced or created is decided by comparing the
fingerprint embedded in the note with a fingerprint of the current clippings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import logging
from collections.abc import Callable, Sequence

from clipsync.catalog.base import CatalogCollaborator, CatalogItem, CollectionId, NewRecord
from clipsync.clippings.models import DocumentRecord
from clipsync.importing.artifact import build_artifact
from clipsync.importing.fingerprint import compute_fingerprint, parse_marker
from clipsync.lookup.models import BookMetadata, LookupResult
from clipsync.matching.matcher import MatchedDocument
from clipsync.pipeline.cancellation import CancellationToken


LOGGER = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "Kindle Imports"

ProgressCallback = Callable[[int, int, str], None]
Clock = Callable[[], date]


class ImportAction(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ImportFailure:
    title: str
    reason: str


@dataclass(frozen=True, slots=True)
class ImportInput:
    """Work for one import run.

    ``matched`` comes straight from the matcher, ``confirmed`` holds review
    documents the user attached to a catalog item and ``new_with_metadata``
    holds lookup results for books that must be created.
    """

    matched: Sequence[MatchedDocument] = ()
    confirmed: Sequence[MatchedDocument] = ()
    new_with_metadata: Sequence[LookupResult] = ()

    @property
    def total(self) -> int:
        return len(self.matched) + len(self.confirmed) + len(self.new_with_metadata)


@dataclass(frozen=True, slots=True)
class ImportReport:
    added: int = 0
    updated: int = 0
    books_created: int = 0
    skipped: int = 0
    failures: tuple[ImportFailure, ...] = ()
    cancelled: bool = False

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> dict[str, object]:
        return {
            "added": self.added,
            "updated": self.updated,
            "books_created": self.books_created,
            "skipped": self.skipped,
            "failures": [{"title": failure.title, "reason": failure.reason} for failure in self.failures],
            "cancelled": self.cancelled,
        }


@dataclass(slots=True)
class _ReportBuilder:
    added: int = 0
    updated: int = 0
    books_created: int = 0
    skipped: int = 0
    failures: list[ImportFailure] = field(default_factory=list)
    cancelled: bool = False

    def record(self, action: ImportAction) -> None:
        if action is ImportAction.ADDED:
            self.added += 1
        elif action is ImportAction.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1

    def freeze(self) -> ImportReport:
        return ImportReport(
            added=self.added,
            updated=self.updated,
            books_created=self.books_created,
            skipped=self.skipped,
            failures=tuple(self.failures),
            cancelled=self.cancelled,
        )


def _record_from_metadata(
    document: DocumentRecord,
    metadata: BookMetadata | None,
    collection_id: CollectionId | None,
) -> NewRecord:
    if metadata is None:
        return NewRecord(title=document.display_title, authors=tuple(document.authors), collection_id=collection_id)

    return NewRecord(
        title=metadata.title or document.display_title,
        authors=tuple(metadata.authors) or tuple(document.authors),
        publisher=metadata.publisher,
        year=metadata.year,
        isbn=metadata.isbn,
        language=metadata.language,
        num_pages=metadata.num_pages,
        collection_id=collection_id,
    )


class ClippingsImporter:
    """Writes one highlights note per book, adding, replacing or skipping by fingerprint."""

    def __init__(
        self,
        catalog: CatalogCollaborator,
        *,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        clock: Clock = date.today,
    ) -> None:
        if not collection_name.strip():
            raise ValueError("collection_name cannot be empty")
        self._catalog = catalog
        self._collection_name = collection_name
        self._clock = clock

    async def attach_to_existing(
        self,
        document: DocumentRecord,
        item: CatalogItem,
        collection_id: CollectionId | None,
    ) -> ImportAction:
        item_id = self._catalog.get_item_id(item)
        if collection_id is not None:
            await self._catalog.add_to_collection(item_id, collection_id)

        current = compute_fingerprint(document)
        existing = await self._catalog.get_existing_artifact(item_id, current.identity_key)
        if existing is None:
            await self._catalog.create_artifact(item_id, build_artifact(document, imported_on=self._clock()))
            return ImportAction.ADDED

        stored = parse_marker(existing.content)
        if (
            stored is not None
            and stored.is_current
            and stored.fingerprint.identity_key == current.identity_key
            and stored.fingerprint.content_hash == current.content_hash
        ):
            return ImportAction.SKIPPED

        # The old note goes only once its replacement exists; the replacement
        # carries the marker only, so a legacy tag is dropped here.
        await self._catalog.create_artifact(item_id, build_artifact(document, imported_on=self._clock()))
        await self._catalog.delete_artifact(existing.id)
        return ImportAction.UPDATED

    async def create_record_with_artifact(
        self,
        document: DocumentRecord,
        metadata: BookMetadata | None,
        collection_id: CollectionId | None,
    ) -> None:
        record = _record_from_metadata(document, metadata, collection_id)
        item_id = await self._catalog.create_record(record)
        if collection_id is not None:
            await self._catalog.add_to_collection(item_id, collection_id)
        await self._catalog.create_artifact(item_id, build_artifact(document, imported_on=self._clock()))

    async def import_all(
        self,
        work: ImportInput,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ImportReport:
        builder = _ReportBuilder()
        total = work.total

        if cancel is not None and cancel.cancelled:
            builder.cancelled = True
            return builder.freeze()

        collection_id = await self._catalog.get_or_create_collection(self._collection_name)
        done = 0

        for matched in [*work.matched, *work.confirmed]:
            if cancel is not None and cancel.cancelled:
                builder.cancelled = True
                break

            title = matched.document.display_title
            try:
                action = await self.attach_to_existing(matched.document, matched.item, collection_id)
            except Exception as exc:
                LOGGER.warning("Import failed for %r: %s", title, exc)
                builder.failures.append(ImportFailure(title=title, reason=str(exc)))
            else:
                builder.record(action)

            done += 1
            if on_progress is not None:
                on_progress(done, total, title)

        for result in work.new_with_metadata:
            if builder.cancelled or (cancel is not None and cancel.cancelled):
                builder.cancelled = True
                break

            title = result.document.display_title
            try:
                await self.create_record_with_artifact(result.document, result.metadata, collection_id)
            except Exception as exc:
                LOGGER.warning("Creating catalog record failed for %r: %s", title, exc)
                builder.failures.append(ImportFailure(title=title, reason=str(exc)))
            else:
                builder.books_created += 1
                builder.added += 1

            done += 1
            if on_progress is not None:
                on_progress(done, total, title)

        report = builder.freeze()
        LOGGER.info(
            "Import finished: added=%d updated=%d created=%d skipped=%d failed=%d cancelled=%s",
            report.added,
            report.updated,
            report.books_created,
            report.skipped,
            len(report.failures),
            report.cancelled,
        )
        return report


def summarize_import_report(report: ImportReport) -> str:
    lines = [
        f"Notes added:    {report.added}",
        f"Notes updated:  {report.updated}",
        f"Books created:  {report.books_created}",
        f"Already done:   {report.skipped} (no new highlights)",
    ]
    if report.failures:
        lines.append(f"Failed:         {len(report.failures)}")
        for failure in report.failures:
            lines.append(f'   "{failure.title}": {failure.reason}')
    if report.cancelled:
        lines.append("Import was cancelled before all books were processed.")
    return "\n".join(lines)
