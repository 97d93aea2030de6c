"""End-to-end sync: parse -> match -> review -> lookup -> import."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from collections.abc import Callable

from clipsync.catalog.base import CatalogCollaborator, CatalogItem, ItemFilter
from clipsync.clippings.models import ParseResult
from clipsync.clippings.parser import parse_clippings
from clipsync.importing.importer import ClippingsImporter, ImportInput, ImportReport
from clipsync.lookup.models import LookupResult
from clipsync.lookup.resolver import MetadataResolver
from clipsync.matching.matcher import MatchedDocument, MatchResult, ReviewDocument, match_documents
from clipsync.pipeline.cancellation import CancellationToken
from clipsync.pipeline.config import ReviewPolicy, SyncSettings


LOGGER = logging.getLogger(__name__)

StageProgress = Callable[[str, int, int, str], None]


class ReviewAction(str, Enum):
    ACCEPT = "accept"
    AS_NEW = "as-new"
    SKIP = "skip"


@dataclass(frozen=True, slots=True)
class ReviewDecision:
    action: ReviewAction
    item: CatalogItem | None = None

    def __post_init__(self) -> None:
        if self.action is ReviewAction.ACCEPT and self.item is None:
            raise ValueError("accepting a review candidate requires an item")

    @classmethod
    def accept(cls, item: CatalogItem) -> "ReviewDecision":
        return cls(action=ReviewAction.ACCEPT, item=item)

    @classmethod
    def as_new(cls) -> "ReviewDecision":
        return cls(action=ReviewAction.AS_NEW)

    @classmethod
    def skip(cls) -> "ReviewDecision":
        return cls(action=ReviewAction.SKIP)


ReviewResolver = Callable[[ReviewDocument], ReviewDecision]


def build_review_resolver(policy: ReviewPolicy) -> ReviewResolver:
    """Non-interactive resolver applying the same decision to every review."""

    def resolve(review: ReviewDocument) -> ReviewDecision:
        if policy is ReviewPolicy.ACCEPT_TOP and review.candidates:
            return ReviewDecision.accept(review.candidates[0].item)
        if policy is ReviewPolicy.AS_NEW:
            return ReviewDecision.as_new()
        return ReviewDecision.skip()

    return resolve


@dataclass(slots=True)
class SyncOutcome:
    parse: ParseResult
    match: MatchResult
    lookups: list[LookupResult] = field(default_factory=list)
    report: ImportReport = field(default_factory=ImportReport)
    confirmed: int = 0
    review_skipped: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "books": len(self.parse.documents),
            "highlights": self.parse.highlight_count,
            "notes": self.parse.note_count,
            "skipped_entries": self.parse.skipped_count,
            "parse_errors": list(self.parse.errors),
            "matched": len(self.match.matched),
            "needs_review": len(self.match.needs_review),
            "new": len(self.match.new),
            "confirmed": self.confirmed,
            "review_skipped": self.review_skipped,
            "looked_up": len(self.lookups),
            "lookup_needs_review": sum(1 for result in self.lookups if result.needs_review),
            "import": self.report.to_dict(),
            "cancelled": self.cancelled,
        }


def _stage_progress(on_progress: StageProgress | None, stage: str) -> Callable[[int, int, str], None] | None:
    if on_progress is None:
        return None

    def report(done: int, total: int, title: str) -> None:
        on_progress(stage, done, total, title)

    return report


class ClippingsSyncService:
    """Runs the three-stage sync against one catalog."""

    def __init__(
        self,
        catalog: CatalogCollaborator,
        resolver: MetadataResolver,
        *,
        settings: SyncSettings | None = None,
        review_resolver: ReviewResolver | None = None,
        importer: ClippingsImporter | None = None,
    ) -> None:
        self._catalog = catalog
        self._resolver = resolver
        self._settings = settings or SyncSettings()
        self._review_resolver = review_resolver or build_review_resolver(self._settings.review_policy)
        self._importer = importer or ClippingsImporter(catalog, collection_name=self._settings.collection_name)

    async def run(
        self,
        raw_text: str,
        on_progress: StageProgress | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncOutcome:
        parsed = parse_clippings(raw_text)
        LOGGER.info(
            "Parsed %d books (%d highlights, %d notes, %d skipped, %d errors)",
            len(parsed.documents),
            parsed.highlight_count,
            parsed.note_count,
            parsed.skipped_count,
            len(parsed.errors),
        )
        outcome = SyncOutcome(parse=parsed, match=MatchResult())
        if self._is_cancelled(cancel, outcome):
            return outcome

        catalog_items = await self._catalog.list_items(ItemFilter())
        outcome.match = match_documents(parsed.documents, catalog_items, thresholds=self._settings.thresholds)
        if self._is_cancelled(cancel, outcome):
            return outcome

        confirmed: list[MatchedDocument] = []
        to_create = [new.document for new in outcome.match.new]
        for review in outcome.match.needs_review:
            decision = self._review_resolver(review)
            if decision.action is ReviewAction.ACCEPT and decision.item is not None:
                score = next(
                    (candidate for candidate in review.candidates if candidate.item is decision.item),
                    None,
                )
                confirmed.append(
                    MatchedDocument(
                        document=review.document,
                        item=decision.item,
                        title_score=score.title_score if score is not None else 0.0,
                        author_score=score.author_score if score is not None else 0.0,
                    )
                )
            elif decision.action is ReviewAction.AS_NEW:
                to_create.append(review.document)
            else:
                outcome.review_skipped += 1
        outcome.confirmed = len(confirmed)

        if self._is_cancelled(cancel, outcome):
            return outcome

        outcome.lookups = await self._resolver.resolve_all(
            to_create,
            on_progress=_stage_progress(on_progress, "lookup"),
            cancel=cancel,
        )
        if self._is_cancelled(cancel, outcome):
            return outcome

        outcome.report = await self._importer.import_all(
            ImportInput(
                matched=outcome.match.matched,
                confirmed=confirmed,
                new_with_metadata=outcome.lookups,
            ),
            on_progress=_stage_progress(on_progress, "import"),
            cancel=cancel,
        )
        outcome.cancelled = outcome.report.cancelled
        return outcome

    @staticmethod
    def _is_cancelled(cancel: CancellationToken | None, outcome: SyncOutcome) -> bool:
        if cancel is not None and cancel.cancelled:
            LOGGER.info("Sync cancelled")
            outcome.cancelled = True
            return True
        return False
