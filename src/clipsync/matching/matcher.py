"""Reconcile parsed clippings books against an existing catalog.

Every parsed document is scored against every catalog item and lands in
exactly one bucket:

* ``matched``: a confident one-to-one pairing, safe to import directly,
* ``needs_review``: plausible candidates exist but none is confident,
* ``new``: nothing in the catalog comes close.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging

from clipsync.catalog.base import CatalogItem
from clipsync.clippings.models import DocumentRecord
from clipsync.matching.config import MatchThresholds
from clipsync.matching.similarity import dice_coefficient, title_similarity, tokenize


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SimilarityCandidate:
    item: CatalogItem
    title_score: float
    author_score: float


@dataclass(frozen=True, slots=True)
class MatchedDocument:
    document: DocumentRecord
    item: CatalogItem
    title_score: float
    author_score: float


@dataclass(frozen=True, slots=True)
class ReviewDocument:
    document: DocumentRecord
    candidates: tuple[SimilarityCandidate, ...]


@dataclass(frozen=True, slots=True)
class NewDocument:
    document: DocumentRecord


@dataclass(slots=True)
class MatchResult:
    matched: list[MatchedDocument] = field(default_factory=list)
    needs_review: list[ReviewDocument] = field(default_factory=list)
    new: list[NewDocument] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _ItemTokens:
    item: CatalogItem
    title_tokens: frozenset[str]
    author_tokens: frozenset[str]


def _index_catalog(catalog_snapshot: Iterable[CatalogItem]) -> list[_ItemTokens]:
    return [
        _ItemTokens(
            item=item,
            title_tokens=tokenize(item.get_title()),
            author_tokens=tokenize(" ".join(item.get_authors())),
        )
        for item in catalog_snapshot
    ]


def _score_candidates(
    document: DocumentRecord,
    indexed_items: Sequence[_ItemTokens],
    *,
    candidate_threshold: float,
) -> list[SimilarityCandidate]:
    """Candidates above the title floor, best title score first."""

    title_tokens = tokenize(document.display_title)
    author_tokens = tokenize(" ".join(document.authors))

    candidates: list[SimilarityCandidate] = []
    for indexed in indexed_items:
        title_score = title_similarity(title_tokens, indexed.title_tokens)
        if title_score < candidate_threshold:
            continue
        author_score = dice_coefficient(author_tokens, indexed.author_tokens) if author_tokens else 0.0
        candidates.append(SimilarityCandidate(indexed.item, title_score, author_score))

    candidates.sort(key=lambda candidate: (-candidate.title_score, -candidate.author_score))
    return candidates


def match_documents(
    documents: Mapping[str, DocumentRecord],
    catalog_snapshot: Iterable[CatalogItem],
    *,
    thresholds: MatchThresholds | None = None,
) -> MatchResult:
    """Partition documents into matched / needs-review / new."""

    limits = thresholds or MatchThresholds()
    indexed_items = _index_catalog(catalog_snapshot)
    result = MatchResult()

    for document in documents.values():
        candidates = _score_candidates(
            document,
            indexed_items,
            candidate_threshold=limits.candidate_threshold,
        )
        if not candidates:
            result.new.append(NewDocument(document))
            continue

        best = candidates[0]
        has_author_tokens = bool(tokenize(" ".join(document.authors)))
        author_ok = not has_author_tokens or best.author_score >= limits.author_threshold

        if best.title_score >= limits.confident_threshold and author_ok:
            result.matched.append(
                MatchedDocument(
                    document=document,
                    item=best.item,
                    title_score=best.title_score,
                    author_score=best.author_score,
                )
            )
        else:
            result.needs_review.append(
                ReviewDocument(document=document, candidates=tuple(candidates[: limits.max_review_candidates]))
            )

    LOGGER.info(
        "Matched %d, needs review %d, new %d (catalog size %d)",
        len(result.matched),
        len(result.needs_review),
        len(result.new),
        len(indexed_items),
    )
    return result


def summarize_match_result(result: MatchResult) -> str:
    """Human-readable summary of a match result."""

    lines = [
        f"Confident matches:  {len(result.matched)}",
        f"Needs your review:  {len(result.needs_review)}",
        f"New books to add:   {len(result.new)}",
    ]

    if result.matched:
        lines.append("")
        lines.append("Matched books:")
        for matched in result.matched:
            percent = round(matched.title_score * 100)
            lines.append(f'  "{matched.document.display_title}"')
            lines.append(f'    -> "{matched.item.get_title()}" ({percent}% match)')

    if result.needs_review:
        lines.append("")
        lines.append("Needs review:")
        for review in result.needs_review:
            lines.append(f'  "{review.document.display_title}"')
            for candidate in review.candidates:
                percent = round(candidate.title_score * 100)
                lines.append(f'    ? "{candidate.item.get_title()}" ({percent}%)')

    if result.new:
        lines.append("")
        lines.append("New books:")
        for new in result.new:
            authors = ", ".join(new.document.authors) or "(unknown author)"
            lines.append(f'  + "{new.document.display_title}" by {authors}')

    return "\n".join(lines)
