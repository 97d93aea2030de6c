"""Fuzzy matching of clippings books against catalog records."""

from .config import MatchThresholds
from .matcher import (
    MatchedDocument,
    MatchResult,
    NewDocument,
    ReviewDocument,
    SimilarityCandidate,
    match_documents,
    summarize_match_result,
)
from .similarity import dice_coefficient, score_title_match, title_similarity, tokenize

__all__ = [
    "MatchResult",
    "MatchThresholds",
    "MatchedDocument",
    "NewDocument",
    "ReviewDocument",
    "SimilarityCandidate",
    "dice_coefficient",
    "match_documents",
    "score_title_match",
    "summarize_match_result",
    "title_similarity",
    "tokenize",
]
