"""Threshold configuration for catalog matching."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_CANDIDATE_THRESHOLD = 0.60
DEFAULT_CONFIDENT_THRESHOLD = 0.85
DEFAULT_AUTHOR_THRESHOLD = 0.50
DEFAULT_MAX_REVIEW_CANDIDATES = 5


def _parse_unit_float(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0")
    return value


@dataclass(frozen=True, slots=True)
class MatchThresholds:
    """Score floors that decide matched / needs-review / new."""

    candidate_threshold: float = DEFAULT_CANDIDATE_THRESHOLD
    confident_threshold: float = DEFAULT_CONFIDENT_THRESHOLD
    author_threshold: float = DEFAULT_AUTHOR_THRESHOLD
    max_review_candidates: int = DEFAULT_MAX_REVIEW_CANDIDATES

    def __post_init__(self) -> None:
        for name in ("candidate_threshold", "confident_threshold", "author_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")
        if self.confident_threshold < self.candidate_threshold:
            raise ValueError("confident_threshold cannot be below candidate_threshold")
        if self.max_review_candidates < 1:
            raise ValueError("max_review_candidates must be >= 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MatchThresholds":
        source: Mapping[str, str] = os.environ if environ is None else environ

        candidate_raw = source.get("CLIPSYNC_CANDIDATE_THRESHOLD", str(DEFAULT_CANDIDATE_THRESHOLD)).strip()
        confident_raw = source.get("CLIPSYNC_CONFIDENT_THRESHOLD", str(DEFAULT_CONFIDENT_THRESHOLD)).strip()
        author_raw = source.get("CLIPSYNC_AUTHOR_THRESHOLD", str(DEFAULT_AUTHOR_THRESHOLD)).strip()
        review_raw = source.get("CLIPSYNC_MAX_REVIEW_CANDIDATES", str(DEFAULT_MAX_REVIEW_CANDIDATES)).strip()

        if not candidate_raw:
            raise ValueError("CLIPSYNC_CANDIDATE_THRESHOLD cannot be empty")
        if not confident_raw:
            raise ValueError("CLIPSYNC_CONFIDENT_THRESHOLD cannot be empty")
        if not author_raw:
            raise ValueError("CLIPSYNC_AUTHOR_THRESHOLD cannot be empty")
        if not review_raw:
            raise ValueError("CLIPSYNC_MAX_REVIEW_CANDIDATES cannot be empty")

        max_review_candidates = int(review_raw)
        if max_review_candidates < 1:
            raise ValueError("CLIPSYNC_MAX_REVIEW_CANDIDATES must be >= 1")

        return cls(
            candidate_threshold=_parse_unit_float(name="CLIPSYNC_CANDIDATE_THRESHOLD", raw_value=candidate_raw),
            confident_threshold=_parse_unit_float(name="CLIPSYNC_CONFIDENT_THRESHOLD", raw_value=confident_raw),
            author_threshold=_parse_unit_float(name="CLIPSYNC_AUTHOR_THRESHOLD", raw_value=author_raw),
            max_review_candidates=max_review_candidates,
        )
