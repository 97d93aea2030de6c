"""Runtime configuration for bibliographic metadata lookups."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
DEFAULT_OPEN_LIBRARY_URL = "https://openlibrary.org/search.json"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_PACING_SECONDS = 0.3
DEFAULT_CONFIDENCE_FLOOR = 0.55
DEFAULT_REVIEW_FLOOR = 0.75


def _validate_url(*, name: str, value: str) -> str:
    if not value:
        raise ValueError(f"{name} cannot be empty")
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ValueError(f"{name} must start with http:// or https://")
    return value.rstrip("/")


def _parse_non_negative_float(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if value < 0.0:
        raise ValueError(f"{name} cannot be negative")
    return value


def _parse_unit_float(*, name: str, raw_value: str) -> float:
    value = float(raw_value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0")
    return value


@dataclass(frozen=True, slots=True)
class LookupSettings:
    """Validated settings for Google Books / Open Library lookups."""

    google_books_url: str = DEFAULT_GOOGLE_BOOKS_URL
    open_library_url: str = DEFAULT_OPEN_LIBRARY_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    pacing_seconds: float = DEFAULT_PACING_SECONDS
    confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR
    review_floor: float = DEFAULT_REVIEW_FLOOR

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LookupSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        google_url = source.get("CLIPSYNC_GOOGLE_BOOKS_URL", DEFAULT_GOOGLE_BOOKS_URL).strip()
        open_library_url = source.get("CLIPSYNC_OPEN_LIBRARY_URL", DEFAULT_OPEN_LIBRARY_URL).strip()
        timeout_raw = source.get("CLIPSYNC_LOOKUP_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)).strip()
        retries_raw = source.get("CLIPSYNC_LOOKUP_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)).strip()
        pacing_raw = source.get("CLIPSYNC_LOOKUP_PACING_SECONDS", str(DEFAULT_PACING_SECONDS)).strip()
        confidence_raw = source.get("CLIPSYNC_LOOKUP_CONFIDENCE_FLOOR", str(DEFAULT_CONFIDENCE_FLOOR)).strip()
        review_raw = source.get("CLIPSYNC_LOOKUP_REVIEW_FLOOR", str(DEFAULT_REVIEW_FLOOR)).strip()

        timeout_seconds = _parse_non_negative_float(name="CLIPSYNC_LOOKUP_TIMEOUT_SECONDS", raw_value=timeout_raw)
        if timeout_seconds == 0.0:
            raise ValueError("CLIPSYNC_LOOKUP_TIMEOUT_SECONDS must be positive")

        max_retries = int(retries_raw)
        if max_retries < 0:
            raise ValueError("CLIPSYNC_LOOKUP_MAX_RETRIES cannot be negative")

        return cls(
            google_books_url=_validate_url(name="CLIPSYNC_GOOGLE_BOOKS_URL", value=google_url),
            open_library_url=_validate_url(name="CLIPSYNC_OPEN_LIBRARY_URL", value=open_library_url),
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
            pacing_seconds=_parse_non_negative_float(name="CLIPSYNC_LOOKUP_PACING_SECONDS", raw_value=pacing_raw),
            confidence_floor=_parse_unit_float(name="CLIPSYNC_LOOKUP_CONFIDENCE_FLOOR", raw_value=confidence_raw),
            review_floor=_parse_unit_float(name="CLIPSYNC_LOOKUP_REVIEW_FLOOR", raw_value=review_raw),
        )
