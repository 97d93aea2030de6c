"""Environment-driven settings for a full clippings sync run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import os
from pathlib import Path
from typing import Mapping

from clipsync.importing.importer import DEFAULT_COLLECTION_NAME
from clipsync.lookup.config import LookupSettings
from clipsync.matching.config import MatchThresholds


DEFAULT_DB_PATH = ".clipsync/catalog.db"


class ReviewPolicy(str, Enum):
    """Non-interactive handling of documents that need review."""

    SKIP = "skip"
    ACCEPT_TOP = "accept-top"
    AS_NEW = "as-new"

    @classmethod
    def parse(cls, raw_value: str, *, name: str = "review policy") -> "ReviewPolicy":
        normalized = raw_value.strip().lower().replace("_", "-")
        for policy in cls:
            if policy.value == normalized:
                return policy
        choices = ", ".join(policy.value for policy in cls)
        raise ValueError(f"{name} must be one of: {choices}")


@dataclass(frozen=True, slots=True)
class SyncSettings:
    db_path: Path = Path(DEFAULT_DB_PATH)
    collection_name: str = DEFAULT_COLLECTION_NAME
    review_policy: ReviewPolicy = ReviewPolicy.SKIP
    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    lookup: LookupSettings = field(default_factory=LookupSettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SyncSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        db_path = source.get("CLIPSYNC_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path:
            raise ValueError("CLIPSYNC_DB_PATH cannot be empty")

        collection_name = source.get("CLIPSYNC_COLLECTION_NAME", DEFAULT_COLLECTION_NAME).strip()
        if not collection_name:
            raise ValueError("CLIPSYNC_COLLECTION_NAME cannot be empty")

        review_policy = ReviewPolicy.parse(
            source.get("CLIPSYNC_REVIEW_POLICY", ReviewPolicy.SKIP.value),
            name="CLIPSYNC_REVIEW_POLICY",
        )

        return cls(
            db_path=Path(db_path),
            collection_name=collection_name,
            review_policy=review_policy,
            thresholds=MatchThresholds.from_env(source),
            lookup=LookupSettings.from_env(source),
        )
