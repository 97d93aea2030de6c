"""Text normalization helpers for clipping titles, authors and keys."""

from __future__ import annotations

import re
from collections.abc import Sequence

_WHITESPACE_RE = re.compile(r"\s+")
_FULLWIDTH_COLON_RE = re.compile("[\uff1a\ufe55]")


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_title(title: str) -> str:
    """Trim, collapse whitespace and map full-width colons to ASCII."""

    return _FULLWIDTH_COLON_RE.sub(":", normalize_whitespace(title)).strip()


def normalize_author_name(name: str) -> str:
    """Convert ``Last, First`` to ``First Last``; other names pass through."""

    if "," not in name:
        return name.strip()

    last, first = name.split(",", 1)
    last = last.strip()
    first = first.strip()
    return f"{first} {last}" if first else last


def split_authors(author_field: str) -> list[str]:
    """Split a ``;``-separated author field into normalized names."""

    pieces = [piece.strip() for piece in author_field.split(";")]
    return [normalize_author_name(piece) for piece in pieces if piece]


def make_document_key(title: str, authors: Sequence[str]) -> str:
    """Stable identity for a book: ``title::author1,author2``."""

    title_key = normalize_whitespace(title.lower())
    author_key = ",".join(sorted(author.lower() for author in authors))
    return f"{title_key}::{author_key}"
