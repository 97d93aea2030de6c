"""Read-only catalog snapshots from a Zotero library CSV export."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
import re
from collections.abc import Iterable

from clipsync.catalog.base import DEFAULT_ITEM_TYPES
from clipsync.clippings.normalization import normalize_author_name


_AUTHOR_SEPARATOR_RE = re.compile(r"\s*(?:;|\|\|)\s*")


@dataclass(frozen=True, slots=True)
class ExportedItem:
    """One exported library row, usable as a :class:`CatalogItem`."""

    row_number: int
    item_type: str
    title: str
    authors: tuple[str, ...] = ()

    @property
    def id(self) -> int:
        return self.row_number

    def get_title(self) -> str:
        return self.title

    def get_authors(self) -> list[str]:
        return list(self.authors)


def parse_export_authors(raw: str) -> tuple[str, ...]:
    """Split ``Last, First; Last2, First2`` (or ``||``-separated) into ``First Last`` names."""

    names = (normalize_author_name(piece) for piece in _AUTHOR_SEPARATOR_RE.split(raw.strip()) if piece.strip())
    return tuple(name for name in names if name)


def read_catalog_export(lines: Iterable[str], item_types: Iterable[str] = DEFAULT_ITEM_TYPES) -> list[ExportedItem]:
    allowed = {item_type.lower() for item_type in item_types}
    reader = csv.DictReader(lines)

    items: list[ExportedItem] = []
    for row_number, row in enumerate(reader, start=2):
        item_type = (row.get("Item Type") or "").strip()
        title = (row.get("Title") or "").strip()
        if not title or item_type.lower() not in allowed:
            continue
        items.append(
            ExportedItem(
                row_number=row_number,
                item_type=item_type,
                title=title,
                authors=parse_export_authors(row.get("Author") or ""),
            )
        )
    return items


def load_catalog_export(
    path: str | Path,
    item_types: Iterable[str] = DEFAULT_ITEM_TYPES,
) -> list[ExportedItem]:
    """Load book-like rows from a Zotero ``File -> Export Library -> CSV`` file."""

    with Path(path).open("r", encoding="utf-8-sig", newline="") as handle:
        return read_catalog_export(handle, item_types)
