"""HTML rendering of the highlights note attached to a catalog item."""

from __future__ import annotations

from datetime import date
import html

from clipsync.clippings.models import AnnotationEntry, AnnotationKind, DocumentRecord
from clipsync.importing.fingerprint import compute_fingerprint, render_marker

_SEPARATOR = " · "


def escape_markup(text: str) -> str:
    """Escape ``& < > " '`` for inclusion in note HTML."""

    return html.escape(str(text), quote=True)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_long_date(value: date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def format_location(entry: AnnotationEntry) -> str:
    """Caption like ``Page 23 · Location 342–344 · Jan 5, 2025``."""

    parts: list[str] = []
    if entry.page:
        parts.append(f"Page {entry.page}")
    if entry.location_start:
        if entry.location_end and entry.location_end != entry.location_start:
            parts.append(f"Location {entry.location_start}–{entry.location_end}")
        else:
            parts.append(f"Location {entry.location_start}")
    if entry.added_at is not None:
        added = entry.added_at
        parts.append(f"{added:%b} {added.day}, {added.year}")
    return _SEPARATOR.join(parts) or "No location data"


def build_artifact(document: DocumentRecord, *, imported_on: date) -> str:
    """Render the note body, fingerprint marker first."""

    lines = [
        render_marker(compute_fingerprint(document)),
        f"<h1>{escape_markup(document.display_title)}</h1>",
        (
            f"<p><em>Imported on {format_long_date(imported_on)}{_SEPARATOR}"
            f"{_plural(len(document.highlights), 'highlight')}, {_plural(len(document.notes), 'note')}</em></p>"
        ),
        "<hr/>",
    ]

    for entry in document.merged_annotations():
        if entry.kind is AnnotationKind.HIGHLIGHT:
            lines.append(f"<blockquote>{escape_markup(entry.text)}</blockquote>")
        else:
            lines.append(f"<p><strong>Note:</strong> {escape_markup(entry.text)}</p>")
        lines.append(f"<p><small>{escape_markup(format_location(entry))}</small></p>")
        lines.append("<p></p>")

    return "\n".join(lines)
