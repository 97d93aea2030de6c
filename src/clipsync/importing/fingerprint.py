"""Content fingerprints embedded in written highlights notes.

A note carries a machine-readable marker in its first line::

    <!-- clipsync:meta version=1; clip_count=12; content_hash=9f0c1a2b; identity_key=clean%20code%3A%3Arobert%20martin -->

The fingerprint lets a later run tell whether a book's clippings changed
since the note was written without keeping any external state. Notes
written by the earlier plugin format (a JSON comment) are still recognized
and reported as marker version 0.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import quote, unquote

from clipsync.clippings.models import DocumentRecord

if TYPE_CHECKING:
    from clipsync.catalog.base import ExistingArtifact


MARKER_VERSION = 1
MARKER_NAME = "clipsync:meta"
LEGACY_MARKER_NAME = "kindle-import-meta"
LEGACY_TAG = "kindle-import"

_MARKER_RE = re.compile(rf"<!--\s*{re.escape(MARKER_NAME)}\s+(.*?)\s*-->", re.DOTALL)
_LEGACY_MARKER_RE = re.compile(rf"<!--\s*{re.escape(LEGACY_MARKER_NAME)}:\s*(\{{[^}}]+\}})\s*-->")


@dataclass(frozen=True, slots=True)
class Fingerprint:
    clip_count: int
    content_hash: str
    identity_key: str


@dataclass(frozen=True, slots=True)
class ArtifactMarker:
    """Fingerprint recovered from a note plus the marker schema version."""

    version: int
    fingerprint: Fingerprint

    @property
    def is_current(self) -> bool:
        return self.version == MARKER_VERSION


def djb2_hash(text: str) -> str:
    """32-bit djb2 hash as lowercase hex; stable across runs and platforms."""

    value = 5381
    for char in text:
        value = ((value << 5) + value + ord(char)) & 0xFFFFFFFF
    return format(value, "x")


def compute_fingerprint(document: DocumentRecord) -> Fingerprint:
    """Fingerprint a document's merged highlights and notes.

    Clips are ordered canonically by ``(location, text)`` so that input order
    never changes the hash while any edit, addition or removal does.
    """

    clips = sorted(
        [*document.highlights, *document.notes],
        key=lambda entry: (entry.sort_location, entry.text),
    )
    hash_input = "|".join(f"{entry.sort_location}:{entry.text}" for entry in clips)
    return Fingerprint(
        clip_count=len(clips),
        content_hash=djb2_hash(hash_input),
        identity_key=document.key,
    )


def render_marker(fingerprint: Fingerprint) -> str:
    fields = {
        "version": str(MARKER_VERSION),
        "clip_count": str(fingerprint.clip_count),
        "content_hash": fingerprint.content_hash,
        "identity_key": fingerprint.identity_key,
    }
    body = "; ".join(f"{key}={quote(value, safe='')}" for key, value in fields.items())
    return f"<!-- {MARKER_NAME} {body} -->"


def _parse_current(body: str) -> ArtifactMarker | None:
    fields: dict[str, str] = {}
    for pair in body.split(";"):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        fields[key.strip()] = unquote(value.strip())

    try:
        version = int(fields["version"])
        fingerprint = Fingerprint(
            clip_count=int(fields["clip_count"]),
            content_hash=fields["content_hash"],
            identity_key=fields.get("identity_key", ""),
        )
    except (KeyError, ValueError):
        return None
    return ArtifactMarker(version=version, fingerprint=fingerprint)


def _parse_legacy(raw_json: str) -> ArtifactMarker | None:
    try:
        data = json.loads(raw_json)
        fingerprint = Fingerprint(
            clip_count=int(data.get("count", 0)),
            content_hash=str(data["hash"]),
            identity_key=str(data.get("kindleKey", "")),
        )
    except (ValueError, KeyError, TypeError, AttributeError):
        return None
    return ArtifactMarker(version=0, fingerprint=fingerprint)


def parse_marker(content: str) -> ArtifactMarker | None:
    """Recover the marker from note content; ``None`` when absent or malformed."""

    match = _MARKER_RE.search(content)
    if match is not None:
        return _parse_current(match.group(1))

    legacy = _LEGACY_MARKER_RE.search(content)
    if legacy is not None:
        return _parse_legacy(legacy.group(1))
    return None


def is_managed_artifact(content: str, tags: Iterable[str] = ()) -> bool:
    """True when a note was written by this importer (marker or legacy tag)."""

    if _MARKER_RE.search(content) or _LEGACY_MARKER_RE.search(content):
        return True
    return LEGACY_TAG in set(tags)


def select_managed_artifact(
    artifacts: Iterable[ExistingArtifact],
    identity_key: str | None = None,
) -> ExistingArtifact | None:
    """Pick the managed note owned by the document with ``identity_key``.

    A note whose marker carries the same identity key wins. Otherwise the
    first legacy or keyless managed note is claimed. Current notes written
    for another document sharing the catalog item are never returned.
    Without a key the first managed note is returned.
    """

    fallback: ExistingArtifact | None = None
    for artifact in artifacts:
        if not is_managed_artifact(artifact.content, artifact.tags):
            continue
        if identity_key is None:
            return artifact

        marker = parse_marker(artifact.content)
        if marker is not None and marker.fingerprint.identity_key == identity_key:
            return artifact
        unowned = marker is None or not marker.is_current or not marker.fingerprint.identity_key
        if fallback is None and unowned:
            fallback = artifact
    return fallback
