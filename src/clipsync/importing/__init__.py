"""Highlights note rendering, fingerprinting and the catalog write path."""

from clipsync.importing.artifact import build_artifact, escape_markup, format_location
from clipsync.importing.fingerprint import (
    LEGACY_TAG,
    MARKER_VERSION,
    ArtifactMarker,
    Fingerprint,
    compute_fingerprint,
    djb2_hash,
    is_managed_artifact,
    parse_marker,
    render_marker,
    select_managed_artifact,
)
from clipsync.importing.importer import (
    DEFAULT_COLLECTION_NAME,
    ClippingsImporter,
    ImportAction,
    ImportFailure,
    ImportInput,
    ImportReport,
    summarize_import_report,
)

__all__ = [
    "DEFAULT_COLLECTION_NAME",
    "LEGACY_TAG",
    "MARKER_VERSION",
    "ArtifactMarker",
    "ClippingsImporter",
    "Fingerprint",
    "ImportAction",
    "ImportFailure",
    "ImportInput",
    "ImportReport",
    "build_artifact",
    "compute_fingerprint",
    "djb2_hash",
    "escape_markup",
    "format_location",
    "is_managed_artifact",
    "parse_marker",
    "render_marker",
    "select_managed_artifact",
    "summarize_import_report",
]
