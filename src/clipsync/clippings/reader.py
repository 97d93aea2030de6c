"""Read clippings exports with charset detection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from charset_normalizer import from_bytes

_FALLBACK_ENCODINGS = ("utf-8-sig", "cp1252")


@dataclass(slots=True)
class ClippingsReadError(Exception):
    """Raised when a clippings file cannot be read or decoded."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


def detect_encoding(raw: bytes) -> str:
    """Best-guess encoding for raw clippings bytes."""

    if raw.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"

    best = from_bytes(raw).best()
    if best and best.encoding:
        return best.encoding

    for fallback in _FALLBACK_ENCODINGS:
        try:
            raw.decode(fallback)
            return fallback
        except UnicodeDecodeError:
            continue
    raise ValueError("Could not detect clippings encoding")


def read_clippings_file(path: str | Path) -> str:
    """Return the decoded text of a ``My Clippings.txt`` export."""

    source = Path(path)
    try:
        raw = source.read_bytes()
    except OSError as exc:
        raise ClippingsReadError(source, f"Failed to read clippings file: {exc}") from exc

    if not raw:
        return ""

    try:
        encoding = detect_encoding(raw)
        return raw.decode(encoding)
    except (ValueError, UnicodeDecodeError, LookupError) as exc:
        raise ClippingsReadError(source, f"Failed to decode clippings file: {exc}") from exc
