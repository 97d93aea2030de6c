"""Kindle clippings parsing primitives."""

from .models import AnnotationEntry, AnnotationKind, DocumentRecord, ParseResult
from .parser import parse_clippings, summarize_parse_result
from .reader import ClippingsReadError, read_clippings_file

__all__ = [
    "AnnotationEntry",
    "AnnotationKind",
    "ClippingsReadError",
    "DocumentRecord",
    "ParseResult",
    "parse_clippings",
    "read_clippings_file",
    "summarize_parse_result",
]
