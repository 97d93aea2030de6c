"""Bibliographic metadata lookup for books new to the catalog."""

from .config import LookupSettings
from .models import BookMetadata, LookupQuery, LookupResult, MetadataProvenance
from .resolver import MetadataResolver, kindle_fallback, summarize_lookup_results
from .sources import (
    BibliographicSource,
    GoogleBooksClient,
    LookupRequestError,
    OpenLibraryClient,
    build_default_sources,
)

__all__ = [
    "BibliographicSource",
    "BookMetadata",
    "GoogleBooksClient",
    "LookupQuery",
    "LookupRequestError",
    "LookupResult",
    "LookupSettings",
    "MetadataProvenance",
    "MetadataResolver",
    "OpenLibraryClient",
    "build_default_sources",
    "kindle_fallback",
    "summarize_lookup_results",
]
