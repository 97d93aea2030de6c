"""Reference catalog contracts and the bundled SQLite and CSV implementations."""

from clipsync.catalog.base import (
    DEFAULT_ITEM_TYPES,
    CatalogCollaborator,
    CatalogItem,
    ExistingArtifact,
    ItemFilter,
    MappingCatalogItem,
    NewRecord,
)
from clipsync.catalog.csv_export import ExportedItem, load_catalog_export, parse_export_authors
from clipsync.catalog.sqlite_catalog import CatalogRecord, SqliteCatalog, split_creator_name

__all__ = [
    "DEFAULT_ITEM_TYPES",
    "CatalogCollaborator",
    "CatalogItem",
    "CatalogRecord",
    "ExistingArtifact",
    "ExportedItem",
    "ItemFilter",
    "MappingCatalogItem",
    "NewRecord",
    "SqliteCatalog",
    "load_catalog_export",
    "parse_export_authors",
    "split_creator_name",
]
