"""Collaborator contracts for the reference catalog the importer writes into."""

from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


DEFAULT_ITEM_TYPES = ("book", "bookSection")

ItemId = Hashable
CollectionId = Hashable
ArtifactId = Hashable


@runtime_checkable
class CatalogItem(Protocol):
    """Read capability every catalog record exposes to the matcher."""

    def get_title(self) -> str:
        """Return the record title (empty string when missing)."""

    def get_authors(self) -> list[str]:
        """Return author names as ``First Last`` strings."""


@dataclass(frozen=True, slots=True)
class ItemFilter:
    """Restrict catalog listings to regular items of the given types."""

    item_types: tuple[str, ...] = DEFAULT_ITEM_TYPES


@dataclass(frozen=True, slots=True)
class ExistingArtifact:
    """A previously written highlights note attached to a catalog item."""

    id: ArtifactId
    content: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class NewRecord:
    """Fields used to create a catalog record for a book new to the catalog."""

    title: str
    authors: tuple[str, ...] = ()
    publisher: str | None = None
    year: str | None = None
    isbn: str | None = None
    language: str | None = None
    num_pages: int | None = None
    collection_id: CollectionId | None = None
    item_type: str = "book"


class CatalogCollaborator(Protocol):
    """Storage operations the matcher and importer need from a catalog."""

    async def list_items(self, item_filter: ItemFilter | None = None) -> list[CatalogItem]: ...

    def get_item_id(self, item: CatalogItem) -> ItemId: ...

    async def get_existing_artifact(
        self,
        item_id: ItemId,
        identity_key: str | None = None,
    ) -> ExistingArtifact | None: ...

    async def delete_artifact(self, artifact_id: ArtifactId) -> None: ...

    async def create_artifact(
        self,
        item_id: ItemId,
        content: str,
        tags: Sequence[str] = (),
    ) -> ArtifactId: ...

    async def add_to_collection(self, item_id: ItemId, collection_id: CollectionId) -> None: ...

    async def create_record(self, record: NewRecord) -> ItemId: ...

    async def get_or_create_collection(self, name: str) -> CollectionId: ...


def _creator_name(creator: Any) -> str:
    if isinstance(creator, str):
        return creator.strip()
    if isinstance(creator, Mapping):
        first = str(creator.get("firstName") or "").strip()
        last = str(creator.get("lastName") or "").strip()
        name = str(creator.get("name") or "").strip()
        return " ".join(part for part in (first, last) if part) or name
    return str(creator).strip()


@dataclass(frozen=True, slots=True)
class MappingCatalogItem:
    """Adapter giving dict-shaped records the :class:`CatalogItem` capability.

    Accepts ``{"id": ..., "title": ..., "creators": [...]}`` where creators are
    either plain name strings or ``{"firstName", "lastName"}`` mappings. Only
    creators of type ``author`` (or without a type) are reported as authors.
    """

    data: Mapping[str, Any]

    @property
    def id(self) -> Any:
        return self.data.get("id")

    def get_title(self) -> str:
        return str(self.data.get("title") or "")

    def get_authors(self) -> list[str]:
        authors: list[str] = []
        for creator in self.data.get("creators") or ():
            if isinstance(creator, Mapping) and creator.get("creatorType", "author") != "author":
                continue
            name = _creator_name(creator)
            if name:
                authors.append(name)
        return authors
