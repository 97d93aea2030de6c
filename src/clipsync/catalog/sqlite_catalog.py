"""SQLite-backed reference catalog implementing :class:`CatalogCollaborator`."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import sqlite3
from collections.abc import Sequence

from clipsync.catalog.base import CatalogItem, ExistingArtifact, ItemFilter, NewRecord
from clipsync.catalog.schema import apply_runtime_pragmas, ensure_schema
from clipsync.importing.fingerprint import select_managed_artifact


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogRecord:
    """A catalog item row with its author creators."""

    id: int
    item_type: str
    title: str
    authors: tuple[str, ...] = ()

    def get_title(self) -> str:
        return self.title

    def get_authors(self) -> list[str]:
        return list(self.authors)


def split_creator_name(name: str) -> tuple[str, str]:
    """Split ``First Middle Last`` into ``("First Middle", "Last")``."""

    parts = name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return "", parts[0]
    return " ".join(parts[:-1]), parts[-1]


class SqliteCatalog:
    """Local catalog of items, creators, collections and child notes.

    The async methods run their sqlite3 calls synchronously on the calling
    event loop thread; each call is a short local transaction.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._connection = sqlite3.connect(self._db_path)
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "SqliteCatalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _authors_for(self, item_id: int) -> tuple[str, ...]:
        rows = self._connection.execute(
            """
            SELECT first_name, last_name
            FROM creators
            WHERE item_id = ? AND creator_type = 'author'
            ORDER BY position ASC
            """,
            (item_id,),
        ).fetchall()
        names = (" ".join(part for part in (row["first_name"], row["last_name"]) if part) for row in rows)
        return tuple(name for name in names if name)

    async def list_items(self, item_filter: ItemFilter | None = None) -> list[CatalogItem]:
        item_filter = item_filter or ItemFilter()
        if not item_filter.item_types:
            return []

        placeholders = ", ".join("?" for _ in item_filter.item_types)
        rows = self._connection.execute(
            f"SELECT id, item_type, title FROM items WHERE item_type IN ({placeholders}) ORDER BY id ASC",
            tuple(item_filter.item_types),
        ).fetchall()
        return [
            CatalogRecord(
                id=int(row["id"]),
                item_type=row["item_type"],
                title=row["title"] or "",
                authors=self._authors_for(int(row["id"])),
            )
            for row in rows
        ]

    def get_item_id(self, item: CatalogItem) -> int:
        item_id = getattr(item, "id", None)
        if item_id is None:
            raise ValueError("catalog item has no id")
        return int(item_id)

    async def get_existing_artifact(self, item_id: int, identity_key: str | None = None) -> ExistingArtifact | None:
        return select_managed_artifact(self.list_notes(item_id), identity_key)

    def note_tags(self, note_id: int) -> tuple[str, ...]:
        rows = self._connection.execute(
            "SELECT tag FROM note_tags WHERE note_id = ? ORDER BY tag ASC",
            (note_id,),
        ).fetchall()
        return tuple(row["tag"] for row in rows)

    def list_notes(self, item_id: int) -> list[ExistingArtifact]:
        rows = self._connection.execute(
            "SELECT id, content FROM notes WHERE parent_item_id = ? ORDER BY id ASC",
            (item_id,),
        ).fetchall()
        return [
            ExistingArtifact(id=int(row["id"]), content=row["content"], tags=self.note_tags(int(row["id"])))
            for row in rows
        ]

    async def delete_artifact(self, artifact_id: int) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM notes WHERE id = ?", (artifact_id,))

    async def create_artifact(self, item_id: int, content: str, tags: Sequence[str] = ()) -> int:
        with self._connection:
            cursor = self._connection.execute(
                "INSERT INTO notes (parent_item_id, content) VALUES (?, ?)",
                (item_id, content),
            )
            note_id = int(cursor.lastrowid)
            self._connection.executemany(
                "INSERT OR IGNORE INTO note_tags (note_id, tag) VALUES (?, ?)",
                [(note_id, tag) for tag in tags],
            )
        return note_id

    async def add_to_collection(self, item_id: int, collection_id: int) -> None:
        with self._connection:
            self._connection.execute(
                "INSERT OR IGNORE INTO collection_items (collection_id, item_id) VALUES (?, ?)",
                (collection_id, item_id),
            )

    def collection_item_ids(self, collection_id: int) -> list[int]:
        rows = self._connection.execute(
            "SELECT item_id FROM collection_items WHERE collection_id = ? ORDER BY item_id ASC",
            (collection_id,),
        ).fetchall()
        return [int(row["item_id"]) for row in rows]

    async def create_record(self, record: NewRecord) -> int:
        with self._connection:
            cursor = self._connection.execute(
                """
                INSERT INTO items (item_type, title, publisher, year, isbn, language, num_pages)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.item_type,
                    record.title,
                    record.publisher,
                    record.year,
                    record.isbn,
                    record.language,
                    record.num_pages,
                ),
            )
            item_id = int(cursor.lastrowid)
            self._connection.executemany(
                """
                INSERT INTO creators (item_id, position, creator_type, first_name, last_name)
                VALUES (?, ?, 'author', ?, ?)
                """,
                [
                    (item_id, position, *split_creator_name(name))
                    for position, name in enumerate(record.authors)
                    if name.strip()
                ],
            )
            if record.collection_id is not None:
                self._connection.execute(
                    "INSERT OR IGNORE INTO collection_items (collection_id, item_id) VALUES (?, ?)",
                    (record.collection_id, item_id),
                )
        LOGGER.debug("Created catalog item %d for %r", item_id, record.title)
        return item_id

    async def get_or_create_collection(self, name: str) -> int:
        name = name.strip()
        if not name:
            raise ValueError("collection name cannot be empty")

        row = self._connection.execute("SELECT id FROM collections WHERE name = ?", (name,)).fetchone()
        if row is not None:
            return int(row["id"])

        with self._connection:
            cursor = self._connection.execute("INSERT INTO collections (name) VALUES (?)", (name,))
        LOGGER.info("Created collection %r", name)
        return int(cursor.lastrowid)

    def get_item(self, item_id: int) -> sqlite3.Row | None:
        return self._connection.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
