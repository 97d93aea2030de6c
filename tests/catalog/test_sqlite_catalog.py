from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from clipsync.catalog.base import CatalogItem, ItemFilter, NewRecord
from clipsync.catalog.csv_export import load_catalog_export, parse_export_authors
from clipsync.catalog.sqlite_catalog import SqliteCatalog, split_creator_name
from clipsync.importing.fingerprint import LEGACY_TAG, Fingerprint, render_marker


def test_split_creator_name_uses_last_word_as_last_name() -> None:
    assert split_creator_name("Robert C. Martin") == ("Robert C.", "Martin")
    assert split_creator_name("Plato") == ("", "Plato")
    assert split_creator_name("   ") == ("", "")


def test_create_and_list_records_round_trip_authors() -> None:
    async def _scenario() -> None:
        with SqliteCatalog(":memory:") as catalog:
            book_id = await catalog.create_record(NewRecord(title="Clean Code", authors=("Robert C. Martin",)))
            await catalog.create_record(NewRecord(title="Some Paper", item_type="journalArticle"))

            items = await catalog.list_items(ItemFilter())

            assert len(items) == 1
            assert isinstance(items[0], CatalogItem)
            assert items[0].get_title() == "Clean Code"
            assert items[0].get_authors() == ["Robert C. Martin"]
            assert catalog.get_item_id(items[0]) == book_id

            row = catalog.connection.execute(
                "SELECT first_name, last_name FROM creators WHERE item_id = ?", (book_id,)
            ).fetchone()
            assert (row["first_name"], row["last_name"]) == ("Robert C.", "Martin")

            articles = await catalog.list_items(ItemFilter(item_types=("journalArticle",)))
            assert [item.get_title() for item in articles] == ["Some Paper"]

    asyncio.run(_scenario())


def test_collections_are_reused_and_membership_is_idempotent() -> None:
    async def _scenario() -> None:
        with SqliteCatalog(":memory:") as catalog:
            first = await catalog.get_or_create_collection("Kindle Imports")
            second = await catalog.get_or_create_collection("Kindle Imports")
            item_id = await catalog.create_record(NewRecord(title="Deep Work", collection_id=first))

            await catalog.add_to_collection(item_id, first)
            await catalog.add_to_collection(item_id, first)

            assert first == second
            assert catalog.collection_item_ids(first) == [item_id]

            with pytest.raises(ValueError, match="collection name"):
                await catalog.get_or_create_collection("  ")

    asyncio.run(_scenario())


def test_existing_artifact_ignores_unmanaged_notes() -> None:
    async def _scenario() -> None:
        with SqliteCatalog(":memory:") as catalog:
            item_id = await catalog.create_record(NewRecord(title="Deep Work"))
            await catalog.create_artifact(item_id, "<p>My own reading notes</p>")
            assert await catalog.get_existing_artifact(item_id) is None

            legacy_id = await catalog.create_artifact(item_id, "<h1>Kindle Notes</h1>", tags=(LEGACY_TAG,))
            existing = await catalog.get_existing_artifact(item_id)

            assert existing is not None
            assert existing.id == legacy_id
            assert existing.tags == (LEGACY_TAG,)

            await catalog.delete_artifact(legacy_id)
            assert await catalog.get_existing_artifact(item_id) is None
            assert len(catalog.list_notes(item_id)) == 1

    asyncio.run(_scenario())


def test_catalog_persists_to_disk(tmp_path: Path) -> None:
    db_path = tmp_path / "catalog.db"

    async def _create() -> None:
        with SqliteCatalog(db_path) as catalog:
            await catalog.create_record(NewRecord(title="Sapiens", authors=("Yuval Noah Harari",), year="2014"))

    async def _read() -> list[CatalogItem]:
        with SqliteCatalog(db_path) as catalog:
            return await catalog.list_items()

    asyncio.run(_create())
    items = asyncio.run(_read())

    assert [item.get_authors() for item in items] == [["Yuval Noah Harari"]]


def test_parse_export_authors_supports_both_separators() -> None:
    assert parse_export_authors("Gamma, Erich; Helm, Richard") == ("Erich Gamma", "Richard Helm")
    assert parse_export_authors("Martin, Robert C. || Feathers, Michael") == ("Robert C. Martin", "Michael Feathers")
    assert parse_export_authors("") == ()


def test_load_catalog_export_filters_item_types(tmp_path: Path) -> None:
    csv_path = tmp_path / "My_Library.csv"
    csv_path.write_text(
        "\ufeff"
        '"Key","Item Type","Publication Year","Author","Title"\n'
        '"A1","book","2008","Martin, Robert C.","Clean Code"\n'
        '"A2","journalArticle","2019","Doe, Jane","A Study, With Commas"\n'
        '"A3","bookSection","2016","Newport, Cal","Deep Work\nChapter One"\n'
        '"A4","book","2020","Someone, Else",""\n',
        encoding="utf-8",
    )

    items = load_catalog_export(csv_path)

    assert [item.get_title() for item in items] == ["Clean Code", "Deep Work\nChapter One"]
    assert items[0].get_authors() == ["Robert C. Martin"]
    assert items[1].item_type == "bookSection"


def test_existing_artifact_is_selected_by_identity_key() -> None:
    async def _scenario() -> None:
        with SqliteCatalog(":memory:") as catalog:
            item_id = await catalog.create_record(NewRecord(title="Thinking, Fast and Slow"))
            solo_id = await catalog.create_artifact(item_id, render_marker(Fingerprint(1, "aa", "thinking::solo")))
            joint_id = await catalog.create_artifact(item_id, render_marker(Fingerprint(1, "bb", "thinking::joint")))

            assert (await catalog.get_existing_artifact(item_id, "thinking::joint")).id == joint_id
            assert (await catalog.get_existing_artifact(item_id, "thinking::solo")).id == solo_id
            assert await catalog.get_existing_artifact(item_id, "thinking::third") is None
            assert (await catalog.get_existing_artifact(item_id)).id == solo_id

    asyncio.run(_scenario())
