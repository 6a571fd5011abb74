import asyncio
import json
from pathlib import Path

import pytest

from gamedocs import (
    FileStoreOpener,
    InMemoryKeyValueStore,
    InMemoryStoreOpener,
    JsonFileKeyValueStore,
    StoreIOError,
    WorldDescriptor,
)


async def _collect(store, prefix: str = "") -> list:
    return [pair async for pair in store.iterate(prefix)]


def test_in_memory_store_round_trip_and_ordering() -> None:
    async def scenario() -> tuple:
        async with InMemoryKeyValueStore() as store:
            await store.put("!items!b", {"name": "B"})
            await store.put("!items!a", {"name": "A"})
            await store.put("!actors!z", {"name": "Z"})
            fetched = await store.get("!items!a")
            listing = await _collect(store, "!items!")
            await store.delete("!items!a")
            missing = await store.get("!items!a")
            return fetched, listing, missing

    fetched, listing, missing = asyncio.run(scenario())

    assert fetched == {"name": "A"}
    assert [key for key, _ in listing] == ["!items!a", "!items!b"]
    assert missing is None


def test_in_memory_store_does_not_alias_values() -> None:
    entries: dict = {}
    store = InMemoryKeyValueStore(entries)
    value = {"system": {"tags": ["a"]}}

    asyncio.run(store.put("!items!a", value))
    value["system"]["tags"].append("b")
    fetched = asyncio.run(store.get("!items!a"))
    fetched["system"]["tags"].append("c")

    assert entries["!items!a"] == {"system": {"tags": ["a"]}}


def test_in_memory_opener_shares_entries_per_world_collection(tmp_path: Path) -> None:
    opener = InMemoryStoreOpener()
    world = WorldDescriptor(id="w", path=tmp_path, document_collections=("items",))

    asyncio.run(opener(world, "items").put("!items!a", {"name": "A"}))

    assert asyncio.run(opener(world, "items").get("!items!a")) == {"name": "A"}
    assert opener.entries("w", "actors") == {}


def test_store_rejects_invalid_keys() -> None:
    store = InMemoryKeyValueStore()

    with pytest.raises(TypeError):
        asyncio.run(store.get(5))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        asyncio.run(store.put("", {}))


def test_json_file_store_persists_sorted_entries(tmp_path: Path) -> None:
    directory = tmp_path / "items"
    directory.mkdir()

    async def scenario() -> list:
        async with JsonFileKeyValueStore(directory) as store:
            await store.put("!items!b", {"name": "B"})
            await store.put("!items!a", {"name": "A", "system": {"weight": 1.5}})
        async with JsonFileKeyValueStore(directory) as store:
            return await _collect(store, "!items!")

    listing = asyncio.run(scenario())

    assert listing == [
        ("!items!a", {"name": "A", "system": {"weight": 1.5}}),
        ("!items!b", {"name": "B"}),
    ]
    on_disk = json.loads((directory / "entries.json").read_text(encoding="utf-8"))
    assert list(on_disk) == ["!items!a", "!items!b"]


def test_json_file_store_delete(tmp_path: Path) -> None:
    directory = tmp_path / "actors"
    directory.mkdir()

    async def scenario() -> tuple:
        async with JsonFileKeyValueStore(directory) as store:
            await store.put("!actors!a", {"name": "A"})
            await store.delete("!actors!a")
            await store.delete("!actors!never-existed")
            return await store.get("!actors!a"), await _collect(store)

    value, listing = asyncio.run(scenario())

    assert value is None
    assert listing == []


def test_json_file_store_requires_existing_directory(tmp_path: Path) -> None:
    async def scenario() -> None:
        async with JsonFileKeyValueStore(tmp_path / "missing"):
            pass

    with pytest.raises(StoreIOError):
        asyncio.run(scenario())


def test_json_file_store_reports_corruption(tmp_path: Path) -> None:
    directory = tmp_path / "items"
    directory.mkdir()
    (directory / "entries.json").write_text("{broken", encoding="utf-8")

    async def scenario() -> None:
        async with JsonFileKeyValueStore(directory) as store:
            await store.get("!items!a")

    with pytest.raises(StoreIOError):
        asyncio.run(scenario())


def test_json_file_store_must_be_opened(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path)

    with pytest.raises(StoreIOError):
        asyncio.run(store.get("!items!a"))


def test_file_store_opener_maps_world_data_directory(tmp_path: Path) -> None:
    world = WorldDescriptor(id="w", path=tmp_path / "w", document_collections=("items",))

    store = FileStoreOpener()(world, "items")

    assert store.directory == tmp_path / "w" / "data" / "items"
