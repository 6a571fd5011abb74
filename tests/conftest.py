"""Test configuration for the gamedocs project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import json
from typing import Any, Callable, Mapping

import pytest

from gamedocs import (
    DocumentMeta,
    DocumentStore,
    InMemorySchemaSource,
    InMemoryStoreOpener,
    WorldDescriptor,
)


ACTOR_SCHEMA: dict[str, Any] = {
    "base": {
        "type": "object",
        "properties": {
            "_id": {"type": "string", "pattern": "[A-Za-z0-9]{16}"},
            "name": {"type": "string", "minLength": 1, "_required": True},
            "type": {"type": "string", "enum": ["character", "npc"]},
            "img": {"type": "string", "default": "icons/svg/mystery-man.svg"},
            "system": {"type": "object", "additionalProperties": True},
            "flags": {"type": "object"},
        },
        "required": ["name", "type"],
    },
    "types": {
        "character": {
            "properties": {
                "hp": {"type": "integer", "minimum": 0, "default": 10},
                "level": {"type": "integer", "minimum": 1, "maximum": 20},
            },
            "required": [],
        },
        "npc": {
            "properties": {"cr": {"type": "number", "minimum": 0}},
            "required": ["cr"],
        },
    },
}


@pytest.fixture()
def world(tmp_path: Path) -> WorldDescriptor:
    """Return a world exposing the actor and item collections."""

    return WorldDescriptor(
        id="test-world",
        path=tmp_path / "test-world",
        title="Test World",
        document_collections=("actors", "items", "journal"),
    )


@pytest.fixture()
def store_opener() -> InMemoryStoreOpener:
    return InMemoryStoreOpener()


@pytest.fixture()
def document_store(store_opener: InMemoryStoreOpener) -> DocumentStore:
    """Return a document store backed by in-memory handles."""

    return DocumentStore(
        opener=store_opener,
        default_meta=DocumentMeta(
            user_id="gm-user",
            core_version="12.331",
            system_id="dnd5e",
            system_version="4.0.0",
        ),
    )


@pytest.fixture()
def make_world_tree(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture creating ``worlds/<id>/world.json`` folder layouts."""

    def _factory(
        world_id: str = "test-world",
        *,
        collections: tuple[str, ...] = ("actors", "items"),
        manifest: Mapping[str, Any] | None = None,
    ) -> Path:
        worlds_root = tmp_path / "worlds"
        world_dir = worlds_root / world_id
        (world_dir / "data").mkdir(parents=True, exist_ok=True)
        for collection in collections:
            (world_dir / "data" / collection).mkdir(exist_ok=True)
        if manifest is None:
            manifest = {"title": world_id.replace("-", " ").title(), "system": "dnd5e"}
        payload = dict(manifest)
        (world_dir / "world.json").write_text(json.dumps(payload), encoding="utf-8")
        return worlds_root

    return _factory


@pytest.fixture()
def schema_root(tmp_path: Path) -> Path:
    """Write the sample actor schema definition to disk."""

    root = tmp_path / "schemas"
    root.mkdir()
    (root / "Actor.json").write_text(json.dumps(ACTOR_SCHEMA), encoding="utf-8")
    return root


@pytest.fixture()
def actor_schemas() -> InMemorySchemaSource:
    """Return a schema source describing the sample Actor document."""

    return InMemorySchemaSource({"Actor": ACTOR_SCHEMA})
