import json
from pathlib import Path

import pytest

from gamedocs import (
    FileSchemaSource,
    InMemorySchemaSource,
    SchemaError,
    compose_schema,
    format_document_types,
    validate,
)

from conftest import ACTOR_SCHEMA


def test_compose_schema_nests_subtype_under_system() -> None:
    schema = compose_schema(ACTOR_SCHEMA["base"], ACTOR_SCHEMA["types"]["npc"])

    assert schema["additionalProperties"] is False
    assert schema["required"] == ["name", "type"]
    assert schema["properties"]["system"] == {
        "type": "object",
        "properties": {"cr": {"type": "number", "minimum": 0}},
        "required": ["cr"],
        "additionalProperties": False,
    }


def test_compose_schema_ignores_subtype_without_system_property() -> None:
    base = {"properties": {"name": {"type": "string"}}, "required": ["name", "name"]}

    schema = compose_schema(base, {"properties": {"cr": {"type": "number"}}})

    assert set(schema["properties"]) == {"name"}
    assert schema["required"] == ["name"]


def test_compose_schema_does_not_share_nodes() -> None:
    schema = compose_schema(ACTOR_SCHEMA["base"])
    schema["properties"]["name"]["minLength"] = 99

    assert ACTOR_SCHEMA["base"]["properties"]["name"]["minLength"] == 1


def test_in_memory_source_lists_and_composes(actor_schemas: InMemorySchemaSource) -> None:
    assert actor_schemas.list_document_types() == ["Actor"]
    assert actor_schemas.list_subtypes("Actor") == ["character", "npc"]
    assert actor_schemas.list_subtypes("Item") == []
    assert actor_schemas.schema_for("Item") is None
    assert actor_schemas.schema_for("Actor", "vehicle") is None
    assert "system" in actor_schemas.schema_for("Actor")["properties"]


def test_in_memory_source_accepts_bare_schema() -> None:
    source = InMemorySchemaSource({"Note": {"properties": {"text": {"type": "string"}}}})

    assert source.list_subtypes("Note") == []
    assert source.schema_for("Note")["properties"] == {"text": {"type": "string"}}


def test_in_memory_source_rejects_invalid_definitions() -> None:
    with pytest.raises(SchemaError):
        InMemorySchemaSource({"Broken": ["not", "an", "object"]})
    with pytest.raises(SchemaError):
        InMemorySchemaSource({"Broken": {"base": {}, "types": ["npc"]}})


def test_subtype_schema_validates_system_fields(actor_schemas: InMemorySchemaSource) -> None:
    schema = actor_schemas.schema_for("Actor", "character")

    result = validate({"name": "Bilbo", "type": "character", "system": {"level": 25}}, schema)
    defaults = validate({"name": "Bilbo", "type": "character", "system": {}}, schema)

    assert result.error_lines() == ["system.level: Value must be <= 20"]
    assert defaults.normalized_data["system"] == {"hp": 10}
    assert defaults.normalized_data["img"] == "icons/svg/mystery-man.svg"


def test_file_source_loads_and_caches(schema_root: Path) -> None:
    source = FileSchemaSource(schema_root)

    first = source.schema_for("Actor", "npc")
    (schema_root / "Actor.json").write_text("{}", encoding="utf-8")
    second = source.schema_for("Actor", "npc")

    assert source.list_document_types() == ["Actor"]
    assert source.list_subtypes("Actor") == ["character", "npc"]
    assert first == second
    assert source.schema_for("Item") is None


def test_file_source_reports_unreadable_files(tmp_path: Path) -> None:
    (tmp_path / "Item.json").write_text("{oops", encoding="utf-8")
    (tmp_path / "Scene.json").write_text(json.dumps([1, 2]), encoding="utf-8")
    source = FileSchemaSource(tmp_path)

    with pytest.raises(SchemaError):
        source.schema_for("Item")
    with pytest.raises(SchemaError):
        source.schema_for("Scene")


@pytest.mark.parametrize("document_type", ["", "../Actor", ".hidden"])
def test_file_source_rejects_path_like_types(schema_root: Path, document_type: str) -> None:
    with pytest.raises(ValueError):
        FileSchemaSource(schema_root).schema_for(document_type)


def test_file_source_with_missing_root(tmp_path: Path) -> None:
    source = FileSchemaSource(tmp_path / "missing")

    assert source.list_document_types() == []
    assert source.schema_for("Actor") is None


def test_format_document_types() -> None:
    source = InMemorySchemaSource({"Actor": ACTOR_SCHEMA, "Spellbook": {"properties": {}}})

    assert format_document_types(InMemorySchemaSource({})) == "No document types found."
    assert format_document_types(source).splitlines() == [
        "Document types (2):",
        "  Actor (actors)",
        "    Subtypes: character, npc",
        "  Spellbook (spellbooks)",
    ]
