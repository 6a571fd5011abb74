"""Sources of schema node trees for document types and their subtypes."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import SchemaError
from .keys import collection_name_for


def compose_schema(
    base: Mapping[str, Any] | None,
    type_schema: Mapping[str, Any] | None = None,
) -> Dict[str, Any]:
    """Combine a document's base schema with the schema of one of its subtypes.

    Subtype fields live under the ``system`` property, so they are only
    attached when the base schema declares that property.
    """

    complete: Dict[str, Any] = {
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    }

    if base and base.get("properties"):
        complete["properties"].update(deepcopy(dict(base["properties"])))
        complete["required"].extend(base.get("required") or [])

    if type_schema and type_schema.get("properties"):
        if "system" in complete["properties"]:
            complete["properties"]["system"] = {
                "type": "object",
                "properties": deepcopy(dict(type_schema["properties"])),
                "required": list(type_schema.get("required") or []),
                "additionalProperties": False,
            }

    complete["required"] = list(dict.fromkeys(complete["required"]))
    return complete


class SchemaSource(ABC):
    """Interface describing where validation schemas come from."""

    @abstractmethod
    def list_document_types(self) -> List[str]:
        """Return the document types this source can describe."""

    @abstractmethod
    def list_subtypes(self, document_type: str) -> List[str]:
        """Return the subtypes declared for ``document_type``."""

    @abstractmethod
    def schema_for(
        self, document_type: str, subtype: Optional[str] = None
    ) -> Dict[str, Any] | None:
        """Return the schema for ``document_type`` (and ``subtype``) or ``None``."""


class InMemorySchemaSource(SchemaSource):
    """Serve schemas from a mapping of ``{type: {"base": ..., "types": {...}}}``."""

    def __init__(self, definitions: Mapping[str, Mapping[str, Any]]) -> None:
        self._definitions = {
            name: _normalise_definition(name, definition)
            for name, definition in definitions.items()
        }

    def list_document_types(self) -> List[str]:
        return sorted(self._definitions)

    def list_subtypes(self, document_type: str) -> List[str]:
        definition = self._definitions.get(document_type)
        if definition is None:
            return []
        return sorted(definition["types"])

    def schema_for(
        self, document_type: str, subtype: Optional[str] = None
    ) -> Dict[str, Any] | None:
        definition = self._definitions.get(document_type)
        if definition is None:
            return None
        if subtype is None:
            return compose_schema(definition["base"])
        type_schema = definition["types"].get(subtype)
        if type_schema is None:
            return None
        return compose_schema(definition["base"], type_schema)


class FileSchemaSource(SchemaSource):
    """Load ``<root>/<DocumentType>.json`` definitions on demand."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def list_document_types(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(path.stem for path in self.root.glob("*.json") if path.is_file())

    def list_subtypes(self, document_type: str) -> List[str]:
        definition = self._load(document_type)
        if definition is None:
            return []
        return sorted(definition["types"])

    def schema_for(
        self, document_type: str, subtype: Optional[str] = None
    ) -> Dict[str, Any] | None:
        definition = self._load(document_type)
        if definition is None:
            return None
        if subtype is None:
            return compose_schema(definition["base"])
        type_schema = definition["types"].get(subtype)
        if type_schema is None:
            return None
        return compose_schema(definition["base"], type_schema)

    def _load(self, document_type: str) -> Dict[str, Any] | None:
        if document_type in self._cache:
            return self._cache[document_type]
        if not document_type or "/" in document_type or document_type.startswith("."):
            raise ValueError(f"Invalid document type: {document_type!r}")

        path = self.root / f"{document_type}.json"
        if not path.is_file():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SchemaError(document_type, f"unreadable schema file {path}: {exc}") from exc

        definition = _normalise_definition(document_type, payload)
        self._cache[document_type] = definition
        return definition


def format_document_types(source: SchemaSource) -> str:
    """Return a human-readable listing of the document types ``source`` describes."""

    document_types = source.list_document_types()
    if not document_types:
        return "No document types found."

    lines = [f"Document types ({len(document_types)}):"]
    for document_type in document_types:
        lines.append(f"  {document_type} ({collection_name_for(document_type)})")
        subtypes = source.list_subtypes(document_type)
        if subtypes:
            lines.append(f"    Subtypes: {', '.join(subtypes)}")
    return "\n".join(lines)


def _normalise_definition(name: str, definition: Any) -> Dict[str, Any]:
    if not isinstance(definition, Mapping):
        raise SchemaError(name, "schema definition must be an object")
    if "base" not in definition and "types" not in definition:
        return {"base": dict(definition), "types": {}}

    base = definition.get("base") or {}
    types = definition.get("types") or {}
    if not isinstance(base, Mapping) or not isinstance(types, Mapping):
        raise SchemaError(name, "'base' and 'types' must be objects")
    return {"base": dict(base), "types": dict(types)}


__all__ = [
    "FileSchemaSource",
    "InMemorySchemaSource",
    "SchemaSource",
    "compose_schema",
    "format_document_types",
]
