"""Mapping between document types, collections, and physical store keys.

The key layout ``!<collection>!<id>`` is shared with the host application's
own databases and must not change.
"""

from __future__ import annotations

from typing import Mapping, Tuple

KEY_SEPARATOR = "!"

DOCUMENT_COLLECTIONS: Mapping[str, str] = {
    "Actor": "actors",
    "Adventure": "adventures",
    "Cards": "cards",
    "ChatMessage": "messages",
    "Combat": "combats",
    "FogExploration": "fog",
    "Folder": "folders",
    "Item": "items",
    "JournalEntry": "journal",
    "Macro": "macros",
    "Playlist": "playlists",
    "RollTable": "tables",
    "Scene": "scenes",
    "Setting": "settings",
    "User": "users",
}


def collection_name_for(document_type: str) -> str:
    """Return the canonical collection name for ``document_type``."""

    validated = _validate_segment(document_type, "document_type")
    mapped = DOCUMENT_COLLECTIONS.get(validated)
    if mapped is not None:
        return mapped
    return f"{validated.lower()}s"


def collection_prefix(collection: str) -> str:
    """Return the key prefix shared by every document of ``collection``."""

    validated = _validate_segment(collection, "collection")
    return f"{KEY_SEPARATOR}{validated}{KEY_SEPARATOR}"


def encode_key(collection: str, document_id: str) -> str:
    """Return the physical key for ``document_id`` within ``collection``."""

    return collection_prefix(collection) + _validate_segment(document_id, "document_id")


def decode_key(key: str) -> Tuple[str, str]:
    """Split a physical key into ``(collection, document_id)``.

    Raises:
        ValueError: If ``key`` does not follow the ``!collection!id`` layout.
    """

    if not isinstance(key, str):
        raise TypeError(f"key must be a string, got {type(key)!r}")
    if not key.startswith(KEY_SEPARATOR):
        raise ValueError(f"Malformed store key: {key!r}")

    collection, separator, document_id = key[1:].partition(KEY_SEPARATOR)
    if not separator or not collection or not document_id:
        raise ValueError(f"Malformed store key: {key!r}")
    return collection, document_id


def _validate_segment(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {type(value)!r}")
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must be a non-empty string")
    return stripped


__all__ = [
    "DOCUMENT_COLLECTIONS",
    "KEY_SEPARATOR",
    "collection_name_for",
    "collection_prefix",
    "decode_key",
    "encode_key",
]
