"""Exception hierarchy shared by the validator and the document store."""

from __future__ import annotations


class GamedocsError(Exception):
    """Base class for all errors raised or reported by :mod:`gamedocs`."""


class SchemaError(GamedocsError, ValueError):
    """Raised when a schema node is structurally malformed."""

    def __init__(self, path: str, message: str) -> None:
        location = path or "<root>"
        super().__init__(f"{location}: {message}")
        self.path = path


class NotFoundError(GamedocsError, LookupError):
    """Reported when a world, collection, or document does not exist."""


class WorldNotFoundError(NotFoundError):
    """Reported when a world cannot be located."""

    def __init__(self, world_id: str) -> None:
        super().__init__(f"World '{world_id}' does not exist")
        self.world_id = world_id


class CollectionNotFoundError(NotFoundError):
    """Reported when a world does not expose the requested collection."""

    def __init__(self, world_id: str, collection: str) -> None:
        super().__init__(
            f"Collection '{collection}' is not available in world '{world_id}'"
        )
        self.world_id = world_id
        self.collection = collection


class DocumentNotFoundError(NotFoundError):
    """Reported when a document identifier is absent from its collection."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document '{document_id}' not found in collection '{collection}'"
        )
        self.collection = collection
        self.document_id = document_id


class DocumentConflictError(GamedocsError):
    """Reported when a create would overwrite an existing document."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document '{document_id}' already exists in collection '{collection}'"
        )
        self.collection = collection
        self.document_id = document_id


class StoreIOError(GamedocsError, RuntimeError):
    """Raised when the underlying key-value store cannot be read or written."""


__all__ = [
    "GamedocsError",
    "SchemaError",
    "NotFoundError",
    "WorldNotFoundError",
    "CollectionNotFoundError",
    "DocumentNotFoundError",
    "DocumentConflictError",
    "StoreIOError",
]
