"""World-scoped document persistence on top of an ordered key-value store."""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Mapping, Optional, Tuple

from .errors import (
    CollectionNotFoundError,
    DocumentConflictError,
    DocumentNotFoundError,
    GamedocsError,
)
from .keys import collection_name_for, collection_prefix, encode_key
from .kvstore import InMemoryStoreOpener, StoreOpener
from .merge import DEFAULT_PROTECTED_PATHS, find_protected_writes, merge_documents
from .wildcard import compile_wildcard
from .worlds import WorldDescriptor

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_letters + string.digits
ID_LENGTH = 16


def generate_id(length: int = ID_LENGTH) -> str:
    """Return a random alphanumeric identifier of ``length`` characters."""

    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DocumentMeta:
    """Attribution recorded in a document's ``_stats`` block."""

    user_id: str | None = None
    core_version: str | None = None
    system_id: str | None = None
    system_version: str | None = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single-document operation.

    Failures carry the error instance instead of raising it.
    """

    success: bool
    document: Dict[str, Any] | None = None
    error: GamedocsError | None = None
    warnings: Tuple[str, ...] = ()

    @classmethod
    def ok(
        cls, document: Dict[str, Any] | None = None, *, warnings: Tuple[str, ...] = ()
    ) -> "OperationResult":
        return cls(success=True, document=document, warnings=warnings)

    @classmethod
    def failure(cls, error: GamedocsError) -> "OperationResult":
        return cls(success=False, error=error)

    def unwrap(self) -> Dict[str, Any]:
        """Return the document or raise the recorded error."""

        if self.error is not None:
            raise self.error
        return self.document or {}


@dataclass(frozen=True)
class SearchResult:
    """Documents matching a search, truncated to the requested limit."""

    success: bool
    total_found: int = 0
    documents: Tuple[Dict[str, Any], ...] = ()
    error: GamedocsError | None = None

    @property
    def returned(self) -> int:
        return len(self.documents)

    @property
    def truncated(self) -> bool:
        return self.total_found > len(self.documents)


@dataclass
class DocumentStore:
    """Create, read, update, delete, and search documents within worlds.

    Each operation opens its own store handle through ``opener`` and closes it
    before returning. No locking is performed, so concurrent writers to the
    same document race and the last write wins.
    """

    opener: StoreOpener = field(default_factory=InMemoryStoreOpener)
    protected_paths: Collection[str] = DEFAULT_PROTECTED_PATHS
    default_meta: DocumentMeta = field(default_factory=DocumentMeta)

    async def create(
        self,
        world: WorldDescriptor,
        document_type: str,
        data: Mapping[str, Any],
        meta: DocumentMeta | None = None,
    ) -> OperationResult:
        """Insert a new document built from already-validated ``data``."""

        _validate_world(world)
        if not isinstance(data, Mapping):
            raise TypeError(f"data must be a mapping, got {type(data)!r}")

        collection = collection_name_for(document_type)
        if not world.has_collection(collection):
            return OperationResult.failure(CollectionNotFoundError(world.id, collection))

        document = _json_document(dict(data))
        supplied_id = document.get("_id")
        document_id = _validate_document_id(supplied_id) if supplied_id is not None else generate_id()
        document["_id"] = document_id

        resolved = meta or self.default_meta
        timestamp = _now_ms()
        document["_stats"] = {
            "coreVersion": resolved.core_version,
            "systemId": resolved.system_id,
            "systemVersion": resolved.system_version,
            "createdTime": timestamp,
            "modifiedTime": timestamp,
            "lastModifiedBy": resolved.user_id,
        }

        key = encode_key(collection, document_id)
        async with self.opener(world, collection) as store:
            if await store.get(key) is not None:
                return OperationResult.failure(DocumentConflictError(collection, document_id))
            await store.put(key, document)

        logger.info(
            "Created %s document %s in world %s", document_type, document_id, world.id
        )
        return OperationResult.ok(document)

    async def get(
        self, world: WorldDescriptor, document_type: str, document_id: str
    ) -> OperationResult:
        """Return the document stored under ``document_id``."""

        _validate_world(world)
        validated_id = _validate_document_id(document_id)
        collection = collection_name_for(document_type)
        if not world.has_collection(collection):
            return OperationResult.failure(CollectionNotFoundError(world.id, collection))

        async with self.opener(world, collection) as store:
            document = await store.get(encode_key(collection, validated_id))

        if document is None:
            return OperationResult.failure(DocumentNotFoundError(collection, validated_id))
        return OperationResult.ok(document)

    async def search(
        self,
        world: WorldDescriptor,
        document_type: str,
        *,
        name: Optional[str] = None,
        id: Optional[str] = None,
        type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        """Return documents matching every supplied criterion.

        ``name`` and ``id`` are wildcard patterns (``*`` and ``?``); ``type``
        must equal the document's subtype exactly. ``total_found`` counts all
        matches even when ``limit`` truncates the returned documents.
        """

        _validate_world(world)
        if limit is not None and (not isinstance(limit, int) or isinstance(limit, bool)):
            raise TypeError("limit must be an integer")

        collection = collection_name_for(document_type)
        if not world.has_collection(collection):
            return SearchResult(
                success=False, error=CollectionNotFoundError(world.id, collection)
            )

        name_matches = compile_wildcard(name) if name else None
        id_matches = compile_wildcard(id) if id else None

        matches: List[Dict[str, Any]] = []
        async with self.opener(world, collection) as store:
            async for _key, document in store.iterate(collection_prefix(collection)):
                if not isinstance(document, dict):
                    continue
                if name_matches is not None and not name_matches(document.get("name")):
                    continue
                if type is not None and document.get("type") != type:
                    continue
                if id_matches is not None and not id_matches(document.get("_id")):
                    continue
                matches.append(document)

        returned = matches[:limit] if limit is not None and limit > 0 else matches
        logger.debug(
            "Search in %s/%s matched %d document(s)", world.id, collection, len(matches)
        )
        return SearchResult(success=True, total_found=len(matches), documents=tuple(returned))

    async def update(
        self,
        world: WorldDescriptor,
        document_type: str,
        document_id: str,
        update: Mapping[str, Any],
        meta: DocumentMeta | None = None,
    ) -> OperationResult:
        """Deep-merge ``update`` into the stored document and rewrite it.

        Writes to protected paths are dropped; each one is reported in the
        result's ``warnings``.
        """

        _validate_world(world)
        validated_id = _validate_document_id(document_id)
        if not isinstance(update, Mapping):
            raise TypeError(f"update must be a mapping, got {type(update)!r}")
        changes = _json_document(dict(update))

        collection = collection_name_for(document_type)
        if not world.has_collection(collection):
            return OperationResult.failure(CollectionNotFoundError(world.id, collection))

        dropped = find_protected_writes(changes, self.protected_paths)
        warnings = tuple(f"{path}: protected field cannot be updated" for path in dropped)
        for path in dropped:
            logger.warning(
                "Ignoring write to protected field %s on %s document %s",
                path,
                document_type,
                validated_id,
            )

        resolved = meta or self.default_meta
        key = encode_key(collection, validated_id)
        async with self.opener(world, collection) as store:
            existing = await store.get(key)
            if existing is None:
                return OperationResult.failure(DocumentNotFoundError(collection, validated_id))

            merged = merge_documents(existing, changes, self.protected_paths)
            stats = merged.get("_stats")
            if not isinstance(stats, dict):
                stats = {}
                merged["_stats"] = stats
            stats["modifiedTime"] = _now_ms()
            stats["lastModifiedBy"] = resolved.user_id
            await store.put(key, merged)

        logger.info(
            "Updated %s document %s in world %s", document_type, validated_id, world.id
        )
        return OperationResult.ok(merged, warnings=warnings)

    async def delete(
        self, world: WorldDescriptor, document_type: str, document_id: str
    ) -> OperationResult:
        """Remove a document; deleting an absent id is reported as a failure."""

        _validate_world(world)
        validated_id = _validate_document_id(document_id)
        collection = collection_name_for(document_type)
        if not world.has_collection(collection):
            return OperationResult.failure(CollectionNotFoundError(world.id, collection))

        key = encode_key(collection, validated_id)
        async with self.opener(world, collection) as store:
            existing = await store.get(key)
            if existing is None:
                return OperationResult.failure(DocumentNotFoundError(collection, validated_id))
            await store.delete(key)

        logger.info(
            "Deleted %s document %s from world %s", document_type, validated_id, world.id
        )
        return OperationResult.ok({"_id": validated_id})


def _validate_world(world: WorldDescriptor) -> None:
    if not isinstance(world, WorldDescriptor):
        raise TypeError(f"world must be a WorldDescriptor, got {type(world)!r}")


def _json_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``document`` as it reads back from storage.

    Stored values are JSON, so tuples become lists and non-string keys become
    strings here rather than on the next read.
    """

    try:
        return json.loads(json.dumps(document))
    except (TypeError, ValueError) as exc:
        raise TypeError(f"document must be JSON-serialisable: {exc}") from exc


def _validate_document_id(document_id: object) -> str:
    if not isinstance(document_id, str):
        raise TypeError("document id must be a string")
    stripped = document_id.strip()
    if not stripped:
        raise ValueError("document id must be a non-empty string")
    return stripped


__all__ = [
    "DocumentMeta",
    "DocumentStore",
    "ID_ALPHABET",
    "ID_LENGTH",
    "OperationResult",
    "SearchResult",
    "generate_id",
]
