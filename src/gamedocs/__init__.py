"""Schema validation and world-scoped document storage for game records."""

from .documents import (
    DocumentMeta,
    DocumentStore,
    OperationResult,
    SearchResult,
    generate_id,
)
from .errors import (
    CollectionNotFoundError,
    DocumentConflictError,
    DocumentNotFoundError,
    GamedocsError,
    NotFoundError,
    SchemaError,
    StoreIOError,
    WorldNotFoundError,
)
from .formatting import format_document_list
from .keys import collection_name_for, decode_key, encode_key
from .kvstore import (
    FileStoreOpener,
    InMemoryKeyValueStore,
    InMemoryStoreOpener,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from .merge import DEFAULT_PROTECTED_PATHS, find_protected_writes, merge_documents
from .schema_source import (
    FileSchemaSource,
    InMemorySchemaSource,
    SchemaSource,
    compose_schema,
    format_document_types,
)
from .settings import GamedocsSettings
from .validation import (
    MISSING,
    SchemaValidator,
    ValidationIssue,
    ValidationResult,
    validate,
)
from .wildcard import compile_wildcard
from .worlds import WorldDescriptor, WorldDirectory, format_world_list

__all__ = [
    "SchemaValidator",
    "ValidationIssue",
    "ValidationResult",
    "MISSING",
    "validate",
    "compile_wildcard",
    "collection_name_for",
    "encode_key",
    "decode_key",
    "DEFAULT_PROTECTED_PATHS",
    "merge_documents",
    "find_protected_writes",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "InMemoryStoreOpener",
    "JsonFileKeyValueStore",
    "FileStoreOpener",
    "WorldDescriptor",
    "WorldDirectory",
    "format_world_list",
    "SchemaSource",
    "InMemorySchemaSource",
    "FileSchemaSource",
    "compose_schema",
    "format_document_types",
    "DocumentMeta",
    "DocumentStore",
    "OperationResult",
    "SearchResult",
    "generate_id",
    "format_document_list",
    "GamedocsSettings",
    "GamedocsError",
    "SchemaError",
    "NotFoundError",
    "WorldNotFoundError",
    "CollectionNotFoundError",
    "DocumentNotFoundError",
    "DocumentConflictError",
    "StoreIOError",
]
