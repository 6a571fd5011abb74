"""FastAPI application exposing validation and world document endpoints."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, NoReturn, TypeVar

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from ..documents import DocumentStore, OperationResult
from ..errors import DocumentConflictError, GamedocsError, NotFoundError
from ..keys import collection_name_for
from ..kvstore import FileStoreOpener
from ..schema_source import FileSchemaSource, InMemorySchemaSource, SchemaSource
from ..settings import GamedocsSettings
from ..validation import SchemaValidator, ValidationIssue, ValidationResult
from ..worlds import WorldDescriptor, WorldDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValidationIssueResource(BaseModel):
    """Single path-qualified validation message."""

    path: str
    message: str
    severity: str
    value: Any = None

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> "ValidationIssueResource":
        return cls(
            path=issue.path,
            message=issue.message,
            severity=issue.severity,
            value=issue.value if issue.has_value else None,
        )


class ValidationResponse(BaseModel):
    """Outcome of validating a payload against a document schema."""

    valid: bool
    errors: list[ValidationIssueResource] = Field(default_factory=list)
    warnings: list[ValidationIssueResource] = Field(default_factory=list)
    normalized_data: Any = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(
            valid=result.valid,
            errors=[ValidationIssueResource.from_issue(issue) for issue in result.errors],
            warnings=[ValidationIssueResource.from_issue(issue) for issue in result.warnings],
            normalized_data=result.normalized_data,
        )


class ValidateRequest(BaseModel):
    """Request payload for validating a document without storing it."""

    document_type: str = Field(..., min_length=1, description="Document type, e.g. Actor.")
    subtype: str | None = Field(
        None, description="Optional subtype whose schema governs the system data."
    )
    data: Any = Field(..., description="Document payload or its JSON encoding.")
    coerce_types: bool | None = Field(
        None, description="Override the configured type coercion behaviour."
    )


class DocumentCreateRequest(BaseModel):
    """Request payload for validating and inserting a document."""

    data: dict[str, Any] = Field(..., description="Document payload to insert.")
    coerce_types: bool | None = None


class DocumentUpdateRequest(BaseModel):
    """Request payload for a partial document update."""

    update: dict[str, Any] = Field(..., description="Fields to deep-merge into the document.")


class DocumentResponse(BaseModel):
    """Envelope returned for single-document operations."""

    document: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Envelope returned for document searches."""

    total_found: int = Field(..., ge=0)
    returned: int = Field(..., ge=0)
    documents: list[dict[str, Any]]


class SchemaTypeResource(BaseModel):
    """Document type known to the schema source, with its subtypes."""

    document_type: str
    collection: str
    subtypes: list[str]


class WorldResource(BaseModel):
    """Summary of a world and the collections it exposes."""

    id: str
    title: str
    system: str | None = None
    document_collections: list[str]

    @classmethod
    def from_descriptor(cls, world: WorldDescriptor) -> "WorldResource":
        return cls(
            id=world.id,
            title=world.title,
            system=world.system,
            document_collections=list(world.document_collections),
        )


def _raise_for_error(error: GamedocsError | None) -> NoReturn:
    if isinstance(error, NotFoundError):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DocumentConflictError):
        raise HTTPException(status_code=409, detail=str(error))
    raise HTTPException(status_code=500, detail=str(error) if error else "Unknown failure")


def _document_response(result: OperationResult) -> DocumentResponse:
    if not result.success:
        _raise_for_error(result.error)
    return DocumentResponse(document=result.document or {}, warnings=list(result.warnings))


async def _checked(call: Awaitable[T]) -> T:
    try:
        return await call
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app(
    settings: GamedocsSettings | None = None,
    *,
    store: DocumentStore | None = None,
    worlds: WorldDirectory | None = None,
    schemas: SchemaSource | None = None,
) -> FastAPI:
    """Create a FastAPI app exposing validation and document endpoints."""

    resolved_settings = settings or GamedocsSettings.from_env()

    document_store = store or DocumentStore(
        opener=FileStoreOpener(), default_meta=resolved_settings.document_meta()
    )

    world_directory = worlds
    if world_directory is None and resolved_settings.worlds_root is not None:
        world_directory = WorldDirectory(resolved_settings.worlds_root)

    schema_source = schemas
    if schema_source is None:
        if resolved_settings.schema_root is not None:
            schema_source = FileSchemaSource(resolved_settings.schema_root)
        else:
            schema_source = InMemorySchemaSource({})

    validator = SchemaValidator()

    def _resolve_world(world_id: str) -> WorldDescriptor:
        if world_directory is None:
            raise HTTPException(status_code=503, detail="Worlds root is not configured.")
        try:
            return world_directory.get_world(world_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    def _validate(
        document_type: str,
        data: Any,
        *,
        subtype: str | None,
        coerce_types: bool | None,
    ) -> ValidationResult:
        try:
            if subtype is None and isinstance(data, dict):
                candidate = data.get("type")
                if isinstance(candidate, str) and candidate in schema_source.list_subtypes(
                    document_type
                ):
                    subtype = candidate
            schema = schema_source.schema_for(document_type, subtype)
        except (GamedocsError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if schema is None:
            label = f"{document_type}.{subtype}" if subtype else document_type
            raise HTTPException(status_code=404, detail=f"No schema available for {label}.")

        coerce = resolved_settings.coerce_types if coerce_types is None else coerce_types
        return validator.validate(data, schema, coerce_types=coerce)

    tags_metadata = [
        {
            "name": "Validation",
            "description": "Validate document payloads against their schemas.",
        },
        {
            "name": "Worlds",
            "description": "Discover worlds and the collections they expose.",
        },
        {
            "name": "Documents",
            "description": "Search, create, update, and delete world documents.",
        },
    ]

    app = FastAPI(
        title="Game Document API",
        version="0.1.0",
        description=(
            "HTTP API for validating game documents against declarative schemas "
            "and managing them inside per-world document stores."
        ),
        openapi_tags=tags_metadata,
    )

    @app.post("/api/validate", response_model=ValidationResponse, tags=["Validation"])
    def validate_document(payload: ValidateRequest) -> ValidationResponse:
        result = _validate(
            payload.document_type,
            payload.data,
            subtype=payload.subtype,
            coerce_types=payload.coerce_types,
        )
        return ValidationResponse.from_result(result)

    @app.get("/api/schemas", response_model=list[SchemaTypeResource], tags=["Validation"])
    def list_schemas() -> list[SchemaTypeResource]:
        try:
            return [
                SchemaTypeResource(
                    document_type=document_type,
                    collection=collection_name_for(document_type),
                    subtypes=schema_source.list_subtypes(document_type),
                )
                for document_type in schema_source.list_document_types()
            ]
        except GamedocsError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.get("/api/worlds", response_model=list[WorldResource], tags=["Worlds"])
    def list_worlds() -> list[WorldResource]:
        if world_directory is None:
            return []
        return [WorldResource.from_descriptor(world) for world in world_directory.list_worlds()]

    @app.get("/api/worlds/{world_id}", response_model=WorldResource, tags=["Worlds"])
    def get_world(world_id: str) -> WorldResource:
        return WorldResource.from_descriptor(_resolve_world(world_id))

    @app.get(
        "/api/worlds/{world_id}/{document_type}",
        response_model=SearchResponse,
        tags=["Documents"],
    )
    async def search_documents(
        world_id: str,
        document_type: str,
        *,
        name: str | None = Query(None, description="Name wildcard pattern (* and ?)."),
        id: str | None = Query(None, description="Identifier wildcard pattern (* and ?)."),
        subtype: str | None = Query(None, description="Exact document subtype."),
        limit: int | None = Query(None, ge=1, description="Maximum documents returned."),
    ) -> SearchResponse:
        world = _resolve_world(world_id)
        result = await _checked(
            document_store.search(
                world, document_type, name=name, id=id, type=subtype, limit=limit
            )
        )
        if not result.success:
            _raise_for_error(result.error)
        return SearchResponse(
            total_found=result.total_found,
            returned=result.returned,
            documents=list(result.documents),
        )

    @app.post(
        "/api/worlds/{world_id}/{document_type}",
        response_model=DocumentResponse,
        status_code=201,
        tags=["Documents"],
    )
    async def create_document(
        world_id: str, document_type: str, payload: DocumentCreateRequest
    ) -> DocumentResponse:
        world = _resolve_world(world_id)
        validation = _validate(
            document_type, payload.data, subtype=None, coerce_types=payload.coerce_types
        )
        if not validation.valid:
            raise HTTPException(
                status_code=422,
                detail={
                    "message": "Document failed validation.",
                    "errors": validation.error_lines(),
                },
            )

        result = await _checked(
            document_store.create(
                world,
                document_type,
                validation.normalized_data,
                resolved_settings.document_meta(),
            )
        )
        response = _document_response(result)
        response.warnings.extend(validation.warning_lines())
        return response

    @app.get(
        "/api/worlds/{world_id}/{document_type}/{document_id}",
        response_model=DocumentResponse,
        tags=["Documents"],
    )
    async def get_document(
        world_id: str, document_type: str, document_id: str
    ) -> DocumentResponse:
        world = _resolve_world(world_id)
        return _document_response(
            await _checked(document_store.get(world, document_type, document_id))
        )

    @app.patch(
        "/api/worlds/{world_id}/{document_type}/{document_id}",
        response_model=DocumentResponse,
        tags=["Documents"],
    )
    async def update_document(
        world_id: str,
        document_type: str,
        document_id: str,
        payload: DocumentUpdateRequest,
    ) -> DocumentResponse:
        world = _resolve_world(world_id)
        result = await _checked(
            document_store.update(
                world,
                document_type,
                document_id,
                payload.update,
                resolved_settings.document_meta(),
            )
        )
        return _document_response(result)

    @app.delete(
        "/api/worlds/{world_id}/{document_type}/{document_id}",
        response_model=DocumentResponse,
        tags=["Documents"],
    )
    async def delete_document(
        world_id: str, document_type: str, document_id: str
    ) -> DocumentResponse:
        world = _resolve_world(world_id)
        return _document_response(
            await _checked(document_store.delete(world, document_type, document_id))
        )

    logger.debug("Created document API application")
    return app


__all__ = [
    "DocumentCreateRequest",
    "DocumentResponse",
    "DocumentUpdateRequest",
    "SchemaTypeResource",
    "SearchResponse",
    "ValidateRequest",
    "ValidationResponse",
    "WorldResource",
    "create_app",
]
