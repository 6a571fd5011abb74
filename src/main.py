"""Command-line entry point for validating and managing world documents."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence, TextIO

from gamedocs import (
    DocumentStore,
    FileSchemaSource,
    FileStoreOpener,
    GamedocsError,
    GamedocsSettings,
    NotFoundError,
    SchemaValidator,
    ValidationResult,
    WorldDescriptor,
    WorldDirectory,
    format_document_list,
    format_document_types,
    format_world_list,
)
from gamedocs.documents import OperationResult

logger = logging.getLogger("gamedocs.cli")


class CommandError(RuntimeError):
    """Raised when a command cannot run with the supplied arguments."""


def _add_document_arguments(parser: argparse.ArgumentParser, *, world: bool = True) -> None:
    parser.add_argument(
        "-t",
        "--type",
        dest="document_type",
        required=True,
        help="Document type, for example Actor or Item.",
    )
    if world:
        parser.add_argument(
            "-w",
            "--world",
            required=True,
            help="Identifier of the target world.",
        )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate game documents and manage them inside world stores.",
        epilog="Exit status is 0 on success and 1 on validation or operation failure.",
    )
    parser.add_argument(
        "--worlds-root",
        type=Path,
        default=None,
        help="Directory holding world folders (defaults to GAMEDOCS_WORLDS_ROOT).",
    )
    parser.add_argument(
        "--schema-root",
        type=Path,
        default=None,
        help="Directory holding <DocumentType>.json schemas (defaults to GAMEDOCS_SCHEMA_ROOT).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", help="Validate a JSON document.")
    _add_document_arguments(validate, world=False)
    validate.add_argument("--subtype", help="Subtype whose schema governs system data.")
    validate.add_argument("--coerce", action="store_true", help="Coerce scalar types.")
    validate.add_argument(
        "--format",
        choices=("text", "json", "report"),
        default="text",
        help="Output style for the validation outcome.",
    )
    validate.add_argument("json_string", nargs="?", help="JSON document (default: stdin).")

    insert = commands.add_parser("insert", help="Validate a document and insert it.")
    _add_document_arguments(insert)
    insert.add_argument("--subtype", help="Subtype whose schema governs system data.")
    insert.add_argument("--coerce", action="store_true", help="Coerce scalar types.")
    insert.add_argument("json_string", nargs="?", help="JSON document (default: stdin).")

    search = commands.add_parser("search", help="Search documents in a world.")
    _add_document_arguments(search)
    search.add_argument("--name", help="Name pattern (supports * and ?).")
    search.add_argument("--id", dest="id_pattern", help="Identifier pattern (supports * and ?).")
    search.add_argument("--subtype", help="Only return documents of this subtype.")
    search.add_argument("--limit", type=int, help="Maximum number of documents shown.")
    search.add_argument("--details", action="store_true", help="Show document details.")
    search.add_argument(
        "--json",
        dest="json_chars",
        type=int,
        default=0,
        help="Show document JSON truncated to this many characters.",
    )

    get = commands.add_parser("get", help="Print a single document as JSON.")
    _add_document_arguments(get)
    get.add_argument("document_id")

    update = commands.add_parser("update", help="Deep-merge fields into a document.")
    _add_document_arguments(update)
    update.add_argument("document_id")
    update.add_argument("json_string", nargs="?", help="JSON update (default: stdin).")

    delete = commands.add_parser("delete", help="Delete a document.")
    _add_document_arguments(delete)
    delete.add_argument("document_id")

    commands.add_parser("worlds", help="List available worlds.")
    commands.add_parser("types", help="List document types and their subtypes.")

    return parser.parse_args(argv)


def _read_json_argument(value: str | None, stdin: TextIO) -> str:
    text = value if value is not None else stdin.read()
    if not text.strip():
        raise CommandError("A JSON document is required as an argument or on stdin.")
    return text


def _world_directory(args: argparse.Namespace, settings: GamedocsSettings) -> WorldDirectory:
    root = args.worlds_root or settings.worlds_root
    if root is None:
        raise CommandError("No worlds root configured. Use --worlds-root or GAMEDOCS_WORLDS_ROOT.")
    return WorldDirectory(root)


def _resolve_world(args: argparse.Namespace, settings: GamedocsSettings) -> WorldDescriptor:
    try:
        return _world_directory(args, settings).get_world(args.world)
    except NotFoundError as exc:
        raise CommandError(f"{exc}. Use the 'worlds' command to list available worlds.") from exc
    except ValueError as exc:
        raise CommandError(str(exc)) from exc


def _schema_source(args: argparse.Namespace, settings: GamedocsSettings) -> FileSchemaSource:
    root = args.schema_root or settings.schema_root
    if root is None:
        raise CommandError("No schema root configured. Use --schema-root or GAMEDOCS_SCHEMA_ROOT.")
    return FileSchemaSource(root)


def _declared_subtype(payload: str, subtypes: Sequence[str]) -> str | None:
    try:
        candidate = json.loads(payload)
    except ValueError:
        return None
    if isinstance(candidate, dict):
        declared = candidate.get("type")
        if isinstance(declared, str) and declared in subtypes:
            return declared
    return None


def _validate_payload(
    args: argparse.Namespace,
    settings: GamedocsSettings,
    payload: str,
) -> ValidationResult:
    source = _schema_source(args, settings)
    subtype = args.subtype
    try:
        if subtype is None:
            subtype = _declared_subtype(payload, source.list_subtypes(args.document_type))
        schema = source.schema_for(args.document_type, subtype)
    except ValueError as exc:
        raise CommandError(str(exc)) from exc
    if schema is None:
        label = f"{args.document_type}.{subtype}" if subtype else args.document_type
        raise CommandError(f"No schema available for {label}.")

    coerce = args.coerce or settings.coerce_types
    return SchemaValidator().validate(payload, schema, coerce_types=coerce)


def _print_failure(result: OperationResult) -> None:
    print(f"Error: {result.error}", file=sys.stderr)


async def _run_command(
    args: argparse.Namespace,
    settings: GamedocsSettings,
    stdin: TextIO,
) -> int:
    if args.command == "worlds":
        print(format_world_list(_world_directory(args, settings).list_worlds()))
        return 0

    if args.command == "types":
        print(format_document_types(_schema_source(args, settings)))
        return 0

    if args.command == "validate":
        result = _validate_payload(args, settings, _read_json_argument(args.json_string, stdin))
        if args.format == "report":
            print(json.dumps(result.to_report(), indent=2))
        elif args.format == "json":
            print(
                json.dumps(
                    {
                        "valid": result.valid,
                        "errors": result.error_lines(),
                        "warnings": result.warning_lines(),
                    },
                    indent=2,
                )
            )
        else:
            print(result)
        return 0 if result.valid else 1

    world = _resolve_world(args, settings)
    store = DocumentStore(opener=FileStoreOpener(), default_meta=settings.document_meta())

    if args.command == "insert":
        validation = _validate_payload(
            args, settings, _read_json_argument(args.json_string, stdin)
        )
        if not validation.valid:
            print(validation)
            return 1
        for line in validation.warning_lines():
            print(f"Warning: {line}")
        outcome = await store.create(world, args.document_type, validation.normalized_data)
        if not outcome.success:
            _print_failure(outcome)
            return 1
        document = outcome.unwrap()
        print(
            f"✓ Inserted {args.document_type} '{document.get('name', '')}' "
            f"({document['_id']}) into world '{world.id}'"
        )
        return 0

    if args.command == "search":
        found = await store.search(
            world,
            args.document_type,
            name=args.name,
            id=args.id_pattern,
            type=args.subtype,
            limit=args.limit,
        )
        print(
            format_document_list(
                found, show_details=args.details, show_json=max(args.json_chars, 0)
            )
        )
        return 0 if found.success else 1

    if args.command == "get":
        outcome = await store.get(world, args.document_type, args.document_id)
        if not outcome.success:
            _print_failure(outcome)
            return 1
        print(json.dumps(outcome.document, indent=2, ensure_ascii=False))
        return 0

    if args.command == "update":
        try:
            changes: Any = json.loads(_read_json_argument(args.json_string, stdin))
        except ValueError as exc:
            raise CommandError(f"Invalid JSON update: {exc}") from exc
        if not isinstance(changes, dict):
            raise CommandError("The JSON update must be an object.")
        outcome = await store.update(world, args.document_type, args.document_id, changes)
        if not outcome.success:
            _print_failure(outcome)
            return 1
        for warning in outcome.warnings:
            print(f"Warning: {warning}")
        print(f"✓ Updated {args.document_type} {args.document_id} in world '{world.id}'")
        return 0

    if args.command == "delete":
        outcome = await store.delete(world, args.document_type, args.document_id)
        if not outcome.success:
            _print_failure(outcome)
            return 1
        print(f"✓ Deleted {args.document_type} {args.document_id} from world '{world.id}'")
        return 0

    raise CommandError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None, *, stdin: TextIO | None = None) -> None:
    """Run the command line interface and exit with its status code."""

    args = _parse_args(argv)
    try:
        settings = GamedocsSettings.from_env()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        status = asyncio.run(_run_command(args, settings, stdin or sys.stdin))
    except (CommandError, GamedocsError) as exc:
        if args.verbose:
            logger.exception("Command %s failed", args.command)
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if status:
        raise SystemExit(status)


if __name__ == "__main__":
    main()
