"""Schema-driven validation and normalisation of game document payloads.

Schemas are plain nested mappings. Each node may declare a ``type`` (a single
name or a list of names for unions) together with constraints that only make
sense for that type:

* numbers: ``minimum``, ``maximum``, ``multipleOf``
* strings: ``minLength``, ``maxLength``, ``enum``, ``pattern``
* objects: ``properties``, ``required`` (list), ``additionalProperties``
* arrays: ``items``, ``minItems``, ``maxItems``

Every node also understands ``required``/``nullable`` flags (or their
``_required``/``_nullable`` spellings used by extracted schemas) and a
``default`` value. Validation failures never raise; they are collected on the
returned :class:`ValidationResult`.
"""

from __future__ import annotations

import json
import logging
import math
import re
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .errors import SchemaError

logger = logging.getLogger(__name__)


class _MissingType:
    """Sentinel for values that are absent rather than ``None``."""

    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial representation
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _MissingType()

KNOWN_TYPES = frozenset(
    {"boolean", "number", "integer", "string", "object", "array", "null", "any"}
)

_TRUE_STRINGS = frozenset({"true", "1"})
_FALSE_STRINGS = frozenset({"false", "0"})


@dataclass(frozen=True)
class ValidationIssue:
    """A single error or warning produced while validating a value."""

    path: str
    message: str
    value: Any = MISSING
    severity: str = "error"

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "path": self.path,
            "message": self.message,
            "severity": self.severity,
        }
        if self.has_value:
            payload["value"] = self.value
        return payload

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


@dataclass
class ValidationResult:
    """Outcome of a :meth:`SchemaValidator.validate` call.

    ``normalized_data`` is only populated when the result is valid; a value
    normalised while errors were recorded must not be relied upon.
    """

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    normalized_data: Any = None

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, path: str, message: str, value: Any = MISSING) -> None:
        self.errors.append(ValidationIssue(path, message, value, "error"))

    def add_warning(self, path: str, message: str, value: Any = MISSING) -> None:
        self.warnings.append(ValidationIssue(path, message, value, "warning"))

    def error_lines(self) -> List[str]:
        """Return path-qualified ``field.subfield[index]: message`` strings."""

        return [str(issue) for issue in self.errors]

    def warning_lines(self) -> List[str]:
        return [str(issue) for issue in self.warnings]

    def to_report(self) -> Dict[str, Any]:
        """Return a JSON-serialisable report describing the outcome."""

        report: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "PASSED" if self.valid else "FAILED",
            "summary": {"errors": len(self.errors), "warnings": len(self.warnings)},
        }

        if self.valid:
            report["message"] = "JSON object is valid according to the schema"
            if self.normalized_data is not None:
                report["normalizedData"] = self.normalized_data
        else:
            report["message"] = "JSON object failed validation"
            report["errors"] = [issue.to_dict() for issue in self.errors]

        if self.warnings:
            report["warnings"] = [issue.to_dict() for issue in self.warnings]

        return report

    def __str__(self) -> str:
        if self.valid:
            lines = ["✓ Validation successful"]
        else:
            lines = ["✗ Validation failed", "", "Errors:"]
            for issue in self.errors:
                lines.append(f"  {issue}")
                if issue.has_value:
                    lines.append(f"    Received: {_dump_value(issue.value)}")

        if self.warnings:
            lines.extend(["", "Warnings:"])
            lines.extend(f"  {issue}" for issue in self.warnings)
        return "\n".join(lines)


_TypeHandler = Callable[[Any, Mapping[str, Any], str, ValidationResult, bool], Any]


class SchemaValidator:
    """Validate and normalise structured values against schema nodes."""

    def __init__(self) -> None:
        self._handlers: Dict[str, _TypeHandler] = {
            "boolean": self._validate_boolean,
            "number": self._validate_number,
            "integer": self._validate_integer,
            "string": self._validate_string,
            "object": self._validate_object,
            "array": self._validate_array,
            "null": self._validate_any,
            "any": self._validate_any,
        }

    def validate(
        self,
        data: Any,
        schema: Mapping[str, Any] | None,
        path: str = "",
        *,
        coerce_types: bool = False,
    ) -> ValidationResult:
        """Validate ``data`` against ``schema`` and return the collected result.

        Textual input (``str`` or ``bytes``) is decoded as JSON first. A decode
        failure produces a single error and no further checks are run.
        """

        result = ValidationResult()

        if isinstance(data, (str, bytes, bytearray)):
            try:
                data = json.loads(data)
            except (ValueError, UnicodeDecodeError, RecursionError) as exc:
                result.add_error(path, f"Invalid JSON: {exc}")
                return result

        try:
            normalized = self._validate_value(data, schema, path, result, coerce_types)
        except SchemaError as exc:
            logger.warning("Malformed schema encountered: %s", exc)
            result.add_error(path, f"Validation error: {exc}")
            return result

        if result.valid:
            result.normalized_data = None if normalized is MISSING else normalized
        return result

    # ------------------------------------------------------------------
    # Dispatch

    def _validate_value(
        self,
        value: Any,
        rule: Mapping[str, Any] | None,
        path: str,
        result: ValidationResult,
        coerce: bool,
    ) -> Any:
        if rule is None:
            result.add_warning(path, "No validation rule provided")
            return value
        if not isinstance(rule, Mapping):
            raise SchemaError(path, f"schema node must be a mapping, got {type(rule).__name__}")

        if value is None or value is MISSING:
            if _flag(rule, "required") and not _flag(rule, "nullable"):
                result.add_error(path, "Required field is missing")
                return value
            if "default" in rule:
                return deepcopy(rule["default"])
            return value

        types = _declared_types(rule, path)
        if not types:
            return value

        for type_name in types:
            if type_name not in KNOWN_TYPES:
                return value
            if self._matches_type(value, type_name, coerce):
                return self._handlers[type_name](value, rule, path, result, coerce)

        result.add_error(
            path,
            f"Expected type {' or '.join(types)}, got {_json_type_name(value)}",
            value,
        )
        return value

    @staticmethod
    def _matches_type(value: Any, type_name: str, coerce: bool) -> bool:
        if type_name == "any":
            return True
        if type_name == "null":
            return value is None
        if type_name == "boolean":
            if isinstance(value, bool):
                return True
            if not coerce:
                return False
            if isinstance(value, str):
                return value.lower() in _TRUE_STRINGS | _FALSE_STRINGS
            return _is_number(value)
        if type_name in ("number", "integer"):
            if _is_number(value):
                return not _is_nan(value)
            return coerce and isinstance(value, str) and _parse_number(value) is not None
        if type_name == "string":
            if isinstance(value, str):
                return True
            return coerce and (isinstance(value, bool) or _is_number(value))
        if type_name == "object":
            return isinstance(value, Mapping)
        if type_name == "array":
            return isinstance(value, list)
        return False

    # ------------------------------------------------------------------
    # Type handlers

    def _validate_boolean(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        if not coerce or isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        if _is_number(value):
            return bool(value)
        return value

    def _validate_number(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        number = value if _is_number(value) else _parse_number(value)
        if number is None or _is_nan(number):
            result.add_error(path, "Value must be a valid number", value)
            return value

        minimum = _numeric_constraint(rule, "minimum", path)
        if minimum is not None and number < minimum:
            result.add_error(path, f"Value must be >= {_format_number(minimum)}", value)

        maximum = _numeric_constraint(rule, "maximum", path)
        if maximum is not None and number > maximum:
            result.add_error(path, f"Value must be <= {_format_number(maximum)}", value)

        multiple_of = _numeric_constraint(rule, "multipleOf", path)
        if multiple_of is not None and not _is_multiple(number, multiple_of):
            result.add_error(
                path, f"Value must be a multiple of {_format_number(multiple_of)}", value
            )

        return number

    def _validate_integer(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        number = self._validate_number(value, rule, path, result, coerce)
        if not _is_number(number):
            return number

        if isinstance(number, float) and not number.is_integer():
            result.add_error(path, "Value must be an integer", value)
        if isinstance(number, float) and math.isfinite(number):
            return math.floor(number)
        return number

    def _validate_string(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        text = _to_text(value)

        min_length = _numeric_constraint(rule, "minLength", path)
        if min_length is not None and len(text) < min_length:
            result.add_error(
                path,
                f"String must be at least {_format_number(min_length)} characters long",
                value,
            )

        max_length = _numeric_constraint(rule, "maxLength", path)
        if max_length is not None and len(text) > max_length:
            result.add_error(
                path,
                f"String must be at most {_format_number(max_length)} characters long",
                value,
            )

        choices = rule.get("enum")
        if choices is not None:
            if not isinstance(choices, Sequence) or isinstance(choices, str):
                raise SchemaError(path, "'enum' must be a list")
            if text not in choices:
                rendered = ", ".join(str(choice) for choice in choices)
                result.add_error(path, f"Value must be one of: {rendered}", value)

        pattern = rule.get("pattern")
        if pattern:
            try:
                compiled = re.compile(str(pattern))
            except re.error as exc:
                result.add_error(path, f"Invalid pattern in schema: {pattern} ({exc})")
            else:
                if compiled.fullmatch(text) is None:
                    result.add_error(
                        path, f"Value does not match required pattern: {pattern}", value
                    )

        return text

    def _validate_object(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        properties = rule.get("properties") or {}
        if not isinstance(properties, Mapping):
            raise SchemaError(path, "'properties' must be a mapping")

        normalized: Dict[str, Any] = {}
        for name, child_rule in properties.items():
            child = self._validate_value(
                value.get(name, MISSING), child_rule, _child_path(path, name), result, coerce
            )
            if child is not MISSING:
                normalized[name] = child

        required = rule.get("required")
        if isinstance(required, Sequence) and not isinstance(required, str):
            for name in required:
                # Nodes flagged required have already reported their absence.
                if name not in value and not _reports_missing(properties.get(name)):
                    result.add_error(_child_path(path, name), "Required property is missing")

        additional = rule.get("additionalProperties")
        for key, item in value.items():
            if key in properties:
                continue
            if additional is False:
                result.add_warning(
                    _child_path(path, key), "Additional property not allowed in schema"
                )
            elif additional is not True:
                normalized[key] = item

        return normalized

    def _validate_array(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        if not isinstance(value, list):
            result.add_error(path, "Value must be an array", value)
            return value

        items_rule = rule.get("items")
        if items_rule is None:
            normalized = list(value)
        else:
            normalized = [
                self._validate_value(item, items_rule, f"{path}[{index}]", result, coerce)
                for index, item in enumerate(value)
            ]

        min_items = _numeric_constraint(rule, "minItems", path)
        if min_items is not None and len(normalized) < min_items:
            result.add_error(path, f"Array must have at least {_format_number(min_items)} items")

        max_items = _numeric_constraint(rule, "maxItems", path)
        if max_items is not None and len(normalized) > max_items:
            result.add_error(path, f"Array must have at most {_format_number(max_items)} items")

        return normalized

    def _validate_any(
        self, value: Any, rule: Mapping[str, Any], path: str, result: ValidationResult, coerce: bool
    ) -> Any:
        return value


def validate(
    data: Any,
    schema: Mapping[str, Any] | None,
    path: str = "",
    *,
    coerce_types: bool = False,
) -> ValidationResult:
    """Validate ``data`` with a fresh :class:`SchemaValidator`."""

    return SchemaValidator().validate(data, schema, path, coerce_types=coerce_types)


def _flag(rule: Mapping[str, Any], name: str) -> bool:
    return rule.get(name) is True or rule.get(f"_{name}") is True


def _reports_missing(rule: Any) -> bool:
    return isinstance(rule, Mapping) and _flag(rule, "required") and not _flag(rule, "nullable")


def _declared_types(rule: Mapping[str, Any], path: str) -> List[str]:
    declared = rule.get("type")
    if declared is None:
        return []
    if isinstance(declared, str):
        return [declared]
    if isinstance(declared, Sequence) and all(isinstance(item, str) for item in declared):
        return list(declared)
    raise SchemaError(path, "'type' must be a string or a list of strings")


def _numeric_constraint(rule: Mapping[str, Any], name: str, path: str) -> float | None:
    constraint = rule.get(name)
    if constraint is None:
        return None
    if not _is_number(constraint):
        raise SchemaError(path, f"'{name}' must be a number")
    return constraint


def _child_path(path: str, name: object) -> str:
    return f"{path}.{name}" if path else str(name)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_number(value: Any) -> int | float | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if not stripped:
        return None
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        parsed = float(stripped)
    except ValueError:
        return None
    return None if math.isnan(parsed) else parsed


def _is_nan(value: Any) -> bool:
    # Large ints cannot be converted to float, so only floats are checked.
    return isinstance(value, float) and math.isnan(value)


def _is_multiple(number: float, multiple_of: float) -> bool:
    if multiple_of == 0:
        return number == 0
    if isinstance(number, int) and isinstance(multiple_of, int):
        return number % multiple_of == 0
    try:
        quotient = number / multiple_of
    except OverflowError:
        return False
    if not math.isfinite(quotient):
        return False
    return math.isclose(quotient, round(quotient), rel_tol=0.0, abs_tol=1e-9)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return _format_number(value)
    return str(value)


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _dump_value(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


__all__ = [
    "KNOWN_TYPES",
    "MISSING",
    "SchemaValidator",
    "ValidationIssue",
    "ValidationResult",
    "validate",
]
