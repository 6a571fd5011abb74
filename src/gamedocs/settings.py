"""Environment-driven configuration for the CLI and HTTP service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .documents import DocumentMeta

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _normalise_string(value: str | None, *, default: str | None) -> str | None:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_bool(value: str | None, *, name: str, default: bool) -> bool:
    if value is None or not value.strip():
        return default

    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))}.")


def _normalise_log_level(value: str | None) -> str:
    level = _normalise_string(value, default="WARNING") or "WARNING"
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"GAMEDOCS_LOG_LEVEL must name a logging level, got {value!r}.")
    return level


@dataclass(frozen=True)
class GamedocsSettings:
    """Deployment settings shared by the command line and the HTTP API.

    Values are read from ``GAMEDOCS_*`` environment variables. Paths are
    expanded to support ``~`` prefixes while empty strings are treated as if
    the variable was unset.
    """

    worlds_root: Path | None = None
    schema_root: Path | None = None
    user_id: str = "gamedocs"
    core_version: str | None = None
    system_id: str | None = None
    system_version: str | None = None
    coerce_types: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GamedocsSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            worlds_root=_normalise_path(source.get("GAMEDOCS_WORLDS_ROOT")),
            schema_root=_normalise_path(source.get("GAMEDOCS_SCHEMA_ROOT")),
            user_id=_normalise_string(source.get("GAMEDOCS_USER_ID"), default="gamedocs")
            or "gamedocs",
            core_version=_normalise_string(source.get("GAMEDOCS_CORE_VERSION"), default=None),
            system_id=_normalise_string(source.get("GAMEDOCS_SYSTEM_ID"), default=None),
            system_version=_normalise_string(
                source.get("GAMEDOCS_SYSTEM_VERSION"), default=None
            ),
            coerce_types=_normalise_bool(
                source.get("GAMEDOCS_COERCE_TYPES"),
                name="GAMEDOCS_COERCE_TYPES",
                default=False,
            ),
            log_level=_normalise_log_level(source.get("GAMEDOCS_LOG_LEVEL")),
        )

    def document_meta(self) -> DocumentMeta:
        """Return the attribution stamped onto documents written with these settings."""

        return DocumentMeta(
            user_id=self.user_id,
            core_version=self.core_version,
            system_id=self.system_id,
            system_version=self.system_version,
        )


__all__ = ["GamedocsSettings"]
