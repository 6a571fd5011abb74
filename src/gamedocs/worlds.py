"""Discovery of worlds and the document collections they expose."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .errors import WorldNotFoundError

logger = logging.getLogger(__name__)

WORLD_MANIFEST = "world.json"
WORLD_DATA_DIR = "data"


@dataclass(frozen=True)
class WorldDescriptor:
    """Location and collection inventory of a single world."""

    id: str
    path: Path
    title: str = ""
    system: str | None = None
    document_collections: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("World id must be a non-empty string")
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(
            self, "document_collections", tuple(sorted(set(self.document_collections)))
        )

    def has_collection(self, collection: str) -> bool:
        return collection in self.document_collections

    @property
    def data_path(self) -> Path:
        return self.path / WORLD_DATA_DIR

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "title": self.title,
            "system": self.system,
            "documentCollections": list(self.document_collections),
        }


class WorldDirectory:
    """Resolve worlds stored as folders beneath ``worlds_root``.

    A folder counts as a world when it holds a ``world.json`` manifest. Its
    collections are the sub-directories of its ``data`` folder; they are
    discovered, never created.
    """

    def __init__(self, worlds_root: Path) -> None:
        self.worlds_root = Path(worlds_root)

    def list_worlds(self) -> List[WorldDescriptor]:
        if not self.worlds_root.is_dir():
            return []

        worlds: List[WorldDescriptor] = []
        for candidate in sorted(self.worlds_root.iterdir()):
            if not (candidate / WORLD_MANIFEST).is_file():
                continue
            try:
                worlds.append(self._load_world(candidate))
            except ValueError as exc:
                logger.warning("Skipping world at %s: %s", candidate, exc)
        return worlds

    def get_world(self, world_id: str) -> WorldDescriptor:
        """Return the descriptor for ``world_id``.

        Raises:
            WorldNotFoundError: If no world folder with a manifest exists.
        """

        folder = self._world_path(world_id)
        if not (folder / WORLD_MANIFEST).is_file():
            raise WorldNotFoundError(world_id)
        return self._load_world(folder)

    def validate_world_exists(self, world_id: str) -> bool:
        try:
            self.get_world(world_id)
        except WorldNotFoundError:
            return False
        return True

    def _world_path(self, world_id: str) -> Path:
        if not isinstance(world_id, str):
            raise TypeError("world_id must be a string")
        stripped = world_id.strip()
        if not stripped or stripped in (".", "..") or "/" in stripped or "\\" in stripped:
            raise ValueError(f"Invalid world id: {world_id!r}")
        return self.worlds_root / stripped

    def _load_world(self, folder: Path) -> WorldDescriptor:
        manifest = _read_manifest(folder / WORLD_MANIFEST)
        data_dir = folder / WORLD_DATA_DIR
        collections: Iterable[str] = ()
        if data_dir.is_dir():
            collections = (entry.name for entry in data_dir.iterdir() if entry.is_dir())

        system = manifest.get("system")
        return WorldDescriptor(
            id=folder.name,
            path=folder,
            title=str(manifest.get("title") or folder.name),
            system=str(system) if system is not None else None,
            document_collections=tuple(collections),
        )


def format_world_list(worlds: Iterable[WorldDescriptor]) -> str:
    """Return a human-readable listing of ``worlds``."""

    entries = list(worlds)
    if not entries:
        return "No worlds found."

    lines = [f"Available worlds ({len(entries)}):"]
    for world in entries:
        system = f" [{world.system}]" if world.system else ""
        lines.append(f"  {world.id}: {world.title}{system}")
        if world.document_collections:
            lines.append(f"    Collections: {', '.join(world.document_collections)}")
    return "\n".join(lines)


def _read_manifest(path: Path) -> Mapping[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValueError(f"Unreadable world manifest {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"World manifest {path} must contain a JSON object")
    return payload


__all__ = ["WorldDescriptor", "WorldDirectory", "format_world_list"]
