"""Protected-field-aware deep merge for partial document updates."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Collection, Dict, List, Mapping

DEFAULT_PROTECTED_PATHS: frozenset[str] = frozenset(
    {
        "_id",
        "_stats.createdTime",
        "_stats.coreVersion",
        "_stats.systemId",
        "_stats.systemVersion",
    }
)


def merge_documents(
    existing: Mapping[str, Any],
    update: Mapping[str, Any],
    protected_paths: Collection[str] = DEFAULT_PROTECTED_PATHS,
) -> Dict[str, Any]:
    """Return ``existing`` with ``update`` deep-merged into a copy of it.

    Nested mappings present on both sides are merged key by key; any other
    value, lists included, replaces the existing value outright. Values whose
    dotted path appears in ``protected_paths`` are skipped. Neither argument is
    mutated.
    """

    if not isinstance(existing, Mapping):
        raise TypeError(f"existing must be a mapping, got {type(existing)!r}")
    if not isinstance(update, Mapping):
        raise TypeError(f"update must be a mapping, got {type(update)!r}")

    merged = deepcopy(dict(existing))
    _merge_into(merged, update, frozenset(protected_paths), prefix="")
    return merged


def find_protected_writes(
    update: Mapping[str, Any],
    protected_paths: Collection[str] = DEFAULT_PROTECTED_PATHS,
) -> List[str]:
    """Return the protected dotted paths that ``update`` attempts to write."""

    found: List[str] = []
    _collect_protected(update, frozenset(protected_paths), "", found)
    return found


def _merge_into(
    target: Dict[str, Any],
    update: Mapping[str, Any],
    protected: frozenset[str],
    *,
    prefix: str,
) -> None:
    for key, value in update.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if path in protected:
            continue

        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value, protected, prefix=path)
        elif isinstance(value, Mapping) and _has_protected_descendant(path, protected):
            # Replacing the whole branch would clobber protected children.
            branch: Dict[str, Any] = {}
            _merge_into(branch, value, protected, prefix=path)
            target[key] = branch
        elif isinstance(current, dict) and _has_protected_descendant(path, protected):
            # A scalar or list cannot hold the protected children, so only they survive.
            target[key] = _protected_subset(current, protected, prefix=path)
        else:
            target[key] = deepcopy(value)


def _protected_subset(
    source: Dict[str, Any], protected: frozenset[str], *, prefix: str
) -> Dict[str, Any]:
    kept: Dict[str, Any] = {}
    for key, value in source.items():
        path = f"{prefix}.{key}"
        if path in protected:
            kept[key] = value
        elif isinstance(value, dict) and _has_protected_descendant(path, protected):
            kept[key] = _protected_subset(value, protected, prefix=path)
    return kept


def _has_protected_descendant(path: str, protected: frozenset[str]) -> bool:
    marker = f"{path}."
    return any(entry.startswith(marker) for entry in protected)


def _collect_protected(
    update: Mapping[str, Any],
    protected: frozenset[str],
    prefix: str,
    found: List[str],
) -> None:
    for key, value in update.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if path in protected:
            found.append(path)
        elif isinstance(value, Mapping):
            _collect_protected(value, protected, path, found)
        elif _has_protected_descendant(path, protected):
            marker = f"{path}."
            found.extend(sorted(entry for entry in protected if entry.startswith(marker)))


__all__ = ["DEFAULT_PROTECTED_PATHS", "find_protected_writes", "merge_documents"]
