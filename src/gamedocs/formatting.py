"""Human-readable rendering of search results and documents."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, List, Mapping

from .documents import SearchResult


def format_document_list(
    result: SearchResult,
    *,
    show_details: bool = False,
    show_json: int = 0,
) -> str:
    """Render ``result`` for terminal output.

    Args:
        result: The search outcome to render.
        show_details: When ``True`` include subtype, system summary, and
            ``_stats`` timestamps for each document.
        show_json: When positive, append each document's JSON truncated to
            this many characters.
    """

    if not result.success:
        return f"Search failed: {result.error}"

    if result.total_found == 0:
        return "Found 0 documents."

    header = f"Found {result.total_found} document{'s' if result.total_found != 1 else ''}"
    if result.truncated:
        header += f" (showing {result.returned})"
    lines: List[str] = [header + ":", ""]

    for index, document in enumerate(result.documents, start=1):
        name = document.get("name") or "<unnamed>"
        lines.append(f"{index}. {name} ({document.get('_id', '?')})")

        if show_details:
            lines.extend(_detail_lines(document))

        if show_json > 0:
            lines.append(f"   JSON: {truncate_json(document, show_json)}")

    return "\n".join(lines)


def truncate_json(document: Any, max_chars: int) -> str:
    """Return compact JSON for ``document`` cut to ``max_chars`` characters."""

    rendered = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    if len(rendered) <= max_chars:
        return rendered
    return rendered[:max_chars] + "..."


def format_timestamp(value: Any) -> str:
    """Render an epoch-millisecond timestamp as ISO-8601 text."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "unknown"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()


def _detail_lines(document: Mapping[str, Any]) -> List[str]:
    lines = [f"   Type: {document.get('type') or 'unknown'}"]

    system = document.get("system")
    if isinstance(system, Mapping) and system:
        keys = ", ".join(sorted(str(key) for key in system))
        lines.append(f"   System fields: {keys}")

    stats = document.get("_stats")
    if isinstance(stats, Mapping):
        lines.append(f"   Created: {format_timestamp(stats.get('createdTime'))}")
        lines.append(f"   Modified: {format_timestamp(stats.get('modifiedTime'))}")
        if stats.get("lastModifiedBy"):
            lines.append(f"   Modified by: {stats['lastModifiedBy']}")
    return lines


__all__ = ["format_document_list", "format_timestamp", "truncate_json"]
