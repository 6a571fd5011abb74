"""Glob-style wildcard matching used by document search."""

from __future__ import annotations

import re
from typing import Callable


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate ``pattern`` into an anchored, case-insensitive expression.

    Regular-expression metacharacters are escaped first so only ``*`` (any run
    of characters, including none) and ``?`` (exactly one character) carry
    special meaning.
    """

    if not isinstance(pattern, str):
        raise TypeError(f"pattern must be a string, got {type(pattern)!r}")

    escaped = re.escape(pattern)
    translated = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{translated}$", re.IGNORECASE | re.DOTALL)


def compile_wildcard(pattern: str) -> Callable[[object], bool]:
    """Return a predicate that reports whether a value fully matches ``pattern``."""

    regex = wildcard_to_regex(pattern)

    def _matches(candidate: object) -> bool:
        if not isinstance(candidate, str):
            return False
        return regex.fullmatch(candidate) is not None

    return _matches


__all__ = ["compile_wildcard", "wildcard_to_regex"]
