"""PowerShell style wildcard matching for parameter name lists."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

__all__ = ["wildcard_match", "is_excluded"]


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    """Translate ``*`` and ``?`` into a regex; every other character is literal.

    Examples:
        >>> bool(_compile("Build_*").match("build_version"))
        True
        >>> bool(_compile("a?c").match("abbc"))
        False
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts) + r"\Z", re.IGNORECASE | re.DOTALL)


def wildcard_match(candidates: Iterable[str], patterns: Iterable[str] | None) -> str | None:
    """
    Return the first candidate matched by any pattern, or ``None``.

    Candidates are the outer loop, so earlier candidates always win over
    later ones no matter which pattern matches.

    Examples:
        >>> wildcard_match(["Build_Version", "Version"], ["version"])
        'Version'
        >>> wildcard_match(["Build_Version", "Version"], ["*version"])
        'Build_Version'
        >>> wildcard_match(["x"], []) is None
        True
    """
    pattern_list = [p for p in (patterns or []) if p]
    if not pattern_list:
        return None
    for candidate in candidates:
        for pattern in pattern_list:
            if _compile(pattern).match(candidate):
                return candidate
    return None


def is_excluded(candidates: Iterable[str], patterns: Iterable[str] | None) -> bool:
    """True when any candidate matches any exclusion pattern."""
    return wildcard_match(candidates, patterns) is not None
