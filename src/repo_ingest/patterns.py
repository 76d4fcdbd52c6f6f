"""Include/exclude pattern handling.

Patterns are a deliberately small subset of glob syntax: ``*`` matches any
run of characters (including ``/``) and everything else is literal. A pattern
must match the whole forward-slash relative path.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING

from repo_ingest.exceptions import InvalidPatternError

if TYPE_CHECKING:
    from collections.abc import Iterable

_ALLOWED_PATTERN_CHARS = frozenset("0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ-_./+*@")
_SPLIT_PATTERN = re.compile(r"[,\s]+")


def normalize_pattern(pattern: str) -> str:
    """Normalize a pattern for matching.

    Leading separators are stripped and a trailing separator means "this
    directory and everything below it".

    Args:
        pattern (str): the raw pattern

    Returns:
        str: the normalized pattern
    """
    normalized = pattern.lstrip("/\\")
    if normalized.endswith(("/", "\\")):
        normalized += "*"
    return normalized


def validate_pattern(pattern: str) -> bool:
    """Check that a pattern only uses alphanumerics and ``-_./+*@``.

    Args:
        pattern (str): the pattern to check

    Returns:
        bool: True if every character is allowed
    """
    return all(c in _ALLOWED_PATTERN_CHARS for c in pattern)


def parse_patterns(patterns: str | Iterable[str]) -> set[str]:
    """Turn user-supplied pattern input into a normalized set.

    Each string is split on runs of commas and whitespace.

    Args:
        patterns (str | Iterable[str]): a single string or a collection of strings

    Raises:
        InvalidPatternError: if any pattern contains a forbidden character.

    Returns:
        set[str]: the validated and normalized patterns
    """
    items = [patterns] if isinstance(patterns, str) else list(patterns)
    result: set[str] = set()
    for item in items:
        for part in _SPLIT_PATTERN.split(item):
            if not part:
                continue
            if not validate_pattern(part):
                raise InvalidPatternError(pattern=part)
            result.add(normalize_pattern(part))
    return result


def override_ignore_patterns(ignore_patterns: set[str], include_patterns: set[str]) -> set[str]:
    """Drop from the ignore set every pattern that is explicitly included.

    Only exact (normalized) string matches are removed.

    Returns:
        set[str]: a new ignore set
    """
    return set(ignore_patterns) - set(include_patterns)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a pattern into an anchored regular expression.

    Returns:
        re.Pattern[str]: the compiled matcher
    """
    body = ".*".join(re.escape(chunk) for chunk in pattern.split("*"))
    return re.compile(body, re.DOTALL)


def matches_pattern(path: str, pattern: str) -> bool:
    return compile_pattern(pattern).fullmatch(path) is not None


def matches_any(path: str, patterns: Iterable[str] | None) -> bool:
    """Check if a relative path matches any of the provided patterns.

    Args:
        path (str): forward-slash path relative to the ingestion root
        patterns (Iterable[str] | None): the patterns to match against

    Returns:
        bool: True if ``path`` matches at least one pattern
    """
    if not patterns:
        return False
    return any(matches_pattern(path, p) for p in patterns)
