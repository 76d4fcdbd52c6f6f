"""Support for the repository-local ``.gitingest`` override file.

Only one key is understood, ``ignorePatterns``, written on a single line as
either a quoted string or a bracketed list of quoted strings::

    # extra patterns for this repository
    ignorePatterns = ["docs/", "*.csv"]

This is a line grammar for that key, not a TOML parser: tables, multi-line
arrays and other keys are skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from repo_ingest.exceptions import InvalidPatternError
from repo_ingest.limiter import runner
from repo_ingest.logging import logger
from repo_ingest.patterns import parse_patterns

if TYPE_CHECKING:
    from pathlib import Path

    from repo_ingest.config import IngestionQuery

IGNORE_FILE_NAME = ".gitingest"
IGNORE_KEY = "ignorePatterns"


def _unquote(value: str) -> str:
    value = value.strip()
    for quote in ('"', "'"):
        if len(value) >= 2 and value.startswith(quote) and value.endswith(quote):  # noqa: PLR2004
            return value[1:-1]
    return value


def parse_ignore_file(text: str) -> list[str]:
    """Extract the ``ignorePatterns`` values from ``.gitingest`` content.

    When the key appears several times the last occurrence wins.

    Args:
        text (str): the file content

    Returns:
        list[str]: the raw (unvalidated) patterns, empty if the key is absent
    """
    found: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep or key.strip() != IGNORE_KEY:
            continue
        value = value.strip()
        if value.startswith("[") and value.endswith("]"):
            found = [_unquote(v) for v in value[1:-1].split(",")]
        else:
            found = [_unquote(value)]
        found = [v for v in found if v]
    return found


async def apply_ignore_file(directory: Path, query: IngestionQuery) -> None:
    """Merge patterns from ``directory/.gitingest`` into the query's ignore set.

    Missing, unreadable or malformed files are skipped.

    Args:
        directory (Path): the ingestion root
        query (IngestionQuery): the query to update in place
    """
    path = directory / IGNORE_FILE_NAME
    try:
        if not await runner.run_blocking(path.is_file):
            return
        text = await runner.run_blocking(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("unreadable ignore file", path=str(path), error=str(e))
        return

    # the override file is configuration, never content
    try:
        query.ignore_patterns.add(path.relative_to(query.local_path).as_posix())
    except ValueError:
        query.ignore_patterns.add(IGNORE_FILE_NAME)

    raw_patterns = parse_ignore_file(text)
    if not raw_patterns:
        return
    try:
        patterns = parse_patterns(raw_patterns)
    except InvalidPatternError as e:
        logger.warning("ignoring malformed ignore file", path=str(path), error=str(e))
        return

    query.ignore_patterns |= patterns
    logger.info("applied ignore file", path=str(path), patterns=sorted(patterns))
