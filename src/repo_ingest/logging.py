from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

import structlog

from repo_ingest.settings import ENV_PREFIX

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "repo_ingest"

_configured = False


def _log_level() -> int:
    name = os.getenv(ENV_PREFIX + "LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _make_handler(filename: str | Path | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(str(filename), encoding="utf-8")
    return logging.StreamHandler(sys.stderr)


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Configure structlog for repo_ingest and return the package logger.

    structlog is configured on the first call only. Passing ``filename`` on a
    later call moves the stdlib handlers to that file. The level comes from
    ``REPO_INGEST_LOG_LEVEL`` (default ``INFO``).

    Args:
        filename: Optional log file. If None, logs go to stderr.

    Returns:
        The structlog logger bound to the ``repo_ingest`` name.
    """
    global _configured  # noqa: PLW0603
    level = _log_level()
    if filename or not _configured:
        logging.basicConfig(
            level=level,
            handlers=[_make_handler(filename)],
            format="%(message)s",
            force=bool(filename),
        )

    if not _configured:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True

    return structlog.get_logger(LOGGER_NAME)


logger = setup_logging()
