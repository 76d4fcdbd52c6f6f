from __future__ import annotations

import os
import tempfile
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_FILE = find_dotenv(usecwd=True)
load_dotenv(ENV_FILE)

ENV_PREFIX = "REPO_INGEST_"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name, "").strip()
    return int(raw) if raw else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(ENV_PREFIX + name, "").strip()
    return Path(raw) if raw else default


class IngestLimits(BaseModel):
    """Resource ceilings applied to every ingestion.

    Each default can be overridden with a ``REPO_INGEST_<FIELD>`` environment
    variable (for instance ``REPO_INGEST_MAX_FILES``), read from the process
    environment or from the nearest ``.env`` file.
    """

    model_config = ConfigDict(frozen=True)

    max_file_size: int = Field(
        default_factory=lambda: _env_int("MAX_FILE_SIZE", 10 * 1024 * 1024),
        gt=0,
        description="Files above this size are listed but their content is skipped.",
    )
    max_directory_depth: int = Field(
        default_factory=lambda: _env_int("MAX_DIRECTORY_DEPTH", 20),
        ge=0,
        description="Deeper subtrees yield nothing.",
    )
    max_files: int = Field(
        default_factory=lambda: _env_int("MAX_FILES", 10_000),
        gt=0,
        description="Scanning more files than this aborts the ingestion.",
    )
    max_total_size_bytes: int = Field(
        default_factory=lambda: _env_int("MAX_TOTAL_SIZE_BYTES", 500 * 1024 * 1024),
        gt=0,
        description="Scanning more bytes than this aborts the ingestion.",
    )
    concurrency: int = Field(
        default_factory=lambda: _env_int("CONCURRENCY", 32),
        gt=0,
        description=(
            "Maximum number of in-flight filesystem or process operations. Sizes the"
            " shared runner at import time, so only the environment value applies."
        ),
    )
    tmp_base_path: Path = Field(
        default_factory=lambda: _env_path("TMP_BASE_PATH", Path(tempfile.gettempdir()) / "repo_ingest"),
        description="Root directory for temporary clones.",
    )


DEFAULT_LIMITS = IngestLimits()


class Settings(BaseModel):
    """Configuration settings for the repo_ingest command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: str = Field(default=".", description="Repository URL or local directory.")
    output: str = Field(default="digest.txt", description="Output file, '-' for stdout.")
    max_size: int = Field(
        default=DEFAULT_LIMITS.max_file_size,
        gt=0,
        description="Maximum file size to include content for (bytes).",
    )
    exclude_pattern: list[str] = Field(default_factory=list, description="Exclude patterns.")
    include_pattern: list[str] = Field(default_factory=list, description="Include patterns.")
    branch: str = Field(default="", description="Branch to clone and ingest.")
    log_file: str = Field(default="", description="Log file path.")
