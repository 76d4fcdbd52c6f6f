"""
repo_ingest: turn a Git repository into a single text digest for an LLM.

Overview
--------
The digest has three parts:

1) a **summary** (repository, number of files, subpath, branch or commit),
2) a **directory tree** drawn with box-drawing characters,
3) the **content** of every text file, each under a ``File:`` banner.

The source may be a local directory, a full URL on a known Git host, a URL
without scheme (``github.com/owner/repo``) or a bare ``owner/repo``. Remote
repositories are cloned into a temporary directory (shallow, and sparse when a
subpath is requested) and removed afterwards.

Usage
-----
Run ``repo-ingest --help`` for full options. Common examples:
    - Local directory to digest.txt:
        repo-ingest .

    - A branch subdirectory of a GitHub repository, printed to stdout:
        repo-ingest https://github.com/owner/repo/tree/main/src --output -

    - Only Python files, skipping tests:
        repo-ingest . --include-pattern "*.py" --exclude-pattern "tests/"
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from repo_ingest import __version__
from repo_ingest.exceptions import RepoIngestError
from repo_ingest.ingestion import ingest
from repo_ingest.logging import logger, setup_logging
from repo_ingest.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into settings.

    Args:
        argv (Sequence[str] | None): arguments, defaults to ``sys.argv[1:]``

    Returns:
        Settings: the parsed settings
    """
    p = argparse.ArgumentParser(
        prog="repo-ingest",
        description="Turn a Git repository or local directory into a text digest for LLMs.",
    )
    p.add_argument("source", type=str, help="Repository URL, owner/repo, or local directory.")
    p.add_argument(
        "--output",
        "-o",
        type=str,
        default="digest.txt",
        help="Output file, '-' for stdout (default: digest.txt).",
    )
    p.add_argument(
        "--max-size",
        "-s",
        type=int,
        default=Settings.model_fields["max_size"].default,
        help="Maximum file size in bytes to include content for.",
    )
    p.add_argument(
        "--exclude-pattern",
        "-e",
        action="append",
        default=[],
        help="Pattern to exclude (repeatable, comma or space separated).",
    )
    p.add_argument(
        "--include-pattern",
        "-i",
        action="append",
        default=[],
        help="Pattern to include (repeatable, comma or space separated).",
    )
    p.add_argument("--branch", "-b", type=str, default="", help="Branch to clone and ingest.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = p.parse_args(argv)
    return Settings(**vars(args))


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    to_stdout = settings.output == "-"
    try:
        summary, tree, content = ingest(
            settings.source,
            max_file_size=settings.max_size,
            include_patterns=settings.include_pattern or None,
            exclude_patterns=settings.exclude_pattern or None,
            branch=settings.branch or None,
            output=None if to_stdout else settings.output,
        )
    except RepoIngestError as e:
        logger.error("ingestion failed", source=settings.source, error=str(e), kind=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if to_stdout:
        print(f"{tree}\n{content}")
    else:
        print(f"Analysis complete! Output written to: {settings.output}")
    print("\nSummary:")
    print(summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
