"""Top-level ingestion: resolve, fetch, scan, render, clean up."""

from __future__ import annotations

import asyncio
import shutil
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from repo_ingest.config import CONTENT_TOO_LARGE, TREE_HEADER, IngestionQuery, Node, NodeType
from repo_ingest.exceptions import NoFilesFoundError, NotATextFileError, SourceNotFoundError
from repo_ingest.file_manipulation import ScanContext, is_text_file, read_file_content, scan_directory
from repo_ingest.git_operations import clone_repo
from repo_ingest.ignore_file import apply_ignore_file
from repo_ingest.limiter import runner
from repo_ingest.logging import logger
from repo_ingest.output_construction import (
    create_file_content_string,
    create_summary_string,
    create_tree_structure,
    extract_files_content,
)
from repo_ingest.query_parsing import parse_query
from repo_ingest.settings import DEFAULT_LIMITS, IngestLimits

if TYPE_CHECKING:
    from collections.abc import Iterable

IngestResult = tuple[str, str, str]


async def ingest_single_file(path: Path, query: IngestionQuery) -> IngestResult:
    """Ingest one text file.

    Args:
        path (Path): the file to ingest
        query (IngestionQuery): the ingestion query

    Raises:
        NotATextFileError: if ``path`` is not a regular text file.

    Returns:
        IngestResult: summary, tree and content
    """
    st = await runner.run_blocking(path.stat)
    if not stat.S_ISREG(st.st_mode):
        raise NotATextFileError(message=f"Path {path} is not a file")
    if not await is_text_file(path):
        raise NotATextFileError(message=f"File {path} is not a text file")

    size = st.st_size
    content = CONTENT_TOO_LARGE
    if size <= query.max_file_size:
        content = await read_file_content(path)

    # a trailing newline opens one more (empty) line
    line_count = content.count("\n") + 1
    repository = f"{query.user_name}/{query.repo_name}" if query.user_name else query.slug
    summary = (
        f"Repository: {repository}\n"
        f"File: {path.name}\n"
        f"Size: {size} bytes\n"
        f"Lines: {line_count}\n"
    )
    node = Node(name=path.name, type=NodeType.FILE, size=size, content=content, path=path)
    tree = f"{TREE_HEADER}└── {path.name}"
    return summary, tree, create_file_content_string(query, [node])


async def ingest_directory(path: Path, query: IngestionQuery, limits: IngestLimits | None = None) -> IngestResult:
    """Scan a directory and render its digest.

    Args:
        path (Path): the directory to scan
        query (IngestionQuery): the ingestion query
        limits (IngestLimits | None): ceilings, defaults to ``DEFAULT_LIMITS``

    Raises:
        NoFilesFoundError: if the scan produced no tree.

    Returns:
        IngestResult: summary, tree and content
    """
    ctx = await ScanContext.create(query, limits)
    root = await scan_directory(path, ctx)
    if root is None:
        raise NoFilesFoundError(message=f"No files found in {path}")

    logger.info(
        "directory scanned",
        path=str(path),
        files=root.file_count,
        directories=root.dir_count,
        size=root.size,
    )
    files = extract_files_content(query, root)
    summary = create_summary_string(query, root)
    tree = TREE_HEADER + create_tree_structure(query, root)
    return summary, tree, create_file_content_string(query, files)


async def run_ingest_query(query: IngestionQuery, limits: IngestLimits | None = None) -> IngestResult:
    """Ingest the local copy described by ``query``.

    A ``.gitingest`` file at the ingestion root extends the ignore set first.
    Blob URLs and file paths are ingested as single files.

    Raises:
        SourceNotFoundError: if ``local_path``/``subpath`` does not exist.

    Returns:
        IngestResult: summary, tree and content
    """
    target = query.local_path / query.subpath.lstrip("/")
    try:
        st = await runner.run_blocking(target.stat)
    except OSError as e:
        raise SourceNotFoundError(message=f"{query.slug} cannot be found") from e

    await apply_ignore_file(target, query)

    if query.type == "blob" or stat.S_ISREG(st.st_mode):
        return await ingest_single_file(target, query)
    return await ingest_directory(target, query, limits)


async def remove_recursive(target: Path) -> None:
    if not await runner.run_blocking(target.exists):
        return
    await runner.run_blocking(shutil.rmtree, target, ignore_errors=True)


async def ingest_async(
    source: str,
    max_file_size: int | None = None,
    include_patterns: str | Iterable[str] | None = None,
    exclude_patterns: str | Iterable[str] | None = None,
    branch: str | None = None,
    output: str | Path | None = None,
    *,
    limits: IngestLimits | None = None,
) -> IngestResult:
    """Ingest a repository URL or local directory into a text digest.

    Remote sources are cloned into a per-call temporary directory, which is
    removed afterwards whether or not the ingestion succeeds.

    Args:
        source (str): URL, ``owner/repo`` or local path
        max_file_size (int | None): files above this size keep no content,
            defaults to ``limits.max_file_size``
        include_patterns (str | Iterable[str] | None): patterns to include
        exclude_patterns (str | Iterable[str] | None): patterns to exclude
        branch (str | None): branch to clone, overriding the one in the URL
        output (str | Path | None): file to write ``{tree}\\n{content}`` to
        limits (IngestLimits | None): ceilings, defaults to ``DEFAULT_LIMITS``

    Returns:
        IngestResult: summary, tree and content
    """
    limits = limits or DEFAULT_LIMITS
    if max_file_size is None:
        max_file_size = limits.max_file_size
    clone_root: Path | None = None
    try:
        query = await parse_query(
            source,
            max_file_size,
            False,  # noqa: FBT003
            include_patterns,
            exclude_patterns,
            tmp_base_path=limits.tmp_base_path,
        )
        if query.url:
            if branch:
                query.branch = branch
            clone_root = query.local_path.parent
            await clone_repo(query.extract_clone_config())

        summary, tree, content = await run_ingest_query(query, limits)

        if output is not None:
            await runner.run_blocking(Path(output).write_text, f"{tree}\n{content}", encoding="utf-8")
        return summary, tree, content
    finally:
        if clone_root is not None:
            await remove_recursive(clone_root)


def ingest(
    source: str,
    max_file_size: int | None = None,
    include_patterns: str | Iterable[str] | None = None,
    exclude_patterns: str | Iterable[str] | None = None,
    branch: str | None = None,
    output: str | Path | None = None,
    *,
    limits: IngestLimits | None = None,
) -> IngestResult:
    """Synchronous version of :func:`ingest_async`.

    Returns:
        IngestResult: summary, tree and content
    """
    return asyncio.run(
        ingest_async(
            source,
            max_file_size,
            include_patterns,
            exclude_patterns,
            branch,
            output,
            limits=limits,
        ),
    )
