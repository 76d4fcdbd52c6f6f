from __future__ import annotations

import asyncio
import json
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from repo_ingest.config import BINARY_SNIFF_BYTES, NON_TEXT_SENTINEL, IngestionQuery, IngestionStats, Node, NodeType
from repo_ingest.limiter import runner
from repo_ingest.logging import logger
from repo_ingest.patterns import matches_any
from repo_ingest.settings import DEFAULT_LIMITS, IngestLimits

if TYPE_CHECKING:
    from collections.abc import Sequence

_SUSPICIOUS_RATIO_PERCENT = 10


@dataclass
class ScanContext:
    """State shared by every task of one directory scan.

    Attributes:
        query: the ingestion query (patterns, root, max file size).
        stats: global file/byte counters.
        limits: depth and count ceilings.
        root: canonical path of the traversal root; symlinks may not leave it.
        seen_paths: canonical paths of directories already visited.
        pending_links: symlinked directories found during the walk, as
            ``(link path, parent node, parent depth)``; walked once the real
            tree is complete.
        link_holders: ids of directory nodes with a pending link below them.
    """

    query: IngestionQuery
    stats: IngestionStats
    limits: IngestLimits
    root: str
    seen_paths: set[str] = field(default_factory=set)
    pending_links: list[tuple[Path, Node, int]] = field(default_factory=list)
    link_holders: set[int] = field(default_factory=set)

    @classmethod
    async def create(cls, query: IngestionQuery, limits: IngestLimits | None = None) -> ScanContext:
        limits = limits or DEFAULT_LIMITS
        root = await runner.run_blocking(os.path.realpath, query.local_path)
        return cls(
            query=query,
            stats=IngestionStats(max_files=limits.max_files, max_total_size=limits.max_total_size_bytes),
            limits=limits,
            root=root,
        )


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def should_exclude(path: Path, base_path: Path, ignore_patterns: set[str] | None) -> bool:
    if not ignore_patterns:
        return False
    return matches_any(relpath(path, base_path), ignore_patterns)


def should_include(path: Path, base_path: Path, include_patterns: set[str] | None) -> bool:
    if include_patterns is None:
        return True
    return matches_any(relpath(path, base_path), include_patterns)


def is_binary_buffer(buf: bytes) -> bool:
    """Heuristically decide whether a byte sample comes from a binary file.

    Only the first 1024 bytes are considered. Any NUL byte means binary;
    otherwise the sample is binary when more than 10% of its bytes fall outside
    printable ASCII and the 7-13 control range (bell, backspace, whitespace).

    Args:
        buf (bytes): the leading bytes of a file

    Returns:
        bool: True if the sample looks binary
    """
    sample = buf[:BINARY_SNIFF_BYTES]
    if not sample:
        return False
    if 0 in sample:
        return True
    suspicious = sum(1 for b in sample if not (7 <= b <= 13 or 32 <= b <= 127))  # noqa: PLR2004
    return suspicious * 100 / len(sample) > _SUSPICIOUS_RATIO_PERCENT


def _read_head(path: Path, nbytes: int) -> bytes:
    with path.open("rb") as f:
        return f.read(nbytes)


async def is_text_file(path: Path) -> bool:
    """Check if a file is probably text.

    Returns:
        bool: True if the first bytes look textual, False if binary or unreadable
    """
    try:
        head = await runner.run_blocking(_read_head, path, BINARY_SNIFF_BYTES)
    except OSError:
        return False
    return not is_binary_buffer(head)


def process_notebook(content: str, path: Path) -> str:
    """Annotate a Jupyter notebook with its source path.

    The JSON is validated but passed through unchanged.

    Returns:
        str: the annotated notebook, or an inline error message for invalid JSON
    """
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        return f"Error processing notebook JSON: {e}"
    return f"# Jupyter notebook content from: {path}\n{content}"


async def read_file_content(path: Path) -> str:
    """Read a text file, special-casing notebooks.

    Read failures are reported inline instead of raising.

    Returns:
        str: the file content or an error message
    """
    if path.suffix == ".ipynb":
        try:
            raw = await runner.run_blocking(path.read_text, encoding="utf-8", errors="ignore")
        except OSError as e:
            return f"Error processing notebook: {e}"
        return process_notebook(raw, path)
    try:
        return await runner.run_blocking(path.read_text, encoding="utf-8", errors="ignore")
    except OSError as e:
        return f"Error reading file: {e}"


async def process_file(path: Path, stats: IngestionStats, query: IngestionQuery) -> Node | None:
    """Build a file node and account for it in the global stats.

    Args:
        path (Path): the file to read
        stats (IngestionStats): shared counters
        query (IngestionQuery): provides the per-file size threshold

    Raises:
        MaxFileSizeReachedError: if the cumulative size ceiling is crossed.
        MaxFilesReachedError: if the file count ceiling is crossed.

    Returns:
        Node | None: the file node, or None if the file cannot be stat'ed
    """
    try:
        st = await runner.run_blocking(path.stat)
    except OSError as e:
        logger.debug("skipping unreadable file", path=str(path), error=str(e))
        return None

    size = st.st_size
    stats.register_file(size)

    content = NON_TEXT_SENTINEL
    if size <= query.max_file_size and await is_text_file(path):
        content = await read_file_content(path)
    return Node(name=path.name, type=NodeType.FILE, size=size, content=content, path=path)


def sort_children(children: Sequence[Node]) -> list[Node]:
    """Order the entries of one directory listing.

    1) README.md files (any case)
    2) regular files
    3) hidden files
    4) regular directories
    5) hidden directories

    Within each bucket, entries are sorted case-sensitively by name.

    Args:
        children (Sequence[Node]): the unordered children

    Returns:
        list[Node]: the ordered children
    """

    def key(node: Node) -> tuple[int, str]:
        hidden = node.name.startswith(".")
        if node.is_file:
            if node.name.lower() == "readme.md":
                bucket = 0
            else:
                bucket = 2 if hidden else 1
        else:
            bucket = 4 if hidden else 3
        return (bucket, node.name)

    return sorted(children, key=key)


def _keep_directory(subdir: Node | None, ctx: ScanContext) -> bool:
    if subdir is None:
        return False
    return not ctx.query.include_patterns or subdir.file_count > 0 or id(subdir) in ctx.link_holders


def _add_child(node: Node, child: Node) -> None:
    node.children.append(child)
    node.size += child.size
    if child.is_file:
        node.file_count += 1
    else:
        node.file_count += child.file_count
        node.dir_count += 1 + child.dir_count


async def _scan_symlink(path: Path, parent: Node, ctx: ScanContext, depth: int) -> Node | None:
    try:
        target = await runner.run_blocking(os.path.realpath, path, strict=True)
    except OSError as e:
        logger.debug("skipping broken symlink", path=str(path), error=str(e))
        return None
    if os.path.commonpath([target, ctx.root]) != ctx.root:
        logger.debug("skipping symlink outside root", path=str(path), target=target)
        return None

    target_stat = await runner.run_blocking(os.stat, target)
    query = ctx.query
    if stat.S_ISREG(target_stat.st_mode):
        if not should_include(path, query.local_path, query.include_patterns):
            parent.ignore_content = True
            return None
        node = await process_file(Path(target), ctx.stats, query)
        if node is not None:
            node.name = path.name
            node.path = path
        return node
    if stat.S_ISDIR(target_stat.st_mode):
        # real directories claim their canonical path first
        ctx.pending_links.append((path, parent, depth))
        ctx.link_holders.add(id(parent))
    return None


async def _scan_entry(path: Path, parent: Node, ctx: ScanContext, depth: int) -> Node | None:
    query = ctx.query
    if should_exclude(path, query.local_path, query.ignore_patterns):
        return None
    try:
        st = await runner.run_blocking(os.lstat, path)
        if stat.S_ISLNK(st.st_mode):
            return await _scan_symlink(path, parent, ctx, depth)
        if stat.S_ISREG(st.st_mode):
            if not should_include(path, query.local_path, query.include_patterns):
                parent.ignore_content = True
                return None
            return await process_file(path, ctx.stats, query)
        if stat.S_ISDIR(st.st_mode):
            subdir = await scan_directory(path, ctx, depth + 1)
            return subdir if _keep_directory(subdir, ctx) else None
    except OSError as e:
        logger.debug("skipping entry", path=str(path), error=str(e))
    return None


async def _scan_pending_links(ctx: ScanContext) -> None:
    """Walk queued symlinked directories one at a time, in path order.

    Links found inside a linked directory join the queue.
    """
    while ctx.pending_links:
        ctx.pending_links.sort(key=lambda item: item[0].as_posix(), reverse=True)
        path, parent, depth = ctx.pending_links.pop()
        subdir = await scan_directory(path, ctx, depth + 1)
        if subdir is not None:
            parent.children.append(subdir)


def _recount(node: Node, *, prune_empty: bool) -> None:
    """Recompute sizes and counts bottom-up, dropping empty directories if asked."""
    children = node.children
    node.children = []
    node.size = node.file_count = node.dir_count = 0
    for child in children:
        if child.is_dir:
            _recount(child, prune_empty=prune_empty)
            if prune_empty and child.file_count == 0:
                continue
        _add_child(node, child)
    node.children = sort_children(node.children)


async def scan_directory(path: Path, ctx: ScanContext, depth: int = 0) -> Node | None:
    """Recursively scan a directory into a node tree.

    Children are processed concurrently. Excluded entries are skipped, files
    failing the include filter are dropped (the parent is flagged), and
    directories are kept only if include filtering is off or they hold at
    least one file. Per-entry I/O errors drop that entry; ceiling errors abort
    the whole scan.

    Symlinked directories are walked after the rest of the tree, in path
    order, so a directory reachable both directly and through a link always
    appears at its real location.

    Args:
        path (Path): the directory to scan
        ctx (ScanContext): shared scan state
        depth (int): current depth, 0 for the root

    Returns:
        Node | None: the directory node, or None past the depth cap, once a
            ceiling is met, or for a directory already visited
    """
    if depth > ctx.limits.max_directory_depth or ctx.stats.limit_reached():
        return None

    real_path = await runner.run_blocking(os.path.realpath, path)
    if real_path in ctx.seen_paths:
        return None
    ctx.seen_paths.add(real_path)

    node = Node(name=path.name, type=NodeType.DIRECTORY, path=path)
    try:
        names = await runner.run_blocking(os.listdir, path)
    except OSError as e:
        logger.debug("cannot list directory", path=str(path), error=str(e))
        return node

    tasks = [asyncio.ensure_future(_scan_entry(path / name, node, ctx, depth)) for name in names]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

    for child in results:
        if child is None:
            continue
        _add_child(node, child)
        if child.is_dir and id(child) in ctx.link_holders:
            ctx.link_holders.add(id(node))
    node.children = sort_children(node.children)

    if depth == 0 and ctx.pending_links:
        await _scan_pending_links(ctx)
        _recount(node, prune_empty=bool(ctx.query.include_patterns))
    return node
