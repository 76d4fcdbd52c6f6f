from __future__ import annotations

import io
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from repo_ingest.config import DEFAULT_BRANCHES, NON_TEXT_SENTINEL, SEPARATOR, Node

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from repo_ingest.config import IngestionQuery


def extract_files_content(query: IngestionQuery, node: Node, files: list[Node] | None = None) -> list[Node]:
    """Collect the file nodes of a tree in depth-first order.

    Non-text files are skipped. Files above ``query.max_file_size`` are kept
    in the list but lose their content.

    Args:
        query (IngestionQuery): the ingestion query
        node (Node): the tree (or subtree) root
        files (list[Node] | None): accumulator for recursion

    Returns:
        list[Node]: shallow copies of the file nodes, in traversal order
    """
    if files is None:
        files = []
    if node.is_file:
        if node.content != NON_TEXT_SENTINEL:
            content = None if node.size > query.max_file_size else node.content
            files.append(node.model_copy(update={"content": content}))
    else:
        for child in node.children:
            extract_files_content(query, child, files)
    return files


def sanitize_repo_path(query: IngestionQuery, full_path: str | Path) -> str:
    """Turn an absolute path into the path shown in the output.

    Everything from the slug onward is kept so temporary directories never
    leak into the output.

    Args:
        query (IngestionQuery): provides the slug
        full_path (str | Path): the absolute path of a file

    Returns:
        str: a ``/``-prefixed display path; the bare file name if the slug is absent
    """
    forward = str(full_path).replace("\\", "/")
    index = forward.find(query.slug)
    if index < 0:
        return f"/{PurePosixPath(forward).name}"
    sub = forward[index:]
    return sub if sub.startswith("/") else f"/{sub}"


def create_file_content_string(query: IngestionQuery, files: Sequence[Node]) -> str:
    """Concatenate file contents, each under a ``File:`` banner.

    Files without content are skipped.

    Returns:
        str: the content section of the digest
    """
    out = io.StringIO()
    for f in files:
        if not f.content:
            continue
        out.write(f"{SEPARATOR}\n")
        out.write(f"File: {sanitize_repo_path(query, f.path)}\n")
        out.write(f"{SEPARATOR}\n")
        out.write(f"{f.content}\n\n")
    return out.getvalue()


def create_summary_string(query: IngestionQuery, root: Node) -> str:
    """Build the summary header of a directory digest.

    Returns:
        str: repository, file count, and optional subpath/commit/branch lines
    """
    lines = [
        f"Repository: {query.user_name}/{query.repo_name}" if query.user_name else f"Repository: {query.slug}",
        f"Files analyzed: {root.file_count}",
    ]
    if query.subpath != "/":
        lines.append(f"Subpath: {query.subpath}")
    if query.commit:
        lines.append(f"Commit: {query.commit}")
    elif query.branch and query.branch.lower() not in DEFAULT_BRANCHES:
        lines.append(f"Branch: {query.branch}")
    return "\n".join(lines) + "\n"


def create_tree_structure(query: IngestionQuery, node: Node, prefix: str = "", *, is_last: bool = True) -> str:
    """Render a node tree with box-drawing connectors.

    Args:
        query (IngestionQuery): provides the slug used for unnamed roots
        node (Node): the subtree root
        prefix (str): indentation inherited from the ancestors
        is_last (bool): whether ``node`` is the last of its siblings

    Returns:
        str: one line per node, directories suffixed with ``/``
    """
    name = node.name or query.slug
    if node.is_dir:
        name += "/"
    lines = [f"{prefix}{'└── ' if is_last else '├── '}{name}\n"]
    if node.is_dir and node.children:
        child_prefix = prefix + ("    " if is_last else "│   ")
        last = len(node.children) - 1
        lines.extend(
            create_tree_structure(query, child, child_prefix, is_last=i == last) for i, child in enumerate(node.children)
        )
    return "".join(lines)
