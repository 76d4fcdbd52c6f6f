from __future__ import annotations

from pathlib import Path

import pytest

from repo_ingest.config import NON_TEXT_SENTINEL, SEPARATOR, IngestionQuery, Node, NodeType
from repo_ingest.output_construction import (
    create_file_content_string,
    create_summary_string,
    create_tree_structure,
    extract_files_content,
    sanitize_repo_path,
)

BASE = Path("/tmp/repo_ingest/abc123/acme-widgets")


def make_query(**kwargs) -> IngestionQuery:
    kwargs.setdefault("max_file_size", 100)
    return IngestionQuery(
        user_name="acme",
        repo_name="widgets",
        local_path=BASE,
        slug="acme-widgets",
        id="abc123",
        **kwargs,
    )


def file_node(rel: str, content: str = "x", size: int | None = None) -> Node:
    path = BASE / rel
    return Node(
        name=path.name,
        type=NodeType.FILE,
        size=len(content) if size is None else size,
        content=content,
        path=path,
    )


def dir_node(rel: str, children: list[Node]) -> Node:
    path = BASE / rel if rel else BASE
    return Node(name=path.name, type=NodeType.DIRECTORY, path=path, children=children)


@pytest.fixture
def tree() -> Node:
    return dir_node(
        "",
        [
            file_node("README.md", "# Widgets"),
            file_node("logo.png", NON_TEXT_SENTINEL),
            dir_node("src", [file_node("src/app.py", "print('hi')"), dir_node("src/empty", [])]),
            dir_node("tests", [file_node("tests/test_app.py", "big", size=500)]),
        ],
    )


@pytest.mark.unit
def test_create_tree_structure_draws_connectors(tree: Node) -> None:
    rendered = create_tree_structure(make_query(), tree)

    assert rendered == (
        "└── acme-widgets/\n"
        "    ├── README.md\n"
        "    ├── logo.png\n"
        "    ├── src/\n"
        "    │   ├── app.py\n"
        "    │   └── empty/\n"
        "    └── tests/\n"
        "        └── test_app.py\n"
    )


@pytest.mark.unit
def test_create_tree_structure_unnamed_root_uses_slug() -> None:
    root = Node(name="", type=NodeType.DIRECTORY, path=BASE)

    assert create_tree_structure(make_query(), root) == "└── acme-widgets/\n"


@pytest.mark.unit
def test_extract_files_content_skips_binaries_and_blanks_large_files(tree: Node) -> None:
    files = extract_files_content(make_query(), tree)

    assert [f.name for f in files] == ["README.md", "app.py", "test_app.py"]
    assert files[-1].content is None
    # the tree itself is left untouched
    assert tree.children[3].children[0].content == "big"


@pytest.mark.unit
def test_create_file_content_string(tree: Node) -> None:
    query = make_query()
    files = extract_files_content(query, tree)

    content = create_file_content_string(query, files)

    assert content == (
        f"{SEPARATOR}\nFile: /acme-widgets/README.md\n{SEPARATOR}\n# Widgets\n\n"
        f"{SEPARATOR}\nFile: /acme-widgets/src/app.py\n{SEPARATOR}\nprint('hi')\n\n"
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("full_path", "expected"),
    [
        (BASE / "src" / "app.py", "/acme-widgets/src/app.py"),
        ("C:\\tmp\\acme-widgets\\src\\app.py", "/acme-widgets/src/app.py"),
        ("/elsewhere/app.py", "/app.py"),
    ],
)
def test_sanitize_repo_path(full_path: str | Path, expected: str) -> None:
    assert sanitize_repo_path(make_query(), full_path) == expected


@pytest.mark.unit
def test_create_summary_string_default_branch(tree: Node) -> None:
    tree.file_count = 4

    summary = create_summary_string(make_query(branch="main"), tree)

    assert summary == "Repository: acme/widgets\nFiles analyzed: 4\n"


@pytest.mark.unit
def test_create_summary_string_with_subpath_and_branch(tree: Node) -> None:
    tree.file_count = 2

    summary = create_summary_string(make_query(branch="dev", subpath="/src"), tree)

    assert summary == "Repository: acme/widgets\nFiles analyzed: 2\nSubpath: /src\nBranch: dev\n"


@pytest.mark.unit
def test_create_summary_string_commit_wins_over_branch(tree: Node) -> None:
    commit = "f" * 40

    summary = create_summary_string(make_query(branch="dev", commit=commit), tree)

    assert f"Commit: {commit}\n" in summary
    assert "Branch:" not in summary


@pytest.mark.unit
def test_create_summary_string_local_source_uses_slug() -> None:
    query = IngestionQuery(local_path=BASE, slug="work/project", id="x", max_file_size=10)
    root = Node(name="project", type=NodeType.DIRECTORY, path=BASE, file_count=3)

    assert create_summary_string(query, root) == "Repository: work/project\nFiles analyzed: 3\n"
