from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from repo_ingest.config import IngestionQuery
from repo_ingest.ignore_file import apply_ignore_file, parse_ignore_file


def make_query(root: Path) -> IngestionQuery:
    return IngestionQuery(
        local_path=root,
        slug=root.name,
        id="test",
        max_file_size=1_000,
        ignore_patterns={"*.pyc"},
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('ignorePatterns = "secret.txt"', ["secret.txt"]),
        ("ignorePatterns = 'secret.txt'", ["secret.txt"]),
        ('ignorePatterns = ["docs/", "*.csv"]', ["docs/", "*.csv"]),
        ('[config]\n# comment\nignorePatterns=["a", ]\n', ["a"]),
        ('otherKey = "x"\n', []),
        ("ignorePatterns", []),
        ("", []),
    ],
)
def test_parse_ignore_file(text: str, expected: list[str]) -> None:
    assert parse_ignore_file(text) == expected


@pytest.mark.unit
def test_apply_ignore_file_merges_patterns(tmp_path: Path) -> None:
    (tmp_path / ".gitingest").write_text('ignorePatterns = ["secret.txt", "data/"]\n', encoding="utf-8")
    query = make_query(tmp_path)

    asyncio.run(apply_ignore_file(tmp_path, query))

    assert query.ignore_patterns == {"*.pyc", "secret.txt", "data/*", ".gitingest"}


@pytest.mark.unit
def test_apply_ignore_file_in_subpath_ignores_itself_relative_to_root(tmp_path: Path) -> None:
    sub = tmp_path / "pkg"
    sub.mkdir()
    (sub / ".gitingest").write_text('ignorePatterns = "pkg/tmp/"\n', encoding="utf-8")
    query = make_query(tmp_path)

    asyncio.run(apply_ignore_file(sub, query))

    assert {"pkg/.gitingest", "pkg/tmp/*"} <= query.ignore_patterns


@pytest.mark.unit
def test_apply_ignore_file_absent_is_noop(tmp_path: Path) -> None:
    query = make_query(tmp_path)

    asyncio.run(apply_ignore_file(tmp_path, query))

    assert query.ignore_patterns == {"*.pyc"}


@pytest.mark.unit
def test_apply_ignore_file_with_invalid_pattern_is_ignored(tmp_path: Path) -> None:
    (tmp_path / ".gitingest").write_text('ignorePatterns = ["ok.txt", "bad$name"]\n', encoding="utf-8")
    query = make_query(tmp_path)

    asyncio.run(apply_ignore_file(tmp_path, query))

    assert "ok.txt" not in query.ignore_patterns
    assert ".gitingest" in query.ignore_patterns


@pytest.mark.unit
def test_apply_ignore_file_directory_named_gitingest_is_ignored(tmp_path: Path) -> None:
    (tmp_path / ".gitingest").mkdir()
    query = make_query(tmp_path)

    asyncio.run(apply_ignore_file(tmp_path, query))

    assert query.ignore_patterns == {"*.pyc"}
