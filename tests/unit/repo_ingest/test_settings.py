from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_ingest.settings import DEFAULT_LIMITS, IngestLimits, Settings


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings(source="acme/widgets")

    assert settings.output == "digest.txt"
    assert settings.max_size == DEFAULT_LIMITS.max_file_size
    assert settings.exclude_pattern == []
    assert settings.include_pattern == []
    assert not settings.branch


@pytest.mark.unit
def test_ingest_limits_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("REPO_INGEST_MAX_FILES", "7")
    monkeypatch.setenv("REPO_INGEST_TMP_BASE_PATH", str(tmp_path))
    monkeypatch.setenv("REPO_INGEST_CONCURRENCY", " ")

    limits = IngestLimits()

    assert limits.max_files == 7
    assert limits.tmp_base_path == tmp_path
    assert limits.concurrency == 32


@pytest.mark.unit
def test_ingest_limits_explicit_values_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPO_INGEST_MAX_DIRECTORY_DEPTH", "3")

    assert IngestLimits(max_directory_depth=5).max_directory_depth == 5


@pytest.mark.unit
def test_ingest_limits_reject_non_positive_ceilings() -> None:
    with pytest.raises(ValidationError):
        IngestLimits(max_files=0)
