from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from repo_ingest import __version__, cli
from repo_ingest.exceptions import InvalidPatternError, RepositoryNotFoundError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_collects_repeated_patterns() -> None:
    settings = cli.parse_args(
        [
            "https://github.com/acme/widgets",
            "-o",
            "-",
            "-s",
            "2048",
            "-e",
            "tests/",
            "--exclude-pattern",
            "*.md,*.txt",
            "-i",
            "*.py",
            "-b",
            "dev",
        ],
    )

    assert settings.source == "https://github.com/acme/widgets"
    assert settings.output == "-"
    assert settings.max_size == 2048
    assert settings.exclude_pattern == ["tests/", "*.md,*.txt"]
    assert settings.include_pattern == ["*.py"]
    assert settings.branch == "dev"


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_main_passes_settings_to_ingest(mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    ingest = mocker.patch.object(cli, "ingest", return_value=("Files analyzed: 1\n", "TREE", "CONTENT"))

    exit_code = cli.main(["acme/widgets", "-i", "*.py", "-b", "dev"])

    assert exit_code == 0
    ingest.assert_called_once_with(
        "acme/widgets",
        max_file_size=cli.Settings.model_fields["max_size"].default,
        include_patterns=["*.py"],
        exclude_patterns=None,
        branch="dev",
        output="digest.txt",
    )
    out = capsys.readouterr().out
    assert "Analysis complete! Output written to: digest.txt" in out
    assert "Summary:\nFiles analyzed: 1" in out


@pytest.mark.unit
def test_main_stdout_output(mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    ingest = mocker.patch.object(cli, "ingest", return_value=("S", "TREE", "CONTENT"))

    assert cli.main([".", "--output", "-"]) == 0

    assert ingest.call_args.kwargs["output"] is None
    assert capsys.readouterr().out.startswith("TREE\nCONTENT\n")


@pytest.mark.unit
@pytest.mark.parametrize(
    "error",
    [InvalidPatternError(pattern="a;b"), RepositoryNotFoundError(url="https://github.com/acme/nope")],
)
def test_main_reports_errors(error: Exception, mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    mocker.patch.object(cli, "ingest", side_effect=error)

    assert cli.main(["acme/nope"]) == 1

    assert f"Error: {error}" in capsys.readouterr().err
