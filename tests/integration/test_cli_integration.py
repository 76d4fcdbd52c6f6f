from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_ingest import cli, git_operations, ingestion, query_parsing
from repo_ingest.settings import IngestLimits


@pytest.mark.integration
def test_main_ingests_remote_repository_through_clone(
    tmp_path: Path,
    mocker: MockerFixture,
) -> None:
    tmp_base = tmp_path / "clones"
    mocker.patch.object(ingestion, "DEFAULT_LIMITS", IngestLimits(tmp_base_path=tmp_base))
    mocker.patch.object(git_operations, "check_repo_exists", return_value=True)
    commands: list[tuple[str, ...]] = []

    async def fake_run_command(*args: str) -> tuple[str, str]:
        commands.append(args)
        if args[1] == "clone":
            target = Path(args[-1])
            (target / "src").mkdir(parents=True)
            (target / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
            (target / "src" / "app.log").write_text("noise\n", encoding="utf-8")
        return "", ""

    mocker.patch.object(git_operations, "run_command", side_effect=fake_run_command)
    mocker.patch.object(query_parsing, "fetch_remote_branch_list", return_value=["main", "dev"])
    output = tmp_path / "digest.txt"

    exit_code = cli.main(["https://github.com/acme/widgets/tree/dev/src", "--output", str(output)])

    assert exit_code == 0
    clone_args = commands[0]
    assert "--sparse" in clone_args
    assert clone_args[clone_args.index("--branch") + 1] == "dev"
    assert commands[1][-2:] == ("set", "src")
    text = output.read_text(encoding="utf-8")
    assert "File: /acme-widgets/src/app.py" in text
    assert "app.log" not in text
    assert list(tmp_base.iterdir()) == []


@pytest.mark.integration
def test_main_reports_missing_local_source(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main([str(tmp_path / "missing"), "--output", str(tmp_path / "out.txt")])

    assert exit_code == 1
    assert "cannot be found" in capsys.readouterr().err
