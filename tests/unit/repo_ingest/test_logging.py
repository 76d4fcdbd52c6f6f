import json
import logging
import sys
from pathlib import Path

import pytest

from repo_ingest.logging import setup_logging


@pytest.mark.unit
def test_setup_logging_redirects_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "run.log"
    try:
        log = setup_logging(log_file)
        log.info("scan finished", files=3)
        lines = log_file.read_text(encoding="utf-8").splitlines()
    finally:
        logging.basicConfig(handlers=[logging.StreamHandler(sys.stderr)], format="%(message)s", force=True)

    record = json.loads(lines[-1])
    assert record["event"] == "scan finished"
    assert record["files"] == 3
    assert record["level"] == "info"
    assert "timestamp" in record
