"""Smoke tests: the package imports and logging is configured as documented."""

from __future__ import annotations

import json
import logging
from pathlib import Path


def test_import_package():
    import pricerelay  # noqa: F401 – import is the test


def test_configure_logging_creates_files(tmp_path: Path):
    from pricerelay.logging_utils import configure_logging

    log_path, json_path = configure_logging(debug=True, log_dir=tmp_path / "logs")

    assert log_path.exists()
    assert json_path.exists()
    assert (tmp_path / "logs" / "latest.jsonl").exists()

    logging.getLogger("test").info("hello from pytest", extra={"code_path": __file__})
    logging.getLogger("test").info("no explicit code path")

    with json_path.open(encoding="utf-8") as fp:
        records = [json.loads(line) for line in fp]

    assert records[0]["msg"] == "hello from pytest"
    assert records[0]["code_path"] == __file__
    assert records[1]["code_path"].endswith("test_smoke.py")  # filled in from the call site


def test_env_level_overrides_debug(tmp_path: Path, monkeypatch):
    from pricerelay.logging_utils import configure_logging

    monkeypatch.setenv("PRICERELAY_LOG_LEVEL", "warning")
    configure_logging(debug=True, log_dir=tmp_path)
    assert logging.getLogger().level == logging.WARNING


def test_old_log_pairs_are_purged(tmp_path: Path):
    from pricerelay.logging_utils import KEEP_LOG_PAIRS, configure_logging

    for i in range(KEEP_LOG_PAIRS + 5):
        (tmp_path / f"pricerelay-2000010{i:02d}-000000.log").write_text("")
        (tmp_path / f"pricerelay-2000010{i:02d}-000000.jsonl").write_text("")

    configure_logging(log_dir=tmp_path)
    assert len(list(tmp_path.glob("pricerelay-*.log"))) <= KEEP_LOG_PAIRS + 1


def test_trace_decorator(capsys):
    from pricerelay.logging_utils import TRACE_LEVEL, trace

    root = logging.getLogger()
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(TRACE_LEVEL)
    root.addHandler(stream_handler)
    root.setLevel(TRACE_LEVEL)

    @trace
    def sample() -> str:
        return "ok"

    assert sample() == "ok"
    assert sample.__name__ == "sample"

    stream_handler.flush()
    captured = capsys.readouterr().err
    assert "→" in captured and "sample()" in captured
    assert "←" in captured


def test_logger_trace_method(caplog):
    import pricerelay.logging_utils  # noqa: F401 – installs Logger.trace
    from pricerelay.logging_utils import TRACE_LEVEL

    logger = logging.getLogger("pricerelay.test")
    with caplog.at_level(TRACE_LEVEL):
        logger.trace("fine-grained %d", 1)  # type: ignore[attr-defined]
    assert [r.levelname for r in caplog.records] == ["TRACE"]
