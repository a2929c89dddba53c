from __future__ import annotations

import logging
from pathlib import Path

from margin_pipeline.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_writes_file_and_accepts_level_names(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "pipeline.log"
    configure_logging(log_path, "debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG

    logging.getLogger("margin_pipeline.test").debug("hello")
    for h in root.handlers:
        h.flush()
    assert "| DEBUG | margin_pipeline.test | hello" in log_path.read_text(encoding="utf-8")

    configure_logging(None)
    assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)
