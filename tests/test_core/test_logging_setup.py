from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from qfix.core import logging_setup


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(logging_setup, "_configured", False)
    qfix_logger = logging.getLogger("qfix")
    handlers, level = list(qfix_logger.handlers), qfix_logger.level
    yield qfix_logger
    for handler in qfix_logger.handlers[:]:
        if handler not in handlers:
            qfix_logger.removeHandler(handler)
            handler.close()
    qfix_logger.setLevel(level)


def test_writes_info_to_rotating_file(tmp_path: Path, fresh_logging: logging.Logger):
    log_file = logging_setup.configure_logging(tmp_path / "logs")

    assert log_file == tmp_path / "logs" / "qfix.log"
    assert any(isinstance(h, RotatingFileHandler) for h in fresh_logging.handlers)

    logging.getLogger("qfix.quota.ledger").info("reserved slot")
    for handler in fresh_logging.handlers:
        handler.flush()
    assert "reserved slot" in log_file.read_text(encoding="utf-8")


def test_configures_once(tmp_path: Path, fresh_logging: logging.Logger):
    logging_setup.configure_logging(tmp_path)
    count = len(fresh_logging.handlers)
    logging_setup.configure_logging(tmp_path)
    assert len(fresh_logging.handlers) == count
