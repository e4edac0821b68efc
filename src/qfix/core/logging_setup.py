"""Service logging setup.

``qfix serve`` runs unattended, so every ``qfix.*`` message at INFO and
above is also written to a rotating log file under ``data/logs``,
independent of the console ``--debug`` flag.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from qfix.core.paths import find_project_root

_LOG_FILE_NAME = "qfix.log"
_MAX_BYTES = 2 * 1024 * 1024
_BACKUP_COUNT = 3
_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def default_log_dir() -> Path:
    return find_project_root() / "data" / "logs"


def configure_logging(log_dir: Path | None = None) -> Path:
    """Attach a rotating INFO file handler to the ``qfix`` logger.

    Only configures once per process. Returns the log file path.
    """
    global _configured
    log_dir = log_dir or default_log_dir()
    log_file = log_dir / _LOG_FILE_NAME

    if _configured:
        return log_file

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))

    qfix_logger = logging.getLogger("qfix")
    qfix_logger.addHandler(handler)
    if qfix_logger.level == logging.NOTSET or qfix_logger.level > logging.INFO:
        qfix_logger.setLevel(logging.INFO)

    _configured = True
    return log_file
