"""Rotating file logging for all mb-focus processes."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(process)d] %(name)s: %(message)s"
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3


def setup_logging(log_path: Path, level: int = logging.INFO) -> None:
    """Attach a rotating file handler to the package logger. Safe to call more than once."""
    package_logger = logging.getLogger("mb_focus")
    package_logger.setLevel(level)

    resolved = str(log_path.resolve())
    for handler in package_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == resolved:
            return

    handler = RotatingFileHandler(log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    package_logger.addHandler(handler)
