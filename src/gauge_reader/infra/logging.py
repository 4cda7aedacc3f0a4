"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from gauge_reader.config.models import LoggingConfig

# Third-party loggers that are chatty at INFO during model loading.
_QUIET_LOGGERS = ("ultralytics", "PIL", "matplotlib")

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(config: LoggingConfig) -> Path:
    """Route logs to a rotating file (and the console) and return the file path.

    The file records the thread name so pipeline worker lines can be told
    apart from the caller's.
    """

    log_level = _level(config.level)
    logging.captureWarnings(True)

    handlers: list[logging.Handler] = []
    log_path = config.resolved_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(build_formatter(with_thread=True))
    handlers.append(file_handler)

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(build_formatter())
        handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, level in config.loggers.items():
        logging.getLogger(name).setLevel(_level(level))
    return log_path


def build_formatter(with_thread: bool = False) -> logging.Formatter:
    return logging.Formatter(fmt=_FILE_FORMAT if with_thread else _CONSOLE_FORMAT, datefmt=_DATE_FORMAT)


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)
