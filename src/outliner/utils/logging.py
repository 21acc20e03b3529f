"""Logging setup for the ``outliner`` command line.

Records from the package go to a rotating file under ``~/.outliner/logs``
(``OUTLINER_LOG_DIR`` overrides the directory). Warnings are also echoed to
a terminal stream as ``outliner: LEVEL: message`` lines, next to the CLI's
own error output.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import TextIO

__all__ = ["LOG_DIR_ENV", "setup_logging", "get_log_path"]

LOG_DIR_ENV = "OUTLINER_LOG_DIR"
_PACKAGE_LOGGER = "outliner"
_DEFAULT_LOG_DIR = Path.home() / ".outliner" / "logs"
_LOG_NAME = "outliner.log"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "outliner: %(levelname)s: %(message)s"
# Parser libraries that log every token at DEBUG.
_PARSER_LOGGERS: tuple[str, ...] = ("markdown_it", "ruamel")

_log_path: Path | None = None
_handlers: list[logging.Handler] = []


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    stream: TextIO | None = None,
    console_level: int = logging.WARNING,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Attach a rotating file handler (and a ``stream`` handler) to the package logger.

    The root logger is left alone so an embedding application keeps its own
    configuration; records still propagate to it. A second call returns the
    current log path unless ``force`` is set, in which case the previous
    handlers are closed and replaced.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    _detach(package_logger)

    target_dir = Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_NAME

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    _attach(package_logger, file_handler, level)

    if stream is not None:
        console_handler = logging.StreamHandler(stream)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        _attach(package_logger, console_handler, max(level, console_level))

    package_logger.setLevel(level)
    for name in _PARSER_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _log_path = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` runs."""

    return _log_path


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    logger.addHandler(handler)
    _handlers.append(handler)


def _detach(logger: logging.Logger) -> None:
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()
