"""Logging utilities for scdemux."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "scdemux"
DEFAULT_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def _attach_file_handler(logger: logging.Logger, log_file: Union[str, Path], formatter: logging.Formatter) -> None:
    """Add a FileHandler for ``log_file`` unless one already writes there."""
    log_path = Path(log_file).resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    fmt: str = DEFAULT_LOG_FORMAT,
    datefmt: str = DEFAULT_DATE_FORMAT,
    log_file: Optional[Union[str, Path]] = None,
    reconfigure: bool = False,
) -> None:
    """
    Configure the package logger: stderr output plus an optional run log file.

    Called by the CLI before a run. Repeated calls only add a new log file and
    update the level, unless ``reconfigure`` replaces all handlers.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    if reconfigure:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if log_file is not None:
        _attach_file_handler(logger, log_file, formatter)

    logger.setLevel(_resolve_level(level))
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
