"""Logging setup shared by the CLI and the service entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

ROOT_LOGGER = "autotest"

CONSOLE_FORMAT = "[autotest] %(levelname)s %(message)s"
# Generation units log from pool threads, so verbose and file output name the thread.
VERBOSE_CONSOLE_FORMAT = "[autotest] %(levelname)s [%(threadName)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``autotest`` or a child logger such as ``autotest.orchestrator``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console output and an optional debug-level file sink.

    The console shows INFO and above unless ``verbose`` is set. A log file,
    when given, always records DEBUG so a quiet run can still be diagnosed.
    Calling this again replaces the previous handlers.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = []
    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT))
    handlers.append(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "get_logger"]
