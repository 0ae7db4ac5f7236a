"""Logger hierarchy and handler setup for the git2pdf CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "git2pdf"
_CONSOLE_FORMAT = "[git2pdf] %(levelname)s %(message)s"
# Render workers log concurrently; verbose and file output name the thread.
_VERBOSE_FORMAT = "[git2pdf] %(levelname)s [%(threadName)s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``git2pdf`` or a child such as ``git2pdf.assembly``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME)


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Attach a stderr handler, plus a file sink when *log_file* is given.

    Calling it again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger(_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()

    root.addHandler(_handler(logging.StreamHandler(), level, _VERBOSE_FORMAT if verbose else _CONSOLE_FORMAT))
    if log_file is not None:
        root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), level, _FILE_FORMAT))
    return root


__all__ = ["configure_logging", "get_logger"]
