"""Logging for pipewright: one stderr handler, ``[tag] message`` lines."""

from __future__ import annotations

import logging
import sys
import threading

_ROOT = "pipewright"

_lock = threading.Lock()
_setup_done = False


class _Formatter(logging.Formatter):
    """Render ``[tag] message`` where the tag is the logger name below ``pipewright``.

    The record is left untouched, so other handlers (pytest's, a caller's)
    see the original message.
    """

    def format(self, record: logging.LogRecord) -> str:
        tag = record.name.removeprefix(f"{_ROOT}.")
        line = f"[{tag}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(verbose: bool = False) -> None:
    """Attach the stderr handler to the ``pipewright`` logger once.

    WARNING by default, DEBUG with *verbose*. Repeated calls never add a
    handler; a verbose call after setup only lowers the level, which is how
    the CLI's ``--verbose`` wins over the setup done at import time.
    """
    global _setup_done
    with _lock:
        logger = logging.getLogger(_ROOT)
        if _setup_done:
            if verbose:
                logger.setLevel(logging.DEBUG)
            return
        logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_Formatter())
        logger.addHandler(handler)
        logger.propagate = False
        _setup_done = True


def get_logger(name: str) -> logging.Logger:
    """Logger for one pipewright component, e.g. ``get_logger("pipeline.builder")``."""
    setup_logging()
    return logging.getLogger(f"{_ROOT}.{name}")
