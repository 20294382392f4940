"""Logging setup for the chat packages.

Level comes from the argument, else the ``CHAT_TREE_LOG`` environment variable,
else WARNING. Output goes to stderr.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOGGER_NAMES = ("chat_ai", "chat_tree", "chat_session")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_initialized = False


def _resolve_level(level: Optional[str | int]) -> int:
    if level is None:
        level = os.getenv("CHAT_TREE_LOG", "WARNING")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.WARNING


def setup_logging(level: Optional[str | int] = None) -> None:
    """Attach a stderr handler to the package loggers. Later calls are no-ops."""
    global _initialized
    if _initialized:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    resolved = _resolve_level(level)
    for name in LOGGER_NAMES:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(resolved)
        package_logger.addHandler(handler)
        package_logger.propagate = False

    _initialized = True
