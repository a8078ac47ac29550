"""Logging helpers for multicam.

Library modules only ask for named loggers. Handlers are configured by the host
application, or through ``setup_logging`` for scripts and demos.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional


def setup_logging(*, level: int = logging.INFO) -> logging.Logger:
    """Attach a console handler to the ``multicam`` logger."""
    logger = logging.getLogger("multicam")
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a named logger under the ``multicam`` namespace."""
    full_name = "multicam" if not name else f"multicam.{name}"
    return logging.getLogger(full_name)


__all__ = ["setup_logging", "get_logger"]
