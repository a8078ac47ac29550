from __future__ import annotations

from .logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
