"""
Centralized logging configuration for the service.
"""

import logging
import sys
from typing import Optional

from app.utils.config import LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger once at startup.

    Args:
        level: log level name, defaults to LOG_LEVEL from the environment
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    """Return a module logger (usually called with __name__)."""
    return logging.getLogger(name)
