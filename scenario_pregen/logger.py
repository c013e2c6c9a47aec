"""Logging setup for scenario_pregen.

One package logger configured from the ``LOG_LEVEL`` environment variable;
modules ask for children via :func:`get_logger`.
"""
import logging
import os
import sys
from typing import Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("scenario_pregen")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it when ``name`` is given."""
    if name:
        return logging.getLogger(f"scenario_pregen.{name}")
    return logger


__all__ = ["get_logger", "logger"]
