"""
Core Module - Logging Setup.

The library itself only uses module-level loggers. Embedding
applications call configure_logging() once at startup.
"""

import logging
import os
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)-8s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a console handler to the root logger.

    Args:
        level: Log level name; defaults to QUERY_ENGINE_LOG_LEVEL or INFO

    Returns:
        The root logger
    """
    level_name = (level or os.getenv("QUERY_ENGINE_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # Avoid duplicate handlers on repeated calls
    if any(getattr(h, "_query_engine", False) for h in root.handlers):
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._query_engine = True
    root.addHandler(handler)
    return root
