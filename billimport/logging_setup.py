"""Logging configuration for host apps embedding bill import.

Library modules only call logging.getLogger(__name__); the host calls
setup_logging() once at startup.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> None:
    """Configure logging based on BILLIMPORT_LOG_LEVEL env var (default INFO)."""
    if level is None:
        level = os.environ.get("BILLIMPORT_LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
