# Path: config/logging.py
# Purpose: Configure process-wide logging for command line and server entry points.
# Layer: config.
# Details: Library modules only create named loggers; entry points call setup_logging once.

from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """Install a root handler with the shared format at ``level``."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
