# Path: config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models and logging setup for application-wide configuration.

from .logging import LOG_FORMAT, setup_logging
from .settings import AppSettings

__all__ = ["AppSettings", "LOG_FORMAT", "setup_logging"]
