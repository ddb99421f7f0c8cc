# Path: biocore/plugins/__init__.py
# Purpose: Package initializer for plugin registration and description parsing.
# Layer: biocore/plugins.
# Details: Exposes the Plugin base class, the name-keyed factory; the binary state stream lives in biocore.plugins.stream.

from .base import Plugin, PluginFactory
from .parsing import coerce_value, format_value, is_wrapped, parse_call, split_top_level

__all__ = [
    "Plugin",
    "PluginFactory",
    "coerce_value",
    "format_value",
    "is_wrapped",
    "parse_call",
    "split_top_level",
]
