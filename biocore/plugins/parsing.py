# Path: biocore/plugins/parsing.py
# Purpose: Tokenize plugin and algorithm descriptions.
# Layer: biocore/plugins.
# Details: Splits on top-level separators while respecting (), [] and {} nesting.

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from biocore.errors import PluginError

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}


def split_top_level(text: str, separator: str) -> List[str]:
    """Split ``text`` on ``separator`` occurrences that are not nested in brackets."""

    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth < 0:
                raise PluginError(f"Unbalanced brackets in '{text}'")
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if depth != 0:
        raise PluginError(f"Unbalanced brackets in '{text}'")
    parts.append("".join(current))
    return parts


def is_wrapped(text: str, opener: str = "(") -> bool:
    """Return True when ``text`` is fully enclosed by one matching bracket pair."""

    closer = _OPENERS[opener]
    if not (text.startswith(opener) and text.endswith(closer)):
        return False
    depth = 0
    for index, char in enumerate(text):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                return False
    return True


def parse_call(text: str) -> Tuple[str, List[str], Dict[str, str]]:
    """Parse ``Name(arg, key=value)`` into its name, positional and keyword arguments."""

    text = text.strip()
    if "(" not in text:
        return text, [], {}
    if not text.endswith(")"):
        raise PluginError(f"Malformed plugin description '{text}'")

    name, body = text.split("(", 1)
    body = body[:-1]
    args: List[str] = []
    kwargs: Dict[str, str] = {}
    if not body.strip():
        return name.strip(), args, kwargs

    for token in split_top_level(body, ","):
        token = token.strip()
        key, sep, value = token.partition("=")
        # '=' nested inside a bracket belongs to the value, not to a keyword.
        if sep and "(" not in key and "[" not in key:
            kwargs[key.strip()] = value.strip()
        else:
            if kwargs:
                raise PluginError(f"Positional argument after keyword argument in '{text}'")
            args.append(token)
    return name.strip(), args, kwargs


def coerce_value(value: Any) -> Any:
    """Convert textual configuration values into bool, int or float where possible."""

    if not isinstance(value, str):
        return value
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "on"}:
        return True
    if lowered in {"false", "no", "off"}:
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value.strip()


def format_value(value: Any) -> str:
    """Render a configuration value so that :func:`coerce_value` reads it back."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)
