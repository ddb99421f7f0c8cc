# Path: biocore/plugins/base.py
# Purpose: Provide the named-plugin base class and factories for stages and distances.
# Layer: biocore/plugins.
# Details: Plugins declare their configurable params; factories build them from textual descriptions.

from __future__ import annotations

import logging
from typing import Any, Callable, ClassVar, Dict, Generic, List, Tuple, Type, TypeVar

from biocore.errors import PluginError

from .parsing import coerce_value, format_value, parse_call

logger = logging.getLogger(__name__)

P = TypeVar("P", bound="Plugin")


class Plugin:
    """Common behaviour of every named, configurable plugin.

    Subclasses list their configurable attributes in ``params``. The same names are
    accepted positionally or as keywords in a description such as ``Resize(8, height=4)``
    and can later be changed through :meth:`set_config`.
    """

    plugin_name: ClassVar[str] = ""
    params: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_arguments(cls: Type[P], args: List[str], kwargs: Dict[str, str]) -> P:
        """Instantiate the plugin from parsed description arguments."""

        if len(args) > len(cls.params):
            raise PluginError(
                f"{cls.plugin_name} accepts at most {len(cls.params)} arguments, got {len(args)}"
            )
        values: Dict[str, Any] = {name: coerce_value(value) for name, value in zip(cls.params, args)}
        for key, value in kwargs.items():
            if key not in cls.params:
                raise PluginError(f"{cls.plugin_name} has no parameter '{key}'")
            values[key] = coerce_value(value)
        try:
            return cls(**values)
        except (TypeError, ValueError) as exc:
            raise PluginError(f"Invalid arguments for {cls.plugin_name}: {exc}") from exc

    def set_config(self, key: str, value: Any) -> bool:
        """Set a declared parameter; return True if this plugin accepted the key."""

        if key not in self.params:
            return False
        setattr(self, key, coerce_value(value))
        return True

    def describe(self) -> str:
        """Return a description that rebuilds this plugin with its current parameters."""

        if not self.params:
            return self.plugin_name
        args = ",".join(f"{name}={format_value(getattr(self, name))}" for name in self.params)
        return f"{self.plugin_name}({args})"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.describe()}>"


class PluginFactory(Generic[P]):
    """Name-keyed registry of plugin classes of one kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._classes: Dict[str, Type[P]] = {}

    def register(self, name: str) -> Callable[[Type[P]], Type[P]]:
        """Class decorator registering ``cls`` under ``name``."""

        def decorator(cls: Type[P]) -> Type[P]:
            if name in self._classes and self._classes[name] is not cls:
                logger.debug(f"Replacing {self.kind} plugin '{name}'")
            cls.plugin_name = name
            self._classes[name] = cls
            return cls

        return decorator

    def get(self, name: str) -> Type[P]:
        try:
            return self._classes[name]
        except KeyError:
            raise PluginError(f"Unknown {self.kind} '{name}'") from None

    def names(self) -> List[str]:
        return sorted(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def make(self, description: str) -> P:
        """Instantiate a single plugin from ``Name(args)``."""

        name, args, kwargs = parse_call(description)
        if not name:
            raise PluginError(f"Empty {self.kind} description")
        return self.get(name).from_arguments(args, kwargs)
