# Path: biocore/algorithms/registry.py
# Purpose: Cache one AlgorithmCore per descriptor for the lifetime of the process.
# Layer: biocore/algorithms.
# Details: Construction happens outside the lock; the first instance inserted wins and losers are closed.

from __future__ import annotations

import logging
import threading
from contextvars import ContextVar
from typing import Dict, List, Optional, Tuple

from biocore.errors import DescriptorError
from config.settings import AppSettings

from .core import AlgorithmCore
from .parser import initialize_algorithm

logger = logging.getLogger(__name__)

# Registry resolving nested Algorithm(...) stages during construction.
_ACTIVE: ContextVar[Optional["AlgorithmRegistry"]] = ContextVar("biocore_active_registry", default=None)
# Descriptors under construction in the current call chain.
_BUILDING: ContextVar[Tuple[str, ...]] = ContextVar("biocore_building", default=())

_DEFAULT: Optional["AlgorithmRegistry"] = None
_DEFAULT_LOCK = threading.Lock()


class AlgorithmRegistry:
    """Process-wide map from algorithm descriptor to its published AlgorithmCore."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or AppSettings()
        self._algorithms: Dict[str, AlgorithmCore] = {}
        self._lock = threading.Lock()

    def build(self, descriptor: str) -> AlgorithmCore:
        """Construct a fresh, unpublished algorithm for ``descriptor``."""

        descriptor = (descriptor or "").strip()
        if not descriptor:
            raise DescriptorError("No default algorithm set")
        chain = _BUILDING.get()
        if descriptor in chain:
            raise DescriptorError(
                f"Algorithm '{descriptor}' is defined in terms of itself: {' -> '.join(chain + (descriptor,))}"
            )

        building = _BUILDING.set(chain + (descriptor,))
        active = _ACTIVE.set(self)
        core = AlgorithmCore(descriptor, self.settings)
        try:
            initialize_algorithm(core, descriptor)
        except Exception:
            core.close()
            raise
        finally:
            _ACTIVE.reset(active)
            _BUILDING.reset(building)
        return core

    def get_algorithm(self, descriptor: str) -> AlgorithmCore:
        """Return the shared algorithm for ``descriptor``, building it on first use."""

        descriptor = (descriptor or "").strip()
        if not descriptor:
            raise DescriptorError("No default algorithm set")
        with self._lock:
            existing = self._algorithms.get(descriptor)
        if existing is not None:
            return existing

        candidate = self.build(descriptor)
        with self._lock:
            winner = self._algorithms.setdefault(descriptor, candidate)
            winner.published = True
        if winner is not candidate:
            logger.debug(f"Discarding redundant construction of {descriptor}")
            candidate.close()
        return winner

    def __contains__(self, descriptor: object) -> bool:
        with self._lock:
            return descriptor in self._algorithms

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._algorithms)

    def finalize(self) -> None:
        """Close and forget every cached algorithm."""

        with self._lock:
            algorithms = list(self._algorithms.values())
            self._algorithms.clear()
        for core in algorithms:
            core.close()


def get_registry() -> AlgorithmRegistry:
    """Return the process default registry, creating it from the environment on first use."""

    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is None:
            _DEFAULT = AlgorithmRegistry(AppSettings.from_env())
        return _DEFAULT


def set_registry(registry: Optional[AlgorithmRegistry]) -> None:
    global _DEFAULT
    with _DEFAULT_LOCK:
        _DEFAULT = registry


def configure(settings: AppSettings) -> AlgorithmRegistry:
    """Replace the default registry with one using ``settings``."""

    global _DEFAULT
    registry = AlgorithmRegistry(settings)
    with _DEFAULT_LOCK:
        previous, _DEFAULT = _DEFAULT, registry
    if previous is not None:
        previous.finalize()
    return registry


def current_registry() -> AlgorithmRegistry:
    """Registry constructing the current algorithm, else the default registry."""

    return _ACTIVE.get() or get_registry()
