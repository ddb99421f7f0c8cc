# Path: biocore/algorithms/__init__.py
# Purpose: Package initializer for algorithm resolution, caching and persistence.
# Layer: biocore/algorithms.
# Details: Importing the package registers the Algorithm stage.

from .core import AlgorithmCore, remove_indices
from .parser import initialize_algorithm
from .persistence import CompareMode, FORMAT_VERSION, LoadedModel, dump_model, load_model, parse_model, store_model
from .registry import AlgorithmRegistry, configure, current_registry, get_registry, set_registry
from .stages import AlgorithmStage

__all__ = [
    "AlgorithmCore",
    "AlgorithmRegistry",
    "AlgorithmStage",
    "CompareMode",
    "FORMAT_VERSION",
    "LoadedModel",
    "configure",
    "current_registry",
    "dump_model",
    "get_registry",
    "initialize_algorithm",
    "load_model",
    "parse_model",
    "remove_indices",
    "set_registry",
    "store_model",
]
