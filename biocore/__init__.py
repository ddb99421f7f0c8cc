# Path: biocore/__init__.py
# Purpose: Package initializer for the biometric template orchestration core.
# Layer: biocore.
# Details: Importing the package registers every built-in stage, distance, gallery and output.

from . import distances, galleries, outputs, stages
from .algorithms import AlgorithmCore, AlgorithmRegistry, configure, get_registry
from .errors import BioCoreError
from .models.domain import FileRef, Record

__all__ = [
    "AlgorithmCore",
    "AlgorithmRegistry",
    "BioCoreError",
    "FileRef",
    "Record",
    "configure",
    "distances",
    "galleries",
    "get_registry",
    "outputs",
    "stages",
]
