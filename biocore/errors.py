# Path: biocore/errors.py
# Purpose: Define the typed error hierarchy raised by the orchestration core.
# Layer: biocore.
# Details: Every fatal condition surfaces as a BioCoreError subclass naming the offending descriptor or gallery.

from __future__ import annotations


class BioCoreError(Exception):
    """Base class for all errors raised by biocore operations."""


class DescriptorError(BioCoreError, ValueError):
    """Raised when an algorithm descriptor cannot be resolved or parsed."""


class PluginError(BioCoreError, ValueError):
    """Raised for unknown plugin names or invalid plugin arguments."""


class NullStageError(BioCoreError, RuntimeError):
    """Raised when an operation needs a stage or distance the algorithm does not have."""


class AlgorithmError(BioCoreError, RuntimeError):
    """Raised when an algorithm instance is used in an unsupported way."""


class GalleryError(BioCoreError, ValueError):
    """Raised for unknown gallery types or invalid gallery access."""


class OutputError(BioCoreError, ValueError):
    """Raised for unknown output types."""


class DimensionMismatchError(BioCoreError, RuntimeError):
    """Raised when the produced score matrix does not match the expected shape."""


class CardinalityMismatchError(BioCoreError, ValueError):
    """Raised when pairwise comparison receives record sets of different length."""


class ThresholdError(BioCoreError, ValueError):
    """Raised when a deduplication threshold cannot be interpreted as a number."""


class ConversionError(BioCoreError, ValueError):
    """Raised for unsupported conversions or concatenations."""


class ModelFormatError(BioCoreError, ValueError):
    """Raised when a persisted model blob is malformed."""


class TemplateError(BioCoreError, ValueError):
    """Raised when a record lacks the feature payload a comparison needs."""


__all__ = [
    "BioCoreError",
    "DescriptorError",
    "PluginError",
    "NullStageError",
    "AlgorithmError",
    "GalleryError",
    "OutputError",
    "DimensionMismatchError",
    "CardinalityMismatchError",
    "ThresholdError",
    "ConversionError",
    "ModelFormatError",
    "TemplateError",
]
