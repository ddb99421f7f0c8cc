# Path: biocore/outputs/__init__.py
# Purpose: Package initializer for score output sinks.
# Layer: biocore/outputs.
# Details: Importing the package registers every suffix-keyed output implementation.

from .base import EmptyOutput, MatrixOutput, Output, make_output, register_output
from .matrix import CsvOutput, NpyOutput, header_path, read_matrix
from .tail import TAIL_HEADER, TailOutput

__all__ = [
    "Output",
    "EmptyOutput",
    "MatrixOutput",
    "NpyOutput",
    "CsvOutput",
    "TailOutput",
    "TAIL_HEADER",
    "header_path",
    "make_output",
    "read_matrix",
    "register_output",
]
