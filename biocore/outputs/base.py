# Path: biocore/outputs/base.py
# Purpose: Define the Output interface for score-matrix sinks.
# Layer: biocore/outputs.
# Details: Matrices are query rows by target columns; writes are addressed relative to a block origin.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, List, Optional, Tuple, Type, Union

import numpy as np

from biocore.errors import DimensionMismatchError, OutputError
from biocore.models.domain import FileRef, Record, is_existing_file


class Output(ABC):
    """Abstract base class for score sinks shaped by target and query metadata."""

    suffixes: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, file: FileRef) -> None:
        self.file = file
        self.target_files: List[Record] = []
        self.query_files: List[Record] = []
        self._row = 0
        self._col = 0

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.query_files), len(self.target_files)

    def initialize(self, target_files: List[Record], query_files: List[Record]) -> None:
        """Shape the sink from gallery metadata."""

        self.target_files = [record.metadata_only() for record in target_files]
        self.query_files = [record.metadata_only() for record in query_files]

    def set_block_origin(self, row: int, col: int) -> None:
        self._row = row
        self._col = col

    def set_relative(self, value: float, row: int, col: int) -> None:
        self.set(value, self._row + row, self._col + col)

    def _check_bounds(self, row: int, col: int) -> None:
        rows, cols = self.shape
        if not (0 <= row < rows and 0 <= col < cols):
            raise DimensionMismatchError(
                f"Score ({row}, {col}) outside of {rows}x{cols} output '{self.file.flat()}'"
            )

    @abstractmethod
    def set(self, value: float, row: int, col: int) -> None:
        """Record a score at an absolute matrix position."""

    def exists(self) -> bool:
        return bool(self.file.name) and is_existing_file(self.file.path)

    def close(self) -> None:
        """Flush the collected scores."""

    def __enter__(self) -> "Output":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class EmptyOutput(Output):
    """Sink used when no output is requested; scores are bounds-checked then dropped."""

    def set(self, value: float, row: int, col: int) -> None:
        self._check_bounds(row, col)


class MatrixOutput(Output):
    """Output holding the full float32 matrix in memory until :meth:`close`."""

    def __init__(self, file: FileRef) -> None:
        super().__init__(file)
        self.data: Optional[np.ndarray] = None

    def initialize(self, target_files: List[Record], query_files: List[Record]) -> None:
        super().initialize(target_files, query_files)
        self.data = np.zeros(self.shape, dtype=np.float32)

    def set(self, value: float, row: int, col: int) -> None:
        self._check_bounds(row, col)
        assert self.data is not None
        self.data[row, col] = value

    def close(self) -> None:
        if self.data is not None:
            self.write()
            self.data = None

    @abstractmethod
    def write(self) -> None:
        """Persist :attr:`data` to :attr:`file`."""


_OUTPUTS: Dict[str, Type[Output]] = {}


def register_output(cls: Type[Output]) -> Type[Output]:
    for suffix in cls.suffixes:
        _OUTPUTS[suffix] = cls
    return cls


def make_output(file: Union[FileRef, str, None]) -> Output:
    """Instantiate the output implementation matching the reference."""

    ref = FileRef.parse(file)
    if ref.is_null:
        return EmptyOutput(ref)
    suffix = ref.suffix.lower()
    if suffix not in _OUTPUTS:
        raise OutputError(f"Unrecognized output type for '{ref.flat()}'")
    return _OUTPUTS[suffix](ref)
