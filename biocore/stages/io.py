# Path: biocore/stages/io.py
# Purpose: Provide the sink and bookkeeping stages used at the tail of operation pipelines.
# Layer: biocore/stages.
# Details: These stages always run in the orchestrating process and are not built from descriptions.

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

import numpy as np
from tqdm import tqdm

from biocore.errors import DimensionMismatchError
from biocore.galleries.base import Gallery
from biocore.models.domain import Record
from biocore.outputs.base import Output

from .base import Stage

logger = logging.getLogger(__name__)


class GalleryOutputStage(Stage):
    """Write every record passing through to a gallery and remember their metadata."""

    plugin_name = "GalleryOutput"

    def __init__(self, gallery: Gallery) -> None:
        self.gallery = gallery
        self.written: List[Record] = []
        # Replace existing content now unless appending; the stream may yield no records.
        self.gallery.write([])

    def project(self, records: List[Record]) -> List[Record]:
        if records:
            self.gallery.write(records)
            self.written.extend(record.metadata_only() for record in records)
        return records

    def close(self) -> None:
        self.gallery.close()


class FileExclusion(Stage):
    """Drop records whose name is already present in a target gallery."""

    plugin_name = "FileExclusion"

    def __init__(self, excluded: Iterable[str]) -> None:
        self.excluded = set(excluded)

    def project(self, records: List[Record]) -> List[Record]:
        kept = [record for record in records if record.name not in self.excluded]
        if len(kept) != len(records):
            logger.debug(f"Skipped {len(records) - len(kept)} records already present")
        return kept


class ProgressCounter(Stage):
    """Count records passing through and report them on a tqdm bar."""

    plugin_name = "ProgressCounter"

    def __init__(self, show_progress: bool = True, description: str = "Processing") -> None:
        self.show_progress = show_progress
        self.description = description
        self.count = 0
        self.total = 0
        self._bar: Optional[tqdm] = None
        self._lock = threading.Lock()

    def reset(self, total: int, description: Optional[str] = None) -> None:
        """Start counting towards ``total`` records."""

        with self._lock:
            if self._bar is not None:
                self._bar.close()
            self.count = 0
            self.total = int(total)
            self._bar = tqdm(
                total=self.total,
                desc=description or self.description,
                unit="rec",
                disable=not self.show_progress,
            )

    def project(self, records: List[Record]) -> List[Record]:
        with self._lock:
            self.count += len(records)
            if self._bar is not None:
                self._bar.update(len(records))
        return records

    def finish(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None

    def close(self) -> None:
        self.finish()


class Discard(Stage):
    """Drop every record, ending a pipeline that works only through side effects."""

    plugin_name = "Discard"

    def project(self, records: List[Record]) -> List[Record]:
        return []


class MatrixOutputStage(Stage):
    """Write score vectors, one per streamed row record, into an output.

    Each incoming record carries the scores of one streamed record against the
    resident set. In transposed mode the streamed set is the target, so each vector
    fills a column of the canonical query-by-target matrix instead of a row.
    The output is flushed on :meth:`close` only after :meth:`finish` confirmed that
    every expected row arrived.
    """

    plugin_name = "Output"

    def __init__(self, output: Output, transposed: bool = False) -> None:
        self.output = output
        self.transposed = transposed
        queries, targets = output.shape
        self.rows, self.columns = (targets, queries) if transposed else (queries, targets)
        self._next = 0
        self._finished = False

    def project(self, records: List[Record]) -> List[Record]:
        for record in records:
            scores = np.asarray(record.data if record.data is not None else [], dtype=np.float32).reshape(-1)
            if self._next >= self.rows or scores.size != self.columns:
                raise DimensionMismatchError(
                    f"Score vector {self._next} of length {scores.size} does not fit a "
                    f"{self.rows}x{self.columns} comparison into '{self.output.file.flat()}'"
                )
            if self.transposed:
                self.output.set_block_origin(0, self._next)
                for index, score in enumerate(scores):
                    self.output.set_relative(float(score), index, 0)
            else:
                self.output.set_block_origin(self._next, 0)
                for index, score in enumerate(scores):
                    self.output.set_relative(float(score), 0, index)
            self._next += 1
        return records

    def finish(self) -> None:
        if self._next != self.rows:
            raise DimensionMismatchError(
                f"Expected {self.rows} score vectors for '{self.output.file.flat()}', produced {self._next}"
            )
        self._finished = True

    def close(self) -> None:
        if self._finished:
            self.output.close()
