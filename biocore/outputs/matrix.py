# Path: biocore/outputs/matrix.py
# Purpose: Provide file-backed score matrix outputs.
# Layer: biocore/outputs.
# Details: .npy keeps the raw matrix plus a JSON header sidecar; .csv writes a labelled table.

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import List, Tuple

import numpy as np

from biocore.errors import OutputError
from biocore.models.domain import Record, is_existing_file

from .base import MatrixOutput, register_output


@register_output
class NpyOutput(MatrixOutput):
    """Score matrix saved with numpy, record names saved next to it as JSON."""

    suffixes = ("npy",)

    def write(self) -> None:
        target = self.file.path
        target.parent.mkdir(parents=True, exist_ok=True)
        np.save(target, self.data)
        header = {
            "target": [record.name for record in self.target_files],
            "query": [record.name for record in self.query_files],
        }
        header_path(target).write_text(json.dumps(header), encoding="utf-8")


@register_output
class CsvOutput(MatrixOutput):
    """Score matrix written as CSV with target names as header and query names as first column."""

    suffixes = ("csv",)

    def write(self) -> None:
        target = self.file.path
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", newline="", encoding="utf-8") as stream:
            writer = csv.writer(stream)
            writer.writerow([""] + [record.name for record in self.target_files])
            for query, row in zip(self.query_files, self.data):
                writer.writerow([query.name] + [f"{value:g}" for value in row])


def header_path(matrix_path: Path) -> Path:
    return matrix_path.with_suffix(".json")


def read_matrix(path: Path) -> Tuple[np.ndarray, List[Record], List[Record]]:
    """Load a matrix written by :class:`NpyOutput` with its target and query records."""

    if not is_existing_file(path) or not is_existing_file(header_path(path)):
        raise OutputError(f"Missing score matrix files for {path}")
    matrix = np.load(path, allow_pickle=False)
    header = json.loads(header_path(path).read_text(encoding="utf-8"))
    targets = [Record(name=name) for name in header.get("target", [])]
    queries = [Record(name=name) for name in header.get("query", [])]
    return matrix, targets, queries
