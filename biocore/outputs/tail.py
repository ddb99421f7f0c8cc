# Path: biocore/outputs/tail.py
# Purpose: Collect the highest scoring pairs of a comparison into a text table.
# Layer: biocore/outputs.
# Details: Used by deduplication in self-similar mode; the table is kept in a buffer and optionally written to disk.

from __future__ import annotations

import math
from typing import Dict, List, Tuple

from biocore.models.domain import FileRef, Record

from .base import Output, register_output

TAIL_HEADER = "Value,Target,Query"


@register_output
class TailOutput(Output):
    """Thresholded list of ``score,target,query`` lines sorted by descending score.

    Flags:
    - ``threshold``: keep pairs scoring strictly above this value.
    - ``atLeast``: keep at least this many best pairs per query regardless of threshold.
    - ``selfSimilar``: the comparison is a set against itself; only pairs whose target
      comes after the query are considered, dropping the diagonal and mirrored pairs.

    A reference named ``buffer.tail`` is kept only in :attr:`buffer`.
    """

    suffixes = ("tail",)

    def __init__(self, file: FileRef) -> None:
        super().__init__(file)
        self.threshold = file.get_float("threshold", -math.inf)
        self.at_least = int(file.get_float("atLeast", 1))
        self.self_similar = file.get_bool("selfSimilar")
        self.buffer = ""
        self._kept: List[Tuple[float, int, int]] = []
        self._best: Dict[int, List[Tuple[float, int]]] = {}

    def initialize(self, target_files: List[Record], query_files: List[Record]) -> None:
        super().initialize(target_files, query_files)
        self._kept = []
        self._best = {}

    def set(self, value: float, row: int, col: int) -> None:
        self._check_bounds(row, col)
        if self.self_similar and col <= row:
            return
        value = float(value)
        if value > self.threshold:
            self._kept.append((value, col, row))
        elif self.at_least > 0:
            best = self._best.setdefault(row, [])
            best.append((value, col))
            best.sort(reverse=True)
            del best[self.at_least :]

    def _collect(self) -> List[Tuple[float, int, int]]:
        entries = list(self._kept)
        above: Dict[int, int] = {}
        for _, _, row in self._kept:
            above[row] = above.get(row, 0) + 1
        for row, best in self._best.items():
            missing = self.at_least - above.get(row, 0)
            for value, col in best[: max(0, missing)]:
                entries.append((value, col, row))
        entries.sort(key=lambda entry: (-entry[0], entry[2], entry[1]))
        return entries

    def close(self) -> None:
        lines = [TAIL_HEADER]
        for value, col, row in self._collect():
            lines.append(f"{value:g},{self.target_files[col].name},{self.query_files[row].name}")
        self.buffer = "\n".join(lines)
        if self.file.base_name != "buffer":
            self.file.path.parent.mkdir(parents=True, exist_ok=True)
            self.file.path.write_text(self.buffer + "\n", encoding="utf-8")
