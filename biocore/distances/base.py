# Path: biocore/distances/base.py
# Purpose: Define the Distance interface used to score pairs of enrolled records.
# Layer: biocore/distances.
# Details: Distances are named plugins; higher scores always mean more similar.

from __future__ import annotations

from abc import abstractmethod
from typing import List

from biocore.models.domain import FileRef, Record
from biocore.outputs.base import Output
from biocore.plugins.base import Plugin, PluginFactory
from biocore.plugins.stream import ModelStream

DISTANCES: PluginFactory["Distance"] = PluginFactory("distance")


class Distance(Plugin):
    """Abstract base class for pairwise scoring functions."""

    @abstractmethod
    def compare(self, target: Record, query: Record) -> float:
        """Return the similarity of ``query`` to ``target``."""

    def compare_sets(self, target: FileRef, query: FileRef, output: FileRef) -> bool:
        """Optionally handle a whole gallery comparison; return True when handled."""

        return False

    def compare_lists(self, targets: List[Record], queries: List[Record], output: Output) -> None:
        """Score every query against every target into an initialized output."""

        output.set_block_origin(0, 0)
        for row, query in enumerate(queries):
            for col, target in enumerate(targets):
                output.set_relative(self.compare(target, query), row, col)

    def train(self, records: List[Record]) -> None:
        """Fit distance parameters; stateless distances ignore this."""

    def save_state(self, stream: ModelStream) -> None:
        """Write trained state."""

    def load_state(self, stream: ModelStream) -> None:
        """Restore state written by :meth:`save_state`."""


def make_distance(description: str) -> Distance:
    """Instantiate a distance from its description, e.g. ``L2`` or ``Cosine()``."""

    return DISTANCES.make(description.strip())


def serialize_distance(distance: Distance, stream: ModelStream) -> None:
    stream.write_str(distance.describe())
    distance.save_state(stream)


def deserialize_distance(stream: ModelStream) -> Distance:
    distance = make_distance(stream.read_str())
    distance.load_state(stream)
    return distance
