# Path: biocore/distances/metrics.py
# Purpose: Provide reference vector distances.
# Layer: biocore/distances.
# Details: Distances are negated so that a larger score always means a closer match.

from __future__ import annotations

import numpy as np

from biocore.errors import TemplateError
from biocore.models.domain import Record

from .base import DISTANCES, Distance


def _vector(record: Record) -> np.ndarray:
    if record.data is None:
        source = record.metadata.get("path")
        origin = f" from '{source}'" if source else ""
        raise TemplateError(f"Record '{record.name}'{origin} has no feature payload to compare")
    return np.asarray(record.data, dtype=np.float32).reshape(-1)


@DISTANCES.register("L1")
class L1(Distance):
    """Negated Manhattan distance."""

    def compare(self, target: Record, query: Record) -> float:
        return -float(np.abs(_vector(target) - _vector(query)).sum())


@DISTANCES.register("L2")
class L2(Distance):
    """Negated Euclidean distance."""

    def compare(self, target: Record, query: Record) -> float:
        return -float(np.linalg.norm(_vector(target) - _vector(query)))


@DISTANCES.register("Cosine")
class Cosine(Distance):
    """Cosine similarity between feature vectors."""

    def compare(self, target: Record, query: Record) -> float:
        first = _vector(target)
        second = _vector(query)
        denominator = float(np.linalg.norm(first) * np.linalg.norm(second))
        if denominator == 0:
            return 0.0
        return float(np.dot(first, second) / denominator)


@DISTANCES.register("Hamming")
class Hamming(Distance):
    """Negated count of differing bits between binary templates such as perceptual hashes."""

    def compare(self, target: Record, query: Record) -> float:
        return -float(np.count_nonzero((_vector(target) > 0.5) != (_vector(query) > 0.5)))
