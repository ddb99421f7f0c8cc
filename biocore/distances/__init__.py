# Path: biocore/distances/__init__.py
# Purpose: Package initializer for distance plugins.
# Layer: biocore/distances.
# Details: Importing the package registers the reference distances with DISTANCES.

from .base import DISTANCES, Distance, deserialize_distance, make_distance, serialize_distance
from .metrics import L1, L2, Cosine, Hamming

__all__ = [
    "DISTANCES",
    "Distance",
    "make_distance",
    "serialize_distance",
    "deserialize_distance",
    "L1",
    "L2",
    "Cosine",
    "Hamming",
]
