# Path: biocore/stages/features.py
# Purpose: Provide lightweight reference feature-extraction stages.
# Layer: biocore/stages.
# Details: Image payloads are numpy arrays; resizing goes through Pillow, statistics through numpy.

from __future__ import annotations

from typing import Callable, List, Optional

import numpy as np
from PIL import Image

from biocore.models.domain import Record
from biocore.plugins.stream import ModelStream

from .base import STAGES, Stage


def _map_data(records: List[Record], transform: Callable[[np.ndarray], np.ndarray]) -> List[Record]:
    """Apply ``transform`` to each payload; records without payload pass through."""

    return [record if record.data is None else record.with_data(transform(record.data)) for record in records]


def _to_image(data: np.ndarray) -> Image.Image:
    array = np.asarray(data)
    if array.ndim == 2 and array.dtype != np.uint8:
        return Image.fromarray(array.astype(np.float32))
    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)
    return Image.fromarray(array)


def _normalize(vector: np.ndarray) -> np.ndarray:
    """Normalize vectors to unit length."""

    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector.astype(np.float32)
    return (vector / norm).astype(np.float32)


@STAGES.register("Identity")
class Identity(Stage):
    """Pass records through unchanged; removed when an algorithm is simplified."""

    def project(self, records: List[Record]) -> List[Record]:
        return list(records)


@STAGES.register("Resize")
class Resize(Stage):
    params = ("width", "height")

    def __init__(self, width: int = 32, height: Optional[int] = None) -> None:
        self.width = int(width)
        self.height = int(height) if height is not None else self.width
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Resize dimensions must be positive, got {self.width}x{self.height}")

    def project(self, records: List[Record]) -> List[Record]:
        size = (self.width, self.height)
        return _map_data(records, lambda data: np.asarray(_to_image(data).resize(size)))


@STAGES.register("Gray")
class Gray(Stage):
    """Convert color payloads to single channel luminance."""

    def project(self, records: List[Record]) -> List[Record]:
        def convert(data: np.ndarray) -> np.ndarray:
            if data.ndim < 3:
                return data
            if data.dtype == np.uint8 and data.shape[-1] in (3, 4):
                return np.asarray(_to_image(data).convert("L"))
            return data.mean(axis=-1).astype(np.float32)

        return _map_data(records, convert)


@STAGES.register("Flatten")
class Flatten(Stage):
    def project(self, records: List[Record]) -> List[Record]:
        return _map_data(records, lambda data: np.asarray(data, dtype=np.float32).reshape(-1))


@STAGES.register("Normalize")
class Normalize(Stage):
    """Scale feature vectors to unit L2 norm."""

    def project(self, records: List[Record]) -> List[Record]:
        return _map_data(records, lambda data: _normalize(np.asarray(data, dtype=np.float32)))


@STAGES.register("PixelStats")
class PixelStats(Stage):
    """Summarize a payload by its mean, deviation and quartiles, padded to ``dim`` values."""

    params = ("dim",)

    def __init__(self, dim: int = 16) -> None:
        self.dim = int(dim)
        if self.dim <= 0:
            raise ValueError(f"PixelStats dimension must be positive, got {self.dim}")

    def _embed(self, data: np.ndarray) -> np.ndarray:
        vector = np.asarray(data, dtype=np.float32).flatten()
        pooled = np.concatenate([
            [vector.mean(), vector.std()],
            np.percentile(vector, [25, 50, 75]).astype(np.float32),
        ])
        padded = np.pad(pooled, (0, max(0, self.dim - pooled.size)), mode="wrap")
        return _normalize(padded[: self.dim])

    def project(self, records: List[Record]) -> List[Record]:
        return _map_data(records, self._embed)


@STAGES.register("PerceptualHash")
class PerceptualHash(Stage):
    """Replace an image payload by its ``hash_size`` x ``hash_size`` perceptual hash bits."""

    params = ("hash_size",)

    def __init__(self, hash_size: int = 12) -> None:
        self.hash_size = int(hash_size)
        if self.hash_size < 2:
            raise ValueError(f"PerceptualHash size must be at least 2, got {self.hash_size}")

    def _hash(self, data: np.ndarray) -> np.ndarray:
        try:
            import imagehash  # type: ignore[import]
        except ImportError as exc:  # pragma: no cover - runtime dependency
            raise RuntimeError("imagehash package is required for the PerceptualHash stage.") from exc

        ph = imagehash.phash(_to_image(data).convert("RGB"), hash_size=self.hash_size)
        # ph.hash is a boolean hash_size x hash_size array.
        return ph.hash.astype(np.float32).flatten()

    def project(self, records: List[Record]) -> List[Record]:
        return _map_data(records, self._hash)


@STAGES.register("Center")
class Center(Stage):
    """Subtract the mean feature vector learned during training."""

    def __init__(self) -> None:
        self.mean: Optional[np.ndarray] = None

    def train(self, records: List[Record]) -> None:
        vectors = [np.asarray(record.data, dtype=np.float32) for record in records if record.data is not None]
        if vectors:
            self.mean = np.mean(np.stack(vectors), axis=0).astype(np.float32)

    def project(self, records: List[Record]) -> List[Record]:
        if self.mean is None:
            return list(records)
        mean = self.mean
        return _map_data(records, lambda data: np.asarray(data, dtype=np.float32) - mean)

    def save_state(self, stream: ModelStream) -> None:
        stream.write_array(self.mean)

    def load_state(self, stream: ModelStream) -> None:
        self.mean = stream.read_array()
