import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import pytest
from PIL import Image

from biocore.algorithms.registry import AlgorithmRegistry
from biocore.distances.base import DISTANCES, Distance
from biocore.galleries import gallery_exists
from biocore.galleries.memory import clear_memory_galleries
from biocore.models.domain import Record
from biocore.stages.base import STAGES, Stage
from config.settings import AppSettings


def mean_color(data: np.ndarray) -> np.ndarray:
    array = np.asarray(data, dtype=np.float32)
    if array.ndim == 3:
        return array.reshape(-1, array.shape[-1]).mean(axis=0)
    return array.reshape(-1)


@STAGES.register("FaceDetect")
class FaceDetect(Stage):
    """Stand-in detector: a record becomes its mean RGB color."""

    def project(self, records):
        return [record.with_data(mean_color(record.data)) for record in records]


@STAGES.register("Counting")
class Counting(Stage):
    """Mean color stage counting every record it enrolls."""

    projected = 0

    def project(self, records):
        type(self).projected += len(records)
        return [record.with_data(mean_color(record.data)) for record in records]


@STAGES.register("Sluggish")
class Sluggish(Stage):
    """Mean color stage that sleeps per block and notes whether a watched gallery exists yet."""

    projected = 0
    watched: Optional[str] = None
    seen_cache: List[bool] = []

    def project(self, records):
        time.sleep(0.05)
        type(self).projected += len(records)
        if type(self).watched is not None:
            type(self).seen_cache.append(gallery_exists(type(self).watched))
        return [record.with_data(mean_color(record.data)) for record in records]


@STAGES.register("Failing")
class Failing(Stage):
    """Mean color stage that fails on its second block."""

    blocks = 0

    def project(self, records):
        type(self).blocks += 1
        if type(self).blocks > 1:
            raise RuntimeError("detector crashed")
        return [record.with_data(mean_color(record.data)) for record in records]


@STAGES.register("CustomCompare")
class CustomCompare(Stage):
    """Comparison stage scoring by negated absolute difference of summed features."""

    def __init__(self):
        self.gallery = []

    def train(self, records):
        self.gallery = list(records)

    def project(self, records):
        output = []
        for record in records:
            scores = [-abs(float(np.sum(other.data)) - float(np.sum(record.data))) for other in self.gallery]
            output.append(record.with_data(np.asarray(scores, dtype=np.float32)))
        return output


@STAGES.register("Truncated")
class Truncated(Stage):
    """Comparison stage that always emits a single score."""

    def project(self, records):
        return [record.with_data(np.zeros(1, dtype=np.float32)) for record in records]


@DISTANCES.register("Shift")
class Shift(Distance):
    """Asymmetric score: target red channel weighs a thousand times the query red channel."""

    def compare(self, target, query):
        return float(target.data[0]) * 1000.0 + float(query.data[0])


@DISTANCES.register("Hatch")
class Hatch(Distance):
    """Distance that handles whole gallery comparisons itself."""

    calls: List[Tuple[str, str, str]] = []

    def compare(self, target, query):
        return 0.0

    def compare_sets(self, target, query, output):
        type(self).calls.append((target.flat(), query.flat(), output.flat()))
        return True


@pytest.fixture(autouse=True)
def _fresh_state():
    clear_memory_galleries()
    Counting.projected = 0
    Sluggish.projected = 0
    Sluggish.watched = None
    Sluggish.seen_cache = []
    Failing.blocks = 0
    Hatch.calls = []
    yield
    clear_memory_galleries()


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(models_dir=tmp_path / "models", show_progress=False, block_size=2, processes=2)


@pytest.fixture
def registry(settings):
    registry = AlgorithmRegistry(settings)
    yield registry
    registry.finalize()


@pytest.fixture
def image_dir(tmp_path) -> Callable[[str, Sequence[Tuple[int, int, int]]], Path]:
    """Factory writing one solid 8x8 PNG per color into a new folder."""

    def factory(name: str, colors: Sequence[Tuple[int, int, int]]) -> Path:
        folder = tmp_path / name
        folder.mkdir()
        for index, color in enumerate(colors):
            Image.new("RGB", (8, 8), color).save(folder / f"{index:03d}.png")
        return folder

    return factory


def reds(*values: int) -> List[Tuple[int, int, int]]:
    return [(value, 0, 0) for value in values]


def record(name: str, *values: float) -> Record:
    return Record(name=name, data=np.asarray(values, dtype=np.float32))
