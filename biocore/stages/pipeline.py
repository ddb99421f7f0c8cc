# Path: biocore/stages/pipeline.py
# Purpose: Compose stages into pipelines and wrap them for streaming or multi-process execution.
# Layer: biocore/stages.
# Details: Pipelines track which children they own; shared stages are borrowed and never closed by the pipeline.

from __future__ import annotations

import logging
import math
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from biocore.galleries.base import DEFAULT_BLOCK_SIZE, make_gallery
from biocore.models.domain import Record
from biocore.plugins.stream import ModelStream

from .base import Stage, stage_from_bytes, stage_to_bytes

logger = logging.getLogger(__name__)


class Pipeline(Stage):
    """Stages applied in sequence; ``A+B`` in a description."""

    plugin_name = "Pipe"

    def __init__(self, stages: Sequence[Stage], owned: Optional[Sequence[bool]] = None) -> None:
        self.stages: List[Stage] = list(stages)
        self.owned: List[bool] = list(owned) if owned is not None else [True] * len(self.stages)

    def children(self) -> List[Stage]:
        return list(self.stages)

    def project(self, records: List[Record]) -> List[Record]:
        for stage in self.stages:
            records = stage.project(records)
        return records

    def train(self, records: List[Record]) -> None:
        """Train each stage on the output of the stages before it."""

        data = records
        for index, stage in enumerate(self.stages):
            stage.train(data)
            if index < len(self.stages) - 1:
                data = stage.project(data)

    def simplify(self) -> Tuple[Stage, bool]:
        from .features import Identity

        simplified: List[Stage] = []
        owned: List[bool] = []
        changed = False
        for stage in self.stages:
            if isinstance(stage, Identity):
                changed = True
                continue
            child, child_owned = stage.simplify()
            changed = changed or child is not stage
            simplified.append(child)
            owned.append(child_owned)
        if not changed:
            return self, False
        if not simplified:
            return Identity(), True
        if len(simplified) == 1 and not owned[0]:
            return simplified[0], False
        return Pipeline(simplified, owned), True

    def describe(self) -> str:
        if not self.stages:
            return "Identity"
        return "+".join(stage.describe() for stage in self.stages)

    def save_state(self, stream: ModelStream) -> None:
        for stage in self.stages:
            stage.save_state(stream)

    def load_state(self, stream: ModelStream) -> None:
        for stage in self.stages:
            stage.load_state(stream)

    def close(self) -> None:
        for stage, owned in zip(self.stages, self.owned):
            if owned:
                stage.close()


def compose(stages: Sequence[Stage], shared: Sequence[Stage] = ()) -> Pipeline:
    """Build a pipeline owning ``stages`` except the ones listed in ``shared``."""

    shared_ids = {id(stage) for stage in shared}
    return Pipeline(stages, [id(stage) not in shared_ids for stage in stages])


class ReadMode(Enum):
    STREAM_GALLERY = "stream_gallery"
    DISTRIBUTE_FRAMES = "distribute_frames"


class StreamStage(Stage):
    """Drive an inner stage either block by block over galleries or across a thread pool.

    In ``STREAM_GALLERY`` mode every input record names a gallery; its blocks are read
    sequentially and pushed through the inner stage in order. In ``DISTRIBUTE_FRAMES``
    mode each input record is projected independently on up to ``parallelism`` threads
    and results keep the input order.
    """

    plugin_name = "Stream"

    def __init__(
        self,
        inner: Stage,
        mode: ReadMode = ReadMode.STREAM_GALLERY,
        block_size: int = DEFAULT_BLOCK_SIZE,
        parallelism: int = 1,
        owned: bool = True,
    ) -> None:
        self.inner = inner
        self.mode = mode
        self.block_size = block_size
        self.parallelism = max(1, int(parallelism))
        self.owned = owned

    def children(self) -> List[Stage]:
        return [self.inner]

    def _stream(self, records: List[Record]):
        for record in records:
            gallery = make_gallery(record.name, block_size=self.block_size)
            try:
                done = False
                while not done:
                    block, done = gallery.read_block()
                    if block:
                        yield block
            finally:
                gallery.close()

    def project(self, records: List[Record]) -> List[Record]:
        if self.mode is ReadMode.STREAM_GALLERY:
            output: List[Record] = []
            for block in self._stream(records):
                output.extend(self.inner.project(block))
            return output
        if self.parallelism == 1 or len(records) < 2:
            return [item for record in records for item in self.inner.project([record])]
        with ThreadPoolExecutor(max_workers=self.parallelism) as executor:
            results = list(executor.map(lambda record: self.inner.project([record]), records))
        return [item for result in results for item in result]

    def train(self, records: List[Record]) -> None:
        if self.mode is ReadMode.STREAM_GALLERY:
            records = [item for block in self._stream(records) for item in block]
        self.inner.train(records)

    def simplify(self) -> Tuple[Stage, bool]:
        return self.inner.simplify()

    def describe(self) -> str:
        return self.inner.describe()

    def save_state(self, stream: ModelStream) -> None:
        self.inner.save_state(stream)

    def load_state(self, stream: ModelStream) -> None:
        self.inner.load_state(stream)

    def close(self) -> None:
        if self.owned:
            self.inner.close()


def wrap_streaming(
    stage: Stage,
    mode: ReadMode,
    block_size: int = DEFAULT_BLOCK_SIZE,
    parallelism: int = 1,
    owned: bool = True,
) -> StreamStage:
    return StreamStage(stage, mode, block_size=block_size, parallelism=parallelism, owned=owned)


_WORKER_STAGE: Optional[Stage] = None


def _init_worker(blob: bytes) -> None:
    global _WORKER_STAGE
    _WORKER_STAGE = stage_from_bytes(blob)


def _worker_project(records: List[Record]) -> List[Record]:
    assert _WORKER_STAGE is not None
    return _WORKER_STAGE.project(records)


class ProcessWrapper(Stage):
    """Run ``project`` of an inner stage in a pool of worker processes.

    The inner stage is shipped to each worker as its serialized blob when the pool
    starts; record batches travel pickled in both directions.
    """

    plugin_name = "ProcessWrapper"

    def __init__(self, inner: Stage, processes: int = 2, owned: bool = True) -> None:
        self.inner = inner
        self.processes = max(1, int(processes))
        self.owned = owned
        self._pool: Optional[ProcessPoolExecutor] = None

    def children(self) -> List[Stage]:
        return [self.inner]

    def _ensure_pool(self) -> ProcessPoolExecutor:
        if self._pool is None:
            logger.debug(f"Starting {self.processes} worker processes for {self.inner.describe()}")
            self._pool = ProcessPoolExecutor(
                max_workers=self.processes,
                initializer=_init_worker,
                initargs=(stage_to_bytes(self.inner),),
            )
        return self._pool

    def _shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None

    def project(self, records: List[Record]) -> List[Record]:
        if not records:
            return []
        size = max(1, math.ceil(len(records) / self.processes))
        chunks = [records[start : start + size] for start in range(0, len(records), size)]
        results = self._ensure_pool().map(_worker_project, chunks)
        return [item for result in results for item in result]

    def train(self, records: List[Record]) -> None:
        # Workers hold a snapshot of the stage; retraining restarts them.
        self._shutdown()
        self.inner.train(records)

    def set_config(self, key, value) -> bool:
        self._shutdown()
        return super().set_config(key, value)

    def describe(self) -> str:
        return self.inner.describe()

    def save_state(self, stream: ModelStream) -> None:
        self.inner.save_state(stream)

    def load_state(self, stream: ModelStream) -> None:
        self._shutdown()
        self.inner.load_state(stream)

    def close(self) -> None:
        self._shutdown()
        if self.owned:
            self.inner.close()


def wrap_multi_process(stage: Stage, processes: int = 2, owned: bool = True) -> ProcessWrapper:
    return ProcessWrapper(stage, processes=processes, owned=owned)
