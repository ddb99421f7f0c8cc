# Path: biocore/algorithms/core.py
# Purpose: Hold one resolved algorithm and drive train, enroll, compare and deduplicate over galleries.
# Layer: biocore/algorithms.
# Details: Each operation composes a throwaway pipeline around the algorithm's stages and streams a gallery through it.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from biocore.distances.base import Distance
from biocore.errors import (
    AlgorithmError,
    CardinalityMismatchError,
    NullStageError,
    ThresholdError,
)
from biocore.galleries.base import (
    RESIDENT_SUFFIX,
    copy_gallery,
    gallery_exists,
    is_enrolled,
    make_gallery,
)
from biocore.galleries.memory import drop_memory_gallery, populate_lock, publish_memory_gallery, staging_name
from biocore.models.domain import FileRef, Record
from biocore.outputs.base import make_output
from biocore.outputs.tail import TailOutput
from biocore.stages.base import Stage, StageHandle, clone_stage
from biocore.stages.io import (
    Discard,
    FileExclusion,
    GalleryOutputStage,
    MatrixOutputStage,
    ProgressCounter,
)
from biocore.stages.pipeline import ReadMode, compose, wrap_multi_process, wrap_streaming
from config.settings import AppSettings

from .persistence import load_model, store_model

logger = logging.getLogger(__name__)

T = TypeVar("T")

FileLike = Union[FileRef, str, Path]


def remove_indices(items: List[T], indices: Iterable[int]) -> List[T]:
    """Delete positions from ``items`` in place, highest first so earlier positions stay valid."""

    for index in sorted(set(indices), reverse=True):
        if 0 <= index < len(items):
            del items[index]
    return items


class AlgorithmCore:
    """A resolved algorithm: enrollment stage, optional distance and comparison stage.

    Instances handed out by the registry are published and must not be mutated;
    operations that need trained state work on clones.
    """

    def __init__(self, name: str, settings: Optional[AppSettings] = None) -> None:
        self.name = name
        self.settings = settings or AppSettings()
        self.stage: Optional[Stage] = None
        self.simplified: Optional[StageHandle] = None
        self.distance: Optional[Distance] = None
        self.comparison: Optional[Stage] = None
        self.published = False

    def __repr__(self) -> str:
        return f"<AlgorithmCore {self.name!r}>"

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def is_classifier(self) -> bool:
        return self.comparison is None and self.distance is None

    def simplify(self) -> None:
        """Refresh the simplified enrollment stage."""

        if self.simplified is not None:
            self.simplified.release()
            self.simplified = None
        if self.stage is not None:
            stage, owned = self.stage.simplify()
            self.simplified = StageHandle(stage, owned)

    def load(self, path: FileLike) -> None:
        model = load_model(Path(str(path)))
        self.stage = model.stage
        self.distance = model.distance
        self.comparison = model.comparison

    def store(self, path: FileLike) -> None:
        store_model(Path(str(path)), self._enrollment_stage(), self.distance, self.comparison)

    def close(self) -> None:
        if self.simplified is not None:
            self.simplified.release()
            self.simplified = None
        if self.stage is not None:
            self.stage.close()
        if self.comparison is not None:
            self.comparison.close()

    def _enrollment_stage(self) -> Stage:
        if self.stage is None:
            raise NullStageError(f"Algorithm '{self.name}' has no enrollment stage")
        return self.stage

    def _simplified_stage(self) -> Stage:
        self._enrollment_stage()
        if self.simplified is None:
            self.simplify()
        assert self.simplified is not None
        return self.simplified.stage

    def _require_distance(self) -> Distance:
        if self.distance is None:
            raise NullStageError(f"Algorithm '{self.name}' has no distance")
        return self.distance

    def memory_gallery(self, file: FileLike) -> FileRef:
        """Name of the memory gallery caching ``file`` enrolled by this algorithm."""

        ref = FileRef.parse(file)
        return FileRef(name=f"{self.name}{ref.base_name}{ref.content_hash()}.{RESIDENT_SUFFIX}")

    def _read(self, file: FileLike, metadata_only: bool = False) -> List[Record]:
        gallery = make_gallery(file, block_size=self.settings.block_size)
        try:
            return gallery.read_metadata() if metadata_only else gallery.read()
        finally:
            gallery.close()

    def _total_size(self, file: FileLike) -> int:
        gallery = make_gallery(file, block_size=self.settings.block_size)
        try:
            return gallery.total_size()
        finally:
            gallery.close()

    # ------------------------------------------------------------------
    # Training and enrollment
    # ------------------------------------------------------------------

    def train(self, input: FileLike, model: Optional[FileLike] = None) -> None:
        """Train the enrollment stage and distance on a gallery, optionally storing the model."""

        if self.published:
            raise AlgorithmError(f"Algorithm '{self.name}' is shared and cannot be trained in place")
        stage = self._enrollment_stage()
        source = FileRef.parse(input)
        data = self._read(source)
        logger.info(f"Training {self.name} on {len(data)} records from {source.flat()}")

        trainer = wrap_streaming(
            stage, ReadMode.DISTRIBUTE_FRAMES, parallelism=self.settings.parallelism, owned=False
        )
        trainer.train(data)

        if self.distance is not None:
            if self.settings.cross_validate > 0:
                data = [record for record in data if not _flag(record.metadata.get("allPartitions"))]
            self.distance.train(trainer.project(data))

        if model is not None and not FileRef.parse(model).is_null:
            self.store(FileRef.parse(model).name)
        self.simplify()

    def project(self, input: FileLike, output: FileLike) -> None:
        """Project one gallery into another block by block through the full enrollment stage."""

        stage = self._enrollment_stage()
        source = make_gallery(input, block_size=self.settings.block_size)
        target = make_gallery(output, block_size=self.settings.block_size)
        logger.info(f"Projecting {source.file.flat()} to {target.file.flat()}")
        try:
            done = False
            while not done:
                block, done = source.read_block()
                if block:
                    target.write(stage.project(block))
        finally:
            source.close()
            target.close()

    def enroll_records(self, records: Sequence[Record]) -> List[Record]:
        """Enroll in-memory records through the simplified enrollment stage."""

        stage = self._simplified_stage()
        if self.settings.parallelism > 1:
            distributor = wrap_streaming(
                stage, ReadMode.DISTRIBUTE_FRAMES, parallelism=self.settings.parallelism, owned=False
            )
            return distributor.project(list(records))
        return stage.project(list(records))

    def enroll(self, input: FileLike, gallery: Optional[FileLike] = None) -> List[Record]:
        """Enroll a gallery and return the metadata of every record written.

        Without ``gallery`` the result lands in this algorithm's memory gallery for the
        input, and an already populated memory gallery is returned as is. The memory
        gallery only becomes visible once enrollment has completed.
        """

        stage = self._simplified_stage()
        source = FileRef.parse(input)
        if gallery is not None and not FileRef.parse(gallery).is_null:
            target = FileRef.parse(gallery)
            logger.info(f"Enrolling {source.flat()} to {target.flat()}")
            return self._enroll_into(stage, source, target)

        target = self.memory_gallery(source)
        with populate_lock(target.name):
            if gallery_exists(target):
                logger.debug(f"Reusing enrolled {source.flat()} from {target.name}")
                return self._read(target, metadata_only=True)
            logger.info(f"Enrolling {source.flat()} to {target.name}")
            return _fill_memory_gallery(target.name, lambda staging: self._enroll_into(stage, source, staging))

    def _enroll_into(self, stage: Stage, source: FileRef, target: FileRef) -> List[Record]:
        exclusion: Optional[FileExclusion] = None
        if target.get_bool("append") and gallery_exists(target):
            exclusion = FileExclusion(record.name for record in self._read(target, metadata_only=True))

        region: Stage = stage
        if self.settings.multi_process:
            region = wrap_multi_process(stage, processes=self.settings.processes, owned=False)
        elif self.settings.parallelism > 1:
            region = wrap_streaming(
                stage, ReadMode.DISTRIBUTE_FRAMES, parallelism=self.settings.parallelism, owned=False
            )

        progress = ProgressCounter(show_progress=self.settings.show_progress, description=f"Enrolling {source.base_name}")
        writer = GalleryOutputStage(make_gallery(target, block_size=self.settings.block_size))
        stages: List[Stage] = [region]
        if exclusion is not None:
            stages.append(exclusion)
        stages.extend([writer, progress, Discard()])
        pipeline = compose(stages, shared=[stage])
        stream = wrap_streaming(pipeline, ReadMode.STREAM_GALLERY, block_size=self.settings.block_size)

        try:
            progress.reset(self._total_size(source))
            stream.project([Record(name=source.flat())])
        finally:
            stream.close()
        return writer.written

    def retrieve_or_enroll(self, file: FileLike) -> List[Record]:
        """Return enrolled records for ``file``, enrolling it into memory if needed."""

        ref = FileRef.parse(file)
        if is_enrolled(ref):
            return self._read(ref)
        self.enroll(ref)
        return self._read(self.memory_gallery(ref))

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def _resident_gallery(self, file: FileRef) -> FileRef:
        """Make the column set available as an enrolled memory gallery."""

        if file.suffix.lower() == RESIDENT_SUFFIX and not file.get_bool("enroll"):
            return file
        if is_enrolled(file):
            resident = FileRef(name=f"{file.base_name}{file.content_hash()}.{RESIDENT_SUFFIX}")
            with populate_lock(resident.name):
                if not gallery_exists(resident):
                    logger.debug(f"Loading {file.flat()} into {resident.name}")
                    _fill_memory_gallery(
                        resident.name,
                        lambda staging: copy_gallery(file, staging, block_size=self.settings.block_size),
                    )
            return resident
        self.enroll(file)
        return self.memory_gallery(file)

    def compare(self, target: FileLike, query: Optional[FileLike] = ".", output: Optional[FileLike] = None) -> None:
        """Score every query record against every target record into ``output``.

        The written matrix is always query rows by target columns. The larger set is
        streamed and the smaller kept resident; when the target is the larger one the
        comparison runs transposed.
        """

        target_ref = FileRef.parse(target)
        query_ref = target_ref if query is None or str(query) == "." else FileRef.parse(query)
        output_ref = FileRef.parse(output)

        if self.distance is not None and self.distance.compare_sets(target_ref, query_ref, output_ref):
            return
        sink = make_output(output_ref)
        if output_ref.get_bool("cache") and sink.exists():
            logger.debug(f"Keeping cached output {output_ref.name}")
            return
        if self.comparison is None:
            raise NullStageError(f"Algorithm '{self.name}' has no comparison stage")

        logger.info(
            f"Comparing {target_ref.flat()} and {query_ref.flat()}"
            + (f" to {output_ref.flat()}" if not output_ref.is_null else "")
        )
        self_compare = target_ref == query_ref
        target_meta = self._read(target_ref, metadata_only=True)
        query_meta = target_meta if self_compare else self._read(query_ref, metadata_only=True)

        transposed = len(target_meta) > len(query_meta)
        row_ref, column_ref = (target_ref, query_ref) if transposed else (query_ref, target_ref)
        row_size = len(target_meta) if transposed else len(query_meta)

        resident = self._resident_gallery(column_ref)
        if self_compare:
            row_ref = resident
        enroll_rows = not self_compare and not is_enrolled(row_ref)

        comparison = clone_stage(self.comparison)
        comparison.train(self._read(resident))
        comparison.set_config("gallery_name", "")
        comparison.set_config("transposed", transposed)

        shared: List[Stage] = []
        region_stages: List[Stage] = [comparison]
        if enroll_rows:
            simplified = self._simplified_stage()
            region_stages.insert(0, simplified)
            shared.append(simplified)
        region: Stage = compose(region_stages, shared=shared)
        if self.settings.multi_process:
            region = wrap_multi_process(region, processes=self.settings.processes)

        sink.initialize(target_meta, query_meta)
        writer = MatrixOutputStage(sink, transposed=transposed)
        progress = ProgressCounter(show_progress=self.settings.show_progress, description=f"Comparing {row_ref.base_name}")
        pipeline = compose([region, writer, progress, Discard()], shared=shared)
        stream = wrap_streaming(pipeline, ReadMode.STREAM_GALLERY, block_size=self.settings.block_size)

        try:
            progress.reset(row_size)
            stream.project([Record(name=row_ref.flat())])
            writer.finish()
        finally:
            stream.close()

    def compare_records(self, targets: Sequence[Record], queries: Sequence[Record], output: Optional[FileLike] = None) -> None:
        """Score enrolled in-memory record lists with the distance."""

        distance = self._require_distance()
        sink = make_output(output)
        sink.initialize(list(targets), list(queries))
        try:
            distance.compare_lists(list(targets), list(queries), sink)
        finally:
            sink.close()

    def pairwise_compare(self, target: FileLike, query: Optional[FileLike], output: Optional[FileLike] = None) -> None:
        """Score ``target[i]`` against ``query[i]`` into a single-row output."""

        distance = self._require_distance()
        target_ref = FileRef.parse(target)
        query_ref = target_ref if query is None or str(query) == "." else FileRef.parse(query)
        logger.info(f"Pairwise comparing {target_ref.flat()} and {query_ref.flat()}")

        targets = self.retrieve_or_enroll(target_ref)
        queries = self.retrieve_or_enroll(query_ref)
        if len(targets) != len(queries):
            raise CardinalityMismatchError(
                f"Pairwise compare needs equal sizes, got {len(targets)} targets from {target_ref.flat()} "
                f"and {len(queries)} queries from {query_ref.flat()}"
            )

        sink = make_output(output)
        # One placeholder query row keeps the sink at 1 x N.
        placeholder = queries[:1] or [Record(name=query_ref.flat())]
        sink.initialize(targets, placeholder)
        sink.set_block_origin(0, 0)
        try:
            for index, (first, second) in enumerate(zip(targets, queries)):
                sink.set_relative(distance.compare(first, second), 0, index)
        finally:
            sink.close()

    # ------------------------------------------------------------------
    # Deduplication
    # ------------------------------------------------------------------

    def deduplicate(self, input: FileLike, output: FileLike, threshold: Union[float, str]) -> List[Record]:
        """Drop records scoring above ``threshold`` against an earlier record and write the rest."""

        try:
            limit = float(threshold)
        except (TypeError, ValueError):
            raise ThresholdError(f"Invalid deduplication threshold '{threshold}'") from None
        distance = self._require_distance()
        source = FileRef.parse(input)
        destination = FileRef.parse(output)
        logger.info(f"Deduplicating {source.flat()} to {destination.flat()} with a score threshold of {limit:g}")

        records = self.retrieve_or_enroll(source)
        tail = TailOutput(FileRef(name="buffer.tail", params={"selfSimilar": "true", "threshold": repr(limit), "atLeast": "0"}))
        tail.initialize(records, records)
        distance.compare_lists(records, records, tail)
        tail.close()

        duplicates = {line.split(",")[1] for line in tail.buffer.split("\n")[1:] if line}
        names = [record.name for record in records]
        indices = [names.index(name) for name in duplicates if name in names]
        logger.info(f"{len(indices)} duplicates removed.")

        remaining = remove_indices(list(records), indices)
        gallery = make_gallery(destination, block_size=self.settings.block_size)
        try:
            gallery.write(remaining)
        finally:
            gallery.close()
        return [record.metadata_only() for record in remaining]


def _flag(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _fill_memory_gallery(name: str, fill: Callable[[FileRef], T]) -> T:
    """Run ``fill`` against a private staging gallery, then publish it as ``name``."""

    staging = FileRef(name=staging_name(name))
    try:
        result = fill(staging)
    except Exception:
        drop_memory_gallery(staging.name)
        raise
    publish_memory_gallery(staging.name, name)
    return result
