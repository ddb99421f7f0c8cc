# Path: biocore/operations.py
# Purpose: Expose the public operation entry points over the algorithm registry.
# Layer: biocore.
# Details: The algorithm comes from an explicit argument, else the file's ``algorithm`` flag, else the configured default.

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image

from biocore.algorithms.core import AlgorithmCore
from biocore.algorithms.registry import AlgorithmRegistry, get_registry
from biocore.distances.base import Distance
from biocore.errors import ConversionError, NullStageError, ThresholdError
from biocore.galleries.base import copy_gallery, make_gallery
from biocore.models.domain import FileRef, Record
from biocore.outputs.base import make_output
from biocore.outputs.matrix import read_matrix
from biocore.stages.base import Stage
from biocore.stages.pipeline import ReadMode, wrap_streaming

logger = logging.getLogger(__name__)

FileLike = Union[FileRef, str, Path]

CONVERSION_TYPES = ("Format", "Gallery", "Output")


def _registry(registry: Optional[AlgorithmRegistry]) -> AlgorithmRegistry:
    return registry if registry is not None else get_registry()


def resolve_algorithm_name(
    file: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> str:
    """Pick the descriptor an operation runs with."""

    if algorithm:
        return algorithm
    if file is not None:
        flagged = FileRef.parse(file).get("algorithm")
        if flagged:
            return flagged
    return _registry(registry).settings.default_algorithm


def _algorithm(
    file: Optional[FileLike],
    algorithm: Optional[str],
    registry: Optional[AlgorithmRegistry],
) -> AlgorithmCore:
    return _registry(registry).get_algorithm(resolve_algorithm_name(file, algorithm, registry))


def is_classifier(algorithm: Optional[str] = None, registry: Optional[AlgorithmRegistry] = None) -> bool:
    name = resolve_algorithm_name(None, algorithm, registry)
    logger.debug(f"Checking if {name} is a classifier")
    return _algorithm(None, name, registry).is_classifier()


def train(
    input: FileLike,
    model: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> AlgorithmCore:
    """Train a private instance of the algorithm and store it to ``model`` when given."""

    registry = _registry(registry)
    core = registry.build(resolve_algorithm_name(model, algorithm, registry))
    core.train(input, model)
    return core


def enroll(
    input: FileLike,
    gallery: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> List[Record]:
    return _algorithm(gallery if gallery is not None else input, algorithm, registry).enroll(input, gallery)


def enroll_records(
    records: Sequence[Record],
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> List[Record]:
    if not records:
        return []
    name = algorithm or records[0].metadata.get("algorithm")
    return _algorithm(None, name, registry).enroll_records(records)


def project(
    input: FileLike,
    output: FileLike,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> None:
    _algorithm(output, algorithm, registry).project(input, output)


def compare(
    target: FileLike,
    query: Optional[FileLike] = ".",
    output: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> None:
    _algorithm(output, algorithm, registry).compare(target, query, output)


def compare_record_lists(
    targets: Sequence[Record],
    queries: Sequence[Record],
    output: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> None:
    _algorithm(output, algorithm, registry).compare_records(targets, queries, output)


def pairwise_compare(
    target: FileLike,
    query: Optional[FileLike],
    output: Optional[FileLike] = None,
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> None:
    _algorithm(output, algorithm, registry).pairwise_compare(target, query, output)


def deduplicate(
    input: FileLike,
    output: FileLike,
    threshold: Union[float, str],
    algorithm: Optional[str] = None,
    registry: Optional[AlgorithmRegistry] = None,
) -> List[Record]:
    try:
        limit = float(threshold)
    except (TypeError, ValueError):
        raise ThresholdError(f"Unable to convert deduplication threshold '{threshold}' to float") from None
    return _algorithm(input, algorithm, registry).deduplicate(input, output, limit)


def stage_from_algorithm(
    algorithm: str,
    preprocess: bool = False,
    registry: Optional[AlgorithmRegistry] = None,
) -> Stage:
    """Return the enrollment stage of an algorithm, distributed over threads when ``preprocess``."""

    registry = _registry(registry)
    core = registry.get_algorithm(algorithm)
    if core.stage is None:
        raise NullStageError(f"Algorithm '{algorithm}' has no enrollment stage")
    if not preprocess:
        return core.stage
    return wrap_streaming(
        core.stage, ReadMode.DISTRIBUTE_FRAMES, parallelism=registry.settings.parallelism, owned=False
    )


def distance_from_algorithm(algorithm: str, registry: Optional[AlgorithmRegistry] = None) -> Optional[Distance]:
    return _registry(registry).get_algorithm(algorithm).distance


def convert(file_type: str, input: FileLike, output: FileLike) -> None:
    """Convert between files of one kind: ``Format``, ``Gallery`` or ``Output``."""

    source = FileRef.parse(input)
    destination = FileRef.parse(output)
    logger.info(f"Converting {file_type} {source.flat()} to {destination.flat()}")

    if file_type == "Format":
        _convert_format(source, destination)
    elif file_type == "Gallery":
        copy_gallery(source, destination)
    elif file_type == "Output":
        _convert_output(source, destination)
    else:
        raise ConversionError(f"Unrecognized file type '{file_type}', expected one of {', '.join(CONVERSION_TYPES)}")


def _convert_format(source: FileRef, destination: FileRef) -> None:
    try:
        with Image.open(source.path) as image:
            converted = image.convert("RGB") if destination.suffix.lower() in {"jpg", "jpeg"} else image.copy()
        destination.path.parent.mkdir(parents=True, exist_ok=True)
        converted.save(destination.path)
    except (OSError, ValueError) as exc:
        raise ConversionError(f"Unable to convert {source.flat()} to {destination.flat()}: {exc}") from exc


def _convert_output(source: FileRef, destination: FileRef) -> None:
    matrix, targets, queries = read_matrix(source.path)
    rows, cols = matrix.shape
    canonical = len(targets) == cols and len(queries) == rows
    column = cols == 1 and len(targets) == rows and len(queries) == rows
    if not canonical and not column:
        raise ConversionError(
            f"Similarity matrix ({rows}, {cols}) and header ({len(queries)}, {len(targets)}) size mismatch"
        )

    sink = make_output(destination)
    sink.initialize(targets if canonical else targets[:1], queries)
    sink.set_block_origin(0, 0)
    try:
        for row in range(rows):
            for col in range(cols):
                sink.set_relative(float(matrix[row, col]), row, col)
    finally:
        sink.close()


def cat(inputs: Sequence[FileLike], output: FileLike) -> int:
    """Concatenate galleries into ``output``; return the number of records written."""

    destination = FileRef.parse(output)
    sources = [FileRef.parse(item) for item in inputs]
    logger.info(f"Concatenating {len(sources)} galleries to {destination.flat()}")
    for source in sources:
        if source.name == destination.name:
            raise ConversionError(f"Output gallery {destination.name} must not be one of the inputs")

    writer = make_gallery(destination)
    written = 0
    try:
        for source in sources:
            reader = make_gallery(source)
            try:
                done = False
                while not done:
                    block, done = reader.read_block()
                    if block:
                        writer.write(block)
                        written += len(block)
            finally:
                reader.close()
    finally:
        writer.close()
    return written
