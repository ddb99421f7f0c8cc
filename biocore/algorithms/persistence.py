# Path: biocore/algorithms/persistence.py
# Purpose: Store and load trained algorithms as compressed model files.
# Layer: biocore/algorithms.
# Details: Payload is zlib compressed: int32 version, enrollment stage, int32 compare mode, then the distance or comparison stage.

from __future__ import annotations

import io
import logging
import os
import tempfile
import zlib
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from biocore.distances.base import Distance, deserialize_distance, serialize_distance
from biocore.errors import ModelFormatError
from biocore.plugins.stream import ModelStream
from biocore.stages.base import Stage, deserialize_stage, serialize_stage
from biocore.stages.compare import GalleryCompare

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class CompareMode(IntEnum):
    NONE = 0
    DISTANCE = 1
    TRANSFORM = 2


@dataclass
class LoadedModel:
    """Components rebuilt from a model file."""

    stage: Stage
    mode: CompareMode
    distance: Optional[Distance] = None
    comparison: Optional[Stage] = None


def compare_mode(distance: Optional[Distance], comparison: Optional[Stage]) -> CompareMode:
    if distance is not None:
        return CompareMode.DISTANCE
    if comparison is not None:
        return CompareMode.TRANSFORM
    return CompareMode.NONE


def dump_model(stage: Stage, distance: Optional[Distance] = None, comparison: Optional[Stage] = None) -> bytes:
    """Serialize and compress the algorithm components."""

    stream = ModelStream()
    stream.write_int32(FORMAT_VERSION)
    serialize_stage(stage, stream)
    mode = compare_mode(distance, comparison)
    stream.write_int32(int(mode))
    if mode is CompareMode.DISTANCE:
        assert distance is not None
        serialize_distance(distance, stream)
    elif mode is CompareMode.TRANSFORM:
        assert comparison is not None
        serialize_stage(comparison, stream)
    return zlib.compress(stream.getvalue())


def parse_model(blob: bytes) -> LoadedModel:
    """Rebuild algorithm components from bytes written by :func:`dump_model`."""

    try:
        payload = zlib.decompress(blob)
    except zlib.error as exc:
        raise ModelFormatError(f"Model payload is not zlib compressed: {exc}") from exc

    stream = ModelStream(io.BytesIO(payload))
    version = stream.read_int32()
    if version != FORMAT_VERSION:
        raise ModelFormatError(f"Unsupported model format version {version}")
    stage = deserialize_stage(stream)
    tag = stream.read_int32()
    try:
        mode = CompareMode(tag)
    except ValueError:
        raise ModelFormatError(f"Unknown compare mode tag {tag}") from None

    if mode is CompareMode.DISTANCE:
        distance = deserialize_distance(stream)
        return LoadedModel(stage=stage, mode=mode, distance=distance, comparison=GalleryCompare(distance=distance))
    if mode is CompareMode.TRANSFORM:
        return LoadedModel(stage=stage, mode=mode, comparison=deserialize_stage(stream))
    return LoadedModel(stage=stage, mode=mode)


def store_model(
    path: Union[str, Path],
    stage: Stage,
    distance: Optional[Distance] = None,
    comparison: Optional[Stage] = None,
) -> None:
    """Write a model file atomically."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    blob = dump_model(stage, distance, comparison)
    with tempfile.NamedTemporaryFile(dir=target.parent, prefix=f".{target.name}.", delete=False) as handle:
        handle.write(blob)
        temp_name = handle.name
    try:
        os.replace(temp_name, target)
    except OSError:
        os.unlink(temp_name)
        raise
    logger.info(f"Stored model {target}")


def load_model(path: Union[str, Path]) -> LoadedModel:
    source = Path(path)
    logger.debug(f"Loading model {source.name}")
    return parse_model(source.read_bytes())
