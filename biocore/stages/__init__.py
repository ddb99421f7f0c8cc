# Path: biocore/stages/__init__.py
# Purpose: Package initializer for stage plugins and the pipeline composer.
# Layer: biocore/stages.
# Details: Importing the package registers the reference stages with STAGES.

from .base import (
    STAGES,
    Stage,
    StageHandle,
    clone_stage,
    deserialize_stage,
    make_stage,
    serialize_stage,
    stage_from_bytes,
    stage_to_bytes,
)
from .compare import GalleryCompare
from .features import Center, Flatten, Gray, Identity, Normalize, PerceptualHash, PixelStats, Resize
from .io import Discard, FileExclusion, GalleryOutputStage, MatrixOutputStage, ProgressCounter
from .pipeline import (
    Pipeline,
    ProcessWrapper,
    ReadMode,
    StreamStage,
    compose,
    wrap_multi_process,
    wrap_streaming,
)

__all__ = [
    "STAGES",
    "Stage",
    "StageHandle",
    "make_stage",
    "serialize_stage",
    "deserialize_stage",
    "stage_to_bytes",
    "stage_from_bytes",
    "clone_stage",
    "Pipeline",
    "compose",
    "ReadMode",
    "StreamStage",
    "ProcessWrapper",
    "wrap_streaming",
    "wrap_multi_process",
    "Identity",
    "Resize",
    "Gray",
    "Flatten",
    "Normalize",
    "PixelStats",
    "PerceptualHash",
    "Center",
    "GalleryCompare",
    "GalleryOutputStage",
    "FileExclusion",
    "ProgressCounter",
    "Discard",
    "MatrixOutputStage",
]
