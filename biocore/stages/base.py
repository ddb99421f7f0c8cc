# Path: biocore/stages/base.py
# Purpose: Define the Stage interface and the helpers that build, clone and serialize stages.
# Layer: biocore/stages.
# Details: Stages are named plugins; ``A+B`` composes a pipeline and ``(A+B)`` groups.

from __future__ import annotations

import io
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, List, Tuple

from biocore.models.domain import Record
from biocore.plugins.base import Plugin, PluginFactory
from biocore.plugins.parsing import is_wrapped, split_top_level
from biocore.plugins.stream import ModelStream

STAGES: PluginFactory["Stage"] = PluginFactory("stage")


class Stage(Plugin):
    """Abstract base class for every record-transforming step of an algorithm."""

    @abstractmethod
    def project(self, records: List[Record]) -> List[Record]:
        """Transform a batch of records, preserving their order."""

    def train(self, records: List[Record]) -> None:
        """Fit the stage on training records; untrainable stages ignore this."""

    def children(self) -> List["Stage"]:
        return []

    def simplify(self) -> Tuple["Stage", bool]:
        """Return an equivalent stage for enrollment and whether the caller owns it.

        An owned result is a new instance the caller must close; otherwise it is an
        alias of an existing stage.
        """

        return self, False

    def set_config(self, key: str, value: Any) -> bool:
        """Apply a parameter to this stage and every nested stage that declares it."""

        accepted = super().set_config(key, value)
        for child in self.children():
            accepted = child.set_config(key, value) or accepted
        return accepted

    def save_state(self, stream: ModelStream) -> None:
        """Write trained state; parameters are carried by :meth:`describe`."""

    def load_state(self, stream: ModelStream) -> None:
        """Restore state written by :meth:`save_state`."""

    def close(self) -> None:
        """Release resources held by the stage."""


@dataclass
class StageHandle:
    """A stage together with whether its holder is responsible for closing it."""

    stage: Stage
    owned: bool = False

    def release(self) -> None:
        if self.owned:
            self.stage.close()


def make_stage(description: str) -> Stage:
    """Instantiate a stage from its description, e.g. ``Resize(8,8)+Gray+Flatten``."""

    from .pipeline import Pipeline

    text = description.strip()
    while is_wrapped(text):
        text = text[1:-1].strip()
    parts = [part.strip() for part in split_top_level(text, "+")]
    if len(parts) > 1:
        return Pipeline([make_stage(part) for part in parts])
    return STAGES.make(text)


def serialize_stage(stage: Stage, stream: ModelStream) -> None:
    stream.write_str(stage.describe())
    stage.save_state(stream)


def deserialize_stage(stream: ModelStream) -> Stage:
    stage = make_stage(stream.read_str())
    stage.load_state(stream)
    return stage


def stage_to_bytes(stage: Stage) -> bytes:
    stream = ModelStream()
    serialize_stage(stage, stream)
    return stream.getvalue()


def stage_from_bytes(blob: bytes) -> Stage:
    return deserialize_stage(ModelStream(io.BytesIO(blob)))


def clone_stage(stage: Stage) -> Stage:
    """Deep copy a stage, including trained state, through its serialized form."""

    return stage_from_bytes(stage_to_bytes(stage))
