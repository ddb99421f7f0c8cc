# Path: biocore/algorithms/stages.py
# Purpose: Provide the stage that embeds another registered algorithm's enrollment stage.
# Layer: biocore/algorithms.
# Details: The referenced algorithm is resolved through the registry currently building, or the default one.

from __future__ import annotations

from typing import List, Optional, Tuple

from biocore.errors import NullStageError
from biocore.models.domain import Record
from biocore.plugins.stream import ModelStream
from biocore.stages.base import STAGES, Stage, clone_stage, deserialize_stage, serialize_stage


@STAGES.register("Algorithm")
class AlgorithmStage(Stage):
    """Run the enrollment stage of the algorithm named ``algorithm``.

    The shared stage of the referenced algorithm is borrowed; training works on a
    private copy so the shared instance stays untouched.
    """

    params = ("algorithm",)

    def __init__(self, algorithm: str = "") -> None:
        self.algorithm = str(algorithm).strip()
        if not self.algorithm:
            raise ValueError("Algorithm stage requires an algorithm name")
        self._inner: Optional[Stage] = None
        self._owned = False

    @property
    def inner(self) -> Stage:
        if self._inner is None:
            from .registry import current_registry

            core = current_registry().get_algorithm(self.algorithm)
            if core.stage is None:
                raise NullStageError(f"Algorithm '{self.algorithm}' has no enrollment stage")
            self._inner = core.stage
        return self._inner

    def project(self, records: List[Record]) -> List[Record]:
        return self.inner.project(records)

    def train(self, records: List[Record]) -> None:
        if not self._owned:
            self._inner = clone_stage(self.inner)
            self._owned = True
        self.inner.train(records)

    def simplify(self) -> Tuple[Stage, bool]:
        return self.inner, False

    def set_config(self, key, value) -> bool:
        if key == "algorithm":
            self.close()
            self.algorithm = str(value).strip()
            self._inner = None
            return True
        return False

    def save_state(self, stream: ModelStream) -> None:
        serialize_stage(self.inner, stream)

    def load_state(self, stream: ModelStream) -> None:
        self.close()
        self._inner = deserialize_stage(stream)
        self._owned = True

    def close(self) -> None:
        if self._owned and self._inner is not None:
            self._inner.close()
            self._inner = None
            self._owned = False
