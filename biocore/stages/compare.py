# Path: biocore/stages/compare.py
# Purpose: Provide the stage that scores incoming records against a resident gallery.
# Layer: biocore/stages.
# Details: Output records carry one float32 score per resident record, in resident order.

from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

import numpy as np

from biocore.distances.base import Distance, deserialize_distance, make_distance, serialize_distance
from biocore.galleries.base import make_gallery
from biocore.models.domain import Record
from biocore.plugins.parsing import format_value
from biocore.plugins.stream import ModelStream

from .base import STAGES, Stage

logger = logging.getLogger(__name__)


@STAGES.register("GalleryCompare")
class GalleryCompare(Stage):
    """Compare each incoming record with every record of a resident gallery.

    Training stores the training records as the gallery. When ``gallery_name`` is set
    and nothing was trained, the gallery is read from that reference on first use.
    ``transposed`` swaps the roles handed to the distance: incoming records become
    the targets and gallery records the queries.
    """

    params = ("distance", "gallery_name", "transposed")

    def __init__(
        self,
        distance: Union[str, Distance] = "L2",
        gallery_name: str = "",
        transposed: bool = False,
    ) -> None:
        self.distance = make_distance(distance) if isinstance(distance, str) else distance
        self.gallery_name = str(gallery_name)
        self.transposed = bool(transposed)
        self.gallery: Optional[List[Record]] = None

    def set_config(self, key: str, value: Any) -> bool:
        if key == "distance":
            self.distance = make_distance(str(value)) if not isinstance(value, Distance) else value
            return True
        accepted = super().set_config(key, value)
        if key == "gallery_name":
            self.gallery_name = "" if value is None else str(value)
        return accepted

    def describe(self) -> str:
        return (
            f"GalleryCompare(distance={self.distance.describe()},"
            f"gallery_name={self.gallery_name},transposed={format_value(self.transposed)})"
        )

    def train(self, records: List[Record]) -> None:
        self.gallery = list(records)

    def _resident(self) -> List[Record]:
        if self.gallery is None:
            if self.gallery_name:
                logger.debug(f"Loading comparison gallery {self.gallery_name}")
                gallery = make_gallery(self.gallery_name)
                try:
                    self.gallery = gallery.read()
                finally:
                    gallery.close()
            else:
                self.gallery = []
        return self.gallery

    def project(self, records: List[Record]) -> List[Record]:
        resident = self._resident()
        output: List[Record] = []
        for record in records:
            if self.transposed:
                scores = [self.distance.compare(record, other) for other in resident]
            else:
                scores = [self.distance.compare(other, record) for other in resident]
            output.append(record.with_data(np.asarray(scores, dtype=np.float32)))
        return output

    def save_state(self, stream: ModelStream) -> None:
        serialize_distance(self.distance, stream)
        records = self.gallery or []
        stream.write_int32(len(records) if self.gallery is not None else -1)
        for record in records:
            stream.write_record(record)

    def load_state(self, stream: ModelStream) -> None:
        self.distance = deserialize_distance(stream)
        count = stream.read_int32()
        self.gallery = None if count < 0 else [stream.read_record() for _ in range(count)]
