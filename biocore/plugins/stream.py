# Path: biocore/plugins/stream.py
# Purpose: Binary stream used to serialize plugin state and records.
# Layer: biocore/plugins.
# Details: Length-prefixed big-endian fields; arrays are embedded in numpy's .npy format.

from __future__ import annotations

import io
import json
import struct
from typing import BinaryIO, Optional

import numpy as np

from biocore.errors import ModelFormatError
from biocore.models.domain import Record

_INT32 = struct.Struct(">i")


class ModelStream:
    """Typed reader/writer over a binary file object."""

    def __init__(self, buffer: Optional[BinaryIO] = None) -> None:
        self.buffer = buffer if buffer is not None else io.BytesIO()

    def getvalue(self) -> bytes:
        return self.buffer.getvalue()  # type: ignore[attr-defined]

    def _read_exact(self, size: int) -> bytes:
        data = self.buffer.read(size)
        if len(data) != size:
            raise ModelFormatError(f"Unexpected end of stream: wanted {size} bytes, got {len(data)}")
        return data

    def write_int32(self, value: int) -> None:
        self.buffer.write(_INT32.pack(int(value)))

    def read_int32(self) -> int:
        return _INT32.unpack(self._read_exact(_INT32.size))[0]

    def write_bytes(self, payload: bytes) -> None:
        self.write_int32(len(payload))
        self.buffer.write(payload)

    def read_bytes(self) -> bytes:
        size = self.read_int32()
        if size < 0:
            raise ModelFormatError(f"Negative field length {size}")
        return self._read_exact(size)

    def write_str(self, value: str) -> None:
        self.write_bytes(value.encode("utf-8"))

    def read_str(self) -> str:
        return self.read_bytes().decode("utf-8")

    def write_array(self, array: Optional[np.ndarray]) -> None:
        if array is None:
            self.write_int32(-1)
            return
        payload = io.BytesIO()
        np.save(payload, np.asarray(array), allow_pickle=False)
        self.write_bytes(payload.getvalue())

    def read_array(self) -> Optional[np.ndarray]:
        size = self.read_int32()
        if size < 0:
            return None
        return np.load(io.BytesIO(self._read_exact(size)), allow_pickle=False)

    def write_record(self, record: Record) -> None:
        self.write_str(record.name)
        self.write_str(json.dumps(record.metadata, default=str))
        self.write_array(record.data)

    def read_record(self) -> Record:
        name = self.read_str()
        metadata = json.loads(self.read_str())
        return Record(name=name, metadata=metadata, data=self.read_array())
