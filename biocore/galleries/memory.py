# Path: biocore/galleries/memory.py
# Purpose: Provide the process-wide in-memory gallery used for resident and cached record sets.
# Layer: biocore/galleries.
# Details: Contents are keyed by gallery name and live until explicitly dropped or cleared.

from __future__ import annotations

import threading
import uuid
from typing import Dict, List, Tuple

from biocore.models.domain import FileRef, Record

from .base import DEFAULT_BLOCK_SIZE, RESIDENT_SUFFIX, Gallery, register_gallery

_STORE: Dict[str, List[Record]] = {}
_STORE_LOCK = threading.Lock()
_POPULATE_LOCKS: Dict[str, threading.Lock] = {}


def memory_gallery_exists(name: str) -> bool:
    with _STORE_LOCK:
        return bool(_STORE.get(name))


def drop_memory_gallery(name: str) -> None:
    with _STORE_LOCK:
        _STORE.pop(name, None)


def populate_lock(name: str) -> threading.Lock:
    """Lock held while one memory gallery is being checked and filled."""

    with _STORE_LOCK:
        return _POPULATE_LOCKS.setdefault(name, threading.Lock())


def staging_name(name: str) -> str:
    """Private memory gallery name to fill before :func:`publish_memory_gallery`."""

    return f"{name}.{uuid.uuid4().hex}.{RESIDENT_SUFFIX}"


def publish_memory_gallery(staging: str, name: str) -> None:
    """Move a completely written staging gallery to ``name`` in one step."""

    with _STORE_LOCK:
        _STORE[name] = _STORE.pop(staging, [])


def clear_memory_galleries() -> None:
    """Forget every memory gallery in this process."""

    with _STORE_LOCK:
        _STORE.clear()


@register_gallery
class MemoryGallery(Gallery):
    """Gallery held fully in process memory (``.mem``)."""

    suffixes = ("mem",)

    def __init__(self, file: FileRef, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        super().__init__(file, block_size)
        self._offset = 0

    def _snapshot(self) -> List[Record]:
        with _STORE_LOCK:
            return list(_STORE.get(self.file.name, []))

    def read_block(self) -> Tuple[List[Record], bool]:
        records = self._snapshot()
        block = records[self._offset : self._offset + self.block_size]
        self._offset += len(block)
        return block, self._offset >= len(records)

    def read(self) -> List[Record]:
        return self._snapshot()

    def total_size(self) -> int:
        with _STORE_LOCK:
            return len(_STORE.get(self.file.name, []))

    def write(self, records: List[Record]) -> None:
        replace = self._replace_on_first_write()
        with _STORE_LOCK:
            if replace:
                _STORE[self.file.name] = []
            _STORE.setdefault(self.file.name, []).extend(records)
