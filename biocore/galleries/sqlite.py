# Path: biocore/galleries/sqlite.py
# Purpose: Implement a SQLite-backed gallery for enrolled templates.
# Layer: biocore/galleries.
# Details: One row per record, ordered by insertion; payloads are stored as .npy blobs.

from __future__ import annotations

import io
import json
import sqlite3
from typing import List, Optional, Tuple

import numpy as np

from biocore.models.domain import FileRef, Record, is_existing_file

from .base import DEFAULT_BLOCK_SIZE, Gallery, register_gallery


@register_gallery
class SqliteGallery(Gallery):
    """Gallery stored in a single SQLite file (``.db``).

    The schema is kept intentionally simple:
    - one row per record with its name, JSON metadata and the payload array.
    """

    suffixes = ("db",)

    def __init__(self, file: FileRef, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        super().__init__(file, block_size)
        self._conn: sqlite3.Connection | None = None
        self._offset = 0

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.file.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.file.path)
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    data BLOB
                )
                """
            )
            self._conn.commit()
        return self._conn

    def read_block(self) -> Tuple[List[Record], bool]:
        if not is_existing_file(self.file.path):
            return [], True
        conn = self._connect()
        rows = conn.execute(
            "SELECT name, metadata, data FROM records ORDER BY position LIMIT ? OFFSET ?",
            (self.block_size + 1, self._offset),
        ).fetchall()
        block = rows[: self.block_size]
        self._offset += len(block)
        records = [Record(name=name, metadata=json.loads(meta), data=_decode(data)) for name, meta, data in block]
        return records, len(rows) <= self.block_size

    def read_metadata(self) -> List[Record]:
        if not is_existing_file(self.file.path):
            return []
        rows = self._connect().execute("SELECT name, metadata FROM records ORDER BY position").fetchall()
        return [Record(name=name, metadata=json.loads(meta)) for name, meta in rows]

    def total_size(self) -> int:
        if not is_existing_file(self.file.path):
            return 0
        row = self._connect().execute("SELECT COUNT(*) FROM records").fetchone()
        return int(row[0])

    def write(self, records: List[Record]) -> None:
        conn = self._connect()
        if self._replace_on_first_write():
            conn.execute("DELETE FROM records")
        conn.executemany(
            "INSERT INTO records (name, metadata, data) VALUES (?, ?, ?)",
            [(r.name, json.dumps(r.metadata, default=str), _encode(r.data)) for r in records],
        )
        conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def _encode(data: Optional[np.ndarray]) -> Optional[bytes]:
    if data is None:
        return None
    buffer = io.BytesIO()
    np.save(buffer, np.asarray(data), allow_pickle=False)
    return buffer.getvalue()


def _decode(blob: Optional[bytes]) -> Optional[np.ndarray]:
    if blob is None:
        return None
    return np.load(io.BytesIO(blob), allow_pickle=False)
