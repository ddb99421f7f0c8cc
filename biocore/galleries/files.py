# Path: biocore/galleries/files.py
# Purpose: File-backed galleries for enrolled templates and raw image inputs.
# Layer: biocore/galleries.
# Details: .gal stores pickled record blocks; directories and .txt lists expose raw images loaded with Pillow.

from __future__ import annotations

import logging
import pickle
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Tuple

import numpy as np
from PIL import Image

from biocore.errors import GalleryError
from biocore.models.domain import FileRef, Record, is_existing_file

from .base import DEFAULT_BLOCK_SIZE, Gallery, register_gallery

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff", ".pgm", ".ppm"}


def load_image_record(path: Path, name: Optional[str] = None) -> Record:
    """Read an image file into a record whose payload is an RGB uint8 array."""

    with Image.open(path) as image:
        rgb = image.convert("RGB")
        data = np.asarray(rgb, dtype=np.uint8)
    return Record(name=name or str(path), metadata={"path": str(path)}, data=data)


@register_gallery
class FileGallery(Gallery):
    """Enrolled templates stored as a sequence of pickled record blocks (``.gal``)."""

    suffixes = ("gal",)

    def __init__(self, file: FileRef, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        super().__init__(file, block_size)
        self._reader: Optional[BinaryIO] = None
        self._writer: Optional[BinaryIO] = None
        self._pending: List[Record] = []
        self._exhausted = False

    def _load_next(self) -> Optional[List[Record]]:
        if self._reader is None:
            if not is_existing_file(self.file.path):
                self._exhausted = True
                return None
            self._reader = self.file.path.open("rb")
        try:
            return pickle.load(self._reader)
        except EOFError:
            self._exhausted = True
            return None

    def read_block(self) -> Tuple[List[Record], bool]:
        while len(self._pending) < self.block_size and not self._exhausted:
            loaded = self._load_next()
            if loaded:
                self._pending.extend(loaded)
        block = self._pending[: self.block_size]
        self._pending = self._pending[self.block_size :]
        done = self._exhausted and not self._pending
        if done:
            self._close_reader()
        return block, done

    def write(self, records: List[Record]) -> None:
        if self._writer is None:
            mode = "wb" if self._replace_on_first_write() else "ab"
            self.file.path.parent.mkdir(parents=True, exist_ok=True)
            self._writer = self.file.path.open(mode)
        if records:
            pickle.dump(list(records), self._writer, protocol=pickle.HIGHEST_PROTOCOL)
            self._writer.flush()

    def _close_reader(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def close(self) -> None:
        self._close_reader()
        if self._writer is not None:
            self._writer.close()
            self._writer = None


class _ImageListGallery(Gallery):
    """Read-only gallery of raw image files."""

    writable = False

    def __init__(self, file: FileRef, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        super().__init__(file, block_size)
        self._paths: Optional[List[Path]] = None
        self._offset = 0

    def _iter_paths(self) -> Iterable[Path]:
        raise NotImplementedError

    def _all_paths(self) -> List[Path]:
        if self._paths is None:
            self._paths = list(self._iter_paths())
        return self._paths

    def read_block(self) -> Tuple[List[Record], bool]:
        paths = self._all_paths()
        chunk = paths[self._offset : self._offset + self.block_size]
        self._offset += len(chunk)
        records = [load_image_record(path) for path in chunk]
        return records, self._offset >= len(paths)

    def read_metadata(self) -> List[Record]:
        return [Record(name=str(path), metadata={"path": str(path)}) for path in self._all_paths()]

    def total_size(self) -> int:
        return len(self._all_paths())

    def write(self, records: List[Record]) -> None:
        raise GalleryError(f"Gallery '{self.file.flat()}' is read-only")


class DirectoryGallery(_ImageListGallery):
    """Raw images discovered under a directory, in sorted path order."""

    def _iter_paths(self) -> Iterable[Path]:
        recursive = self.file.get_bool("recursive", True)
        pattern = self.file.path.rglob("*") if recursive else self.file.path.glob("*")
        for path in sorted(pattern):
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                yield path


@register_gallery
class ListGallery(_ImageListGallery):
    """Raw images named one per line in a text file (``.txt``); relative paths resolve against the file."""

    suffixes = ("txt",)

    def _iter_paths(self) -> Iterable[Path]:
        if not is_existing_file(self.file.path):
            raise GalleryError(f"Gallery list '{self.file.flat()}' does not exist")
        root = self.file.path.parent
        for line in self.file.path.read_text(encoding="utf-8").splitlines():
            entry = line.strip()
            if not entry or entry.startswith("#"):
                continue
            path = Path(entry)
            yield path if path.is_absolute() else root / path
