# Path: biocore/galleries/base.py
# Purpose: Define the Gallery interface for ordered, block-readable record sets.
# Layer: biocore/galleries.
# Details: Galleries are selected by file suffix; enrolled formats are distinguished from raw inputs.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, List, Tuple, Type, Union

from biocore.errors import GalleryError
from biocore.models.domain import FileRef, Record, is_existing_dir, is_existing_file

# Suffix of the in-memory format kept resident during comparisons.
RESIDENT_SUFFIX = "mem"
# Suffixes whose records already carry enrolled feature payloads.
ENROLLED_SUFFIXES = frozenset({"mem", "gal", "db"})

DEFAULT_BLOCK_SIZE = 256


class Gallery(ABC):
    """Abstract base class for all record-set stores.

    Writing to a gallery instance replaces previous content on the first write unless
    the reference carries the ``append`` flag; later writes on the same instance append.
    """

    suffixes: ClassVar[Tuple[str, ...]] = ()
    readable: ClassVar[bool] = True
    writable: ClassVar[bool] = True

    def __init__(self, file: FileRef, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        self.file = file
        self.block_size = max(1, int(block_size))
        self._written = False

    @abstractmethod
    def read_block(self) -> Tuple[List[Record], bool]:
        """Return the next block of records and whether the gallery is exhausted."""

    @abstractmethod
    def write(self, records: List[Record]) -> None:
        """Append a block of records to the gallery."""

    def read(self) -> List[Record]:
        """Read every record, loading payloads."""

        records: List[Record] = []
        done = False
        while not done:
            block, done = self.read_block()
            records.extend(block)
        return records

    def read_metadata(self) -> List[Record]:
        """Read every record without keeping payloads."""

        return [record.metadata_only() for record in self.read()]

    def total_size(self) -> int:
        """Number of records the gallery will yield."""

        return len(self.read_metadata())

    def close(self) -> None:
        """Release file handles or connections."""

    def _replace_on_first_write(self) -> bool:
        first = not self._written
        self._written = True
        return first and not self.file.get_bool("append")

    def __enter__(self) -> "Gallery":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


_GALLERIES: Dict[str, Type[Gallery]] = {}


def register_gallery(cls: Type[Gallery]) -> Type[Gallery]:
    """Class decorator registering a gallery implementation for its suffixes."""

    for suffix in cls.suffixes:
        _GALLERIES[suffix] = cls
    return cls


def make_gallery(file: Union[FileRef, str], block_size: int = DEFAULT_BLOCK_SIZE) -> Gallery:
    """Instantiate the gallery implementation matching the reference."""

    from .files import DirectoryGallery

    ref = FileRef.parse(file)
    if ref.is_null:
        raise GalleryError("Gallery name is empty")
    suffix = ref.suffix.lower()
    if suffix in _GALLERIES:
        return _GALLERIES[suffix](ref, block_size=block_size)
    if is_existing_dir(ref.path):
        return DirectoryGallery(ref, block_size=block_size)
    raise GalleryError(f"Unrecognized gallery type for '{ref.flat()}'")


def gallery_exists(file: Union[FileRef, str]) -> bool:
    """Return True if the referenced gallery already holds data."""

    from .memory import memory_gallery_exists

    ref = FileRef.parse(file)
    if ref.suffix.lower() == RESIDENT_SUFFIX:
        return memory_gallery_exists(ref.name)
    return is_existing_file(ref.path) or is_existing_dir(ref.path)


def is_enrolled(file: Union[FileRef, str]) -> bool:
    """Return True if the reference names a gallery holding enrolled templates."""

    ref = FileRef.parse(file)
    return not ref.get_bool("enroll") and ref.suffix.lower() in ENROLLED_SUFFIXES


def copy_gallery(source: Union[FileRef, str], destination: Union[FileRef, str], block_size: int = DEFAULT_BLOCK_SIZE) -> int:
    """Copy every record block by block; return the number of records copied."""

    reader = make_gallery(source, block_size=block_size)
    writer = make_gallery(destination, block_size=block_size)
    if not writer.writable:
        raise GalleryError(f"Gallery '{writer.file.flat()}' is read only")
    copied = 0
    try:
        done = False
        while not done:
            block, done = reader.read_block()
            if block:
                writer.write(block)
                copied += len(block)
    finally:
        reader.close()
        writer.close()
    return copied
