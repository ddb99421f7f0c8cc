# Path: biocore/galleries/__init__.py
# Purpose: Package initializer for gallery interfaces and implementations.
# Layer: biocore/galleries.
# Details: Importing the package registers every suffix-keyed gallery implementation.

from .base import (
    DEFAULT_BLOCK_SIZE,
    ENROLLED_SUFFIXES,
    RESIDENT_SUFFIX,
    Gallery,
    copy_gallery,
    gallery_exists,
    is_enrolled,
    make_gallery,
    register_gallery,
)
from .files import SUPPORTED_EXTENSIONS, DirectoryGallery, FileGallery, ListGallery, load_image_record
from .memory import (
    MemoryGallery,
    clear_memory_galleries,
    drop_memory_gallery,
    memory_gallery_exists,
    populate_lock,
    publish_memory_gallery,
    staging_name,
)
from .sqlite import SqliteGallery

__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "ENROLLED_SUFFIXES",
    "RESIDENT_SUFFIX",
    "SUPPORTED_EXTENSIONS",
    "Gallery",
    "DirectoryGallery",
    "FileGallery",
    "ListGallery",
    "MemoryGallery",
    "SqliteGallery",
    "clear_memory_galleries",
    "copy_gallery",
    "drop_memory_gallery",
    "gallery_exists",
    "is_enrolled",
    "load_image_record",
    "make_gallery",
    "memory_gallery_exists",
    "populate_lock",
    "publish_memory_gallery",
    "staging_name",
    "register_gallery",
]
