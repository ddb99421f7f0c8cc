# Path: biocore/models/domain.py
# Purpose: Define domain models shared across stages, galleries, outputs, and algorithms.
# Layer: biocore/models.
# Details: Record is the unit flowing through pipelines; FileRef names galleries, outputs and models with embedded flags.

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from biocore.plugins.parsing import split_top_level

_TRUE_VALUES = {"true", "1", "yes", "on"}


@dataclass
class Record:
    """A single template: identifier, metadata and an optional feature payload."""

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    data: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def content_hash(self) -> str:
        """Short SHA256 digest over the record name and payload bytes."""

        hasher = hashlib.sha256(self.name.encode("utf-8"))
        if self.data is not None:
            array = np.ascontiguousarray(self.data)
            hasher.update(str(array.dtype).encode("ascii"))
            hasher.update(str(array.shape).encode("ascii"))
            hasher.update(array.tobytes())
        return hasher.hexdigest()[:16]

    def metadata_only(self) -> "Record":
        """Return a copy carrying only name and metadata."""

        return Record(name=self.name, metadata=dict(self.metadata))

    def with_data(self, data: Optional[np.ndarray]) -> "Record":
        """Return a copy with the payload replaced."""

        return Record(name=self.name, metadata=dict(self.metadata), data=data)


@dataclass
class FileRef:
    """Reference to a gallery, output or model file with configuration flags.

    The textual form is ``path[key=value,flag]``; a bare ``flag`` means ``flag=true``.
    """

    name: str = ""
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, value: Union["FileRef", str, Path, None]) -> "FileRef":
        """Build a FileRef from its flat textual form."""

        if isinstance(value, FileRef):
            return value
        if value is None:
            return cls()
        text = str(value).strip()
        params: Dict[str, str] = {}
        if text.endswith("]") and "[" in text:
            start = text.index("[")
            body = text[start + 1 : -1]
            text = text[:start]
            for item in split_top_level(body, ","):
                item = item.strip()
                if not item:
                    continue
                key, sep, raw = item.partition("=")
                params[key.strip()] = raw.strip() if sep else "true"
        return cls(name=text, params=params)

    def flat(self) -> str:
        """Return the textual form accepted by :meth:`parse`."""

        if not self.params:
            return self.name
        args = ",".join(f"{key}={value}" for key, value in self.params.items())
        return f"{self.name}[{args}]"

    @property
    def is_null(self) -> bool:
        return not self.name

    @property
    def path(self) -> Path:
        return Path(self.name)

    @property
    def suffix(self) -> str:
        """Text after the last dot of the final path component, without the dot."""

        tail = self.name.replace("\\", "/").rsplit("/", 1)[-1]
        if "." not in tail:
            return ""
        return tail.rsplit(".", 1)[1]

    @property
    def base_name(self) -> str:
        """Final path component without its suffix."""

        tail = self.name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
        if "." not in tail:
            return tail
        return tail.rsplit(".", 1)[0]

    def contains(self, key: str) -> bool:
        return key in self.params

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.params.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        if key not in self.params:
            return default
        return self.params[key].strip().lower() in _TRUE_VALUES

    def get_float(self, key: str, default: float) -> float:
        if key not in self.params:
            return default
        return float(self.params[key])

    def with_param(self, key: str, value: Any) -> "FileRef":
        """Return a copy with one flag added or replaced."""

        params = dict(self.params)
        params[key] = str(value)
        return FileRef(name=self.name, params=params)

    def content_hash(self) -> str:
        """Short SHA256 digest identifying the referenced content.

        Files hash their bytes, directories hash their listing (path, size, mtime);
        anything else hashes only its name.
        """

        hasher = hashlib.sha256(self.name.encode("utf-8"))
        path = self.path
        if is_existing_file(path):
            with path.open("rb") as stream:
                for chunk in iter(lambda: stream.read(8192), b""):
                    hasher.update(chunk)
        elif is_existing_dir(path):
            for child in sorted(path.rglob("*")):
                if child.is_file():
                    stat = child.stat()
                    hasher.update(f"{child.relative_to(path).as_posix()}:{stat.st_size}:{stat.st_mtime_ns}".encode("utf-8"))
        return hasher.hexdigest()[:16]

    def __str__(self) -> str:
        return self.flat()


def is_existing_file(path: Path) -> bool:
    """Path.is_file that treats unrepresentable names (too long, invalid) as missing."""

    try:
        return path.is_file()
    except (OSError, ValueError):
        return False


def is_existing_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except (OSError, ValueError):
        return False
