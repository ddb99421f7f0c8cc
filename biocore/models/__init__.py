# Path: biocore/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: biocore/models.
# Details: Exposes the dataclasses used across stages, galleries, outputs and algorithms.

from .domain import FileRef, Record, is_existing_dir, is_existing_file

__all__ = ["FileRef", "Record", "is_existing_dir", "is_existing_file"]
