# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes model lookup paths, algorithm abbreviations, parallelism and streaming parameters.

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "BIOCORE_"


class AppSettings(BaseModel):
    """Top-level settings shared by the algorithm registry, operations and interfaces."""

    models_dir: Path = Field(
        default=Path("share/models/algorithms"),
        description="Directory searched for trained model files named by an algorithm descriptor.",
    )
    abbreviations: Dict[str, str] = Field(
        default_factory=dict,
        description="Short algorithm names mapped to the descriptors they expand to.",
    )
    default_algorithm: str = Field(default="", description="Algorithm used when an operation names none.")
    multi_process: bool = Field(default=False, description="Run enrollment and comparison in worker processes.")
    processes: int = Field(default=max(1, os.cpu_count() or 1), ge=1, description="Worker process count.")
    parallelism: int = Field(default=1, ge=1, description="Threads used to distribute enrollment of independent records.")
    block_size: int = Field(default=256, ge=1, description="Records read per gallery block while streaming.")
    cross_validate: int = Field(default=0, ge=0, description="Cross validation fold count; 0 disables it.")
    show_progress: bool = Field(default=True, description="Display progress bars for long running operations.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        """Instantiate settings from ``BIOCORE_*`` environment variables when available.

        ``BIOCORE_ABBREVIATIONS`` holds a JSON object; every other variable holds the
        plain value of the field of the same upper-cased name.
        """

        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None:
                continue
            values[name] = json.loads(raw) if name == "abbreviations" else raw
        return cls.model_validate(values)

    @classmethod
    def from_file(cls, path: Path | str) -> "AppSettings":
        """Load settings from a JSON document."""

        cfg_path = Path(path)
        payload = json.loads(cfg_path.read_text(encoding="utf-8"))
        return cls.model_validate(payload)


__all__ = ["AppSettings", "ENV_PREFIX"]
