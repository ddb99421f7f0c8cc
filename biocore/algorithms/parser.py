# Path: biocore/algorithms/parser.py
# Purpose: Resolve algorithm descriptors into the stages of an AlgorithmCore.
# Layer: biocore/algorithms.
# Details: Model files win over abbreviations, which win over abbreviation[overrides], which win over parsing.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from biocore.distances.base import make_distance
from biocore.errors import DescriptorError
from biocore.models.domain import FileRef, is_existing_file
from biocore.plugins.parsing import split_top_level
from biocore.stages.base import make_stage
from biocore.stages.compare import GalleryCompare

from .core import AlgorithmCore

logger = logging.getLogger(__name__)


def initialize_algorithm(core: AlgorithmCore, description: str) -> None:
    """Populate ``core`` from ``description`` and simplify its enrollment stage."""

    _resolve(core, description, ())
    core.simplify()


def _model_file(core: AlgorithmCore, description: str) -> Path:
    candidate = Path(core.settings.models_dir) / description
    return candidate if is_existing_file(candidate) else Path(description)


def _load_or_expand(core: AlgorithmCore, description: str, expanding: Tuple[str, ...]) -> bool:
    """Load a model file or expand an abbreviation; return False if neither applies."""

    path = _model_file(core, description)
    if is_existing_file(path):
        logger.debug(f"Loading {path.name}")
        core.load(path)
        return True

    abbreviations = core.settings.abbreviations
    if description in abbreviations:
        if description in expanding:
            chain = " -> ".join(expanding + (description,))
            raise DescriptorError(f"Abbreviation cycle while expanding '{expanding[0]}': {chain}")
        _resolve(core, abbreviations[description], expanding + (description,))
        return True
    return False


def _resolve(core: AlgorithmCore, description: str, expanding: Tuple[str, ...]) -> None:
    description = description.strip()
    if not description:
        raise DescriptorError("Empty algorithm description")

    if _load_or_expand(core, description, expanding):
        return

    # A model or abbreviation followed by bracketed configuration overrides.
    parsed = FileRef.parse("." + description)
    if parsed.suffix and _load_or_expand(core, parsed.suffix, expanding):
        stage = core._enrollment_stage()
        for key, value in parsed.params.items():
            if not stage.set_config(key, value):
                logger.warning(f"No stage of '{parsed.suffix}' accepts parameter '{key}'")
        return

    _parse(core, description)


def _parse(core: AlgorithmCore, description: str) -> None:
    separator = "!" if len(split_top_level(description, "!")) > 1 else ":"
    tokens = [token.strip() for token in split_top_level(description, separator)]
    if len(tokens) not in (1, 2) or not all(tokens):
        raise DescriptorError(f"Invalid algorithm '{description}': expected STAGE, STAGE:DISTANCE or STAGE!COMPARE")

    core.stage = make_stage(tokens[0])
    if len(tokens) == 1:
        return
    if separator == "!":
        core.comparison = make_stage(tokens[1])
    else:
        core.distance = make_distance(tokens[1])
        core.comparison = GalleryCompare(distance=core.distance)
