# Path: api/app.py
# Purpose: Expose a FastAPI application for enrollment, comparison and deduplication.
# Layer: api.
# Details: Delegates to biocore.operations using one algorithm registry; biocore errors map to HTTP 400.

from __future__ import annotations

from typing import Any, Dict, Optional

from biocore import operations
from biocore.algorithms.registry import AlgorithmRegistry, get_registry
from biocore.errors import BioCoreError
from biocore.models.domain import FileRef
from biocore.outputs.matrix import read_matrix


def create_app(registry: Optional[AlgorithmRegistry] = None):  # type: ignore[override]
    """Create a FastAPI app instance bound to the provided algorithm registry."""

    from fastapi import FastAPI, HTTPException

    registry = registry if registry is not None else get_registry()
    app = FastAPI(title="biocore API", version="0.1.0")

    def _run(action):
        try:
            return action()
        except BioCoreError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=f"Missing field {exc}") from exc

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.get("/algorithms/{descriptor:path}")
    def describe_algorithm(descriptor: str) -> Dict[str, Any]:
        """Resolve an algorithm and report its structure."""

        core = _run(lambda: registry.get_algorithm(descriptor))
        return {
            "name": core.name,
            "classifier": core.is_classifier(),
            "stage": core.stage.describe() if core.stage is not None else None,
            "distance": core.distance.describe() if core.distance is not None else None,
            "comparison": core.comparison.describe() if core.comparison is not None else None,
        }

    @app.post("/enroll")
    def enroll(payload: Dict[str, Any]):
        """Enroll ``input`` into ``gallery`` (memory when omitted)."""

        written = _run(
            lambda: operations.enroll(
                payload["input"], payload.get("gallery"), algorithm=payload.get("algorithm"), registry=registry
            )
        )
        return {"records": [{"name": record.name, "metadata": record.metadata} for record in written]}

    @app.post("/compare")
    def compare(payload: Dict[str, Any]):
        """Compare ``query`` against ``target``; return the matrix when ``output`` is an .npy file."""

        output = payload.get("output")
        _run(
            lambda: operations.compare(
                payload["target"], payload.get("query", "."), output, algorithm=payload.get("algorithm"), registry=registry
            )
        )
        return _matrix_payload(output)

    @app.post("/pairwise")
    def pairwise(payload: Dict[str, Any]):
        """Compare ``target`` and ``query`` record by record."""

        output = payload.get("output")
        _run(
            lambda: operations.pairwise_compare(
                payload["target"], payload["query"], output, algorithm=payload.get("algorithm"), registry=registry
            )
        )
        return _matrix_payload(output)

    @app.post("/deduplicate")
    def deduplicate(payload: Dict[str, Any]):
        """Write ``input`` without near duplicates to ``output``."""

        kept = _run(
            lambda: operations.deduplicate(
                payload["input"],
                payload["output"],
                payload.get("threshold", 0),
                algorithm=payload.get("algorithm"),
                registry=registry,
            )
        )
        return {"kept": [record.name for record in kept]}

    def _matrix_payload(output: Optional[str]) -> Dict[str, Any]:
        if not output or FileRef.parse(output).suffix.lower() != "npy":
            return {"output": output}
        matrix, targets, queries = _run(lambda: read_matrix(FileRef.parse(output).path))
        return {
            "output": output,
            "scores": matrix.tolist(),
            "targets": [record.name for record in targets],
            "queries": [record.name for record in queries],
        }

    return app
