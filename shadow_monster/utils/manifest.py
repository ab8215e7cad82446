"""Manifest helpers for tagging exported objects and recording run metadata."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shadow_monster.utils.generation_context import GenerationContext, SCHEMA_VERSION

if TYPE_CHECKING:
    from shadow_monster.integration.mesh.solid import Solid


def _safe_json(value: Any) -> Any:
    """Ensure value is JSON-serializable; fallback to string."""
    try:
        json.dumps(value)
        return value
    except TypeError:
        return str(value)


def apply_object_tags(
    obj: Any,
    role: str,
    context: GenerationContext,
    index: Optional[int] = None,
    params: Optional[Dict[str, Any]] = None,
) -> None:
    """Attach monster metadata tags to an object supporting item assignment."""
    if obj is None:
        return

    obj["monster_schema"] = SCHEMA_VERSION
    obj["monster_run_id"] = context.run_id
    obj["monster_role"] = role
    if index is not None:
        obj["monster_index"] = int(index)
    if params is not None:
        obj["monster_params"] = _safe_json(params)


def describe_solid(solid: "Solid") -> Dict[str, Any]:
    """
    Summarize a generated solid for the manifest.

    Counts cover the solid and every part; ``bounds`` is the axis-aligned
    box around all of them in canonical units.
    """
    solids = list(solid.iter_solids())
    low, high = solid.bounds()
    return {
        "name": solid.name,
        "depth": solid.depth,
        "parts": len(solids) - 1,
        "vertices": sum(part.vertex_count for part in solids),
        "faces": sum(part.face_count for part in solids),
        "bounds": {"min": [float(v) for v in low], "max": [float(v) for v in high]},
        "revision": solid.revision,
    }


def build_manifest(
    context: GenerationContext,
    outputs: Optional[Dict[str, Any]] = None,
    warnings: Optional[List[str]] = None,
    errors: Optional[List[str]] = None,
    monster: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the run manifest payload.

    ``stage_outputs`` repeats what each stage recorded through the context,
    keyed by stage name; ``monster`` is present once a solid exists.
    """
    manifest = {
        "manifest_version": context.schema_version,
        "run_id": context.run_id,
        "created_utc": context.created_utc or datetime.now(timezone.utc).isoformat(),
        "context": context.to_dict(),
        "stages": [stage.to_dict() for stage in context.stages],
        "stage_outputs": {
            stage: {key: _safe_json(val) for key, val in values.items()}
            for stage, values in context.stage_outputs().items()
        },
        "total_elapsed_ms": context.total_elapsed_ms(),
        "outputs": {key: _safe_json(val) for key, val in (outputs or {}).items()},
        "warnings": warnings or [],
        "errors": errors or [],
    }
    if monster is not None:
        manifest["monster"] = {key: _safe_json(val) for key, val in monster.items()}
    return manifest
