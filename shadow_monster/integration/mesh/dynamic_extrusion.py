"""Live extrusion depth changes for already-built solids."""

from __future__ import annotations

import threading
from typing import Dict, Optional, Tuple

from shadow_monster.config import ExtrusionControlConfig
from shadow_monster.integration.mesh.extruder import check_depth
from shadow_monster.integration.mesh.solid import ExtrusionHandle, Solid
from shadow_monster.utils.generation_context import GenerationContext


def rewrite_depth(solid: Solid, depth: float) -> None:
    """Set z of every extruded vertex in ``solid`` (not its parts) to factor * depth."""
    with solid.lock:
        solid.vertices[:, 2] = solid.z_factors * depth
        solid.depth = depth
        solid.revision += 1


class DynamicExtrusionController:
    """Apply depth changes to extruded solids in O(vertex count).

    ``set_depth`` rewrites z coordinates only; topology and the 2D outline
    never change. ``submit``/``flush`` coalesce a stream of control values so
    only the latest value per handle is applied.
    """

    def __init__(
        self,
        config: Optional[ExtrusionControlConfig] = None,
        context: Optional[GenerationContext] = None,
    ) -> None:
        self.config = config or ExtrusionControlConfig()
        self.config.validate()
        self.context = context
        self._pending: Dict[int, Tuple[ExtrusionHandle, float]] = {}
        self._pending_lock = threading.Lock()

    def set_depth(self, handle: ExtrusionHandle, new_depth: float) -> None:
        """
        Change the extrusion depth of a handle's solid and all extruded parts.

        Raises:
            InvalidDepth: new_depth is not finite and strictly positive; the
                solid is left unchanged
        """
        depth = check_depth(new_depth)

        rewritten = 0
        skipped = 0
        for solid in handle.solid.iter_solids():
            if not solid.is_extrusion:
                skipped += 1
                continue
            rewrite_depth(solid, depth)
            rewritten += 1

        if self.context is not None:
            self.context.log(
                "DEBUG",
                "extrusion depth set",
                depth=depth,
                solids=rewritten,
                skipped=skipped,
            )

    def quantize(self, depth: float) -> float:
        """Clamp to the control range and snap to its step."""
        cfg = self.config
        value = min(max(float(depth), cfg.min_depth), cfg.max_depth)
        if cfg.step > 0:
            steps = round((value - cfg.min_depth) / cfg.step)
            value = round(cfg.min_depth + steps * cfg.step, 10)
            value = min(max(value, cfg.min_depth), cfg.max_depth)
        return value

    def submit(self, handle: ExtrusionHandle, depth: float) -> float:
        """Record the latest requested depth for a handle; returns the snapped value."""
        value = self.quantize(check_depth(depth))
        with self._pending_lock:
            self._pending[id(handle)] = (handle, value)
        return value

    def pending(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def flush(self) -> int:
        """Apply the latest submitted depth per handle; returns handles updated."""
        with self._pending_lock:
            batch = list(self._pending.values())
            self._pending.clear()
        for handle, depth in batch:
            self.set_depth(handle, depth)
        return len(batch)
