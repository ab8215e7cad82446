"""Prism extrusion of canonical polygons into solids."""

from __future__ import annotations

import math
import numbers
from typing import Optional, Sequence, Tuple

import numpy as np

from shadow_monster.config import ExtrudeConfig
from shadow_monster.errors import InvalidDepth
from shadow_monster.geometry.contour_models import CanonicalPolygon
from shadow_monster.geometry.contour_utils import ensure_counter_clockwise
from shadow_monster.geometry.triangulation import triangulate_polygon
from shadow_monster.integration.mesh.solid import ExtrusionHandle, Solid
from shadow_monster.utils.generation_context import GenerationContext

# Side wall quad corners: front_i, front_j, back_j, back_i
_SIDE_Z_FACTORS = np.array([0.5, 0.5, -0.5, -0.5], dtype=np.float64)


def check_depth(depth: object) -> float:
    """Return depth as float, raising InvalidDepth unless finite and > 0."""
    if isinstance(depth, bool) or not isinstance(depth, numbers.Real):
        raise InvalidDepth(depth)
    value = float(depth)
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidDepth(depth)
    return value


def prism_layout(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Build the depth-independent layout of a centred prism.

    Vertex order is ``[front cap n][back cap n][side walls 4n]``. Each side
    wall owns four vertices so its normal stays flat.

    Args:
        points: (N, 2) counter-clockwise polygon

    Returns:
        (xy (V, 2), z_factors (V,), faces (F, 3), normals (V, 3))
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    nxt = np.roll(np.arange(n), -1)

    side_xy = np.stack([pts, pts[nxt], pts[nxt], pts], axis=1).reshape(-1, 2)
    xy = np.concatenate([pts, pts, side_xy])
    z_factors = np.concatenate(
        [np.full(n, 0.5), np.full(n, -0.5), np.tile(_SIDE_Z_FACTORS, n)]
    )

    cap = triangulate_polygon(pts)
    front = cap
    back = cap[:, ::-1] + n
    base = 2 * n + 4 * np.arange(n)
    a, b, c, d = base, base + 1, base + 2, base + 3
    sides = np.concatenate(
        [np.stack([a, d, c], axis=1), np.stack([a, c, b], axis=1)]
    )
    # interleave so the two triangles of each wall stay adjacent
    sides = sides.reshape(2, n, 3).transpose(1, 0, 2).reshape(-1, 3)
    faces = np.concatenate([front, back, sides]).astype(np.int64)

    edge = pts[nxt] - pts
    outward = np.column_stack([edge[:, 1], -edge[:, 0], np.zeros(n)])
    length = np.linalg.norm(outward, axis=1)
    ok = length > 1e-12
    outward[ok] /= length[ok, None]
    normals = np.concatenate(
        [
            np.tile([0.0, 0.0, 1.0], (n, 1)),
            np.tile([0.0, 0.0, -1.0], (n, 1)),
            np.repeat(outward, 4, axis=0),
        ]
    )
    return xy, z_factors, faces, normals


class MeshExtruder:
    """Extrude canonical polygons into prisms centred on z = 0."""

    def __init__(
        self,
        config: Optional[ExtrudeConfig] = None,
        context: Optional[GenerationContext] = None,
    ) -> None:
        self.config = config or ExtrudeConfig()
        self.config.validate()
        self.context = context

    def build_solid(
        self, polygon: CanonicalPolygon, depth: float, name: str = "Monster"
    ) -> Solid:
        depth = check_depth(depth)
        points = ensure_counter_clockwise(polygon.points)
        xy, z_factors, faces, normals = prism_layout(points)
        vertices = np.column_stack([xy, z_factors * depth])
        return Solid(
            vertices,
            faces,
            normals,
            name=name,
            z_factors=z_factors,
            depth=depth,
        )

    def extrude(
        self, polygon: CanonicalPolygon, depth: Optional[float] = None
    ) -> Tuple[Solid, ExtrusionHandle]:
        """
        Extrude a polygon along z into a closed prism.

        Args:
            polygon: Canonical polygon (simple, counter-clockwise)
            depth: Extrusion depth; defaults to the configured initial depth

        Returns:
            (solid, handle) where the handle drives later depth changes

        Raises:
            InvalidDepth: depth is not finite and strictly positive
        """
        if depth is None:
            depth = self.config.initial_depth
        solid = self.build_solid(polygon, depth)
        if self.context is not None:
            self.context.log(
                "INFO",
                "polygon extruded",
                depth=solid.depth,
                vertices=solid.vertex_count,
                faces=solid.face_count,
            )
        return solid, ExtrusionHandle(solid=solid, polygon=polygon)

    def extrude_parts(
        self,
        primary: CanonicalPolygon,
        secondaries: Sequence[CanonicalPolygon] = (),
        depth: Optional[float] = None,
    ) -> Tuple[Solid, ExtrusionHandle]:
        """Extrude a primary polygon with secondary outlines as child parts."""
        solid, handle = self.extrude(primary, depth)
        for idx, polygon in enumerate(secondaries):
            solid.add_part(
                self.build_solid(polygon, solid.depth, name=f"{solid.name}.part{idx}")
            )
        if secondaries and self.context is not None:
            self.context.log("INFO", "compound solid built", parts=len(secondaries))
        return solid, handle
