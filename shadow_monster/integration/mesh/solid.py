"""Mutable triangle solids and the handle used to re-extrude them."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Iterator, List, Optional, Tuple

import numpy as np

from shadow_monster.geometry.contour_models import CanonicalPolygon


def face_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Unit normals (F, 3) for triangle faces; degenerate faces get zeros."""
    if len(faces) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    tri = vertices[faces]
    raw = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
    length = np.linalg.norm(raw, axis=1)
    out = np.zeros_like(raw)
    ok = length > 1e-12
    out[ok] = raw[ok] / length[ok, None]
    return out


def _vertex_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    normals = np.zeros_like(vertices)
    if len(faces):
        per_face = face_normals(vertices, faces)
        for corner in range(3):
            np.add.at(normals, faces[:, corner], per_face)
    length = np.linalg.norm(normals, axis=1)
    ok = length > 1e-12
    normals[ok] /= length[ok, None]
    return normals


class Solid:
    """Triangle mesh with optional child parts.

    Extruded solids carry ``z_factors``: each vertex's z coordinate is
    ``z_factor * depth``, which lets a depth change rewrite z alone. Solids
    without z factors (decorative parts) are never touched by a depth change.
    ``lock`` guards vertex writes and consistent reads of this solid only.
    """

    def __init__(
        self,
        vertices: np.ndarray,
        faces: np.ndarray,
        normals: Optional[np.ndarray] = None,
        *,
        name: str = "Monster",
        z_factors: Optional[np.ndarray] = None,
        depth: Optional[float] = None,
    ) -> None:
        self.vertices = np.array(vertices, dtype=np.float64, copy=True).reshape(-1, 3)
        self.faces = np.array(faces, dtype=np.int64, copy=True).reshape(-1, 3)
        if len(self.faces) and (
            self.faces.min() < 0 or self.faces.max() >= len(self.vertices)
        ):
            raise ValueError("face index out of range")
        if normals is None:
            normals = _vertex_normals(self.vertices, self.faces)
        self.normals = np.array(normals, dtype=np.float64, copy=True).reshape(-1, 3)
        if z_factors is not None:
            z_factors = np.array(z_factors, dtype=np.float64, copy=True)
            if z_factors.shape != (len(self.vertices),):
                raise ValueError("z_factors must have one entry per vertex")
            z_factors.setflags(write=False)
        self.z_factors = z_factors
        self.depth = depth
        self.name = name
        self.parts: List["Solid"] = []
        self.revision = 0
        self.lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"Solid(name={self.name!r}, vertices={len(self.vertices)}, "
            f"faces={len(self.faces)}, depth={self.depth}, parts={len(self.parts)})"
        )

    @property
    def is_extrusion(self) -> bool:
        return self.z_factors is not None

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    def add_part(self, part: "Solid") -> "Solid":
        self.parts.append(part)
        return part

    def iter_solids(self) -> Iterator["Solid"]:
        """Yield this solid and every descendant part, depth first.

        Uses an explicit stack so arbitrarily deep part chains are safe.
        """
        stack = [self]
        seen = set()
        while stack:
            solid = stack.pop()
            if id(solid) in seen:
                continue
            seen.add(id(solid))
            yield solid
            stack.extend(reversed(solid.parts))

    def read_geometry(self) -> Tuple[np.ndarray, np.ndarray]:
        """Consistent (vertices, faces) copies taken under the solid's lock."""
        with self.lock:
            return self.vertices.copy(), self.faces.copy()

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned (min, max) over this solid and all of its parts."""
        chunks = []
        for solid in self.iter_solids():
            vertices, _ = solid.read_geometry()
            if len(vertices):
                chunks.append(vertices)
        if not chunks:
            zero = np.zeros(3, dtype=np.float64)
            return zero, zero.copy()
        stacked = np.concatenate(chunks)
        return stacked.min(axis=0), stacked.max(axis=0)


@dataclass(frozen=True, eq=False)
class ExtrusionHandle:
    """Reference to an extruded Solid and the polygon it was built from."""

    solid: Solid
    polygon: CanonicalPolygon

    @property
    def depth(self) -> Optional[float]:
        return self.solid.depth
