"""Triangle buffers for scene geometry and an explicit cache keyed by asset."""

from __future__ import annotations

from collections import OrderedDict
from functools import singledispatch
import math
import threading
from typing import Hashable, Tuple

import numpy as np

from shadow_monster.scene.models import (
    BoxGeometry,
    Geometry,
    MeshGeometry,
    PlaneGeometry,
    Pose,
    SphereGeometry,
)

TriangleBuffers = Tuple[np.ndarray, np.ndarray]


@singledispatch
def build_triangles(geometry: object) -> TriangleBuffers:
    """Return local-space (vertices (V, 3), faces (F, 3)) for a geometry."""
    raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")


@build_triangles.register
def _(geometry: BoxGeometry) -> TriangleBuffers:
    hx, hy, hz = geometry.width / 2.0, geometry.height / 2.0, geometry.length / 2.0
    vertices = np.array(
        [
            [-hx, -hy, -hz],
            [hx, -hy, -hz],
            [hx, hy, -hz],
            [-hx, hy, -hz],
            [-hx, -hy, hz],
            [hx, -hy, hz],
            [hx, hy, hz],
            [-hx, hy, hz],
        ],
        dtype=np.float64,
    )
    faces = np.array(
        [
            [0, 2, 1], [0, 3, 2],  # back
            [4, 5, 6], [4, 6, 7],  # front
            [0, 1, 5], [0, 5, 4],  # bottom
            [3, 7, 6], [3, 6, 2],  # top
            [0, 4, 7], [0, 7, 3],  # left
            [1, 2, 6], [1, 6, 5],  # right
        ],
        dtype=np.int64,
    )
    return vertices, faces


@build_triangles.register
def _(geometry: PlaneGeometry) -> TriangleBuffers:
    hx, hy = geometry.width / 2.0, geometry.height / 2.0
    vertices = np.array(
        [[-hx, -hy, 0.0], [hx, -hy, 0.0], [hx, hy, 0.0], [-hx, hy, 0.0]],
        dtype=np.float64,
    )
    faces = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int64)
    return vertices, faces


@build_triangles.register
def _(geometry: SphereGeometry) -> TriangleBuffers:
    segments = max(3, int(geometry.segments))
    rings = max(2, int(geometry.rings))
    r = geometry.radius

    vertices = [(0.0, r, 0.0)]
    for ring in range(1, rings):
        phi = math.pi * ring / rings
        y = r * math.cos(phi)
        ring_r = r * math.sin(phi)
        for seg in range(segments):
            theta = 2.0 * math.pi * seg / segments
            vertices.append((ring_r * math.cos(theta), y, ring_r * math.sin(theta)))
    vertices.append((0.0, -r, 0.0))
    bottom = len(vertices) - 1

    def ring_index(ring: int, seg: int) -> int:
        return 1 + (ring - 1) * segments + (seg % segments)

    faces = []
    for seg in range(segments):
        faces.append((0, ring_index(1, seg + 1), ring_index(1, seg)))
    for ring in range(1, rings - 1):
        for seg in range(segments):
            a = ring_index(ring, seg)
            b = ring_index(ring, seg + 1)
            c = ring_index(ring + 1, seg + 1)
            d = ring_index(ring + 1, seg)
            faces.append((a, b, c))
            faces.append((a, c, d))
    for seg in range(segments):
        faces.append((bottom, ring_index(rings - 1, seg), ring_index(rings - 1, seg + 1)))

    return np.array(vertices, dtype=np.float64), np.array(faces, dtype=np.int64)


@build_triangles.register
def _(geometry: MeshGeometry) -> TriangleBuffers:
    return geometry.vertices, geometry.faces


def bounding_size(vertices: np.ndarray) -> np.ndarray:
    """Extent (dx, dy, dz) of a vertex buffer."""
    if len(vertices) == 0:
        return np.zeros(3)
    return vertices.max(axis=0) - vertices.min(axis=0)


class GeometryCache:
    """LRU cache of read-only triangle buffers keyed by asset identity.

    Buffers are immutable once cached, so one cache may be shared by
    concurrent render requests.
    """

    def __init__(self, max_entries: int = 128) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, TriangleBuffers]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, geometry: Geometry) -> TriangleBuffers:
        """Return cached buffers for the geometry, building them on a miss."""
        key = geometry.asset_key
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached
            self.misses += 1

        vertices, faces = build_triangles(geometry)
        vertices = np.array(vertices, dtype=np.float64)
        faces = np.array(faces, dtype=np.int64)
        vertices.setflags(write=False)
        faces.setflags(write=False)
        buffers = (vertices, faces)

        with self._lock:
            self._entries[key] = buffers
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return buffers

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0


def world_triangles(
    geometry: Geometry,
    pose: Pose,
    cache: GeometryCache,
) -> np.ndarray:
    """Return world-space triangles (F, 3, 3) for a posed geometry."""
    vertices, faces = cache.get(geometry)
    if len(faces) == 0:
        return np.zeros((0, 3, 3), dtype=np.float64)
    world = pose.apply(vertices)
    return world[faces]
