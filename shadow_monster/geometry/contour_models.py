"""Data models for traced shadow contours and canonical polygons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from shadow_monster.geometry.contour_utils import polygon_area, polygon_perimeter


def _frozen_points(points: np.ndarray) -> np.ndarray:
    arr = np.array(points, dtype=np.float64, copy=True)
    if arr.ndim == 3 and arr.shape[1] == 1:
        arr = arr.reshape(-1, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"points must be (N, 2), got {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Contour:
    """Closed boundary in mask-pixel space (x right, y down).

    The loop is implicitly closed: the last point connects back to the first
    and the closing duplicate is never stored.
    """

    points: np.ndarray  # (N, 2) pixel coordinates
    index: int = 0  # discovery order in the raster scan
    is_hole: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", _frozen_points(self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def area(self) -> float:
        """Enclosed (unsigned) area in square pixels."""
        return abs(polygon_area(self.points))

    @property
    def perimeter(self) -> float:
        """Closed arc length in pixels."""
        return polygon_perimeter(self.points)

    def scaled(self, factor: float) -> "Contour":
        """Copy with every point multiplied by ``factor``."""
        return Contour(self.points * factor, index=self.index, is_hole=self.is_hole)


@dataclass(frozen=True)
class ContourSet:
    """Ordered contours traced from one mask; none has fewer than 3 points."""

    contours: Tuple[Contour, ...] = ()

    def __post_init__(self) -> None:
        contours = tuple(self.contours)
        for contour in contours:
            if len(contour) < 3:
                raise ValueError("ContourSet contours must have at least 3 points")
        object.__setattr__(self, "contours", contours)

    def __len__(self) -> int:
        return len(self.contours)

    def __iter__(self) -> Iterator[Contour]:
        return iter(self.contours)

    def __getitem__(self, idx: int) -> Contour:
        return self.contours[idx]

    @property
    def is_empty(self) -> bool:
        return not self.contours

    def outer(self) -> Tuple[Contour, ...]:
        """Contours that bound shadow regions (not holes)."""
        return tuple(c for c in self.contours if not c.is_hole)


@dataclass(frozen=True, eq=False)
class CanonicalPolygon:
    """Contour remapped to resolution-independent canonical space.

    Points are centred on the source centroid, y points up, orientation is
    counter-clockwise, and the largest coordinate magnitude of the primary
    silhouette equals ``extent``. ``source_centroid`` and ``source_scale``
    map back to pixels: ``px = centroid + (x, -y) / scale``.
    """

    points: np.ndarray
    extent: float
    source_centroid: Tuple[float, float] = (0.0, 0.0)
    source_scale: float = 1.0
    source_index: Optional[int] = None

    def __post_init__(self) -> None:
        points = _frozen_points(self.points)
        if len(points) < 3:
            raise ValueError("CanonicalPolygon needs at least 3 points")
        if self.extent <= 0 or self.source_scale <= 0:
            raise ValueError("extent and source_scale must be > 0")
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def edge_count(self) -> int:
        return len(self.points)

    @property
    def area(self) -> float:
        return polygon_area(self.points)

    def max_magnitude(self) -> float:
        return float(np.abs(self.points).max())

    def to_pixels(self, points: Optional[Sequence[Sequence[float]]] = None) -> np.ndarray:
        """Map canonical points (default: this polygon) back to mask pixels."""
        pts = self.points if points is None else np.asarray(points, dtype=np.float64)
        flipped = np.column_stack([pts[:, 0], -pts[:, 1]])
        return flipped / self.source_scale + np.asarray(self.source_centroid)
