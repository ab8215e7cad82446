"""Utilities for contour measurement, cleanup and canonical scaling."""

from __future__ import annotations

from typing import List, Tuple

import cv2
import numpy as np


def polygon_area(points: np.ndarray) -> float:
    """Signed shoelace area (positive for counter-clockwise in y-up axes)."""
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 3:
        return 0.0
    x = pts[:, 0]
    y = pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def polygon_perimeter(points: np.ndarray) -> float:
    """Closed arc length of a point loop."""
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.roll(pts, -1, axis=0) - pts, axis=1)))


def area_centroid(points: np.ndarray) -> Tuple[float, float]:
    """
    Centroid of the enclosed area via image moments.

    Falls back to the vertex mean for zero-area loops.
    """
    pts = np.asarray(points, dtype=np.float64)
    M = cv2.moments(pts.astype(np.float32).reshape(-1, 1, 2))
    if abs(M["m00"]) > 1e-12:
        return float(M["m10"] / M["m00"]), float(M["m01"] / M["m00"])
    mean = pts.mean(axis=0)
    return float(mean[0]), float(mean[1])


def _removable(
    a: np.ndarray, b: np.ndarray, c: np.ndarray, eps: float, keep_straight: bool
) -> bool:
    ab = b - a
    bc = c - b
    cross = ab[0] * bc[1] - ab[1] * bc[0]
    if abs(cross) > eps * float(np.linalg.norm(ab) * np.linalg.norm(bc)):
        return False
    # collinear: a straight-through vertex, or a reversal
    return not (keep_straight and float(np.dot(ab, bc)) > 0.0)


def degenerate_free_order(
    points: np.ndarray, eps: float = 1e-9, keep_straight: bool = False
) -> List[int]:
    """
    Indices of the vertices that remain once degenerate ones are removed.

    Pixel-traced borders of one-pixel-wide spurs run out and straight back,
    leaving reversal vertices (a 180 degree turn) and repeated points. Those,
    and straight-through collinear vertices unless ``keep_straight`` is set,
    are removed repeatedly until every remaining vertex is a real corner.
    The enclosed area is unchanged. Fewer than three indices means the loop
    encloses nothing.
    """
    pts = np.asarray(points, dtype=np.float64)

    def same(i: int, j: int) -> bool:
        return bool(np.abs(pts[i] - pts[j]).max() <= eps)

    def removable(i: int, j: int, k: int) -> bool:
        return _removable(pts[i], pts[j], pts[k], eps, keep_straight)

    kept: List[int] = []
    for idx in range(len(pts)):
        if kept and same(kept[-1], idx):
            continue
        kept.append(idx)
        while len(kept) >= 3 and removable(kept[-3], kept[-2], kept[-1]):
            del kept[-2]
            if same(kept[-2], kept[-1]):
                kept.pop()

    # the seam between the last and first vertex
    changed = True
    while changed and len(kept) >= 3:
        changed = False
        if same(kept[-1], kept[0]):
            kept.pop()
            changed = True
        elif removable(kept[-2], kept[-1], kept[0]):
            kept.pop()
            changed = True
        elif removable(kept[-1], kept[0], kept[1]):
            kept.pop(0)
            changed = True
    return kept


def drop_degenerate_vertices(points: np.ndarray, eps: float = 1e-9) -> np.ndarray:
    """Remove repeated, straight-through and reversal vertices from a closed loop."""
    pts = np.asarray(points, dtype=np.float64)
    kept = degenerate_free_order(pts, eps)
    if len(kept) < 3:
        return np.zeros((0, 2), dtype=np.float64)
    return pts[kept]


def ensure_counter_clockwise(points: np.ndarray) -> np.ndarray:
    """Return the loop in counter-clockwise order (y-up axes)."""
    if polygon_area(points) < 0:
        return np.asarray(points)[::-1].copy()
    return np.asarray(points)


def normalize_contour(
    points: np.ndarray,
    centroid: Tuple[float, float],
    scale: float,
) -> np.ndarray:
    """
    Map pixel points (y down) into canonical space (y up).

    Args:
        points: (N, 2) pixel coordinates
        centroid: Pixel-space origin of the canonical frame
        scale: Canonical units per pixel

    Returns:
        (N, 2) canonical coordinates
    """
    pts = np.asarray(points, dtype=np.float64)
    centered = pts - np.asarray(centroid, dtype=np.float64)
    centered[:, 1] = -centered[:, 1]
    return centered * scale


def canonical_frame(
    points: np.ndarray, canonical_extent: float
) -> Tuple[Tuple[float, float], float]:
    """
    Compute the (centroid, scale) frame for a primary contour.

    The scale maps the largest centred coordinate magnitude to
    ``canonical_extent``; it is 0.0 for a degenerate contour.
    """
    centroid = area_centroid(points)
    centered = np.asarray(points, dtype=np.float64) - np.asarray(centroid)
    magnitude = float(np.abs(centered).max()) if centered.size else 0.0
    if magnitude <= 0.0:
        return centroid, 0.0
    return centroid, canonical_extent / magnitude
