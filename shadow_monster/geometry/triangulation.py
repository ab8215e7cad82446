"""Ear-clipping triangulation for simple polygons."""

from __future__ import annotations

import numpy as np

from shadow_monster.geometry.contour_utils import degenerate_free_order, polygon_area

_REL_EPS = 1e-10


def _cross(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    return float((b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0]))


def _between(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> bool:
    """True if collinear b lies strictly between a and c (not a reversal)."""
    return float(np.dot(a - b, c - b)) < 0.0


def _blocks_ear(tri: np.ndarray, candidates: np.ndarray, tol: float) -> bool:
    """True if any candidate lies inside or on the CCW triangle.

    Candidates sitting exactly on one of the triangle's corners are ignored.
    """
    if len(candidates) == 0:
        return False
    a, b, c = tri
    px = candidates[:, 0]
    py = candidates[:, 1]
    d1 = (b[0] - a[0]) * (py - a[1]) - (b[1] - a[1]) * (px - a[0])
    d2 = (c[0] - b[0]) * (py - b[1]) - (c[1] - b[1]) * (px - b[0])
    d3 = (a[0] - c[0]) * (py - c[1]) - (a[1] - c[1]) * (px - c[0])
    inside = (d1 >= -tol) & (d2 >= -tol) & (d3 >= -tol)
    if not inside.any():
        return False
    at_corner = np.zeros(len(candidates), dtype=bool)
    for corner in (a, b, c):
        at_corner |= np.all(np.abs(candidates - corner) <= 1e-12, axis=1)
    return bool(np.any(inside & ~at_corner))


def triangulate_polygon(points: np.ndarray) -> np.ndarray:
    """
    Triangulate a simple polygon using ear clipping.

    A collinear vertex lying between its neighbours is clipped as a
    zero-area ear, so clean outlines yield exactly ``n - 2`` triangles.
    Reversal vertices (spurs that run out and straight back) and repeated
    points enclose nothing and are dropped without a triangle. No emitted
    triangle is ever clockwise.

    Args:
        points: (N, 2) polygon vertices in order (either orientation)

    Returns:
        (M, 3) int array of vertex indices wound counter-clockwise, M <= N - 2
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    if n < 3:
        return np.zeros((0, 3), dtype=np.int64)

    span = float(np.ptp(pts, axis=0).max())
    tol = _REL_EPS * max(span * span, 1e-300)

    # spurs and repeated points first, so no ear is cut along a spur
    order = degenerate_free_order(pts, keep_straight=True)
    if len(order) < 3:
        return np.zeros((0, 3), dtype=np.int64)
    if polygon_area(pts[order]) < 0:
        order.reverse()

    triangles = []
    remaining = order
    cursor = 0
    while len(remaining) > 3:
        count = len(remaining)
        rem = np.asarray(remaining)
        clipped = False
        best_pos = -1
        best_cross = tol

        for step in range(count):
            pos = (cursor + step) % count
            i_prev = remaining[pos - 1]
            i_cur = remaining[pos]
            i_next = remaining[(pos + 1) % count]
            a, b, c = pts[i_prev], pts[i_cur], pts[i_next]
            cross = _cross(a, b, c)

            if abs(cross) <= tol:
                if _between(a, b, c):
                    triangles.append((i_prev, i_cur, i_next))
                del remaining[pos]
                cursor = (pos - 1) % len(remaining)
                clipped = True
                break
            if cross < 0:
                continue

            if cross > best_cross:
                best_cross = cross
                best_pos = pos

            keep = np.ones(count, dtype=bool)
            keep[[pos - 1, pos, (pos + 1) % count]] = False
            if not _blocks_ear(pts[[i_prev, i_cur, i_next]], pts[rem[keep]], tol):
                triangles.append((i_prev, i_cur, i_next))
                del remaining[pos]
                cursor = (pos - 1) % len(remaining)
                clipped = True
                break

        if clipped:
            continue
        if best_pos < 0:
            # nothing convex is left: the rest encloses no area
            remaining = []
            break
        # self-touching input: clip the most convex corner
        pos = best_pos
        triangles.append(
            (remaining[pos - 1], remaining[pos], remaining[(pos + 1) % count])
        )
        del remaining[pos]
        cursor = (pos - 1) % len(remaining)

    if len(remaining) == 3:
        a, b, c = (pts[i] for i in remaining)
        cross = _cross(a, b, c)
        if cross > tol or (abs(cross) <= tol and _between(a, b, c)):
            triangles.append(tuple(remaining))

    if not triangles:
        return np.zeros((0, 3), dtype=np.int64)
    return np.asarray(triangles, dtype=np.int64)
