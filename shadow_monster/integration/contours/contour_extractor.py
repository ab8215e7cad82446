"""Contour tracing for rendered shadow masks."""

from __future__ import annotations

from typing import List, Optional

import cv2
import numpy as np

from shadow_monster.config import ContourExtractConfig
from shadow_monster.geometry.contour_models import Contour, ContourSet
from shadow_monster.geometry.mask import Mask
from shadow_monster.utils.generation_context import GenerationContext


_MODE_MAP = {
    "external": cv2.RETR_EXTERNAL,
    "ccomp": cv2.RETR_CCOMP,
    "list": cv2.RETR_LIST,
    "tree": cv2.RETR_TREE,
}

_CHAIN_MAP = {
    "none": cv2.CHAIN_APPROX_NONE,
    "simple": cv2.CHAIN_APPROX_SIMPLE,
}


def _kernel_for(size: int) -> Optional[np.ndarray]:
    if size <= 0:
        return None
    k = max(3, int(size))
    if k % 2 == 0:
        k += 1
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (k, k))


def _nesting_depths(hierarchy: Optional[np.ndarray], count: int) -> List[int]:
    """Depth of each contour in the retrieval hierarchy (0 = outermost)."""
    if hierarchy is None or count == 0:
        return [0] * count
    parents = hierarchy.reshape(-1, 4)[:, 3]
    depths = [-1] * count
    for idx in range(count):
        chain = []
        cur = idx
        while cur != -1 and depths[cur] < 0:
            chain.append(cur)
            cur = int(parents[cur])
        base = depths[cur] if cur != -1 else -1
        for node in reversed(chain):
            base += 1
            depths[node] = base
    return depths


def _raster_order(raw) -> List[int]:
    """Contour positions sorted by where the raster scan first met them.

    findContours starts each border at the first pixel the row-major scan
    hits, but does not return borders in that order.
    """
    def start(idx: int):
        x, y = raw[idx][0][0]
        return (int(y), int(x), idx)

    return sorted(range(len(raw)), key=start)


def binary_shadow(mask: Mask, threshold: int) -> np.ndarray:
    """Foreground image (255 = shadow) for pixels at or below ``threshold``."""
    _, binary = cv2.threshold(
        np.ascontiguousarray(mask.pixels), threshold, 255, cv2.THRESH_BINARY_INV
    )
    return binary


class ContourExtractor:
    """Trace shadow boundaries in a Mask into an ordered ContourSet."""

    def __init__(
        self,
        config: Optional[ContourExtractConfig] = None,
        context: Optional[GenerationContext] = None,
    ) -> None:
        self.config = config or ContourExtractConfig()
        self.config.validate()
        self.context = context

    def extract(self, mask: Mask, threshold: Optional[int] = None) -> ContourSet:
        """
        Trace closed contours around shadow regions.

        Args:
            mask: Rendered shadow mask
            threshold: Pixels at or below this value are shadow; defaults to
                the configured threshold

        Returns:
            ContourSet ordered by decreasing perimeter, ties in raster
            discovery order. Empty when the mask has no shadow.

        Raises:
            ValueError: threshold outside [0, 255]
        """
        if threshold is None:
            threshold = self.config.threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, np.integer)):
            raise ValueError(f"threshold must be an int, got {threshold!r}")
        if not (0 <= threshold <= 255):
            raise ValueError(f"threshold must be in [0, 255], got {threshold}")

        binary = binary_shadow(mask, int(threshold))

        close_kernel = _kernel_for(self.config.morph_close_px)
        if close_kernel is not None:
            binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, close_kernel)
        open_kernel = _kernel_for(self.config.morph_open_px)
        if open_kernel is not None:
            binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, open_kernel)

        if not np.any(binary):
            self._log(0, 0, threshold)
            return ContourSet()

        raw, hierarchy = cv2.findContours(
            binary,
            _MODE_MAP[self.config.contour_mode],
            _CHAIN_MAP[self.config.chain_mode],
        )
        depths = _nesting_depths(hierarchy, len(raw))

        traced = []
        dropped = 0
        for rank, idx in enumerate(_raster_order(raw)):
            points = raw[idx]
            if len(points) < 3:
                dropped += 1
                continue
            traced.append(Contour(points, index=rank, is_hole=depths[idx] % 2 == 1))

        # sorted() is stable, so equal perimeters keep discovery order
        ordered = sorted(traced, key=lambda c: -c.perimeter)
        self._log(len(ordered), dropped, threshold)
        return ContourSet(tuple(ordered))

    def _log(self, count: int, dropped: int, threshold: int) -> None:
        if self.context is None:
            return
        self.context.log(
            "INFO",
            "contours extracted",
            contours=count,
            dropped=dropped,
            threshold=threshold,
            mode=self.config.contour_mode,
        )
