"""Select the primary shadow contour and map it into canonical space."""

from __future__ import annotations

from typing import Optional, Tuple

from shadow_monster.config import NormalizeConfig
from shadow_monster.geometry.contour_models import (
    CanonicalPolygon,
    Contour,
    ContourSet,
)
from shadow_monster.geometry.contour_utils import (
    canonical_frame,
    drop_degenerate_vertices,
    ensure_counter_clockwise,
    normalize_contour,
)
from shadow_monster.utils.generation_context import GenerationContext

_AREA_EPS = 1e-9

CanonicalParts = Tuple[CanonicalPolygon, Tuple[CanonicalPolygon, ...]]


def _primary_contour(contours: ContourSet) -> Optional[Contour]:
    best = None
    best_area = _AREA_EPS
    for contour in contours:
        area = contour.area
        if area > best_area:
            best = contour
            best_area = area
    return best


class PolygonNormalizer:
    """Produce a resolution-independent CanonicalPolygon from traced contours."""

    def __init__(
        self,
        config: Optional[NormalizeConfig] = None,
        context: Optional[GenerationContext] = None,
    ) -> None:
        self.config = config or NormalizeConfig()
        self.config.validate()
        self.context = context

    def _to_canonical(
        self, contour: Contour, centroid: Tuple[float, float], scale: float
    ) -> Optional[CanonicalPolygon]:
        # spurs and straight runs go before mapping, so the outline that
        # sets the scale is the one that gets extruded
        outline = drop_degenerate_vertices(contour.points)
        if len(outline) < 3:
            return None
        return CanonicalPolygon(
            points=ensure_counter_clockwise(normalize_contour(outline, centroid, scale)),
            extent=self.config.canonical_extent,
            source_centroid=centroid,
            source_scale=scale,
            source_index=contour.index,
        )

    def _primary(self, contours: ContourSet):
        contour = _primary_contour(contours)
        if contour is None:
            return None, None
        outline = drop_degenerate_vertices(contour.points)
        if len(outline) < 3:
            return None, None
        centroid, scale = canonical_frame(outline, self.config.canonical_extent)
        if scale <= 0.0:
            return None, None
        return contour, self._to_canonical(contour, centroid, scale)

    def normalize(self, contours: ContourSet) -> Optional[CanonicalPolygon]:
        """
        Map the largest-area contour into canonical space.

        The area centroid moves to the origin, y is flipped to point up and
        the largest coordinate magnitude becomes ``canonical_extent``.
        Equal areas resolve to the earlier contour in the set.

        Returns:
            CanonicalPolygon, or None when no contour encloses any area
        """
        contour, polygon = self._primary(contours)
        if polygon is not None and self.context is not None:
            self.context.log(
                "INFO",
                "primary contour normalized",
                source_index=contour.index,
                points=polygon.edge_count,
                area_px=round(contour.area, 2),
                discarded=len(contours) - 1,
            )
        return polygon

    def normalize_parts(self, contours: ContourSet) -> Optional[CanonicalParts]:
        """
        Normalize the primary contour plus significant secondary outlines.

        Secondary outer contours whose area is at least
        ``min_part_area_frac`` of the primary are mapped with the primary's
        frame, so their placement relative to the primary is kept. Holes are
        never returned as parts.
        """
        contour, polygon = self._primary(contours)
        if polygon is None:
            return None

        min_area = contour.area * self.config.min_part_area_frac
        secondaries = []
        for other in contours.outer():
            if other is contour:
                continue
            if other.area <= _AREA_EPS or other.area < min_area:
                continue
            part = self._to_canonical(
                other, polygon.source_centroid, polygon.source_scale
            )
            if part is not None:
                secondaries.append(part)

        if self.context is not None:
            self.context.log(
                "INFO",
                "contour parts normalized",
                source_index=contour.index,
                parts=len(secondaries),
                min_part_area_frac=self.config.min_part_area_frac,
            )
        return polygon, tuple(secondaries)
