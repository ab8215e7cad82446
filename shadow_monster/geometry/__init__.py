"""Pure-Python mask, contour and polygon utilities (no bpy imports)."""

from .contour_models import CanonicalPolygon, Contour, ContourSet
from .mask import Mask, blank_mask
from .triangulation import triangulate_polygon

__all__ = [
    "CanonicalPolygon",
    "Contour",
    "ContourSet",
    "Mask",
    "blank_mask",
    "triangulate_polygon",
]
