"""Contour tracing and canonical polygon normalization."""

from .contour_extractor import ContourExtractor
from .polygon_normalizer import PolygonNormalizer

__all__ = ["ContourExtractor", "PolygonNormalizer"]
