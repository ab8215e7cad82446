"""Extruded solids, live depth control and snapshots."""

from .dynamic_extrusion import DynamicExtrusionController
from .extruder import MeshExtruder
from .snapshot import render_solid_image
from .solid import ExtrusionHandle, Solid

__all__ = [
    "DynamicExtrusionController",
    "ExtrusionHandle",
    "MeshExtruder",
    "Solid",
    "render_solid_image",
]
