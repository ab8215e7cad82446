"""Blender helpers for exporting monster solids."""

from .solid_export import (
    BLENDER_AVAILABLE,
    create_object_from_solid,
    sync_object_vertices,
)

__all__ = [
    "BLENDER_AVAILABLE",
    "create_object_from_solid",
    "sync_object_vertices",
]
