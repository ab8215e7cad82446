"""Immutable scene descriptions and the default bedroom scene."""

from .models import (
    Backdrop,
    BoxGeometry,
    CameraPose,
    DecorativeLight,
    FixedRoomElement,
    MeshGeometry,
    MovableProp,
    PlaneGeometry,
    Pose,
    PropKind,
    SceneConfig,
    ShadowLight,
    SphereGeometry,
)
from .primitives import GeometryCache, world_triangles
from .room import PlacedItem, PropCatalog, build_room_scene

__all__ = [
    "Backdrop",
    "BoxGeometry",
    "CameraPose",
    "DecorativeLight",
    "FixedRoomElement",
    "GeometryCache",
    "MeshGeometry",
    "MovableProp",
    "PlacedItem",
    "PlaneGeometry",
    "Pose",
    "PropCatalog",
    "PropKind",
    "SceneConfig",
    "ShadowLight",
    "SphereGeometry",
    "build_room_scene",
    "world_triangles",
]
