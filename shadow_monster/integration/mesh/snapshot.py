"""Thumbnail rendering of finished solids (flat shaded, transparent background)."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from shadow_monster.config import SnapshotConfig
from shadow_monster.integration.mesh.solid import Solid, face_normals
from shadow_monster.integration.render.mask_camera import PerspectiveCamera
from shadow_monster.scene.models import CameraPose

_SUBPIXEL_BITS = 4


def framing_camera(solid: Solid, config: SnapshotConfig) -> PerspectiveCamera:
    """Camera on +z looking at the solid's bounding-box centre."""
    low, high = solid.bounds()
    center = (low + high) / 2.0
    diagonal = float(np.linalg.norm(high - low))
    distance = max(diagonal, 1e-6) * config.distance_factor
    pose = CameraPose(
        position=(float(center[0]), float(center[1]), float(center[2]) + distance),
        rotation=(0.0, 0.0, 0.0),
    )
    return PerspectiveCamera(
        pose=pose,
        resolution=tuple(config.resolution),
        field_of_view_deg=config.field_of_view_deg,
    )


def render_solid_image(
    solid: Solid, config: Optional[SnapshotConfig] = None
) -> np.ndarray:
    """
    Rasterize a solid and all of its parts into an RGBA image.

    Back faces are culled, the rest are drawn far to near with a Lambert
    term from a head light at the camera.

    Returns:
        (H, W, 4) uint8 RGBA image; background alpha is 0
    """
    config = config or SnapshotConfig()
    config.validate()
    width, height = config.resolution
    image = np.zeros((height, width, 4), dtype=np.uint8)

    camera = framing_camera(solid, config)
    eye = np.asarray(camera.pose.position, dtype=np.float64)
    _, _, forward = camera.pose.basis()
    light_dir = -forward

    tris = []
    for part in solid.iter_solids():
        vertices, faces = part.read_geometry()
        if len(faces):
            tris.append((vertices[faces], face_normals(vertices, faces)))
    if not tris:
        return image

    triangles = np.concatenate([t for t, _ in tris])
    normals = np.concatenate([n for _, n in tris])
    centroids = triangles.mean(axis=1)
    facing = np.einsum("ij,ij->i", normals, eye - centroids) > 0
    triangles = triangles[facing]
    normals = normals[facing]
    depth = (triangles.mean(axis=1) - eye) @ forward

    ambient = config.ambient
    shade = ambient + (1.0 - ambient) * np.clip(normals @ light_dir, 0.0, 1.0)
    base = np.asarray(config.color, dtype=np.float64)

    scale = 1 << _SUBPIXEL_BITS
    for idx in np.argsort(-depth, kind="stable"):
        pixels, valid = camera.project(triangles[idx])
        if not valid.all():
            continue
        rgb = np.clip(np.rint(base * shade[idx]), 0, 255).astype(int)
        color = (int(rgb[0]), int(rgb[1]), int(rgb[2]), 255)
        fixed = np.round(pixels * scale).astype(np.int32)
        cv2.fillConvexPoly(
            image, fixed, color, lineType=cv2.LINE_8, shift=_SUBPIXEL_BITS
        )
    return image
