"""Fixed viewpoints used to rasterize the shadow mask."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

import numpy as np

from shadow_monster.scene.models import Backdrop, CameraPose

_NEAR = 1e-3


@dataclass(frozen=True)
class BackdropCamera:
    """Orthographic view along the backdrop normal framing it edge to edge.

    Pixel (0, 0) is the top-left corner of the backdrop; every pixel samples
    the backdrop surface.
    """

    backdrop: Backdrop
    resolution: Tuple[int, int]

    def project(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return (pixels (N, 2), valid (N,)) for world points."""
        origin, u_axis, v_axis, _ = self.backdrop.frame()
        rel = np.asarray(points, dtype=np.float64).reshape(-1, 3) - origin
        u = rel @ u_axis
        v = rel @ v_axis
        width, height = self.resolution
        px = (u / self.backdrop.width + 0.5) * width - 0.5
        py = (0.5 - v / self.backdrop.height) * height - 0.5
        return np.column_stack([px, py]), np.ones(len(rel), dtype=bool)

    def to_backdrop(
        self, pixels: np.ndarray, backdrop: Backdrop
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return (world points (N, 3), hit (N,)) seen at pixel centres.

        Every pixel samples the framed backdrop, so ``backdrop`` is only
        accepted to match PerspectiveCamera.
        """
        origin, u_axis, v_axis, _ = self.backdrop.frame()
        px = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        width, height = self.resolution
        u = ((px[:, 0] + 0.5) / width - 0.5) * self.backdrop.width
        v = (0.5 - (px[:, 1] + 0.5) / height) * self.backdrop.height
        points = origin + u[:, None] * u_axis + v[:, None] * v_axis
        return points, np.ones(len(px), dtype=bool)

    @property
    def covers_backdrop(self) -> bool:
        return True


@dataclass(frozen=True)
class PerspectiveCamera:
    """Pinhole camera at a scene camera pose (vertical field of view)."""

    pose: CameraPose
    resolution: Tuple[int, int]
    field_of_view_deg: float = 60.0

    def project(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return (pixels (N, 2), valid (N,)); points behind the camera are invalid."""
        right, up, forward = self.pose.basis()
        rel = np.asarray(points, dtype=np.float64).reshape(-1, 3) - np.asarray(
            self.pose.position, dtype=np.float64
        )
        x = rel @ right
        y = rel @ up
        z = rel @ forward
        valid = z > _NEAR
        safe_z = np.where(valid, z, 1.0)

        width, height = self.resolution
        focal = (height / 2.0) / math.tan(math.radians(self.field_of_view_deg) / 2.0)
        px = width / 2.0 + focal * x / safe_z - 0.5
        py = height / 2.0 - focal * y / safe_z - 0.5
        return np.column_stack([px, py]), valid

    def to_backdrop(
        self, pixels: np.ndarray, backdrop: Backdrop
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return (world points (N, 3), hit (N,)) where pixel rays meet the backdrop plane."""
        right, up, forward = self.pose.basis()
        eye = np.asarray(self.pose.position, dtype=np.float64)
        px = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        width, height = self.resolution
        focal = (height / 2.0) / math.tan(math.radians(self.field_of_view_deg) / 2.0)
        x = (px[:, 0] + 0.5 - width / 2.0) / focal
        y = (height / 2.0 - px[:, 1] - 0.5) / focal
        rays = x[:, None] * right + y[:, None] * up + forward

        origin, _, _, normal = backdrop.frame()
        denom = rays @ normal
        with np.errstate(divide="ignore", invalid="ignore"):
            t = np.where(np.abs(denom) > 1e-12, ((origin - eye) @ normal) / denom, -1.0)
        hit = t > 0.0
        return eye + rays * np.where(hit, t, 0.0)[:, None], hit

    @property
    def covers_backdrop(self) -> bool:
        return False
