"""Off-screen shadow mask rendering.

The backdrop is the only shaded surface: it is flat and unlit, so the mask
holds exactly two tones (lit backdrop and cast shadow) unless a fixed shadow
softness is configured. Shadow-casting triangles are projected from the light
onto the backdrop plane and filled without anti-aliasing, which keeps masks
bit-identical across runs for the same scene and resolution.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from shadow_monster.config import RenderConfig
from shadow_monster.errors import MissingBackdrop, MissingShadowCaster
from shadow_monster.geometry.mask import Mask
from shadow_monster.integration.render.mask_camera import (
    BackdropCamera,
    PerspectiveCamera,
)
from shadow_monster.scene.models import Backdrop, SceneConfig, ShadowLight
from shadow_monster.scene.primitives import GeometryCache, world_triangles
from shadow_monster.utils.generation_context import GenerationContext

Resolution = Union[int, Sequence[int]]

_T_EPS = 1e-9


def _resolve_resolution(resolution: Resolution) -> Tuple[int, int]:
    if isinstance(resolution, (int, np.integer)):
        width = height = int(resolution)
    else:
        if len(resolution) != 2:
            raise ValueError("resolution must be an int or a (width, height) pair")
        width, height = (int(v) for v in resolution)
    if width < 1 or height < 1:
        raise ValueError("resolution must be positive")
    return width, height


def project_onto_backdrop(
    triangles: np.ndarray, light: ShadowLight, backdrop: Backdrop
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Project triangles (F, 3, 3) from the light onto the backdrop plane.

    Returns:
        (projected (F, 3, 3), valid (F,)). A triangle is valid when all of its
        vertices lie between the light and the backdrop.
    """
    origin, _, _, normal = backdrop.frame()
    plane_d = float(normal @ origin)
    verts = triangles.reshape(-1, 3)

    if light.is_positional:
        light_pos = np.asarray(light.position, dtype=np.float64)
        numer = plane_d - float(normal @ light_pos)
        rays = verts - light_pos
        denom = rays @ normal
        with np.errstate(divide="ignore", invalid="ignore"):
            t = np.where(np.abs(denom) > _T_EPS, numer / denom, -1.0)
        valid = (abs(numer) > _T_EPS) & (t >= 1.0 - _T_EPS)
        projected = light_pos + rays * t[:, None]
    else:
        direction = light.unit_direction()
        denom = float(normal @ direction)
        if abs(denom) <= _T_EPS:
            empty = np.zeros(len(triangles), dtype=bool)
            return triangles.copy(), empty
        s = (plane_d - verts @ normal) / denom
        valid = s >= -_T_EPS
        projected = verts + direction * s[:, None]

    valid_tri = valid.reshape(-1, 3).all(axis=1)
    return projected.reshape(-1, 3, 3), valid_tri


def clip_to_window(
    polygon: np.ndarray, width: int, height: int, margin: float
) -> np.ndarray:
    """
    Clip a convex pixel polygon to the mask plus a guard margin.

    Projected shadows of vertices nearly level with the light land
    arbitrarily far away; clipping in floating point keeps the fixed-point
    coordinates handed to OpenCV within int32 without changing what is
    drawn inside the mask.
    """
    pts = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    lo = (-margin, -margin)
    hi = (width + margin, height + margin)
    if pts.size and (pts.min(axis=0) >= lo).all() and (pts.max(axis=0) <= hi).all():
        return pts
    for axis in (0, 1):
        for bound, sign in ((lo[axis], 1.0), (hi[axis], -1.0)):
            if len(pts) == 0:
                return pts
            inside = (pts[:, axis] - bound) * sign
            clipped = []
            for i in range(len(pts)):
                j = (i + 1) % len(pts)
                if inside[i] >= 0:
                    clipped.append(pts[i])
                if (inside[i] >= 0) != (inside[j] >= 0):
                    frac = inside[i] / (inside[i] - inside[j])
                    clipped.append(pts[i] + (pts[j] - pts[i]) * frac)
            pts = np.asarray(clipped, dtype=np.float64).reshape(-1, 2)
    return pts


class SceneRenderer:
    """Render a SceneConfig into a grayscale shadow Mask.

    The renderer owns no scene state: each call reads the immutable
    SceneConfig and writes into a fresh buffer. The geometry cache only holds
    read-only triangle buffers keyed by asset identity.
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        cache: Optional[GeometryCache] = None,
        context: Optional[GenerationContext] = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.config.validate()
        self.cache = cache or GeometryCache()
        self.context = context

    def _camera_for(self, scene: SceneConfig, resolution: Tuple[int, int]):
        if self.config.projection == "perspective":
            return PerspectiveCamera(
                pose=scene.camera,
                resolution=resolution,
                field_of_view_deg=self.config.field_of_view_deg,
            )
        return BackdropCamera(backdrop=scene.backdrop, resolution=resolution)

    def _fill(self, layer: np.ndarray, polygon_px: np.ndarray) -> None:
        height, width = layer.shape
        polygon_px = clip_to_window(polygon_px, width, height, float(max(width, height)))
        if len(polygon_px) < 3:
            return
        shift = self.config.subpixel_bits
        fixed = np.round(polygon_px * (1 << shift)).astype(np.int32)
        cv2.fillConvexPoly(layer, fixed, 255, lineType=cv2.LINE_8, shift=shift)

    def _clip_to_light(self, layer: np.ndarray, camera, scene: SceneConfig) -> int:
        """Clear shadow pixels outside a spot light's cone; returns pixels cleared."""
        if scene.light.kind != "spot":
            return 0
        ys, xs = np.nonzero(layer)
        if len(xs) == 0:
            return 0
        points, hit = camera.to_backdrop(np.column_stack([xs, ys]), scene.backdrop)
        dark = ~(hit & scene.light.illuminates(points))
        layer[ys[dark], xs[dark]] = 0
        return int(np.count_nonzero(dark))

    def _backdrop_coverage(self, camera, backdrop: Backdrop, shape) -> Optional[np.ndarray]:
        if camera.covers_backdrop:
            return None
        origin, u_axis, v_axis, _ = backdrop.frame()
        hw, hh = backdrop.width / 2.0, backdrop.height / 2.0
        corners = np.array(
            [
                origin - u_axis * hw - v_axis * hh,
                origin + u_axis * hw - v_axis * hh,
                origin + u_axis * hw + v_axis * hh,
                origin - u_axis * hw + v_axis * hh,
            ]
        )
        coverage = np.zeros(shape, dtype=np.uint8)
        pixels, valid = camera.project(corners)
        if valid.all():
            self._fill(coverage, pixels)
        return coverage

    def render(
        self, scene: SceneConfig, resolution: Optional[Resolution] = None
    ) -> Mask:
        """
        Render the scene's cast shadow on its backdrop.

        Args:
            scene: Immutable scene snapshot
            resolution: int or (width, height); defaults to the configured size

        Returns:
            Mask with lit backdrop at ``lit_value`` and shadow at ``shadow_value``

        Raises:
            MissingShadowCaster: scene has no light
            MissingBackdrop: scene has no backdrop
        """
        if scene.light is None:
            raise MissingShadowCaster()
        if scene.backdrop is None:
            raise MissingBackdrop()

        width, height = _resolve_resolution(
            self.config.resolution if resolution is None else resolution
        )
        camera = self._camera_for(scene, (width, height))
        shadow_layer = np.zeros((height, width), dtype=np.uint8)

        caster_count = 0
        drawn = 0
        skipped = 0
        for geometry, pose in scene.shadow_casters():
            caster_count += 1
            triangles = world_triangles(geometry, pose, self.cache)
            if len(triangles) == 0:
                continue
            projected, valid = project_onto_backdrop(
                triangles, scene.light, scene.backdrop
            )
            skipped += int(np.count_nonzero(~valid))
            for tri in projected[valid]:
                pixels, in_front = camera.project(tri)
                if not in_front.all():
                    skipped += 1
                    continue
                self._fill(shadow_layer, pixels)
                drawn += 1

        outside_cone = self._clip_to_light(shadow_layer, camera, scene)
        coverage = self._backdrop_coverage(camera, scene.backdrop, shadow_layer.shape)
        if coverage is not None:
            shadow_layer = cv2.bitwise_and(shadow_layer, coverage)

        cfg = self.config
        pixels = np.where(shadow_layer > 0, cfg.shadow_value, cfg.lit_value).astype(
            np.uint8
        )
        if cfg.shadow_softness_px > 0:
            k = 2 * cfg.shadow_softness_px + 1
            blurred = cv2.GaussianBlur(pixels.astype(np.float32), (k, k), 0)
            pixels = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)

        if self.context is not None:
            self.context.log(
                "INFO",
                "shadow mask rendered",
                casters=caster_count,
                triangles=drawn,
                skipped=skipped,
                outside_cone=outside_cone,
                resolution=f"{width}x{height}",
                projection=cfg.projection,
            )
        return Mask(pixels)
