"""Tests for the off-screen shadow renderer (pure Python)."""

from __future__ import annotations

from dataclasses import replace
import unittest

import numpy as np

from shadow_monster.config import RenderConfig
from shadow_monster.geometry.contour_utils import polygon_area
from shadow_monster.errors import MissingBackdrop, MissingShadowCaster, RenderError
from shadow_monster.integration.render.mask_camera import BackdropCamera
from shadow_monster.integration.render.shadow_renderer import (
    SceneRenderer,
    clip_to_window,
    project_onto_backdrop,
)
from shadow_monster.scene.models import (
    Backdrop,
    CameraPose,
    FixedRoomElement,
    MeshGeometry,
    PlaneGeometry,
    Pose,
    SceneConfig,
    ShadowLight,
)
from shadow_monster.scene.room import FLASHLIGHT, build_room_scene
from shadow_monster.utils.generation_context import GenerationContext

BACKDROP = Backdrop(center=(0.0, 0.0, -5.0), width=10.0, height=10.0)
SUN = ShadowLight(kind="directional", direction=(0.0, 0.0, -1.0))
BULB = ShadowLight(kind="point", position=(0.0, 0.0, 5.0))


def _card(size: float = 2.0, z: float = 0.0) -> FixedRoomElement:
    return FixedRoomElement(
        name="card", geometry=PlaneGeometry(size, size), pose=Pose(position=(0.0, 0.0, z))
    )


def _scene(light=SUN, backdrop=BACKDROP, *elements) -> SceneConfig:
    return SceneConfig(
        camera=CameraPose(position=(0.0, 0.0, 10.0)),
        light=light,
        backdrop=backdrop,
        elements=elements,
    )


class TestProjection(unittest.TestCase):
    def test_point_light_scales_with_distance(self) -> None:
        tri = np.array([[[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 0.0]]])
        projected, valid = project_onto_backdrop(tri, BULB, BACKDROP)
        self.assertTrue(valid[0])
        np.testing.assert_allclose(projected[0, :, 2], -5.0)
        np.testing.assert_allclose(projected[0, 0], [2.0, 0.0, -5.0])

    def test_behind_backdrop_is_invalid(self) -> None:
        tri = np.array([[[1.0, 0.0, -8.0], [0.0, 1.0, -8.0], [0.0, 0.0, -8.0]]])
        _, valid = project_onto_backdrop(tri, BULB, BACKDROP)
        self.assertFalse(valid[0])
        _, valid = project_onto_backdrop(tri, SUN, BACKDROP)
        self.assertFalse(valid[0])

    def test_directional_parallel_to_backdrop(self) -> None:
        tri = np.zeros((1, 3, 3))
        light = ShadowLight(kind="directional", direction=(1.0, 0.0, 0.0))
        _, valid = project_onto_backdrop(tri, light, BACKDROP)
        self.assertFalse(valid.any())

    def test_backdrop_camera_corners(self) -> None:
        camera = BackdropCamera(BACKDROP, (100, 50))
        pixels, valid = camera.project(np.array([[-5.0, 5.0, -5.0], [5.0, -5.0, -5.0]]))
        self.assertTrue(valid.all())
        np.testing.assert_allclose(pixels, [[-0.5, -0.5], [99.5, 49.5]])

    def test_backdrop_camera_pixel_centres_round_trip(self) -> None:
        camera = BackdropCamera(BACKDROP, (100, 50))
        pixels = np.array([[0, 0], [37, 12], [99, 49]])
        points, hit = camera.to_backdrop(pixels, BACKDROP)
        self.assertTrue(hit.all())
        np.testing.assert_allclose(points[:, 2], -5.0)
        back, _ = camera.project(points)
        np.testing.assert_allclose(back, pixels, atol=1e-9)

    def test_clip_to_window_keeps_small_polygons(self) -> None:
        tri = np.array([[10.0, 10.0], [50.0, 10.0], [10.0, 40.0]])
        np.testing.assert_array_equal(clip_to_window(tri, 100, 50, 100.0), tri)

    def test_clip_to_window_bounds_far_vertices(self) -> None:
        square = np.array([[-1e12, -1e12], [1e12, -1e12], [1e12, 1e12], [-1e12, 1e12]])
        clipped = clip_to_window(square, 100, 50, 100.0)
        self.assertGreaterEqual(clipped.min(), -100.0)
        self.assertLessEqual(clipped[:, 0].max(), 200.0)
        self.assertLessEqual(clipped[:, 1].max(), 150.0)
        self.assertAlmostEqual(polygon_area(clipped), 300.0 * 250.0)

    def test_clip_to_window_drops_polygon_outside(self) -> None:
        tri = np.array([[1e9, 1e9], [2e9, 1e9], [1e9, 2e9]])
        self.assertEqual(len(clip_to_window(tri, 100, 50, 100.0)), 0)


class TestSceneRenderer(unittest.TestCase):
    def setUp(self) -> None:
        self.renderer = SceneRenderer(RenderConfig(resolution=(100, 100)))

    def test_missing_light(self) -> None:
        with self.assertRaises(MissingShadowCaster):
            self.renderer.render(_scene(None, BACKDROP, _card()))

    def test_missing_backdrop(self) -> None:
        with self.assertRaises(MissingBackdrop):
            self.renderer.render(_scene(SUN, None, _card()))
        self.assertTrue(issubclass(MissingBackdrop, RenderError))

    def test_directional_shadow_square(self) -> None:
        mask = self.renderer.render(_scene(SUN, BACKDROP, _card()))
        self.assertEqual(mask.resolution, (100, 100))
        self.assertEqual(int(mask.pixels[50, 50]), 26)
        self.assertEqual(int(mask.pixels[5, 5]), 255)
        self.assertEqual(set(np.unique(mask.pixels).tolist()), {26, 255})
        self.assertGreater(mask.shadow_fraction(), 0.03)
        self.assertLess(mask.shadow_fraction(), 0.05)

    def test_point_light_enlarges_shadow(self) -> None:
        mask = self.renderer.render(_scene(BULB, BACKDROP, _card()))
        self.assertGreater(mask.shadow_fraction(), 0.14)
        self.assertLess(mask.shadow_fraction(), 0.18)

    def test_no_casters_gives_blank_mask(self) -> None:
        mask = self.renderer.render(_scene(SUN, BACKDROP))
        self.assertTrue(np.all(mask.pixels == 255))

    def test_caster_behind_backdrop_is_ignored(self) -> None:
        mask = self.renderer.render(_scene(BULB, BACKDROP, _card(z=-8.0)))
        self.assertTrue(np.all(mask.pixels == 255))

    def test_render_is_deterministic(self) -> None:
        scene = build_room_scene()
        renderer = SceneRenderer(RenderConfig(resolution=(128, 96)))
        first = renderer.render(scene)
        second = renderer.render(scene)
        self.assertEqual(first.digest(), second.digest())
        self.assertGreater(renderer.cache.hits, 0)
        fresh = SceneRenderer(RenderConfig(resolution=(128, 96))).render(scene)
        self.assertEqual(first, fresh)

    def test_resolution_argument(self) -> None:
        scene = _scene(SUN, BACKDROP, _card())
        self.assertEqual(self.renderer.render(scene, 64).resolution, (64, 64))
        self.assertEqual(self.renderer.render(scene, (80, 40)).resolution, (80, 40))
        with self.assertRaises(ValueError):
            self.renderer.render(scene, (0, 10))

    def test_shadow_softness_blurs_edges(self) -> None:
        renderer = SceneRenderer(RenderConfig(resolution=(100, 100), shadow_softness_px=2))
        mask = renderer.render(_scene(SUN, BACKDROP, _card()))
        self.assertGreater(len(np.unique(mask.pixels)), 2)
        self.assertEqual(int(mask.pixels[50, 50]), 26)

    def test_perspective_clips_to_backdrop(self) -> None:
        renderer = SceneRenderer(
            RenderConfig(resolution=(100, 100), projection="perspective")
        )
        mask = renderer.render(_scene(SUN, BACKDROP, _card(size=40.0)))
        self.assertEqual(int(mask.pixels[50, 50]), 26)
        self.assertEqual(int(mask.pixels[0, 0]), 255)

    def test_vertex_level_with_light_does_not_wrap(self) -> None:
        # the last vertex sits just below the bulb, so its shadow lands ~1e9 units away
        sliver = MeshGeometry(
            "sliver",
            vertices=[[-1.0, -1.0, 0.0], [-1.0, 1.0, 0.0], [0.5, 0.0, 5.0 - 1e-8]],
            faces=[[0, 1, 2]],
        )
        scene = _scene(BULB, BACKDROP, FixedRoomElement(name="sliver", geometry=sliver))
        mask = self.renderer.render(scene)
        self.assertEqual(int(mask.pixels[50, 80]), 26)
        self.assertEqual(int(mask.pixels[50, 10]), 255)
        self.assertEqual(int(mask.pixels[10, 80]), 255)
        self.assertEqual(int(mask.pixels[90, 80]), 255)

    def test_wide_spot_matches_bulb(self) -> None:
        spot = ShadowLight(kind="spot", position=(0.0, 0.0, 5.0), direction=(0.0, 0.0, -1.0))
        mask = self.renderer.render(_scene(spot, BACKDROP, _card()))
        self.assertEqual(mask, self.renderer.render(_scene(BULB, BACKDROP, _card())))

    def test_casters_outside_spot_cone_cast_nothing(self) -> None:
        off_centre = FixedRoomElement(
            name="card", geometry=PlaneGeometry(2.0, 2.0), pose=Pose(position=(3.0, 0.0, 0.0))
        )
        bulb = self.renderer.render(_scene(BULB, BACKDROP, off_centre))
        self.assertGreater(bulb.shadow_fraction(), 0.0)
        narrow = ShadowLight(
            kind="spot",
            position=(0.0, 0.0, 5.0),
            direction=(0.0, 0.0, -1.0),
            spot_angle_deg=10.0,
        )
        mask = self.renderer.render(_scene(narrow, BACKDROP, off_centre))
        self.assertTrue(np.all(mask.pixels == 255))

    def test_narrow_spot_trims_shadow_to_its_footprint(self) -> None:
        narrow = ShadowLight(
            kind="spot",
            position=(0.0, 0.0, 5.0),
            direction=(0.0, 0.0, -1.0),
            spot_angle_deg=10.0,
        )
        mask = self.renderer.render(_scene(narrow, BACKDROP, _card()))
        # footprint radius on the wall is 10 * tan(5 deg) ~ 0.87 units, ~9 px
        self.assertEqual(int(mask.pixels[50, 50]), 26)
        self.assertEqual(int(mask.pixels[50, 70]), 255)
        self.assertLess(mask.shadow_fraction(), 0.03)

    def test_spot_turned_away_changes_mask(self) -> None:
        renderer = SceneRenderer(RenderConfig(resolution=(128, 96)))
        aimed = renderer.render(build_room_scene())
        self.assertGreater(aimed.shadow_fraction(), 0.0)
        away = renderer.render(
            build_room_scene(light=replace(FLASHLIGHT, direction=(1.0, 0.0, 0.0)))
        )
        self.assertNotEqual(aimed.digest(), away.digest())
        self.assertEqual(away.shadow_fraction(), 0.0)

    def test_perspective_spot_cone(self) -> None:
        renderer = SceneRenderer(
            RenderConfig(resolution=(100, 100), projection="perspective")
        )
        narrow = ShadowLight(
            kind="spot",
            position=(0.0, 0.0, 5.0),
            direction=(0.0, 0.0, -1.0),
            spot_angle_deg=10.0,
        )
        wide = renderer.render(_scene(BULB, BACKDROP, _card()))
        trimmed = renderer.render(_scene(narrow, BACKDROP, _card()))
        self.assertEqual(int(trimmed.pixels[50, 50]), 26)
        self.assertLess(trimmed.shadow_fraction(), wide.shadow_fraction())

    def test_logs_to_context(self) -> None:
        context = GenerationContext(echo=False)
        renderer = SceneRenderer(RenderConfig(resolution=(32, 32)), context=context)
        renderer.render(_scene(SUN, BACKDROP, _card()))
        self.assertEqual(context.logs[-1]["message"], "shadow mask rendered")
        self.assertEqual(context.logs[-1]["casters"], 1)


if __name__ == "__main__":
    unittest.main()
