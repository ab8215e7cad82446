"""Tests for live extrusion depth changes (pure Python)."""

from __future__ import annotations

import threading
import unittest

import numpy as np

from shadow_monster.config import ExtrusionControlConfig
from shadow_monster.errors import InvalidDepth
from shadow_monster.geometry.contour_models import CanonicalPolygon
from shadow_monster.integration.mesh.dynamic_extrusion import DynamicExtrusionController
from shadow_monster.integration.mesh.extruder import MeshExtruder
from shadow_monster.integration.mesh.solid import Solid
from shadow_monster.utils.generation_context import GenerationContext

STAR = CanonicalPolygon(
    np.array(
        [
            [0.0, 100.0],
            [-22.0, 30.0],
            [-95.0, 31.0],
            [-36.0, -12.0],
            [-59.0, -81.0],
            [0.0, -38.0],
            [59.0, -81.0],
            [36.0, -12.0],
            [95.0, 31.0],
            [22.0, 30.0],
        ]
    ),
    extent=100.0,
)


class TestSetDepth(unittest.TestCase):
    def setUp(self) -> None:
        self.extruder = MeshExtruder()
        self.controller = DynamicExtrusionController()

    def test_commutes_with_reextrusion(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 1.0)
        self.controller.set_depth(handle, 7.3)
        fresh, _ = self.extruder.extrude(STAR, 7.3)
        np.testing.assert_array_equal(solid.vertices, fresh.vertices)
        np.testing.assert_array_equal(solid.faces, fresh.faces)
        self.assertEqual(handle.depth, 7.3)

    def test_idempotent(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 2.0)
        self.controller.set_depth(handle, 5.0)
        once = solid.vertices.copy()
        self.controller.set_depth(handle, 5.0)
        np.testing.assert_array_equal(solid.vertices, once)

    def test_only_z_changes(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 2.0)
        xy = solid.vertices[:, :2].copy()
        faces = solid.faces.copy()
        normals = solid.normals.copy()
        self.controller.set_depth(handle, 11.0)
        np.testing.assert_array_equal(solid.vertices[:, :2], xy)
        np.testing.assert_array_equal(solid.faces, faces)
        np.testing.assert_array_equal(solid.normals, normals)
        self.assertAlmostEqual(float(solid.vertices[:, 2].max()), 5.5)
        self.assertAlmostEqual(float(solid.vertices[:, 2].min()), -5.5)

    def test_invalid_depth_leaves_solid_unchanged(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 1.0)
        before = solid.vertices.copy()
        revision = solid.revision
        for bad in (0.0, -3.0, float("nan")):
            with self.assertRaises(InvalidDepth):
                self.controller.set_depth(handle, bad)
        np.testing.assert_array_equal(solid.vertices, before)
        self.assertEqual(solid.depth, 1.0)
        self.assertEqual(solid.revision, revision)

    def test_compound_parts_follow_depth(self) -> None:
        solid, handle = self.extruder.extrude_parts(
            STAR, [CanonicalPolygon(STAR.points + 300.0, extent=100.0)], 1.0
        )
        decoration = solid.add_part(
            Solid(np.array([[0, 0, 9.0], [1, 0, 9.0], [0, 1, 9.0]]), np.array([[0, 1, 2]]))
        )
        self.controller.set_depth(handle, 4.0)
        self.assertEqual(solid.parts[0].depth, 4.0)
        self.assertAlmostEqual(float(solid.parts[0].vertices[:, 2].max()), 2.0)
        # non-extrusion parts are traversed but left alone
        np.testing.assert_array_equal(decoration.vertices[:, 2], 9.0)
        self.assertIsNone(decoration.depth)

    def test_deep_part_chain_without_recursion(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 1.0)
        current = solid
        for _ in range(3000):
            current = current.add_part(self.extruder.build_solid(STAR, 1.0))
        self.controller.set_depth(handle, 3.0)
        self.assertEqual(current.depth, 3.0)
        self.assertAlmostEqual(float(current.vertices[:, 2].max()), 1.5)

    def test_concurrent_writers_last_value_wins(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 1.0)
        depths = [float(d) for d in range(2, 12)]
        threads = [
            threading.Thread(target=self.controller.set_depth, args=(handle, d))
            for d in depths
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertIn(solid.depth, depths)
        fresh, _ = self.extruder.extrude(STAR, solid.depth)
        np.testing.assert_array_equal(solid.vertices, fresh.vertices)

    def test_logs_to_context(self) -> None:
        context = GenerationContext(echo=False)
        controller = DynamicExtrusionController(context=context)
        _, handle = self.extruder.extrude(STAR, 1.0)
        controller.set_depth(handle, 2.0)
        self.assertEqual(context.logs[-1]["message"], "extrusion depth set")
        self.assertEqual(context.logs[-1]["solids"], 1)


class TestCoalescing(unittest.TestCase):
    def setUp(self) -> None:
        self.extruder = MeshExtruder()
        self.controller = DynamicExtrusionController(ExtrusionControlConfig())

    def test_quantize_clamps_and_snaps(self) -> None:
        self.assertEqual(self.controller.quantize(0.2), 1.0)
        self.assertEqual(self.controller.quantize(99.0), 20.0)
        self.assertEqual(self.controller.quantize(3.14), 3.1)
        self.assertEqual(self.controller.quantize(3.16), 3.2)

    def test_quantize_without_step(self) -> None:
        controller = DynamicExtrusionController(ExtrusionControlConfig(step=0.0))
        self.assertEqual(controller.quantize(3.14159), 3.14159)

    def test_flush_applies_latest_value(self) -> None:
        solid, handle = self.extruder.extrude(STAR, 1.0)
        other_solid, other = self.extruder.extrude(STAR, 1.0)
        for value in (2.0, 5.0, 8.04):
            self.controller.submit(handle, value)
        self.controller.submit(other, 3.0)
        self.assertEqual(self.controller.pending(), 2)
        self.assertEqual(solid.depth, 1.0)

        self.assertEqual(self.controller.flush(), 2)
        self.assertEqual(solid.depth, 8.0)
        self.assertEqual(other_solid.depth, 3.0)
        self.assertEqual(self.controller.pending(), 0)
        self.assertEqual(self.controller.flush(), 0)

    def test_submit_rejects_invalid(self) -> None:
        _, handle = self.extruder.extrude(STAR, 1.0)
        with self.assertRaises(InvalidDepth):
            self.controller.submit(handle, float("nan"))
        self.assertEqual(self.controller.pending(), 0)


if __name__ == "__main__":
    unittest.main()
