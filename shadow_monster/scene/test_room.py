"""Tests for the bedroom scene builder and prop placement."""

from __future__ import annotations

import math
import unittest

import numpy as np

from shadow_monster.scene.models import (
    BoxGeometry,
    DecorativeLight,
    FixedRoomElement,
    MeshGeometry,
    MovableProp,
    PropKind,
)
from shadow_monster.scene.room import (
    BACK_WALL,
    FLASHLIGHT,
    PlacedItem,
    PropCatalog,
    build_room_scene,
    room_fixtures,
    ui_to_floor,
)


class TestRoomScene(unittest.TestCase):
    def test_ui_to_floor(self) -> None:
        self.assertEqual(ui_to_floor(200.0, 200.0), (0.0, 0.0))
        self.assertEqual(ui_to_floor(240.0, 180.0), (2.0, -1.0))

    def test_side_walls_do_not_cast(self) -> None:
        fixtures = {f.name: f for f in room_fixtures()}
        self.assertFalse(fixtures["wall_left"].casts_shadow)
        self.assertFalse(fixtures["wall_right"].casts_shadow)
        self.assertTrue(fixtures["bed"].casts_shadow)
        self.assertTrue(fixtures["door"].casts_shadow)

    def test_default_scene(self) -> None:
        scene = build_room_scene()
        self.assertEqual(scene.light, FLASHLIGHT)
        self.assertEqual(scene.backdrop, BACK_WALL)
        self.assertTrue(all(isinstance(e, FixedRoomElement) for e in scene.elements))
        self.assertEqual(len(list(scene.shadow_casters())), 2)

    def test_props_and_lights(self) -> None:
        scene = build_room_scene(
            [PlacedItem("lamp-1", PropKind.LAMP, 200.0, 160.0)],
            lights=[("fairy", (1.0, 3.0, 0.0))],
        )
        props = scene.props()
        self.assertEqual(len(props), 1)
        self.assertIsInstance(props[0], MovableProp)
        self.assertEqual(props[0].pose.position[0], 0.0)
        self.assertEqual(props[0].pose.position[2], -2.0)
        lights = [e for e in scene.elements if isinstance(e, DecorativeLight)]
        self.assertEqual(len(lights), 1)
        # decorative lights never add a caster
        self.assertEqual(len(list(scene.shadow_casters())), 3)

    def test_unknown_prop_kind_is_skipped(self) -> None:
        catalog = PropCatalog(geometry={PropKind.LAMP: BoxGeometry(1.0, 1.0, 1.0)})
        scene = build_room_scene(
            [PlacedItem("img", PropKind.CUSTOM_IMAGE, 200.0, 200.0)], catalog=catalog
        )
        self.assertEqual(scene.props(), ())

    def test_missing_light_and_backdrop(self) -> None:
        scene = build_room_scene(light=None, backdrop=None)
        self.assertIsNone(scene.light)
        self.assertIsNone(scene.backdrop)


class TestPropCatalog(unittest.TestCase):
    def test_largest_dimension_normalized(self) -> None:
        catalog = PropCatalog(geometry={PropKind.BOX_STACK: BoxGeometry(1.0, 2.0, 0.5)})
        self.assertAlmostEqual(catalog.normalized_scale(BoxGeometry(1.0, 2.0, 0.5)), 1.5)

    def test_place_stands_on_floor(self) -> None:
        catalog = PropCatalog(geometry={PropKind.BOX_STACK: BoxGeometry(1.0, 2.0, 0.5)})
        prop = catalog.place(
            PlacedItem("stack", PropKind.BOX_STACK, 220.0, 200.0, rotation_deg=90.0)
        )
        self.assertIsNotNone(prop)
        self.assertAlmostEqual(prop.pose.scale, 1.5)
        self.assertAlmostEqual(prop.pose.position[1], 1.5)
        self.assertAlmostEqual(prop.pose.position[0], 1.0)
        self.assertAlmostEqual(prop.pose.rotation[1], math.pi / 2.0)

    def test_register_custom_mesh(self) -> None:
        catalog = PropCatalog()
        mesh = MeshGeometry(
            "custom-1",
            np.array([[0, 0, 0], [6, 0, 0], [0, 3, 0]], dtype=float),
            np.array([[0, 1, 2]]),
        )
        catalog.register(PropKind.CUSTOM_IMAGE, mesh)
        prop = catalog.place(PlacedItem("c", PropKind.CUSTOM_IMAGE, 200.0, 200.0))
        self.assertIs(prop.geometry, mesh)
        self.assertAlmostEqual(prop.pose.scale, 0.5)

    def test_invalid_target_size(self) -> None:
        with self.assertRaises(ValueError):
            PropCatalog(target_size=0.0)


if __name__ == "__main__":
    unittest.main()
