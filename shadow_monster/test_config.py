"""Tests for configuration defaults and validation (pure Python)."""

from __future__ import annotations

import json
import os
import tempfile
import unittest

from shadow_monster.config import (
    ContourExtractConfig,
    ExtrudeConfig,
    ExtrusionControlConfig,
    MonsterConfig,
    NormalizeConfig,
    RenderConfig,
    SnapshotConfig,
    load_config,
)


class TestConfigDefaults(unittest.TestCase):
    def test_defaults_validate(self) -> None:
        config = MonsterConfig()
        config.validate()
        self.assertEqual(config.render.resolution, (2048, 2048))
        self.assertEqual(config.render.shadow_value, 26)
        self.assertEqual(config.contours.contour_mode, "ccomp")
        self.assertEqual(config.normalize.canonical_extent, 100.0)
        self.assertEqual(config.normalize.secondary_policy, "drop")
        self.assertEqual(config.extrude.initial_depth, 1.0)
        self.assertEqual(
            (config.control.min_depth, config.control.max_depth, config.control.step),
            (1.0, 20.0, 0.1),
        )

    def test_to_dict_json_safe(self) -> None:
        payload = MonsterConfig().to_dict()
        json.dumps(payload)
        self.assertEqual(
            set(payload),
            {"render", "contours", "normalize", "extrude", "control", "snapshot"},
        )


class TestConfigValidation(unittest.TestCase):
    def test_invalid_render_resolution(self) -> None:
        with self.assertRaises(ValueError):
            RenderConfig(resolution=(4, 4)).validate()

    def test_invalid_projection(self) -> None:
        with self.assertRaises(ValueError):
            RenderConfig(projection="fisheye").validate()

    def test_shadow_must_be_darker(self) -> None:
        with self.assertRaises(ValueError):
            RenderConfig(lit_value=20, shadow_value=200).validate()

    def test_invalid_threshold(self) -> None:
        with self.assertRaises(ValueError):
            ContourExtractConfig(threshold=300).validate()

    def test_invalid_contour_mode(self) -> None:
        with self.assertRaises(ValueError):
            ContourExtractConfig(contour_mode="hierarchy").validate()

    def test_invalid_secondary_policy(self) -> None:
        with self.assertRaises(ValueError):
            NormalizeConfig(secondary_policy="merge").validate()

    def test_invalid_initial_depth(self) -> None:
        with self.assertRaises(ValueError):
            ExtrudeConfig(initial_depth=0.0).validate()

    def test_invalid_control_range(self) -> None:
        with self.assertRaises(ValueError):
            ExtrusionControlConfig(min_depth=5.0, max_depth=2.0).validate()

    def test_invalid_snapshot_color(self) -> None:
        with self.assertRaises(ValueError):
            SnapshotConfig(color=(300, 0, 0)).validate()

    def test_initial_depth_outside_control_range(self) -> None:
        config = MonsterConfig()
        config.extrude.initial_depth = 50.0
        with self.assertRaises(ValueError):
            config.validate()


class TestConfigOverrides(unittest.TestCase):
    def test_from_dict_applies_overrides(self) -> None:
        config = MonsterConfig.from_dict(
            {"render": {"resolution": [256, 128]}, "extrude": {"initial_depth": 4.0}}
        )
        self.assertEqual(config.render.resolution, (256, 128))
        self.assertEqual(config.extrude.initial_depth, 4.0)

    def test_from_dict_rejects_unknown_group(self) -> None:
        with self.assertRaises(ValueError):
            MonsterConfig.from_dict({"lighting": {}})

    def test_from_dict_rejects_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            MonsterConfig.from_dict({"render": {"samples": 4}})

    def test_load_config_from_file(self) -> None:
        handle, path = tempfile.mkstemp(suffix=".json")
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as out:
                json.dump({"contours": {"threshold": 100}}, out)
            config = load_config(path)
        finally:
            os.remove(path)
        self.assertEqual(config.contours.threshold, 100)

    def test_load_config_defaults(self) -> None:
        self.assertEqual(load_config().to_dict(), MonsterConfig().to_dict())


if __name__ == "__main__":
    unittest.main()
