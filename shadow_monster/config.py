"""Configuration models for the shadow monster pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union


_VALID_PROJECTIONS = {"backdrop", "perspective"}
_VALID_CONTOUR_MODES = {"external", "ccomp", "list", "tree"}
_VALID_CHAIN_MODES = {"none", "simple"}
_VALID_SECONDARY_POLICIES = {"drop", "parts"}


@dataclass
class RenderConfig:
    """Configuration for rendering the shadow mask."""

    resolution: Tuple[int, int] = (2048, 2048)
    projection: str = "backdrop"
    lit_value: int = 255
    shadow_value: int = 26
    shadow_softness_px: int = 0
    subpixel_bits: int = 4
    field_of_view_deg: float = 60.0

    def validate(self) -> None:
        """Validate configuration values."""
        if len(self.resolution) != 2:
            raise ValueError("resolution must be a (width, height) tuple")
        if any(val < 8 for val in self.resolution):
            raise ValueError("resolution values must be >= 8")
        if self.projection not in _VALID_PROJECTIONS:
            raise ValueError(f"projection must be one of {_VALID_PROJECTIONS}")
        if not (0 <= self.lit_value <= 255) or not (0 <= self.shadow_value <= 255):
            raise ValueError("lit_value and shadow_value must be in [0, 255]")
        if self.shadow_value >= self.lit_value:
            raise ValueError("shadow_value must be darker than lit_value")
        if self.shadow_softness_px < 0:
            raise ValueError("shadow_softness_px must be >= 0")
        if not (0 <= self.subpixel_bits <= 8):
            raise ValueError("subpixel_bits must be in [0, 8]")
        if not (0.0 < self.field_of_view_deg < 180.0):
            raise ValueError("field_of_view_deg must be in (0, 180)")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "resolution": list(self.resolution),
            "projection": self.projection,
            "lit_value": self.lit_value,
            "shadow_value": self.shadow_value,
            "shadow_softness_px": self.shadow_softness_px,
            "subpixel_bits": self.subpixel_bits,
            "field_of_view_deg": self.field_of_view_deg,
        }


@dataclass
class ContourExtractConfig:
    """Configuration for tracing shadow contours in a mask."""

    threshold: int = 127
    contour_mode: str = "ccomp"
    chain_mode: str = "simple"
    morph_close_px: int = 0
    morph_open_px: int = 0

    def validate(self) -> None:
        """Validate configuration values."""
        if not (0 <= self.threshold <= 255):
            raise ValueError("threshold must be in [0, 255]")
        if self.contour_mode not in _VALID_CONTOUR_MODES:
            raise ValueError(f"contour_mode must be one of {_VALID_CONTOUR_MODES}")
        if self.chain_mode not in _VALID_CHAIN_MODES:
            raise ValueError(f"chain_mode must be one of {_VALID_CHAIN_MODES}")
        if self.morph_close_px < 0 or self.morph_open_px < 0:
            raise ValueError("morph_close_px and morph_open_px must be >= 0")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "threshold": self.threshold,
            "contour_mode": self.contour_mode,
            "chain_mode": self.chain_mode,
            "morph_close_px": self.morph_close_px,
            "morph_open_px": self.morph_open_px,
        }


@dataclass
class NormalizeConfig:
    """Configuration for mapping contours into canonical space."""

    canonical_extent: float = 100.0
    secondary_policy: str = "drop"
    min_part_area_frac: float = 0.05

    def validate(self) -> None:
        """Validate configuration values."""
        if self.canonical_extent <= 0:
            raise ValueError("canonical_extent must be > 0")
        if self.secondary_policy not in _VALID_SECONDARY_POLICIES:
            raise ValueError(
                f"secondary_policy must be one of {_VALID_SECONDARY_POLICIES}"
            )
        if not (0.0 <= self.min_part_area_frac <= 1.0):
            raise ValueError("min_part_area_frac must be in [0, 1]")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "canonical_extent": self.canonical_extent,
            "secondary_policy": self.secondary_policy,
            "min_part_area_frac": self.min_part_area_frac,
        }


@dataclass
class ExtrudeConfig:
    """Configuration for prism extrusion of canonical polygons."""

    initial_depth: float = 1.0

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.initial_depth > 0:
            raise ValueError("initial_depth must be > 0")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {"initial_depth": self.initial_depth}


@dataclass
class ExtrusionControlConfig:
    """Range of the live extrusion depth control (slider semantics)."""

    min_depth: float = 1.0
    max_depth: float = 20.0
    step: float = 0.1

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.min_depth > 0:
            raise ValueError("min_depth must be > 0")
        if self.max_depth < self.min_depth:
            raise ValueError("max_depth must be >= min_depth")
        if self.step < 0:
            raise ValueError("step must be >= 0")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "min_depth": self.min_depth,
            "max_depth": self.max_depth,
            "step": self.step,
        }


@dataclass
class SnapshotConfig:
    """Configuration for rasterizing a finished solid."""

    resolution: Tuple[int, int] = (512, 512)
    distance_factor: float = 2.5
    field_of_view_deg: float = 60.0
    color: Tuple[int, int, int] = (220, 30, 30)
    ambient: float = 0.25

    def validate(self) -> None:
        """Validate configuration values."""
        if len(self.resolution) != 2:
            raise ValueError("resolution must be a (width, height) tuple")
        if any(val < 32 for val in self.resolution):
            raise ValueError("resolution values must be >= 32")
        if self.distance_factor <= 0:
            raise ValueError("distance_factor must be > 0")
        if not (0.0 < self.field_of_view_deg < 180.0):
            raise ValueError("field_of_view_deg must be in (0, 180)")
        if len(self.color) != 3 or any(not (0 <= c <= 255) for c in self.color):
            raise ValueError("color must be RGB with values in [0, 255]")
        if not (0.0 <= self.ambient <= 1.0):
            raise ValueError("ambient must be in [0, 1]")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "resolution": list(self.resolution),
            "distance_factor": self.distance_factor,
            "field_of_view_deg": self.field_of_view_deg,
            "color": list(self.color),
            "ambient": self.ambient,
        }


@dataclass
class MonsterConfig:
    """Root configuration for the shadow-to-monster workflow."""

    render: RenderConfig = field(default_factory=RenderConfig)
    contours: ContourExtractConfig = field(default_factory=ContourExtractConfig)
    normalize: NormalizeConfig = field(default_factory=NormalizeConfig)
    extrude: ExtrudeConfig = field(default_factory=ExtrudeConfig)
    control: ExtrusionControlConfig = field(default_factory=ExtrusionControlConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)

    def validate(self) -> None:
        """Validate configuration values across groups."""
        self.render.validate()
        self.contours.validate()
        self.normalize.validate()
        self.extrude.validate()
        self.control.validate()
        self.snapshot.validate()

        if not (
            self.control.min_depth
            <= self.extrude.initial_depth
            <= self.control.max_depth
        ):
            raise ValueError("extrude.initial_depth must lie inside the control range")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "render": self.render.to_dict(),
            "contours": self.contours.to_dict(),
            "normalize": self.normalize.to_dict(),
            "extrude": self.extrude.to_dict(),
            "control": self.control.to_dict(),
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, overrides: Dict[str, Any]) -> "MonsterConfig":
        """Build a config from defaults plus per-group overrides."""
        config = cls()
        group_names = {f.name for f in fields(cls)}
        unknown = set(overrides) - group_names
        if unknown:
            raise ValueError(f"Unknown config groups: {sorted(unknown)}")

        for group_name, values in overrides.items():
            group = getattr(config, group_name)
            valid_keys = {f.name for f in fields(group)}
            invalid = set(values) - valid_keys
            if invalid:
                raise ValueError(
                    f"{group_name} has invalid keys: {sorted(invalid)}"
                )
            for key, value in values.items():
                if isinstance(value, list):
                    value = tuple(value)
                setattr(group, key, value)

        config.validate()
        return config


def load_config(config_path: Optional[Union[str, Path]] = None) -> MonsterConfig:
    """Load a MonsterConfig from a JSON override file (defaults when None)."""
    if config_path is None:
        return MonsterConfig()
    with open(config_path, "r", encoding="utf-8") as handle:
        overrides = json.load(handle)
    return MonsterConfig.from_dict(overrides)
