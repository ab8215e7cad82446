"""Command-line entry point: build the bedroom scene and grow a monster."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image

from shadow_monster.config import MonsterConfig, load_config
from shadow_monster.integration.mesh.snapshot import render_solid_image
from shadow_monster.pipeline import MonsterPipeline
from shadow_monster.scene.models import PropKind, ShadowLight
from shadow_monster.scene.room import FLASHLIGHT, PlacedItem, build_room_scene


def _parse_resolution(value: str) -> Tuple[int, int]:
    if "x" in value.lower():
        parts = value.lower().split("x", 1)
    elif "," in value:
        parts = value.split(",", 1)
    else:
        parts = [value]
    try:
        if len(parts) == 1:
            size = int(parts[0])
            return (size, size)
        return (int(parts[0]), int(parts[1]))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            "resolution must be N or WxH (e.g., 512 or 1024x1024)"
        ) from exc


def _parse_prop(value: str) -> PlacedItem:
    """Parse ``kind:x:y[:rotation_deg]`` (canvas coordinates)."""
    fields = value.split(":")
    if len(fields) not in (3, 4):
        raise argparse.ArgumentTypeError(
            "prop must be kind:x:y or kind:x:y:rotation (e.g., lamp:200:180)"
        )
    try:
        kind = PropKind(fields[0])
    except ValueError as exc:
        choices = ", ".join(k.value for k in PropKind)
        raise argparse.ArgumentTypeError(
            f"unknown prop kind {fields[0]!r} (choose from {choices})"
        ) from exc
    try:
        numbers = [float(v) for v in fields[1:]]
    except ValueError as exc:
        raise argparse.ArgumentTypeError("prop coordinates must be numbers") from exc
    return PlacedItem(
        item_id=f"{kind.value}-{value}",
        kind=kind,
        x=numbers[0],
        y=numbers[1],
        rotation_deg=numbers[2] if len(numbers) == 3 else 0.0,
    )


def _parse_vec3(value: str) -> Tuple[float, float, float]:
    try:
        x, y, z = (float(v) for v in value.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected x,y,z") from exc
    return (x, y, z)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="shadow_monster",
        description="Render a room's cast shadow and extrude it into a monster",
    )
    parser.add_argument(
        "--config-json",
        type=str,
        default=None,
        help='Inline JSON overrides for MonsterConfig (e.g. \'{"extrude": {"initial_depth": 4}}\')',
    )
    parser.add_argument(
        "--config-path",
        type=str,
        default=None,
        help="Path to JSON file with MonsterConfig overrides",
    )
    parser.add_argument(
        "--prop",
        dest="props",
        action="append",
        type=_parse_prop,
        default=[],
        help="Prop placed on the room canvas as kind:x:y[:rotation] (repeatable)",
    )
    parser.add_argument(
        "--light-position",
        type=_parse_vec3,
        default=None,
        help="Flashlight position x,y,z (default 0,5,10)",
    )
    parser.add_argument(
        "--resolution",
        type=_parse_resolution,
        default=None,
        help="Mask resolution (N or WxH); overrides render.resolution",
    )
    parser.add_argument(
        "--depth",
        type=float,
        default=None,
        help="Re-extrude to this depth after generation",
    )
    parser.add_argument(
        "--mask-out",
        type=Path,
        default=None,
        help="Write the shadow mask PNG here",
    )
    parser.add_argument(
        "--snapshot-out",
        type=Path,
        default=None,
        help="Write an RGBA snapshot PNG of the monster here",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not echo structured log lines",
    )
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> MonsterConfig:
    if args.config_json:
        config = MonsterConfig.from_dict(json.loads(args.config_json))
    else:
        config = load_config(args.config_path)
    if args.resolution is not None:
        config.render.resolution = args.resolution
        config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline once; returns a process exit code."""
    args = _parse_args(argv)
    config = _build_config(args)

    light = FLASHLIGHT
    if args.light_position is not None:
        light = ShadowLight(position=args.light_position, direction=FLASHLIGHT.direction)
    scene = build_room_scene(args.props, light=light)

    with MonsterPipeline(config, echo_logs=not args.quiet) as pipeline:
        result = pipeline.generate(scene)
        if result.ok and args.depth is not None:
            pipeline.set_depth(result, pipeline.controller.quantize(args.depth))

    if args.mask_out is not None and result.mask is not None:
        Image.fromarray(result.mask.pixels).save(args.mask_out)
    if args.snapshot_out is not None and result.solid is not None:
        rgba = render_solid_image(result.solid, config.snapshot)
        Image.fromarray(rgba).save(args.snapshot_out)

    print(json.dumps(result.manifest, indent=2))
    return 0 if result.ok else 1
