"""Default bedroom scene and prop placement from 2D room-builder coordinates."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from shadow_monster.scene.models import (
    Backdrop,
    BoxGeometry,
    CameraPose,
    DecorativeLight,
    FixedRoomElement,
    Geometry,
    MeshGeometry,
    MovableProp,
    Pose,
    PropKind,
    SceneConfig,
    ShadowLight,
    SphereGeometry,
    Vec3,
)
from shadow_monster.scene.primitives import GeometryCache, bounding_size

# Room-builder canvas coordinates are centred on (200, 200), 20 px per unit.
UI_CANVAS_CENTER = (200.0, 200.0)
UI_PIXELS_PER_UNIT = 20.0
PROP_TARGET_SIZE = 3.0

ROOM_CAMERA = CameraPose(position=(0.0, 5.0, 10.0), rotation=(-0.1, 0.0, 0.0))
FLASHLIGHT = ShadowLight(position=(0.0, 5.0, 10.0), direction=(0.0, 0.0, -1.0))
BACK_WALL = Backdrop(center=(0.0, 0.5, -5.5), width=20.0, height=12.0)

_QUARTER_TURN = (0.0, math.pi / 2.0, 0.0)


def room_fixtures() -> Tuple[FixedRoomElement, ...]:
    """Fixed furniture of the bedroom (walls receive but never cast)."""
    return (
        FixedRoomElement(
            name="wall_left",
            geometry=BoxGeometry(10.0, 12.0, 1.0),
            pose=Pose(position=(-8.0, 0.5, -1.0), rotation=_QUARTER_TURN),
            casts_shadow=False,
        ),
        FixedRoomElement(
            name="wall_right",
            geometry=BoxGeometry(10.0, 12.0, 1.0),
            pose=Pose(position=(8.0, 0.5, -1.0), rotation=_QUARTER_TURN),
            casts_shadow=False,
        ),
        FixedRoomElement(
            name="bed",
            geometry=BoxGeometry(4.0, 1.0, 2.0),
            pose=Pose(position=(-4.0, 1.0, 0.0), rotation=_QUARTER_TURN),
        ),
        FixedRoomElement(
            name="door",
            geometry=BoxGeometry(2.0, 4.0, 0.1),
            pose=Pose(position=(7.5, 2.0, 0.0), rotation=_QUARTER_TURN),
        ),
    )


# Primitive stand-ins for the decorative prop assets.
DEFAULT_PROP_GEOMETRY: Dict[PropKind, Geometry] = {
    PropKind.COAT_ON_CHAIR: BoxGeometry(1.0, 2.0, 1.0),
    PropKind.BOX_STACK: BoxGeometry(1.2, 1.8, 1.2),
    PropKind.LAMP: SphereGeometry(0.6),
    PropKind.HANGER: BoxGeometry(1.5, 0.2, 0.1),
    PropKind.BACKPACK: BoxGeometry(0.9, 1.2, 0.5),
}


@dataclass(frozen=True)
class PlacedItem:
    """A prop or light dropped on the 2D room-builder canvas."""

    item_id: str
    kind: PropKind
    x: float
    y: float
    rotation_deg: float = 0.0


class PropCatalog:
    """Resolve prop kinds to geometry and size-normalized poses."""

    def __init__(
        self,
        geometry: Optional[Mapping[PropKind, Geometry]] = None,
        cache: Optional[GeometryCache] = None,
        target_size: float = PROP_TARGET_SIZE,
    ) -> None:
        if target_size <= 0:
            raise ValueError("target_size must be > 0")
        self.geometry: Dict[PropKind, Geometry] = dict(
            DEFAULT_PROP_GEOMETRY if geometry is None else geometry
        )
        self.cache = cache or GeometryCache()
        self.target_size = target_size

    def register(self, kind: PropKind, mesh: MeshGeometry) -> None:
        """Use an explicit mesh for a prop kind (e.g. a custom image prop)."""
        self.geometry[kind] = mesh

    def normalized_scale(self, geometry: Geometry) -> float:
        """Uniform scale so the largest dimension equals the target size."""
        vertices, _ = self.cache.get(geometry)
        max_dimension = float(bounding_size(vertices).max()) if len(vertices) else 0.0
        if max_dimension <= 0.0:
            return 1.0
        return self.target_size / max_dimension

    def place(self, item: PlacedItem) -> Optional[MovableProp]:
        """Build a MovableProp standing on the floor, or None if unknown."""
        geometry = self.geometry.get(item.kind)
        if geometry is None:
            return None

        scale = self.normalized_scale(geometry)
        vertices, _ = self.cache.get(geometry)
        floor_offset = -float(vertices[:, 1].min()) * scale if len(vertices) else 0.0
        x, z = ui_to_floor(item.x, item.y)
        return MovableProp(
            prop_id=item.item_id,
            kind=item.kind,
            geometry=geometry,
            pose=Pose(
                position=(x, floor_offset, z),
                rotation=(0.0, math.radians(item.rotation_deg), 0.0),
                scale=scale,
            ),
        )


def ui_to_floor(x: float, y: float) -> Tuple[float, float]:
    """Map room-builder canvas coordinates to floor (x, z)."""
    cx, cy = UI_CANVAS_CENTER
    return (x - cx) / UI_PIXELS_PER_UNIT, (y - cy) / UI_PIXELS_PER_UNIT


def build_room_scene(
    props: Iterable[PlacedItem] = (),
    *,
    lights: Sequence[Tuple[str, Vec3]] = (),
    light: Optional[ShadowLight] = FLASHLIGHT,
    backdrop: Optional[Backdrop] = BACK_WALL,
    camera: CameraPose = ROOM_CAMERA,
    catalog: Optional[PropCatalog] = None,
) -> SceneConfig:
    """Assemble the bedroom SceneConfig from user-placed props and lights."""
    catalog = catalog or PropCatalog()
    elements = list(room_fixtures())
    for item in props:
        prop = catalog.place(item)
        if prop is not None:
            elements.append(prop)
    for name, position in lights:
        elements.append(DecorativeLight(name=name, pose=Pose(position=position)))
    return SceneConfig(camera=camera, light=light, backdrop=backdrop, elements=elements)
