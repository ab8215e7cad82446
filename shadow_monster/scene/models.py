"""Immutable scene description consumed by the shadow renderer.

A ``SceneConfig`` is a value snapshot assembled by the room-building UI. It is
never mutated by rendering; every render call receives its own snapshot.

Coordinate conventions follow the room scene: +Y is up, the back wall faces
+Z, and cameras look along their local -Z axis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import singledispatch
import math
from typing import Hashable, Iterator, Optional, Tuple, Union

import numpy as np
from scipy.spatial.transform import Rotation

Vec3 = Tuple[float, float, float]


def _rotation_matrix(euler_xyz: Vec3) -> np.ndarray:
    return Rotation.from_euler("xyz", euler_xyz).as_matrix()


@dataclass(frozen=True)
class Pose:
    """Rigid placement with uniform scale (Euler angles in radians)."""

    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scale: float = 1.0

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise ValueError("Pose scale must be > 0")

    def rotation_matrix(self) -> np.ndarray:
        """3x3 rotation matrix for this pose."""
        return _rotation_matrix(self.rotation)

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform local (N, 3) points into world space."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        rotated = (points * self.scale) @ self.rotation_matrix().T
        return rotated + np.asarray(self.position, dtype=np.float64)


# --- geometry descriptors -------------------------------------------------


@dataclass(frozen=True)
class BoxGeometry:
    """Axis-aligned box centred on the local origin."""

    width: float
    height: float
    length: float

    @property
    def asset_key(self) -> Hashable:
        return self


@dataclass(frozen=True)
class PlaneGeometry:
    """Flat rectangle in the local XY plane, facing +Z."""

    width: float
    height: float

    @property
    def asset_key(self) -> Hashable:
        return self


@dataclass(frozen=True)
class SphereGeometry:
    """UV sphere centred on the local origin."""

    radius: float
    segments: int = 24
    rings: int = 12

    @property
    def asset_key(self) -> Hashable:
        return self


@dataclass(frozen=True, eq=False)
class MeshGeometry:
    """Explicit triangle mesh identified by an asset id.

    Two MeshGeometry values with the same ``asset_id`` are assumed to carry the
    same buffers; the id is the cache identity.
    """

    asset_id: str
    vertices: np.ndarray
    faces: np.ndarray

    def __post_init__(self) -> None:
        vertices = np.array(self.vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.array(self.faces, dtype=np.int64).reshape(-1, 3)
        if faces.size and (faces.min() < 0 or faces.max() >= len(vertices)):
            raise ValueError(f"MeshGeometry {self.asset_id!r} has out-of-range faces")
        vertices.setflags(write=False)
        faces.setflags(write=False)
        object.__setattr__(self, "vertices", vertices)
        object.__setattr__(self, "faces", faces)

    @property
    def asset_key(self) -> Hashable:
        return ("mesh", self.asset_id)


Geometry = Union[BoxGeometry, PlaneGeometry, SphereGeometry, MeshGeometry]


# --- scene elements (tagged variant) --------------------------------------


class PropKind(str, Enum):
    """Decorative props the room UI can place."""

    COAT_ON_CHAIR = "coatOnChair"
    BOX_STACK = "boxStack"
    LAMP = "lamp"
    HANGER = "hanger"
    BACKPACK = "backpack"
    CUSTOM_IMAGE = "customImage"


@dataclass(frozen=True)
class FixedRoomElement:
    """Part of the fixed room (bed, door, side walls)."""

    name: str
    geometry: Geometry
    pose: Pose = field(default_factory=Pose)
    casts_shadow: bool = True


@dataclass(frozen=True)
class MovableProp:
    """User-placed decorative prop."""

    prop_id: str
    kind: PropKind
    geometry: Geometry
    pose: Pose = field(default_factory=Pose)
    casts_shadow: bool = True


@dataclass(frozen=True)
class DecorativeLight:
    """Light placed for ambience; never casts the monster shadow."""

    name: str
    pose: Pose = field(default_factory=Pose)
    intensity: float = 0.0


SceneElement = Union[FixedRoomElement, MovableProp, DecorativeLight]


@singledispatch
def shadow_caster(element: object) -> Optional[Tuple[Geometry, Pose]]:
    """Return (geometry, pose) when the element casts a shadow, else None."""
    raise TypeError(f"Unsupported scene element: {type(element).__name__}")


@shadow_caster.register
def _(element: FixedRoomElement) -> Optional[Tuple[Geometry, Pose]]:
    return (element.geometry, element.pose) if element.casts_shadow else None


@shadow_caster.register
def _(element: MovableProp) -> Optional[Tuple[Geometry, Pose]]:
    return (element.geometry, element.pose) if element.casts_shadow else None


@shadow_caster.register
def _(element: DecorativeLight) -> Optional[Tuple[Geometry, Pose]]:
    return None


# --- camera, light, backdrop ----------------------------------------------


@dataclass(frozen=True)
class CameraPose:
    """Pinhole camera looking along its local -Z axis with +Y up."""

    position: Vec3 = (0.0, 5.0, 10.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return world-space (right, up, forward) unit vectors."""
        rot = _rotation_matrix(self.rotation)
        return rot[:, 0], rot[:, 1], -rot[:, 2]


_VALID_LIGHT_KINDS = {"point", "spot", "directional"}


@dataclass(frozen=True)
class ShadowLight:
    """The single light whose cast shadow becomes the monster.

    ``point`` and ``spot`` lights project shadows centrally from
    ``position``; ``directional`` lights project along ``direction``. A
    ``spot`` only lights the cone of full angle ``spot_angle_deg`` around
    ``direction``, so nothing outside it casts a shadow.
    """

    position: Vec3 = (0.0, 5.0, 10.0)
    direction: Vec3 = (0.0, 0.0, -1.0)
    kind: str = "spot"
    spot_angle_deg: float = 60.0

    def __post_init__(self) -> None:
        if self.kind not in _VALID_LIGHT_KINDS:
            raise ValueError(f"light kind must be one of {_VALID_LIGHT_KINDS}")
        if self.kind != "point" and not np.any(np.asarray(self.direction)):
            raise ValueError(f"{self.kind} light needs a non-zero direction")
        if not (0.0 < self.spot_angle_deg < 180.0):
            raise ValueError("spot_angle_deg must be in (0, 180)")

    @property
    def is_positional(self) -> bool:
        return self.kind != "directional"

    def unit_direction(self) -> np.ndarray:
        vec = np.asarray(self.direction, dtype=np.float64)
        return vec / np.linalg.norm(vec)

    def illuminates(self, points: np.ndarray) -> np.ndarray:
        """Boolean (N,) mask of world points inside the light's reach."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if self.kind != "spot":
            return np.ones(len(pts), dtype=bool)
        rel = pts - np.asarray(self.position, dtype=np.float64)
        dist = np.linalg.norm(rel, axis=1)
        cos_limit = math.cos(math.radians(self.spot_angle_deg / 2.0))
        return (rel @ self.unit_direction()) >= cos_limit * dist - 1e-12


@dataclass(frozen=True)
class Backdrop:
    """Flat rectangular surface that receives the cast shadow."""

    center: Vec3 = (0.0, 0.5, -5.5)
    width: float = 20.0
    height: float = 12.0
    rotation: Vec3 = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if not (self.width > 0 and self.height > 0):
            raise ValueError("Backdrop width and height must be > 0")

    def frame(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return (origin, u_axis, v_axis, normal) in world space."""
        rot = _rotation_matrix(self.rotation)
        return (
            np.asarray(self.center, dtype=np.float64),
            rot[:, 0],
            rot[:, 1],
            rot[:, 2],
        )


@dataclass(frozen=True)
class SceneConfig:
    """Snapshot of everything the renderer needs for one request."""

    camera: CameraPose = field(default_factory=CameraPose)
    light: Optional[ShadowLight] = None
    backdrop: Optional[Backdrop] = None
    elements: Tuple[SceneElement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))

    def shadow_casters(self) -> Iterator[Tuple[Geometry, Pose]]:
        """Yield (geometry, pose) for every shadow-casting element."""
        for element in self.elements:
            caster = shadow_caster(element)
            if caster is not None:
                yield caster

    def props(self) -> Tuple[MovableProp, ...]:
        return tuple(e for e in self.elements if isinstance(e, MovableProp))

    def with_elements(self, *elements: SceneElement) -> "SceneConfig":
        """Return a copy with extra elements appended."""
        return SceneConfig(
            camera=self.camera,
            light=self.light,
            backdrop=self.backdrop,
            elements=self.elements + tuple(elements),
        )
