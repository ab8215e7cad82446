"""Shadow mask rendering."""

from .mask_camera import BackdropCamera, PerspectiveCamera
from .shadow_renderer import SceneRenderer, project_onto_backdrop

__all__ = [
    "BackdropCamera",
    "PerspectiveCamera",
    "SceneRenderer",
    "project_onto_backdrop",
]
