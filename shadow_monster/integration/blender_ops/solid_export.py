"""Blender bridge: mirror a Solid as mesh objects and keep them in sync."""

from __future__ import annotations

from typing import List, Optional

from shadow_monster.integration.mesh.solid import Solid
from shadow_monster.utils.generation_context import GenerationContext
from shadow_monster.utils.manifest import apply_object_tags

try:
    import bpy

    BLENDER_AVAILABLE = True
except ImportError:
    BLENDER_AVAILABLE = False


PART_INDEX_KEY = "monster_part_index"


def _mesh_for(solid: Solid, name: str):
    vertices, faces = solid.read_geometry()
    mesh = bpy.data.meshes.new(name)
    mesh.from_pydata(vertices.tolist(), [], faces.tolist())
    mesh.update()
    return mesh


def create_object_from_solid(
    solid: Solid,
    name: Optional[str] = None,
    context: Optional[GenerationContext] = None,
) -> Optional[object]:
    """
    Create Blender objects for a solid; parts become child objects.

    Args:
        solid: Root solid
        name: Object name (defaults to the solid's name)
        context: Optional run context used to tag the objects

    Returns:
        Root Blender object, or None if Blender is not available
    """
    if not BLENDER_AVAILABLE:
        print("Warning: Blender API not available")
        return None

    root_obj = None
    for index, part in enumerate(solid.iter_solids()):
        obj_name = (name or solid.name) if index == 0 else part.name
        obj = bpy.data.objects.new(obj_name, _mesh_for(part, obj_name))
        bpy.context.collection.objects.link(obj)
        obj[PART_INDEX_KEY] = index
        if root_obj is None:
            root_obj = obj
        else:
            obj.parent = root_obj
        if context is not None:
            apply_object_tags(
                obj,
                role="monster" if index == 0 else "monster_part",
                context=context,
                index=index,
                params={"depth": part.depth},
            )
    return root_obj


def _objects_by_part(root_obj) -> List[object]:
    children = sorted(root_obj.children, key=lambda o: o.get(PART_INDEX_KEY, 0))
    return [root_obj] + children


def sync_object_vertices(root_obj, solid: Solid) -> int:
    """Copy current vertex positions of a solid (and parts) into its objects.

    Returns:
        Number of objects updated
    """
    if not BLENDER_AVAILABLE or root_obj is None:
        return 0

    updated = 0
    for obj, part in zip(_objects_by_part(root_obj), solid.iter_solids()):
        vertices, _ = part.read_geometry()
        mesh = obj.data
        if len(mesh.vertices) != len(vertices):
            raise ValueError(
                f"{obj.name}: vertex count changed "
                f"({len(mesh.vertices)} != {len(vertices)})"
            )
        mesh.vertices.foreach_set("co", vertices.ravel().tolist())
        mesh.update()
        updated += 1
    return updated
