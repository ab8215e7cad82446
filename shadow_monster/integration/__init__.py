"""Pipeline stages: rendering, contour tracing, extrusion and Blender export."""
