"""Scene module.

Components:
    intersection: Device shape storage, nearest-hit query and diagnostics
    manager: Shape records and the Scene container
    loader: JSON scene files
    wavefront: OBJ import for meshes
    background: Environment map loading

Scene data is stored in Taichi fields as structure of arrays, one block per
shape variant, with mesh triangles in a shared pool.
"""

from .background import load_background, solid_background
from .intersection import RenderStats, scene_intersect
from .wavefront import WavefrontObj, load_obj, parse_obj

# Note: manager and loader are NOT imported here to avoid circular imports
# with whitted.core.shading. Import them directly:
#   from whitted.scene.manager import Scene
#   from whitted.scene.loader import load_scene

__all__ = [
    "RenderStats",
    "scene_intersect",
    "load_obj",
    "parse_obj",
    "WavefrontObj",
    "load_background",
    "solid_background",
]
