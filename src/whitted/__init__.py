"""Taichi-based Whitted-style ray tracer.

Renders scenes of spheres, planes, disks, banded disks, triangles and
triangle meshes with diffuse and Phong lighting, hard shadows, mirror
reflection, refraction and an equirectangular environment map.

Subpackages:
    core: Rays, the shading engine and the frame renderer
    geometry: Shape records and ray-shape intersection
    materials: Material model and device material registry
    scene: Scene storage, nearest-hit query, scene files and OBJ import
    camera: Pinhole camera and primary ray generation
    preview: Tone mapping, Matplotlib preview and image export

Modules that declare Taichi fields must be imported after init():

    >>> import whitted
    >>> whitted.init("cpu")
    >>> from whitted.scene.loader import load_scene
    >>> from whitted.core.renderer import render
"""

from whitted.errors import NumericalInvariantError, SceneConfigError, WhittedError
from whitted.runtime import init

__version__ = "0.1.0"

__all__ = [
    "init",
    "WhittedError",
    "SceneConfigError",
    "NumericalInvariantError",
]
