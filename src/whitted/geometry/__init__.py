"""Geometry module for shape primitives.

Each shape variant is a Taichi dataclass with a hit_* function returning a
RayHit for the nearest intersection at a non-negative distance:

    rec = hit_sphere(ray, sphere)
    if rec.hit == 1:
        ...
"""

from .disk import CheckerDisk, Disk, hit_checker_disk, hit_disk
from .hit import RayHit, miss_record
from .mesh import Mesh, hit_bounding_box
from .plane import PARALLEL_EPSILON, Plane, hit_plane, plane_distance
from .polygon import DETERMINANT_EPSILON, Polygon, hit_polygon
from .sphere import Sphere, hit_sphere

__all__ = [
    "RayHit",
    "miss_record",
    "Sphere",
    "hit_sphere",
    "Plane",
    "hit_plane",
    "plane_distance",
    "PARALLEL_EPSILON",
    "Disk",
    "CheckerDisk",
    "hit_disk",
    "hit_checker_disk",
    "Polygon",
    "hit_polygon",
    "DETERMINANT_EPSILON",
    "Mesh",
    "hit_bounding_box",
]
