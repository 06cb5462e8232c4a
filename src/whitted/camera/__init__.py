"""Camera module for primary ray generation.

Components:
    pinhole: Fixed pinhole camera at the origin looking down -z
"""

from .pinhole import PinholeCamera, fov_from_degrees, primary_ray_direction

__all__ = [
    "PinholeCamera",
    "fov_from_degrees",
    "primary_ray_direction",
]
