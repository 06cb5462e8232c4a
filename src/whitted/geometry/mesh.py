"""Triangle mesh bounds and the slab test.

A Mesh is a contiguous run of triangles in the scene's triangle pool plus
an axis-aligned bounding box over its vertices. The box is the only
acceleration structure: a ray that misses it never reaches the triangles.
The per-triangle loop itself lives in whitted.scene.intersection, next to
the triangle pool it iterates.
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray

vec3 = tm.vec3


@ti.dataclass
class Mesh:
    """A triangle mesh entry.

    Attributes:
        bounds_min: Minimum corner of the bounding box (vec3).
        bounds_max: Maximum corner of the bounding box (vec3).
        first_triangle: Index of the mesh's first triangle in the pool.
        triangle_count: Number of triangles belonging to the mesh.
    """

    bounds_min: vec3
    bounds_max: vec3
    first_triangle: ti.i32
    triangle_count: ti.i32


@ti.func
def hit_bounding_box(ray: Ray, bounds_min: vec3, bounds_max: vec3) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    For each axis the ray enters and leaves the slab between the two
    bounding planes at (bound - origin) * inv_direction. The box is hit when
    the latest entry is not after the earliest exit and the exit is not
    behind the origin.

    Args:
        ray: The ray to test; its inv_direction must be current.
        bounds_min: Minimum corner of the box.
        bounds_max: Maximum corner of the box.

    Returns:
        1 if the ray's path crosses the box, 0 otherwise.
    """
    t_lower = (bounds_min - ray.origin) * ray.inv_direction
    t_upper = (bounds_max - ray.origin) * ray.inv_direction

    t_near = tm.min(t_lower, t_upper)
    t_far = tm.max(t_lower, t_upper)

    t_min = ti.max(t_near.x, t_near.y, t_near.z)
    t_max = ti.min(t_far.x, t_far.y, t_far.z)

    result = 1
    if t_max < 0.0 or t_min > t_max:
        result = 0
    return result
