"""Infinite plane primitive.

A plane is defined by a point on it and its unit normal. Rays whose
direction is within PARALLEL_EPSILON of perpendicular to the normal are
treated as parallel and never hit, which keeps the distance division away
from near-zero denominators.
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, ray_at
from whitted.geometry.hit import RayHit

vec3 = tm.vec3

# |dot(normal, direction)| below this counts as parallel
PARALLEL_EPSILON = 1e-3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane (vec3).
        normal: Unit normal of the plane (vec3).
        material_id: Material index of the plane surface.
    """

    point: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def plane_distance(ray: Ray, point: vec3, normal: vec3):
    """Signed distance along the ray to a plane.

    Returns:
        A tuple (t, crosses). crosses is 0 when the ray is parallel to the
        plane, in which case t is meaningless.
    """
    denom = tm.dot(normal, ray.direction)
    t = 0.0
    crosses = 0
    if ti.abs(denom) >= PARALLEL_EPSILON:
        t = tm.dot(point - ray.origin, normal) / denom
        crosses = 1
    return t, crosses


@ti.func
def hit_plane(ray: Ray, plane: Plane) -> RayHit:
    """Test for ray-plane intersection.

    Args:
        ray: The ray to test.
        plane: The plane to test against.

    Returns:
        A RayHit carrying the plane normal as stored; misses when the ray
        is parallel or the plane lies behind the origin.
    """
    t, crosses = plane_distance(ray, plane.point, plane.normal)

    did_hit = 0
    hit_point = vec3(0.0, 0.0, 0.0)
    if crosses == 1 and not t < 0.0:
        did_hit = 1
        hit_point = ray_at(ray, t)

    return RayHit(
        hit=did_hit,
        hit_distance=t,
        hit_point=hit_point,
        hit_normal=plane.normal,
        material_id=plane.material_id,
    )
