"""Triangle primitive with Moller-Trumbore intersection.

A Polygon stores its first vertex, the two edges leaving it, and its normal.
These derived quantities are computed once on the host (see
whitted.scene.manager.PolygonInfo) so the kernel never recomputes them.

The normal is (v0 - v1) x (v2 - v1) exactly as computed at construction. It
is not normalised and every hit on the triangle reports the same vector.
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, ray_at
from whitted.geometry.hit import RayHit

vec3 = tm.vec3

# |det| below this counts as a ray parallel to the triangle plane
DETERMINANT_EPSILON = 1e-3


@ti.dataclass
class Polygon:
    """A triangle with cached edges and normal.

    Attributes:
        vertex_0: First vertex (vec3).
        edge_1: vertex_1 - vertex_0 (vec3).
        edge_2: vertex_2 - vertex_0 (vec3).
        normal: (vertex_0 - vertex_1) x (vertex_2 - vertex_1), not normalised.
        material_id: Material index of the triangle.
    """

    vertex_0: vec3
    edge_1: vec3
    edge_2: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def hit_polygon(ray: Ray, polygon: Polygon) -> RayHit:
    """Test for ray-triangle intersection.

    Moller-Trumbore setup: pvec = direction x edge_2, det = edge_1 . pvec,
    then the barycentric coordinates u and v of the crossing point. The hit
    is valid for u in [0, 1], v >= 0 and u + v <= 1.

    The distance reported is u itself, not the parametric t of the plane
    crossing, and the hit point is taken at that distance along the ray.
    Nothing rejects a triangle lying behind the origin: a triangle that
    passes the barycentric test always hits at a distance in [0, 1].

    Args:
        ray: The ray to test.
        polygon: The triangle to test against.

    Returns:
        A RayHit carrying the triangle's cached normal.
    """
    pvec = tm.cross(ray.direction, polygon.edge_2)
    det = tm.dot(polygon.edge_1, pvec)

    did_hit = 0
    hit_u = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)

    if ti.abs(det) >= DETERMINANT_EPSILON:
        inv_det = 1.0 / det
        tvec = ray.origin - polygon.vertex_0
        u = tm.dot(tvec, pvec) * inv_det
        qvec = tm.cross(tvec, polygon.edge_1)
        v = tm.dot(ray.direction, qvec) * inv_det

        inside = 1
        if u < 0.0 or u > 1.0:
            inside = 0
        if v < 0.0 or u + v > 1.0:
            inside = 0

        if inside == 1:
            did_hit = 1
            hit_u = u
            hit_point = ray_at(ray, u)

    return RayHit(
        hit=did_hit,
        hit_distance=hit_u,
        hit_point=hit_point,
        hit_normal=polygon.normal,
        material_id=polygon.material_id,
    )
