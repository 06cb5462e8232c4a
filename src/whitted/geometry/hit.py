"""Intersection record shared by every shape variant."""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class RayHit:
    """Record of a ray-shape intersection.

    Attributes:
        hit: 1 if the ray intersected the shape, 0 on a miss.
        hit_distance: Parametric distance t >= 0 along the ray.
            Only valid if hit == 1.
        hit_point: The intersection point. Only valid if hit == 1.
        hit_normal: The surface normal at the intersection. Not guaranteed
            to face the ray. Only valid if hit == 1.
        material_id: Index of the material at the hit point, -1 on a miss.
    """

    hit: ti.i32
    hit_distance: ti.f32
    hit_point: vec3
    hit_normal: vec3
    material_id: ti.i32


@ti.func
def miss_record() -> RayHit:
    """Create a RayHit indicating no intersection."""
    return RayHit(
        hit=0,
        hit_distance=0.0,
        hit_point=vec3(0.0, 0.0, 0.0),
        hit_normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )
