"""Sphere primitive with analytic ray-sphere intersection.

The intersection projects the sphere center onto the ray, rejects the ray
when its perpendicular distance to the center exceeds the radius, and then
picks the nearer of the two roots that is not behind the origin.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -5), radius=1.0, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, ray_at
from whitted.geometry.hit import RayHit

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        material_id: Material index of the sphere surface.
    """

    center: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere) -> RayHit:
    """Test for ray-sphere intersection.

    With L = center - origin, tca = dot(L, direction) is the distance along
    the ray to the projection of the center and d2 = |L|^2 - tca^2 the
    squared distance between that projection and the center. The ray hits
    when d2 <= radius^2 at t = tca -/+ sqrt(radius^2 - d2).

    Assumes a unit-length ray direction.

    Args:
        ray: The ray to test.
        sphere: The sphere to test against.

    Returns:
        A RayHit for the smaller non-negative root, or for the larger root
        when the origin is inside the sphere. The normal points away from
        the center.
    """
    to_center = sphere.center - ray.origin
    tca = tm.dot(to_center, ray.direction)
    d2 = tm.dot(to_center, to_center) - tca * tca
    r2 = sphere.radius * sphere.radius

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if not d2 > r2:
        thc = ti.sqrt(r2 - d2)
        t = tca - thc
        if t < 0.0:
            t = tca + thc

        if not t < 0.0:
            did_hit = 1
            hit_t = t
            hit_point = ray_at(ray, t)
            hit_normal = tm.normalize(hit_point - sphere.center)

    return RayHit(
        hit=did_hit,
        hit_distance=hit_t,
        hit_point=hit_point,
        hit_normal=hit_normal,
        material_id=sphere.material_id,
    )
