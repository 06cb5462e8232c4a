"""Bounded planar disks.

Disk is a plane intersection followed by a radius check around the center.
CheckerDisk shares the geometry and alternates between two materials in
concentric bands: the hit point's distance from the center, taken modulo
the band period, selects material1 when it exceeds half the period and
material2 otherwise.
"""

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, ray_at
from whitted.geometry.hit import RayHit
from whitted.geometry.plane import plane_distance

vec3 = tm.vec3


@ti.dataclass
class Disk:
    """A disk defined by center, unit normal and radius.

    Attributes:
        center: The center of the disk (vec3).
        normal: Unit normal of the disk plane (vec3).
        radius: The disk radius.
        material_id: Material index of the disk surface.
    """

    center: vec3
    normal: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.dataclass
class CheckerDisk:
    """A disk with two materials alternating in concentric bands.

    Attributes:
        center: The center of the disk (vec3).
        normal: Unit normal of the disk plane (vec3).
        radius: The disk radius.
        period: Width of one pair of bands.
        material1_id: Material of the outer half of each band.
        material2_id: Material of the inner half of each band.
    """

    center: vec3
    normal: vec3
    radius: ti.f32
    period: ti.f32
    material1_id: ti.i32
    material2_id: ti.i32


@ti.func
def _hit_disk_surface(ray: Ray, center: vec3, normal: vec3, radius: ti.f32):
    """Shared disk test.

    Returns:
        A tuple (did_hit, t, hit_point, distance_to_center).
    """
    t, crosses = plane_distance(ray, center, normal)

    did_hit = 0
    hit_point = vec3(0.0, 0.0, 0.0)
    distance_to_center = 0.0
    if crosses == 1 and not t < 0.0:
        hit_point = ray_at(ray, t)
        distance_to_center = tm.length(hit_point - center)
        if not distance_to_center > radius:
            did_hit = 1

    return did_hit, t, hit_point, distance_to_center


@ti.func
def hit_disk(ray: Ray, disk: Disk) -> RayHit:
    """Test for ray-disk intersection.

    Args:
        ray: The ray to test.
        disk: The disk to test against.

    Returns:
        A RayHit; misses when the ray is parallel, the disk plane is behind
        the origin, or the plane hit lies outside the radius.
    """
    did_hit, t, hit_point, _ = _hit_disk_surface(ray, disk.center, disk.normal, disk.radius)
    return RayHit(
        hit=did_hit,
        hit_distance=t,
        hit_point=hit_point,
        hit_normal=disk.normal,
        material_id=disk.material_id,
    )


@ti.func
def hit_checker_disk(ray: Ray, disk: CheckerDisk) -> RayHit:
    """Test for ray-checker-disk intersection and pick the band material.

    Args:
        ray: The ray to test.
        disk: The checker disk to test against.

    Returns:
        A RayHit whose material_id depends on the radial band of the hit.
    """
    did_hit, t, hit_point, distance_to_center = _hit_disk_surface(
        ray, disk.center, disk.normal, disk.radius
    )

    material_id = disk.material2_id
    if distance_to_center % disk.period > disk.period / 2.0:
        material_id = disk.material1_id

    return RayHit(
        hit=did_hit,
        hit_distance=t,
        hit_point=hit_point,
        hit_normal=disk.normal,
        material_id=material_id,
    )
