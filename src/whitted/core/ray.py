"""Ray data structure and vector utilities for the Whitted-style tracer.

This module provides the Ray dataclass and the vector helpers shared by the
intersection routines and the shading engine. All operations are Taichi
functions so they can be inlined into kernels.

A Ray carries its reciprocal direction alongside the direction itself. The
reciprocal is computed once in make_ray() and consumed by the bounding-box
slab test, so per-mesh tests never divide.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.ray import make_ray, ray_at, vec3
    >>> # Inside a kernel:
    >>> # ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
    >>> # point = ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Displacement applied to secondary ray origins to avoid re-hitting the
# surface they start on
RAY_BIAS = 1e-3


@ti.dataclass
class Ray:
    """A ray with an origin point, a direction and its reciprocal.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Intersection
            formulas assume unit length; this is not enforced.
        inv_direction: Component-wise 1 / direction. Zero components map to
            signed infinities.
    """

    origin: vec3
    direction: vec3
    inv_direction: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray and precompute its reciprocal direction.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector (should typically be normalized).

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, inv_direction=1.0 / direction)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector.
        normal: The surface normal.

    Returns:
        incident - 2 * dot(incident, normal) * normal
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, refractive_index: ti.f32):
    """Refract an incident vector through a two-sided surface.

    The surface normal is not assumed to face the incoming ray. When the ray
    leaves the medium (incident and normal point the same way) the index
    pair is swapped and the normal flipped before Snell's law is applied.

    Args:
        incident: The incoming direction vector (should be normalized).
        normal: The surface normal (should be normalized).
        refractive_index: Index of the medium behind the surface; the other
            side is taken to be vacuum (index 1).

    Returns:
        A tuple (direction, refracted). refracted is 0 on total internal
        reflection, in which case direction is the zero vector.
    """
    cos_incident = -tm.clamp(tm.dot(incident, normal), -1.0, 1.0)
    eta_incident = 1.0
    eta_transmitted = refractive_index
    n = normal
    if cos_incident < 0.0:
        cos_incident = -cos_incident
        eta_incident = refractive_index
        eta_transmitted = 1.0
        n = -normal

    eta = eta_incident / eta_transmitted
    k = 1.0 - eta * eta * (1.0 - cos_incident * cos_incident)

    direction = vec3(0.0, 0.0, 0.0)
    refracted = 0
    if k >= 0.0:
        direction = incident * eta + n * (eta * cos_incident - ti.sqrt(k))
        refracted = 1
    return direction, refracted


@ti.func
def offset_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Bias a secondary ray origin off the surface it leaves.

    The point is pushed by RAY_BIAS along the normal when the new direction
    leaves on the normal's side, and against it otherwise.

    Args:
        point: The intersection point.
        normal: The surface normal at the point.
        direction: The direction of the secondary ray.

    Returns:
        The biased origin.
    """
    offset = normal * RAY_BIAS
    if tm.dot(direction, normal) < 0.0:
        offset = -offset
    return point + offset
