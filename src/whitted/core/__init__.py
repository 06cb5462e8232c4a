"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers (reflect, refract, bias)
    shading: Lights, environment map and the iterative cast_ray engine
    renderer: FrameBuffer and the scan-line parallel frame renderer

All compute-intensive operations are Taichi functions and kernels.
"""

from .ray import (
    RAY_BIAS,
    Ray,
    make_ray,
    offset_origin,
    ray_at,
    reflect,
    refract,
    vec3,
)

# Note: shading and renderer are NOT imported here to avoid circular imports.
# Import them directly from whitted.core.shading or whitted.core.renderer.

__all__ = [
    "RAY_BIAS",
    "Ray",
    "make_ray",
    "ray_at",
    "reflect",
    "refract",
    "offset_origin",
    "vec3",
]
