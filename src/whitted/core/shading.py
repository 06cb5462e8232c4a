"""Recursive Whitted-style shading engine.

cast_ray(ray, depth) computes the radiance arriving along a ray:

1. Past the depth limit, the background in the ray direction.
2. On a miss, the background in the ray direction.
3. On a hit, with material albedo a:
       a[0] * diffuse_color * sum(lambert terms)
     + a[1] * white * sum(Phong terms)
     + a[2] * cast_ray(reflected ray, depth + 1)
     + a[3] * cast_ray(refracted ray, depth + 1)
   where lights blocked by a nearer surface contribute nothing, and the
   refracted term is zero on total internal reflection.

Taichi functions are inlined and cannot recurse, so trace_ray() walks this
binary tree depth first with an explicit stack of pending rays. Each stack
entry carries the product of the albedo weights on its path from the root;
because the color above is linear in the children, summing
weight * (local lighting) over all visited nodes equals the recursive
result.

Every kernel iteration owns one lane (a scan line) and uses only that
lane's row of the stack fields, so lanes never share mutable state.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.shading import trace_ray
    >>> # Inside a kernel, with a scene uploaded:
    >>> # color = trace_ray(origin, direction, 0, lane)
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, make_ray, offset_origin, reflect, refract
from whitted.errors import SceneConfigError
from whitted.geometry.hit import RayHit
from whitted.materials.material import (
    get_albedo,
    get_diffuse_color,
    get_refractive_index,
    get_specular_exponent,
)
from whitted.scene.background import (
    MAX_BACKGROUND_HEIGHT,
    MAX_BACKGROUND_WIDTH,
    validate_background,
)
from whitted.scene.intersection import (
    MAX_LANES,
    raise_on_numerical_fault,
    reset_stats,
    scene_intersect,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Shading Constants
# =============================================================================

# Largest supported max_reflect_depth
MAX_REFLECT_DEPTH = 32

# Depth-first traversal keeps at most one pending sibling per level
RAY_STACK_SIZE = MAX_REFLECT_DEPTH + 3

MAX_LIGHTS = 256

# =============================================================================
# Light Sources
# =============================================================================


@dataclass(frozen=True)
class Light:
    """A point light.

    Attributes:
        position: Position of the light (x, y, z).
        intensity: Scalar intensity applied to diffuse and specular terms.
    """

    position: tuple[float, float, float]
    intensity: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", tuple(float(c) for c in self.position))
        object.__setattr__(self, "intensity", float(self.intensity))


light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_light(light: Light) -> int:
    """Add a point light.

    Returns:
        The index of the added light.

    Raises:
        SceneConfigError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise SceneConfigError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = vec3(*light.position)
    light_intensities[idx] = light.intensity
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights."""
    return int(num_lights[None])


# =============================================================================
# Environment Map
# =============================================================================

_background = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_BACKGROUND_HEIGHT, MAX_BACKGROUND_WIDTH))
_background_size = ti.Vector.field(2, dtype=ti.i32, shape=())


@ti.kernel
def _copy_background(pixels: ti.types.ndarray(dtype=ti.f32, ndim=3)):
    for y, x in ti.ndrange(pixels.shape[0], pixels.shape[1]):
        _background[y, x] = vec3(pixels[y, x, 0], pixels[y, x, 1], pixels[y, x, 2])


def set_background(pixels: np.ndarray) -> None:
    """Upload an (H, W, 3) float background in [0, 1].

    Raises:
        SceneConfigError: If the array has the wrong shape or is too large.
    """
    array = validate_background(pixels)
    _copy_background(array.copy())
    _background_size[None] = [array.shape[1], array.shape[0]]


def clear_background() -> None:
    """Reset the background to a single black pixel."""
    set_background(np.zeros((1, 1, 3), dtype=np.float32))


@ti.func
def sample_background(direction: vec3) -> vec3:
    """Look up the environment map in a ray direction.

    Equirectangular mapping: longitude atan2(z, x) covers the width and
    wraps around; latitude acos(y) covers the height and is clamped.

    Args:
        direction: The ray direction. Normalised before the lookup.

    Returns:
        The background color in [0, 1].
    """
    width = _background_size[None][0]
    height = _background_size[None][1]
    w = ti.cast(width, ti.f32)
    h = ti.cast(height, ti.f32)
    d = tm.normalize(direction)

    x_raw = ((ti.atan2(d.z, d.x) / (2.0 * tm.pi) + 0.5) * w + w) % w
    y_raw = ti.acos(tm.clamp(d.y, -1.0, 1.0)) / tm.pi * h

    x = tm.clamp(ti.cast(x_raw, ti.i32), 0, width - 1)
    y = tm.clamp(ti.cast(y_raw, ti.i32), 0, height - 1)
    return _background[y, x]


# =============================================================================
# Render Settings
# =============================================================================

_max_reflect_depth = ti.field(dtype=ti.i32, shape=())
_prune_zero_weight = ti.field(dtype=ti.i32, shape=())


def configure_shading(max_reflect_depth: int, prune_zero_weight: bool = False) -> None:
    """Set the recursion limit and the optional zero-weight pruning.

    Args:
        max_reflect_depth: Rays deeper than this return the background.
        prune_zero_weight: Skip secondary rays whose accumulated albedo
            weight is exactly zero. Off by default; the result is the same
            unless the skipped subtree would have produced NaN or inf.

    Raises:
        SceneConfigError: If max_reflect_depth is outside [0, MAX_REFLECT_DEPTH].
    """
    if not 0 <= max_reflect_depth <= MAX_REFLECT_DEPTH:
        raise SceneConfigError(
            f"max_reflect_depth must be in [0, {MAX_REFLECT_DEPTH}], got {max_reflect_depth}"
        )
    _max_reflect_depth[None] = max_reflect_depth
    _prune_zero_weight[None] = 1 if prune_zero_weight else 0


# =============================================================================
# Ray Stack
# =============================================================================

_stack_origins = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, RAY_STACK_SIZE))
_stack_directions = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, RAY_STACK_SIZE))
_stack_depths = ti.field(dtype=ti.i32, shape=(MAX_LANES, RAY_STACK_SIZE))
_stack_weights = ti.field(dtype=ti.f32, shape=(MAX_LANES, RAY_STACK_SIZE))


@ti.func
def _push(lane: ti.i32, slot: ti.i32, origin: vec3, direction: vec3, depth: ti.i32, weight: ti.f32):
    _stack_origins[lane, slot] = origin
    _stack_directions[lane, slot] = direction
    _stack_depths[lane, slot] = depth
    _stack_weights[lane, slot] = weight


# =============================================================================
# Shading Core
# =============================================================================


@ti.func
def direct_lighting(ray: Ray, rec: RayHit, lane: ti.i32):
    """Sum the diffuse and specular light intensities at a hit.

    For each light a shadow ray is cast from the biased hit point; the light
    is skipped when the shadow ray hits something nearer than the light.

    Args:
        ray: The ray that produced the hit.
        rec: The hit record.
        lane: Lane of the calling kernel iteration.

    Returns:
        A tuple (diffuse_intensity, specular_intensity).
    """
    diffuse = 0.0
    specular = 0.0
    exponent = get_specular_exponent(rec.material_id)

    for i in range(num_lights[None]):
        to_light = light_positions[i] - rec.hit_point
        light_distance = tm.length(to_light)
        light_dir = to_light / light_distance

        shadow_origin = offset_origin(rec.hit_point, rec.hit_normal, light_dir)
        shadow = scene_intersect(make_ray(shadow_origin, light_dir), lane)

        occluded = 0
        if shadow.hit == 1:
            if tm.length(shadow.hit_point - shadow_origin) < light_distance:
                occluded = 1

        if occluded == 0:
            intensity = light_intensities[i]
            diffuse += intensity * ti.max(0.0, tm.dot(light_dir, rec.hit_normal))
            highlight = ti.max(0.0, tm.dot(reflect(light_dir, rec.hit_normal), ray.direction))
            specular += intensity * highlight**exponent

    return diffuse, specular


@ti.func
def trace_ray(origin: vec3, direction: vec3, depth: ti.i32, lane: ti.i32) -> vec3:
    """Compute the color seen along a ray (cast_ray).

    Args:
        origin: Ray origin.
        direction: Ray direction (should be normalized).
        depth: Recursion depth of this ray; primary rays use 0.
        lane: Lane of the calling kernel iteration. Selects the row of the
            ray stack and of the diagnostic counters.

    Returns:
        Unclamped linear RGB color.
    """
    color = vec3(0.0, 0.0, 0.0)
    max_depth = _max_reflect_depth[None]
    prune = _prune_zero_weight[None]

    _push(lane, 0, origin, direction, depth, 1.0)
    top = 1

    while top > 0:
        top -= 1
        ray = make_ray(_stack_origins[lane, top], _stack_directions[lane, top])
        node_depth = _stack_depths[lane, top]
        weight = _stack_weights[lane, top]

        if node_depth > max_depth:
            color += weight * sample_background(ray.direction)
        else:
            rec = scene_intersect(ray, lane)
            if rec.hit == 0:
                color += weight * sample_background(ray.direction)
            else:
                material_id = rec.material_id
                albedo = get_albedo(material_id)

                diffuse, specular = direct_lighting(ray, rec, lane)
                local = (
                    get_diffuse_color(material_id) * diffuse * albedo[0]
                    + vec3(1.0, 1.0, 1.0) * specular * albedo[1]
                )
                color += weight * local

                # Refraction is pushed first so the reflected subtree is
                # walked first.
                refract_dir, refracted = refract(
                    ray.direction, rec.hit_normal, get_refractive_index(material_id)
                )
                refract_weight = weight * albedo[3]
                if refracted == 1 and (prune == 0 or refract_weight != 0.0):
                    refract_orig = offset_origin(rec.hit_point, rec.hit_normal, refract_dir)
                    _push(lane, top, refract_orig, refract_dir, node_depth + 1, refract_weight)
                    top += 1

                reflect_dir = reflect(ray.direction, rec.hit_normal)
                reflect_weight = weight * albedo[2]
                if prune == 0 or reflect_weight != 0.0:
                    reflect_orig = offset_origin(rec.hit_point, rec.hit_normal, reflect_dir)
                    _push(lane, top, reflect_orig, reflect_dir, node_depth + 1, reflect_weight)
                    top += 1

    return color


# =============================================================================
# Single-ray entry point
# =============================================================================

_cast_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _cast_single(origin: vec3, direction: vec3, depth: ti.i32):
    for _ in range(1):
        _cast_result[None] = trace_ray(origin, direction, depth, 0)


def cast_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = 0,
) -> tuple[float, float, float]:
    """Run trace_ray for one ray from the host, on lane 0.

    Raises:
        ValueError: If depth is negative.
        NumericalInvariantError: If a NaN distance was compared.
    """
    if depth < 0:
        raise ValueError(f"depth must be non-negative, got {depth}")
    reset_stats()
    _cast_single(vec3(*origin), vec3(*direction), depth)
    raise_on_numerical_fault()
    color = _cast_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))
