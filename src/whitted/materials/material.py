"""Surface material model and device-side material registry.

A material mixes four contributions with the weights in its albedo:

    albedo[0]  diffuse   (diffuse_color * sum of lambert terms)
    albedo[1]  specular  (white * sum of Phong terms, exponent specular_exponent)
    albedo[2]  reflection (color of the mirror-reflected ray)
    albedo[3]  refraction (color of the refracted ray, index refractive_index)

The weights are not required to sum to one.

Materials are plain frozen values on the host. Rendering uploads each
distinct material once into the registry fields below and refers to it by
index from every shape.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.materials.material import Material
    >>> ivory = Material(
    ...     albedo=(0.6, 0.3, 0.1, 0.0),
    ...     diffuse_color=(0.4, 0.4, 0.3),
    ...     specular_exponent=50.0,
    ...     refractive_index=1.0,
    ... )
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from whitted.errors import SceneConfigError

vec3 = tm.vec3
vec4 = tm.vec4


@dataclass(frozen=True)
class Material:
    """Reflectance parameters of a surface.

    Attributes:
        albedo: Weights (diffuse, specular, reflection, refraction).
        diffuse_color: RGB color of the diffuse term.
        specular_exponent: Phong exponent of the specular term.
        refractive_index: Index of refraction of the medium behind the surface.
            Must be positive.
    """

    albedo: tuple[float, float, float, float]
    diffuse_color: tuple[float, float, float]
    specular_exponent: float
    refractive_index: float

    def __post_init__(self) -> None:
        albedo = tuple(float(a) for a in self.albedo)
        diffuse_color = tuple(float(c) for c in self.diffuse_color)
        if len(albedo) != 4:
            raise ValueError(f"albedo must have 4 components, got {len(albedo)}")
        if len(diffuse_color) != 3:
            raise ValueError(f"diffuse_color must have 3 components, got {len(diffuse_color)}")
        if not (self.refractive_index > 0.0 and math.isfinite(self.refractive_index)):
            raise ValueError(f"refractive_index must be positive, got {self.refractive_index}")
        object.__setattr__(self, "albedo", albedo)
        object.__setattr__(self, "diffuse_color", diffuse_color)
        object.__setattr__(self, "specular_exponent", float(self.specular_exponent))
        object.__setattr__(self, "refractive_index", float(self.refractive_index))


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 1024

material_albedos = ti.Vector.field(4, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_exponents = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_refractive_indices = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear the material registry.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Add a material to the registry.

    Args:
        material: The material to upload.

    Returns:
        The index of the added material.

    Raises:
        SceneConfigError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise SceneConfigError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_albedos[idx] = vec4(*material.albedo)
    material_diffuse_colors[idx] = vec3(*material.diffuse_color)
    material_specular_exponents[idx] = material.specular_exponent
    material_refractive_indices[idx] = material.refractive_index
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def get_albedo(material_id: ti.i32) -> vec4:
    return material_albedos[material_id]


@ti.func
def get_diffuse_color(material_id: ti.i32) -> vec3:
    return material_diffuse_colors[material_id]


@ti.func
def get_specular_exponent(material_id: ti.i32) -> ti.f32:
    return material_specular_exponents[material_id]


@ti.func
def get_refractive_index(material_id: ti.i32) -> ti.f32:
    return material_refractive_indices[material_id]
