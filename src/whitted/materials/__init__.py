"""Materials module.

Components:
    material: The Material value type and the device material registry
"""

from .material import (
    MAX_MATERIALS,
    Material,
    add_material,
    clear_materials,
    get_albedo,
    get_diffuse_color,
    get_material_count,
    get_refractive_index,
    get_specular_exponent,
)

__all__ = [
    "MAX_MATERIALS",
    "Material",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_albedo",
    "get_diffuse_color",
    "get_specular_exponent",
    "get_refractive_index",
]
