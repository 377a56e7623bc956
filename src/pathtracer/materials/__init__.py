"""Materials module for surface scattering models and textures.

Components:
    material: Material table shared by all material types
    diffuse: Lambertian-style diffuse scattering
    metal: Mirror reflection with fuzz and a specular/tinted mix
    dielectric: Glass-like refraction with Schlick Fresnel
    texture: Albedo, normal and depth maps with parallax occlusion mapping

Scatter functions are Taichi functions sharing one return convention:
    direction, attenuation, did_scatter, state = scatter_*(..., state)
"""

from .dielectric import dielectric_material, fresnel_reflectance, scatter_dielectric, will_reflect
from .diffuse import diffuse_material, scatter_diffuse
from .material import (
    MATERIAL_DIELECTRIC,
    MATERIAL_DIFFUSE,
    MATERIAL_METAL,
    MAX_MATERIALS,
    NO_TEXTURE,
    MaterialParams,
    MaterialType,
    add_material,
    clear_materials,
    get_material_count,
    get_material_emission,
)
from .metal import metal_material, scatter_metal
from .texture import (
    MAX_TEXTURE_SIZE,
    MAX_TEXTURES,
    add_texture,
    clear_textures,
    get_texture_count,
    load_texture_set,
    sample_albedo,
    texture_normal,
    texture_uv,
    uv_in_range,
)

__all__ = [
    # Material table
    "MaterialType",
    "MaterialParams",
    "MATERIAL_DIFFUSE",
    "MATERIAL_METAL",
    "MATERIAL_DIELECTRIC",
    "MAX_MATERIALS",
    "NO_TEXTURE",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_material_emission",
    # Diffuse
    "diffuse_material",
    "scatter_diffuse",
    # Metal
    "metal_material",
    "scatter_metal",
    # Dielectric
    "dielectric_material",
    "scatter_dielectric",
    "fresnel_reflectance",
    "will_reflect",
    # Textures
    "MAX_TEXTURES",
    "MAX_TEXTURE_SIZE",
    "add_texture",
    "clear_textures",
    "get_texture_count",
    "load_texture_set",
    "sample_albedo",
    "texture_normal",
    "texture_uv",
    "uv_in_range",
]
