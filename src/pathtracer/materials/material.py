"""Material table shared by all material types.

Materials live in one bounded table indexed by integer material id. Each
entry carries the union of the parameters used by the three scatter models:

    albedo            base color (ignored where a texture is bound)
    emission_color    emitted color
    emission_strength scale applied to emission_color
    type              MaterialType tag used for scatter dispatch
    fuzz_or_ior       metal fuzziness, or dielectric refractive index
    specular_prob     metal only: probability of a perfect mirror bounce
    texture_id        texture set index, -1 for untextured

The table is filled from Python before rendering and read-only in kernels.
Overflowing MAX_MATERIALS raises at load time.

Example:
    >>> clear_materials()
    >>> mat_id = add_material(MaterialParams(MaterialType.DIFFUSE, albedo=(0.8, 0.3, 0.3)))
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    DIFFUSE = 0
    METAL = 1
    DIELECTRIC = 2


# Plain ints for comparisons inside Taichi scope
MATERIAL_DIFFUSE = int(MaterialType.DIFFUSE)
MATERIAL_METAL = int(MaterialType.METAL)
MATERIAL_DIELECTRIC = int(MaterialType.DIELECTRIC)

# Texture id meaning "use the albedo directly"
NO_TEXTURE = -1

MAX_MATERIALS = 50


@dataclass
class MaterialParams:
    """Python-side description of one material table entry.

    Attributes:
        material_type: Which scatter model to use.
        albedo: Base color (RGB in [0, 1]).
        emission_color: Emitted color (RGB, non-negative).
        emission_strength: Scale for emission_color (non-negative).
        fuzz_or_ior: Metal fuzz in [0, 1], or dielectric refractive index.
        specular_prob: Metal only: probability of a perfect mirror bounce.
        texture_id: Texture set index, or NO_TEXTURE.
    """

    material_type: MaterialType
    albedo: tuple[float, float, float] = (0.5, 0.5, 0.5)
    emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0)
    emission_strength: float = 0.0
    fuzz_or_ior: float = 0.0
    specular_prob: float = 0.0
    texture_id: int = NO_TEXTURE

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the scene-file material format."""
        data: dict[str, Any] = {
            "type": self.material_type.name.lower(),
            "albedo": list(self.albedo),
            "emission_color": list(self.emission_color),
            "emission_strength": self.emission_strength,
            "texture_id": self.texture_id,
        }
        if self.material_type == MaterialType.METAL:
            data["fuzz"] = self.fuzz_or_ior
            data["specular_prob"] = self.specular_prob
        elif self.material_type == MaterialType.DIELECTRIC:
            data["ior"] = self.fuzz_or_ior
        return data


def validate_color(name: str, color: tuple[float, float, float], upper: float | None = 1.0) -> None:
    """Check that a color has three components within [0, upper].

    Raises:
        ValueError: If the color is malformed or out of range.
    """
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0 or (upper is not None and component > upper):
            bound = f"[0, {upper}]" if upper is not None else "[0, inf)"
            raise ValueError(f"{name} component {i} = {component} is outside {bound}")


def validate_emission(color: tuple[float, float, float], strength: float) -> None:
    """Check that emission color and strength are non-negative."""
    validate_color("Emission color", color, upper=None)
    if strength < 0.0:
        raise ValueError(f"Emission strength = {strength} must be non-negative")


# =============================================================================
# Material Field Storage
# =============================================================================

material_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_emission_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_emission_strengths = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_fuzz_or_ior = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_specular_probs = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_texture_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Reset the material count to zero.

    Existing data in the fields is overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(params: MaterialParams) -> int:
    """Append a material to the table.

    Args:
        params: The material description. Values are assumed validated by the
            type-specific constructors.

    Returns:
        The material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_albedos[idx] = vec3(*params.albedo)
    material_emission_colors[idx] = vec3(*params.emission_color)
    material_emission_strengths[idx] = params.emission_strength
    material_types[idx] = int(params.material_type)
    material_fuzz_or_ior[idx] = params.fuzz_or_ior
    material_specular_probs[idx] = params.specular_prob
    material_texture_ids[idx] = params.texture_id
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def get_material_emission(material_id: ti.i32) -> vec3:
    """Emitted radiance of a material (color scaled by strength)."""
    return material_emission_colors[material_id] * material_emission_strengths[material_id]
