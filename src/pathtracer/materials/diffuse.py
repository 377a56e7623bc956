"""Diffuse (Lambertian) material implementation.

The scattered direction is the surface normal plus a random unit vector,
which approximates a cosine-weighted distribution over the hemisphere.
Attenuation is the surface color (texture sample or albedo). Diffuse
surfaces always scatter.

Example:
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_diffuse(
    >>> #     color, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import near_zero
from pathtracer.core.rng import random_unit_vector
from pathtracer.materials.material import (
    NO_TEXTURE,
    MaterialParams,
    MaterialType,
    validate_color,
    validate_emission,
)

vec3 = tm.vec3


@ti.func
def scatter_diffuse(color: vec3, normal: vec3, state: ti.u32):
    """Compute a scattered direction for a diffuse surface.

    Args:
        color: Surface color (RGB).
        normal: Shading normal facing the incoming ray (normalized).
        state: RNG state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        The direction is not normalized; scene traversal normalizes it.
    """
    random_dir, s = random_unit_vector(state)
    scattered_direction = normal + random_dir

    # Random vector nearly opposite the normal
    if near_zero(scattered_direction):
        scattered_direction = normal

    return scattered_direction, color, 1, s


def diffuse_material(
    albedo: tuple[float, float, float],
    *,
    emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
    emission_strength: float = 0.0,
    texture_id: int = NO_TEXTURE,
) -> MaterialParams:
    """Build a validated diffuse material description.

    Raises:
        ValueError: If any albedo component is outside [0, 1] or the emission
            is negative.
    """
    validate_color("Albedo", albedo)
    validate_emission(emission_color, emission_strength)
    return MaterialParams(
        material_type=MaterialType.DIFFUSE,
        albedo=tuple(albedo),
        emission_color=tuple(emission_color),
        emission_strength=emission_strength,
        texture_id=texture_id,
    )
