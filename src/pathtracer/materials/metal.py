"""Metal (specular reflective) material implementation.

This module implements the metal scatter model. The incident direction is
reflected about the normal:

    R = I - 2(I . N)N

With probability ``specular_prob`` the bounce is a perfect mirror with white
attenuation (a clear-coat highlight). Otherwise the reflection is perturbed
by ``fuzz`` times a random unit vector and tinted by the surface color.

The ray is absorbed if the resulting direction does not leave the surface.

Example:
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_metal(
    >>> #     color, fuzz, specular_prob, incident_dir, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import reflect
from pathtracer.core.rng import next_float, random_unit_vector
from pathtracer.materials.material import (
    NO_TEXTURE,
    MaterialParams,
    MaterialType,
    validate_color,
    validate_emission,
)

vec3 = tm.vec3


@ti.func
def scatter_metal(
    color: vec3,
    fuzz: ti.f32,
    specular_prob: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Compute the scattered ray direction for a metal surface.

    Args:
        color: Surface color (RGB), applied to fuzzy reflections.
        fuzz: Reflection perturbation radius in [0, 1]. 0 = perfect mirror.
        specular_prob: Probability of an untinted perfect mirror bounce.
        incident_direction: The incoming ray direction (should be normalized).
        normal: The shading normal (should be normalized).
        state: RNG state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state)
        where did_scatter is 0 when the ray would go below the surface.
    """
    reflected = tm.normalize(reflect(incident_direction, normal))

    scattered_direction = reflected
    attenuation = vec3(1.0, 1.0, 1.0)

    choice, s = next_float(state)
    if choice >= specular_prob:
        fuzz_dir, s = random_unit_vector(s)
        scattered_direction = reflected + fuzz * fuzz_dir
        attenuation = color

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0
        # Set to zero vector to indicate no valid scatter
        scattered_direction = vec3(0.0, 0.0, 0.0)

    return scattered_direction, attenuation, did_scatter, s


def metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
    specular_prob: float = 0.0,
    *,
    emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
    emission_strength: float = 0.0,
    texture_id: int = NO_TEXTURE,
) -> MaterialParams:
    """Build a validated metal material description.

    Raises:
        ValueError: If any albedo component is outside [0, 1].
        ValueError: If fuzz or specular_prob is outside [0, 1].
    """
    validate_color("Albedo", albedo)
    validate_emission(emission_color, emission_strength)

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )
    if specular_prob < 0.0 or specular_prob > 1.0:
        raise ValueError(f"Specular probability = {specular_prob} is outside [0, 1]")

    return MaterialParams(
        material_type=MaterialType.METAL,
        albedo=tuple(albedo),
        emission_color=tuple(emission_color),
        emission_strength=emission_strength,
        fuzz_or_ior=fuzz,
        specular_prob=specular_prob,
        texture_id=texture_id,
    )
