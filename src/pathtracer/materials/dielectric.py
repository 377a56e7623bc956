"""Dielectric (glass/water) material implementation.

This module implements the dielectric scatter model for transparent materials
with refraction and Fresnel reflectance.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

The material reflects on total internal reflection, or when the Schlick
reflectance exceeds a uniform random draw; otherwise it refracts. Reflected
rays are untinted. Refracted rays are tinted by the surface color blended
toward white by the reflectance.

Example:
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_dielectric(
    >>> #     color, ior, incident_dir, normal, front_face, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import reflect, refract, schlick_fresnel
from pathtracer.core.rng import next_float
from pathtracer.materials.material import (
    NO_TEXTURE,
    MaterialParams,
    MaterialType,
    validate_color,
    validate_emission,
)

vec3 = tm.vec3


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    # Entering: n_air / n_material; exiting: n_material / n_air
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def will_reflect(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Return 1 if the ray undergoes total internal reflection."""
    refraction_ratio = _refraction_ratio(ior, front_face)

    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    return ti.select(refraction_ratio * sin_theta > 1.0, 1, 0)


@ti.func
def fresnel_reflectance(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation."""
    refraction_ratio = _refraction_ratio(ior, front_face)

    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    return schlick_fresnel(cos_theta, refraction_ratio)


@ti.func
def scatter_dielectric(
    color: vec3,
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Compute the scattered ray direction for a dielectric surface.

    Args:
        color: Surface tint (RGB) applied to refracted rays.
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction.
        normal: The shading normal, facing the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it exits.
        state: RNG state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        Dielectrics always scatter.
    """
    unit_direction = tm.normalize(incident_direction)
    cannot_refract = will_reflect(ior, unit_direction, normal, front_face)
    reflectance = fresnel_reflectance(ior, unit_direction, normal, front_face)

    threshold, s = next_float(state)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(1.0, 1.0, 1.0)
    if cannot_refract == 1 or reflectance > threshold:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, _refraction_ratio(ior, front_face))
        attenuation = color * (1.0 - reflectance) + vec3(reflectance, reflectance, reflectance)

    return scattered_direction, attenuation, 1, s


def dielectric_material(
    ior: float = 1.5,
    albedo: tuple[float, float, float] = (1.0, 1.0, 1.0),
    *,
    emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
    emission_strength: float = 0.0,
    texture_id: int = NO_TEXTURE,
) -> MaterialParams:
    """Build a validated dielectric material description.

    Args:
        ior: Index of refraction. Common values: Air=1.0, Water=1.33,
            Glass=1.5, Diamond=2.4. Values below 1 model e.g. an air bubble
            inside a denser medium.
        albedo: Tint applied to refracted rays.

    Raises:
        ValueError: If IOR is not positive or the tint is outside [0, 1].
    """
    if ior <= 0.0:
        raise ValueError(f"Index of refraction = {ior} must be positive")
    validate_color("Albedo", albedo)
    validate_emission(emission_color, emission_strength)

    return MaterialParams(
        material_type=MaterialType.DIELECTRIC,
        albedo=tuple(albedo),
        emission_color=tuple(emission_color),
        emission_strength=emission_strength,
        fuzz_or_ior=ior,
        texture_id=texture_id,
    )
