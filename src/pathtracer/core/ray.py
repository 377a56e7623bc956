"""Ray data structure and vector utilities for the path tracing kernels.

This module provides the Ray dataclass and the small vector helpers shared by
the camera, geometry and material modules. All helpers are Taichi functions
and can only be called from inside a kernel.

Random sampling lives in ``pathtracer.core.rng`` because every draw must
thread an explicit RNG state.

Inside a kernel:
    >>> ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0))
    >>> ray_at(ray, 2.0)  # (0, 0, -2)
"""

import taichi as ti
import taichi.math as tm

# Type aliases for Taichi vectors
vec2 = tm.vec2
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """Origin and direction pair.

    Scattering may produce non-unit directions; scene traversal
    renormalizes them.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror `incident` about the unit `normal`. Length is preserved."""
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The perpendicular and parallel parts of the transmitted direction are
    computed separately. Callers are expected to rule out total internal
    reflection first; in that case the parallel term is clamped to zero.

    Args:
        incident: The incoming direction (normalized).
        normal: The surface normal facing the incoming ray (normalized).
        eta: Ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction vector.
    """
    cos_theta = tm.min(-tm.dot(incident, normal), 1.0)
    r_out_perp = eta * (incident + cos_theta * normal)
    parallel_sq = tm.max(1.0 - length_squared(r_out_perp), 0.0)
    r_out_parallel = -ti.sqrt(parallel_sq) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Schlick reflectance for the given incidence cosine and index ratio."""
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * (1.0 - cosine) ** 5


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if all components of the vector are near zero."""
    return ti.abs(v).max() < 1e-8


@ti.func
def build_onb_from_normal(normal: vec3):
    """Arbitrary (tangent, bitangent, normal) frame around a unit normal.

    Fallback tangent frame for zero-area UV triangles and sphere poles.
    """
    # Helper axis must not be parallel to the normal
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent, normal
