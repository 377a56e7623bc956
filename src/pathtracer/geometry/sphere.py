"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere dataclass and intersection function using the
robust quadratic formula from Ray Tracing Gems to avoid floating-point
artifacts when b^2 is nearly equal to 4ac.

Besides the hit point and normal, the intersection computes spherical UV
coordinates and an analytic tangent frame:

    u = (atan2(z, x) + pi) / (2 pi)
    v = acos(-y) / pi

where (x, y, z) is the outward unit normal. The tangent follows dP/du and
the bitangent dP/dv. This frame is left-handed (T x B = -N), which is why
the hit record is flagged ``is_triangle = 0``.

Example:
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import build_onb_from_normal
from pathtracer.geometry.hit_record import HitRecord, face_normal, make_miss_record

vec2 = tm.vec2
vec3 = tm.vec3

# Below this |sin(theta)| the analytic tangent is undefined (poles)
POLE_EPSILON = 1e-6


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        material_id: Index into the material table.
    """

    center: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 with a numerically stable formula.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant)) avoids catastrophic cancellation
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Fall back to standard formula for edge cases
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_uv(p: vec3) -> vec2:
    """Spherical texture coordinates of a point on the unit sphere."""
    u = (tm.atan2(p.z, p.x) + tm.pi) / (2.0 * tm.pi)
    v = tm.acos(tm.clamp(-p.y, -1.0, 1.0)) / tm.pi
    return vec2(u, v)


@ti.func
def sphere_tangent_frame(p: vec3):
    """Analytic tangent frame of the spherical parametrization.

    Args:
        p: Outward unit normal at the hit point.

    Returns:
        A tuple (tangent, bitangent) along dP/du and dP/dv.
    """
    tangent, bitangent, _ = build_onb_from_normal(p)
    ring = ti.sqrt(p.x * p.x + p.z * p.z)
    if ring > POLE_EPSILON:
        tangent = vec3(-p.z, 0.0, p.x) / ring
        bitangent = tm.cross(tangent, p)
    return tangent, bitangent


@ti.func
def hit_sphere(
    sphere: Sphere,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection using the robust quadratic formula.

    The intersection solves |origin + t * direction - center|^2 = radius^2,
    written as a*t^2 + 2*h*t + c = 0 with

        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = dot(origin - center, origin - center) - radius^2

    The smaller root is used when it lies in (t_min, t_max); otherwise the
    larger one; otherwise the ray misses.

    Args:
        sphere: The sphere to test intersection against.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit (avoids self-intersection).
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord; check ``hit`` to determine if intersection occurred.
    """
    result = make_miss_record()

    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            hit_point = ray_origin + t * ray_direction
            outward_normal = (hit_point - sphere.center) / sphere.radius
            normal, front_face = face_normal(ray_direction, outward_normal)
            tangent, bitangent = sphere_tangent_frame(outward_normal)
            result = HitRecord(
                hit=1,
                t=t,
                point=hit_point,
                normal=normal,
                front_face=front_face,
                material_id=sphere.material_id,
                uv=sphere_uv(outward_normal),
                tangent=tangent,
                bitangent=bitangent,
                is_triangle=0,
            )

    return result
