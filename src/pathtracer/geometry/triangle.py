"""Triangle primitive with Möller–Trumbore intersection.

Triangles are one-sided: a ray only hits a triangle whose vertices appear
counter-clockwise from the ray's point of view. Rays hitting the back side,
or running parallel to the plane, are rejected by the determinant test.

On a hit the routine also builds a tangent frame from the UV deltas so that
normal and parallax maps can be applied during shading. The UV stored in the
record is left at zero; ``hit_object`` re-derives it for the closest triangle
with ``barycentric_uv``.

Example:
    >>> @ti.kernel
    ... def probe() -> ti.i32:
    ...     rec = hit_triangle(
    ...         vec3(-1, -1, 0), vec3(1, -1, 0), vec3(0, 1, 0),
    ...         vec2(0, 0), vec2(1, 0), vec2(0.5, 1),
    ...         vec3(0, 0, 5), vec3(0, 0, -1), 0.001, 1000.0, 0,
    ...     )
    ...     return rec.hit
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import build_onb_from_normal
from pathtracer.geometry.hit_record import HitRecord, face_normal, make_miss_record

vec2 = tm.vec2
vec3 = tm.vec3

# Determinant threshold: rejects back faces and rays parallel to the plane
DETERMINANT_EPSILON = 1e-8

# Below this UV-area the tangent frame falls back to an arbitrary basis
UV_AREA_EPSILON = 1e-12


@ti.func
def triangle_tangent_frame(
    edge1: vec3,
    edge2: vec3,
    duv1: vec2,
    duv2: vec2,
    normal: vec3,
):
    """Compute a tangent and bitangent from the triangle's UV deltas.

    Solves edge = du * T + dv * B for both edges, then Gram–Schmidt
    orthogonalizes T and B against the normal (and B against T).

    Returns:
        A tuple (tangent, bitangent), both unit length.
    """
    tangent, bitangent, _ = build_onb_from_normal(normal)

    det = duv1.x * duv2.y - duv2.x * duv1.y
    if ti.abs(det) > UV_AREA_EPSILON:
        f = 1.0 / det
        t = f * (duv2.y * edge1 - duv1.y * edge2)
        b = f * (duv1.x * edge2 - duv2.x * edge1)

        t = t - tm.dot(t, normal) * normal
        b = b - tm.dot(b, normal) * normal
        t_len_sq = tm.dot(t, t)
        if t_len_sq > UV_AREA_EPSILON:
            tangent = t / ti.sqrt(t_len_sq)
            b = b - tm.dot(b, tangent) * tangent
            b_len_sq = tm.dot(b, b)
            if b_len_sq > UV_AREA_EPSILON:
                bitangent = b / ti.sqrt(b_len_sq)
            else:
                bitangent = tm.cross(normal, tangent)

    return tangent, bitangent


@ti.func
def hit_triangle(
    v0: vec3,
    v1: vec3,
    v2: vec3,
    uv0: vec2,
    uv1: vec2,
    uv2: vec2,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    material_id: ti.i32,
) -> HitRecord:
    """Test for ray-triangle intersection using Möller–Trumbore.

    Args:
        v0, v1, v2: Triangle vertices, counter-clockwise when seen from the front.
        uv0, uv1, uv2: Texture coordinates of the vertices.
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction.
        t_min: Hits at or below t_min are rejected.
        t_max: Hits at or beyond t_max are rejected.
        material_id: Material id stored in the record.

    Returns:
        A HitRecord; check ``hit`` to determine if intersection occurred.
    """
    result = make_miss_record()

    edge1 = v1 - v0
    edge2 = v2 - v0
    pvec = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, pvec)

    # One-sided test: negative determinant means the back face
    if det >= DETERMINANT_EPSILON:
        inv_det = 1.0 / det
        tvec = ray_origin - v0
        u = tm.dot(tvec, pvec) * inv_det
        if u >= 0.0 and u <= 1.0:
            qvec = tm.cross(tvec, edge1)
            v = tm.dot(ray_direction, qvec) * inv_det
            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(edge2, qvec) * inv_det
                if t > t_min and t < t_max:
                    outward_normal = tm.normalize(tm.cross(edge1, edge2))
                    normal, front_face = face_normal(ray_direction, outward_normal)
                    tangent, bitangent = triangle_tangent_frame(
                        edge1, edge2, uv1 - uv0, uv2 - uv0, normal
                    )
                    result = HitRecord(
                        hit=1,
                        t=t,
                        point=ray_origin + t * ray_direction,
                        normal=normal,
                        front_face=front_face,
                        material_id=material_id,
                        uv=vec2(0.0, 0.0),
                        tangent=tangent,
                        bitangent=bitangent,
                        is_triangle=1,
                    )

    return result


@ti.func
def barycentric_uv(
    p: vec3,
    v0: vec3,
    v1: vec3,
    v2: vec3,
    uv0: vec2,
    uv1: vec2,
    uv2: vec2,
) -> vec2:
    """Interpolate vertex UVs at a point on the triangle.

    The barycentric weights come from the 2x2 system formed by the two edge
    vectors. Zero-area triangles divide by zero and yield NaN or Inf, which
    shading treats as out of texture range.
    """
    e0 = v1 - v0
    e1 = v2 - v0
    e2 = p - v0
    d00 = tm.dot(e0, e0)
    d01 = tm.dot(e0, e1)
    d11 = tm.dot(e1, e1)
    d20 = tm.dot(e2, e0)
    d21 = tm.dot(e2, e1)
    denom = d00 * d11 - d01 * d01
    b1 = (d11 * d20 - d01 * d21) / denom
    b2 = (d00 * d21 - d01 * d20) / denom
    b0 = 1.0 - b1 - b2
    return b0 * uv0 + b1 * uv1 + b2 * uv2
