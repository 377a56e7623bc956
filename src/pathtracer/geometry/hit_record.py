"""Hit record shared by all primitive intersection routines.

Example:
    >>> @ti.kernel
    ... def probe() -> ti.i32:
    ...     rec = make_miss_record()
    ...     return rec.hit
"""

import taichi as ti
import taichi.math as tm

vec2 = tm.vec2
vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Only ``hit`` is meaningful when ``hit == 0``.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise.
        t: Ray parameter of the intersection.
        point: World-space intersection point.
        normal: Unit surface normal, oriented against the incoming ray.
        front_face: 1 if the ray hit the outward-facing side.
        material_id: Index into the material table.
        uv: Surface texture coordinates.
        tangent: Unit tangent (direction of increasing u).
        bitangent: Unit bitangent (direction of increasing v).
        is_triangle: 1 for triangle hits, 0 for sphere hits. Sphere frames are
            left-handed and shading flips their bitangent.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32
    uv: vec2
    tangent: vec3
    bitangent: vec3
    is_triangle: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
        uv=vec2(0.0, 0.0),
        tangent=vec3(0.0, 0.0, 0.0),
        bitangent=vec3(0.0, 0.0, 0.0),
        is_triangle=0,
    )


@ti.func
def face_normal(direction: vec3, outward_normal: vec3):
    """Orient an outward normal against the incoming ray.

    Returns:
        A tuple (normal, front_face).
    """
    front_face = 1
    normal = outward_normal
    if tm.dot(direction, outward_normal) > 0.0:
        front_face = 0
        normal = -outward_normal
    return normal, front_face
