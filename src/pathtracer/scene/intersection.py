"""Scene-level primitive tables and nearest-hit queries.

The scene holds two kinds of primitives in bounded Taichi fields:

    objects  triangle meshes with per-triangle UV indices and an AABB
    spheres  analytic spheres

Tables are filled from Python between render sessions and only read inside
kernels. ``hit_scene`` scans every object (AABB-rejected first) and then every
sphere, keeping the globally closest hit.

Example:
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    >>> add_object(
    ...     vertices=[(-1, 0, -2), (1, 0, -2), (0, 1, -2)],
    ...     indices=[(0, 1, 2)],
    ...     material_id=1,
    ... )
    >>> # Use hit_scene within a Taichi kernel
"""

from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.geometry.aabb import bounding_box_hit
from pathtracer.geometry.hit_record import HitRecord, make_miss_record
from pathtracer.geometry.sphere import Sphere, hit_sphere
from pathtracer.geometry.triangle import barycentric_uv, hit_triangle

vec2 = tm.vec2
vec3 = tm.vec3

MAX_OBJECTS = 50
MAX_TRIANGLES = 2000
MAX_OBJECT_VERTICES = 3 * MAX_TRIANGLES
MAX_SPHERES = 50

# Object storage: one row per object, padded to the per-object capacity
object_vertices = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_OBJECTS, MAX_OBJECT_VERTICES))
object_uvs = ti.Vector.field(2, dtype=ti.f32, shape=(MAX_OBJECTS, MAX_OBJECT_VERTICES))
object_indices = ti.Vector.field(3, dtype=ti.i32, shape=(MAX_OBJECTS, MAX_TRIANGLES))
object_uv_indices = ti.Vector.field(3, dtype=ti.i32, shape=(MAX_OBJECTS, MAX_TRIANGLES))
object_triangle_counts = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_material_ids = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_box_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
object_box_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _upload_object(
    obj: ti.i32,
    vertices: ti.types.ndarray(),
    uvs: ti.types.ndarray(),
    indices: ti.types.ndarray(),
    uv_indices: ti.types.ndarray(),
):
    for i in range(vertices.shape[0]):
        object_vertices[obj, i] = vec3(vertices[i, 0], vertices[i, 1], vertices[i, 2])
    for i in range(uvs.shape[0]):
        object_uvs[obj, i] = vec2(uvs[i, 0], uvs[i, 1])
    for i in range(indices.shape[0]):
        object_indices[obj, i] = ti.Vector([indices[i, 0], indices[i, 1], indices[i, 2]])
        object_uv_indices[obj, i] = ti.Vector(
            [uv_indices[i, 0], uv_indices[i, 1], uv_indices[i, 2]]
        )


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_objects[None] = 0
    num_spheres[None] = 0


def _as_index_array(name: str, values, limit: int) -> np.ndarray:
    arr = np.asarray(values, dtype=np.int32).reshape(-1, 3)
    if arr.size and (arr.min() < 0 or arr.max() >= limit):
        raise ValueError(f"{name} out of range [0, {limit})")
    return arr


def add_object(
    vertices: Sequence[Sequence[float]],
    indices: Sequence[Sequence[int]],
    uvs: Sequence[Sequence[float]] | None = None,
    uv_indices: Sequence[Sequence[int]] | None = None,
    material_id: int = 0,
) -> int:
    """Add a triangle mesh to the scene.

    Args:
        vertices: Vertex positions, shape (V, 3).
        indices: Vertex index triples, one per triangle, counter-clockwise
            when seen from the front.
        uvs: Texture coordinates, shape (U, 2). Defaults to a single (0, 0).
        uv_indices: UV index triples parallel to ``indices``. Defaults to
            ``indices`` when UVs are given, otherwise all zeros.
        material_id: The material ID to associate with this object.

    Returns:
        The index of the added object.

    Raises:
        ValueError: If arrays are malformed or indices are out of range.
        RuntimeError: If an object or per-object capacity is exceeded.
    """
    verts = np.asarray(vertices, dtype=np.float32).reshape(-1, 3)
    if len(verts) == 0:
        raise ValueError("Object must have at least one vertex")
    if len(verts) > MAX_OBJECT_VERTICES:
        raise RuntimeError(
            f"Object has {len(verts)} vertices, maximum is {MAX_OBJECT_VERTICES}"
        )

    tris = _as_index_array("Vertex index", indices, len(verts))
    if len(tris) == 0:
        raise ValueError("Object must have at least one triangle")
    if len(tris) > MAX_TRIANGLES:
        raise RuntimeError(f"Object has {len(tris)} triangles, maximum is {MAX_TRIANGLES}")

    if uvs is None or len(uvs) == 0:
        uv_arr = np.zeros((1, 2), dtype=np.float32)
        uv_tris = np.zeros_like(tris)
    else:
        uv_arr = np.asarray(uvs, dtype=np.float32).reshape(-1, 2)
        if len(uv_arr) > MAX_OBJECT_VERTICES:
            raise RuntimeError(f"Object has {len(uv_arr)} UVs, maximum is {MAX_OBJECT_VERTICES}")
        uv_tris = _as_index_array(
            "UV index", uv_indices if uv_indices is not None else tris, len(uv_arr)
        )
        if uv_tris.shape != tris.shape:
            raise ValueError(
                f"UV index count ({len(uv_tris)}) must match triangle count ({len(tris)})"
            )

    idx = num_objects[None]
    if idx >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")

    _upload_object(
        idx,
        np.ascontiguousarray(verts),
        np.ascontiguousarray(uv_arr),
        np.ascontiguousarray(tris),
        np.ascontiguousarray(uv_tris),
    )
    # Bounds cover only referenced vertices
    used = verts[np.unique(tris)]
    object_box_min[idx] = used.min(axis=0).tolist()
    object_box_max[idx] = used.max(axis=0).tolist()
    object_triangle_counts[idx] = len(tris)
    object_material_ids[idx] = material_id
    num_objects[None] = idx + 1
    return idx


def add_sphere(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (must be positive).
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius = {radius} must be positive")
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(*center)
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_object_count() -> int:
    """Get the number of objects in the scene."""
    return int(num_objects[None])


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_object_bounds(obj: int) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Get the (box_min, box_max) corners of an object's bounding box."""
    lo = object_box_min[obj]
    hi = object_box_max[obj]
    return (float(lo[0]), float(lo[1]), float(lo[2])), (float(hi[0]), float(hi[1]), float(hi[2]))


@ti.func
def hit_object(
    obj: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Closest intersection of a ray with one triangle mesh.

    The bounding box is tested first. Triangles are scanned with a shrinking
    upper bound, and UVs are interpolated only for the closest triangle.
    """
    result = make_miss_record()

    if bounding_box_hit(object_box_min[obj], object_box_max[obj], ray_origin, ray_direction):
        closest_t = t_max
        closest_tri = -1
        material_id = object_material_ids[obj]
        for k in range(object_triangle_counts[obj]):
            tri = object_indices[obj, k]
            uv_tri = object_uv_indices[obj, k]
            rec = hit_triangle(
                object_vertices[obj, tri[0]],
                object_vertices[obj, tri[1]],
                object_vertices[obj, tri[2]],
                object_uvs[obj, uv_tri[0]],
                object_uvs[obj, uv_tri[1]],
                object_uvs[obj, uv_tri[2]],
                ray_origin,
                ray_direction,
                t_min,
                closest_t,
                material_id,
            )
            if rec.hit == 1:
                closest_t = rec.t
                closest_tri = k
                result = rec

        if closest_tri >= 0:
            tri = object_indices[obj, closest_tri]
            uv_tri = object_uv_indices[obj, closest_tri]
            result.uv = barycentric_uv(
                result.point,
                object_vertices[obj, tri[0]],
                object_vertices[obj, tri[1]],
                object_vertices[obj, tri[2]],
                object_uvs[obj, uv_tri[0]],
                object_uvs[obj, uv_tri[1]],
                object_uvs[obj, uv_tri[2]],
            )

    return result


@ti.func
def hit_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test a ray against all primitives in the scene.

    The direction is renormalized on entry so that t values are distances.

    Hits are accepted for t_min < t < t_max, exclusive at both ends. Each
    accepted hit becomes the new upper bound, so a later primitive at exactly
    the same distance never replaces the one found first. A surface lying
    exactly at the caller's t_max is therefore not reported.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Hits at or before t_min are rejected.
        t_max: Hits at or beyond t_max are rejected.

    Returns:
        A HitRecord containing the closest intersection, or a miss
        record if no intersection was found.
    """
    direction = tm.normalize(ray_direction)

    closest_t = t_max
    result = make_miss_record()

    for i in range(num_objects[None]):
        rec = hit_object(i, ray_origin, direction, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec

    for i in range(num_spheres[None]):
        center = sphere_centers[i]
        radius = sphere_radii[i]
        extent = vec3(radius, radius, radius)
        if bounding_box_hit(center - extent, center + extent, ray_origin, direction):
            sphere = Sphere(center=center, radius=radius, material_id=sphere_material_ids[i])
            rec = hit_sphere(sphere, ray_origin, direction, t_min, closest_t)
            if rec.hit == 1:
                closest_t = rec.t
                result = rec

    return result
