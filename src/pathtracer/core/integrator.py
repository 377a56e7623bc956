"""Path tracing integrator for Monte Carlo light transport.

Each frame traces one path per pixel. A path starts at the camera, and at
every intersection it:

1. resolves the surface color and shading normal (texture set or albedo),
2. adds the material's emission weighted by the path throughput,
3. scatters according to the material type and multiplies the throughput
   by the attenuation clamped to [0, 1].

Paths end when they leave the scene (sky color), when a material absorbs
them, or when the depth budget is spent. There is no russian roulette, so
``max_depth`` is the number of intersection iterations a path may use.

Textured hits whose parallax-shifted UV leaves [0, 1] let the ray through
the surface unchanged. This reproduces the silhouette cut-out of parallax
mapping but also leaks light through closed meshes at grazing angles.

Example:
    >>> setup_render_target(400, 225)
    >>> setup_camera(CameraConfig(), 400, 225)
    >>> for _ in range(16):
    ...     render_frame(max_depth=10)
    >>> image = get_image_numpy()
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from pathtracer.camera.camera import get_ray
from pathtracer.core.accumulator import (
    accumulation_buffer,
    advance_frame,
    blend,
    check_render_target_initialized,
    get_frame_count,
    get_image_dimensions,
    sanitize_sample,
)
from pathtracer.core.ray import make_ray, ray_at
from pathtracer.core.rng import seed_state, wang_hash
from pathtracer.materials.dielectric import scatter_dielectric
from pathtracer.materials.diffuse import scatter_diffuse
from pathtracer.materials.material import (
    MATERIAL_DIELECTRIC,
    MATERIAL_DIFFUSE,
    MATERIAL_METAL,
    get_material_emission,
    material_albedos,
    material_fuzz_or_ior,
    material_specular_probs,
    material_texture_ids,
    material_types,
)
from pathtracer.materials.metal import scatter_metal
from pathtracer.materials.texture import sample_albedo, texture_normal, texture_uv, uv_in_range
from pathtracer.scene.intersection import hit_scene

vec3 = tm.vec3


class PathState(IntEnum):
    """Termination state of a traced path."""

    TRACING = 0
    MISS = 1
    ABSORBED = 2
    EXHAUSTED = 3


PATH_TRACING = int(PathState.TRACING)
PATH_MISS = int(PathState.MISS)
PATH_ABSORBED = int(PathState.ABSORBED)
PATH_EXHAUSTED = int(PathState.EXHAUSTED)

# =============================================================================
# Rendering Constants
# =============================================================================

# t range for scene intersection; T_MIN also keeps bounces off their own surface
T_MIN = 1e-3
T_MAX = 1e10

# Origin offset for rays passing through an out-of-range textured surface
PASS_THROUGH_OFFSET = 1e-4

DEFAULT_MAX_DEPTH = 10

SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Vertical white-to-blue gradient seen by escaping rays."""
    a = 0.5 * (tm.normalize(direction).y + 1.0)
    return (1.0 - a) * SKY_HORIZON_COLOR + a * SKY_ZENITH_COLOR


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(
    material_id: ti.i32,
    color: vec3,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Dispatch to the scatter function of the material's type.

    Args:
        material_id: Index into the material table.
        color: Resolved surface color (texture sample or albedo).
        incident_direction: The incoming ray direction (normalized).
        normal: The shading normal.
        front_face: 1 if the ray hit the outward-facing side.
        state: RNG state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    mat_type = material_types[material_id]

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    s = state

    if mat_type == MATERIAL_DIFFUSE:
        scattered_direction, attenuation, did_scatter, s = scatter_diffuse(color, normal, s)

    elif mat_type == MATERIAL_METAL:
        scattered_direction, attenuation, did_scatter, s = scatter_metal(
            color,
            material_fuzz_or_ior[material_id],
            material_specular_probs[material_id],
            incident_direction,
            normal,
            s,
        )

    elif mat_type == MATERIAL_DIELECTRIC:
        scattered_direction, attenuation, did_scatter, s = scatter_dielectric(
            color, material_fuzz_or_ior[material_id], incident_direction, normal, front_face, s
        )

    return scattered_direction, attenuation, did_scatter, s


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32, state: ti.u32):
    """Trace one path and estimate the radiance arriving along it.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized on entry).
        max_depth: Maximum number of intersection iterations.
        state: RNG state.

    Returns:
        A tuple of (radiance, path_state, state).
    """
    ray = make_ray(origin, tm.normalize(direction))
    s = state

    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    path_state = PATH_TRACING

    for _ in range(max_depth):
        if path_state == PATH_TRACING:
            rec = hit_scene(ray.origin, ray.direction, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance += throughput * sky_color(ray.direction)
                path_state = PATH_MISS
            else:
                material_id = rec.material_id
                tex_id = material_texture_ids[material_id]
                color = material_albedos[material_id]
                normal = rec.normal
                pass_through = 0

                if tex_id >= 0:
                    uv = texture_uv(
                        tex_id,
                        rec.uv,
                        ray.direction,
                        rec.normal,
                        rec.tangent,
                        rec.bitangent,
                        rec.is_triangle,
                    )
                    if uv_in_range(uv) == 0:
                        pass_through = 1
                    else:
                        color = sample_albedo(tex_id, uv)
                        normal = texture_normal(
                            tex_id, uv, rec.normal, rec.tangent, rec.bitangent, rec.is_triangle
                        )

                if pass_through == 1:
                    # Both t and the offset are measured along the unit direction
                    ray.origin = ray_at(ray, rec.t + PASS_THROUGH_OFFSET)
                else:
                    radiance += throughput * get_material_emission(material_id)

                    scattered_direction, attenuation, did_scatter, s = scatter_material(
                        material_id, color, ray.direction, normal, rec.front_face, s
                    )

                    if did_scatter == 0:
                        path_state = PATH_ABSORBED
                    else:
                        throughput *= tm.clamp(attenuation, 0.0, 1.0)
                        ray.origin = rec.point
                        ray.direction = tm.normalize(scattered_direction)

    if path_state == PATH_TRACING:
        path_state = PATH_EXHAUSTED

    return radiance, path_state, s


@ti.func
def render_pixel(pixel_i: ti.i32, pixel_j: ti.i32, frame: ti.i32, max_depth: ti.i32) -> vec3:
    """Trace one sanitized camera sample for a pixel."""
    state = seed_state(pixel_i, pixel_j, frame)
    origin, direction, state = get_ray(pixel_i, pixel_j, state)
    color, _, state = trace_ray(origin, direction, max_depth, state)
    return sanitize_sample(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_frame(width: ti.i32, height: ti.i32, frame: ti.i32, max_depth: ti.i32):
    """Render one sample per pixel and blend it into the running mean."""
    for i, j in ti.ndrange(width, height):
        color = render_pixel(i, j, frame, max_depth)
        accumulation_buffer[i, j] = blend(accumulation_buffer[i, j], color, frame)


@ti.kernel
def _render_single_pixel(pixel_i: ti.i32, pixel_j: ti.i32, frame: ti.i32, max_depth: ti.i32) -> vec3:
    return render_pixel(pixel_i, pixel_j, frame, max_depth)


_probe_radiance = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_state = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _trace_probe(origin: vec3, direction: vec3, max_depth: ti.i32, seed: ti.u32):
    state = wang_hash(seed | ti.u32(1))
    radiance, path_state, state = trace_ray(origin, direction, max_depth, state)
    _probe_radiance[None] = radiance
    _probe_state[None] = path_state


# =============================================================================
# Public Rendering API
# =============================================================================


def render_frame(max_depth: int = DEFAULT_MAX_DEPTH) -> int:
    """Render one frame into the accumulation buffer.

    The camera must already be uploaded for the current resolution.

    Args:
        max_depth: Maximum intersection iterations per path.

    Returns:
        The frame count after this frame.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If max_depth is not positive.
    """
    check_render_target_initialized()
    if max_depth < 1:
        raise ValueError(f"max_depth = {max_depth} must be at least 1")

    width, height = get_image_dimensions()
    _render_frame(width, height, get_frame_count(), max_depth)
    return advance_frame()


def render_sample(
    pixel_i: int, pixel_j: int, frame: int = 0, max_depth: int = DEFAULT_MAX_DEPTH
) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel without touching the buffer.

    This is a Python-callable function for testing. For production rendering,
    use render_frame() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = top).
        frame: Frame number used to seed the RNG.
        max_depth: Maximum intersection iterations.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    check_render_target_initialized()

    color = _render_single_pixel(pixel_i, pixel_j, frame, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
    seed: int = 0,
) -> tuple[tuple[float, float, float], PathState]:
    """Trace one path from an arbitrary ray.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be normalized).
        max_depth: Maximum intersection iterations.
        seed: RNG seed, hashed before use.

    Returns:
        A tuple of ((R, G, B), PathState). The radiance is not sanitized.
    """
    _trace_probe(vec3(*origin), vec3(*direction), max_depth, seed & 0xFFFFFFFF)
    radiance = _probe_radiance[None]
    return (
        (float(radiance[0]), float(radiance[1]), float(radiance[2])),
        PathState(int(_probe_state[None])),
    )
