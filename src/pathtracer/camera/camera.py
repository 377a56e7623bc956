"""Thin-lens camera model for primary ray generation.

This module derives a ray-generation basis from a look-at configuration and
the output resolution, and generates jittered primary rays with optional
depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits at ``focus_dist`` in front of the camera. Pixel (0, 0) is
the upper-left pixel; its sample point is the viewport's upper-left corner
offset by half a pixel step in each direction. Rays start at the camera
center, or at a random point on the defocus disk when ``defocus_angle > 0``.

Setup math runs once per frame in Python with NumPy and is written into
Taichi fields; ray generation runs inside kernels.

Example:
    >>> config = CameraConfig(
    ...     lookfrom=(0.0, 0.0, 0.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ... )
    >>> setup_camera(config, 400, 225)
    >>> @ti.kernel
    ... def render():
    ...     state = seed_state(0, 0, 0)
    ...     origin, direction, state = get_ray(0, 0, state)
"""

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.rng import random_in_unit_disk, random_in_unit_square

vec3 = tm.vec3


@dataclass
class CameraConfig:
    """Configuration for the camera.

    Attributes:
        lookfrom: Camera position in world space.
        lookat: Point the camera is looking at.
        vup: Up direction used to orient the camera.
        vfov: Vertical field of view in degrees.
        focus_dist: Distance from the camera to the plane of perfect focus.
        defocus_angle: Aperture cone angle in degrees. 0 disables depth of field.
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    focus_dist: float = 1.0
    defocus_angle: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CameraConfig":
        """Build a camera configuration from a scene-file dictionary."""
        defaults = cls()
        return cls(
            lookfrom=tuple(data.get("lookfrom", defaults.lookfrom)),
            lookat=tuple(data.get("lookat", defaults.lookat)),
            vup=tuple(data.get("vup", defaults.vup)),
            vfov=float(data.get("vfov", defaults.vfov)),
            focus_dist=float(data.get("focus_dist", defaults.focus_dist)),
            defocus_angle=float(data.get("defocus_angle", defaults.defocus_angle)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "focus_dist": self.focus_dist,
            "defocus_angle": self.defocus_angle,
        }


@dataclass
class CameraState:
    """Derived per-frame camera state (world-space vectors as NumPy arrays)."""

    center: np.ndarray
    pixel00: np.ndarray
    pixel_delta_u: np.ndarray
    pixel_delta_v: np.ndarray
    defocus_disk_u: np.ndarray
    defocus_disk_v: np.ndarray
    u: np.ndarray
    v: np.ndarray
    w: np.ndarray
    defocus_angle: float


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel00 = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_angle = ti.field(dtype=ti.f32, shape=())


def compute_camera_state(config: CameraConfig, width: int, height: int) -> CameraState:
    """Compute the camera basis and viewport geometry without touching fields.

    Args:
        config: Camera configuration.
        width: Output width in pixels.
        height: Output height in pixels.

    Returns:
        The derived CameraState.

    Raises:
        ValueError: If the configuration produces a degenerate viewport.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Output resolution must be positive, got {width}x{height}")
    if not 0.0 < config.vfov < 180.0:
        raise ValueError(f"Vertical field of view must be in (0, 180) degrees, got {config.vfov}")
    if config.focus_dist <= 0.0:
        raise ValueError(f"Focus distance must be positive, got {config.focus_dist}")
    if config.defocus_angle < 0.0:
        raise ValueError(f"Defocus angle must be non-negative, got {config.defocus_angle}")

    lookfrom = np.array(config.lookfrom, dtype=np.float64)
    lookat = np.array(config.lookat, dtype=np.float64)
    vup = np.array(config.vup, dtype=np.float64)

    # w points from lookat toward lookfrom (backward)
    w = lookfrom - lookat
    w_len = np.linalg.norm(w)
    if w_len < 1e-12:
        raise ValueError("Camera lookfrom and lookat must be different points")
    w = w / w_len

    # u points right (perpendicular to w and vup)
    u = np.cross(vup, w)
    u_len = np.linalg.norm(u)
    if u_len < 1e-12:
        raise ValueError("Camera up vector must not be parallel to the view direction")
    u = u / u_len

    v = np.cross(w, u)

    theta = math.radians(config.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h * config.focus_dist
    viewport_width = viewport_height * (float(width) / float(height))

    # Horizontal runs left to right, vertical runs top to bottom
    viewport_u = viewport_width * u
    viewport_v = viewport_height * -v

    pixel_delta_u = viewport_u / width
    pixel_delta_v = viewport_v / height

    viewport_upper_left = lookfrom - config.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
    pixel00 = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    defocus_radius = config.focus_dist * math.tan(math.radians(config.defocus_angle) / 2.0)

    return CameraState(
        center=lookfrom,
        pixel00=pixel00,
        pixel_delta_u=pixel_delta_u,
        pixel_delta_v=pixel_delta_v,
        defocus_disk_u=u * defocus_radius,
        defocus_disk_v=v * defocus_radius,
        u=u,
        v=v,
        w=w,
        defocus_angle=config.defocus_angle,
    )


def setup_camera(config: CameraConfig, width: int, height: int) -> CameraState:
    """Compute the camera state and upload it to the kernel-side fields.

    Called once per frame by the progressive renderer; the computation is
    cheap and keeps the fields consistent with the current configuration.

    Args:
        config: Camera configuration.
        width: Output width in pixels.
        height: Output height in pixels.

    Returns:
        The derived CameraState.

    Raises:
        ValueError: If the configuration produces a degenerate viewport.
    """
    state = compute_camera_state(config, width, height)

    _camera_center[None] = state.center.tolist()
    _pixel00[None] = state.pixel00.tolist()
    _pixel_delta_u[None] = state.pixel_delta_u.tolist()
    _pixel_delta_v[None] = state.pixel_delta_v.tolist()
    _defocus_disk_u[None] = state.defocus_disk_u.tolist()
    _defocus_disk_v[None] = state.defocus_disk_v.tolist()
    _defocus_angle[None] = state.defocus_angle

    return state


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def defocus_disk_sample(state: ti.u32):
    """Return a random ray origin on the camera's defocus disk."""
    p, s = random_in_unit_disk(state)
    origin = _camera_center[None] + p.x * _defocus_disk_u[None] + p.y * _defocus_disk_v[None]
    return origin, s


@ti.func
def get_ray(pixel_i: ti.i32, pixel_j: ti.i32, state: ti.u32):
    """Generate a jittered primary ray through pixel (i, j).

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = top).
        state: RNG state.

    Returns:
        A tuple (origin, direction, new_state). The direction is normalized.
    """
    offset, s = random_in_unit_square(state)
    pixel_sample = (
        _pixel00[None]
        + (ti.cast(pixel_i, ti.f32) + offset.x) * _pixel_delta_u[None]
        + (ti.cast(pixel_j, ti.f32) + offset.y) * _pixel_delta_v[None]
    )

    origin = _camera_center[None]
    if _defocus_angle[None] > 0.0:
        origin, s = defocus_disk_sample(s)

    direction = tm.normalize(pixel_sample - origin)
    return origin, direction, s


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with center, pixel00, pixel deltas and defocus disk vectors.
    """
    fields = {
        "center": _camera_center,
        "pixel00": _pixel00,
        "pixel_delta_u": _pixel_delta_u,
        "pixel_delta_v": _pixel_delta_v,
        "defocus_disk_u": _defocus_disk_u,
        "defocus_disk_v": _defocus_disk_v,
    }
    info = {}
    for name, field in fields.items():
        vec = field[None]
        info[name] = (float(vec[0]), float(vec[1]), float(vec[2]))
    return info
