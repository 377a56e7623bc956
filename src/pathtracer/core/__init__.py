"""Core rendering module.

Components:
    ray: Ray dataclass and vector helpers (reflect, refract, Schlick)
    rng: Explicit-state random number generation
    accumulator: Accumulation buffer and incremental-mean blend
    savepoint: Scheduled snapshot triggers
    integrator: Path tracing kernel and single-ray probes
    progressive: Frame loop with savepoints

The integrator and progressive renderer depend on the scene and material
tables, so they are imported from their modules directly:
    >>> from pathtracer.core.progressive import ProgressiveRenderer
"""

from .accumulator import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    blend_value,
    clear_render_target,
    get_frame_count,
    get_image_numpy,
    setup_render_target,
)
from .ray import Ray, make_ray, ray_at, reflect, refract, schlick_fresnel
from .savepoint import Savepoint

__all__ = [
    # Ray helpers
    "Ray",
    "make_ray",
    "ray_at",
    "reflect",
    "refract",
    "schlick_fresnel",
    # Accumulation
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
    "blend_value",
    "setup_render_target",
    "clear_render_target",
    "get_frame_count",
    "get_image_numpy",
    # Savepoints
    "Savepoint",
]
