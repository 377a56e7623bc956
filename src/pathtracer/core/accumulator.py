"""Cross-frame accumulation buffer and the incremental-mean blend.

Each pixel holds the running mean of every sample rendered for it so far.
A new frame's sample is folded in with

    new_average = (old_average * frame + sample) / (frame + 1)

where ``frame`` is the frame counter before the increment. After N frames a
pixel equals the arithmetic mean of its N samples, with no drift from
repeated normalization.

Ownership: during a frame, the kernel invocation for pixel (i, j) is the only
reader and writer of ``accumulation_buffer[i, j]``. Frames are separate
kernel launches, and Taichi finishes one launch before the next one reads the
buffer, which gives the frame barrier.

Example:
    >>> setup_render_target(320, 240)
    >>> # ... launch frames through pathtracer.core.integrator.render_frame ...
    >>> image = get_image_numpy()
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running-average color per pixel, indexed [x, y] with y = 0 at the top row
accumulation_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Scene-wide count of completed frames
_frame_counter = ti.field(dtype=ti.i32, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


@ti.func
def blend(old_average: vec3, sample: vec3, frame: ti.i32) -> vec3:
    """Fold a new sample into a running average.

    Args:
        old_average: The mean of the previous ``frame`` samples.
        sample: The new sample.
        frame: Number of samples already in ``old_average``.

    Returns:
        The mean of ``frame + 1`` samples.
    """
    n = ti.cast(frame, ti.f32)
    return (old_average * n + sample) / (n + 1.0)


def blend_value(old_average: float, sample: float, frame: int) -> float:
    """Host-side mirror of ``blend`` for scalar values."""
    return (old_average * frame + sample) / (frame + 1)


@ti.func
def sanitize_sample(color: vec3) -> vec3:
    """Zero out negative, NaN and infinite components of a radiance sample."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            result[c] = 0.0
    return result


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the accumulation state.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Reset every pixel to black and the frame counter to zero."""
    accumulation_buffer.fill(0.0)
    _frame_counter[None] = 0


def check_render_target_initialized() -> None:
    """Raise if ``setup_render_target`` has not been called."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_frame_count() -> int:
    """Number of frames accumulated since the last clear."""
    return int(_frame_counter[None])


def advance_frame() -> int:
    """Increment the frame counter after a completed frame.

    Returns:
        The new frame count.
    """
    _frame_counter[None] = _frame_counter[None] + 1
    return int(_frame_counter[None])


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Read the accumulated image without modifying it.

    Returns:
        Linear RGB array of shape (height, width, 3), not clamped.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = accumulation_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # Buffer is indexed [x, y] with y = 0 at the top, images are [row, col]
    image = np.transpose(image, (1, 0, 2))
    return np.ascontiguousarray(image, dtype=np.float32)
