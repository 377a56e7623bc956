"""Explicit-state pseudo-random number generation for the render kernels.

Every random draw takes a 32-bit state and returns the drawn value together
with the advanced state. Nothing here touches global state, so two pixels
rendered in parallel never share a stream, and two invocations with the same
seed and the same sequence of calls produce bit-identical results.

The generator has two stages:

1. ``seed_state`` folds the pixel coordinates and the frame counter into one
   32-bit value and runs it through a Wang avalanche hash, so neighbouring
   pixels and consecutive frames start from uncorrelated states.
2. ``next_float`` advances the state with a 32-bit LCG step and passes the new
   state through a multiply-xor-shift permutation before mapping it to
   ``[0, 1)``.

All multipliers fit in a signed 32-bit literal so they can be cast to
``ti.u32`` inside Taichi scope. Arithmetic on ``ti.u32`` wraps modulo 2^32.

Example:
    >>> @ti.kernel
    ... def draw(i: ti.i32, j: ti.i32, frame: ti.i32) -> ti.f32:
    ...     state = seed_state(i, j, frame)
    ...     value, state = next_float(state)
    ...     return value
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import length_squared

vec2 = tm.vec2
vec3 = tm.vec3

# Upper bound on rejection sampling iterations. The acceptance rate of the
# disk and ball tests is above 50%, so the cap is only reached on
# pathological floating-point input.
MAX_REJECTION_TRIES = 64

# Squared-length floor for random unit vectors (avoids normalizing ~0).
MIN_UNIT_VECTOR_LENGTH_SQUARED = 1e-4

# 24 bits of mantissa: the top bits of the hashed word divided by 2^24
# are exactly representable in f32 and strictly below 1.0.
_FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def wang_hash(seed: ti.u32) -> ti.u32:
    """Avalanche hash of a 32-bit integer (Thomas Wang)."""
    x = seed
    x = (x ^ ti.u32(61)) ^ (x >> ti.u32(16))
    x *= ti.u32(9)
    x = x ^ (x >> ti.u32(4))
    x *= ti.u32(668265261)
    x = x ^ (x >> ti.u32(15))
    return x


@ti.func
def seed_state(pixel_i: ti.i32, pixel_j: ti.i32, frame: ti.i32) -> ti.u32:
    """Derive the initial RNG state for a (pixel, frame) pair.

    Args:
        pixel_i: Pixel x-coordinate.
        pixel_j: Pixel y-coordinate.
        frame: Frame counter of the current dispatch.

    Returns:
        A hashed, non-zero 32-bit state.
    """
    x = (
        ti.cast(pixel_i, ti.u32) * ti.u32(1973)
        + ti.cast(pixel_j, ti.u32) * ti.u32(9277)
        + ti.cast(frame, ti.u32) * ti.u32(26699)
    )
    x = x | ti.u32(1)
    return wang_hash(x)


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current RNG state.

    Returns:
        A tuple (value, new_state).
    """
    s = state * ti.u32(1664525) + ti.u32(1013904223)
    word = s ^ (s >> ti.u32(16))
    word *= ti.u32(73244475)
    word = word ^ (word >> ti.u32(16))
    value = ti.cast(word >> ti.u32(8), ti.f32) * _FLOAT_SCALE
    return value, s


@ti.func
def random_vec3(state: ti.u32):
    """Draw a vector with each component uniform in [0, 1)."""
    x, s = next_float(state)
    y, s = next_float(s)
    z, s = next_float(s)
    return vec3(x, y, z), s


@ti.func
def random_in_unit_square(state: ti.u32):
    """Draw a point uniformly inside the unit square centered at the origin.

    Returns:
        A tuple (offset, new_state) with offset in [-0.5, 0.5)^2.
    """
    x, s = next_float(state)
    y, s = next_float(s)
    return vec2(x - 0.5, y - 0.5), s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Draw a point uniformly inside the unit disk in the xy-plane.

    Uses rejection sampling on [-1, 1]^2. Falls back to the disk center if
    no candidate is accepted within MAX_REJECTION_TRIES draws.

    Returns:
        A tuple (point, new_state) with point = (x, y, 0), x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_TRIES):
        if found == 0:
            x, s = next_float(s)
            y, s = next_float(s)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = 1
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Draw a unit vector uniformly distributed on the sphere.

    Rejection-samples the unit ball and normalizes the accepted point.
    Candidates with squared length below MIN_UNIT_VECTOR_LENGTH_SQUARED are
    rejected. Falls back to +Y if the iteration cap is reached.

    Returns:
        A tuple (direction, new_state).
    """
    p = vec3(0.0, 1.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_TRIES):
        if found == 0:
            r, s = random_vec3(s)
            candidate = 2.0 * r - 1.0
            len_sq = length_squared(candidate)
            if len_sq > MIN_UNIT_VECTOR_LENGTH_SQUARED and len_sq <= 1.0:
                p = candidate / ti.sqrt(len_sq)
                found = 1
    return p, s
