"""Axis-aligned bounding box slab test.

Used as an O(1) reject before scanning an object's triangles and before
testing a sphere.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.func
def bounding_box_hit(box_min: vec3, box_max: vec3, origin: vec3, direction: vec3) -> ti.i32:
    """Test whether a ray's line crosses an axis-aligned box.

    Computes per-axis slab entry and exit parameters using the inverse
    direction and reports a hit when the latest entry is not after the
    earliest exit.

    Args:
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        origin: Ray origin.
        direction: Ray direction (need not be normalized).

    Returns:
        1 if the slabs overlap, 0 otherwise.
    """
    inv_dir = 1.0 / direction
    t0 = (box_min - origin) * inv_dir
    t1 = (box_max - origin) * inv_dir
    t_small = tm.min(t0, t1)
    t_big = tm.max(t0, t1)
    t_enter = tm.max(tm.max(t_small.x, t_small.y), t_small.z)
    t_exit = tm.min(tm.min(t_big.x, t_big.y), t_big.z)
    return 1 if t_enter <= t_exit else 0
