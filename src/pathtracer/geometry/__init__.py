"""Geometry module for shape primitives and intersection.

This module provides geometric primitives and intersection algorithms:

Components:
    hit_record: Intersection record shared by all primitives
    aabb: Axis-aligned bounding box slab test
    triangle: One-sided Möller–Trumbore triangle test and UV interpolation
    sphere: Sphere primitive with robust ray-sphere intersection

All intersection routines are Taichi functions (@ti.func) and return a
HitRecord whose ``hit`` field reports whether the ray intersected:
    rec = hit_sphere(sphere, ray_origin, ray_direction, t_min, t_max)
"""

from .aabb import bounding_box_hit
from .hit_record import HitRecord, face_normal, make_miss_record
from .sphere import Sphere, hit_sphere, sphere_tangent_frame, sphere_uv
from .triangle import barycentric_uv, hit_triangle, triangle_tangent_frame

__all__ = [
    "HitRecord",
    "make_miss_record",
    "face_normal",
    "bounding_box_hit",
    "Sphere",
    "hit_sphere",
    "sphere_uv",
    "sphere_tangent_frame",
    "hit_triangle",
    "barycentric_uv",
    "triangle_tangent_frame",
]
