"""Unit tests for ray-triangle intersection and barycentric UVs."""

import math

import taichi as ti


def _unit_triangle_kernel(hit, t, uv, front, is_tri):
    """Build a kernel testing the triangle (0,0,-1), (1,0,-1), (0,1,-1)."""
    from pathtracer.geometry.triangle import barycentric_uv, hit_triangle, vec2, vec3

    @ti.kernel
    def test_kernel(origin: vec3, direction: vec3):
        v0 = vec3(0.0, 0.0, -1.0)
        v1 = vec3(1.0, 0.0, -1.0)
        v2 = vec3(0.0, 1.0, -1.0)
        uv0 = vec2(0.0, 0.0)
        uv1 = vec2(1.0, 0.0)
        uv2 = vec2(0.0, 1.0)
        rec = hit_triangle(v0, v1, v2, uv0, uv1, uv2, origin, direction, 0.001, 1e10, 3)
        hit[None] = rec.hit
        t[None] = rec.t
        front[None] = rec.front_face
        is_tri[None] = rec.is_triangle
        if rec.hit == 1:
            uv[None] = barycentric_uv(rec.point, v0, v1, v2, uv0, uv1, uv2)

    return test_kernel


class TestTriangleIntersection:
    def test_front_face_hit(self):
        """A ray against the counter-clockwise side hits with barycentric UVs."""
        from pathtracer.geometry.triangle import vec3

        hit = ti.field(dtype=ti.i32, shape=())
        t = ti.field(dtype=ti.f32, shape=())
        uv = ti.Vector.field(2, dtype=ti.f32, shape=())
        front = ti.field(dtype=ti.i32, shape=())
        is_tri = ti.field(dtype=ti.i32, shape=())

        kernel = _unit_triangle_kernel(hit, t, uv, front, is_tri)
        kernel(vec3(0.25, 0.5, 0.0), vec3(0.0, 0.0, -1.0))

        assert hit[None] == 1
        assert abs(t[None] - 1.0) < 1e-5
        assert abs(uv[None][0] - 0.25) < 1e-5
        assert abs(uv[None][1] - 0.5) < 1e-5
        assert front[None] == 1
        assert is_tri[None] == 1

    def test_back_face_is_culled(self):
        """Triangles are one-sided: the clockwise side is invisible."""
        from pathtracer.geometry.triangle import vec3

        hit = ti.field(dtype=ti.i32, shape=())
        t = ti.field(dtype=ti.f32, shape=())
        uv = ti.Vector.field(2, dtype=ti.f32, shape=())
        front = ti.field(dtype=ti.i32, shape=())
        is_tri = ti.field(dtype=ti.i32, shape=())

        kernel = _unit_triangle_kernel(hit, t, uv, front, is_tri)
        kernel(vec3(0.25, 0.25, -2.0), vec3(0.0, 0.0, 1.0))
        assert hit[None] == 0

    def test_outside_edges_missed(self):
        from pathtracer.geometry.triangle import vec3

        hit = ti.field(dtype=ti.i32, shape=())
        t = ti.field(dtype=ti.f32, shape=())
        uv = ti.Vector.field(2, dtype=ti.f32, shape=())
        front = ti.field(dtype=ti.i32, shape=())
        is_tri = ti.field(dtype=ti.i32, shape=())

        kernel = _unit_triangle_kernel(hit, t, uv, front, is_tri)
        kernel(vec3(0.75, 0.75, 0.0), vec3(0.0, 0.0, -1.0))
        assert hit[None] == 0

    def test_parallel_ray_missed(self):
        from pathtracer.geometry.triangle import vec3

        hit = ti.field(dtype=ti.i32, shape=())
        t = ti.field(dtype=ti.f32, shape=())
        uv = ti.Vector.field(2, dtype=ti.f32, shape=())
        front = ti.field(dtype=ti.i32, shape=())
        is_tri = ti.field(dtype=ti.i32, shape=())

        kernel = _unit_triangle_kernel(hit, t, uv, front, is_tri)
        kernel(vec3(-1.0, 0.2, -1.0), vec3(1.0, 0.0, 0.0))
        assert hit[None] == 0


class TestTangentFrame:
    def test_tangent_follows_u(self):
        """With UVs aligned to x/y the tangent is +x and the bitangent +y."""
        from pathtracer.geometry.triangle import triangle_tangent_frame, vec2, vec3

        tangent = ti.Vector.field(3, dtype=ti.f32, shape=())
        bitangent = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            t, b = triangle_tangent_frame(
                vec3(2.0, 0.0, 0.0),
                vec3(0.0, 2.0, 0.0),
                vec2(1.0, 0.0),
                vec2(0.0, 1.0),
                vec3(0.0, 0.0, 1.0),
            )
            tangent[None] = t
            bitangent[None] = b

        test_kernel()
        assert abs(tangent[None][0] - 1.0) < 1e-5
        assert abs(bitangent[None][1] - 1.0) < 1e-5

    def test_degenerate_uvs_fall_back(self):
        """Zero-area UVs still produce a unit tangent frame."""
        from pathtracer.geometry.triangle import triangle_tangent_frame, vec2, vec3

        lengths = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            t, b = triangle_tangent_frame(
                vec3(1.0, 0.0, 0.0),
                vec3(0.0, 1.0, 0.0),
                vec2(0.0, 0.0),
                vec2(0.0, 0.0),
                vec3(0.0, 0.0, 1.0),
            )
            lengths[0] = t.norm()
            lengths[1] = b.norm()

        test_kernel()
        assert abs(lengths[0] - 1.0) < 1e-5
        assert abs(lengths[1] - 1.0) < 1e-5

    def test_zero_area_triangle_uv_is_not_finite(self):
        """Barycentric UVs on a degenerate triangle divide by zero."""
        from pathtracer.geometry.triangle import barycentric_uv, vec2, vec3

        uv = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            uv[None] = barycentric_uv(
                vec3(0.5, 0.0, 0.0),
                vec3(0.0, 0.0, 0.0),
                vec3(1.0, 0.0, 0.0),
                vec3(2.0, 0.0, 0.0),
                vec2(0.0, 0.0),
                vec2(1.0, 0.0),
                vec2(0.0, 1.0),
            )

        test_kernel()
        assert not math.isfinite(uv[None][0]) or not math.isfinite(uv[None][1])
