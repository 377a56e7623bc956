"""Tests for the Wavefront OBJ reader."""

from pathlib import Path

import pytest

EXAMPLE_SCENES = Path(__file__).resolve().parent.parent / "examples" / "scenes"


class TestParseObj:
    def test_triangle_with_uvs(self):
        from pathtracer.scene.obj import parse_obj

        mesh = parse_obj(
            """
            # a textured triangle
            v 0 0 0
            v 1 0 0
            v 0 1 0
            vt 0 0
            vt 1 0
            vt 0 1
            f 1/1 2/2 3/3
            """
        )
        assert mesh.vertices == [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]
        assert mesh.indices == [(0, 1, 2)]
        assert mesh.uv_indices == [(0, 1, 2)]
        assert mesh.triangle_count == 1

    def test_polygons_are_fan_triangulated(self):
        from pathtracer.scene.obj import parse_obj

        mesh = parse_obj("v 0 0 0\nv 1 0 0\nv 1 1 0\nv 0 1 0\nv -1 1 0\nf 1 2 3 4 5\n")
        assert mesh.indices == [(0, 1, 2), (0, 2, 3), (0, 3, 4)]

    def test_missing_uvs_use_default(self):
        """Corners without vt share an appended (0, 0) coordinate."""
        from pathtracer.scene.obj import parse_obj

        mesh = parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0.5 0.5\nf 1//1 2/1 3\n")
        assert mesh.uvs == [(0.5, 0.5), (0.0, 0.0)]
        assert mesh.uv_indices == [(1, 0, 1)]

    def test_negative_indices(self):
        from pathtracer.scene.obj import parse_obj

        mesh = parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nf -3 -2 -1\n")
        assert mesh.indices == [(0, 1, 2)]

    def test_unknown_records_ignored(self):
        from pathtracer.scene.obj import parse_obj

        mesh = parse_obj("o thing\ng group\nvn 0 0 1\nusemtl red\ns off\nv 0 0 0\n")
        assert len(mesh.vertices) == 1
        assert mesh.triangle_count == 0

    @pytest.mark.parametrize(
        "text, message",
        [
            ("v 0 0\n", "Line 1"),
            ("v 0 0 0\nv 1 0 0\nf 1 2\n", "at least 3"),
            ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n", "out of range"),
            ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 0 1 2\n", "index 0"),
            ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 x\n", "invalid"),
            ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1/2 2 3\n", "UV index"),
        ],
    )
    def test_malformed_input(self, text, message):
        from pathtracer.scene.obj import parse_obj

        with pytest.raises(ValueError, match=message):
            parse_obj(text)


class TestLoadObj:
    def test_example_pyramid(self):
        from pathtracer.scene.obj import load_obj

        mesh = load_obj(EXAMPLE_SCENES / "pyramid.obj")
        assert mesh.triangle_count > 0
        assert len(mesh.uv_indices) == mesh.triangle_count

    def test_missing_file(self, tmp_path):
        from pathtracer.scene.obj import load_obj

        with pytest.raises(FileNotFoundError):
            load_obj(tmp_path / "nothing.obj")
