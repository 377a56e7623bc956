"""Tests for SceneManager: validation, bookkeeping and serialization."""

import numpy as np
import pytest
from PIL import Image

QUAD_VERTICES = [(-1.0, -1.0, -2.0), (1.0, -1.0, -2.0), (1.0, 1.0, -2.0), (-1.0, 1.0, -2.0)]
QUAD_INDICES = [(0, 1, 2), (0, 2, 3)]


class TestSceneManagerBasics:
    def test_creation_clears_tables(self):
        from pathtracer.scene.intersection import add_sphere, get_sphere_count
        from pathtracer.scene.manager import SceneManager

        add_sphere((0.0, 0.0, 0.0), 1.0)
        scene = SceneManager()
        assert get_sphere_count() == 0
        assert scene.get_material_count() == 0

    def test_material_helpers(self):
        from pathtracer.materials.material import MaterialType
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        d = scene.add_diffuse_material((0.5, 0.5, 0.5))
        m = scene.add_metal_material((0.8, 0.8, 0.8), fuzz=0.1)
        g = scene.add_dielectric_material(1.5)
        assert (d, m, g) == (0, 1, 2)
        assert scene.materials[m].material_type == MaterialType.METAL
        assert scene.materials[g].material_type == MaterialType.DIELECTRIC

    def test_invalid_material_id_rejected(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError, match="material_id"):
            scene.add_sphere((0.0, 0.0, 0.0), 1.0, 0)
        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="material_id"):
            scene.add_object(QUAD_VERTICES, QUAD_INDICES, mat + 1)

    def test_invalid_texture_id_rejected(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError, match="texture_id"):
            scene.add_diffuse_material((0.5, 0.5, 0.5), texture_id=0)
        tex = scene.add_texture(np.zeros((2, 2, 3), dtype=np.float32))
        assert scene.add_diffuse_material((0.5, 0.5, 0.5), texture_id=tex) == 0

    def test_add_diffuse_sphere(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        sphere, material = scene.add_diffuse_sphere((0.0, 0.0, -1.0), 0.5, (0.8, 0.3, 0.3))
        assert (sphere, material) == (0, 0)
        assert scene.get_sphere_count() == 1

    def test_triangle_count(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_diffuse_material((0.5, 0.5, 0.5))
        scene.add_object(QUAD_VERTICES, QUAD_INDICES, mat)
        scene.add_object(QUAD_VERTICES, QUAD_INDICES[:1], mat)
        assert scene.get_object_count() == 2
        assert scene.get_triangle_count() == 3


class TestMaterialFromDict:
    def test_known_types(self):
        from pathtracer.materials.material import MaterialType
        from pathtracer.scene.manager import material_from_dict

        metal = material_from_dict({"type": "Metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.3})
        assert metal.material_type == MaterialType.METAL
        assert metal.fuzz_or_ior == 0.3
        glass = material_from_dict({"type": "dielectric"})
        assert glass.fuzz_or_ior == 1.5

    def test_unknown_type(self):
        from pathtracer.scene.manager import material_from_dict

        with pytest.raises(ValueError, match="Unknown material type"):
            material_from_dict({"type": "plastic"})

    def test_wrong_vector_length(self):
        from pathtracer.scene.manager import material_from_dict

        with pytest.raises(ValueError, match="albedo"):
            material_from_dict({"type": "diffuse", "albedo": [0.5, 0.5]})


class TestSerialization:
    def test_dict_roundtrip(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        red = scene.add_diffuse_material((0.8, 0.3, 0.3))
        glass = scene.add_dielectric_material(1.5)
        scene.add_sphere((0.0, 0.0, -1.0), 0.5, red)
        scene.add_object(
            QUAD_VERTICES,
            QUAD_INDICES,
            glass,
            uvs=[(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)],
        )
        data = scene.to_dict()

        restored = SceneManager()
        restored.from_dict(data)
        assert restored.get_material_count() == 2
        assert restored.get_sphere_count() == 1
        assert restored.get_object_count() == 1
        assert restored.to_dict() == data

    def test_objects_from_files_keep_their_path(self, tmp_path):
        from pathtracer.scene.manager import SceneManager

        (tmp_path / "tri.obj").write_text("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 3\n")
        scene = SceneManager()
        scene.from_dict(
            {
                "materials": [{"type": "diffuse"}],
                "objects": [{"obj": "tri.obj", "material_id": 0}],
            },
            base_dir=tmp_path,
        )
        assert scene.get_triangle_count() == 1
        assert scene.to_dict()["objects"] == [
            {"obj": str(tmp_path / "tri.obj"), "material_id": 0}
        ]

    def test_textures_resolve_against_base_dir(self, tmp_path):
        from pathtracer.scene.manager import SceneManager

        Image.new("RGB", (4, 4), (255, 255, 255)).save(tmp_path / "wood.png")
        scene = SceneManager()
        scene.from_dict(
            {
                "textures": [{"albedo": "wood.png"}],
                "materials": [{"type": "diffuse", "texture_id": 0}],
            },
            base_dir=tmp_path,
        )
        assert len(scene.textures) == 1
        assert scene.textures[0].albedo_path == str(tmp_path / "wood.png")

    def test_inline_object_requires_indices(self):
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError, match="indices"):
            scene.from_dict(
                {"materials": [{"type": "diffuse"}], "objects": [{"vertices": QUAD_VERTICES}]}
            )

    def test_texture_entry_requires_albedo(self):
        from pathtracer.scene.manager import SceneManager

        with pytest.raises(ValueError, match="albedo"):
            SceneManager().from_dict({"textures": [{"normal": "n.png"}]})

    def test_forward_material_reference_rejected(self):
        """Primitives may only refer to materials defined in the table."""
        from pathtracer.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager().from_dict(
                {
                    "materials": [{"type": "diffuse"}],
                    "spheres": [{"center": [0, 0, 0], "radius": 1, "material_id": 3}],
                }
            )
