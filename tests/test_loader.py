"""Tests for JSON scene files."""

import json
from pathlib import Path

import numpy as np
import pytest

EXAMPLE_SCENES = Path(__file__).resolve().parent.parent / "examples" / "scenes"


class TestRenderSettings:
    def test_defaults_fill_missing_keys(self):
        from pathtracer.scene.loader import RenderSettings

        settings = RenderSettings.from_dict({"width": 64})
        assert settings.width == 64
        assert settings.height == 225
        assert settings.to_dict() == {"width": 64, "height": 225, "max_depth": 10, "frames": 100}

    @pytest.mark.parametrize(
        "kwargs",
        [{"width": 0}, {"height": 5000}, {"max_depth": 0}, {"frames": -1}],
    )
    def test_invalid_settings(self, kwargs):
        from pathtracer.scene.loader import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(**kwargs)


class TestLoadScene:
    def test_two_sphere_example(self):
        from pathtracer.scene.loader import load_scene_file

        loaded = load_scene_file(EXAMPLE_SCENES / "two_spheres.json")
        assert loaded.scene.get_sphere_count() == 2
        assert loaded.scene.get_material_count() == 2
        assert loaded.camera.vfov == 90.0
        assert loaded.render.width == 400
        assert len(loaded.savepoints) == 1
        assert loaded.savepoints[0].unit == "frames"

    def test_materials_example_loads_obj(self):
        from pathtracer.scene.loader import load_scene_file

        loaded = load_scene_file(EXAMPLE_SCENES / "materials.json")
        assert loaded.scene.get_object_count() == 2
        assert loaded.scene.get_triangle_count() == 8
        assert loaded.camera.defocus_angle == 1.0

    def test_empty_description_uses_defaults(self):
        from pathtracer.scene.loader import load_scene_dict

        loaded = load_scene_dict({})
        assert loaded.scene.get_sphere_count() == 0
        assert loaded.render.frames == 100
        assert loaded.savepoints == []

    def test_non_object_rejected(self):
        from pathtracer.scene.loader import load_scene_dict

        with pytest.raises(ValueError):
            load_scene_dict([1, 2, 3])

    def test_invalid_json(self, tmp_path):
        from pathtracer.scene.loader import load_scene_file

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="invalid JSON"):
            load_scene_file(path)

    def test_missing_file(self, tmp_path):
        from pathtracer.scene.loader import load_scene_file

        with pytest.raises(FileNotFoundError):
            load_scene_file(tmp_path / "missing.json")

    def test_bad_savepoint_unit(self):
        from pathtracer.scene.loader import load_scene_dict

        with pytest.raises(ValueError):
            load_scene_dict({"savepoints": [{"path": "x.png", "time": 1, "unit": "days"}]})


class TestSaveScene:
    def test_save_and_reload(self, tmp_path):
        from pathtracer.scene.loader import load_scene_file, save_scene_file, scene_to_dict

        loaded = load_scene_file(EXAMPLE_SCENES / "two_spheres.json")
        out = tmp_path / "copy.json"
        save_scene_file(loaded, out)

        data = json.loads(out.read_text())
        assert data["render"]["width"] == 400
        assert len(data["spheres"]) == 2

        reloaded = load_scene_file(out)
        assert scene_to_dict(reloaded) == data

    def test_textured_scene_reloads(self, tmp_path):
        from PIL import Image

        from pathtracer.scene.loader import LoadedScene, load_scene_file, save_scene_file
        from pathtracer.scene.manager import SceneManager

        Image.new("RGB", (4, 4), (200, 100, 50)).save(tmp_path / "brick.png")
        scene = SceneManager()
        tex = scene.load_texture(tmp_path / "brick.png")
        scene.add_diffuse_material((1.0, 1.0, 1.0), texture_id=tex)

        out = tmp_path / "textured.json"
        save_scene_file(LoadedScene(scene=scene), out)
        reloaded = load_scene_file(out)
        assert len(reloaded.scene.textures) == 1
        assert reloaded.scene.textures[0].albedo_path == str(tmp_path / "brick.png")

    def test_array_texture_cannot_be_saved(self, tmp_path):
        """Textures built from arrays have no file to refer to, so nothing is written."""
        from pathtracer.scene.loader import LoadedScene, save_scene_file
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_texture(np.full((4, 4, 3), 0.5, dtype=np.float32))

        out = tmp_path / "unsaveable.json"
        with pytest.raises(ValueError, match="cannot be serialized"):
            save_scene_file(LoadedScene(scene=scene), out)
        assert not out.exists()
