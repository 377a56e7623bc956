"""Tests for the progressive renderer and its savepoints."""

import numpy as np
import pytest
from PIL import Image


class TestProgressiveRenderer:
    def test_initial_state(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(16, 9)
        assert renderer.width == 16
        assert renderer.height == 9
        assert renderer.frame_count == 0
        assert renderer.elapsed_seconds == 0.0
        assert "width=16" in repr(renderer)

    def test_invalid_settings(self):
        from pathtracer.core.progressive import ProgressiveRenderer

        with pytest.raises(ValueError):
            ProgressiveRenderer(16, 9, max_depth=0)
        with pytest.raises(ValueError):
            ProgressiveRenderer(0, 9)

    def test_render_accumulates_frames(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        progress = []
        renderer.render(3, callback=lambda current, target: progress.append((current, target)))
        assert renderer.frame_count == 3
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert renderer.elapsed_seconds > 0.0

    def test_render_progressive_can_stop_early(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        for current, target in renderer.render_progressive(10):
            if current == 4:
                break
        assert renderer.frame_count == 4
        assert np.isfinite(renderer.get_image_numpy()).all()

    def test_zero_frames_is_a_no_op(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        assert list(renderer.render_progressive(0)) == []
        assert renderer.frame_count == 0

    def test_reset_clears_image(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        renderer.render(2)
        renderer.reset()
        assert renderer.frame_count == 0
        assert not renderer.get_image_numpy().any()
        assert renderer.elapsed_seconds == 0.0

    def test_resize(self, two_sphere_scene):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        renderer.render(1)
        renderer.resize(12, 4)
        assert renderer.frame_count == 0
        renderer.render(1)
        assert renderer.get_image_numpy().shape == (4, 12, 3)

    def test_set_camera_resets(self, two_sphere_scene):
        from pathtracer.camera.camera import CameraConfig
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8)
        renderer.render(2)
        renderer.set_camera(CameraConfig(lookfrom=(0.0, 1.0, 2.0), lookat=(0.0, 0.0, -1.0)))
        assert renderer.frame_count == 0

    def test_degenerate_camera_raises_on_render(self, two_sphere_scene):
        from pathtracer.camera.camera import CameraConfig
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8, CameraConfig(vfov=0.0))
        with pytest.raises(ValueError):
            renderer.render_frame()

    def test_save_image_creates_directories(self, two_sphere_scene, tmp_path):
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6)
        renderer.render(2)
        out = tmp_path / "nested" / "dir" / "render.png"
        renderer.save_image(out)

        with Image.open(out) as img:
            assert img.size == (8, 6)
            assert img.mode == "RGB"
        # Saving reads the buffer without modifying it
        assert renderer.frame_count == 2


class TestSavepoints:
    def test_frame_savepoint_written_once(self, two_sphere_scene, tmp_path):
        from pathtracer.core.progressive import ProgressiveRenderer
        from pathtracer.core.savepoint import Savepoint

        path = tmp_path / "snap.png"
        savepoint = Savepoint(str(path), 2, "frames")
        renderer = ProgressiveRenderer(8, 8, savepoints=[savepoint])

        renderer.render_frame()
        assert not path.exists()
        renderer.render_frame()
        assert path.exists()
        assert savepoint.saved

        path.unlink()
        renderer.render(2)
        assert not path.exists()

    def test_time_savepoint(self, two_sphere_scene, tmp_path):
        """A zero-second savepoint fires after the first frame."""
        from pathtracer.core.progressive import ProgressiveRenderer
        from pathtracer.core.savepoint import Savepoint

        path = tmp_path / "early.png"
        late = tmp_path / "late.png"
        renderer = ProgressiveRenderer(
            8,
            8,
            savepoints=[Savepoint(str(path), 0, "seconds"), Savepoint(str(late), 1, "hours")],
        )
        renderer.render_frame()
        assert path.exists()
        assert not late.exists()

    def test_check_savepoints_reports_paths(self, two_sphere_scene, tmp_path):
        from pathtracer.core.progressive import ProgressiveRenderer
        from pathtracer.core.savepoint import Savepoint

        renderer = ProgressiveRenderer(
            4, 4, savepoints=[Savepoint(str(tmp_path / "a.png"), 0, "frames")]
        )
        assert renderer.check_savepoints() == [str(tmp_path / "a.png")]
        assert renderer.check_savepoints() == []
