"""End-to-end rendering of the example scene files.

Renders are small (a few dozen pixels wide, a handful of frames) but run
the whole pipeline: scene file, camera, integrator, accumulation and PNG.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

EXAMPLE_SCENES = Path(__file__).resolve().parent.parent / "examples" / "scenes"


def _render_example(name: str, width: int, height: int, frames: int):
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.loader import load_scene_file

    loaded = load_scene_file(EXAMPLE_SCENES / name)
    renderer = ProgressiveRenderer(width, height, loaded.camera, max_depth=loaded.render.max_depth)
    renderer.render(frames)
    return renderer


class TestTwoSphereScene:
    def test_image_is_finite_and_non_negative(self) -> None:
        renderer = _render_example("two_spheres.json", 40, 20, 4)
        image = renderer.get_image_numpy()

        assert image.shape == (20, 40, 3)
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)

    def test_sky_above_red_sphere_in_the_middle(self) -> None:
        renderer = _render_example("two_spheres.json", 40, 20, 8)
        image = renderer.get_image_numpy()

        top = image[0].mean(axis=0)
        assert top[2] > top[0], "Top row should be blue sky"

        center = image[9:11, 19:21].mean(axis=(0, 1))
        assert center[0] > center[2], "Image centre should show the red sphere"

    def test_ground_reflects_no_blue_light_directly(self) -> None:
        """The yellow ground absorbs blue, so the bottom row is warmer than the sky."""
        renderer = _render_example("two_spheres.json", 40, 20, 8)
        image = renderer.get_image_numpy()

        bottom = image[-1].mean(axis=0)
        assert bottom[0] > bottom[2]


class TestSingleBounceTwoSphereScene:
    """One frame at max_depth=1: escaping rays show the sky, sphere hits go dark."""

    WIDTH = 40
    HEIGHT = 20

    def _render(self):
        from pathtracer.core.progressive import ProgressiveRenderer
        from pathtracer.scene.loader import load_scene_file

        loaded = load_scene_file(EXAMPLE_SCENES / "two_spheres.json")
        renderer = ProgressiveRenderer(self.WIDTH, self.HEIGHT, loaded.camera, max_depth=1)
        renderer.render(1)
        return renderer.get_image_numpy()

    def test_centre_pixel_is_not_sky(self) -> None:
        image = self._render()
        center = image[self.HEIGHT // 2, self.WIDTH // 2]

        # The first hit uses up the whole budget, so the path ends with no radiance
        np.testing.assert_allclose(center, [0.0, 0.0, 0.0])

    def test_top_row_pixel_is_sky(self) -> None:
        image = self._render()
        i = self.WIDTH // 2
        r, g, b = image[0, i]

        # sky = (1 - a) * white + a * (0.5, 0.7, 1.0) for a single blend factor a
        a = 2.0 * (1.0 - r)
        assert b == pytest.approx(1.0, abs=1e-6)
        assert g == pytest.approx(1.0 - 0.3 * a, abs=1e-5)

        # a = 0.5 * (dir.y + 1) for some direction through the pixel's footprint.
        # The camera looks down -z with vfov 90 and a viewport at distance 1.
        aspect = self.WIDTH / self.HEIGHT
        xs = (-aspect + 2.0 * aspect * i / self.WIDTH, -aspect + 2.0 * aspect * (i + 1) / self.WIDTH)
        ys = (1.0, 1.0 - 2.0 / self.HEIGHT)
        corners = np.array([(x, y, -1.0) for x in xs for y in ys])
        dir_y = corners[:, 1] / np.linalg.norm(corners, axis=1)
        a_range = 0.5 * (dir_y + 1.0)
        assert a_range.min() - 1e-5 <= a <= a_range.max() + 1e-5


class TestMaterialsScene:
    def test_all_material_types_render(self, tmp_path) -> None:
        renderer = _render_example("materials.json", 48, 27, 2)
        image = renderer.get_image_numpy()

        assert np.all(np.isfinite(image))
        assert image.max() > 0.0

        path = tmp_path / "materials.png"
        renderer.save_image(path, tone_map="reinhard")
        with Image.open(path) as img:
            assert img.size == (48, 27)

    @pytest.mark.parametrize("frames", [1, 3])
    def test_frame_count_matches_request(self, frames: int) -> None:
        renderer = _render_example("materials.json", 16, 9, frames)
        assert renderer.frame_count == frames
