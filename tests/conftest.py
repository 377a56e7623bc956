"""Pytest configuration for path tracer tests.

Taichi is initialized once per session. Package modules declare Taichi
fields at import time, so tests import them inside test functions.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Repeated ti.init() calls reset the runtime and invalidate fields that
    other modules already declared.
    """
    ti.init(arch=ti.cpu, random_seed=42, fast_math=False)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every global table before and after each test."""
    from pathtracer.core.accumulator import clear_render_target
    from pathtracer.materials.material import clear_materials
    from pathtracer.materials.texture import clear_textures
    from pathtracer.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_textures()
        clear_render_target()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def two_sphere_scene():
    """The reference scene: a red sphere resting on a large yellow sphere."""
    from pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    red = scene.add_diffuse_material((0.8, 0.3, 0.3))
    ground = scene.add_diffuse_material((1.0, 1.0, 0.0))
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, red)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    return scene
