"""JSON scene files.

A scene file is a JSON object with these optional keys:

    render      {"width", "height", "max_depth", "frames"}
    camera      CameraConfig fields
    textures    [{"albedo", "normal", "depth", "depth_scale"}]
    materials   [{"type": "diffuse" | "metal" | "dielectric", ...}]
    spheres     [{"center", "radius", "material_id"}]
    objects     [{"obj": path, "material_id"} or inline
                 {"vertices", "indices", "uvs", "uv_indices", "material_id"}]
    savepoints  [{"path", "time", "unit"}]

Texture and OBJ paths are resolved relative to the scene file's directory.
Savepoint output paths are used as given.

Example:
    >>> loaded = load_scene_file("scenes/two_spheres.json")
    >>> renderer = ProgressiveRenderer(
    ...     loaded.render.width, loaded.render.height, loaded.camera,
    ...     loaded.render.max_depth, loaded.savepoints,
    ... )
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from pathtracer.camera.camera import CameraConfig
from pathtracer.core.accumulator import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
from pathtracer.core.savepoint import Savepoint
from pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)


@dataclass
class RenderSettings:
    """Output and sampling settings.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum intersection iterations per path.
        frames: Number of frames to accumulate (one sample per pixel each).
    """

    width: int = 400
    height: int = 225
    max_depth: int = 10
    frames: int = 100

    def __post_init__(self) -> None:
        if not 0 < self.width <= MAX_IMAGE_WIDTH or not 0 < self.height <= MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Resolution {self.width}x{self.height} must be positive and at most "
                f"{MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT}"
            )
        if self.max_depth < 1:
            raise ValueError(f"max_depth = {self.max_depth} must be at least 1")
        if self.frames < 0:
            raise ValueError(f"frames = {self.frames} must be non-negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        defaults = cls()
        return cls(
            width=int(data.get("width", defaults.width)),
            height=int(data.get("height", defaults.height)),
            max_depth=int(data.get("max_depth", defaults.max_depth)),
            frames=int(data.get("frames", defaults.frames)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LoadedScene:
    """Everything a scene file describes, with the scene tables populated."""

    scene: SceneManager
    camera: CameraConfig = field(default_factory=CameraConfig)
    render: RenderSettings = field(default_factory=RenderSettings)
    savepoints: list[Savepoint] = field(default_factory=list)


def load_scene_dict(data: dict[str, Any], base_dir: str | Path | None = None) -> LoadedScene:
    """Populate the scene tables from a parsed scene description.

    Raises:
        ValueError: If the description contains invalid data.
        RuntimeError: If a capacity is exceeded.
        FileNotFoundError: If a referenced texture or OBJ file doesn't exist.
    """
    if not isinstance(data, dict):
        raise ValueError("Scene description must be a JSON object")

    render = RenderSettings.from_dict(data.get("render", {}))
    camera = CameraConfig.from_dict(data.get("camera", {}))
    savepoints = [Savepoint.from_dict(sp) for sp in data.get("savepoints", [])]

    scene = SceneManager()
    scene.from_dict(data, base_dir=base_dir)

    logger.info(
        "Loaded scene: %d materials, %d textures, %d spheres, %d objects (%d triangles)",
        scene.get_material_count(),
        len(scene.textures),
        scene.get_sphere_count(),
        scene.get_object_count(),
        scene.get_triangle_count(),
    )
    return LoadedScene(scene=scene, camera=camera, render=render, savepoints=savepoints)


def load_scene_file(path: str | Path) -> LoadedScene:
    """Read a JSON scene file and populate the scene tables.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is not valid JSON or contains invalid data.
    """
    path = Path(path)
    logger.info("Loading scene file %s", path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON ({e})") from e
    return load_scene_dict(data, base_dir=path.parent)


def scene_to_dict(loaded: LoadedScene) -> dict[str, Any]:
    """Serialize a loaded scene back to the scene-file format."""
    data: dict[str, Any] = {
        "render": loaded.render.to_dict(),
        "camera": loaded.camera.to_dict(),
    }
    data.update(loaded.scene.to_dict())
    data["savepoints"] = [sp.to_dict() for sp in loaded.savepoints]
    return data


def save_scene_file(loaded: LoadedScene, path: str | Path) -> None:
    """Write a scene file. Referenced file paths are written as stored."""
    Path(path).write_text(json.dumps(scene_to_dict(loaded), indent=2), encoding="utf-8")
