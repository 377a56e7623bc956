"""Scene manager coordinating materials, textures and primitives.

The SceneManager is the Python-side owner of the global scene tables. It
validates references (material ids, texture ids) at load time so kernels
never see an out-of-range index, and keeps a record of everything it added
for serialization.

Example:
    >>> scene = SceneManager()
    >>> red = scene.add_diffuse_material(albedo=(0.8, 0.3, 0.3))
    >>> ground = scene.add_diffuse_material(albedo=(1.0, 1.0, 0.0))
    >>> scene.add_sphere((0, 0, -1), 0.5, red)
    >>> scene.add_sphere((0, -100.5, -1), 100, ground)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from pathtracer.materials.dielectric import dielectric_material
from pathtracer.materials.diffuse import diffuse_material
from pathtracer.materials.material import (
    NO_TEXTURE,
    MaterialParams,
    add_material,
    clear_materials,
    get_material_count,
)
from pathtracer.materials.metal import metal_material
from pathtracer.materials.texture import (
    DEFAULT_DEPTH_SCALE,
    add_texture,
    clear_textures,
    get_texture_count,
    load_texture_set,
)
from pathtracer.scene.intersection import (
    add_object,
    add_sphere,
    clear_scene,
    get_object_count,
    get_sphere_count,
)
from pathtracer.scene.obj import load_obj


@dataclass
class TextureInfo:
    """A registered texture set. Paths are None for array-backed textures."""

    texture_id: int
    albedo_path: str | None = None
    normal_path: str | None = None
    depth_path: str | None = None
    depth_scale: float = DEFAULT_DEPTH_SCALE


@dataclass
class SphereInfo:
    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class ObjectInfo:
    """A registered triangle mesh.

    Attributes:
        object_index: The index in the object tables.
        vertices: Vertex positions.
        indices: Vertex index triples.
        uvs: Texture coordinates.
        uv_indices: UV index triples.
        material_id: The material ID assigned to the mesh.
        source: OBJ path the mesh was loaded from, if any.
    """

    object_index: int
    vertices: list[tuple[float, float, float]]
    indices: list[tuple[int, int, int]]
    uvs: list[tuple[float, float]]
    uv_indices: list[tuple[int, int, int]]
    material_id: int
    source: str | None = None


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Each list holds scene-file dictionaries in table order, so list
    positions are the ids other entries refer to.
    """

    textures: list[dict[str, Any]] = field(default_factory=list)
    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    objects: list[dict[str, Any]] = field(default_factory=list)


def _vec(data: dict[str, Any], key: str, default: tuple[float, ...]) -> tuple[float, ...]:
    value = data.get(key, default)
    if len(value) != len(default):
        raise ValueError(f"'{key}' must have {len(default)} components, got {len(value)}")
    return tuple(float(x) for x in value)


def material_from_dict(data: dict[str, Any]) -> MaterialParams:
    """Build validated material parameters from a scene-file entry.

    Raises:
        ValueError: For an unknown type or invalid values.
    """
    mat_type = str(data.get("type", "")).lower()
    common = {
        "emission_color": _vec(data, "emission_color", (0.0, 0.0, 0.0)),
        "emission_strength": float(data.get("emission_strength", 0.0)),
        "texture_id": int(data.get("texture_id", NO_TEXTURE)),
    }
    if mat_type == "diffuse":
        return diffuse_material(_vec(data, "albedo", (0.5, 0.5, 0.5)), **common)
    if mat_type == "metal":
        return metal_material(
            _vec(data, "albedo", (0.8, 0.8, 0.8)),
            float(data.get("fuzz", 0.0)),
            float(data.get("specular_prob", 0.0)),
            **common,
        )
    if mat_type == "dielectric":
        return dielectric_material(
            float(data.get("ior", 1.5)), _vec(data, "albedo", (1.0, 1.0, 1.0)), **common
        )
    raise ValueError(f"Unknown material type: {mat_type}")


def _resolve(path: str | None, base_dir: Path | None) -> str | None:
    if path is None:
        return None
    p = Path(path)
    if base_dir is not None and not p.is_absolute():
        p = base_dir / p
    return str(p)


class SceneManager:
    """Builds the global scene tables with load-time validation.

    Creating a SceneManager clears all scene tables.

    Attributes:
        textures: TextureInfo for every texture set, indexed by texture id.
        materials: MaterialParams for every material, indexed by material id.
        spheres: SphereInfo for all spheres.
        objects: ObjectInfo for all triangle meshes.
    """

    def __init__(self) -> None:
        self.textures: list[TextureInfo] = []
        self.materials: list[MaterialParams] = []
        self.spheres: list[SphereInfo] = []
        self.objects: list[ObjectInfo] = []
        self.clear()

    def clear(self) -> None:
        """Clear all Taichi tables and internal tracking."""
        clear_scene()
        clear_materials()
        clear_textures()
        self.textures.clear()
        self.materials.clear()
        self.spheres.clear()
        self.objects.clear()

    # =========================================================================
    # Textures
    # =========================================================================

    def add_texture(
        self,
        albedo: npt.NDArray[np.float32],
        normal: npt.NDArray[np.float32] | None = None,
        depth: npt.NDArray[np.float32] | None = None,
        depth_scale: float = DEFAULT_DEPTH_SCALE,
    ) -> int:
        """Add a texture set from arrays. See ``materials.texture.add_texture``."""
        texture_id = add_texture(albedo, normal, depth, depth_scale)
        self.textures.append(
            TextureInfo(texture_id, depth_scale=depth_scale if depth is not None else 0.0)
        )
        return texture_id

    def load_texture(
        self,
        albedo_path: str | Path,
        normal_path: str | Path | None = None,
        depth_path: str | Path | None = None,
        depth_scale: float = DEFAULT_DEPTH_SCALE,
    ) -> int:
        """Add a texture set from image files.

        Raises:
            FileNotFoundError: If an image file doesn't exist.
            RuntimeError: If the maximum number of textures is exceeded.
        """
        texture_id = load_texture_set(albedo_path, normal_path, depth_path, depth_scale)
        self.textures.append(
            TextureInfo(
                texture_id,
                albedo_path=str(albedo_path),
                normal_path=str(normal_path) if normal_path is not None else None,
                depth_path=str(depth_path) if depth_path is not None else None,
                depth_scale=depth_scale,
            )
        )
        return texture_id

    # =========================================================================
    # Materials
    # =========================================================================

    def add_material(self, params: MaterialParams) -> int:
        """Add a material after checking its texture reference.

        Raises:
            ValueError: If texture_id does not name a loaded texture set.
            RuntimeError: If the maximum number of materials is exceeded.
        """
        if params.texture_id != NO_TEXTURE and not 0 <= params.texture_id < get_texture_count():
            raise ValueError(f"Invalid texture_id: {params.texture_id}")
        material_id = add_material(params)
        self.materials.append(params)
        return material_id

    def add_diffuse_material(
        self,
        albedo: tuple[float, float, float],
        *,
        emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
        emission_strength: float = 0.0,
        texture_id: int = NO_TEXTURE,
    ) -> int:
        """Add a diffuse material and return its id."""
        return self.add_material(
            diffuse_material(
                albedo,
                emission_color=emission_color,
                emission_strength=emission_strength,
                texture_id=texture_id,
            )
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
        specular_prob: float = 0.0,
        *,
        emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
        emission_strength: float = 0.0,
        texture_id: int = NO_TEXTURE,
    ) -> int:
        """Add a metal material and return its id.

        Raises:
            ValueError: If albedo, fuzz or specular_prob is outside [0, 1].
        """
        return self.add_material(
            metal_material(
                albedo,
                fuzz,
                specular_prob,
                emission_color=emission_color,
                emission_strength=emission_strength,
                texture_id=texture_id,
            )
        )

    def add_dielectric_material(
        self,
        ior: float = 1.5,
        albedo: tuple[float, float, float] = (1.0, 1.0, 1.0),
        *,
        emission_color: tuple[float, float, float] = (0.0, 0.0, 0.0),
        emission_strength: float = 0.0,
        texture_id: int = NO_TEXTURE,
    ) -> int:
        """Add a dielectric material and return its id.

        Raises:
            ValueError: If ior is not positive.
        """
        return self.add_material(
            dielectric_material(
                ior,
                albedo,
                emission_color=emission_color,
                emission_strength=emission_strength,
                texture_id=texture_id,
            )
        )

    def get_material_count(self) -> int:
        return get_material_count()

    def _check_material_id(self, material_id: int) -> None:
        if not 0 <= material_id < get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitives
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Raises:
            ValueError: If material_id is invalid or the radius not positive.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        self._check_material_id(material_id)
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, tuple(center), radius, material_id))
        return sphere_index

    def add_object(
        self,
        vertices: list[tuple[float, float, float]],
        indices: list[tuple[int, int, int]],
        material_id: int,
        uvs: list[tuple[float, float]] | None = None,
        uv_indices: list[tuple[int, int, int]] | None = None,
        source: str | None = None,
    ) -> int:
        """Add a triangle mesh to the scene.

        Raises:
            ValueError: If material_id is invalid or the mesh is malformed.
            RuntimeError: If an object capacity is exceeded.
        """
        self._check_material_id(material_id)
        object_index = add_object(vertices, indices, uvs, uv_indices, material_id)
        if uvs and not uv_indices:
            uv_indices = indices
        self.objects.append(
            ObjectInfo(
                object_index=object_index,
                vertices=[tuple(v) for v in vertices],
                indices=[tuple(t) for t in indices],
                uvs=[tuple(uv) for uv in uvs] if uvs else [],
                uv_indices=[tuple(t) for t in uv_indices] if uv_indices else [],
                material_id=material_id,
                source=source,
            )
        )
        return object_index

    def load_object(self, path: str | Path, material_id: int) -> int:
        """Add a mesh read from an OBJ file."""
        mesh = load_obj(path)
        return self.add_object(
            mesh.vertices,
            mesh.indices,
            material_id,
            uvs=mesh.uvs,
            uv_indices=mesh.uv_indices,
            source=str(path),
        )

    def add_diffuse_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_diffuse_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def get_object_count(self) -> int:
        return get_object_count()

    def get_triangle_count(self) -> int:
        """Total triangles across all objects."""
        return sum(len(obj.indices) for obj in self.objects)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Describe the scene as scene-file entries.

        Raises:
            ValueError: If a texture was added from arrays and has no image
                file to refer to.
        """
        config = SceneConfig()

        for tex in self.textures:
            if tex.albedo_path is None:
                raise ValueError(
                    f"Texture {tex.texture_id} was added from arrays and cannot be serialized"
                )
            config.textures.append(
                {
                    "albedo": tex.albedo_path,
                    "normal": tex.normal_path,
                    "depth": tex.depth_path,
                    "depth_scale": tex.depth_scale,
                }
            )

        config.materials = [mat.to_dict() for mat in self.materials]

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for obj in self.objects:
            if obj.source is not None:
                config.objects.append({"obj": obj.source, "material_id": obj.material_id})
            else:
                entry: dict[str, Any] = {
                    "vertices": [list(v) for v in obj.vertices],
                    "indices": [list(t) for t in obj.indices],
                    "material_id": obj.material_id,
                }
                if obj.uvs:
                    entry["uvs"] = [list(uv) for uv in obj.uvs]
                    entry["uv_indices"] = [list(t) for t in obj.uv_indices]
                config.objects.append(entry)

        return config

    def from_config(self, config: SceneConfig, base_dir: str | Path | None = None) -> None:
        """Clear the scene and load a configuration.

        Textures load first, then materials, then primitives, so that each
        entry can refer to ids defined before it.

        Args:
            config: The scene configuration.
            base_dir: Directory that relative texture and OBJ paths resolve against.

        Raises:
            ValueError: If the configuration contains invalid data.
            RuntimeError: If a capacity is exceeded.
            FileNotFoundError: If a referenced file doesn't exist.
        """
        base = Path(base_dir) if base_dir is not None else None
        self.clear()

        for tex in config.textures:
            if not tex.get("albedo"):
                raise ValueError("Texture entry requires an 'albedo' image path")
            self.load_texture(
                _resolve(tex["albedo"], base),
                _resolve(tex.get("normal"), base),
                _resolve(tex.get("depth"), base),
                float(tex.get("depth_scale", DEFAULT_DEPTH_SCALE)),
            )

        for mat in config.materials:
            self.add_material(material_from_dict(mat))

        for sphere in config.spheres:
            self.add_sphere(
                _vec(sphere, "center", (0.0, 0.0, 0.0)),
                float(sphere.get("radius", 1.0)),
                int(sphere.get("material_id", 0)),
            )

        for obj in config.objects:
            material_id = int(obj.get("material_id", 0))
            if "obj" in obj:
                self.load_object(_resolve(obj["obj"], base), material_id)
            else:
                if "vertices" not in obj or "indices" not in obj:
                    raise ValueError("Inline object requires 'vertices' and 'indices'")
                self.add_object(
                    obj["vertices"],
                    obj["indices"],
                    material_id,
                    uvs=obj.get("uvs"),
                    uv_indices=obj.get("uv_indices"),
                )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "textures": config.textures,
            "materials": config.materials,
            "spheres": config.spheres,
            "objects": config.objects,
        }

    def from_dict(self, data: dict[str, Any], base_dir: str | Path | None = None) -> None:
        """Load a scene from a dictionary with optional table keys."""
        config = SceneConfig(
            textures=data.get("textures", []),
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            objects=data.get("objects", []),
        )
        self.from_config(config, base_dir)
