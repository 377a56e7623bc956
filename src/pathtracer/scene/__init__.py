"""Scene module: primitive tables, scene building and scene files.

Components:
    intersection: Object and sphere tables, nearest-hit queries
    manager: SceneManager with load-time validation and serialization
    obj: Wavefront OBJ mesh reader
    loader: JSON scene files (render settings, camera, scene, savepoints)
"""

from .intersection import (
    MAX_OBJECTS,
    MAX_SPHERES,
    MAX_TRIANGLES,
    add_object,
    add_sphere,
    clear_scene,
    get_object_count,
    get_sphere_count,
    hit_object,
    hit_scene,
)
from .loader import LoadedScene, RenderSettings, load_scene_dict, load_scene_file, save_scene_file
from .manager import ObjectInfo, SceneConfig, SceneManager, SphereInfo, TextureInfo
from .obj import ObjMesh, load_obj, parse_obj

__all__ = [
    # Intersection
    "MAX_OBJECTS",
    "MAX_SPHERES",
    "MAX_TRIANGLES",
    "add_object",
    "add_sphere",
    "clear_scene",
    "get_object_count",
    "get_sphere_count",
    "hit_object",
    "hit_scene",
    # Manager
    "SceneManager",
    "SceneConfig",
    "SphereInfo",
    "ObjectInfo",
    "TextureInfo",
    # OBJ
    "ObjMesh",
    "parse_obj",
    "load_obj",
    # Scene files
    "LoadedScene",
    "RenderSettings",
    "load_scene_dict",
    "load_scene_file",
    "save_scene_file",
]
