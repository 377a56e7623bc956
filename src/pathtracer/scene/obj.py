"""Minimal Wavefront OBJ reader for triangle meshes.

Only ``v``, ``vt`` and ``f`` records are read; normals, groups, materials
and everything else are ignored. Polygons are fan-triangulated around their
first vertex. Indices are 1-based and negative indices count back from the
most recent record, as in the OBJ format.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ObjMesh:
    """Mesh data with 0-based index triples.

    Attributes:
        vertices: Vertex positions.
        uvs: Texture coordinates.
        indices: Vertex index triples, one per triangle.
        uv_indices: UV index triples parallel to ``indices``.
    """

    vertices: list[tuple[float, float, float]] = field(default_factory=list)
    uvs: list[tuple[float, float]] = field(default_factory=list)
    indices: list[tuple[int, int, int]] = field(default_factory=list)
    uv_indices: list[tuple[int, int, int]] = field(default_factory=list)

    @property
    def triangle_count(self) -> int:
        return len(self.indices)


def _resolve_index(token: str, count: int, kind: str, line_no: int) -> int:
    try:
        idx = int(token)
    except ValueError as e:
        raise ValueError(f"Line {line_no}: invalid {kind} index '{token}'") from e
    if idx > 0:
        resolved = idx - 1
    elif idx < 0:
        resolved = count + idx
    else:
        raise ValueError(f"Line {line_no}: {kind} index 0 is not valid in OBJ files")
    if not 0 <= resolved < count:
        raise ValueError(f"Line {line_no}: {kind} index {idx} out of range (have {count})")
    return resolved


def parse_obj(text: str) -> ObjMesh:
    """Parse OBJ source text.

    Face vertices without a texture coordinate use an extra (0, 0) UV.

    Raises:
        ValueError: On malformed records or out-of-range indices.
    """
    mesh = ObjMesh()
    faces: list[tuple[list[int], list[int]]] = []

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()
        tag, args = parts[0], parts[1:]

        if tag == "v":
            if len(args) < 3:
                raise ValueError(f"Line {line_no}: vertex needs 3 coordinates")
            mesh.vertices.append((float(args[0]), float(args[1]), float(args[2])))
        elif tag == "vt":
            if len(args) < 2:
                raise ValueError(f"Line {line_no}: texture coordinate needs 2 components")
            mesh.uvs.append((float(args[0]), float(args[1])))
        elif tag == "f":
            if len(args) < 3:
                raise ValueError(f"Line {line_no}: face needs at least 3 vertices")
            face_v = []
            face_vt = []
            for corner in args:
                refs = corner.split("/")
                face_v.append(_resolve_index(refs[0], len(mesh.vertices), "vertex", line_no))
                if len(refs) > 1 and refs[1]:
                    face_vt.append(_resolve_index(refs[1], len(mesh.uvs), "UV", line_no))
                else:
                    face_vt.append(-1)
            faces.append((face_v, face_vt))

    missing_uv = any(-1 in face_vt for _, face_vt in faces)
    default_uv = len(mesh.uvs)
    if missing_uv:
        mesh.uvs.append((0.0, 0.0))

    for face_v, face_vt in faces:
        face_vt = [default_uv if i < 0 else i for i in face_vt]
        for k in range(1, len(face_v) - 1):
            mesh.indices.append((face_v[0], face_v[k], face_v[k + 1]))
            mesh.uv_indices.append((face_vt[0], face_vt[k], face_vt[k + 1]))

    return mesh


def load_obj(path: str | Path) -> ObjMesh:
    """Read and parse an OBJ file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: On malformed content.
    """
    return parse_obj(Path(path).read_text(encoding="utf-8"))
