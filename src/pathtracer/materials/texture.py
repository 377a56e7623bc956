"""Texture sets: albedo, normal and depth maps with parallax occlusion mapping.

A texture set bundles three images of the same size:

    albedo  surface color, replaces the material albedo
    normal  tangent-space normal map, RGB in [0, 1] remapped to [-1, 1]
    depth   depth (inverted height) map in [0, 1] driving parallax offsets

Missing normal maps default to the flat normal (0.5, 0.5, 1.0) and missing
depth maps to zero depth, which disables the parallax march.

Texel lookup is nearest-neighbour. UV (0, 0) is the bottom-left corner of
the image, so the row index is (1 - v) * height.

Shading frame: hit records carry a tangent (dP/du) and bitangent (dP/dv).
Triangle frames are right-handed; the spherical parametrization is
left-handed, so the bitangent is negated for sphere hits before it is used.

Parallax occlusion mapping marches layers of constant depth along the
tangent-space view direction until the sampled depth drops below the layer
depth, then interpolates between the last two layers. A parallax offset can
push UVs outside [0, 1]; ``uv_in_range`` reports this so the integrator can
pass the ray through the surface.

Example:
    >>> clear_textures()
    >>> tex_id = load_texture_set("bricks.png", normal_path="bricks_n.png",
    ...                           depth_path="bricks_d.png", depth_scale=0.05)
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm
from PIL import Image as PILImage

vec2 = tm.vec2
vec3 = tm.vec3

MAX_TEXTURES = 8
MAX_TEXTURE_SIZE = 256

# Parallax layer count range (steep views use fewer layers)
POM_MIN_LAYERS = 16
POM_MAX_LAYERS = 64

# Floor for the tangent-space view z when projecting the view vector
POM_MIN_VIEW_Z = 0.05

DEFAULT_DEPTH_SCALE = 0.05

# =============================================================================
# Texture Field Storage
# =============================================================================

# Texels are indexed [texture, x, y] with y = 0 at the top image row
texture_albedos = ti.Vector.field(
    3, dtype=ti.f32, shape=(MAX_TEXTURES, MAX_TEXTURE_SIZE, MAX_TEXTURE_SIZE)
)
texture_normals = ti.Vector.field(
    3, dtype=ti.f32, shape=(MAX_TEXTURES, MAX_TEXTURE_SIZE, MAX_TEXTURE_SIZE)
)
texture_depths = ti.field(dtype=ti.f32, shape=(MAX_TEXTURES, MAX_TEXTURE_SIZE, MAX_TEXTURE_SIZE))
texture_sizes = ti.Vector.field(2, dtype=ti.i32, shape=MAX_TEXTURES)
texture_depth_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _upload_texture(
    tex_id: ti.i32,
    albedo: ti.types.ndarray(),
    normal: ti.types.ndarray(),
    depth: ti.types.ndarray(),
):
    for x, y in ti.ndrange(albedo.shape[1], albedo.shape[0]):
        texture_albedos[tex_id, x, y] = vec3(albedo[y, x, 0], albedo[y, x, 1], albedo[y, x, 2])
        texture_normals[tex_id, x, y] = vec3(normal[y, x, 0], normal[y, x, 1], normal[y, x, 2])
        texture_depths[tex_id, x, y] = depth[y, x]


def clear_textures() -> None:
    """Reset the texture count to zero."""
    num_textures[None] = 0


def get_texture_count() -> int:
    """Get the number of texture sets loaded."""
    return int(num_textures[None])


def add_texture(
    albedo: npt.NDArray[np.float32],
    normal: npt.NDArray[np.float32] | None = None,
    depth: npt.NDArray[np.float32] | None = None,
    depth_scale: float = DEFAULT_DEPTH_SCALE,
) -> int:
    """Upload a texture set from NumPy arrays.

    Args:
        albedo: Color image of shape (H, W, 3) with values in [0, 1].
        normal: Optional normal map of shape (H, W, 3) in [0, 1].
        depth: Optional depth map of shape (H, W) in [0, 1].
        depth_scale: Parallax strength. Ignored (set to 0) without a depth map.

    Returns:
        The texture id.

    Raises:
        RuntimeError: If the maximum number of textures is exceeded.
        ValueError: If the arrays have invalid shapes or sizes.
    """
    albedo = np.asarray(albedo, dtype=np.float32)
    if albedo.ndim != 3 or albedo.shape[2] != 3:
        raise ValueError(f"Albedo texture must have shape (H, W, 3), got {albedo.shape}")
    height, width = albedo.shape[:2]
    if width > MAX_TEXTURE_SIZE or height > MAX_TEXTURE_SIZE or width == 0 or height == 0:
        raise ValueError(
            f"Texture size {width}x{height} must be between 1 and {MAX_TEXTURE_SIZE} per side"
        )

    if normal is None:
        normal = np.empty_like(albedo)
        normal[...] = (0.5, 0.5, 1.0)
    normal = np.asarray(normal, dtype=np.float32)
    if normal.shape != albedo.shape:
        raise ValueError(f"Normal map shape {normal.shape} doesn't match albedo {albedo.shape}")

    if depth is None:
        depth = np.zeros((height, width), dtype=np.float32)
        depth_scale = 0.0
    depth = np.asarray(depth, dtype=np.float32)
    if depth.shape != (height, width):
        raise ValueError(f"Depth map shape {depth.shape} doesn't match albedo {(height, width)}")
    if depth_scale < 0.0:
        raise ValueError(f"Depth scale = {depth_scale} must be non-negative")

    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    _upload_texture(
        idx,
        np.ascontiguousarray(albedo),
        np.ascontiguousarray(normal),
        np.ascontiguousarray(depth),
    )
    texture_sizes[idx] = (width, height)
    texture_depth_scales[idx] = depth_scale
    num_textures[None] = idx + 1
    return idx


def load_image(path: str | Path, mode: str = "RGB", size: tuple[int, int] | None = None):
    """Load an image as float32 in [0, 1], downsampled to fit the texture limit.

    Args:
        path: Image file path.
        mode: Pillow mode, "RGB" for color/normal maps or "L" for depth.
        size: Force this (width, height), e.g. to match an albedo image.

    Returns:
        Array of shape (H, W, 3) for RGB or (H, W) for L.
    """
    with PILImage.open(path) as img:
        img = img.convert(mode)
        if size is None and (img.width > MAX_TEXTURE_SIZE or img.height > MAX_TEXTURE_SIZE):
            scale = MAX_TEXTURE_SIZE / max(img.width, img.height)
            size = (max(1, int(img.width * scale)), max(1, int(img.height * scale)))
        if size is not None and size != img.size:
            img = img.resize(size, PILImage.BILINEAR)
        return np.asarray(img, dtype=np.float32) / 255.0


def load_texture_set(
    albedo_path: str | Path,
    normal_path: str | Path | None = None,
    depth_path: str | Path | None = None,
    depth_scale: float = DEFAULT_DEPTH_SCALE,
) -> int:
    """Load a texture set from image files and upload it.

    Normal and depth maps are resampled to the albedo image size.

    Returns:
        The texture id.
    """
    albedo = load_image(albedo_path, "RGB")
    size = (albedo.shape[1], albedo.shape[0])
    normal = load_image(normal_path, "RGB", size) if normal_path is not None else None
    depth = load_image(depth_path, "L", size) if depth_path is not None else None
    return add_texture(albedo, normal, depth, depth_scale)


# =============================================================================
# Texture Sampling (Taichi-compatible)
# =============================================================================


@ti.func
def _texel(tex_id: ti.i32, uv: vec2):
    size = texture_sizes[tex_id]
    x = ti.cast(ti.floor(uv.x * ti.cast(size.x, ti.f32)), ti.i32)
    y = ti.cast(ti.floor((1.0 - uv.y) * ti.cast(size.y, ti.f32)), ti.i32)
    x = tm.clamp(x, 0, size.x - 1)
    y = tm.clamp(y, 0, size.y - 1)
    return x, y


@ti.func
def sample_albedo(tex_id: ti.i32, uv: vec2) -> vec3:
    x, y = _texel(tex_id, uv)
    return texture_albedos[tex_id, x, y]


@ti.func
def sample_depth(tex_id: ti.i32, uv: vec2) -> ti.f32:
    x, y = _texel(tex_id, uv)
    return texture_depths[tex_id, x, y]


@ti.func
def uv_in_range(uv: vec2) -> ti.i32:
    """Return 1 if uv lies in [0, 1] x [0, 1]. NaN is out of range."""
    inside = 0
    if uv.x >= 0.0 and uv.x <= 1.0 and uv.y >= 0.0 and uv.y <= 1.0:
        inside = 1
    return inside


@ti.func
def shading_bitangent(bitangent: vec3, is_triangle: ti.i32) -> vec3:
    """Bitangent of a right-handed shading frame."""
    result = bitangent
    if is_triangle == 0:
        result = -bitangent
    return result


@ti.func
def texture_uv(
    tex_id: ti.i32,
    uv: vec2,
    direction: vec3,
    normal: vec3,
    tangent: vec3,
    bitangent: vec3,
    is_triangle: ti.i32,
) -> vec2:
    """Apply parallax occlusion mapping to the hit UV.

    Args:
        tex_id: Texture set index.
        uv: Geometric UV at the hit point.
        direction: Incoming ray direction.
        normal: Oriented surface normal.
        tangent: Hit tangent.
        bitangent: Hit bitangent (before handedness correction).
        is_triangle: Hit record primitive flag.

    Returns:
        The offset UV, possibly outside [0, 1].
    """
    result = uv
    depth_scale = texture_depth_scales[tex_id]

    if depth_scale > 0.0:
        b = shading_bitangent(bitangent, is_triangle)
        view = -tm.normalize(direction)
        view_ts = vec3(tm.dot(view, tangent), tm.dot(view, b), tm.dot(view, normal))

        cos_view = ti.abs(view_ts.z)
        num_layers = tm.mix(float(POM_MAX_LAYERS), float(POM_MIN_LAYERS), cos_view)
        layer_depth = 1.0 / num_layers
        shift = vec2(view_ts.x, view_ts.y) / tm.max(cos_view, POM_MIN_VIEW_Z) * depth_scale
        delta_uv = shift / num_layers

        current_uv = uv
        current_depth = sample_depth(tex_id, current_uv)
        current_layer = 0.0
        marching = 1
        for _ in range(POM_MAX_LAYERS):
            if marching == 1:
                if current_layer < current_depth:
                    current_uv -= delta_uv
                    current_depth = sample_depth(tex_id, current_uv)
                    current_layer += layer_depth
                else:
                    marching = 0

        previous_uv = current_uv + delta_uv
        after_depth = current_depth - current_layer
        before_depth = sample_depth(tex_id, previous_uv) - current_layer + layer_depth
        denom = after_depth - before_depth
        weight = 0.0
        if ti.abs(denom) > 1e-8:
            weight = after_depth / denom
        result = previous_uv * weight + current_uv * (1.0 - weight)

    return result


@ti.func
def texture_normal(
    tex_id: ti.i32,
    uv: vec2,
    normal: vec3,
    tangent: vec3,
    bitangent: vec3,
    is_triangle: ti.i32,
) -> vec3:
    """Transform the normal-map sample at uv into world space."""
    x, y = _texel(tex_id, uv)
    n_ts = texture_normals[tex_id, x, y] * 2.0 - 1.0
    b = shading_bitangent(bitangent, is_triangle)
    world = n_ts.x * tangent + n_ts.y * b + n_ts.z * normal
    return tm.normalize(world)
