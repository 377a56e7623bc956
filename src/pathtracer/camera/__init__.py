"""Camera module for primary ray generation.

Components:
    camera: Look-at camera with jittered sampling and a defocus disk

Pixel (0, 0) is the top-left pixel. Camera state is derived in Python with
NumPy and uploaded to Taichi fields before each frame.
"""

from .camera import (
    CameraConfig,
    CameraState,
    compute_camera_state,
    defocus_disk_sample,
    get_camera_info,
    get_ray,
    setup_camera,
)

__all__ = [
    "CameraConfig",
    "CameraState",
    "compute_camera_state",
    "setup_camera",
    "get_ray",
    "defocus_disk_sample",
    "get_camera_info",
]
