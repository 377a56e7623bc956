"""Progressive renderer driving frame-by-frame accumulation.

The renderer owns the frame loop: before each frame it re-uploads the
camera, launches one frame kernel, and afterwards checks the scheduled
savepoints. Rendering can stop between any two frames; the accumulation
buffer then holds the mean of all completed frames.

Example:
    >>> renderer = ProgressiveRenderer(400, 225, CameraConfig(), max_depth=10)
    >>> renderer.render(64)
    >>> renderer.save_image("out.png")
"""

import logging
import time
from collections.abc import Callable, Generator, Iterable
from pathlib import Path

import numpy as np
import numpy.typing as npt

from pathtracer.camera.camera import CameraConfig, setup_camera
from pathtracer.core.accumulator import (
    clear_render_target,
    get_frame_count,
    get_image_numpy,
    setup_render_target,
)
from pathtracer.core.integrator import DEFAULT_MAX_DEPTH, render_frame
from pathtracer.core.savepoint import Savepoint
from pathtracer.preview.display import ToneMapMethod
from pathtracer.preview.export import save_png_from_array

logger = logging.getLogger(__name__)

# Callback receives (current_frame_count, target_frame_count)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates one sample per pixel per frame into a shared buffer.

    The render target and camera are global Taichi state, so only one
    renderer should be active at a time. Taichi must be initialized with
    ``fast_math=False`` for the invalid-sample guards to hold.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        camera: Camera configuration applied before every frame.
        max_depth: Maximum intersection iterations per path.
        savepoints: Snapshots written once their trigger is reached.
    """

    def __init__(
        self,
        width: int,
        height: int,
        camera: CameraConfig | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        savepoints: Iterable[Savepoint] = (),
    ) -> None:
        """Initialize the render target.

        Raises:
            ValueError: If dimensions are invalid or max_depth < 1.
        """
        if max_depth < 1:
            raise ValueError(f"max_depth = {max_depth} must be at least 1")
        self._width = width
        self._height = height
        self.camera = camera if camera is not None else CameraConfig()
        self.max_depth = max_depth
        self.savepoints = list(savepoints)
        self._start_time: float | None = None
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def frame_count(self) -> int:
        """Number of frames accumulated since the last reset."""
        return get_frame_count()

    @property
    def elapsed_seconds(self) -> float:
        """Wall-clock time since the first frame after the last reset."""
        if self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    def reset(self) -> None:
        """Clear the accumulated image and restart the savepoint clock.

        Savepoints that already fired stay fired.
        """
        clear_render_target()
        self._start_time = None

    def resize(self, width: int, height: int) -> None:
        """Change the output resolution and reset the accumulation.

        Raises:
            ValueError: If dimensions are invalid.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self._start_time = None

    def set_camera(self, camera: CameraConfig) -> None:
        """Replace the camera and reset the accumulation."""
        self.camera = camera
        self.reset()

    def render_frame(self) -> int:
        """Render a single frame and process savepoints.

        Returns:
            The frame count after the frame.

        Raises:
            ValueError: If the camera configuration is degenerate.
        """
        if self._start_time is None:
            self._start_time = time.monotonic()

        setup_camera(self.camera, self._width, self._height)
        frames = render_frame(self.max_depth)
        logger.debug("Frame %d done (%.2fs elapsed)", frames, self.elapsed_seconds)

        self.check_savepoints()
        return frames

    def render(self, num_frames: int = 1, callback: ProgressCallback | None = None) -> None:
        """Render frames, calling back after each one.

        Args:
            num_frames: Number of frames to add.
            callback: Optional callback receiving (current, target) frame counts.
        """
        for current, target in self.render_progressive(num_frames):
            if callback is not None:
                callback(current, target)

    def render_progressive(self, num_frames: int = 1) -> Generator[tuple[int, int], None, None]:
        """Render frames, yielding progress after each one.

        Stopping the iteration early leaves a valid image of the frames
        rendered so far.

        Yields:
            Tuple of (current_frame_count, target_frame_count).
        """
        if num_frames <= 0:
            return

        target = self.frame_count + num_frames
        logger.info("Rendering %d frames at %dx%d", num_frames, self._width, self._height)
        for _ in range(num_frames):
            current = self.render_frame()
            yield current, target

    def check_savepoints(self) -> list[str]:
        """Write snapshots for every savepoint whose trigger has been reached.

        Returns:
            Paths written by this call.
        """
        written = []
        elapsed = self.elapsed_seconds
        frames = self.frame_count
        for savepoint in self.savepoints:
            if savepoint.ready_to_save(elapsed, frames):
                self.save_image(savepoint.path)
                savepoint.mark_saved()
                logger.info("Savepoint written to %s at frame %d", savepoint.path, frames)
                written.append(savepoint.path)
        return written

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the accumulated linear image of shape (height, width, 3)."""
        return get_image_numpy()

    def save_image(
        self,
        filepath: str | Path,
        *,
        tone_map: ToneMapMethod = "none",
        gamma: float = 2.2,
        exposure: float = 1.0,
    ) -> None:
        """Save the current image as a PNG without modifying the buffer."""
        path = Path(filepath)
        if path.parent != Path(""):
            path.parent.mkdir(parents=True, exist_ok=True)
        save_png_from_array(
            self.get_image_numpy(), path, tone_map=tone_map, gamma=gamma, exposure=exposure
        )

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"frames={self.frame_count}, max_depth={self.max_depth})"
        )
