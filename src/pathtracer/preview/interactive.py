"""Live preview window using Taichi GGUI.

Renders frames continuously and shows the running mean after each one,
until the window closes or a frame limit is reached.

Keys:
    s       save a snapshot PNG in the working directory
    r       reset the accumulation
    Escape  close the window

Example:
    >>> renderer = ProgressiveRenderer(400, 225, camera)
    >>> LivePreview(renderer).run(max_frames=500)
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from pathtracer.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    import numpy.typing as npt

    from pathtracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


class LivePreview:
    """A GGUI window showing a progressive render as it converges.

    The window is created lazily on the first call to ``run`` so the object
    can be constructed in headless environments.
    """

    def __init__(
        self,
        renderer: ProgressiveRenderer,
        *,
        title: str = "Path Tracer",
        tone_map: ToneMapMethod = "none",
        gamma: float = 2.2,
    ) -> None:
        self.renderer = renderer
        self.tone_map = tone_map
        self.gamma = gamma
        self._title = title
        self._window: ti.ui.Window | None = None
        self._display_image = self._allocate_display_image()

    def _allocate_display_image(self) -> ti.MatrixField:
        return ti.Vector.field(3, dtype=ti.f32, shape=(self.renderer.width, self.renderer.height))

    def _initialize_window(self) -> None:
        if self._window is None:
            self._window = ti.ui.Window(
                name=self._title, res=(self.renderer.width, self.renderer.height), vsync=False
            )

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Upload a linear (height, width, 3) image to the display field.

        Raises:
            ValueError: If the image shape doesn't match the renderer.
        """
        expected = (self.renderer.height, self.renderer.width, 3)
        if image.shape != expected:
            raise ValueError(f"Image shape {image.shape} doesn't match expected {expected}")

        # The renderer may have been resized since the last upload
        if self._display_image.shape != (self.renderer.width, self.renderer.height):
            self._display_image = self._allocate_display_image()

        display = process_image_for_display(image, tone_map=self.tone_map, gamma=self.gamma)
        # Canvas origin is bottom-left, image row 0 is the top
        self._display_image.from_numpy(
            np.ascontiguousarray(np.transpose(np.flipud(display), (1, 0, 2)))
        )

    def _handle_keys(self) -> None:
        assert self._window is not None
        for event in self._window.get_events(ti.ui.PRESS):
            if event.key == ti.ui.ESCAPE:
                self._window.running = False
            elif event.key == "r":
                self.renderer.reset()
                logger.info("Accumulation reset")
            elif event.key == "s":
                path = datetime.now().strftime("snapshot_%Y%m%d_%H%M%S.png")
                self.renderer.save_image(path, tone_map=self.tone_map, gamma=self.gamma)
                logger.info("Snapshot saved to %s", path)

    def run(self, max_frames: int | None = None) -> int:
        """Render and display frames until the window closes.

        Args:
            max_frames: Stop once the renderer has accumulated this many frames.

        Returns:
            The frame count when the loop ended.
        """
        self._initialize_window()
        assert self._window is not None
        canvas = self._window.get_canvas()

        while self._window.running:
            if max_frames is None or self.renderer.frame_count < max_frames:
                self.renderer.render_frame()
                self.update_image(self.renderer.get_image_numpy())
            self._handle_keys()
            canvas.set_image(self._display_image)
            self._window.show()

        return self.renderer.frame_count

    @staticmethod
    def is_display_available() -> bool:
        """Best-effort check for a usable display."""
        if os.name == "nt":
            return True
        if os.uname().sysname == "Darwin":
            return not (os.environ.get("SSH_CONNECTION") and not os.environ.get("DISPLAY"))
        return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
