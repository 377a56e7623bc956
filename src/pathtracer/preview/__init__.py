"""Preview module for output and visualization.

Components:
    display: Tone mapping and Matplotlib preview
    export: PNG export utilities
    interactive: Taichi GGUI live preview window

Example:
    >>> from pathtracer.preview import save_png, show_preview
    >>> renderer.render(100)
    >>> show_preview(renderer, tone_map="reinhard")
    >>> save_png(renderer, "output.png", gamma=2.2)
"""

from pathtracer.preview.display import (
    TONE_MAP_METHODS,
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from pathtracer.preview.export import (
    image_to_uint8,
    save_png,
    save_png_from_array,
)
from pathtracer.preview.interactive import LivePreview

__all__ = [
    "LivePreview",
    "show_preview",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "TONE_MAP_METHODS",
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
]
