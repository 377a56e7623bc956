#!/usr/bin/env python3
"""Render a JSON scene file.

Loads the scene, accumulates frames progressively and writes a PNG. Scene
savepoints are written along the way.

Usage:
    python examples/render_scene.py SCENE [options]

Options:
    --frames N          Frames to accumulate (default: scene "render.frames")
    --width WIDTH       Override the scene image width
    --height HEIGHT     Override the scene image height
    --max-depth DEPTH   Override the scene path depth budget
    --output OUTPUT     Output file path (default: render.png)
    --arch ARCH         Taichi backend: gpu, cpu, cuda, vulkan, metal (default: gpu)
    --tone-map METHOD   none, reinhard or exposure (default: none)
    --gamma GAMMA       Output gamma (default: 2.2)
    --preview           Show a live preview window while rendering
    --show              Show the final image with Matplotlib
    --verbose           Log per-frame progress

Example:
    python examples/render_scene.py examples/scenes/two_spheres.json --frames 64
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_scene")

ARCHS = {
    "gpu": ti.gpu,
    "cpu": ti.cpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a JSON scene file with the progressive path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", type=Path, help="Path to the JSON scene file")
    parser.add_argument("--frames", type=int, default=None, help="Frames to accumulate")
    parser.add_argument("--width", type=int, default=None, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Image height in pixels")
    parser.add_argument(
        "--max-depth", type=int, default=None, help="Maximum intersections per path"
    )
    parser.add_argument(
        "--output", type=str, default="render.png", help="Output file path (default: render.png)"
    )
    parser.add_argument(
        "--arch", choices=sorted(ARCHS), default="gpu", help="Taichi backend (default: gpu)"
    )
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="none",
        help="Tone mapping for the output image (default: none)",
    )
    parser.add_argument("--gamma", type=float, default=2.2, help="Output gamma (default: 2.2)")
    parser.add_argument("--preview", action="store_true", help="Show a live preview window")
    parser.add_argument("--show", action="store_true", help="Show the result with Matplotlib")
    parser.add_argument("--verbose", action="store_true", help="Log per-frame progress")
    return parser.parse_args(argv)


def init_taichi(arch: str) -> None:
    """Initialize Taichi, falling back to the CPU backend.

    Fast math is off so the NaN and Inf sample guards keep IEEE semantics.
    """
    try:
        ti.init(arch=ARCHS[arch], fast_math=False)
    except RuntimeError as e:
        logger.warning("Backend '%s' unavailable (%s), using CPU", arch, e)
        ti.init(arch=ti.cpu, fast_math=False)


def render_scene(args: argparse.Namespace) -> Path:
    """Load the scene, render it and save the result.

    Returns:
        Path to the saved image file.
    """
    # Modules declare Taichi fields on import, so load them after ti.init
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.preview.display import show_preview
    from pathtracer.preview.interactive import LivePreview
    from pathtracer.scene.loader import RenderSettings, load_scene_file

    loaded = load_scene_file(args.scene)
    settings = RenderSettings(
        width=args.width if args.width is not None else loaded.render.width,
        height=args.height if args.height is not None else loaded.render.height,
        max_depth=args.max_depth if args.max_depth is not None else loaded.render.max_depth,
        frames=args.frames if args.frames is not None else loaded.render.frames,
    )

    renderer = ProgressiveRenderer(
        settings.width,
        settings.height,
        loaded.camera,
        max_depth=settings.max_depth,
        savepoints=loaded.savepoints,
    )

    start_time = time.monotonic()
    if args.preview and LivePreview.is_display_available():
        LivePreview(renderer, tone_map=args.tone_map, gamma=args.gamma).run(
            max_frames=settings.frames
        )
    else:
        if args.preview:
            logger.warning("No display available, rendering without preview")

        def progress(current: int, target: int) -> None:
            elapsed = time.monotonic() - start_time
            logger.debug(
                "Frame %d/%d (%.1f frames/s)", current, target, current / max(elapsed, 1e-9)
            )

        renderer.render(settings.frames, callback=progress)

    output_file = Path(args.output)
    renderer.save_image(output_file, tone_map=args.tone_map, gamma=args.gamma)
    logger.info(
        "Saved %s after %d frames in %.2fs",
        output_file.absolute(),
        renderer.frame_count,
        time.monotonic() - start_time,
    )

    if args.show:
        show_preview(renderer, tone_map=args.tone_map, gamma=args.gamma)

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_taichi(args.arch)

    try:
        render_scene(args)
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
