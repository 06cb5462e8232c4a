"""Command-line renderer.

Usage:
    whitted-render SCENE [options]
    python -m whitted SCENE [options]

Options:
    -o, --output OUTPUT     Output image path (default: out.png)
    --arch {cpu,gpu}        Taichi backend (default: cpu)
    --band-size N           Scan lines per kernel launch (default: whole frame)
    --gamma G               Gamma encoding of the output (default: 1.0)
    --tone-map METHOD       none, reinhard or exposure (default: none)
    --exposure E            Exposure for --tone-map exposure (default: 1.0)
    --prune-zero-weight     Skip secondary rays with zero albedo weight
    --preview               Show the frame in a Matplotlib window
    -v, --verbose           Debug logging
    --quiet                 Only log warnings and errors

Example:
    whitted-render scenes/spheres.json -o spheres.png --band-size 32
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Sequence
from pathlib import Path

from whitted import runtime
from whitted.errors import WhittedError
from whitted.preview.display import TONE_MAP_METHODS

logger = logging.getLogger("whitted.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="whitted-render",
        description="Render a JSON scene file with the Whitted ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", type=Path, help="Scene description (JSON)")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("out.png"),
        help="Output image path; the extension selects the format (default: out.png)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--band-size",
        type=int,
        default=None,
        help="Scan lines per kernel launch (default: whole frame)",
    )
    parser.add_argument(
        "--gamma",
        type=float,
        default=1.0,
        help="Gamma encoding of the output (default: 1.0)",
    )
    parser.add_argument(
        "--tone-map",
        choices=TONE_MAP_METHODS,
        default="none",
        help="Tone mapping operator (default: none)",
    )
    parser.add_argument(
        "--exposure",
        type=float,
        default=1.0,
        help="Exposure for --tone-map exposure (default: 1.0)",
    )
    parser.add_argument(
        "--prune-zero-weight",
        action="store_true",
        help="Skip secondary rays whose albedo weight is zero",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the rendered frame in a Matplotlib window",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return parser.parse_args(argv)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def render_scene_file(
    scene_path: Path,
    output_path: Path,
    *,
    band_size: int | None = None,
    gamma: float = 1.0,
    tone_map: str = "none",
    exposure: float = 1.0,
    prune_zero_weight: bool = False,
    preview: bool = False,
) -> Path:
    """Load, render and save one scene file.

    Returns:
        Path to the saved image file.
    """
    # Field-declaring modules are imported after runtime.init()
    from whitted.core.renderer import FrameRenderer
    from whitted.preview.export import save_image
    from whitted.scene.loader import load_scene

    scene = load_scene(scene_path)
    renderer = FrameRenderer(scene, band_size=band_size, prune_zero_weight=prune_zero_weight)

    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        elapsed = time.time() - start_time
        logger.info(
            "progress: %d/%d scan lines (%.1f%%) - %.2fs",
            rows_done,
            total_rows,
            100.0 * rows_done / total_rows,
            elapsed,
        )

    frame = renderer.render(callback=progress_callback)
    save_image(frame, output_path, tone_map=tone_map, gamma=gamma, exposure=exposure)

    if preview:
        from whitted.preview.display import show_preview

        show_preview(frame, tone_map=tone_map, gamma=gamma, exposure=exposure)

    return output_path


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point.

    Returns:
        0 on success, 1 on a scene, numerical or I/O error.
    """
    args = parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        runtime.init(args.arch)
        output = render_scene_file(
            args.scene,
            args.output,
            band_size=args.band_size,
            gamma=args.gamma,
            tone_map=args.tone_map,
            exposure=args.exposure,
            prune_zero_weight=args.prune_zero_weight,
            preview=args.preview,
        )
    except (WhittedError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("saved to %s", output.absolute())
    return 0


if __name__ == "__main__":
    sys.exit(main())
