#!/usr/bin/env python3
"""Render the classic four-sphere scene built in Python.

This script assembles the scene with the whitted API instead of a scene
file: four spheres of different materials over a checkered floor, three
point lights and a solid sky. The same scene (plus a small mesh) is
available as examples/scenes/spheres.json for the whitted-render command.

Usage:
    python examples/render_spheres.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --depth DEPTH       Maximum reflection depth (default: 4)
    --output OUTPUT     Output file path (default: spheres.png)
    --band-size SIZE    Scan lines per progress update (default: 32)
    --quiet             Suppress progress output

Example:
    python examples/render_spheres.py --width 320 --height 240 --depth 2
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from whitted import WhittedError, runtime


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the four-sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=480,
        help="Image height in pixels (default: 480)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=4,
        help="Maximum reflection depth (default: 4)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument(
        "--band-size",
        type=int,
        default=32,
        help="Scan lines per progress update (default: 32)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def build_scene(width: int, height: int, depth: int):
    """Create the four-sphere scene."""
    # Lazy imports to allow Taichi initialization first
    from whitted.camera.pinhole import fov_from_degrees
    from whitted.core.shading import Light
    from whitted.materials.material import Material
    from whitted.scene.background import solid_background
    from whitted.scene.manager import CheckerDiskInfo, Scene, SphereInfo

    ivory = Material((0.6, 0.3, 0.1, 0.0), (0.4, 0.4, 0.3), 50.0, 1.0)
    glass = Material((0.0, 0.5, 0.1, 0.8), (0.6, 0.7, 0.8), 125.0, 1.5)
    red_rubber = Material((0.9, 0.1, 0.0, 0.0), (0.3, 0.1, 0.1), 10.0, 1.0)
    mirror = Material((0.0, 10.0, 0.8, 0.0), (1.0, 1.0, 1.0), 1425.0, 1.0)
    orange = Material((0.9, 0.1, 0.0, 0.0), (0.3, 0.2, 0.1), 10.0, 1.0)

    shapes = [
        SphereInfo(center=(-3.0, 0.0, -16.0), radius=2.0, material=ivory),
        SphereInfo(center=(-1.0, -1.5, -12.0), radius=2.0, material=glass),
        SphereInfo(center=(1.5, -0.5, -18.0), radius=3.0, material=red_rubber),
        SphereInfo(center=(7.0, 5.0, -18.0), radius=4.0, material=mirror),
        CheckerDiskInfo(
            center=(0.0, -4.0, -16.0),
            normal=(0.0, 1.0, 0.0),
            radius=12.0,
            period=2.0,
            material1=ivory,
            material2=orange,
        ),
    ]
    lights = [
        Light(position=(-20.0, 20.0, 20.0), intensity=1.5),
        Light(position=(30.0, 50.0, -25.0), intensity=1.8),
        Light(position=(30.0, 20.0, 30.0), intensity=1.7),
    ]
    return Scene(
        shapes=shapes,
        lights=lights,
        background=solid_background((0.2, 0.7, 0.8)),
        frame_width=width,
        frame_height=height,
        fov=fov_from_degrees(60.0),
        max_reflect_depth=depth,
    )


def render_spheres(
    width: int = 640,
    height: int = 480,
    depth: int = 4,
    output_path: str = "spheres.png",
    band_size: int = 32,
    quiet: bool = False,
) -> Path:
    """Render the four-sphere scene and save to file.

    Returns:
        Path to the saved image file.
    """
    from whitted.core.renderer import FrameRenderer
    from whitted.preview.export import save_image

    if not quiet:
        print(f"Creating sphere scene ({width}x{height})...")
    scene = build_scene(width, height, depth)
    renderer = FrameRenderer(scene, band_size=band_size)

    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            print(
                f"\r  Progress: {rows_done}/{total_rows} scan lines "
                f"({100.0 * rows_done / total_rows:.1f}%) - {elapsed:.2f}s",
                end="",
                flush=True,
            )

    frame = renderer.render(callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    save_image(frame, output_file)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    backend = runtime.init("gpu")
    if not args.quiet:
        print(f"Using {backend.upper()} backend")

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            depth=args.depth,
            output_path=args.output,
            band_size=args.band_size,
            quiet=args.quiet,
        )
        return 0
    except (WhittedError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
