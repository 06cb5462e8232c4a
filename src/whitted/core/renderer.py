"""Frame renderer: one primary ray per pixel, scan lines in parallel.

The frame is rendered in bands of scan lines. Each band is one kernel
launch whose outermost loop runs over the rows of the band, so every row is
an independent parallel task; the columns of a row are traced serially by
that task. Every pixel is written exactly once, and since nothing is shared
between rows the result does not depend on band size or scheduling.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.renderer import FrameRenderer
    >>> from whitted.scene.loader import load_scene
    >>>
    >>> scene = load_scene("scenes/spheres.json")
    >>> frame = FrameRenderer(scene, band_size=64).render()
    >>> frame.pixels.shape
    (480, 640, 3)
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti

from whitted.camera.pinhole import primary_ray_direction
from whitted.core.ray import vec3
from whitted.core.shading import configure_shading, trace_ray
from whitted.scene.intersection import (
    RenderStats,
    collect_stats,
    raise_on_numerical_fault,
    reset_stats,
)

if TYPE_CHECKING:
    from whitted.scene.manager import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


@dataclass
class FrameBuffer:
    """A rendered frame.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        pixels: Float32 array of shape (height, width, 3) holding unclamped
            linear RGB. pixels[y, x] is the color of primary ray (x, y); row 0
            is the first scan line.
        fov: Signed field of view the frame was rendered with.
        stats: Mesh diagnostics summed over the whole frame.
    """

    width: int
    height: int
    pixels: npt.NDArray[np.float32]
    fov: float
    stats: RenderStats = field(default_factory=RenderStats)

    @property
    def buffer(self) -> npt.NDArray[np.float32]:
        """The frame as a flat (width * height, 3) array in row-major order."""
        return self.pixels.reshape(self.width * self.height, 3)

    def pixel(self, x: int, y: int) -> tuple[float, float, float]:
        r, g, b = self.pixels[y, x]
        return (float(r), float(g), float(b))

    def to_image_array(self) -> npt.NDArray[np.float32]:
        """Return the pixels oriented as a conventional upright image.

        With a negative field of view the primary rays sweep the view from
        its bottom-right corner, so the buffer is rotated by 180 degrees.
        """
        if self.fov < 0:
            return np.ascontiguousarray(self.pixels[::-1, ::-1])
        return self.pixels


@ti.kernel
def _render_band(
    y_start: ti.i32,
    y_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    tan_half_fov: ti.f32,
    pixels: ti.types.ndarray(dtype=ti.f32, ndim=3),
):
    """Trace every pixel of rows [y_start, y_end).

    The row loop is the outermost loop and runs in parallel; the row index
    doubles as the lane of the ray stack and the diagnostic counters.
    """
    for y in range(y_start, y_end):
        for x in range(width):
            direction = primary_ray_direction(x, y, width, height, tan_half_fov)
            color = trace_ray(vec3(0.0, 0.0, 0.0), direction, 0, y)
            pixels[y, x, 0] = color[0]
            pixels[y, x, 1] = color[1]
            pixels[y, x, 2] = color[2]


class FrameRenderer:
    """Renders a Scene into a FrameBuffer.

    Attributes:
        scene: The scene to render.
        band_size: Number of scan lines per kernel launch.
        prune_zero_weight: Skip secondary rays with zero albedo weight.
    """

    def __init__(
        self,
        scene: "Scene",
        *,
        band_size: int | None = None,
        prune_zero_weight: bool = False,
    ) -> None:
        """Initialize the renderer.

        Args:
            scene: The scene to render.
            band_size: Scan lines per launch. Defaults to the whole frame.
            prune_zero_weight: See configure_shading().

        Raises:
            ValueError: If band_size is not positive.
        """
        if band_size is not None and band_size <= 0:
            raise ValueError(f"band_size must be positive, got {band_size}")
        self.scene = scene
        self.band_size = band_size or scene.frame_height
        self.prune_zero_weight = prune_zero_weight

    def render(self, callback: ProgressCallback | None = None) -> FrameBuffer:
        """Render the full frame.

        Args:
            callback: Optional callback called after each band with
                (rows_done, total_rows).

        Returns:
            The rendered frame.

        Raises:
            NumericalInvariantError: If a NaN hit distance was encountered.
        """
        scene = self.scene
        width, height = scene.frame_width, scene.frame_height
        camera = scene.camera

        scene.activate()
        configure_shading(scene.max_reflect_depth, self.prune_zero_weight)
        reset_stats()

        pixels = np.zeros((height, width, 3), dtype=np.float32)
        logger.info(
            "rendering %dx%d frame, max depth %d, %d scan lines per band",
            width,
            height,
            scene.max_reflect_depth,
            self.band_size,
        )

        start = time.perf_counter()
        for y_start in range(0, height, self.band_size):
            y_end = min(y_start + self.band_size, height)
            _render_band(y_start, y_end, width, height, camera.tan_half_fov, pixels)
            logger.debug("rendered scan lines %d-%d", y_start, y_end - 1)
            if callback is not None:
                callback(y_end, height)

        raise_on_numerical_fault()
        stats = collect_stats()
        elapsed = time.perf_counter() - start

        logger.info("frame rendered in %.3f s", elapsed)
        logger.debug(
            "mesh stats: %d box misses, %d hits, %d misses, %d triangle tests",
            stats.bounding_box_misses,
            stats.mesh_hits,
            stats.mesh_misses,
            stats.triangle_tests,
        )

        return FrameBuffer(width=width, height=height, pixels=pixels, fov=camera.fov, stats=stats)


def render(
    scene: "Scene",
    *,
    band_size: int | None = None,
    prune_zero_weight: bool = False,
    callback: ProgressCallback | None = None,
) -> FrameBuffer:
    """Render a scene in one call. See FrameRenderer."""
    renderer = FrameRenderer(scene, band_size=band_size, prune_zero_weight=prune_zero_weight)
    return renderer.render(callback=callback)
