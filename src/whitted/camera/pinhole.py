"""Pinhole camera model for primary ray generation.

The camera sits at the origin and looks down -z. For a frame of
width x height pixels, pixel (x, y) maps to the unnormalized direction

    dir_x =  (2 * (x + 0.5) / width  - 1) * tan(fov / 2) * width / height
    dir_y = -(2 * (y + 0.5) / height - 1) * tan(fov / 2)
    dir_z = -1

and the primary ray is (origin=(0, 0, 0), direction=normalize(dir)).

The field of view is stored as a signed angle in radians. Scene files give
fov_in_degrees and the stored value is its negated conversion, which flips
both image axes relative to a positive angle. FrameBuffer.to_image_array()
accounts for the sign when producing an upright image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera.from_degrees(640, 480, 60.0)
    >>> camera.fov < 0
    True
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from whitted.core.ray import vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


def fov_from_degrees(fov_in_degrees: float) -> float:
    """Convert a scene-file field of view to the stored signed radians."""
    return -math.radians(fov_in_degrees)


@dataclass(frozen=True)
class PinholeCamera:
    """Frame size and field of view of the fixed camera.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Signed field of view in radians.
    """

    width: int
    height: int
    fov: float

    @classmethod
    def from_degrees(cls, width: int, height: int, fov_in_degrees: float) -> "PinholeCamera":
        return cls(width=width, height=height, fov=fov_from_degrees(fov_in_degrees))

    @property
    def tan_half_fov(self) -> float:
        return math.tan(self.fov / 2.0)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def ray_direction(self, x: int, y: int) -> np.ndarray:
        """Compute the normalized primary ray direction for a pixel on the host.

        Mirrors primary_ray_direction(); useful for picking pixels in tests
        and tools without launching a kernel.
        """
        t = self.tan_half_fov
        direction = np.array(
            [
                (2.0 * (x + 0.5) / self.width - 1.0) * t * self.aspect_ratio,
                -(2.0 * (y + 0.5) / self.height - 1.0) * t,
                -1.0,
            ],
            dtype=np.float64,
        )
        return direction / np.linalg.norm(direction)


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def primary_ray_direction(
    x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32, tan_half_fov: ti.f32
) -> vec3:
    """Compute the normalized primary ray direction through pixel (x, y).

    Args:
        x: Pixel column, 0 at the left of the buffer.
        y: Pixel row, 0 at the top of the buffer.
        width: Frame width in pixels.
        height: Frame height in pixels.
        tan_half_fov: tan(fov / 2) of the signed field of view.

    Returns:
        Unit direction from the origin through the pixel center.
    """
    w = ti.cast(width, ti.f32)
    h = ti.cast(height, ti.f32)
    dir_x = (2.0 * (ti.cast(x, ti.f32) + 0.5) / w - 1.0) * tan_half_fov * w / h
    dir_y = -(2.0 * (ti.cast(y, ti.f32) + 0.5) / h - 1.0) * tan_half_fov
    return tm.normalize(vec3(dir_x, dir_y, -1.0))
