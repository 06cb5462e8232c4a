"""Environment map loading.

Backgrounds are equirectangular RGB images held on the host as float32
arrays of shape (height, width, 3) with values in [0, 1]. The device keeps
one preallocated buffer of MAX_BACKGROUND_WIDTH x MAX_BACKGROUND_HEIGHT;
larger images are downsampled when loaded from disk.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from whitted.errors import SceneConfigError

logger = logging.getLogger(__name__)

MAX_BACKGROUND_WIDTH = 2048
MAX_BACKGROUND_HEIGHT = 1024


def load_background(filepath: str | Path) -> npt.NDArray[np.float32]:
    """Decode an image file into a background array.

    Args:
        filepath: Any image format Pillow can read.

    Returns:
        Float32 array of shape (H, W, 3) with values in [0, 1].

    Raises:
        SceneConfigError: If the file is missing or cannot be decoded.
    """
    try:
        with PILImage.open(filepath) as image:
            rgb = image.convert("RGB")
    except (OSError, ValueError) as err:
        raise SceneConfigError(f"failed to load background file: {filepath}: {err}") from err

    width, height = rgb.size
    if width > MAX_BACKGROUND_WIDTH or height > MAX_BACKGROUND_HEIGHT:
        scale = min(MAX_BACKGROUND_WIDTH / width, MAX_BACKGROUND_HEIGHT / height)
        new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
        logger.warning(
            "background %s is %dx%d, downsampling to %dx%d",
            filepath,
            width,
            height,
            new_size[0],
            new_size[1],
        )
        rgb = rgb.resize(new_size, PILImage.Resampling.BOX)

    return np.asarray(rgb, dtype=np.float32) / 255.0


def solid_background(
    color: tuple[float, float, float],
    width: int = 1,
    height: int = 1,
) -> npt.NDArray[np.float32]:
    """Build a background of a single color."""
    pixels = np.empty((height, width, 3), dtype=np.float32)
    pixels[:, :] = color
    return pixels


def validate_background(pixels: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Check a host background array and return it as contiguous float32.

    Raises:
        SceneConfigError: If the array is not (H, W, 3), is empty, or
            exceeds the device buffer.
    """
    array = np.ascontiguousarray(pixels, dtype=np.float32)
    if array.ndim != 3 or array.shape[2] != 3:
        raise SceneConfigError(f"background must have shape (H, W, 3), got {array.shape}")
    height, width = array.shape[:2]
    if width == 0 or height == 0:
        raise SceneConfigError("background image is empty")
    if width > MAX_BACKGROUND_WIDTH or height > MAX_BACKGROUND_HEIGHT:
        raise SceneConfigError(
            f"background ({width}x{height}) exceeds maximum supported "
            f"({MAX_BACKGROUND_WIDTH}x{MAX_BACKGROUND_HEIGHT})"
        )
    return array
