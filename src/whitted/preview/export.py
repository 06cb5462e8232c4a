"""Image export for rendered frames.

Frames are post-processed (see display.process_image_for_display), quantized
to 8 bits and written with Pillow. The output format follows the file
extension (.png, .ppm, .jpg, ...). Rows are written top to bottom in
upright orientation (FrameBuffer.to_image_array()).

Example:
    >>> from whitted.core.renderer import render
    >>> from whitted.preview.export import save_image
    >>>
    >>> frame = render(scene)
    >>> save_image(frame, "output.png", gamma=2.2)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from whitted.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from whitted.core.renderer import FrameBuffer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit.

    Values are scaled by 255 after post-processing and truncated.

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding value.
        exposure: Exposure for the "exposure" operator.

    Returns:
        uint8 array of shape (H, W, 3).
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return (processed * 255).astype(np.uint8)


def frame_to_uint8(
    frame: FrameBuffer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a frame to an upright 8-bit image array."""
    return image_to_uint8(
        frame.to_image_array(), tone_map=tone_map, gamma=gamma, exposure=exposure
    )


def save_image(
    frame: FrameBuffer,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Write a frame to an image file.

    Args:
        frame: The rendered frame.
        filepath: Output path; the extension selects the format.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding value.
        exposure: Exposure for the "exposure" operator.

    Raises:
        OSError: If the file cannot be written.
        ValueError: If the extension is not a known image format.
    """
    image_uint8 = frame_to_uint8(frame, tone_map=tone_map, gamma=gamma, exposure=exposure)
    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(filepath)
    logger.info("wrote %dx%d image to %s", frame.width, frame.height, filepath)
