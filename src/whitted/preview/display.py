"""Post-processing and Matplotlib preview for rendered frames.

Rendered frames hold unclamped linear RGB. Before display or export they go
through an optional tone mapping operator, an optional gamma encoding and a
final clamp to [0, 1]. The default pipeline (no tone mapping, gamma 1.0) is
a plain clamp.

Example:
    >>> from whitted.core.renderer import render
    >>> from whitted.preview.display import show_preview
    >>>
    >>> frame = render(scene)
    >>> show_preview(frame, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from whitted.core.renderer import FrameBuffer


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]

TONE_MAP_METHODS: tuple[str, ...] = ("none", "reinhard", "exposure")


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Reinhard operator c / (1 + c), applied per channel."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Exposure operator 1 - exp(-c * exposure).

    Args:
        image: Linear image of shape (H, W, 3).
        exposure: Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1].
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Encode with out = in ** (1 / gamma). A gamma of 1.0 is a no-op.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Negative inputs would produce NaN
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the tone map, gamma and clamp pipeline.

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding value.
        exposure: Exposure for the "exposure" operator.

    Returns:
        Float32 image in [0, 1].

    Raises:
        ValueError: If tone_map is unknown or gamma is not positive.
    """
    result = np.array(image, dtype=np.float32)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def show_preview(
    frame: FrameBuffer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
    title: str | None = None,
    block: bool = True,
) -> None:
    """Display a rendered frame in a Matplotlib window.

    Args:
        frame: The frame to show, displayed upright.
        tone_map: Tone mapping method.
        gamma: Gamma encoding value.
        exposure: Exposure for the "exposure" operator.
        title: Window title; defaults to the frame size.
        block: Whether to block until the window is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        frame.to_image_array(),
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    # Figure sized to keep the frame's aspect ratio
    figsize = (8.0, 8.0 * frame.height / frame.width)
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    ax.set_title(title if title is not None else f"{frame.width}x{frame.height}")

    plt.tight_layout()
    plt.show(block=block)
