"""Preview module for output and visualization.

Components:
    display: Tone mapping, gamma and the Matplotlib preview
    export: 8-bit image export via Pillow

Example:
    >>> from whitted.preview import save_image, show_preview
    >>> save_image(frame, "output.png", gamma=2.2)
    >>> show_preview(frame, tone_map="reinhard")
"""

from whitted.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from whitted.preview.export import frame_to_uint8, image_to_uint8, save_image

__all__ = [
    "show_preview",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "save_image",
    "frame_to_uint8",
    "image_to_uint8",
]
