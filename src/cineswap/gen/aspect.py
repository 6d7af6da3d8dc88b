from __future__ import annotations

from typing import Literal, Optional

AspectRatio = Literal["9:16", "3:4", "1:1", "4:3", "16:9"]

DEFAULT_ASPECT_RATIO: AspectRatio = "3:4"

# Scan order matters: ties keep the earlier entry.
SUPPORTED_RATIOS: tuple[tuple[AspectRatio, float], ...] = (
    ("9:16", 9 / 16),
    ("3:4", 3 / 4),
    ("1:1", 1.0),
    ("4:3", 4 / 3),
    ("16:9", 16 / 9),
)


def closest_aspect_ratio(width: Optional[int], height: Optional[int]) -> AspectRatio:
    """Map a pixel size to the closest aspect ratio the image model accepts.

    Missing (or zero) dimensions fall back to the poster default "3:4".
    """
    if not width or not height:
        return DEFAULT_ASPECT_RATIO

    ratio = width / height
    best_name, best_value = SUPPORTED_RATIOS[0]
    for name, value in SUPPORTED_RATIOS[1:]:
        if abs(value - ratio) < abs(best_value - ratio):
            best_name, best_value = name, value
    return best_name
