from __future__ import annotations

import base64
import io
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw

from ..provider import ImageProvider
from ..response import PNG_DATA_URL_PREFIX
from ..types import GenerationRequest

if TYPE_CHECKING:
    from ..config import PlaceholderProviderConfig

# Output long edge per image_size tier.
SIZE_TIERS = {"1K": 1024, "2K": 2048, "4K": 4096}

_RATIO_SHAPES = {
    "9:16": (9, 16),
    "3:4": (3, 4),
    "1:1": (1, 1),
    "4:3": (4, 3),
    "16:9": (16, 9),
}


def output_size(aspect_ratio: str, image_size: str) -> tuple[int, int]:
    w, h = _RATIO_SHAPES[aspect_ratio]
    long_edge = SIZE_TIERS.get(image_size, SIZE_TIERS["1K"])
    if w >= h:
        return long_edge, max(1, round(long_edge * h / w))
    return max(1, round(long_edge * w / h)), long_edge


class PlaceholderProvider(ImageProvider):
    """Offline stand-in: the poster resized to the target ratio with numbered slots."""

    def __init__(self, config: "PlaceholderProviderConfig | None" = None):
        self._config = config

    @property
    def provider_id(self) -> str:
        return "placeholder"

    def generate(self, req: GenerationRequest) -> str:
        width, height = output_size(req.aspect_ratio, req.image_size)

        poster = Image.open(io.BytesIO(base64.b64decode(req.poster.base64)))
        img = poster.convert("RGBA").resize((width, height))
        d = ImageDraw.Draw(img)

        count = len(req.people)
        slot_w = width // max(count, 1)
        margin = min(width, height) // 32
        for i, person in enumerate(req.people):
            x0 = i * slot_w + margin
            x1 = (i + 1) * slot_w - margin
            d.rectangle(
                [x0, height // 4, x1, height // 2],
                outline=(255, 255, 255, 255),
                width=4,
            )
            d.text((x0 + margin, height // 4 + margin), f"{i + 1}: {person.name}", fill=(255, 255, 255, 255))

        d.text((24, 24), f"Ratio: {req.aspect_ratio}  Size: {req.image_size}", fill=(255, 255, 255, 255))

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return PNG_DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")
