from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..ingest import UploadedImage
from .aspect import AspectRatio

DEFAULT_IMAGE_SIZE = "1K"
DEFAULT_MODEL_ID = "gemini-3-pro-image-preview"


@dataclass(frozen=True)
class GenerationRequest:
    poster: UploadedImage
    people: tuple[UploadedImage, ...]
    aspect_ratio: AspectRatio
    prompt: str
    image_size: str = DEFAULT_IMAGE_SIZE
    model_id: Optional[str] = None
