from __future__ import annotations

from .gemini import GeminiProvider
from .placeholder import PlaceholderProvider

__all__ = [
    "GeminiProvider",
    "PlaceholderProvider",
]
