from __future__ import annotations

from .aspect import SUPPORTED_RATIOS, AspectRatio, closest_aspect_ratio
from .errors import ErrorKind, GenerationError, translate_error
from .prompting import build_parts, build_request
from .provider import ImageProvider
from .response import ResponseOutcome, outcome_to_data_url, resolve_response
from .types import GenerationRequest

__all__ = [
    "SUPPORTED_RATIOS",
    "AspectRatio",
    "closest_aspect_ratio",
    "ErrorKind",
    "GenerationError",
    "translate_error",
    "build_parts",
    "build_request",
    "ImageProvider",
    "ResponseOutcome",
    "outcome_to_data_url",
    "resolve_response",
    "GenerationRequest",
]
