from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import ErrorKind, GenerationError

PNG_DATA_URL_PREFIX = "data:image/png;base64,"


@dataclass(frozen=True)
class ImageOutcome:
    data: str


@dataclass(frozen=True)
class SafetyBlocked:
    pass


@dataclass(frozen=True)
class TextFeedback:
    text: str


@dataclass(frozen=True)
class EmptyOutcome:
    had_content: bool = False


ResponseOutcome = Union[ImageOutcome, SafetyBlocked, TextFeedback, EmptyOutcome]


def _finish_reason_name(candidate: Any) -> Optional[str]:
    reason = getattr(candidate, "finish_reason", None)
    if reason is None:
        return None
    return getattr(reason, "name", None) or str(reason)


def _encode_inline(data: Union[bytes, str]) -> str:
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return data


def resolve_response(response: Any) -> ResponseOutcome:
    """Reduce a generate_content response to exactly one outcome.

    Only the first candidate is considered. The first part with inline data
    wins over everything after it; text is only looked at when no part
    carries inline data.
    """
    candidates = getattr(response, "candidates", None) or []
    candidate = candidates[0] if candidates else None
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None)

    # An empty (but present) parts list falls through to GENERATION_FAILED.
    if candidate is None or parts is None:
        if _finish_reason_name(candidate) == "SAFETY":
            return SafetyBlocked()
        return EmptyOutcome(had_content=False)

    # Presence of inline_data is enough; an empty payload still counts as the image.
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None:
            return ImageOutcome(data=_encode_inline(getattr(inline, "data", None) or ""))

    for part in parts:
        text = getattr(part, "text", None)
        if text:
            return TextFeedback(text=text)

    return EmptyOutcome(had_content=True)


def outcome_to_data_url(outcome: ResponseOutcome) -> str:
    """Return the displayable PNG data URL, or raise the classified failure."""
    if isinstance(outcome, ImageOutcome):
        return f"{PNG_DATA_URL_PREFIX}{outcome.data}"
    if isinstance(outcome, SafetyBlocked):
        raise GenerationError(ErrorKind.SAFETY)
    if isinstance(outcome, TextFeedback):
        raise GenerationError(ErrorKind.MODEL_TEXT_FEEDBACK, outcome.text)
    if isinstance(outcome, EmptyOutcome):
        kind = ErrorKind.GENERATION_FAILED if outcome.had_content else ErrorKind.GENERATION_EMPTY
        raise GenerationError(kind)
    raise TypeError(f"Unknown response outcome: {outcome!r}")
