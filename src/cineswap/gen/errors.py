from __future__ import annotations

import enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)

AUTH_NOT_FOUND_SIGNATURE = "Requested entity was not found"


class ErrorKind(str, enum.Enum):
    PRECONDITION = "precondition"
    SAFETY = "safety"
    GENERATION_EMPTY = "generation_empty"
    GENERATION_FAILED = "generation_failed"
    MODEL_TEXT_FEEDBACK = "model_text_feedback"
    AUTH_KEY_INVALID = "auth_key_invalid"
    GENERIC = "generic"


MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.SAFETY: (
        "由於安全性原則（可能包含受保護的人物或敏感內容），AI 拒絕生成此圖片。"
        "請嘗試更換海報或照片內容再試一次。"
    ),
    ErrorKind.GENERATION_EMPTY: "AI 無法生成圖片，請檢查圖片內容是否清晰或符合規範。",
    ErrorKind.GENERATION_FAILED: "未能成功獲取置換後的影像。",
    ErrorKind.AUTH_KEY_INVALID: "API Key 無效或已過期，請重新選取。",
    ErrorKind.GENERIC: "生成過程中發生未知錯誤。",
}

MODEL_FEEDBACK_PREFIX = "AI 回應："


class GenerationError(Exception):
    """A classified failure of a single generation call."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or MESSAGES.get(kind, MESSAGES[ErrorKind.GENERIC])
        super().__init__(self.message)

    @property
    def display_message(self) -> str:
        """Message as shown to the user. Model feedback keeps its text verbatim."""
        if self.kind is ErrorKind.MODEL_TEXT_FEEDBACK:
            return f"{MODEL_FEEDBACK_PREFIX}{self.message}"
        return self.message


def translate_error(exc: BaseException) -> GenerationError:
    """Classify an SDK/transport error.

    A "Requested entity was not found" anywhere in the message always means
    the selected API key was rejected, whatever else the message says.
    """
    if isinstance(exc, GenerationError):
        return exc

    message = str(exc) if exc is not None else ""
    if AUTH_NOT_FOUND_SIGNATURE in message:
        return GenerationError(ErrorKind.AUTH_KEY_INVALID)

    logger.error("Gemini API error: %s", message or type(exc).__name__)
    return GenerationError(ErrorKind.GENERIC, message or None)
