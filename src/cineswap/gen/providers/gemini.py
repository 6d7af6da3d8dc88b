from __future__ import annotations

import base64
import logging
import os
from typing import TYPE_CHECKING, Any, Callable, Optional

from google import genai
from google.genai import types

from ..errors import GenerationError, translate_error
from ..prompting import build_parts
from ..provider import ImageProvider
from ..response import TextFeedback, outcome_to_data_url, resolve_response
from ..types import DEFAULT_MODEL_ID, GenerationRequest

if TYPE_CHECKING:
    from ..config import GeminiProviderConfig

logger = logging.getLogger(__name__)


def _default_client_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


def to_sdk_part(part: dict[str, Any]) -> types.Part:
    inline = part.get("inline_data")
    if inline is not None:
        return types.Part.from_bytes(
            data=base64.b64decode(inline["data"]),
            mime_type=inline["mime_type"],
        )
    return types.Part.from_text(text=part["text"])


class GeminiProvider(ImageProvider):
    """Composite people into a poster with a Gemini image model.

    A new client is created for every call so the most recently selected
    API key is always the one used. There is no retry: each call yields one
    data URL or raises one GenerationError.
    """

    def __init__(
        self,
        config: "GeminiProviderConfig | None" = None,
        *,
        api_key_getter: Optional[Callable[[], str]] = None,
        client_factory: Callable[[str], Any] = _default_client_factory,
    ):
        self._config = config
        self._api_key_getter = api_key_getter
        self._client_factory = client_factory

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def model_id(self) -> str:
        return self._config.model if self._config is not None else DEFAULT_MODEL_ID

    @property
    def api_key_env(self) -> str:
        return self._config.api_key_env if self._config is not None else "GEMINI_API_KEY"

    def _api_key(self) -> str:
        if self._api_key_getter is not None:
            return self._api_key_getter()
        return os.environ.get(self.api_key_env, "")

    def generate(self, req: GenerationRequest) -> str:
        model = req.model_id or self.model_id
        logger.info(
            "Requesting composite: model=%s aspect_ratio=%s image_size=%s people=%d",
            model,
            req.aspect_ratio,
            req.image_size,
            len(req.people),
        )
        try:
            client = self._client_factory(self._api_key())
            contents = types.Content(
                role="user",
                parts=[to_sdk_part(p) for p in build_parts(req)],
            )
            response = client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(
                        aspect_ratio=req.aspect_ratio,
                        image_size=req.image_size,
                    ),
                ),
            )
            outcome = resolve_response(response)
            if isinstance(outcome, TextFeedback):
                logger.info("AI feedback: %s", outcome.text)
            return outcome_to_data_url(outcome)
        except GenerationError:
            raise
        except Exception as e:
            raise translate_error(e) from e
