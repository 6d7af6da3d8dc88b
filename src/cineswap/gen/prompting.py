from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, UndefinedError

from ..ingest import UploadedImage
from .aspect import closest_aspect_ratio
from .types import DEFAULT_IMAGE_SIZE, GenerationRequest

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
COMPOSITE_TEMPLATE = "composite.j2"


class PromptResolutionError(Exception):
    """Raised when a prompt template cannot be resolved."""

    pass


class PromptResolver:
    def __init__(self, templates_dir: Path = PROMPTS_DIR):
        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, params: Optional[dict[str, Any]] = None) -> str:
        """Render a template and return the resolved text.

        Raises:
            PromptResolutionError: If template not found or variable undefined.
        """
        try:
            tpl = self.env.get_template(template_name)
            return tpl.render(**(params or {})).strip()
        except TemplateNotFound as e:
            raise PromptResolutionError(
                f"Template '{template_name}' not found in {self.templates_dir}"
            ) from e
        except UndefinedError as e:
            raise PromptResolutionError(
                f"Undefined variable in template '{template_name}': {e}"
            ) from e


def composite_prompt(resolver: Optional[PromptResolver] = None) -> str:
    """The fixed compositing instruction sent as the last request part."""
    return (resolver or PromptResolver()).render(COMPOSITE_TEMPLATE)


def build_request(
    poster: UploadedImage,
    people: list[UploadedImage] | tuple[UploadedImage, ...],
    *,
    image_size: str = DEFAULT_IMAGE_SIZE,
    model_id: Optional[str] = None,
    resolver: Optional[PromptResolver] = None,
) -> GenerationRequest:
    return GenerationRequest(
        poster=poster,
        people=tuple(people),
        aspect_ratio=closest_aspect_ratio(poster.width, poster.height),
        prompt=composite_prompt(resolver),
        image_size=image_size,
        model_id=model_id,
    )


def _inline_part(image: UploadedImage) -> dict[str, Any]:
    return {"inline_data": {"data": image.base64, "mime_type": image.mime_type}}


def build_parts(request: GenerationRequest) -> list[dict[str, Any]]:
    """Poster first, then people in order (first person replaces first character), then the text."""
    parts = [_inline_part(request.poster)]
    parts.extend(_inline_part(person) for person in request.people)
    parts.append({"text": request.prompt})
    return parts
