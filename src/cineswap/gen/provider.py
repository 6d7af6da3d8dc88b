from __future__ import annotations

from abc import ABC, abstractmethod

from .types import GenerationRequest


class ImageProvider(ABC):
    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @property
    def requires_api_key(self) -> bool:
        return False

    @abstractmethod
    def generate(self, req: GenerationRequest) -> str:
        """Return the composited poster as a PNG data URL.

        Raises:
            GenerationError: Exactly one classified failure per call.
        """
        raise NotImplementedError
