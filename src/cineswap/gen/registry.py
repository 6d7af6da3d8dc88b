from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .config import CineSwapConfig, ConfigError, resolve_config
from .provider import ImageProvider
from .providers.gemini import GeminiProvider
from .providers.placeholder import PlaceholderProvider


class ProviderRegistry:
    def __init__(
        self,
        config: CineSwapConfig,
        api_key_getter: Optional[Callable[[], str]] = None,
    ):
        self._config = config
        self._api_key_getter = api_key_getter
        self._providers: dict[str, ImageProvider] = {}

    @classmethod
    def from_config_file(
        cls,
        config_path: Optional[Path] = None,
        api_key_getter: Optional[Callable[[], str]] = None,
    ) -> "ProviderRegistry":
        return cls(resolve_config(config_path), api_key_getter=api_key_getter)

    @property
    def config(self) -> CineSwapConfig:
        return self._config

    def get_provider(self, name: str) -> ImageProvider:
        if name in self._providers:
            return self._providers[name]

        provider = self._instantiate_provider(name)
        self._providers[name] = provider
        return provider

    def get_default_provider(self) -> ImageProvider:
        return self.get_provider(self._config.default_provider)

    def _instantiate_provider(self, name: str) -> ImageProvider:
        providers = self._config.providers
        if name == "placeholder" and providers.placeholder is not None:
            return PlaceholderProvider(providers.placeholder)

        if name == "gemini" and providers.gemini is not None:
            return GeminiProvider(providers.gemini, api_key_getter=self._api_key_getter)

        available = providers.configured_names()
        if name in ("gemini", "placeholder"):
            raise ConfigError(
                f"Provider '{name}' is not configured in cineswap.toml. "
                f"Add a [providers.{name}] section. Available providers: {sorted(available)}"
            )
        raise ConfigError(
            f"Unknown provider: '{name}'. Available providers: {sorted(available)}"
        )
