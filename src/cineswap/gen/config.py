from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .types import DEFAULT_IMAGE_SIZE, DEFAULT_MODEL_ID

CONFIG_FILENAME = "cineswap.toml"
RESULT_FILENAME = "CineSwap-Result.png"

IMAGE_SIZES = ("1K", "2K", "4K")


class PlaceholderProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GeminiProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    api_key_env: str = "GEMINI_API_KEY"
    model: str = DEFAULT_MODEL_ID
    image_size: str = DEFAULT_IMAGE_SIZE

    @field_validator("image_size")
    @classmethod
    def validate_image_size(cls, v: str) -> str:
        if v not in IMAGE_SIZES:
            raise ValueError(f"image_size must be one of {list(IMAGE_SIZES)}, got '{v}'")
        return v


class ProvidersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    gemini: Optional[GeminiProviderConfig] = None
    placeholder: Optional[PlaceholderProviderConfig] = None

    def configured_names(self) -> set[str]:
        names = set()
        if self.gemini is not None:
            names.add("gemini")
        if self.placeholder is not None:
            names.add("placeholder")
        return names


class CineSwapConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_provider: str = "gemini"
    max_people: int = Field(5, ge=1, le=10)
    result_filename: str = RESULT_FILENAME
    providers: ProvidersConfig = ProvidersConfig()

    @field_validator("default_provider")
    @classmethod
    def validate_default_provider(cls, v: str) -> str:
        if not v:
            raise ValueError("default_provider cannot be empty")
        return v

    @model_validator(mode="after")
    def fill_implied_providers(self) -> "CineSwapConfig":
        if not self.providers.configured_names():
            self.providers = ProvidersConfig(
                gemini=GeminiProviderConfig(),
                placeholder=PlaceholderProviderConfig(),
            )
        available = self.providers.configured_names()
        if self.default_provider not in available:
            raise ValueError(
                f"default_provider '{self.default_provider}' is not configured. "
                f"Available providers: {sorted(available)}"
            )
        return self


class ConfigError(Exception):
    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


def load_config(config_path: Path) -> CineSwapConfig:
    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}\n"
            "Run 'cineswap init' to create one",
            path=config_path,
        )

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore

    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to parse TOML: {e}", path=config_path) from e

    try:
        return CineSwapConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}", path=config_path) from e


def find_config(start_dir: Optional[Path] = None) -> Optional[Path]:
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def resolve_config(config_path: Optional[Path] = None) -> CineSwapConfig:
    """Load an explicit config file, a discovered one, or fall back to defaults."""
    if config_path is not None:
        return load_config(config_path)
    found = find_config()
    if found is None:
        return CineSwapConfig()
    return load_config(found)


STARTER_CONFIG = f"""\
default_provider = "gemini"
max_people = 5
result_filename = "{RESULT_FILENAME}"

[providers.gemini]
api_key_env = "GEMINI_API_KEY"
model = "{DEFAULT_MODEL_ID}"
image_size = "{DEFAULT_IMAGE_SIZE}"

[providers.placeholder]
"""
