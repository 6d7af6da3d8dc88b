from __future__ import annotations

import base64
import io
from pathlib import Path

import pytest
from PIL import Image

from cineswap.gen.config import CineSwapConfig, ConfigError, find_config, load_config, resolve_config
from cineswap.gen.prompting import build_request
from cineswap.gen.providers.gemini import GeminiProvider
from cineswap.gen.providers.placeholder import PlaceholderProvider, output_size
from cineswap.gen.registry import ProviderRegistry
from cineswap.ingest import UploadedImage


def _write_config(tmp_path: Path, text: str) -> Path:
    config_file = tmp_path / "cineswap.toml"
    config_file.write_text(text, encoding="utf-8")
    return config_file


def _png_image(name: str, size: tuple[int, int]) -> UploadedImage:
    buffer = io.BytesIO()
    Image.new("RGB", size, (30, 30, 60)).save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return UploadedImage(
        id=name,
        url=f"data:image/png;base64,{encoded}",
        base64=encoded,
        mime_type="image/png",
        name=f"{name}.png",
        width=size[0],
        height=size[1],
    )


class TestLoadConfig:
    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, """
default_provider = "placeholder"
max_people = 3

[providers.placeholder]
""")
        config = load_config(config_file)
        assert config.default_provider == "placeholder"
        assert config.max_people == 3
        assert config.providers.placeholder is not None
        assert config.providers.gemini is None

    def test_defaults_imply_both_providers(self) -> None:
        config = CineSwapConfig()
        assert config.default_provider == "gemini"
        assert config.max_people == 5
        assert config.result_filename == "CineSwap-Result.png"
        assert config.providers.configured_names() == {"gemini", "placeholder"}
        assert config.providers.gemini.image_size == "1K"

    def test_missing_config_produces_helpful_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "cineswap.toml")

        error_msg = str(exc_info.value)
        assert "not found" in error_msg.lower()
        assert "cineswap init" in error_msg

    def test_invalid_toml_produces_error(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, "this is not valid [toml")
        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)
        assert "toml" in str(exc_info.value).lower()
        assert str(config_file) in str(exc_info.value)

    def test_invalid_default_provider_produces_error(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, """
default_provider = "nonexistent"

[providers.placeholder]
""")
        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)

        error_msg = str(exc_info.value)
        assert "nonexistent" in error_msg
        assert "placeholder" in error_msg

    @pytest.mark.parametrize("text", ["max_people = 0", "max_people = 11", "unknown_key = 1"])
    def test_rejects_bad_values(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ConfigError):
            load_config(_write_config(tmp_path, text))

    def test_rejects_unknown_image_size(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, """
[providers.gemini]
image_size = "8K"
""")
        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)
        assert "image_size" in str(exc_info.value)

    def test_find_config_walks_up(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, "")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == config_file.resolve()

    def test_resolve_without_file_uses_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_config() == CineSwapConfig()


class TestProviderRegistry:
    def test_get_placeholder_provider(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, """
default_provider = "placeholder"

[providers.placeholder]
""")
        registry = ProviderRegistry.from_config_file(config_file)
        provider = registry.get_provider("placeholder")

        assert isinstance(provider, PlaceholderProvider)
        assert provider.provider_id == "placeholder"
        assert provider.requires_api_key is False

    def test_get_default_provider(self) -> None:
        registry = ProviderRegistry(CineSwapConfig())
        provider = registry.get_default_provider()

        assert isinstance(provider, GeminiProvider)
        assert provider.requires_api_key is True

    def test_unconfigured_provider_produces_error(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, """
default_provider = "placeholder"

[providers.placeholder]
""")
        registry = ProviderRegistry.from_config_file(config_file)

        with pytest.raises(ConfigError) as exc_info:
            registry.get_provider("gemini")
        assert "[providers.gemini]" in str(exc_info.value)

    def test_unknown_provider_produces_error(self) -> None:
        registry = ProviderRegistry(CineSwapConfig())

        with pytest.raises(ConfigError) as exc_info:
            registry.get_provider("nonexistent")

        error_msg = str(exc_info.value)
        assert "nonexistent" in error_msg
        assert "placeholder" in error_msg

    def test_provider_is_cached(self) -> None:
        registry = ProviderRegistry(CineSwapConfig())
        assert registry.get_provider("placeholder") is registry.get_provider("placeholder")

    def test_api_key_getter_is_passed_to_gemini(self) -> None:
        registry = ProviderRegistry(CineSwapConfig(), api_key_getter=lambda: "from-getter")
        provider = registry.get_provider("gemini")
        assert provider._api_key() == "from-getter"


class TestPlaceholderProvider:
    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [("3:4", (768, 1024)), ("16:9", (1024, 576)), ("1:1", (1024, 1024)), ("9:16", (576, 1024))],
    )
    def test_output_size(self, ratio: str, expected: tuple[int, int]) -> None:
        assert output_size(ratio, "1K") == expected

    def test_generates_png_data_url_at_target_ratio(self) -> None:
        req = build_request(_png_image("poster", (1000, 1500)), [_png_image("a", (50, 50)), _png_image("b", (50, 50))])

        url = PlaceholderProvider().generate(req)

        assert url.startswith("data:image/png;base64,")
        img = Image.open(io.BytesIO(base64.b64decode(url.split(",", 1)[1])))
        assert img.format == "PNG"
        assert img.size == (768, 1024)
