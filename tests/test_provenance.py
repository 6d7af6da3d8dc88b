from __future__ import annotations

import json
from pathlib import Path

from cineswap.gen.errors import ErrorKind
from cineswap.gen.types import GenerationRequest
from cineswap.ingest import UploadedImage
from cineswap.provenance import log_swap_attempt, write_result_sidecar


def _image(name: str) -> UploadedImage:
    return UploadedImage(id=name, url="", base64="", mime_type="image/png", name=f"{name}.png")


def _request() -> GenerationRequest:
    return GenerationRequest(
        poster=_image("poster"),
        people=(_image("alice"), _image("bob")),
        aspect_ratio="3:4",
        prompt="composite",
    )


class TestProvenance:
    def test_result_sidecar(self, tmp_path: Path) -> None:
        out = tmp_path / "CineSwap-Result.png"
        out.write_bytes(b"png-bytes")

        sidecar = write_result_sidecar(out, _request(), "gemini", "gemini-3-pro-image-preview")

        assert sidecar == tmp_path / "CineSwap-Result.png.json"
        data = json.loads(sidecar.read_text(encoding="utf-8"))
        assert data["provider_id"] == "gemini"
        assert data["aspect_ratio"] == "3:4"
        assert data["image_size"] == "1K"
        assert data["poster"] == "poster.png"
        assert data["people"] == ["alice.png", "bob.png"]
        assert len(data["output_hash"]) == 16
        assert data["timestamp"].endswith("Z")

    def test_attempts_are_appended(self, tmp_path: Path) -> None:
        log_swap_attempt(tmp_path, provider_id="gemini", request=_request(), success=True, out_path=tmp_path / "r.png")
        log_path = log_swap_attempt(
            tmp_path,
            provider_id="gemini",
            request=None,
            success=False,
            error_kind=ErrorKind.SAFETY,
            message="blocked",
        )

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert log_path == tmp_path / "logs" / "swap.jsonl"
        assert len(lines) == 2
        first, second = (json.loads(line) for line in lines)
        assert first["event"] == "swap_succeeded"
        assert first["people"] == 2
        assert second["event"] == "swap_failed"
        assert second["error_kind"] == "safety"
        assert second["message"] == "blocked"
