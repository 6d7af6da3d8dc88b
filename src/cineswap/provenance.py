from __future__ import annotations

import datetime as _dt
import hashlib
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .gen.errors import ErrorKind
    from .gen.types import GenerationRequest

SWAP_LOG = Path("logs") / "swap.jsonl"


def now_utc_iso() -> str:
    return _dt.datetime.now(tz=_dt.timezone.utc).isoformat().replace("+00:00", "Z")


def file_sha256(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def write_sidecar(out_path: Path, payload: dict[str, Any]) -> Path:
    sidecar = out_path.with_suffix(out_path.suffix + ".json")
    sidecar.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return sidecar


def append_jsonl(log_path: Path, payload: dict[str, Any]) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, ensure_ascii=False) + "\n")


def write_result_sidecar(
    out_path: Path,
    request: GenerationRequest,
    provider_id: str,
    model_id: Optional[str],
) -> Path:
    payload = {
        "provider_id": provider_id,
        "model_id": model_id,
        "aspect_ratio": request.aspect_ratio,
        "image_size": request.image_size,
        "poster": request.poster.name,
        "people": [p.name for p in request.people],
        "output_hash": file_sha256(out_path)[:16],
        "timestamp": now_utc_iso(),
    }
    return write_sidecar(out_path, payload)


def log_swap_attempt(
    out_dir: Path,
    *,
    provider_id: str,
    request: Optional[GenerationRequest],
    success: bool,
    error_kind: Optional[ErrorKind] = None,
    message: Optional[str] = None,
    out_path: Optional[Path] = None,
) -> Path:
    log_path = out_dir / SWAP_LOG
    payload: dict[str, Any] = {
        "event": "swap_succeeded" if success else "swap_failed",
        "provider_id": provider_id,
        "aspect_ratio": request.aspect_ratio if request is not None else None,
        "people": len(request.people) if request is not None else 0,
        "error_kind": error_kind.value if error_kind is not None else None,
        "message": message,
        "out_path": str(out_path) if out_path is not None else None,
        "timestamp": now_utc_iso(),
    }
    append_jsonl(log_path, payload)
    return log_path
