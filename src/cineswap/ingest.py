from __future__ import annotations

import base64
import logging
import mimetypes
import secrets
import string
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 5

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 9


class IngestError(Exception):
    """Raised when a selected file cannot be read or decoded as an image."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class UploadedImage:
    id: str
    url: str
    base64: str
    mime_type: str
    name: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class IngestResult:
    images: list[UploadedImage] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


def new_image_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _guess_mime_type(path: Path, pil_format: Optional[str]) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    if mime and mime.startswith("image/"):
        return mime
    if pil_format:
        mime = Image.MIME.get(pil_format.upper())
        if mime:
            return mime
    return "application/octet-stream"


def load_image(path: Path) -> UploadedImage:
    """Read an image file fully and probe its pixel size.

    Raises:
        IngestError: If the file is missing or is not a decodable image.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IngestError(f"Failed to read file: {e}", path=path) from e

    try:
        with Image.open(path) as img:
            width, height = img.size
            pil_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise IngestError(f"Not a decodable image: {e}", path=path) from e

    mime_type = _guess_mime_type(path, pil_format)
    encoded = base64.b64encode(data).decode("ascii")
    return UploadedImage(
        id=new_image_id(),
        url=f"data:{mime_type};base64,{encoded}",
        base64=encoded,
        mime_type=mime_type,
        name=path.name,
        width=width,
        height=height,
    )


def select_paths(
    paths: Sequence[Path],
    *,
    multiple: bool,
    max_files: int = DEFAULT_MAX_FILES,
    existing: int = 0,
) -> tuple[list[Path], list[Path]]:
    """Split a selection into (accepted, skipped) honouring the input mode."""
    if not multiple:
        return list(paths[:1]), list(paths[1:])

    accepted: list[Path] = []
    for i, path in enumerate(paths):
        if existing + i >= max_files:
            return accepted, list(paths[i:])
        accepted.append(path)
    return accepted, []


def ingest_files(
    paths: Sequence[Path],
    *,
    multiple: bool = False,
    max_files: int = DEFAULT_MAX_FILES,
    existing: int = 0,
    on_upload: Optional[Callable[[UploadedImage], None]] = None,
    max_workers: int = 4,
) -> IngestResult:
    """Ingest a batch of selected files.

    Each file is read and probed independently; ``on_upload`` is called as
    soon as a file completes, so the order of ``images`` follows completion,
    not selection.
    """
    result = IngestResult()
    accepted, result.skipped = select_paths(
        paths, multiple=multiple, max_files=max_files, existing=existing
    )
    if not accepted:
        return result

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(accepted)))) as pool:
        futures = {pool.submit(load_image, p): p for p in accepted}
        for future in as_completed(futures):
            path = futures[future]
            try:
                image = future.result()
            except IngestError as e:
                logger.warning("Skipping %s: %s", path, e)
                result.errors.append((path, str(e)))
                continue
            result.images.append(image)
            if on_upload is not None:
                on_upload(image)

    return result
