from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Optional, Union

from .credentials import CredentialSelector
from .gen.config import RESULT_FILENAME
from .gen.errors import ErrorKind, GenerationError, translate_error
from .gen.prompting import build_request
from .gen.provider import ImageProvider
from .gen.types import DEFAULT_IMAGE_SIZE, GenerationRequest
from .ingest import DEFAULT_MAX_FILES, UploadedImage

logger = logging.getLogger(__name__)

MSG_NEED_KEY = "使用 Pro 模式需要先選取您的 API Key。"
MSG_NEED_POSTER = "請上傳一張電影海報。"
MSG_NEED_PERSON = "請上傳至少一位置換人物。"


@dataclass(frozen=True)
class AppState:
    poster: Optional[UploadedImage] = None
    people: tuple[UploadedImage, ...] = ()
    is_processing: bool = False
    result: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    has_key: bool = False
    max_people: int = DEFAULT_MAX_FILES


@dataclass(frozen=True)
class PosterUploaded:
    image: UploadedImage


@dataclass(frozen=True)
class PersonUploaded:
    image: UploadedImage


@dataclass(frozen=True)
class PosterRemoved:
    pass


@dataclass(frozen=True)
class PersonRemoved:
    id: str


@dataclass(frozen=True)
class KeyStatusChanged:
    has_key: bool


@dataclass(frozen=True)
class PreconditionFailed:
    message: str


@dataclass(frozen=True)
class GenerationStarted:
    pass


@dataclass(frozen=True)
class GenerationSucceeded:
    url: str


@dataclass(frozen=True)
class GenerationFailed:
    error: GenerationError


@dataclass(frozen=True)
class Reset:
    pass


Action = Union[
    PosterUploaded,
    PersonUploaded,
    PosterRemoved,
    PersonRemoved,
    KeyStatusChanged,
    PreconditionFailed,
    GenerationStarted,
    GenerationSucceeded,
    GenerationFailed,
    Reset,
]


def reduce(state: AppState, action: Action) -> AppState:
    """The only place AppState changes. Always returns a new value."""
    if isinstance(action, PosterUploaded):
        return replace(state, poster=action.image, error=None, error_kind=None)
    if isinstance(action, PersonUploaded):
        if len(state.people) >= state.max_people:
            return state
        return replace(state, people=state.people + (action.image,), error=None, error_kind=None)
    if isinstance(action, PosterRemoved):
        return replace(state, poster=None)
    if isinstance(action, PersonRemoved):
        return replace(state, people=tuple(p for p in state.people if p.id != action.id))
    if isinstance(action, KeyStatusChanged):
        return replace(state, has_key=action.has_key)
    if isinstance(action, PreconditionFailed):
        return replace(state, error=action.message, error_kind=ErrorKind.PRECONDITION)
    if isinstance(action, GenerationStarted):
        return replace(state, is_processing=True, error=None, error_kind=None, result=None)
    if isinstance(action, GenerationSucceeded):
        return replace(state, result=action.url, is_processing=False)
    if isinstance(action, GenerationFailed):
        err = action.error
        if err.kind is ErrorKind.AUTH_KEY_INVALID:
            return replace(
                state,
                has_key=False,
                is_processing=False,
                error=err.display_message,
                error_kind=err.kind,
            )
        return replace(state, is_processing=False, error=err.display_message, error_kind=err.kind)
    if isinstance(action, Reset):
        # The key selection lives outside the session and survives a reset.
        return AppState(has_key=state.has_key, max_people=state.max_people)
    raise TypeError(f"Unknown action: {action!r}")


def check_preconditions(state: AppState) -> Optional[str]:
    if not state.has_key:
        return MSG_NEED_KEY
    if state.poster is None:
        return MSG_NEED_POSTER
    if not state.people:
        return MSG_NEED_PERSON
    return None


def can_generate(state: AppState) -> bool:
    return (
        not state.is_processing
        and state.poster is not None
        and bool(state.people)
        and state.has_key
    )


@dataclass
class SessionController:
    """Serializes every state change of one session through ``reduce``."""

    credentials: CredentialSelector
    state: AppState = field(default_factory=AppState)
    listeners: list[Callable[[AppState, Action], None]] = field(default_factory=list)
    last_request: Optional[GenerationRequest] = None

    def dispatch(self, action: Action) -> AppState:
        self.state = reduce(self.state, action)
        for listener in self.listeners:
            listener(self.state, action)
        return self.state

    def refresh_key_status(self) -> bool:
        try:
            selected = self.credentials.has_selected_key()
        except Exception as e:
            logger.error("Failed to check API key status: %s", e)
            return self.state.has_key
        self.dispatch(KeyStatusChanged(selected))
        return selected

    def select_key(self) -> None:
        self.credentials.open_select_key()
        # Treat selection as successful once the dialog returns.
        self.dispatch(KeyStatusChanged(True))

    def upload_poster(self, image: UploadedImage) -> None:
        self.dispatch(PosterUploaded(image))

    def upload_person(self, image: UploadedImage) -> None:
        self.dispatch(PersonUploaded(image))

    def remove_poster(self) -> None:
        self.dispatch(PosterRemoved())

    def remove_person(self, image_id: str) -> None:
        self.dispatch(PersonRemoved(image_id))

    def reset(self) -> None:
        self.dispatch(Reset())

    def process(
        self,
        provider: ImageProvider,
        *,
        image_size: str = DEFAULT_IMAGE_SIZE,
        model_id: Optional[str] = None,
    ) -> AppState:
        if self.state.is_processing:
            logger.warning("Generation already in flight; ignoring trigger")
            return self.state

        message = check_preconditions(self.state)
        if message is not None:
            return self.dispatch(PreconditionFailed(message))

        self.dispatch(GenerationStarted())
        self.last_request = None
        try:
            self.last_request = self.build_request(image_size=image_size, model_id=model_id)
            url = provider.generate(self.last_request)
        except Exception as e:
            return self.dispatch(GenerationFailed(translate_error(e)))
        return self.dispatch(GenerationSucceeded(url))

    def build_request(
        self,
        *,
        image_size: str = DEFAULT_IMAGE_SIZE,
        model_id: Optional[str] = None,
    ) -> GenerationRequest:
        if self.state.poster is None:
            raise ValueError("No poster selected")
        return build_request(
            self.state.poster,
            self.state.people,
            image_size=image_size,
            model_id=model_id,
        )


def decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Result is not a base64 data URL")
    return base64.b64decode(payload)


def download_result(state: AppState, out_dir: Path, filename: str = RESULT_FILENAME) -> Path:
    if state.result is None:
        raise ValueError("No result to download")
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / filename
    out_path.write_bytes(decode_data_url(state.result))
    return out_path
