from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Callable, Optional

import typer

from .gen.config import ConfigError


class CredentialSelector(ABC):
    """Host-provided API key selection, seen only as yes/no plus a prompt."""

    @abstractmethod
    def has_selected_key(self) -> bool: ...

    @abstractmethod
    def open_select_key(self) -> None: ...


class EnvCredentialSelector(CredentialSelector):
    def __init__(
        self,
        env_var: str = "GEMINI_API_KEY",
        prompt: Optional[Callable[[str], str]] = None,
    ):
        self.env_var = env_var
        self._prompt = prompt or (lambda text: typer.prompt(text, hide_input=True))

    def has_selected_key(self) -> bool:
        return bool(os.environ.get(self.env_var, "").strip())

    def open_select_key(self) -> None:
        key = self._prompt(f"Enter API key ({self.env_var})").strip()
        if key:
            os.environ[self.env_var] = key

    def api_key(self) -> str:
        key = os.environ.get(self.env_var, "").strip()
        if not key:
            raise ConfigError(f"No API key selected: set {self.env_var}")
        return key
