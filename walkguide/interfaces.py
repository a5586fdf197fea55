"""Collaborator contracts consumed by the core.

Concrete implementations live in :mod:`walkguide.devices` and
:mod:`walkguide.backends`; tests provide in-memory fakes.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from .errors import RecognitionError
from .types import Backend

ResultCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[RecognitionError], None]


class CaptureSource(Protocol):
    async def capture(self) -> bytes:
        """Return encoded image bytes or raise :class:`CaptureError`."""
        ...


class VisionAnalyzer(Protocol):
    async def analyze(self, image: bytes, prompt: str, backend: Backend) -> str:
        """Return descriptive text or raise :class:`BackendError`."""
        ...


class SpeechRecognizer(Protocol):
    @property
    def is_listening(self) -> bool: ...

    async def listen(
        self,
        locale: str,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> bool:
        """Start recognition; return ``False`` when it could not start."""
        ...

    async def stop(self) -> None: ...


class SpeechOutput(Protocol):
    async def speak(self, text: str) -> None:
        """Speak ``text`` and return once audio has finished."""
        ...

    async def stop(self) -> None: ...


class PreferenceStore(Protocol):
    def get_selected_backend(self) -> Optional[Backend]: ...

    def set_selected_backend(self, backend: Backend) -> None: ...


__all__ = [
    "CaptureSource",
    "VisionAnalyzer",
    "SpeechRecognizer",
    "SpeechOutput",
    "PreferenceStore",
    "ResultCallback",
    "ErrorCallback",
]
