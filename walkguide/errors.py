"""Error taxonomy for the walking guide."""

from __future__ import annotations


class WalkGuideError(Exception):
    """Base class for all walking guide errors."""


class CaptureError(WalkGuideError):
    """Camera frame or picked file could not be read."""


class BackendError(WalkGuideError):
    """The vision-analysis service failed (network, auth, quota, empty reply)."""

    def __init__(self, message: str, *, backend: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.backend = backend
        self.status = status


class RecognitionError(WalkGuideError):
    """The speech recognizer could not be initialised or failed while listening."""


class InvalidTransition(WalkGuideError):
    """A state change was attempted that the transition table does not allow."""

    def __init__(self, current: object, target: object, event: str) -> None:
        super().__init__(f"{event}: {current} -> {target} is not allowed")
        self.current = current
        self.target = target
        self.event = event


__all__ = [
    "WalkGuideError",
    "CaptureError",
    "BackendError",
    "RecognitionError",
    "InvalidTransition",
]
