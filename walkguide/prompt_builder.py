"""Prompt selection for the vision backends."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import DETAILED_PROMPT_JA, QUICK_PROMPT_JA
from .types import Backend, NarrationMode


@dataclass(frozen=True)
class BuiltPrompt:
    """Structured prompt payload."""

    text: str
    mode: NarrationMode
    backend: Backend
    debug: dict[str, object]


def build_prompt(mode: NarrationMode, backend: Backend) -> BuiltPrompt:
    """Return the detailed prompt for ``DETAILED`` and the short one otherwise."""

    text = DETAILED_PROMPT_JA if mode is NarrationMode.DETAILED else QUICK_PROMPT_JA
    return BuiltPrompt(
        text=text,
        mode=mode,
        backend=backend,
        debug={"prompt_chars": len(text), "detailed": mode is NarrationMode.DETAILED},
    )


__all__ = ["BuiltPrompt", "build_prompt"]
