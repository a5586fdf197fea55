"""Analyzer output clean-up and urgency classification."""

from __future__ import annotations

import re
from typing import Iterable

from .constants import EMPTY_ANALYSIS_JA, URGENT_KEYWORDS

_MARKDOWN_BLOCK_PATTERN = re.compile(r"```.*?```", re.DOTALL)
_EMPHASIS_PATTERN = re.compile(r"[*_`]+")
_SENTENCE_END = ("。", "！", "？", ".", "!", "?")


def _strip_markdown(text: str) -> str:
    cleaned = re.sub(_MARKDOWN_BLOCK_PATTERN, "", text)
    cleaned_lines = []
    for line in cleaned.splitlines():
        line = line.lstrip("-*#> ")
        cleaned_lines.append(line)
    return " ".join(cleaned_lines)


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    head = text[:max_chars]
    # Prefer cutting at the last sentence end so the speech does not stop mid-word.
    cut = max(head.rfind(mark) for mark in _SENTENCE_END)
    if cut >= max_chars // 2:
        return head[: cut + 1]
    return head + "…"


def postprocess_description(text: str | None, max_chars: int) -> str:
    """Make analyzer output suitable for text-to-speech."""

    if not text:
        return EMPTY_ANALYSIS_JA
    cleaned = _strip_markdown(text)
    cleaned = _EMPHASIS_PATTERN.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    if not cleaned:
        return EMPTY_ANALYSIS_JA
    return _truncate(cleaned, max_chars) if max_chars > 0 else cleaned


def is_urgent(text: str, keywords: Iterable[str] = URGENT_KEYWORDS) -> bool:
    """Return ``True`` when ``text`` mentions hazard or obstacle vocabulary."""

    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


__all__ = ["postprocess_description", "is_urgent"]
