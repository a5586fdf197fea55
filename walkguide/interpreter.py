"""Keyword-based command interpreter.

Transcribed speech is normalized and matched against an ordered table of
rules. The first rule with a matching keyword wins, so the table order is the
priority order:

    HELP > STOP > SWITCH_BACKEND(gemini, claude, chatgpt) > CURRENT_BACKEND
         > DESCRIBE_IN_DETAIL > UNKNOWN
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Sequence

from .types import Backend, CommandIntent, IntentKind


@dataclass(frozen=True)
class CommandRule:
    kind: IntentKind
    keywords: tuple[str, ...]
    backend: Backend | None = None

    def match(self, normalized: str) -> str | None:
        for keyword in self.keywords:
            if keyword in normalized:
                return keyword
        return None


DEFAULT_COMMAND_TABLE: tuple[CommandRule, ...] = (
    CommandRule(IntentKind.HELP, ("ヘルプ", "略語", "使い方", "help")),
    CommandRule(IntentKind.STOP, ("停止", "とまれ", "止まれ", "ストップ", "stop")),
    CommandRule(IntentKind.SWITCH_BACKEND, ("ジェミニ", "gemini"), Backend.GEMINI),
    CommandRule(IntentKind.SWITCH_BACKEND, ("クロード", "claude"), Backend.CLAUDE),
    CommandRule(
        IntentKind.SWITCH_BACKEND,
        ("chatgpt", "gpt", "ジーピーティー", "チャット"),
        Backend.CHATGPT,
    ),
    CommandRule(
        IntentKind.CURRENT_BACKEND,
        ("どのai", "現在のai", "今のai", "エーアイ", "which ai", "current ai"),
    ),
    CommandRule(
        IntentKind.DESCRIBE_IN_DETAIL,
        ("景色", "説明", "詳しく", "前方", "detail", "describe"),
    ),
)


def normalize_command_text(text: str | None) -> str:
    """Normalize a transcript for keyword matching.

    - Applies NFKC so full-width latin letters match their ASCII keywords.
    - Lowercases and strips surrounding whitespace.
    - Collapses internal runs of whitespace to a single space.
    """

    if not text:
        return ""
    folded = unicodedata.normalize("NFKC", text).lower()
    return " ".join(folded.split())


def interpret(
    text: str | None, table: Sequence[CommandRule] = DEFAULT_COMMAND_TABLE
) -> CommandIntent:
    """Map a transcript to exactly one :class:`CommandIntent`."""

    normalized = normalize_command_text(text)
    if normalized:
        for rule in table:
            matched = rule.match(normalized)
            if matched is not None:
                return CommandIntent(
                    kind=rule.kind, backend=rule.backend, text=normalized, matched=matched
                )
    return CommandIntent(kind=IntentKind.UNKNOWN, text=normalized)


def intent_to_debug(intent: CommandIntent) -> dict[str, object]:
    """Return a compact debug representation of a :class:`CommandIntent`."""

    return {
        "kind": intent.kind.value,
        "backend": intent.backend.value if intent.backend else None,
        "text": intent.text,
        "matched": intent.matched,
    }


__all__ = [
    "CommandRule",
    "DEFAULT_COMMAND_TABLE",
    "normalize_command_text",
    "interpret",
    "intent_to_debug",
]
