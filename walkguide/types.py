"""Data contract definitions for the walking guide.

The orchestrator, pipeline and interpreter exchange only these types; device
adapters and vision backends never see them except for :class:`Backend`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .constants import BACKEND_DISPLAY_NAMES


class InteractionState(Enum):
    IDLE = "idle"
    AWAITING_COMMAND = "awaiting_command"
    LISTENING = "listening"
    EXECUTING = "executing"
    MANUAL_ANALYSIS = "manual_analysis"


class Backend(Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    CHATGPT = "chatgpt"

    @property
    def display_name(self) -> str:
        return BACKEND_DISPLAY_NAMES[self.value]

    @classmethod
    def parse(cls, value: str | None, default: "Backend | None" = None) -> "Backend | None":
        """Return the backend named by ``value`` (case-insensitive) or ``default``."""

        if not value:
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            return default


class NarrationMode(Enum):
    AUTO = "auto"
    MANUAL = "manual"
    DETAILED = "detailed"


class IntentKind(Enum):
    HELP = "help"
    STOP = "stop"
    SWITCH_BACKEND = "switch_backend"
    CURRENT_BACKEND = "current_backend"
    DESCRIBE_IN_DETAIL = "describe_in_detail"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SceneSnapshot:
    """Most recent successfully captured frame."""

    image: bytes
    captured_at: float
    source: str = "camera"


@dataclass(frozen=True)
class AnalysisResult:
    text: str
    urgent: bool
    backend: Backend
    mode: NarrationMode
    latency_ms: int | None = None


@dataclass(frozen=True)
class CommandIntent:
    """Discrete action derived from a recognized voice command.

    ``backend`` is set only for :attr:`IntentKind.SWITCH_BACKEND`. ``text`` is
    the normalized transcript and ``matched`` the keyword that selected the
    rule; both are kept for logging.
    """

    kind: IntentKind
    backend: Backend | None = None
    text: str = ""
    matched: str | None = None


@dataclass
class FailurePolicyState:
    consecutive_failures: int = 0
    suppressed: bool = False


@dataclass(frozen=True)
class NarrationOutcome:
    """What a single pipeline run did."""

    mode: NarrationMode
    captured: bool
    result: AnalysisResult | None = None
    spoken: bool = False
    preempted: bool = False
    error: str | None = None
    debug: dict[str, object] = field(default_factory=dict)


__all__ = [
    "InteractionState",
    "Backend",
    "NarrationMode",
    "IntentKind",
    "SceneSnapshot",
    "AnalysisResult",
    "CommandIntent",
    "FailurePolicyState",
    "NarrationOutcome",
]
