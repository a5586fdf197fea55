"""Public API for the walking guide."""

from .backends import BackendRouter, ChatGPTAnalyzer, ClaudeAnalyzer, GeminiAnalyzer
from .config import GuideConfig, load_config
from .errors import BackendError, CaptureError, InvalidTransition, RecognitionError, WalkGuideError
from .failure_policy import FailurePolicy
from .interpreter import DEFAULT_COMMAND_TABLE, CommandRule, interpret, normalize_command_text
from .orchestrator import ALLOWED_TRANSITIONS, Orchestrator
from .pipeline import NarrationPipeline
from .postprocess import is_urgent, postprocess_description
from .preferences import JsonPreferenceStore
from .prompt_builder import BuiltPrompt, build_prompt
from .scheduler import CaptureScheduler
from .types import (
    AnalysisResult,
    Backend,
    CommandIntent,
    FailurePolicyState,
    IntentKind,
    InteractionState,
    NarrationMode,
    NarrationOutcome,
    SceneSnapshot,
)
from .logging_utils import append_event, ensure_log_dir, record_event

__all__ = [
    "BackendRouter",
    "GeminiAnalyzer",
    "ClaudeAnalyzer",
    "ChatGPTAnalyzer",
    "GuideConfig",
    "load_config",
    "WalkGuideError",
    "CaptureError",
    "BackendError",
    "RecognitionError",
    "InvalidTransition",
    "FailurePolicy",
    "CommandRule",
    "DEFAULT_COMMAND_TABLE",
    "interpret",
    "normalize_command_text",
    "Orchestrator",
    "ALLOWED_TRANSITIONS",
    "NarrationPipeline",
    "CaptureScheduler",
    "is_urgent",
    "postprocess_description",
    "JsonPreferenceStore",
    "BuiltPrompt",
    "build_prompt",
    "AnalysisResult",
    "Backend",
    "CommandIntent",
    "FailurePolicyState",
    "IntentKind",
    "InteractionState",
    "NarrationMode",
    "NarrationOutcome",
    "SceneSnapshot",
    "append_event",
    "ensure_log_dir",
    "record_event",
]
