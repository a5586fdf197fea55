"""Configuration loader for the walking guide."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Sequence

from .constants import (
    API_KEY_PLACEHOLDERS,
    CLAUDE_API_KEY_ENV_CANDIDATES,
    DEFAULT_BACKEND,
    DEFAULT_CAPTURE_INTERVAL_S,
    DEFAULT_CHATGPT_MODEL,
    DEFAULT_CLAUDE_MODEL,
    DEFAULT_DEBUG,
    DEFAULT_EVENT_LOG_MAX_BYTES,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_LISTEN_TIMEOUT_S,
    DEFAULT_LOCALE,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MAX_RELISTEN_ATTEMPTS,
    DEFAULT_MAX_SPEECH_CHARS,
    DEFAULT_MIN_COMMAND_CHARS,
    DEFAULT_PREFS_PATH,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT_S,
    GEMINI_API_KEY_ENV_CANDIDATES,
    OPENAI_API_KEY_ENV_CANDIDATES,
)
from .types import Backend


@dataclass(frozen=True)
class GuideConfig:
    capture_interval_s: float
    failure_threshold: int
    locale: str
    min_command_chars: int
    listen_timeout_s: float
    max_relisten_attempts: int
    max_speech_chars: int
    default_backend: Backend
    gemini_model: str
    claude_model: str
    chatgpt_model: str
    gemini_api_key: str | None
    claude_api_key: str | None
    openai_api_key: str | None
    timeout_s: float
    retries: int
    max_output_tokens: int
    prefs_path: str
    event_log_path: str | None
    event_log_max_bytes: int
    debug: bool


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _first_key(environment: Mapping[str, str], candidates: Sequence[str]) -> str | None:
    for key_name in candidates:
        candidate = environment.get(key_name)
        if candidate and candidate not in API_KEY_PLACEHOLDERS:
            return candidate
    return None


def load_config(env: Mapping[str, str] | None = None) -> GuideConfig:
    """Load configuration from environment variables.

    Args:
        env: Optional mapping of environment variables for easier testing.

    Returns:
        A fully populated :class:`GuideConfig` with safe defaults.
    """

    environment = env if env is not None else os.environ

    capture_interval_s = _parse_float(
        environment.get("WALKGUIDE_CAPTURE_INTERVAL_S"), DEFAULT_CAPTURE_INTERVAL_S
    )
    if capture_interval_s <= 0:
        capture_interval_s = DEFAULT_CAPTURE_INTERVAL_S
    failure_threshold = max(
        1, _parse_int(environment.get("WALKGUIDE_FAILURE_THRESHOLD"), DEFAULT_FAILURE_THRESHOLD)
    )
    default_backend = Backend.parse(
        environment.get("WALKGUIDE_BACKEND"), Backend(DEFAULT_BACKEND)
    )

    return GuideConfig(
        capture_interval_s=capture_interval_s,
        failure_threshold=failure_threshold,
        locale=environment.get("WALKGUIDE_LOCALE", DEFAULT_LOCALE),
        min_command_chars=_parse_int(
            environment.get("WALKGUIDE_MIN_COMMAND_CHARS"), DEFAULT_MIN_COMMAND_CHARS
        ),
        listen_timeout_s=_parse_float(
            environment.get("WALKGUIDE_LISTEN_TIMEOUT_S"), DEFAULT_LISTEN_TIMEOUT_S
        ),
        max_relisten_attempts=_parse_int(
            environment.get("WALKGUIDE_MAX_RELISTEN"), DEFAULT_MAX_RELISTEN_ATTEMPTS
        ),
        max_speech_chars=_parse_int(
            environment.get("WALKGUIDE_MAX_SPEECH_CHARS"), DEFAULT_MAX_SPEECH_CHARS
        ),
        default_backend=default_backend,
        gemini_model=environment.get("WALKGUIDE_GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        claude_model=environment.get("WALKGUIDE_CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
        chatgpt_model=environment.get("WALKGUIDE_CHATGPT_MODEL", DEFAULT_CHATGPT_MODEL),
        gemini_api_key=_first_key(environment, GEMINI_API_KEY_ENV_CANDIDATES),
        claude_api_key=_first_key(environment, CLAUDE_API_KEY_ENV_CANDIDATES),
        openai_api_key=_first_key(environment, OPENAI_API_KEY_ENV_CANDIDATES),
        timeout_s=_parse_float(environment.get("WALKGUIDE_TIMEOUT_S"), DEFAULT_TIMEOUT_S),
        retries=max(0, _parse_int(environment.get("WALKGUIDE_RETRIES"), DEFAULT_RETRY_COUNT)),
        max_output_tokens=_parse_int(
            environment.get("WALKGUIDE_MAX_OUTPUT_TOKENS"), DEFAULT_MAX_OUTPUT_TOKENS
        ),
        prefs_path=environment.get("WALKGUIDE_PREFS_PATH", DEFAULT_PREFS_PATH),
        event_log_path=environment.get("WALKGUIDE_EVENT_LOG") or None,
        event_log_max_bytes=_parse_int(
            environment.get("WALKGUIDE_EVENT_LOG_MAX_BYTES"), DEFAULT_EVENT_LOG_MAX_BYTES
        ),
        debug=_parse_bool(environment.get("WALKGUIDE_DEBUG"), DEFAULT_DEBUG),
    )
