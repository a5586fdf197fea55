"""Interaction orchestrator.

A single-writer state machine that serializes automatic narration, voice
command listening and command execution over one audio channel and one
camera. Every public entry point checks the current state first; an event
that arrives in the wrong state is dropped (logged and recorded in
:attr:`Orchestrator.dropped_events`). All state changes go through
:meth:`Orchestrator._transition`, which also keeps the capture timer running
exactly while ``state is IDLE`` and narration is not suppressed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable

from .config import GuideConfig, load_config
from .constants import (
    CURRENT_BACKEND_JA,
    DETAIL_START_JA,
    HELP_TEXT_JA,
    LISTEN_PROMPT_JA,
    NO_SNAPSHOT_JA,
    NOT_HEARD_JA,
    RECOGNITION_FAILED_JA,
    SPOKEN_BACKEND_NAMES_JA,
    STOP_CONFIRM_JA,
    SWITCH_CONFIRM_JA,
    UNKNOWN_COMMAND_JA,
)
from .errors import InvalidTransition, RecognitionError
from .failure_policy import FailurePolicy
from .interfaces import (
    CaptureSource,
    PreferenceStore,
    SpeechOutput,
    SpeechRecognizer,
    VisionAnalyzer,
)
from .interpreter import intent_to_debug, interpret, normalize_command_text
from .logging_utils import record_event
from .pipeline import NarrationPipeline
from .scheduler import CaptureScheduler
from .types import (
    Backend,
    CommandIntent,
    FailurePolicyState,
    IntentKind,
    InteractionState,
    NarrationMode,
    NarrationOutcome,
    SceneSnapshot,
)

LOGGER = logging.getLogger("walkguide.orchestrator")

S = InteractionState

ALLOWED_TRANSITIONS: dict[InteractionState, frozenset[InteractionState]] = {
    S.IDLE: frozenset({S.AWAITING_COMMAND, S.MANUAL_ANALYSIS}),
    S.AWAITING_COMMAND: frozenset({S.LISTENING, S.IDLE}),
    S.LISTENING: frozenset({S.EXECUTING, S.AWAITING_COMMAND, S.IDLE}),
    S.EXECUTING: frozenset({S.IDLE, S.MANUAL_ANALYSIS}),
    S.MANUAL_ANALYSIS: frozenset({S.IDLE}),
}


class Orchestrator:
    """Top-level interaction state machine."""

    def __init__(
        self,
        *,
        capture: CaptureSource,
        analyzer: VisionAnalyzer,
        speech: SpeechOutput,
        recognizer: SpeechRecognizer,
        preferences: PreferenceStore,
        cfg: GuideConfig | None = None,
    ) -> None:
        self.cfg = cfg or load_config()
        self.speech = speech
        self.recognizer = recognizer
        self.preferences = preferences
        self.policy = FailurePolicy(self.cfg.failure_threshold)
        self.scheduler = CaptureScheduler(self.cfg.capture_interval_s, self._on_tick)
        self.pipeline = NarrationPipeline(
            cfg=self.cfg,
            capture=capture,
            analyzer=analyzer,
            speech=speech,
            recognizer=recognizer,
            get_state=lambda: self._state,
            get_backend=lambda: self._backend,
            on_capture_outcome=self.on_capture_outcome,
        )

        self._state = S.IDLE
        self._backend: Backend = self.cfg.default_backend
        self._narration_enabled = True
        self._started = False
        self._auto_busy = False
        self._listen_session = 0
        self._relisten_attempts = 0
        self._listen_timeout: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[object]] = set()

        self.transitions: list[tuple[InteractionState, InteractionState, str]] = []
        self.dropped_events: list[str] = []

    # Read-only views ----------------------------------------------------
    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def snapshot(self) -> SceneSnapshot | None:
        return self.pipeline.snapshot

    @property
    def failure_state(self) -> FailurePolicyState:
        return self.policy.snapshot()

    @property
    def narration_enabled(self) -> bool:
        return self._narration_enabled

    @property
    def suppressed(self) -> bool:
        """Automatic narration is held by capture failures or a STOP command."""

        return self.policy.suppressed or not self._narration_enabled

    @property
    def scheduler_should_run(self) -> bool:
        return self._state is S.IDLE and not self.suppressed

    # Lifecycle ----------------------------------------------------------
    async def start(self, *, narrate: bool = True) -> None:
        """Load the stored backend and, unless ``narrate`` is false, start the timer."""

        self._loop = asyncio.get_running_loop()
        stored = self.preferences.get_selected_backend()
        if stored is not None:
            self._backend = stored
        self._started = narrate
        LOGGER.info("Walking guide started (backend=%s)", self._backend.value)
        self._sync_scheduler()

    async def shutdown(self) -> None:
        self._started = False
        self.scheduler.stop()
        self._cancel_listen_timeout()
        self._listen_session += 1
        if self.recognizer.is_listening:
            await self._stop_recognizer()
        await self._stop_speech()
        await self.drain()
        LOGGER.info("Walking guide stopped")

    async def drain(self) -> None:
        """Wait until every spawned narration/command task has finished."""

        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    # Automatic narration ------------------------------------------------
    def _on_tick(self) -> None:
        self._spawn(self.on_timer_fired(), "timer_fired")

    async def on_timer_fired(self) -> NarrationOutcome | None:
        if not self._guard((S.IDLE,), "timer_fired"):
            return None
        if self.suppressed:
            self._drop("timer_fired_while_suppressed")
            return None
        if self._auto_busy:
            LOGGER.debug("Previous narration still running; skipping tick")
            return None
        self._auto_busy = True
        try:
            return await self.pipeline.run(NarrationMode.AUTO)
        finally:
            self._auto_busy = False

    def on_capture_outcome(self, success: bool) -> None:
        if success:
            self.policy.record_success()
            return
        if self.policy.record_failure():
            record_event(
                self.cfg,
                kind="suppressed",
                state=self._state.value,
                extra={"consecutive_failures": self.policy.consecutive_failures},
            )
            self._sync_scheduler()

    async def resume_narration(self) -> bool:
        """Explicit user resume: clear failure suppression and the STOP hold."""

        self.policy.reset()
        self._narration_enabled = True
        LOGGER.info("Automatic narration resumed by user")
        self._sync_scheduler()
        return self.scheduler.is_running

    async def analyze_picked_image(self, source: CaptureSource) -> NarrationOutcome | None:
        if not self._guard((S.IDLE,), "analyze_picked_image"):
            return None
        self._transition(S.MANUAL_ANALYSIS, "analyze_picked_image")
        try:
            return await self.pipeline.run(NarrationMode.MANUAL, capture=source)
        finally:
            if self._state is S.MANUAL_ANALYSIS:
                self._transition(S.IDLE, "manual_analysis_done")

    # Voice commands -----------------------------------------------------
    async def request_listen(self) -> bool:
        if not self._guard((S.IDLE,), "request_listen"):
            return False
        self._transition(S.AWAITING_COMMAND, "request_listen")
        self._relisten_attempts = 0
        await self._stop_speech()
        return await self._begin_listening()

    async def cancel_listen(self) -> bool:
        if not self._guard((S.AWAITING_COMMAND, S.LISTENING), "cancel_listen"):
            return False
        self._end_listen_session()
        self._transition(S.IDLE, "cancel_listen")
        await self._stop_recognizer()
        return True

    async def on_recognition_result(self, text: str, is_final: bool) -> CommandIntent | None:
        return await self._handle_result(self._listen_session, text, is_final)

    async def on_recognition_error(self, error: RecognitionError) -> None:
        await self._handle_error(self._listen_session, error)

    async def on_command_intent_resolved(self, intent: CommandIntent) -> None:
        if not self._guard((S.EXECUTING,), "intent_resolved"):
            return
        LOGGER.info("Executing command %s", intent_to_debug(intent))
        record_event(
            self.cfg,
            kind="command",
            state=self._state.value,
            backend=self._backend.value,
            text_preview=intent.text,
            extra={"intent": intent.kind.value},
        )

        if intent.kind is IntentKind.STOP:
            await self._say(STOP_CONFIRM_JA)
            self._narration_enabled = False
            self._transition(S.IDLE, "stop")
            return

        if intent.kind is IntentKind.HELP:
            await self._say(HELP_TEXT_JA)
        elif intent.kind is IntentKind.SWITCH_BACKEND and intent.backend is not None:
            self.select_backend(intent.backend)
            await self._say(
                SWITCH_CONFIRM_JA.format(name=SPOKEN_BACKEND_NAMES_JA[intent.backend.value])
            )
        elif intent.kind is IntentKind.CURRENT_BACKEND:
            await self._say(CURRENT_BACKEND_JA.format(name=self._backend.display_name))
        elif intent.kind is IntentKind.DESCRIBE_IN_DETAIL:
            await self._describe_in_detail()
        else:
            await self._say(UNKNOWN_COMMAND_JA)

        if self._state in (S.EXECUTING, S.MANUAL_ANALYSIS):
            self._transition(S.IDLE, f"{intent.kind.value}_done")

    def select_backend(self, backend: Backend) -> None:
        if backend is not self._backend:
            LOGGER.info("Backend changed: %s -> %s", self._backend.value, backend.value)
        self._backend = backend
        self.preferences.set_selected_backend(backend)

    async def _describe_in_detail(self) -> None:
        if self.pipeline.snapshot is None:
            await self._say(NO_SNAPSHOT_JA)
            return
        await self._say(DETAIL_START_JA)
        self._transition(S.MANUAL_ANALYSIS, "describe_in_detail")
        await self.pipeline.run(NarrationMode.DETAILED)

    async def _begin_listening(self) -> bool:
        await self.pipeline.wait_urgent_speech()
        await self._say(LISTEN_PROMPT_JA)
        # An urgent warning may have cut the prompt short; never open the
        # microphone while it is still playing.
        await self.pipeline.wait_urgent_speech()
        if self._state is not S.AWAITING_COMMAND:
            # Cancelled while the prompt was being spoken.
            return False
        self._loop = self._loop or asyncio.get_running_loop()
        self._transition(S.LISTENING, "listen")
        self._listen_session += 1
        session = self._listen_session
        warnings_before = self.pipeline.urgent_warnings

        try:
            started = await self.recognizer.listen(
                self.cfg.locale,
                self._result_callback(session),
                self._error_callback(session),
            )
        except RecognitionError as exc:
            LOGGER.error("Speech recognizer failed to start: %s", exc)
            started = False

        if session != self._listen_session or self._state is not S.LISTENING:
            # The session ended while the recognizer was starting.
            if started and self.recognizer.is_listening:
                await self._stop_recognizer()
            return False
        if not started:
            self._end_listen_session()
            await self._say(RECOGNITION_FAILED_JA)
            self._transition(S.IDLE, "recognition_failed")
            return False
        if self.pipeline.urgent_warnings != warnings_before:
            LOGGER.info("Urgent warning while the recognizer was starting; prompting again")
            self._end_listen_session()
            self._transition(S.AWAITING_COMMAND, "urgent_warning")
            await self._stop_recognizer()
            return await self._begin_listening()
        self._arm_listen_timeout(session)
        return True

    async def _handle_result(self, session: int, text: str, is_final: bool) -> CommandIntent | None:
        if session != self._listen_session:
            self._drop("stale_recognition_result")
            return None
        if not self._guard((S.LISTENING,), "recognition_result"):
            return None
        if not is_final:
            LOGGER.debug("Partial transcript: %s", text)
            return None

        normalized = normalize_command_text(text)
        self._end_listen_session()
        if len(normalized) < self.cfg.min_command_chars:
            LOGGER.info("Transcript too short (%r); listening again", normalized)
            self._transition(S.AWAITING_COMMAND, "empty_transcript")
            await self._stop_recognizer()
            await self._relisten()
            return None

        self._transition(S.EXECUTING, "final_transcript")
        await self._stop_recognizer()
        intent = interpret(normalized)
        await self.on_command_intent_resolved(intent)
        return intent

    async def _handle_error(self, session: int, error: RecognitionError) -> None:
        if session != self._listen_session:
            self._drop("stale_recognition_error")
            return
        if not self._guard((S.LISTENING,), "recognition_error"):
            return
        LOGGER.warning("Recognizer reported an error: %s", error)
        self._end_listen_session()
        self._transition(S.AWAITING_COMMAND, "recognition_error")
        await self._stop_recognizer()
        await self._relisten()

    async def _relisten(self) -> None:
        self._relisten_attempts += 1
        if self._relisten_attempts > self.cfg.max_relisten_attempts:
            await self._say(NOT_HEARD_JA)
            if self._state is S.AWAITING_COMMAND:
                self._transition(S.IDLE, "relisten_limit")
            return
        await self._begin_listening()

    def _result_callback(self, session: int):
        def _on_result(text: str, is_final: bool) -> None:
            self._dispatch(self._handle_result(session, text, is_final), "recognition_result")

        return _on_result

    def _error_callback(self, session: int):
        def _on_error(error: RecognitionError) -> None:
            self._dispatch(self._handle_error(session, error), "recognition_error")

        return _on_error

    def _arm_listen_timeout(self, session: int) -> None:
        if self.cfg.listen_timeout_s <= 0:
            return
        self._cancel_listen_timeout()
        loop = self._loop or asyncio.get_running_loop()
        self._listen_timeout = loop.call_later(
            self.cfg.listen_timeout_s,
            lambda: self._spawn(self._on_listen_timeout(session), "listen_timeout"),
        )

    async def _on_listen_timeout(self, session: int) -> None:
        if session != self._listen_session or self._state is not S.LISTENING:
            return
        LOGGER.info("No command within %.1fs; returning to idle", self.cfg.listen_timeout_s)
        self._end_listen_session()
        self._transition(S.IDLE, "listen_timeout")
        await self._stop_recognizer()

    def _end_listen_session(self) -> None:
        """Invalidate callbacks and the timeout of the current listen session."""

        self._cancel_listen_timeout()
        self._listen_session += 1

    def _cancel_listen_timeout(self) -> None:
        if self._listen_timeout is not None:
            self._listen_timeout.cancel()
            self._listen_timeout = None

    # Internal helpers ---------------------------------------------------
    def _transition(self, target: InteractionState, event: str) -> None:
        current = self._state
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransition(current, target, event)
        self._state = target
        self.transitions.append((current, target, event))
        LOGGER.info("State %s -> %s (%s)", current.value, target.value, event)
        record_event(self.cfg, kind="transition", state=target.value, extra={"event": event, "from": current.value})
        self._sync_scheduler()

    def _guard(self, allowed: Iterable[InteractionState], event: str) -> bool:
        if self._state in allowed:
            return True
        self._drop(f"{event}@{self._state.value}")
        return False

    def _drop(self, label: str) -> None:
        LOGGER.debug("Dropped event %s", label)
        self.dropped_events.append(label)

    def _sync_scheduler(self) -> None:
        if self._started and self.scheduler_should_run:
            self.scheduler.start()
        else:
            self.scheduler.stop()

    def _spawn(self, coro: Awaitable[object], name: str) -> asyncio.Task[object]:
        task = asyncio.ensure_future(self._run_logged(coro, name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _dispatch(self, coro: Awaitable[object], name: str) -> None:
        """Schedule ``coro`` on the orchestrator loop from any thread."""

        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon_threadsafe(self._spawn, coro, name)

    @staticmethod
    async def _run_logged(coro: Awaitable[object], name: str) -> object:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Background task %s failed", name)
            return None

    async def _say(self, text: str) -> None:
        try:
            await self.speech.speak(text)
        except Exception as exc:  # speech engines raise a variety of runtime errors
            LOGGER.error("Speech output failed: %s", exc)

    async def _stop_speech(self) -> None:
        try:
            await self.speech.stop()
        except Exception as exc:
            LOGGER.error("Could not stop speech output: %s", exc)

    async def _stop_recognizer(self) -> None:
        try:
            await self.recognizer.stop()
        except Exception as exc:
            LOGGER.error("Could not stop speech recognizer: %s", exc)


__all__ = ["Orchestrator", "ALLOWED_TRANSITIONS"]
