"""Narration pipeline: capture, analyze, classify, route to speech."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from .config import GuideConfig
from .constants import DETAIL_ERROR_JA, URGENT_PREFIX_JA
from .errors import BackendError, CaptureError
from .interfaces import CaptureSource, SpeechOutput, SpeechRecognizer, VisionAnalyzer
from .logging_utils import record_event
from .postprocess import is_urgent, postprocess_description
from .prompt_builder import build_prompt
from .types import (
    AnalysisResult,
    Backend,
    InteractionState,
    NarrationMode,
    NarrationOutcome,
    SceneSnapshot,
)

LOGGER = logging.getLogger("walkguide.pipeline")


class NarrationPipeline:
    """Run one capture/analyze/speak cycle at a time.

    The pipeline never changes the interaction state. It reads it through
    ``get_state`` to decide whether a non-urgent description may be spoken and
    reports every capture attempt through ``on_capture_outcome``.

    Urgent warnings are tracked so the orchestrator can keep the microphone
    closed while one is playing: :attr:`urgent_speaking` is true during the
    warning and :attr:`urgent_warnings` counts every warning started.
    """

    def __init__(
        self,
        *,
        cfg: GuideConfig,
        capture: CaptureSource,
        analyzer: VisionAnalyzer,
        speech: SpeechOutput,
        recognizer: SpeechRecognizer,
        get_state: Callable[[], InteractionState],
        get_backend: Callable[[], Backend],
        on_capture_outcome: Callable[[bool], None],
    ) -> None:
        self.cfg = cfg
        self._capture = capture
        self._analyzer = analyzer
        self._speech = speech
        self._recognizer = recognizer
        self._get_state = get_state
        self._get_backend = get_backend
        self._on_capture_outcome = on_capture_outcome
        self._snapshot: SceneSnapshot | None = None
        self._urgent_idle = asyncio.Event()
        self._urgent_idle.set()
        self.urgent_warnings = 0

    @property
    def snapshot(self) -> SceneSnapshot | None:
        return self._snapshot

    @property
    def urgent_speaking(self) -> bool:
        return not self._urgent_idle.is_set()

    async def wait_urgent_speech(self) -> None:
        """Return once no urgent warning is being spoken."""

        await self._urgent_idle.wait()

    async def run(
        self, mode: NarrationMode, capture: CaptureSource | None = None
    ) -> NarrationOutcome:
        if mode is NarrationMode.DETAILED:
            snapshot = self._snapshot
            if snapshot is None:
                LOGGER.info("Detailed analysis requested without a snapshot")
                return NarrationOutcome(mode=mode, captured=False, error="no_snapshot")
        else:
            snapshot = await self._acquire(capture or self._capture, mode)
            if snapshot is None:
                return NarrationOutcome(mode=mode, captured=False, error="capture_failed")

        backend = self._get_backend()
        try:
            result = await self._analyze(snapshot, mode, backend)
        except BackendError as exc:
            LOGGER.warning("Analysis failed on %s (%s mode): %s", backend.value, mode.value, exc)
            record_event(
                self.cfg,
                kind="analysis_error",
                state=self._get_state().value,
                backend=backend.value,
                mode=mode.value,
                error=str(exc),
            )
            if mode is NarrationMode.DETAILED and self._get_state() is InteractionState.MANUAL_ANALYSIS:
                await self._say(DETAIL_ERROR_JA)
            return NarrationOutcome(mode=mode, captured=True, error=str(exc))

        return await self._route(result)

    async def _acquire(self, source: CaptureSource, mode: NarrationMode) -> SceneSnapshot | None:
        try:
            image = await source.capture()
            if not image:
                raise CaptureError("capture returned no data")
        except CaptureError as exc:
            LOGGER.warning("Capture failed (%s mode): %s", mode.value, exc)
            self._on_capture_outcome(False)
            return None
        except Exception:  # camera drivers raise their own error types
            LOGGER.exception("Capture source failed unexpectedly (%s mode)", mode.value)
            self._on_capture_outcome(False)
            return None

        snapshot = SceneSnapshot(
            image=image,
            captured_at=time.time(),
            source="camera" if mode is NarrationMode.AUTO else "file",
        )
        self._snapshot = snapshot
        self._on_capture_outcome(True)
        return snapshot

    async def _analyze(
        self, snapshot: SceneSnapshot, mode: NarrationMode, backend: Backend
    ) -> AnalysisResult:
        prompt = build_prompt(mode, backend)
        start = time.perf_counter()
        raw = await self._analyzer.analyze(snapshot.image, prompt.text, backend)
        latency_ms = int((time.perf_counter() - start) * 1000)
        text = postprocess_description(raw, self.cfg.max_speech_chars)
        return AnalysisResult(
            text=text,
            urgent=is_urgent(text),
            backend=backend,
            mode=mode,
            latency_ms=latency_ms,
        )

    async def _route(self, result: AnalysisResult) -> NarrationOutcome:
        state = self._get_state()
        spoken = False
        preempted = False

        if result.urgent:
            self.urgent_warnings += 1
            self._urgent_idle.clear()
            try:
                if state is InteractionState.LISTENING or self._recognizer.is_listening:
                    LOGGER.warning("Urgent result while listening; stopping recognizer")
                    await self._stop_recognizer()
                    preempted = True
                await self._stop_speech()
                spoken = await self._say(f"{URGENT_PREFIX_JA}{result.text}")
            finally:
                self._urgent_idle.set()
            LOGGER.warning("Urgent warning (%s): %s", result.backend.value, result.text)
        elif self._may_speak(result.mode, state):
            spoken = await self._say(result.text)
            LOGGER.info("Description (%s, %s): %s", result.backend.value, result.mode.value, result.text)
        else:
            LOGGER.info(
                "Discarding %s description in state %s: %s",
                result.mode.value,
                state.value,
                result.text,
            )

        record_event(
            self.cfg,
            kind="narration",
            state=state.value,
            backend=result.backend.value,
            mode=result.mode.value,
            urgent=result.urgent,
            spoken=spoken,
            latency_ms=result.latency_ms,
            text_preview=result.text,
        )
        return NarrationOutcome(
            mode=result.mode,
            captured=True,
            result=result,
            spoken=spoken,
            preempted=preempted,
        )

    @staticmethod
    def _may_speak(mode: NarrationMode, state: InteractionState) -> bool:
        if mode is NarrationMode.AUTO:
            return state is InteractionState.IDLE
        return state is InteractionState.MANUAL_ANALYSIS

    async def _say(self, text: str) -> bool:
        try:
            await self._speech.speak(text)
            return True
        except Exception as exc:  # speech engines raise a variety of runtime errors
            LOGGER.error("Speech output failed: %s", exc)
            return False

    async def _stop_speech(self) -> None:
        try:
            await self._speech.stop()
        except Exception as exc:
            LOGGER.error("Could not stop speech output: %s", exc)

    async def _stop_recognizer(self) -> None:
        try:
            await self._recognizer.stop()
        except Exception as exc:
            LOGGER.error("Could not stop speech recognizer: %s", exc)


__all__ = ["NarrationPipeline"]
