import asyncio
import sys
from dataclasses import dataclass, replace
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from walkguide import Orchestrator, load_config  # noqa: E402
from walkguide.errors import RecognitionError  # noqa: E402


class FakeCapture:
    """Returns scripted frames; exceptions in the script are raised."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = 0

    async def capture(self):
        self.calls += 1
        await asyncio.sleep(0)
        item = self.outcomes.pop(0) if self.outcomes else b"\xff\xd8jpeg"
        if isinstance(item, Exception):
            raise item
        return item


class FakeAnalyzer:
    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []
        self.gate = None

    async def analyze(self, image, prompt, backend):
        self.calls.append((prompt, backend))
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        item = self.replies.pop(0) if self.replies else "前方OK"
        if isinstance(item, Exception):
            raise item
        return item


class FakeRecognizer:
    def __init__(self, start_ok=True):
        self.start_ok = start_ok
        self._listening = False
        self.on_result = None
        self.on_error = None
        self.listen_calls = []
        self.stop_calls = 0
        self.stop_error = None
        self.speech = None
        self.before_start = None
        self.started_while_speaking = []

    @property
    def is_listening(self):
        return self._listening

    async def listen(self, locale, on_result, on_error=None):
        self.listen_calls.append(locale)
        if self.speech is not None and self.speech.speaking:
            self.started_while_speaking.append(list(self.speech.spoken))
        if self.before_start is not None:
            await self.before_start()
        await asyncio.sleep(0)
        if isinstance(self.start_ok, Exception):
            raise self.start_ok
        if not self.start_ok:
            return False
        self.on_result = on_result
        self.on_error = on_error
        self._listening = True
        return True

    async def stop(self):
        self.stop_calls += 1
        if self.stop_error is not None:
            raise self.stop_error
        self._listening = False

    def emit(self, text, is_final=True):
        self.on_result(text, is_final)

    def fail(self, message="network"):
        self.on_error(RecognitionError(message))


class FakeSpeech:
    """Records spoken text and any speech that overlaps active recognition.

    With ``delay`` set, each utterance plays for that long unless :meth:`stop`
    interrupts it.
    """

    def __init__(self, recognizer, delay=0.0):
        self.recognizer = recognizer
        self.delay = delay
        self.spoken = []
        self.overlaps = []
        self.stop_calls = 0
        self.speaking = 0
        self._epoch = 0

    async def speak(self, text):
        if self.recognizer.is_listening:
            self.overlaps.append(text)
        self.spoken.append(text)
        epoch = self._epoch
        self.speaking += 1
        try:
            await asyncio.sleep(0)
            elapsed = 0.0
            while elapsed < self.delay and epoch == self._epoch:
                await asyncio.sleep(0.005)
                elapsed += 0.005
        finally:
            self.speaking -= 1

    async def stop(self):
        self.stop_calls += 1
        self._epoch += 1


class FakePreferences:
    def __init__(self, backend=None):
        self.backend = backend
        self.writes = []

    def get_selected_backend(self):
        return self.backend

    def set_selected_backend(self, backend):
        self.backend = backend
        self.writes.append(backend)


@dataclass
class Rig:
    orchestrator: Orchestrator
    capture: FakeCapture
    analyzer: FakeAnalyzer
    recognizer: FakeRecognizer
    speech: FakeSpeech
    preferences: FakePreferences


def make_cfg(**overrides):
    # Long interval: tests fire ticks by hand unless they opt into real timing.
    base = replace(load_config({}), capture_interval_s=60.0, listen_timeout_s=0.0)
    return replace(base, **overrides)


@pytest.fixture
def make_rig():
    def _make(captures=None, replies=None, start_ok=True, stored_backend=None, **cfg_overrides):
        capture = FakeCapture(captures)
        analyzer = FakeAnalyzer(replies)
        recognizer = FakeRecognizer(start_ok)
        speech = FakeSpeech(recognizer)
        recognizer.speech = speech
        preferences = FakePreferences(stored_backend)
        orchestrator = Orchestrator(
            capture=capture,
            analyzer=analyzer,
            speech=speech,
            recognizer=recognizer,
            preferences=preferences,
            cfg=make_cfg(**cfg_overrides),
        )
        return Rig(orchestrator, capture, analyzer, recognizer, speech, preferences)

    return _make
