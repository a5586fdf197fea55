import asyncio
import json

from walkguide import Backend, InteractionState, NarrationMode, NarrationPipeline
from walkguide.constants import DETAIL_ERROR_JA, DETAILED_PROMPT_JA
from walkguide.errors import BackendError

from conftest import FakeAnalyzer, FakeCapture, FakeRecognizer, FakeSpeech, make_cfg


class PipelineRig:
    def __init__(self, captures=None, replies=None, state=InteractionState.IDLE, **cfg_overrides):
        self.capture = FakeCapture(captures)
        self.analyzer = FakeAnalyzer(replies)
        self.recognizer = FakeRecognizer()
        self.speech = FakeSpeech(self.recognizer)
        self.state = state
        self.outcomes = []
        self.pipeline = NarrationPipeline(
            cfg=make_cfg(**cfg_overrides),
            capture=self.capture,
            analyzer=self.analyzer,
            speech=self.speech,
            recognizer=self.recognizer,
            get_state=lambda: self.state,
            get_backend=lambda: Backend.CLAUDE,
            on_capture_outcome=self.outcomes.append,
        )


def test_auto_run_in_idle_speaks_and_keeps_snapshot():
    rig = PipelineRig(captures=[b"frame-1"])
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    assert outcome.spoken is True
    assert outcome.result.backend is Backend.CLAUDE
    assert outcome.result.latency_ms is not None
    assert rig.outcomes == [True]
    assert rig.pipeline.snapshot.image == b"frame-1"
    assert rig.speech.spoken == ["前方OK"]


def test_empty_frame_counts_as_capture_failure():
    rig = PipelineRig(captures=[b""])
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    assert outcome.error == "capture_failed"
    assert outcome.captured is False
    assert rig.outcomes == [False]
    assert rig.analyzer.calls == []
    assert rig.pipeline.snapshot is None


def test_detailed_without_snapshot_does_not_capture():
    rig = PipelineRig(state=InteractionState.MANUAL_ANALYSIS)
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.DETAILED))
    assert outcome.error == "no_snapshot"
    assert rig.capture.calls == 0
    assert rig.outcomes == []


def test_detailed_uses_last_snapshot_and_detailed_prompt():
    rig = PipelineRig(replies=["前方OK", "詳しい説明です"])

    async def scenario():
        await rig.pipeline.run(NarrationMode.AUTO)
        rig.state = InteractionState.MANUAL_ANALYSIS
        return await rig.pipeline.run(NarrationMode.DETAILED)

    outcome = asyncio.run(scenario())
    assert rig.capture.calls == 1
    assert rig.analyzer.calls[-1] == (DETAILED_PROMPT_JA, Backend.CLAUDE)
    assert outcome.spoken is True
    assert rig.speech.spoken[-1] == "詳しい説明です"


def test_manual_result_outside_manual_state_is_discarded():
    rig = PipelineRig(state=InteractionState.IDLE)
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.MANUAL))
    assert outcome.spoken is False
    assert rig.speech.spoken == []


def test_urgent_in_idle_interrupts_speech_without_preempting():
    rig = PipelineRig(replies=["**危険** 前方に車"])
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    assert outcome.result.urgent is True
    assert outcome.preempted is False
    assert rig.speech.stop_calls == 1
    assert rig.speech.spoken == ["緊急: 危険 前方に車"]


def test_detailed_backend_error_apologizes_only_in_manual_state():
    rig = PipelineRig(replies=["前方OK", BackendError("quota"), BackendError("quota")])

    async def scenario():
        await rig.pipeline.run(NarrationMode.AUTO)
        rig.state = InteractionState.MANUAL_ANALYSIS
        first = await rig.pipeline.run(NarrationMode.DETAILED)
        rig.state = InteractionState.IDLE
        second = await rig.pipeline.run(NarrationMode.DETAILED)
        return first, second

    first, second = asyncio.run(scenario())
    assert first.error == second.error == "quota"
    assert rig.speech.spoken.count(DETAIL_ERROR_JA) == 1


def test_events_are_written_to_jsonl(tmp_path):
    log_path = tmp_path / "logs" / "events.jsonl"
    rig = PipelineRig(event_log_path=str(log_path))
    asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    lines = log_path.read_text(encoding="utf-8").splitlines()
    event = json.loads(lines[-1])
    assert event["kind"] == "narration"
    assert event["backend"] == "claude"
    assert event["spoken"] is True
    assert event["text_preview"] == "前方OK"


def test_urgent_warning_survives_recognizer_stop_failure():
    rig = PipelineRig(replies=["前方に段差があります"], state=InteractionState.LISTENING)
    rig.recognizer._listening = True
    rig.recognizer.stop_error = RuntimeError("driver busy")
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    assert outcome.spoken is True
    assert outcome.preempted is True
    assert rig.speech.spoken == ["緊急: 前方に段差があります"]
    assert rig.pipeline.urgent_speaking is False
    assert rig.pipeline.urgent_warnings == 1


def test_unexpected_capture_error_is_reported_as_failure():
    rig = PipelineRig(captures=[RuntimeError("driver crashed")])
    outcome = asyncio.run(rig.pipeline.run(NarrationMode.AUTO))
    assert outcome.error == "capture_failed"
    assert rig.outcomes == [False]
    assert rig.analyzer.calls == []
