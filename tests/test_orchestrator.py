"""
tests/test_orchestrator.py: the wizard boundary: typed and spoken turns,
error reporting, pending state and cancellation.
"""
import asyncio

from sopwizard.config import Config
from sopwizard.errors import CaptureTooShort, CaptureUnavailable, TranscriptionFailed
from sopwizard.infrastructure.audio.processing import capture as capture_module
from sopwizard.infrastructure.audio.speech import (
    RemoteTranscriptionTier, StreamingRecognizerTier, TierResult, TranscriptionFallbackChain
)
from sopwizard.interview import CaptureState, EventType, InterviewWizard, Speaker, Stage
from sopwizard.interview.testing import (
    FakeTranscriptionClient, MockAudioBackend, ScriptedTier, create_mock_wizard_setup,
    create_test_answers
)


def walk_to_steps(wizard, answers):
    wizard.open()
    for answer in answers:
        if wizard.stage is Stage.STEPS:
            return
        wizard.submit_text(answer)
    assert wizard.stage is Stage.STEPS


def user_turns(wizard):
    return [t for t in wizard.turns() if t.speaker is Speaker.USER]


# ──────────────────────────────────────────────────────────────
# Typed interview
# ──────────────────────────────────────────────────────────────

def test_open_greets_once(mock_setup):
    wizard = mock_setup["wizard"]
    wizard.open()
    wizard.open()
    assert len(wizard.turns()) == 1
    assert wizard.turns()[0].speaker is Speaker.SYSTEM


def test_typed_interview_completes_once(mock_setup, scenario_answers):
    wizard = mock_setup["wizard"]
    wizard.open()
    for answer in scenario_answers:
        wizard.submit_text(answer)

    assert wizard.closed
    assert len(mock_setup["completions"]) == 1
    completed = mock_setup["completions"][0]
    assert completed["document"].title == "Return Handling"
    assert [s.text for s in completed["steps"]] == ["Inspect item", "Issue refund"]

    assert wizard.result.session_id == wizard.session_id
    assert wizard.result.to_dict()["document"]["category"] == "Customer Service"
    assert wizard.submit_text("late answer") is None
    assert wizard.metrics.get_metrics()["interviews_completed"] == 1


def test_submit_opens_wizard_implicitly(mock_setup):
    wizard = mock_setup["wizard"]
    outcome = wizard.submit_text("start")
    assert outcome.accepted
    assert wizard.turns()[0].speaker is Speaker.SYSTEM
    assert wizard.stage is Stage.TITLE


def test_turn_events_mirror_the_log(mock_setup):
    wizard = mock_setup["wizard"]
    appended = []
    wizard.event_bus.subscribe(EventType.TURN_APPENDED, appended.append)
    for answer in create_test_answers():
        wizard.submit_text(answer)

    assert [e.data["text"] for e in appended] == [t.text for t in wizard.turns()]
    assert appended[-1].data["turn_count"] == len(wizard.turns())


# ──────────────────────────────────────────────────────────────
# Spoken turns
# ──────────────────────────────────────────────────────────────

def test_transcript_is_submitted_like_typed_text():
    setup = create_mock_wizard_setup(transcripts=["Laptop Provisioning"])
    wizard = setup["wizard"]
    wizard.open()
    wizard.submit_text("start")

    async def scenario():
        assert await wizard.start_recording()
        assert wizard.capture_state is CaptureState.RECORDING
        return await wizard.stop_recording()

    outcome = asyncio.run(scenario())

    assert outcome.accepted
    assert wizard.session.document.title == "Laptop Provisioning"
    assert user_turns(wizard)[-1].text == "Laptop Provisioning"
    assert wizard.capture_state is CaptureState.IDLE
    assert not wizard.pending
    assert setup["backend"].active_streams == []
    assert wizard.metrics.get_metrics()["transcriptions_completed"] == 1


def test_short_silence_reports_too_short():
    setup = create_mock_wizard_setup(chunks=[b"\x00" * 400])
    wizard = setup["wizard"]
    wizard.open()
    turns_before = len(wizard.turns())

    async def scenario():
        await wizard.start_recording()
        return await wizard.stop_recording()

    assert asyncio.run(scenario()) is None
    assert wizard.last_error == CaptureTooShort.user_message
    assert wizard.show_retry
    assert wizard.stage is Stage.INTRO
    assert len(wizard.turns()) == turns_before
    assert setup["tier"].calls == 0
    assert wizard.metrics.get_metrics()["capture_failures"] == 1


def test_remote_tier_used_when_streaming_unavailable():
    def no_library():
        raise ImportError("google-cloud-speech not installed")

    remote = FakeTranscriptionClient(text="Step one is greeting the customer")
    chain = TranscriptionFallbackChain([
        StreamingRecognizerTier(client_factory=no_library),
        RemoteTranscriptionTier(remote),
    ])
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=MockAudioBackend(),
                             chain=chain, tick_interval=0.01, level_interval=0.005)
    walk_to_steps(wizard, create_test_answers())

    async def scenario():
        await wizard.start_recording()
        return await wizard.stop_recording()

    outcome = asyncio.run(scenario())

    assert outcome.step.text == "Step one is greeting the customer"
    assert outcome.step.sequence_number == 1
    assert user_turns(wizard)[-1].text == "Step one is greeting the customer"
    assert len(remote.requests) == 1


def test_all_tiers_failing_logs_no_turn_and_rearms():
    failing = ScriptedTier("streaming", [TierResult.failed("streaming", "no speech")])
    backend = MockAudioBackend()
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=backend,
                             chain=TranscriptionFallbackChain([failing]),
                             tick_interval=0.01, level_interval=0.005)
    wizard.open()
    turns_before = len(wizard.turns())

    async def scenario():
        await wizard.start_recording()
        outcome = await wizard.stop_recording()
        rearmed = await wizard.retry_recording()
        wizard.capture.cancel()
        return outcome, rearmed

    outcome, rearmed = asyncio.run(scenario())

    assert outcome is None
    assert len(wizard.turns()) == turns_before
    assert wizard.last_error is None  # cleared by the retry
    assert rearmed
    assert backend.open_calls == 2
    assert wizard.metrics.get_metrics()["transcriptions_failed"] == 1


def test_transcription_failure_sets_retry_state():
    failing = ScriptedTier("streaming", [TierResult.failed("streaming", "no speech")])
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=MockAudioBackend(),
                             chain=TranscriptionFallbackChain([failing]),
                             tick_interval=0.01, level_interval=0.005)

    async def scenario():
        await wizard.start_recording()
        await wizard.stop_recording()

    asyncio.run(scenario())
    assert wizard.last_error == TranscriptionFailed.user_message
    assert wizard.show_retry
    assert wizard.capture_state is CaptureState.IDLE


def test_capture_unavailable_is_reported():
    backend = MockAudioBackend(error=CaptureUnavailable("no input device"))
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=backend,
                             chain=TranscriptionFallbackChain([]))

    assert asyncio.run(wizard.start_recording()) is False
    assert wizard.last_error == CaptureUnavailable.user_message
    assert wizard.show_retry


def test_unexpected_open_error_is_reported():
    backend = MockAudioBackend(error=RuntimeError("driver crashed"))
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=backend,
                             chain=TranscriptionFallbackChain([]))

    assert asyncio.run(wizard.start_recording()) is False
    assert wizard.last_error == CaptureUnavailable.user_message
    assert wizard.show_retry
    assert wizard.metrics.get_metrics()["errors_occurred"] == 1


def test_unexpected_segment_error_is_reported(monkeypatch):
    def broken(*args, **kwargs):
        raise ValueError("buffer size must be a multiple of element size")

    monkeypatch.setattr(capture_module, "condition_segment", broken)
    setup = create_mock_wizard_setup()
    wizard = setup["wizard"]
    wizard.open()
    turns_before = len(wizard.turns())
    errors = []
    wizard.event_bus.subscribe(EventType.ERROR_OCCURRED, errors.append)

    async def scenario():
        await wizard.start_recording()
        return await wizard.stop_recording()

    assert asyncio.run(scenario()) is None
    assert wizard.last_error == TranscriptionFailed.user_message
    assert wizard.show_retry
    assert not wizard.pending
    assert wizard.capture_state is CaptureState.IDLE
    assert setup["backend"].active_streams == []
    assert len(wizard.turns()) == turns_before
    assert setup["tier"].calls == 0
    assert [e.data["error_type"] for e in errors] == ["ValueError"]


def test_voice_disabled_wizard_cannot_record():
    wizard = InterviewWizard(config=Config(enable_voice=False))
    assert not wizard.voice_available
    assert asyncio.run(wizard.start_recording()) is False
    assert wizard.last_error == CaptureUnavailable.user_message


def test_typed_answer_clears_error():
    setup = create_mock_wizard_setup(chunks=[b"\x00" * 10])
    wizard = setup["wizard"]

    async def scenario():
        await wizard.start_recording()
        await wizard.stop_recording()

    asyncio.run(scenario())
    assert wizard.last_error
    wizard.submit_text("start")
    assert wizard.last_error is None
    assert not wizard.show_retry


# ──────────────────────────────────────────────────────────────
# Pending and cancellation
# ──────────────────────────────────────────────────────────────

def test_recording_refused_while_pending():
    setup = create_mock_wizard_setup(tier_delay=0.1)
    wizard = setup["wizard"]
    wizard.open()

    async def scenario():
        await wizard.start_recording()
        stopping = asyncio.ensure_future(wizard.stop_recording())
        await asyncio.sleep(0.02)
        was_pending = wizard.pending
        refused = await wizard.start_recording()
        await stopping
        return was_pending, refused

    was_pending, refused = asyncio.run(scenario())
    assert was_pending
    assert refused is False
    assert setup["backend"].open_calls == 1
    assert not wizard.pending


def test_cancel_mid_recording_releases_microphone():
    setup = create_mock_wizard_setup()
    wizard = setup["wizard"]
    wizard.open()
    turns_before = len(wizard.turns())

    async def scenario():
        await wizard.start_recording()
        await wizard.cancel()

    asyncio.run(scenario())
    assert wizard.cancelled
    assert setup["backend"].active_streams == []
    assert wizard.capture_state is CaptureState.IDLE
    assert len(wizard.turns()) == turns_before
    assert setup["completions"] == []


def test_cancel_waits_for_remote_request_to_close():
    remote = FakeTranscriptionClient(text="Unbox the laptop", delay=1.0)
    chain = TranscriptionFallbackChain([RemoteTranscriptionTier(remote, timeout=2.0)])
    wizard = InterviewWizard(config=Config(enable_voice=False), audio_backend=MockAudioBackend(),
                             chain=chain, tick_interval=0.01, level_interval=0.005)
    walk_to_steps(wizard, create_test_answers())
    turns_before = len(wizard.turns())

    async def scenario():
        await wizard.start_recording()
        stopping = asyncio.ensure_future(wizard.stop_recording())
        await asyncio.sleep(0.2)
        assert remote.in_flight == 1
        await wizard.cancel()
        in_flight = remote.in_flight
        return in_flight, await stopping

    in_flight, outcome = asyncio.run(scenario())
    assert in_flight == 0
    assert remote.close_calls == 1
    assert outcome is None
    assert len(wizard.turns()) == turns_before
    assert not wizard.pending


def test_cancel_discards_late_transcript(scenario_answers):
    setup = create_mock_wizard_setup(transcripts=["looks good"], tier_delay=0.2)
    wizard = setup["wizard"]
    wizard.open()
    for answer in scenario_answers[:-1]:
        wizard.submit_text(answer)
    assert wizard.stage is Stage.FINALIZE
    turns_before = len(wizard.turns())

    async def scenario():
        await wizard.start_recording()
        stopping = asyncio.ensure_future(wizard.stop_recording())
        await asyncio.sleep(0.02)
        assert wizard.pending
        await wizard.cancel()
        result = await stopping
        await asyncio.sleep(0.3)
        return result

    assert asyncio.run(scenario()) is None
    assert len(wizard.turns()) == turns_before
    assert setup["completions"] == []
    assert wizard.stage is Stage.FINALIZE
    assert not wizard.pending
    assert setup["backend"].active_streams == []
    assert wizard.submit_text("looks good") is None


def test_cancel_is_idempotent(mock_setup):
    wizard = mock_setup["wizard"]
    wizard.open()

    async def scenario():
        await wizard.cancel()
        await wizard.cancel()

    asyncio.run(scenario())
    assert wizard.metrics.get_metrics()["interviews_cancelled"] == 1
    assert asyncio.run(wizard.start_recording()) is False


def test_cancelled_wizard_ignores_typed_input(mock_setup):
    wizard = mock_setup["wizard"]
    wizard.open()
    asyncio.run(wizard.cancel())
    assert wizard.submit_text("start") is None
    assert [t for t in wizard.turns() if t.speaker is Speaker.USER] == []
