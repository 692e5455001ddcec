"""
tests/test_capture.py: microphone lifecycle, levels and segment hand-off.
"""
import asyncio
import errno
import sys
from unittest.mock import Mock

import pytest

from sopwizard.config import SAMPLE_RATE_TARGET
from sopwizard.errors import (
    CapturePermissionDenied, CaptureTooShort, CaptureUnavailable, TranscriptionFailed
)
from sopwizard.infrastructure.audio.hardware import CaptureConstraints, PyAudioBackend
from sopwizard.infrastructure.audio.processing.capture import AudioCaptureController, AudioSegment
from sopwizard.infrastructure.audio.speech import TierResult, TranscriptionFallbackChain
from sopwizard.interview import CaptureState
from sopwizard.interview.testing import MockAudioBackend, ScriptedTier


def make_controller(backend=None, results=None, **kwargs):
    tier = ScriptedTier("streaming", results or [TierResult.success("streaming", "Inspect item")])
    controller = AudioCaptureController(
        backend or MockAudioBackend(),
        TranscriptionFallbackChain([tier]),
        tick_interval=0.01,
        level_interval=0.005,
        **kwargs
    )
    return controller, tier


# ──────────────────────────────────────────────────────────────
# Lifecycle
# ──────────────────────────────────────────────────────────────

def test_start_stop_returns_transcript_and_releases():
    backend = MockAudioBackend()
    controller, tier = make_controller(backend)
    states = []
    controller.on_state_change = states.append

    async def scenario():
        assert await controller.start() is CaptureState.RECORDING
        return await controller.stop()

    assert asyncio.run(scenario()) == "Inspect item"
    assert states == [CaptureState.RECORDING, CaptureState.FLUSHING, CaptureState.IDLE]
    assert backend.streams[0].stop_calls == 1
    assert backend.active_streams == []

    segment = tier.segments[0]
    assert isinstance(segment, AudioSegment)
    assert segment.sample_rate == SAMPLE_RATE_TARGET
    assert segment.duration_seconds == pytest.approx(1.0, abs=0.01)
    assert segment.wav_bytes[:4] == b"RIFF"


def test_start_while_recording_opens_no_second_stream():
    backend = MockAudioBackend()
    controller, _ = make_controller(backend)

    async def scenario():
        await controller.start()
        state = await controller.start()
        controller.cancel()
        return state

    assert asyncio.run(scenario()) is CaptureState.RECORDING
    assert backend.open_calls == 1


def test_overlapping_starts_share_one_stream():
    backend = MockAudioBackend(open_delay=0.05)
    controller, _ = make_controller(backend)

    async def scenario():
        states = await asyncio.gather(controller.start(), controller.start())
        controller.cancel()
        return states

    assert asyncio.run(scenario()) == [CaptureState.RECORDING, CaptureState.RECORDING]
    assert backend.open_calls == 1
    assert backend.active_streams == []
    assert controller.state is CaptureState.IDLE


def test_start_after_failed_open_can_retry():
    backend = MockAudioBackend(error=CaptureUnavailable("busy"), open_delay=0.01)
    controller, _ = make_controller(backend)

    async def scenario():
        results = await asyncio.gather(controller.start(), controller.start(), return_exceptions=True)
        backend.error = None
        state = await controller.start()
        controller.cancel()
        return results, state

    results, state = asyncio.run(scenario())
    assert isinstance(results[0], CaptureUnavailable)
    assert results[1] is CaptureState.IDLE
    assert state is CaptureState.RECORDING
    assert backend.open_calls == 2
    assert backend.active_streams == []


def test_odd_length_recording_is_trimmed_to_whole_samples():
    backend = MockAudioBackend(chunks=[b"\x10\x00" * 1000 + b"\x01"])
    controller, tier = make_controller(backend)

    async def scenario():
        await controller.start()
        return await controller.stop()

    assert asyncio.run(scenario()) == "Inspect item"
    assert len(tier.segments[0].pcm16) % 2 == 0


def test_constraints_request_echo_cancellation_and_noise_suppression():
    backend = MockAudioBackend()
    controller, _ = make_controller(backend)

    async def scenario():
        await controller.start()
        controller.cancel()

    asyncio.run(scenario())
    constraints = backend.constraints[0]
    assert constraints.echo_cancellation
    assert constraints.noise_suppression
    assert constraints.auto_gain_control


def test_too_short_recording_skips_transcription():
    backend = MockAudioBackend(chunks=[b"\x00" * 400])
    controller, tier = make_controller(backend)

    async def scenario():
        await controller.start()
        await controller.stop()

    with pytest.raises(CaptureTooShort):
        asyncio.run(scenario())
    assert tier.calls == 0
    assert controller.state is CaptureState.IDLE
    assert backend.active_streams == []


def test_no_chunks_is_too_short():
    controller, tier = make_controller(MockAudioBackend(chunks=[]))

    async def scenario():
        await controller.start()
        await controller.stop()

    with pytest.raises(CaptureTooShort):
        asyncio.run(scenario())
    assert tier.calls == 0


def test_stop_while_idle_is_too_short():
    controller, tier = make_controller()
    with pytest.raises(CaptureTooShort):
        asyncio.run(controller.stop())
    assert tier.calls == 0


def test_transcription_failure_still_returns_to_idle():
    backend = MockAudioBackend()
    controller, _ = make_controller(backend, results=[TierResult.failed("streaming", "no speech")])

    async def scenario():
        await controller.start()
        await controller.stop()

    with pytest.raises(TranscriptionFailed):
        asyncio.run(scenario())
    assert controller.state is CaptureState.IDLE
    assert backend.active_streams == []


def test_cancel_releases_and_discards():
    backend = MockAudioBackend()
    controller, tier = make_controller(backend)

    async def scenario():
        await controller.start()
        controller.cancel()
        controller.cancel()

    asyncio.run(scenario())
    assert controller.state is CaptureState.IDLE
    assert backend.streams[0].stop_calls == 1
    assert tier.calls == 0


@pytest.mark.parametrize("error", [
    CaptureUnavailable("no input device"),
    CapturePermissionDenied("denied"),
])
def test_open_errors_leave_controller_idle(error):
    controller, _ = make_controller(MockAudioBackend(error=error))
    with pytest.raises(type(error)):
        asyncio.run(controller.start())
    assert controller.state is CaptureState.IDLE
    assert not controller.stream_active


# ──────────────────────────────────────────────────────────────
# Visualization feed
# ──────────────────────────────────────────────────────────────

def test_levels_and_ticks_while_recording():
    levels, ticks = [], []
    controller, _ = make_controller(on_levels=levels.append, on_tick=ticks.append)

    async def scenario():
        await controller.start()
        await asyncio.sleep(0.1)
        controller.cancel()

    asyncio.run(scenario())
    assert levels and all(len(sample) == 10 for sample in levels)
    assert ticks[:2] == [1, 2]
    assert controller.elapsed_seconds >= 2


def test_levels_fall_back_to_synthetic_without_analysis():
    levels = []
    controller, _ = make_controller(MockAudioBackend(supports_analysis=False), on_levels=levels.append)

    async def scenario():
        await controller.start()
        await asyncio.sleep(0.05)
        controller.cancel()

    asyncio.run(scenario())
    assert levels
    assert all(0.0 <= v <= 0.7 for sample in levels for v in sample)


def test_levels_fall_back_when_analysis_raises(monkeypatch):
    import sopwizard.infrastructure.audio.processing.capture as capture_module

    def broken(data):
        raise FloatingPointError("fft failed")

    monkeypatch.setattr(capture_module, "band_levels", broken)
    levels = []
    controller, _ = make_controller(on_levels=levels.append)

    async def scenario():
        await controller.start()
        await asyncio.sleep(0.05)
        controller.cancel()

    asyncio.run(scenario())
    assert levels
    assert all(0.0 <= v <= 0.7 for sample in levels for v in sample)


def test_observer_errors_do_not_stop_recording():
    def broken(_):
        raise RuntimeError("ui gone")

    controller, _ = make_controller(on_levels=broken, on_state_change=broken, on_tick=broken)

    async def scenario():
        await controller.start()
        await asyncio.sleep(0.05)
        return await controller.stop()

    assert asyncio.run(scenario()) == "Inspect item"


# ──────────────────────────────────────────────────────────────
# PyAudio backend error mapping
# ──────────────────────────────────────────────────────────────

def fake_pyaudio(open_error=None, default_device_error=None):
    module = Mock(paInt16=8, paContinue=0)
    pa = module.PyAudio.return_value
    if default_device_error is not None:
        pa.get_default_input_device_info.side_effect = default_device_error
    else:
        pa.get_default_input_device_info.return_value = {"index": 2}
    if open_error is not None:
        pa.open.side_effect = open_error
    return module, pa


def test_pyaudio_missing_is_unavailable(monkeypatch):
    monkeypatch.setitem(sys.modules, "pyaudio", None)
    with pytest.raises(CaptureUnavailable):
        PyAudioBackend().open_stream(CaptureConstraints(), lambda data: None)


@pytest.mark.parametrize("error,expected", [
    (PermissionError("denied"), CapturePermissionDenied),
    (OSError(errno.EACCES, "Permission denied"), CapturePermissionDenied),
    (OSError(-9996, "Invalid input device"), CaptureUnavailable),
])
def test_pyaudio_open_errors_are_mapped(monkeypatch, error, expected):
    module, pa = fake_pyaudio(open_error=error)
    backend = PyAudioBackend()
    monkeypatch.setattr(backend, "_load_pyaudio", lambda: module)

    with pytest.raises(expected):
        backend.open_stream(CaptureConstraints(), lambda data: None)
    pa.terminate.assert_called_once()


def test_pyaudio_without_default_device_is_unavailable(monkeypatch):
    module, pa = fake_pyaudio(default_device_error=IOError("No Default Input Device Available"))
    backend = PyAudioBackend()
    monkeypatch.setattr(backend, "_load_pyaudio", lambda: module)

    with pytest.raises(CaptureUnavailable):
        backend.open_stream(CaptureConstraints(), lambda data: None)
    pa.terminate.assert_called_once()


def test_pyaudio_stream_stop_is_idempotent(monkeypatch):
    module, pa = fake_pyaudio()
    backend = PyAudioBackend()
    monkeypatch.setattr(backend, "_load_pyaudio", lambda: module)

    stream = backend.open_stream(CaptureConstraints(), lambda data: None)
    _, kwargs = pa.open.call_args
    assert kwargs["input_device_index"] == 2
    assert kwargs["frames_per_buffer"] == 4800

    stream.stop()
    stream.stop()
    assert not stream.active
    pa.terminate.assert_called_once()
