"""
Testing infrastructure with mock services for the interview wizard.
"""
import asyncio
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from unittest.mock import Mock

import numpy as np
import requests

from .models import SOPDocument, StepDraft
from .orchestrator import InterviewWizard
from ..config import Config, SAMPLE_RATE_CAPTURE, FRAME_MS
from ..infrastructure.audio.hardware import (
    AudioInputBackend, AudioInputStream, CaptureConstraints
)
from ..infrastructure.audio.speech import (
    TierResult, TranscriptionTier, TranscriptionFallbackChain,
    TranscriptionClient, TranscriptionResponse
)


def speech_chunks(seconds: float = 1.0,
                  sample_rate: int = SAMPLE_RATE_CAPTURE,
                  frame_ms: int = FRAME_MS,
                  freq: float = 220.0,
                  amplitude: float = 0.3) -> List[bytes]:
    """A tone split into PCM16 frames, standing in for a spoken answer."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    pcm = (np.sin(2 * np.pi * freq * t) * amplitude * 32767).astype(np.int16).tobytes()
    size = int(sample_rate * frame_ms / 1000) * 2
    return [pcm[i:i + size] for i in range(0, len(pcm), size)]


class MockAudioStream(AudioInputStream):
    """Mock input stream that records how often it was released."""

    def __init__(self, on_chunk: Callable[[bytes], None], supports_analysis: bool = True):
        self.on_chunk = on_chunk
        self.supports_analysis = supports_analysis
        self.stop_calls = 0
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def stop(self) -> None:
        self.stop_calls += 1
        self._active = False

    def feed(self, data: bytes) -> None:
        if self._active:
            self.on_chunk(data)


class MockAudioBackend(AudioInputBackend):
    """Mock microphone: plays preset chunks into each stream it opens."""

    def __init__(self,
                 chunks: Optional[Sequence[bytes]] = None,
                 error: Optional[Exception] = None,
                 supports_analysis: bool = True,
                 open_delay: float = 0.0):
        self.chunks = list(chunks) if chunks is not None else speech_chunks()
        self.error = error
        self.open_delay = open_delay
        self.supports_analysis = supports_analysis
        self.streams: List[MockAudioStream] = []
        self.constraints: List[CaptureConstraints] = []

    @property
    def open_calls(self) -> int:
        return len(self.constraints)

    @property
    def active_streams(self) -> List[MockAudioStream]:
        return [s for s in self.streams if s.active]

    def open_stream(self, constraints: CaptureConstraints, on_chunk) -> AudioInputStream:
        self.constraints.append(constraints)
        if self.open_delay:
            # Runs in a worker thread, like a real device open
            time.sleep(self.open_delay)
        if self.error is not None:
            raise self.error
        stream = MockAudioStream(on_chunk, self.supports_analysis)
        self.streams.append(stream)
        for chunk in self.chunks:
            stream.feed(chunk)
        return stream


class ScriptedTier(TranscriptionTier):
    """Mock tier returning scripted results, one per call."""

    def __init__(self,
                 name: str,
                 results: Sequence[Union[TierResult, Exception]],
                 delay: float = 0.0):
        self.name = name
        self.results = list(results)
        self.delay = delay
        self.calls = 0
        self.segments: List[Any] = []

    async def transcribe(self, segment) -> TierResult:
        self.calls += 1
        self.segments.append(segment)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.results:
            return TierResult.failed(self.name, "no scripted result left")
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeSpeechClient:
    """Mock Google SpeechClient for the streaming and sync recognizers."""

    def __init__(self,
                 final_transcripts: Optional[List[str]] = None,
                 interim_transcripts: Optional[List[str]] = None,
                 error: Optional[Exception] = None):
        self.final_transcripts = final_transcripts or []
        self.interim_transcripts = interim_transcripts or []
        self.error = error
        self.requests_seen = 0
        self.configs: List[Any] = []

    def _result(self, transcript: str, is_final: bool, confidence: float = 0.9):
        alternative = Mock(transcript=transcript, confidence=confidence)
        return Mock(is_final=is_final, alternatives=[alternative])

    def streaming_recognize(self, config, requests):
        self.configs.append(config)
        for _ in requests:
            self.requests_seen += 1
        if self.error is not None:
            raise self.error
        responses = [Mock(results=[self._result(t, False)]) for t in self.interim_transcripts]
        responses += [Mock(results=[self._result(t, True)]) for t in self.final_transcripts]
        return iter(responses)

    def recognize(self, config, audio):
        self.configs.append(config)
        if self.error is not None:
            raise self.error
        return Mock(results=[self._result(t, True) for t in self.final_transcripts])


class FakeTranscriptionClient(TranscriptionClient):
    """Mock remote transcription service; ``close()`` aborts a delayed request."""

    def __init__(self,
                 text: str = "",
                 confidence: float = 0.9,
                 error: Optional[Exception] = None,
                 delay: float = 0.0):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.requests: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.close_calls = 0
        self._closed = threading.Event()

    def transcribe(self, audio: bytes, mime_hint: str) -> TranscriptionResponse:
        self.requests.append({"audio": audio, "mime_hint": mime_hint})
        self._closed.clear()
        self.in_flight += 1
        try:
            if self.delay and self._closed.wait(self.delay):
                raise requests.ConnectionError("connection closed by client")
            if self.error is not None:
                raise self.error
            return TranscriptionResponse(text=self.text, confidence=self.confidence)
        finally:
            self.in_flight -= 1

    def close(self) -> None:
        self.close_calls += 1
        self._closed.set()


def create_test_answers() -> List[str]:
    """Typed answers that walk an interview from intro to completion."""
    return [
        "Let's start",
        "Laptop Provisioning",
        "How IT prepares a laptop for a new employee",
        "IT",
        "IT team and new hires",
        "Unbox the laptop",
        "Install the base image",
        "done",
        "Looks good",
    ]


def create_mock_wizard_setup(transcripts: Optional[List[str]] = None,
                             chunks: Optional[Sequence[bytes]] = None,
                             tier_delay: float = 0.0) -> Dict[str, Any]:
    """Create a complete mock wizard setup for testing."""
    results = [TierResult.success("streaming", t) for t in (transcripts or ["Laptop Provisioning"])]
    tier = ScriptedTier("streaming", results, delay=tier_delay)
    chain = TranscriptionFallbackChain([tier])
    backend = MockAudioBackend(chunks=chunks)
    completions: List[Dict[str, Any]] = []

    def on_complete(document: SOPDocument, steps: List[StepDraft]) -> None:
        completions.append({"document": document, "steps": steps})

    wizard = InterviewWizard(
        on_complete=on_complete,
        config=Config(enable_voice=False),
        audio_backend=backend,
        chain=chain,
        tick_interval=0.01,
        level_interval=0.005,
    )
    return {
        "wizard": wizard,
        "backend": backend,
        "chain": chain,
        "tier": tier,
        "completions": completions,
    }
