"""
Microphone capture controller.

Owns the single hardware input stream of a wizard, buffers the audio it
produces, feeds the recording visualizer and hands the finished segment to
the transcription fallback chain.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ....config import (
    SAMPLE_RATE_TARGET, AUDIO_MIME_TYPE, MIN_SEGMENT_BYTES,
    TICK_SECONDS, LEVEL_INTERVAL, LEVEL_BANDS
)
from ....errors import CaptureTooShort
from ....interview.schemas import CaptureState
from ....utils import PeriodicTask
from ..hardware import AudioInputBackend, AudioInputStream, CaptureConstraints
from .levels import band_levels, synthetic_levels
from .processing import condition_segment, write_wav

logger = logging.getLogger("audio_capture")


@dataclass(frozen=True)
class AudioChunk:
    """Raw audio delivered by the input stream."""
    data: bytes
    captured_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class AudioSegment:
    """A finished, conditioned recording ready for transcription."""
    pcm16: bytes
    sample_rate: int = SAMPLE_RATE_TARGET
    mime_type: str = AUDIO_MIME_TYPE

    @property
    def wav_bytes(self) -> bytes:
        return write_wav(self.pcm16, self.sample_rate)

    @property
    def duration_seconds(self) -> float:
        return len(self.pcm16) / 2 / self.sample_rate


class AudioCaptureController:
    """
    Lifecycle of one microphone recording at a time.

    ``start`` acquires the stream, ``stop`` releases it and returns the
    transcript, ``cancel`` releases it and throws the audio away. Whatever
    happens, the controller ends up ``idle`` with the stream released.
    """

    def __init__(self,
                 backend: AudioInputBackend,
                 chain,
                 constraints: Optional[CaptureConstraints] = None,
                 on_levels: Optional[Callable[[List[float]], None]] = None,
                 on_state_change: Optional[Callable[[CaptureState], None]] = None,
                 on_tick: Optional[Callable[[int], None]] = None,
                 tick_interval: float = TICK_SECONDS,
                 level_interval: float = LEVEL_INTERVAL,
                 min_segment_bytes: int = MIN_SEGMENT_BYTES):
        """
        Args:
            backend: Where input streams come from
            chain: TranscriptionFallbackChain that turns segments into text
            constraints: Requested stream properties
            on_levels: Receives each visualization sample
            on_state_change: Receives every capture state transition
            on_tick: Receives elapsed whole seconds while recording
            tick_interval: Seconds between elapsed-time ticks
            level_interval: Seconds between level samples
            min_segment_bytes: Smallest raw recording worth transcribing
        """
        self.backend = backend
        self.chain = chain
        self.constraints = constraints or CaptureConstraints()
        self.on_levels = on_levels
        self.on_state_change = on_state_change
        self.on_tick = on_tick
        self.min_segment_bytes = min_segment_bytes

        self._state = CaptureState.IDLE
        self._stream: Optional[AudioInputStream] = None
        self._chunks: List[AudioChunk] = []
        self._accepting = False
        self._abort_start = False
        self._analysis_failed = False
        self._starting: Optional[asyncio.Future] = None
        self.elapsed_seconds = 0
        self.levels: List[float] = [0.0] * LEVEL_BANDS

        self._ticker = PeriodicTask(tick_interval, self._tick, name="capture-ticker")
        self._level_meter = PeriodicTask(level_interval, self._sample_levels, name="capture-levels")

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def stream_active(self) -> bool:
        return self._stream is not None and self._stream.active

    async def start(self) -> CaptureState:
        """
        Open the microphone and begin buffering audio.

        Returns:
            The resulting capture state. Already recording is a no-op, and a
            call made while another start is opening the microphone waits
            for that start instead of opening a second stream.

        Raises:
            CaptureUnavailable: No usable input
            CapturePermissionDenied: Microphone access refused
        """
        if self._starting is not None:
            logger.debug("start() joined a start already in progress")
            await asyncio.shield(self._starting)
            return self._state
        if self._state is not CaptureState.IDLE:
            logger.debug("start() ignored in state %s", self._state.value)
            return self._state

        loop = asyncio.get_running_loop()
        self._starting = loop.create_future()
        try:
            return await self._open(loop)
        finally:
            starting, self._starting = self._starting, None
            starting.set_result(None)

    async def _open(self, loop: asyncio.AbstractEventLoop) -> CaptureState:
        def on_chunk(data: bytes) -> None:
            # PortAudio thread
            try:
                loop.call_soon_threadsafe(self._on_chunk, data)
            except RuntimeError:
                logger.debug("Dropped audio chunk after the event loop closed")

        self._chunks = []
        self._analysis_failed = False
        self._abort_start = False
        self.elapsed_seconds = 0
        self._accepting = True

        opening = asyncio.ensure_future(
            asyncio.to_thread(self.backend.open_stream, self.constraints, on_chunk)
        )
        try:
            stream = await asyncio.shield(opening)
        except asyncio.CancelledError:
            self._accepting = False
            opening.add_done_callback(self._release_orphan)
            raise
        except Exception:
            self._accepting = False
            raise

        if self._abort_start:
            logger.info("Capture cancelled while the microphone was opening")
            self._accepting = False
            stream.stop()
            return self._state

        self._stream = stream
        self._set_state(CaptureState.RECORDING)
        self._ticker.start()
        self._level_meter.start()
        logger.info("Recording started")
        return self._state

    async def stop(self) -> str:
        """
        Finish the recording and transcribe it.

        Returns:
            The transcript of the recording

        Raises:
            CaptureTooShort: Nothing (or too little) was recorded
            TranscriptionFailed: Every transcription tier failed
        """
        if self._state is not CaptureState.RECORDING:
            raise CaptureTooShort(f"stop() called while {self._state.value}")

        self._set_state(CaptureState.FLUSHING)
        try:
            self._stop_timers()
            self._release()
            # Let chunks already scheduled by the input thread land
            await asyncio.sleep(0)
            self._accepting = False
            segment = self._build_segment()
            logger.info(f"Transcribing {segment.duration_seconds:.1f}s of audio")
            result = await self.chain.transcribe(segment)
            return result.text
        finally:
            self._accepting = False
            self._chunks = []
            self._set_state(CaptureState.IDLE)

    def cancel(self) -> None:
        """Release the microphone and discard any buffered audio."""
        self._abort_start = True
        self._accepting = False
        self._stop_timers()
        self._release()
        self._chunks = []
        if self._state is not CaptureState.IDLE:
            logger.info("Recording cancelled")
        self._set_state(CaptureState.IDLE)

    def _build_segment(self) -> AudioSegment:
        raw = b"".join(chunk.data for chunk in self._chunks)
        if not self._chunks or len(raw) < self.min_segment_bytes:
            raise CaptureTooShort(f"recorded {len(raw)} bytes in {len(self._chunks)} chunks")
        # Drop a partial trailing sample
        raw = raw[:len(raw) - len(raw) % 2]
        pcm16 = condition_segment(
            raw,
            self.constraints.sample_rate,
            SAMPLE_RATE_TARGET,
            noise_suppression=self.constraints.noise_suppression,
            auto_gain=self.constraints.auto_gain_control,
        )
        return AudioSegment(pcm16=pcm16, sample_rate=SAMPLE_RATE_TARGET)

    def _release(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream = None

    def _release_orphan(self, opening: asyncio.Future) -> None:
        """Close a stream whose opener was cancelled before it returned."""
        if opening.cancelled() or opening.exception() is not None:
            return
        opening.result().stop()
        logger.info("Released microphone opened by a cancelled start")

    def _stop_timers(self) -> None:
        self._ticker.cancel()
        self._level_meter.cancel()

    def _on_chunk(self, data: bytes) -> None:
        if self._accepting and data:
            self._chunks.append(AudioChunk(data))

    def _tick(self) -> None:
        self.elapsed_seconds += 1
        self._notify(self.on_tick, self.elapsed_seconds)

    def _sample_levels(self) -> None:
        stream = self._stream
        if stream is None:
            return
        if stream.supports_analysis and not self._analysis_failed:
            try:
                recent = self._chunks[-1].data if self._chunks else b""
                self.levels = band_levels(recent)
            except Exception as e:
                logger.warning("Level analysis failed, switching to synthetic levels: %s", e)
                self._analysis_failed = True
                self.levels = synthetic_levels()
        else:
            self.levels = synthetic_levels()
        self._notify(self.on_levels, list(self.levels))

    def _set_state(self, state: CaptureState) -> None:
        if state is self._state:
            return
        self._state = state
        self._notify(self.on_state_change, state)

    def _notify(self, callback, value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception as e:
            logger.error("Capture observer failed: %s", e)
