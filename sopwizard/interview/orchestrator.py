"""
Interview wizard: the engine boundary seen by a host UI.

Wires the state machine, dialogue log, capture controller and transcription
chain together, keeps turns serialized, and turns every recoverable error
into observable state (``last_error``, ``show_retry``) and events.
"""
import asyncio
import logging
import time
from typing import List, Optional

from .dialogue import DialogueLog
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    InterviewStartedEvent, TurnAppendedEvent, CaptureStateChangedEvent,
    AudioLevelsEvent, CaptureFailedEvent, TranscriptionCompletedEvent,
    TranscriptionFailedEvent, InterviewCancelledEvent, ErrorOccurredEvent
)
from .models import InterviewResult, SOPDocument, StepDraft, Turn
from .schemas import CaptureState, InterviewSession, Stage, TurnOutcome
from .state_machine import CompletionCallback, InterviewStateMachine
from ..config import Config, LEVEL_BANDS, TICK_SECONDS, LEVEL_INTERVAL
from ..errors import CaptureError, CaptureUnavailable, InterviewError, TranscriptionFailed

logger = logging.getLogger("orchestrator")


class InterviewWizard:
    """
    One SOP interview from greeting to completion or cancellation.

    All public coroutines must run on the same event loop. None of them
    raise for capture or transcription problems; check ``last_error``.
    """

    def __init__(self,
                 on_complete: Optional[CompletionCallback] = None,
                 config: Optional[Config] = None,
                 audio_backend=None,
                 chain=None,
                 event_bus: Optional[InterviewEventBus] = None,
                 tick_interval: float = TICK_SECONDS,
                 level_interval: float = LEVEL_INTERVAL):
        """
        Args:
            on_complete: Receives (document, steps) once, when the interview completes
            config: Settings; defaults are used when omitted
            audio_backend: AudioInputBackend; PyAudio when voice is enabled
            chain: TranscriptionFallbackChain; built from config when omitted
            event_bus: Bus the wizard publishes on; a private one by default
            tick_interval: Seconds between recording-time ticks
            level_interval: Seconds between visualizer samples
        """
        self.config = config or Config()
        self.on_complete = on_complete

        # Initialize event system
        self.event_bus = event_bus or InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self.dialogue = DialogueLog(on_append=self._on_turn_appended)
        self.state_machine = InterviewStateMachine(
            self.dialogue, on_complete=self._handle_completion, event_bus=self.event_bus
        )

        self.capture = None
        if audio_backend is None and self.config.enable_voice:
            from ..infrastructure.audio.hardware import PyAudioBackend
            audio_backend = PyAudioBackend()
        if audio_backend is not None:
            if chain is None:
                from ..infrastructure.audio.speech import create_transcription_chain
                chain = create_transcription_chain(self.config)
            from ..infrastructure.audio.processing.capture import AudioCaptureController
            self.capture = AudioCaptureController(
                audio_backend,
                chain,
                on_levels=self._on_levels,
                on_state_change=self._on_capture_state,
                tick_interval=tick_interval,
                level_interval=level_interval,
            )
        self.chain = chain

        self.pending = False
        self.last_error: Optional[str] = None
        self.show_retry = False
        self.result: Optional[InterviewResult] = None
        self._opened = False
        self._cancelled = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def session(self) -> InterviewSession:
        return self.state_machine.session

    @property
    def session_id(self) -> str:
        return self.state_machine.session.session_id

    @property
    def stage(self) -> Stage:
        return self.state_machine.stage

    @property
    def closed(self) -> bool:
        return self.state_machine.stage.is_terminal

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def voice_available(self) -> bool:
        return self.capture is not None

    @property
    def capture_state(self) -> CaptureState:
        return self.capture.state if self.capture is not None else CaptureState.IDLE

    @property
    def elapsed_seconds(self) -> int:
        return self.capture.elapsed_seconds if self.capture is not None else 0

    @property
    def levels(self) -> List[float]:
        if self.capture is None:
            return [0.0] * LEVEL_BANDS
        return list(self.capture.levels)

    def turns(self) -> List[Turn]:
        return list(self.dialogue.all())

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Start the interview with the greeting. Calling it again does nothing."""
        if self._opened or self._cancelled:
            return
        self._opened = True
        self.event_bus.emit(InterviewStartedEvent(self.session_id, time.time(), self.stage.value))
        self.state_machine.greet()
        logger.info("Interview %s opened", self.session_id)

    def submit_text(self, text: str) -> Optional[TurnOutcome]:
        """
        Submit a typed (or transcribed) answer.

        Returns:
            The TurnOutcome, or None when the wizard no longer accepts input
        """
        if self._cancelled:
            logger.info("Ignoring input after cancellation")
            return None
        if self.closed:
            logger.info("Ignoring input after completion")
            return None
        if not self._opened:
            self.open()

        outcome = self.state_machine.process_turn(text)
        if outcome.accepted:
            self._clear_error()
        return outcome

    async def start_recording(self) -> bool:
        """
        Begin recording an answer.

        Returns:
            True if the microphone is now recording
        """
        if self._cancelled or self.closed:
            return False
        if self.pending:
            logger.info("Recording refused while a transcription is pending")
            return False
        if self.capture is None:
            self._report(CaptureUnavailable("voice input disabled"), "capture")
            return False

        try:
            state = await self.capture.start()
        except CaptureError as e:
            logger.warning("Could not start recording: %s", e)
            self._report(e, "capture")
            return False
        except Exception as e:
            self._report_unexpected(e, CaptureUnavailable(str(e)), "capture")
            return False

        if self._cancelled:
            self.capture.cancel()
            return False

        recording = state is CaptureState.RECORDING
        if recording:
            self._clear_error()
        return recording

    async def stop_recording(self) -> Optional[TurnOutcome]:
        """
        Stop recording and submit the transcript as the user's answer.

        Returns:
            The TurnOutcome of the transcribed turn, or None when nothing was
            submitted (too short, not understood, cancelled, not recording)
        """
        if self.capture is None or self.capture.state is not CaptureState.RECORDING:
            logger.debug("stop_recording() ignored: not recording")
            return None

        generation = self._generation
        self.pending = True
        self._emit_capture_state()
        self._task = asyncio.ensure_future(self.capture.stop())

        try:
            transcript = await self._task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.info("Transcription abandoned by cancellation")
                return None
            raise
        except InterviewError as e:
            if generation != self._generation:
                return None
            logger.warning("Recording produced no answer: %s", e)
            self._report(e, "transcription" if isinstance(e, TranscriptionFailed) else "capture")
            return None
        except Exception as e:
            if generation != self._generation:
                return None
            self._report_unexpected(e, TranscriptionFailed(str(e)), "transcription")
            return None
        finally:
            if generation == self._generation:
                self.pending = False
                self._task = None
                self._emit_capture_state()

        if generation != self._generation or self._cancelled:
            logger.info("Discarding transcript that arrived after cancellation")
            return None

        tier = self.chain.last_result.tier if self.chain.last_result is not None else "unknown"
        self.event_bus.emit(TranscriptionCompletedEvent(self.session_id, time.time(), tier, transcript))
        return self.submit_text(transcript)

    async def retry_recording(self) -> bool:
        """Clear the last error and record again."""
        self._clear_error()
        return await self.start_recording()

    async def cancel(self) -> None:
        """
        Abandon the interview.

        Releases the microphone, abandons any in-flight transcription and
        guarantees the completion callback will not run. Idempotent.
        """
        if self._cancelled:
            return
        self._cancelled = True
        self._generation += 1

        if self.capture is not None:
            self.capture.cancel()

        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        self.pending = False
        self.event_bus.emit(InterviewCancelledEvent(self.session_id, time.time(), self.stage.value))
        logger.info("Interview %s cancelled in stage %s", self.session_id, self.stage.value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_completion(self, document: SOPDocument, steps: List[StepDraft]) -> None:
        if self._cancelled:
            return
        self.result = InterviewResult(
            session_id=self.session_id,
            document=document,
            steps=list(steps),
            turns=self.turns(),
        )
        if self.on_complete is not None:
            self.on_complete(document, steps)

    def _report(self, error: InterviewError, component: str) -> None:
        self.last_error = error.user_message
        self.show_retry = True
        if isinstance(error, TranscriptionFailed):
            self.event_bus.emit(TranscriptionFailedEvent(self.session_id, time.time(), error.user_message))
        else:
            self.event_bus.emit(CaptureFailedEvent(
                self.session_id, time.time(), type(error).__name__, error.user_message
            ))
        logger.info("Reported %s error to user: %s", component, error.user_message)

    def _report_unexpected(self, error: Exception, reported: InterviewError, component: str) -> None:
        """Contain a programming or library error and show ``reported`` to the user."""
        logger.error("Unexpected %s error: %s", component, error, exc_info=error)
        self.event_bus.emit(ErrorOccurredEvent(
            self.session_id, time.time(), type(error).__name__, str(error), component
        ))
        self._report(reported, component)

    def _clear_error(self) -> None:
        self.last_error = None
        self.show_retry = False

    def _on_turn_appended(self, turn: Turn) -> None:
        self.event_bus.emit(TurnAppendedEvent(
            self.session_id, time.time(), turn.speaker.value, turn.text, len(self.dialogue)
        ))

    def _on_levels(self, levels: List[float]) -> None:
        self.event_bus.emit(AudioLevelsEvent(self.session_id, time.time(), levels, self.elapsed_seconds))

    def _on_capture_state(self, state: CaptureState) -> None:
        self._emit_capture_state(state)

    def _emit_capture_state(self, state: Optional[CaptureState] = None) -> None:
        state = state or self.capture_state
        self.event_bus.emit(CaptureStateChangedEvent(self.session_id, time.time(), state.value, self.pending))
