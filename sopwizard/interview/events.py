"""
Event-driven architecture for the interview wizard.

The host UI observes the engine only through these events: dialogue updates,
capture state, transcription results and completion.
"""
import logging
from abc import ABC
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, DefaultDict, Dict, List, Optional

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    INTERVIEW_STARTED = "interview_started"
    TURN_APPENDED = "turn_appended"
    STAGE_CHANGED = "stage_changed"
    STEP_ADDED = "step_added"
    CAPTURE_STATE_CHANGED = "capture_state_changed"
    AUDIO_LEVELS = "audio_levels"
    CAPTURE_FAILED = "capture_failed"
    TRANSCRIPTION_COMPLETED = "transcription_completed"
    TRANSCRIPTION_FAILED = "transcription_failed"
    INTERVIEW_COMPLETED = "interview_completed"
    INTERVIEW_CANCELLED = "interview_cancelled"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


class InterviewStartedEvent(InterviewEvent):
    """The wizard opened and greeted the user."""
    def __init__(self, session_id: str, timestamp: float, stage: str):
        super().__init__(EventType.INTERVIEW_STARTED, session_id, timestamp, {"stage": stage})


class TurnAppendedEvent(InterviewEvent):
    """A turn was added to the dialogue log."""
    def __init__(self, session_id: str, timestamp: float, speaker: str, text: str, turn_count: int):
        super().__init__(EventType.TURN_APPENDED, session_id, timestamp,
                         {"speaker": speaker, "text": text, "turn_count": turn_count})


class StageChangedEvent(InterviewEvent):
    """The interview moved forward to another stage."""
    def __init__(self, session_id: str, timestamp: float, from_stage: str, to_stage: str, progress: float):
        super().__init__(EventType.STAGE_CHANGED, session_id, timestamp,
                         {"from_stage": from_stage, "to_stage": to_stage, "progress": progress})


class StepAddedEvent(InterviewEvent):
    """A procedure step was captured."""
    def __init__(self, session_id: str, timestamp: float, sequence_number: int, text: str):
        super().__init__(EventType.STEP_ADDED, session_id, timestamp,
                         {"sequence_number": sequence_number, "text": text})


class CaptureStateChangedEvent(InterviewEvent):
    """The capture controller changed state, or the pending flag flipped."""
    def __init__(self, session_id: str, timestamp: float, state: str, pending: bool):
        super().__init__(EventType.CAPTURE_STATE_CHANGED, session_id, timestamp,
                         {"state": state, "pending": pending})


class AudioLevelsEvent(InterviewEvent):
    """One visualizer sample."""
    def __init__(self, session_id: str, timestamp: float, levels: List[float], elapsed_seconds: int):
        super().__init__(EventType.AUDIO_LEVELS, session_id, timestamp,
                         {"levels": list(levels), "elapsed_seconds": elapsed_seconds})


class CaptureFailedEvent(InterviewEvent):
    """Audio could not be captured (unavailable, refused or too short)."""
    def __init__(self, session_id: str, timestamp: float, error_type: str, user_message: str):
        super().__init__(EventType.CAPTURE_FAILED, session_id, timestamp,
                         {"error_type": error_type, "user_message": user_message})


class TranscriptionCompletedEvent(InterviewEvent):
    """A transcription tier produced the text of a spoken answer."""
    def __init__(self, session_id: str, timestamp: float, tier: str, text: str):
        super().__init__(EventType.TRANSCRIPTION_COMPLETED, session_id, timestamp,
                         {"tier": tier, "text": text})


class TranscriptionFailedEvent(InterviewEvent):
    """Every transcription tier failed."""
    def __init__(self, session_id: str, timestamp: float, user_message: str):
        super().__init__(EventType.TRANSCRIPTION_FAILED, session_id, timestamp,
                         {"user_message": user_message})


class InterviewCompletedEvent(InterviewEvent):
    """The interview reached its terminal stage."""
    def __init__(self, session_id: str, timestamp: float, title: Optional[str], step_count: int):
        super().__init__(EventType.INTERVIEW_COMPLETED, session_id, timestamp,
                         {"title": title, "step_count": step_count})


class InterviewCancelledEvent(InterviewEvent):
    """The wizard was cancelled; no completion will follow."""
    def __init__(self, session_id: str, timestamp: float, stage: str):
        super().__init__(EventType.INTERVIEW_CANCELLED, session_id, timestamp, {"stage": stage})


class ErrorOccurredEvent(InterviewEvent):
    """An unexpected error was contained inside the engine."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(EventType.ERROR_OCCURRED, session_id, timestamp, {
            "error_type": error_type,
            "error_message": error_message,
            "component": component,
        })


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """
    Synchronous publish/subscribe between the engine and its observers.

    Handlers run in subscription order on the emitting thread. A handler
    that raises is logged and skipped; it never affects the emitter.
    """

    def __init__(self):
        self._handlers: DefaultDict[EventType, List[EventHandler]] = defaultdict(list)
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Call ``handler`` for every event of ``event_type``."""
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Call ``handler`` for every event."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Remove a handler added with :meth:`subscribe`. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Unsubscribed handler from {event_type.value}")
        else:
            logger.warning(f"Handler not found for {event_type.value}")

    def emit(self, event: InterviewEvent) -> None:
        """Deliver ``event`` to its type's handlers, then to global handlers."""
        for handler in [*self._handlers.get(event.event_type, []), *self._global_handlers]:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type.value}: {e}")

    def clear_handlers(self) -> None:
        """Remove every handler."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Writes every event to the log file."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        # Level samples arrive ten times a second
        level = logging.DEBUG if event.event_type == EventType.AUDIO_LEVELS else self.log_level
        self.logger.log(level, "Event: %s | Session: %s | Data: %s",
                        event.event_type.value, event.session_id, event.data)


class InterviewMetrics:
    """Counts interview events for a session summary."""

    COUNTED = {
        EventType.INTERVIEW_STARTED: "interviews_started",
        EventType.INTERVIEW_COMPLETED: "interviews_completed",
        EventType.INTERVIEW_CANCELLED: "interviews_cancelled",
        EventType.STEP_ADDED: "steps_added",
        EventType.TRANSCRIPTION_COMPLETED: "transcriptions_completed",
        EventType.TRANSCRIPTION_FAILED: "transcriptions_failed",
        EventType.CAPTURE_FAILED: "capture_failures",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.TURN_APPENDED:
            if event.data.get("speaker") == "user":
                self._counts["user_turns"] += 1
            return
        name = self.COUNTED.get(event.event_type)
        if name is not None:
            self._counts[name] += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return dict(self._counts)

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self._counts: Dict[str, int] = {name: 0 for name in self.COUNTED.values()}
        self._counts["user_turns"] = 0
