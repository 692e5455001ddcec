"""Interview engine components.

This module contains the business logic of the SOP interview: the stage
state machine, the dialogue log, the wizard that wires them to audio
capture, and the events the host observes.
"""

# Engine boundary
from .orchestrator import InterviewWizard

# Data models
from .models import Speaker, Turn, StepDraft, SOPDocument, InterviewResult

# Stages, session state and outcomes
from .schemas import (
    Stage, STAGE_ORDER, STAGE_FIELDS, CaptureState,
    InterviewSession, TurnOutcome, is_termination
)

# Dialogue and state machine
from .dialogue import DialogueLog
from .state_machine import InterviewStateMachine
from .prompts import InterviewPrompts

# Host services
from .services import ConsoleService, SOPResultStore

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, InterviewStartedEvent, TurnAppendedEvent,
    StageChangedEvent, StepAddedEvent, CaptureStateChangedEvent,
    AudioLevelsEvent, CaptureFailedEvent, TranscriptionCompletedEvent,
    TranscriptionFailedEvent, InterviewCompletedEvent,
    InterviewCancelledEvent, ErrorOccurredEvent
)

# Testing infrastructure (imported conditionally to avoid dependencies)
try:
    from .testing import (
        MockAudioBackend, MockAudioStream, ScriptedTier,
        FakeSpeechClient, FakeTranscriptionClient,
        create_mock_wizard_setup, create_test_answers, speech_chunks
    )
    TESTING_AVAILABLE = True
except ImportError:
    TESTING_AVAILABLE = False

__all__ = [
    # Wizard
    "InterviewWizard",

    # Data models
    "Speaker", "Turn", "StepDraft", "SOPDocument", "InterviewResult",

    # Schemas and state
    "Stage", "STAGE_ORDER", "STAGE_FIELDS", "CaptureState",
    "InterviewSession", "TurnOutcome", "is_termination",

    # Dialogue and state machine
    "DialogueLog", "InterviewStateMachine", "InterviewPrompts",

    # Services
    "ConsoleService", "SOPResultStore",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "InterviewStartedEvent", "TurnAppendedEvent",
    "StageChangedEvent", "StepAddedEvent", "CaptureStateChangedEvent",
    "AudioLevelsEvent", "CaptureFailedEvent", "TranscriptionCompletedEvent",
    "TranscriptionFailedEvent", "InterviewCompletedEvent",
    "InterviewCancelledEvent", "ErrorOccurredEvent",

    # Testing (conditionally available)
    "TESTING_AVAILABLE"
]
