"""
Stage-based interview state machine and data accumulator.

The machine consumes one plain-text user turn at a time, regardless of
whether it was typed or transcribed, and decides the next system prompt,
field write or step append.
"""
import logging
import time
from typing import Callable, List, Optional, Tuple

from .dialogue import DialogueLog
from .events import (
    InterviewEventBus, StageChangedEvent, StepAddedEvent,
    InterviewCompletedEvent, ErrorOccurredEvent
)
from .models import SOPDocument, Speaker, StepDraft
from .prompts import InterviewPrompts
from .schemas import (
    InterviewSession, Stage, STAGE_FIELDS, TurnOutcome, is_termination
)
from ..errors import InvalidTurn

logger = logging.getLogger("state_machine")

CompletionCallback = Callable[[SOPDocument, List[StepDraft]], None]

HELP_COMMANDS = ("help", "?")


class InterviewStateMachine:
    """
    Drives an :class:`InterviewSession` through the fixed stage sequence.

    Each accepted turn appends the user turn and exactly one system turn to
    the dialogue log, in that order. Processing happens on a working copy of
    the session which replaces the live one only once the reply is ready, so
    a failure half way through leaves the session untouched.
    """

    def __init__(self,
                 dialogue: Optional[DialogueLog] = None,
                 on_complete: Optional[CompletionCallback] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 session: Optional[InterviewSession] = None):
        self.dialogue = dialogue if dialogue is not None else DialogueLog()
        self.on_complete = on_complete
        self.event_bus = event_bus
        self.session = session if session is not None else InterviewSession()
        self._completion_fired = False

    @property
    def stage(self) -> Stage:
        return self.session.stage

    def greet(self) -> str:
        """Append the opening system turn for a fresh session."""
        greeting = InterviewPrompts.greeting()
        self.dialogue.append(Speaker.SYSTEM, greeting)
        return greeting

    def process_turn(self, text: str) -> TurnOutcome:
        """
        Process one user turn.

        Args:
            text: The user's answer, typed or transcribed

        Returns:
            TurnOutcome describing what changed
        """
        stage_before = self.session.stage

        if stage_before.is_terminal:
            logger.warning("Ignoring turn received after completion: %r", text)
            return TurnOutcome(accepted=False, stage_before=stage_before, stage_after=stage_before)

        try:
            answer = self._validate(text)
        except InvalidTurn as e:
            logger.info("Rejected empty turn in stage %s", stage_before.value)
            self.dialogue.append(Speaker.SYSTEM, e.user_message)
            return TurnOutcome(accepted=False, stage_before=stage_before, stage_after=stage_before,
                               reply=e.user_message, error=type(e).__name__)

        self.dialogue.append(Speaker.USER, answer)

        if answer.lower() in HELP_COMMANDS:
            reply = InterviewPrompts.help(stage_before)
            self.dialogue.append(Speaker.SYSTEM, reply)
            # Help answers the question without counting as an answer to the stage
            return TurnOutcome(accepted=False, stage_before=stage_before, stage_after=stage_before, reply=reply)

        try:
            working = self.session.copy()
            step, reply = self._apply(working, answer)
        except Exception as e:
            logger.error("Failed to process turn in stage %s: %s", stage_before.value, e, exc_info=True)
            reply = InterviewPrompts.turn_error()
            self.dialogue.append(Speaker.SYSTEM, reply)
            self._emit(ErrorOccurredEvent(
                self.session.session_id, time.time(), type(e).__name__, str(e), "state_machine"
            ))
            return TurnOutcome(accepted=False, stage_before=stage_before, stage_after=stage_before,
                               reply=reply, error=type(e).__name__)

        self.session = working
        self.dialogue.append(Speaker.SYSTEM, reply)
        logger.info("Turn accepted: %s -> %s", stage_before.value, working.stage.value)

        if step is not None:
            self._emit(StepAddedEvent(working.session_id, time.time(), step.sequence_number, step.text))
        if working.stage is not stage_before:
            self._emit(StageChangedEvent(
                working.session_id, time.time(), stage_before.value, working.stage.value, working.progress()
            ))

        completed = working.stage.is_terminal
        if completed:
            self._fire_completion()

        return TurnOutcome(
            accepted=True,
            stage_before=stage_before,
            stage_after=working.stage,
            reply=reply,
            step=step,
            completed=completed
        )

    def _validate(self, text: Optional[str]) -> str:
        if text is None or not text.strip():
            raise InvalidTurn("empty user turn")
        return text.strip()

    def _apply(self, session: InterviewSession, answer: str) -> Tuple[Optional[StepDraft], str]:
        """Mutate ``session`` for one accepted answer and build the reply."""
        stage = session.stage

        if stage is Stage.STEPS:
            if is_termination(answer):
                session.enter_stage(Stage.FINALIZE)
                return None, InterviewPrompts.finalize_summary(session.document, session.steps)
            step = session.add_step(answer)
            return step, InterviewPrompts.step_added(session.steps, session.document.title)

        if stage in STAGE_FIELDS:
            session.write_field(stage, answer)

        next_stage = stage.next()
        session.enter_stage(next_stage)
        return None, self._prompt_for(next_stage, session)

    def _prompt_for(self, stage: Stage, session: InterviewSession) -> str:
        document = session.document
        if stage is Stage.TITLE:
            return InterviewPrompts.ask_title()
        if stage is Stage.DESCRIPTION:
            return InterviewPrompts.ask_description(document.title)
        if stage is Stage.CATEGORY:
            return InterviewPrompts.ask_category()
        if stage is Stage.STAKEHOLDERS:
            return InterviewPrompts.ask_stakeholders(document.category)
        if stage is Stage.STEPS:
            return InterviewPrompts.ask_first_step()
        if stage is Stage.FINALIZE:
            return InterviewPrompts.finalize_summary(document, session.steps)
        if stage is Stage.COMPLETE:
            return InterviewPrompts.completed(document.title)
        raise ValueError(f"No prompt for stage {stage.value}")

    def _fire_completion(self) -> None:
        if self._completion_fired:
            return
        self._completion_fired = True

        document = self.session.document
        steps = list(self.session.steps)
        self._emit(InterviewCompletedEvent(self.session.session_id, time.time(), document.title, len(steps)))

        if self.on_complete is None:
            return
        try:
            self.on_complete(document, steps)
        except Exception as e:
            logger.error("Completion callback failed: %s", e, exc_info=True)
            self._emit(ErrorOccurredEvent(
                self.session.session_id, time.time(), type(e).__name__, str(e), "completion_callback"
            ))

    def _emit(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event)
