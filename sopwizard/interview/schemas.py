"""
Interview stages, session state and turn outcomes.
"""
import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .models import SOPDocument, StepDraft


class Stage(str, Enum):
    """Interview stages in their fixed forward order."""
    INTRO = "intro"
    TITLE = "title"
    DESCRIPTION = "description"
    CATEGORY = "category"
    STAKEHOLDERS = "stakeholders"
    STEPS = "steps"
    FINALIZE = "finalize"
    COMPLETE = "complete"

    @property
    def index(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is Stage.COMPLETE

    def next(self) -> "Stage":
        """The stage that follows this one. The terminal stage has none."""
        if self.is_terminal:
            raise ValueError("The complete stage has no successor")
        return STAGE_ORDER[self.index + 1]


STAGE_ORDER: List[Stage] = list(Stage)

# Document field written by each stage's first accepted answer
STAGE_FIELDS: Dict[Stage, str] = {
    Stage.TITLE: "title",
    Stage.DESCRIPTION: "description",
    Stage.CATEGORY: "category",
    Stage.STAKEHOLDERS: "stakeholders",
}

# Case-insensitive substrings that end the steps stage.
# Known false positive: a real step such as "Complete the form" also matches.
TERMINATION_PATTERNS = ("done", "finish", "complete", "no more", "that's all")


def is_termination(text: str) -> bool:
    """Check whether a steps-stage answer asks to stop adding steps."""
    lowered = text.lower().replace("’", "'")
    return any(pattern in lowered for pattern in TERMINATION_PATTERNS)


class CaptureState(str, Enum):
    """Audio capture controller states."""
    IDLE = "idle"
    RECORDING = "recording"
    FLUSHING = "flushing"


@dataclass
class InterviewSession:
    """Manages interview state throughout the conversation."""
    stage: Stage = Stage.INTRO
    completed_stages: List[Stage] = field(default_factory=lambda: [Stage.INTRO])
    document: SOPDocument = field(default_factory=SOPDocument)
    steps: List[StepDraft] = field(default_factory=list)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def enter_stage(self, stage: Stage):
        """Move to a stage, recording it for progress display."""
        if stage not in self.completed_stages:
            self.completed_stages.append(stage)
        self.stage = stage

    def write_field(self, stage: Stage, value: str):
        """Write the document field owned by ``stage``, once."""
        name = STAGE_FIELDS[stage]
        if getattr(self.document, name) is not None:
            raise ValueError(f"Field '{name}' was already written")
        setattr(self.document, name, value)

    def add_step(self, text: str) -> StepDraft:
        """Append a step numbered after the ones already captured."""
        step = StepDraft(sequence_number=len(self.steps) + 1, text=text)
        self.steps.append(step)
        return step

    def progress(self) -> float:
        """Percentage of the interview completed, 0 to 100."""
        return self.stage.index / (len(STAGE_ORDER) - 1) * 100

    def progress_step_number(self) -> int:
        """1-based position of the current stage."""
        return self.stage.index + 1

    def copy(self) -> "InterviewSession":
        return copy.deepcopy(self)


@dataclass
class TurnOutcome:
    """What processing one user turn did."""
    accepted: bool
    stage_before: Stage
    stage_after: Stage
    reply: Optional[str] = None
    step: Optional[StepDraft] = None
    completed: bool = False
    error: Optional[str] = None

    @property
    def advanced(self) -> bool:
        return self.stage_after is not self.stage_before
