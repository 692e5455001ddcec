"""
Data models for the interview system.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List, Any


class Speaker(str, Enum):
    """Who said a turn."""
    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class Turn:
    """Represents a single dialogue turn. Immutable once appended."""
    speaker: Speaker
    text: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class StepDraft:
    """One procedure step captured during the steps stage."""
    sequence_number: int
    text: str

    def __post_init__(self):
        if self.sequence_number < 1:
            raise ValueError(f"sequence_number must be >= 1, got {self.sequence_number}")


@dataclass
class SOPDocument:
    """The structured fields of the SOP being authored."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    stakeholders: Optional[str] = None
    definitions: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass
class InterviewResult:
    """Final interview output handed to whoever persists the SOP."""
    session_id: str
    document: SOPDocument
    steps: List[StepDraft] = field(default_factory=list)
    turns: List[Turn] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "document": self.document.to_dict(),
            "steps": [
                {"sequence_number": step.sequence_number, "text": step.text}
                for step in self.steps
            ],
            "turns": [
                {
                    "speaker": turn.speaker.value,
                    "text": turn.text,
                    "created_at": turn.created_at.isoformat(),
                }
                for turn in self.turns
            ],
        }
