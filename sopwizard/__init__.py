"""
SOP Wizard: a guided interview engine for authoring Standard Operating Procedures.

Alternates system prompts with typed or spoken answers, collects the SOP's
fields and procedure steps, and reconciles streaming speech recognition,
remote transcription and manual typing into one text answer per turn.
"""

__version__ = "0.1.0"

# Main entry points
from .interview.orchestrator import InterviewWizard
from .interview.models import SOPDocument, StepDraft, Turn, InterviewResult

__all__ = ["InterviewWizard", "SOPDocument", "StepDraft", "Turn", "InterviewResult"]
