"""
Host-side services used around the wizard: console output and result storage.
"""
import json
import logging
import os
from typing import Optional

from .events import EventType, InterviewEvent
from .models import InterviewResult, Speaker

logger = logging.getLogger("services")


class ConsoleService:
    """Prints dialogue turns for a terminal host."""

    def __init__(self, show_user_turns: bool = False):
        self.show_user_turns = show_user_turns

    def handle_event(self, event: InterviewEvent) -> None:
        """Print system turns (and optionally user turns) as they are logged."""
        if event.event_type != EventType.TURN_APPENDED:
            return
        if event.data["speaker"] == Speaker.SYSTEM.value:
            self.say(event.data["text"])
        elif self.show_user_turns:
            self.say(event.data["text"], prefix="🗣️ ")

    def say(self, message: str, prefix: str = "🤖") -> None:
        """Print a message with a leading emoji."""
        print(f"{prefix} {message}")
        logger.debug("Printed: %s", message)


class SOPResultStore:
    """Writes finished interviews to the output directory as JSON."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def result_path(self, session_id: str) -> str:
        return os.path.join(self.output_dir, f"sop_{session_id}.json")

    def save(self, result: InterviewResult, path: Optional[str] = None) -> str:
        """
        Persist an interview result.

        Args:
            result: The completed interview
            path: Explicit file path; defaults to ``sop_<session_id>.json``
                in the output directory

        Returns:
            Path the result was written to
        """
        path = path or self.result_path(result.session_id)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info("Saved SOP draft to %s", path)
        return path

    def load(self, path: str) -> dict:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
