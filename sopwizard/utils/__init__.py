"""Utility modules for imports, logging, timers and formatting."""

from .imports import import_quietly, load_module_quietly, with_suppressed_audio_warnings
from .logging import setup_logging
from .timers import PeriodicTask
from .formatting import format_time

__all__ = [
    "import_quietly", "load_module_quietly", "with_suppressed_audio_warnings", "setup_logging",
    "PeriodicTask", "format_time"
]
