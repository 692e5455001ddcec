"""Audio input hardware access (microphone streams)."""

from .microphone import (
    CaptureConstraints, AudioInputStream, AudioInputBackend,
    PyAudioBackend, PyAudioStream
)

__all__ = [
    "CaptureConstraints", "AudioInputStream", "AudioInputBackend",
    "PyAudioBackend", "PyAudioStream"
]
