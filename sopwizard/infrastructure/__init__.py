"""Infrastructure components for the SOP wizard.

This module contains low-level technical components that provide
foundational capabilities for the interview engine: microphone access,
signal conditioning and speech-to-text.
"""

# Audio infrastructure
from .audio import (
    PyAudioBackend, CaptureConstraints, AudioCaptureController,
    TranscriptionFallbackChain, create_transcription_chain
)

__all__ = [
    # Audio capture
    "PyAudioBackend", "CaptureConstraints", "AudioCaptureController",

    # Speech services
    "TranscriptionFallbackChain", "create_transcription_chain"
]
