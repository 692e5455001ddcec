"""
Audio capture and speech services for the SOP wizard.

This module contains all audio-related functionality organized into clear submodules:
- hardware: Microphone input backends
- processing: Signal conditioning, level metering and the capture controller
- speech: Transcription tiers and the fallback chain
"""

# Convenient imports from submodules
from .hardware import PyAudioBackend, CaptureConstraints
from .processing import AudioCaptureController, condition_segment
from .speech import TranscriptionFallbackChain, create_transcription_chain

__all__ = [
    "PyAudioBackend",
    "CaptureConstraints",
    "AudioCaptureController",
    "condition_segment",
    "TranscriptionFallbackChain",
    "create_transcription_chain"
]
