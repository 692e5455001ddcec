"""Speech-to-text tiers and the transcription fallback chain."""

from .fallback import (
    TierStatus, TierResult, TranscriptionTier,
    TranscriptionFallbackChain, create_transcription_chain
)
from .remote import (
    TranscriptionResponse, TranscriptionClient,
    HttpTranscriptionClient, RemoteTranscriptionTier, create_transcription_client
)
from .stt import (
    StreamingRecognizerTier, GoogleSpeechTranscriptionClient, recognize_google_sync
)

__all__ = [
    "TierStatus", "TierResult", "TranscriptionTier",
    "TranscriptionFallbackChain", "create_transcription_chain",
    "TranscriptionResponse", "TranscriptionClient",
    "HttpTranscriptionClient", "RemoteTranscriptionTier", "create_transcription_client",
    "StreamingRecognizerTier", "GoogleSpeechTranscriptionClient", "recognize_google_sync"
]
