"""
Ordered transcription fallback chain.

Each tier reports a tagged result instead of raising, and the chain only
moves to the next tier once the current one has definitively given up.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from ....errors import TranscriptionFailed

logger = logging.getLogger("transcription")


class TierStatus(str, Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class TierResult:
    """Outcome of one transcription attempt."""
    tier: str
    status: TierStatus
    text: str = ""
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TierStatus.SUCCESS

    @classmethod
    def success(cls, tier: str, text: str) -> "TierResult":
        return cls(tier=tier, status=TierStatus.SUCCESS, text=text)

    @classmethod
    def unavailable(cls, tier: str, reason: str) -> "TierResult":
        return cls(tier=tier, status=TierStatus.UNAVAILABLE, reason=reason)

    @classmethod
    def failed(cls, tier: str, reason: str) -> "TierResult":
        return cls(tier=tier, status=TierStatus.FAILED, reason=reason)


class TranscriptionTier(ABC):
    """One way of turning an audio segment into text."""

    name = "tier"

    @abstractmethod
    async def transcribe(self, segment) -> TierResult:
        """
        Attempt to transcribe ``segment`` (an AudioSegment).

        Must not raise: every problem is reported as an unavailable or
        failed result. A success always carries non-empty text.
        """


class TranscriptionFallbackChain:
    """Runs tiers strictly in order until one succeeds."""

    def __init__(self, tiers: Sequence[TranscriptionTier]):
        self.tiers: List[TranscriptionTier] = list(tiers)
        self.attempts: List[TierResult] = []
        self.last_result: Optional[TierResult] = None

    async def transcribe(self, segment) -> TierResult:
        """
        Transcribe a segment with the first tier that can.

        Returns:
            The successful TierResult

        Raises:
            TranscriptionFailed: No tier produced text
        """
        self.attempts = []
        self.last_result = None

        for tier in self.tiers:
            try:
                result = await tier.transcribe(segment)
            except Exception as e:
                logger.error("Transcription tier %s raised: %s", tier.name, e, exc_info=True)
                result = TierResult.failed(tier.name, str(e))

            if result.ok and not result.text.strip():
                result = TierResult.failed(tier.name, "empty transcript")

            self.attempts.append(result)
            if result.ok:
                logger.info("Transcribed by %s: %r", tier.name, result.text)
                self.last_result = result
                return result
            logger.warning("Tier %s %s: %s", tier.name, result.status.value, result.reason)

        raise TranscriptionFailed(
            "all transcription tiers failed: "
            + "; ".join(f"{r.tier}={r.status.value}" for r in self.attempts)
        )


def create_transcription_chain(config, speech_client=None, transcription_client=None) -> TranscriptionFallbackChain:
    """
    Build the default chain for a configuration.

    Args:
        config: Config instance
        speech_client: Optional Google SpeechClient for the streaming tier
        transcription_client: Optional TranscriptionClient for the remote tier
    """
    from .remote import RemoteTranscriptionTier, create_transcription_client
    from .stt import StreamingRecognizerTier

    tiers: List[TranscriptionTier] = []
    if config.enable_streaming_recognizer:
        factory = (lambda: speech_client) if speech_client is not None else None
        tiers.append(StreamingRecognizerTier(client_factory=factory, language_code=config.language_code))

    client = transcription_client or create_transcription_client(config)
    tiers.append(RemoteTranscriptionTier(client, timeout=config.transcribe_timeout))
    return TranscriptionFallbackChain(tiers)
