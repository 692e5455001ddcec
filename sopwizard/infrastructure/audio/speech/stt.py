"""
Speech-to-text using Google Cloud Speech.

Provides the streaming recognizer tier of the fallback chain and a
synchronous recognizer used as an alternative remote transcription backend.
"""
import asyncio
import io
import logging
import wave
from typing import Callable, Iterator, List, Optional, Tuple

from ....config import (
    LANGUAGE_CODE, SAMPLE_RATE_TARGET, STREAMING_CHUNK_MS, STREAMING_TIMEOUT
)
from ....utils import load_module_quietly
from .fallback import TierResult, TranscriptionTier
from .remote import TranscriptionClient, TranscriptionResponse

logger = logging.getLogger("speech_stt")


def _speech_module():
    """Import google.cloud.speech without its import-time noise."""
    return load_module_quietly("google.cloud.speech")


def _recognition_config(speech, sr_hz: int, language: str):
    return speech.RecognitionConfig(
        encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
        sample_rate_hertz=sr_hz,
        language_code=language,
        enable_automatic_punctuation=True,
    )


def recognize_google_sync(pcm16_bytes: bytes,
                          sr_hz: int = SAMPLE_RATE_TARGET,
                          language: str = LANGUAGE_CODE,
                          client=None) -> Tuple[str, float]:
    """
    Synchronous Google Cloud Speech-to-Text recognition.

    Returns:
        (transcript, mean confidence); empty text if no speech was detected
    """
    speech = _speech_module()
    client = client or speech.SpeechClient()
    audio = speech.RecognitionAudio(content=pcm16_bytes)
    config = _recognition_config(speech, sr_hz, language)

    resp = client.recognize(config=config, audio=audio)
    best = [r.alternatives[0] for r in resp.results if r.alternatives]
    text = " ".join(alt.transcript for alt in best).strip()
    confidence = sum(alt.confidence for alt in best) / len(best) if best else 0.0
    return text, confidence


class GoogleSpeechTranscriptionClient(TranscriptionClient):
    """Remote transcription backed by synchronous Google recognition."""

    def __init__(self, language_code: str = LANGUAGE_CODE, client=None):
        self.language_code = language_code
        self._client = client

    def transcribe(self, audio: bytes, mime_hint: str) -> TranscriptionResponse:
        pcm16, sr_hz = self._decode(audio, mime_hint)
        text, confidence = recognize_google_sync(pcm16, sr_hz, self.language_code, client=self._client)
        return TranscriptionResponse(text=text, confidence=confidence)

    def _decode(self, audio: bytes, mime_hint: str) -> Tuple[bytes, int]:
        if mime_hint not in ("audio/wav", "audio/x-wav", "audio/wave"):
            raise ValueError(f"Unsupported audio type for Google recognition: {mime_hint}")
        with wave.open(io.BytesIO(audio), "rb") as wf:
            if wf.getsampwidth() != 2 or wf.getnchannels() != 1:
                raise ValueError("Expected mono 16-bit WAV audio")
            return wf.readframes(wf.getnframes()), wf.getframerate()


class StreamingRecognizerTier(TranscriptionTier):
    """
    Plays a finished segment through Google streaming recognition.

    Only final results are kept. The tier is unavailable when the speech
    library or its credentials are missing, and failed when recognition
    errors out or hears nothing.
    """

    name = "streaming"

    def __init__(self,
                 client_factory: Optional[Callable[[], object]] = None,
                 language_code: str = LANGUAGE_CODE,
                 chunk_ms: int = STREAMING_CHUNK_MS,
                 timeout: float = STREAMING_TIMEOUT):
        self.client_factory = client_factory
        self.language_code = language_code
        self.chunk_ms = chunk_ms
        self.timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            if self.client_factory is not None:
                self._client = self.client_factory()
            else:
                self._client = _speech_module().SpeechClient()
        return self._client

    async def transcribe(self, segment) -> TierResult:
        try:
            speech = _speech_module()
            client = self._get_client()
        except Exception as e:
            # ImportError, missing credentials, bad endpoint configuration
            logger.info("Streaming recognizer unavailable: %s", e)
            return TierResult.unavailable(self.name, str(e))

        worker = asyncio.ensure_future(
            asyncio.to_thread(self._recognize, speech, client, segment.pcm16, segment.sample_rate)
        )
        try:
            text = await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
        except asyncio.CancelledError:
            # Recognizer threads cannot be interrupted, wait for this one
            done, _ = await asyncio.wait({worker}, timeout=self.timeout)
            if not done:
                logger.error("Streaming recognizer still running after cancellation")
            elif not worker.cancelled() and worker.exception() is not None:
                logger.debug("Cancelled recognition ended with: %s", worker.exception())
            raise
        except asyncio.TimeoutError:
            worker.add_done_callback(lambda f: f.cancelled() or f.exception())
            return TierResult.failed(self.name, f"no result within {self.timeout:.0f}s")
        except Exception as e:
            logger.warning("Streaming recognition failed: %s", e)
            return TierResult.failed(self.name, str(e))

        if not text:
            return TierResult.failed(self.name, "no speech recognised")
        return TierResult.success(self.name, text)

    def _recognize(self, speech, client, pcm16: bytes, sr_hz: int) -> str:
        streaming_config = speech.StreamingRecognitionConfig(
            config=_recognition_config(speech, sr_hz, self.language_code),
            interim_results=True,
        )
        requests = (
            speech.StreamingRecognizeRequest(audio_content=chunk)
            for chunk in self._chunks(pcm16, sr_hz)
        )
        responses = client.streaming_recognize(config=streaming_config, requests=requests)

        final: List[str] = []
        for response in responses:
            for result in response.results:
                if result.is_final and result.alternatives:
                    final.append(result.alternatives[0].transcript.strip())
        return " ".join(t for t in final if t).strip()

    def _chunks(self, pcm16: bytes, sr_hz: int) -> Iterator[bytes]:
        size = max(2, int(sr_hz * self.chunk_ms / 1000) * 2)
        for i in range(0, len(pcm16), size):
            yield pcm16[i:i + size]
