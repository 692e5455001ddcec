"""
Remote transcription tier.

Sends the whole recording to a transcription service and waits, bounded,
for its answer. There is a single attempt per recording.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests
from pydantic import BaseModel, ValidationError

from ....config import TRANSCRIBE_URL, TRANSCRIBE_TIMEOUT
from ....errors import RemoteTranscriptionError
from .fallback import TierResult, TranscriptionTier

logger = logging.getLogger("remote_transcription")


class TranscriptionResponse(BaseModel):
    """What a transcription service returns."""
    text: str = ""
    confidence: float = 0.0


class TranscriptionClient(ABC):
    """Audio bytes in, best-effort text out. May raise."""

    @abstractmethod
    def transcribe(self, audio: bytes, mime_hint: str) -> TranscriptionResponse:
        ...

    def close(self) -> None:
        """Abort any request in flight and release network resources."""


class HttpTranscriptionClient(TranscriptionClient):
    """Posts the recording as multipart field ``audio`` to a REST endpoint."""

    def __init__(self,
                 url: str = TRANSCRIBE_URL,
                 timeout: float = TRANSCRIBE_TIMEOUT,
                 auth_token: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.auth_token = auth_token
        self.session = session or requests.Session()

    def transcribe(self, audio: bytes, mime_hint: str) -> TranscriptionResponse:
        extension = mime_hint.split("/")[-1].replace("x-", "") or "bin"
        files = {"audio": (f"recording.{extension}", audio, mime_hint)}
        headers = {}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        resp = self.session.post(self.url, files=files, headers=headers, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RemoteTranscriptionError(resp.status_code, resp.text)

        try:
            return TranscriptionResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise RemoteTranscriptionError(resp.status_code, f"unreadable response: {e}")

    def close(self) -> None:
        self.session.close()


def create_transcription_client(config) -> TranscriptionClient:
    """Pick the remote backend named by ``config.transcribe_backend``."""
    if config.transcribe_backend == "google":
        from .stt import GoogleSpeechTranscriptionClient
        return GoogleSpeechTranscriptionClient(language_code=config.language_code)
    return HttpTranscriptionClient(
        url=config.transcribe_url,
        timeout=config.transcribe_timeout,
        auth_token=config.transcribe_auth_token,
    )


class RemoteTranscriptionTier(TranscriptionTier):
    """Second tier: one bounded call to a TranscriptionClient."""

    name = "remote"

    def __init__(self, client: TranscriptionClient, timeout: float = TRANSCRIBE_TIMEOUT):
        self.client = client
        self.timeout = timeout

    async def transcribe(self, segment) -> TierResult:
        worker = asyncio.ensure_future(
            asyncio.to_thread(self.client.transcribe, segment.wav_bytes, segment.mime_type)
        )
        try:
            response = await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
        except asyncio.CancelledError:
            logger.info("Remote transcription cancelled, closing the request")
            await self._abandon(worker)
            raise
        except asyncio.TimeoutError:
            logger.warning("Remote transcription timed out after %.1fs", self.timeout)
            await self._abandon(worker)
            return TierResult.failed(self.name, "timeout")
        except (requests.RequestException, RemoteTranscriptionError) as e:
            logger.warning("Remote transcription request failed: %s", e)
            return TierResult.failed(self.name, str(e))
        except Exception as e:
            logger.error("Remote transcription failed: %s", e, exc_info=True)
            return TierResult.failed(self.name, str(e))

        text = response.text.strip()
        if not text:
            return TierResult.failed(self.name, "no text was transcribed")
        logger.debug("Remote transcript confidence %.2f", response.confidence)
        return TierResult.success(self.name, text)

    async def _abandon(self, worker: asyncio.Future) -> None:
        """
        Close the client and wait for its worker thread to return.

        The wait is bounded by the tier timeout, which is also the HTTP
        timeout of the default client.
        """
        self.client.close()
        done, _ = await asyncio.wait({worker}, timeout=self.timeout)
        if not done:
            logger.error("Remote transcription worker still running after %.1fs", self.timeout)
        elif not worker.cancelled() and worker.exception() is not None:
            logger.debug("Abandoned remote request ended with: %s", worker.exception())
