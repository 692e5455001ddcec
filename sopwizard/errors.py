"""
Error taxonomy for the interview engine.

Every error here is recovered inside the engine: the wizard turns them into
``last_error`` / ``show_retry`` state and events, never into exceptions seen
by the host.
"""


class InterviewError(Exception):
    """Base class for recoverable interview errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str = "", user_message: str = ""):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


class CaptureError(InterviewError):
    """Audio input could not be captured."""


class CaptureUnavailable(CaptureError):
    """The host environment has no usable audio input."""

    user_message = ("Voice input isn't available on this device. "
                    "Please type your response instead.")


class CapturePermissionDenied(CaptureError):
    """The user or operating system refused microphone access."""

    user_message = ("Could not access your microphone. Make sure it is connected "
                    "and you have granted permissions.")


class CaptureTooShort(CaptureError):
    """The recorded segment is too small to contain speech."""

    user_message = ("The recording was too short. Please try again and speak "
                    "for a longer duration.")


class TranscriptionFailed(InterviewError):
    """Every transcription tier failed."""

    user_message = ("I couldn't understand what you said. Please try again "
                    "or type your response instead.")


class InvalidTurn(InterviewError):
    """An empty or whitespace-only user turn."""

    user_message = "I didn't catch that. Could you please provide more information?"


class RemoteTranscriptionError(RuntimeError):
    """The remote transcription endpoint returned an error status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Transcription endpoint error {status_code}: {body}")
