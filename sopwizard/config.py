"""
SOP Wizard Configuration System
===============================

This file contains ALL configuration for the SOP interview wizard.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the wizard's behavior
# =============================================================================

# Remote transcription endpoint (tier 2 of the fallback chain)
TRANSCRIBE_URL = "http://localhost:3000/api/transcribe"
TRANSCRIBE_BACKEND = "http"  # "http" or "google"
TRANSCRIBE_TIMEOUT = 15.0
TRANSCRIBE_AUTH_TOKEN = None  # Optional: bearer token for the endpoint

# Speech settings
ENABLE_VOICE = True
ENABLE_STREAMING_RECOGNIZER = True
LANGUAGE_CODE = "en-US"

# Output
OUTPUT_DIR = "./_sops"

# Logging
LOG_FILE = "./_sops/wizard.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 100
AUDIO_MIME_TYPE = "audio/wav"

# Capture constraints
ECHO_CANCELLATION = True
NOISE_SUPPRESSION = True
AUTO_GAIN_CONTROL = True

# Segment conditioning
TARGET_RMS = 0.06
MAX_GAIN = 20.0
NOISE_GATE_THRESHOLD = 0.01

# Anything smaller than this many raw bytes cannot plausibly contain speech
MIN_SEGMENT_BYTES = 1000

# Timers
TICK_SECONDS = 1.0
LEVEL_INTERVAL = 0.1

# Visualization
LEVEL_BANDS = 10
FFT_SIZE = 256
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0
SYNTHETIC_LEVEL_MAX = 0.7

# Streaming recognizer
STREAMING_CHUNK_MS = 100
STREAMING_TIMEOUT = 30.0


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    transcribe_url: str = TRANSCRIBE_URL
    transcribe_backend: str = TRANSCRIBE_BACKEND
    transcribe_timeout: float = TRANSCRIBE_TIMEOUT
    transcribe_auth_token: Optional[str] = TRANSCRIBE_AUTH_TOKEN
    enable_voice: bool = ENABLE_VOICE
    enable_streaming_recognizer: bool = ENABLE_STREAMING_RECOGNIZER
    language_code: str = LANGUAGE_CODE
    output_dir: str = OUTPUT_DIR
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    def validate(self) -> None:
        """Raise ValueError for settings the wizard cannot run with."""
        if self.transcribe_backend not in ("http", "google"):
            raise ValueError(
                f"Unknown transcription backend '{self.transcribe_backend}' (use 'http' or 'google')"
            )
        if self.transcribe_timeout <= 0:
            raise ValueError("Transcription timeout must be a positive number of seconds")
        if self.transcribe_backend == "http" and not self.transcribe_url:
            raise ValueError("Please set SOPWIZARD_TRANSCRIBE_URL for the http transcription backend")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{value}'")


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults."""
    config = Config(
        transcribe_url=os.getenv("SOPWIZARD_TRANSCRIBE_URL") or TRANSCRIBE_URL,
        transcribe_backend=os.getenv("SOPWIZARD_TRANSCRIBE_BACKEND") or TRANSCRIBE_BACKEND,
        transcribe_timeout=_env_float("SOPWIZARD_TRANSCRIBE_TIMEOUT", TRANSCRIBE_TIMEOUT),
        transcribe_auth_token=os.getenv("SOPWIZARD_TRANSCRIBE_TOKEN") or TRANSCRIBE_AUTH_TOKEN,
        enable_voice=_env_bool("SOPWIZARD_ENABLE_VOICE", ENABLE_VOICE),
        enable_streaming_recognizer=_env_bool("SOPWIZARD_STREAMING_RECOGNIZER", ENABLE_STREAMING_RECOGNIZER),
        language_code=os.getenv("SOPWIZARD_LANGUAGE_CODE") or LANGUAGE_CODE,
        output_dir=os.getenv("SOPWIZARD_OUTPUT_DIR") or OUTPUT_DIR,
        log_file=os.getenv("SOPWIZARD_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("SOPWIZARD_LOG_LEVEL") or LOG_LEVEL,
    )
    config.validate()
    return config
