"""Audio conditioning, level metering and capture."""

# Import processing functions immediately (numpy/scipy only)
from .processing import (
    remove_dc,
    noise_gate,
    normalize_audio,
    resample,
    write_wav,
    condition_segment
)
from .levels import band_levels, synthetic_levels


# Lazy imports for capture (keeps this package importable from the interview layer)
def _get_capture(name):
    from . import capture
    return getattr(capture, name)


def __getattr__(name):
    if name in ("AudioCaptureController", "AudioChunk", "AudioSegment"):
        return _get_capture(name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "AudioCaptureController",
    "AudioChunk",
    "AudioSegment",
    "remove_dc",
    "noise_gate",
    "normalize_audio",
    "resample",
    "write_wav",
    "condition_segment",
    "band_levels",
    "synthetic_levels"
]
