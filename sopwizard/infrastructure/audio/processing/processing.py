"""
Basic audio processing functions including format conversions and normalization.
"""
import io
import math
import wave

import numpy as np
from scipy.signal import resample_poly

from ....config import TARGET_RMS, MAX_GAIN, NOISE_GATE_THRESHOLD


def pcm16_to_float(pcm16: bytes) -> np.ndarray:
    """Convert little-endian PCM16 bytes to float32 samples in [-1, 1]."""
    samples = np.frombuffer(pcm16, dtype="<i2")
    return samples.astype(np.float32) / 32768.0


def float_to_pcm16(audio: np.ndarray) -> bytes:
    """Convert float samples back to PCM16 bytes, clipping out-of-range values."""
    return np.clip(audio * 32767, -32768, 32767).astype("<i2").tobytes()


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def noise_gate(x: np.ndarray, threshold: float = NOISE_GATE_THRESHOLD,
               frame: int = 480) -> np.ndarray:
    """Silence frames whose RMS stays below ``threshold``."""
    if x.size == 0:
        return x
    gated = x.copy()
    for start in range(0, gated.size, frame):
        block = gated[start:start + frame]
        if np.sqrt(np.mean(block ** 2)) < threshold:
            gated[start:start + frame] = 0.0
    return gated


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS,
                    max_gain: float = MAX_GAIN) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio ** 2)))
    if rms <= 1e-9:
        return audio
    gain = min(max_gain, target_rms / rms)
    return audio * gain


def resample(audio: np.ndarray, sr_from: int, sr_to: int) -> np.ndarray:
    """Resample between integer rates with a polyphase filter."""
    if sr_from == sr_to or audio.size == 0:
        return audio.astype(np.float32)
    g = math.gcd(sr_from, sr_to)
    return resample_poly(audio, up=sr_to // g, down=sr_from // g).astype(np.float32)


def write_wav(pcm16: bytes, sr: int, channels: int = 1) -> bytes:
    """Wrap PCM16 audio data in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16)
    return buffer.getvalue()


def condition_segment(pcm16: bytes, sr_capture: int, sr_target: int,
                      noise_suppression: bool = True,
                      auto_gain: bool = True) -> bytes:
    """
    Prepare captured PCM16 audio for speech recognition.

    Removes DC offset, gates background noise, normalises loudness and
    resamples to the recognizer rate.

    Args:
        pcm16: Raw mono PCM16 audio at ``sr_capture``
        sr_capture: Rate the audio was captured at
        sr_target: Rate the recognizers expect
        noise_suppression: Apply the noise gate
        auto_gain: Apply RMS normalisation

    Returns:
        Mono PCM16 bytes at ``sr_target``
    """
    audio = remove_dc(pcm16_to_float(pcm16))
    if noise_suppression:
        audio = noise_gate(audio)
    if auto_gain:
        audio = normalize_audio(audio)
    return float_to_pcm16(resample(audio, sr_capture, sr_target))
