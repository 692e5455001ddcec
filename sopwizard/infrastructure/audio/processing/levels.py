"""
Amplitude levels for the recording visualizer.

Purely cosmetic: nothing here is on the capture or transcription path.
"""
import random
from typing import List, Optional

import numpy as np

from ....config import (
    LEVEL_BANDS, FFT_SIZE, MIN_DECIBELS, MAX_DECIBELS, SYNTHETIC_LEVEL_MAX
)
from .processing import pcm16_to_float


def band_levels(pcm16: bytes,
                bands: int = LEVEL_BANDS,
                fft_size: int = FFT_SIZE,
                min_db: float = MIN_DECIBELS,
                max_db: float = MAX_DECIBELS) -> List[float]:
    """
    Reduce the most recent audio to a few frequency-band levels.

    Takes the last ``fft_size`` samples, computes a windowed magnitude
    spectrum, maps decibels in [min_db, max_db] onto [0, 1] and averages the
    bins into ``bands`` groups.

    Args:
        pcm16: Recent mono PCM16 audio
        bands: Number of output values
        fft_size: Samples per analysis window
        min_db: Level shown as 0
        max_db: Level shown as 1

    Returns:
        ``bands`` floats in [0, 1]
    """
    samples = pcm16_to_float(pcm16)[-fft_size:]
    if samples.size < fft_size:
        samples = np.pad(samples, (fft_size - samples.size, 0))

    window = np.blackman(fft_size)
    spectrum = np.abs(np.fft.rfft(samples * window))[:fft_size // 2] / fft_size
    decibels = 20 * np.log10(np.maximum(spectrum, 1e-12))
    scaled = np.clip((decibels - min_db) / (max_db - min_db), 0.0, 1.0)

    step = max(1, scaled.size // bands)
    return [float(np.mean(scaled[i * step:(i + 1) * step])) for i in range(bands)]


def synthetic_levels(bands: int = LEVEL_BANDS,
                     ceiling: float = SYNTHETIC_LEVEL_MAX,
                     rng: Optional[random.Random] = None) -> List[float]:
    """Pseudo-random levels for when real analysis is unavailable."""
    rng = rng or random
    return [rng.random() * ceiling for _ in range(bands)]
