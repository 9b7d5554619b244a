"""
Default fundamental-frequency estimator for one audio block, using librosa's YIN.

The pipeline treats the estimator as an opaque callable:
    estimator(samples, sample_rate) -> Optional[float]
so any other detector can be swapped in. This one runs YIN once over the whole
block (center=False, frame_length = block length) and reports None for silent
blocks or blocks too short to cover the lag range.

Defaults (80-1000 Hz, trough threshold 0.1) are deliberately permissive for
quiet, uncertain singing; the stabilizer downstream does the filtering.
"""

import math
from typing import Callable, Optional

import numpy as np
import librosa

from .pitch_stabilizer import MAX_VOCAL_HZ, MIN_VOCAL_HZ

DEFAULT_TROUGH_THRESHOLD = 0.1
DEFAULT_SILENCE_RMS = 1e-4

FrequencyEstimator = Callable[[np.ndarray, int], Optional[float]]


class YinPitchEstimator:
    """
    Wrapper around librosa.yin for single-block estimates.
    """

    def __init__(
        self,
        fmin: float = MIN_VOCAL_HZ,
        fmax: float = MAX_VOCAL_HZ,
        trough_threshold: float = DEFAULT_TROUGH_THRESHOLD,
        silence_rms: float = DEFAULT_SILENCE_RMS,
    ):
        self.fmin = fmin
        self.fmax = fmax
        self.trough_threshold = trough_threshold
        self.silence_rms = silence_rms

    def min_block_size(self, sample_rate: int) -> int:
        """
        Smallest block that fits the longest period twice (YIN compares a window
        against a lagged copy of itself).
        """
        return 2 * int(math.ceil(sample_rate / self.fmin)) + 4

    def __call__(self, samples: np.ndarray, sample_rate: int) -> Optional[float]:
        samples = np.asarray(samples, dtype=np.float32)

        if samples.size < self.min_block_size(sample_rate):
            return None

        rms = float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))
        if rms < self.silence_rms:
            return None

        f0 = librosa.yin(
            samples,
            fmin=self.fmin,
            fmax=self.fmax,
            sr=sample_rate,
            frame_length=samples.size,
            hop_length=samples.size,
            trough_threshold=self.trough_threshold,
            center=False,
        )

        frequency = float(np.median(f0))
        if not math.isfinite(frequency) or frequency <= 0:
            return None
        return frequency
