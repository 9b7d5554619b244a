"""
Handles getting audio from disk into fixed-size blocks for the frame-by-frame pipeline.
Audio is loaded as mono at 44,100 Hz, the rate the live capture path runs at.
Blocks are 2048 samples, hopped at roughly 60 frames per second, each tagged with
the time of its first sample. The stabilizer and segmenter count frames, so the
hop size sets how long confirmations and silence timeouts last in seconds.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
import librosa

CAPTURE_SAMPLE_RATE = 44100
DEFAULT_BLOCK_SIZE = 2048
DEFAULT_FRAME_RATE = 60
SUPPORTED_FORMATS = {'.mp3', '.wav', '.flac', '.ogg', '.m4a'}


@dataclass
class AudioData:
    """Container for loaded audio data."""
    samples: np.ndarray
    sample_rate: int
    duration_sec: float
    file_path: Path

    @property
    def num_samples(self) -> int:
        return len(self.samples)

    def __repr__(self) -> str:
        return (
            f"AudioData({self.file_path.name}, "
            f"{self.duration_sec:.2f}s @ {self.sample_rate}Hz, "
            f"{self.num_samples:,} samples)"
        )


def load_audio(
    file_path: str | Path,
    target_sr: int = CAPTURE_SAMPLE_RATE,
    normalize: bool = False,
) -> AudioData:
    """
    Load an audio file as mono float samples.
    Raises FileNotFoundError or ValueError for missing or unsupported files.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {SUPPORTED_FORMATS}")

    samples, sr = librosa.load(file_path, sr=target_sr, mono=True)

    if normalize:
        samples = normalize_audio(samples)

    return AudioData(
        samples=samples,
        sample_rate=sr,
        duration_sec=len(samples) / sr,
        file_path=file_path,
    )


def normalize_audio(samples: np.ndarray, target_peak: float = 1.0) -> np.ndarray:
    """
    Peak normalization. Raises clarity for very quiet recordings.
    """
    peak = np.max(np.abs(samples)) if len(samples) else 0.0
    if peak < 1e-8:  # Avoid division by zero for silent audio
        return samples
    return samples * (target_peak / peak)


def default_hop_size(sample_rate: int, frame_rate: int = DEFAULT_FRAME_RATE) -> int:
    return max(1, sample_rate // frame_rate)


def iter_blocks(
    samples: np.ndarray,
    sample_rate: int,
    block_size: int = DEFAULT_BLOCK_SIZE,
    hop_size: Optional[int] = None,
) -> Iterator[Tuple[np.ndarray, float]]:
    """
    Yield (block, timestamp_sec) pairs with monotonically increasing timestamps.
    A trailing partial block is zero-padded so the final frames are not lost.
    """
    if hop_size is None:
        hop_size = default_hop_size(sample_rate)
    if block_size <= 0 or hop_size <= 0:
        raise ValueError(f"block_size and hop_size must be positive: {block_size}, {hop_size}")

    samples = np.asarray(samples, dtype=np.float32)
    for start in range(0, len(samples), hop_size):
        block = samples[start:start + block_size]
        if len(block) < block_size:
            block = np.pad(block, (0, block_size - len(block)))
        yield block, start / sample_rate
