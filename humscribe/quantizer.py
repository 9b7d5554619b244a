"""
Bridge gap between raw transcription in continuous time and a musical grid for notation.
Tempo is estimated from note durations by clustering them and treating the dominant
cluster as a quarter note. Users can override the tempo manually.

The quantizer always works from the raw (unquantized) melody; re-running it on a
quantized melody with the same settings is a no-op.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from .note_events import Melody, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_BPM = 120
DEFAULT_SUBDIVISION = 8  # 4 = quarter notes, 8 = eighth notes, 16 = sixteenth notes

MANUAL_MIN_BPM = 40
MANUAL_MAX_BPM = 240
AUTO_MIN_BPM = 60
AUTO_MAX_BPM = 180

# Durations considered plausible beat candidates, exclusive bounds in seconds
MIN_BEAT_CANDIDATE_SEC = 0.1
MAX_BEAT_CANDIDATE_SEC = 2.0
CLUSTER_TOLERANCE_SEC = 0.15

OVERLAP_GAP_SEC = 0.01


@dataclass
class QuantizationConfig:
    """Configuration for the quantization process."""
    tempo_bpm: float = DEFAULT_BPM
    subdivision: int = DEFAULT_SUBDIVISION  # note value of one grid unit, 8 = eighth-note grid
    swing: float = 0.0  # 0 = straight, 0.5 = full swing; not applied to the grid yet

    @property
    def beat_duration_sec(self) -> float:
        return 60.0 / self.tempo_bpm

    @property
    def grid_duration_sec(self) -> float:
        subdivisions_per_beat = self.subdivision / 4
        return self.beat_duration_sec / subdivisions_per_beat


@dataclass
class DurationCluster:
    center: float
    count: int
    total: float

    def add(self, duration: float) -> None:
        self.count += 1
        self.total += duration
        self.center = self.total / self.count


def clamp_bpm(bpm: float) -> float:
    """Clamp a manually chosen tempo to the supported range."""
    return max(MANUAL_MIN_BPM, min(MANUAL_MAX_BPM, bpm))


def cluster_durations(durations: List[float], tolerance: float = CLUSTER_TOLERANCE_SEC) -> List[DurationCluster]:
    """
    Single-pass grouping of durations in ascending order. Each duration joins the
    first cluster whose running mean is within tolerance, else starts a new one.
    Returned largest first; equal counts keep creation order.
    """
    clusters: List[DurationCluster] = []
    for duration in sorted(durations):
        for cluster in clusters:
            if abs(cluster.center - duration) < tolerance:
                cluster.add(duration)
                break
        else:
            clusters.append(DurationCluster(center=duration, count=1, total=duration))

    return sorted(clusters, key=lambda c: c.count, reverse=True)


def estimate_tempo(notes: Melody, default_bpm: int = DEFAULT_BPM) -> int:
    """
    Infer BPM from note durations. Best effort, not a beat tracker.
    Falls back to default_bpm with fewer than 2 notes or no plausible beat durations.
    """
    if len(notes) < 2:
        return default_bpm

    candidates = [
        n.duration_sec for n in notes
        if MIN_BEAT_CANDIDATE_SEC < n.duration_sec < MAX_BEAT_CANDIDATE_SEC
    ]
    if not candidates:
        return default_bpm

    dominant = cluster_durations(candidates)[0]
    bpm = 60.0 / dominant.center

    # Octave correction: eighth notes read as beats, or half notes read as beats
    if bpm > AUTO_MAX_BPM:
        bpm /= 2
    if bpm < AUTO_MIN_BPM:
        bpm *= 2

    tempo = int(max(AUTO_MIN_BPM, min(AUTO_MAX_BPM, round_half_up(bpm))))
    logger.debug(
        "Tempo estimate: dominant duration %.3fs (%d of %d notes) -> %d BPM",
        dominant.center, dominant.count, len(candidates), tempo,
    )
    return tempo


class Quantizer:
    """
    Snaps note onsets and durations to a grid derived from tempo and subdivision.
    Onsets are measured from the first note, so the result always starts at 0.
    Each note is shortened if needed so it ends before the next quantized onset.
    """

    def __init__(self, config: Optional[QuantizationConfig] = None):
        self.config = config or QuantizationConfig()

    def quantize(self, notes: Melody, auto_tempo: bool = False) -> Melody:
        if not notes:
            return []

        if auto_tempo:
            self.config.tempo_bpm = estimate_tempo(notes)

        if self.config.tempo_bpm <= 0:
            raise ValueError(f"Tempo must be positive: {self.config.tempo_bpm}")
        if self.config.subdivision <= 0:
            raise ValueError(f"Subdivision must be positive: {self.config.subdivision}")

        grid = self.config.grid_duration_sec
        reference = notes[0].onset_sec
        starts = [self._snap(n.onset_sec - reference, grid) for n in notes]

        quantized_notes = []
        for i, note in enumerate(notes):
            start = starts[i]
            units = max(1, round_half_up(note.duration_sec / grid))
            duration = units * grid

            if i + 1 < len(notes):
                max_duration = starts[i + 1] - start - OVERLAP_GAP_SEC
                if duration > max_duration:
                    # May still overlap when onsets collapse onto the same grid point
                    duration = max(1, math.floor(max_duration / grid)) * grid

            quantized_notes.append(note.shifted(start, duration))

        return quantized_notes

    @staticmethod
    def _snap(relative_onset: float, grid: float) -> float:
        return max(0, round_half_up(relative_onset / grid)) * grid


def quantize_notes(
    notes: Melody,
    tempo_bpm: float = DEFAULT_BPM,
    subdivision: int = DEFAULT_SUBDIVISION,
    auto_tempo: bool = False,
) -> Melody:
    """Convenience function for one-shot quantization."""
    quantizer = Quantizer(QuantizationConfig(tempo_bpm=tempo_bpm, subdivision=subdivision))
    return quantizer.quantize(notes, auto_tempo=auto_tempo)
