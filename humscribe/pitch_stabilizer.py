"""
First stage of the live pipeline: turn jittery per-frame frequency estimates into a stable pitch.

Untrained singers wobble around a target pitch, slide between notes and drop out
mid-phrase. Each frame the stabilizer:

1. Validates the raw estimate against the vocal range (80-1000 Hz), otherwise records silence
2. Takes the median of the last 12 estimates as a robust candidate
3. Locks onto a MIDI note only after repeated confirmation:
   - no lock yet: 5 of 12 frames at the candidate note
   - 1 semitone away: 8 of 12 (adjacent-note wobble is the common failure)
   - 2+ semitones away: 6 of 12
4. Exponentially smooths the frequency while the lock holds
5. Drops the lock once half the history is silent

Confidence is derived from the frame's RMS amplitude with a high gain, tuned for quiet mobile input.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

import numpy as np

from .note_events import frequency_to_midi, midi_to_frequency

logger = logging.getLogger(__name__)

MIN_VOCAL_HZ = 80.0
MAX_VOCAL_HZ = 1000.0

HISTORY_SIZE = 12
MIN_MEDIAN_SAMPLES = 3
SMOOTHING_FACTOR = 0.15

LOCK_CONFIRMATIONS = 5
NEIGHBOR_SWITCH_CONFIRMATIONS = 8
JUMP_SWITCH_CONFIRMATIONS = 6
SILENCE_RESET_COUNT = 6

CONFIDENCE_GAIN = 150.0
MIN_CONFIDENCE = 0.01


@dataclass
class StabilizerConfig:
    """Tuning for the pitch stabilizer. Defaults are calibrated for untrained voices."""
    min_frequency: float = MIN_VOCAL_HZ
    max_frequency: float = MAX_VOCAL_HZ
    history_size: int = HISTORY_SIZE
    smoothing_factor: float = SMOOTHING_FACTOR
    lock_confirmations: int = LOCK_CONFIRMATIONS
    neighbor_switch_confirmations: int = NEIGHBOR_SWITCH_CONFIRMATIONS
    jump_switch_confirmations: int = JUMP_SWITCH_CONFIRMATIONS
    silence_reset_count: int = SILENCE_RESET_COUNT
    confidence_gain: float = CONFIDENCE_GAIN
    min_confidence: float = MIN_CONFIDENCE


@dataclass
class StabilizerState:
    """Rolling history and current lock, owned by one stabilizer instance."""
    history: Deque[Optional[float]] = field(default_factory=lambda: deque(maxlen=HISTORY_SIZE))
    locked_midi: Optional[int] = None
    smoothed_frequency: Optional[float] = None

    @property
    def null_count(self) -> int:
        return sum(1 for f in self.history if f is None)

    def confirmations(self, target_midi: int) -> int:
        """Number of history entries that round to target_midi."""
        return sum(1 for f in self.history if f is not None and frequency_to_midi(f) == target_midi)


@dataclass
class PitchObservation:
    """Stabilized pitch for one frame. frequency is None while nothing is locked."""
    frequency: Optional[float]
    confidence: float
    timestamp: float

    @property
    def is_voiced(self) -> bool:
        return self.frequency is not None

    def __repr__(self) -> str:
        freq = f"{self.frequency:.1f}Hz" if self.frequency is not None else "None"
        return f"PitchObservation({freq}, conf={self.confidence:.2f}, t={self.timestamp:.3f}s)"


def compute_confidence(samples: np.ndarray, gain: float = CONFIDENCE_GAIN) -> float:
    """
    RMS amplitude as a proxy for signal clarity, scaled and clamped to [0, 1].
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(samples ** 2)))
    return min(1.0, rms * gain)


def median_frequency(history) -> Optional[float]:
    """
    Median of the non-null history entries.
    With fewer than 3 valid entries the most recent one is used instead.
    """
    valid = [f for f in history if f is not None]
    if not valid:
        return None
    if len(valid) < MIN_MEDIAN_SAMPLES:
        return valid[-1]
    return float(np.median(valid))


class PitchStabilizer:
    """
    Per-frame pitch stabilizer. Call process() once per audio frame, in timestamp order.
    """

    def __init__(self, config: Optional[StabilizerConfig] = None):
        self.config = config or StabilizerConfig()
        self.state = self._new_state()

    def _new_state(self) -> StabilizerState:
        return StabilizerState(history=deque(maxlen=self.config.history_size))

    def validate(self, raw_frequency: Optional[float]) -> Optional[float]:
        """Return the estimate if it lies in the vocal range, else None."""
        if raw_frequency is None:
            return None
        raw_frequency = float(raw_frequency)
        if not math.isfinite(raw_frequency):
            return None
        if not self.config.min_frequency <= raw_frequency <= self.config.max_frequency:
            return None
        return raw_frequency

    def process(
        self,
        raw_frequency: Optional[float],
        samples: np.ndarray,
        timestamp: float,
    ) -> PitchObservation:
        """
        Feed one raw estimate plus the audio block it came from.
        Never raises for bad or missing audio content; silence simply yields frequency=None.
        """
        state = self.state
        state.history.append(self.validate(raw_frequency))

        candidate = median_frequency(state.history)
        confidence = compute_confidence(samples, self.config.confidence_gain)

        if state.null_count >= self.config.silence_reset_count:
            if state.locked_midi is not None:
                logger.debug("Silence reset at t=%.3fs (lock on MIDI %d released)", timestamp, state.locked_midi)
            state.locked_midi = None
            state.smoothed_frequency = None
        elif candidate is not None and confidence > self.config.min_confidence:
            self._update_lock(candidate, timestamp)

        return PitchObservation(
            frequency=state.smoothed_frequency,
            confidence=confidence,
            timestamp=timestamp,
        )

    def _update_lock(self, candidate: float, timestamp: float) -> None:
        state = self.state
        config = self.config
        candidate_midi = frequency_to_midi(candidate)

        if state.locked_midi is None:
            # First note - require strong confirmation
            if state.confirmations(candidate_midi) >= config.lock_confirmations:
                self._lock(candidate_midi, timestamp)
            return

        distance = abs(candidate_midi - state.locked_midi)
        if distance == 0:
            state.smoothed_frequency = (
                config.smoothing_factor * candidate
                + (1 - config.smoothing_factor) * state.smoothed_frequency
            )
            return

        # Adjacent semitone wobble needs more evidence than a real jump
        required = config.neighbor_switch_confirmations if distance == 1 else config.jump_switch_confirmations
        if state.confirmations(candidate_midi) >= required:
            self._lock(candidate_midi, timestamp)

    def _lock(self, midi: int, timestamp: float) -> None:
        logger.debug("Pitch lock %s -> MIDI %d at t=%.3fs", self.state.locked_midi, midi, timestamp)
        self.state.locked_midi = midi
        self.state.smoothed_frequency = midi_to_frequency(midi)

    @property
    def locked_midi(self) -> Optional[int]:
        return self.state.locked_midi

    def reset(self) -> None:
        """Clear history and lock, e.g. between recording sessions."""
        self.state = self._new_state()
