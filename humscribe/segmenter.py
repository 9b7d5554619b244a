"""
Hysteresis state machine that turns stabilized pitch observations into discrete note events.

States:
  idle     no active note, no pending candidate
  pending  a candidate MIDI note is collecting confirmations
  active   a note is accumulating (a pending candidate may exist alongside it)

A silence counter runs independently of these states. A note ends after 8 silent
frames, when a different note (2+ semitones away) is confirmed for 5 frames, or
on flush(). Notes shorter than 0.18s are discarded as transient noise.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .note_events import NoteEvent, frequency_to_midi, midi_to_frequency
from .pitch_stabilizer import PitchObservation

logger = logging.getLogger(__name__)

MIN_NOTE_DURATION_SEC = 0.18
MIN_CONFIDENCE = 0.01
CONFIRMATION_FRAMES = 5
SILENCE_FRAMES = 8
SAME_NOTE_TOLERANCE = 1  # semitones


@dataclass
class SegmenterConfig:
    """Tuning for the note segmenter."""
    min_duration_sec: float = MIN_NOTE_DURATION_SEC
    min_confidence: float = MIN_CONFIDENCE
    confirmation_frames: int = CONFIRMATION_FRAMES
    silence_frames: int = SILENCE_FRAMES
    same_note_tolerance: int = SAME_NOTE_TOLERANCE


@dataclass
class SegmenterState:
    """Accumulators and hysteresis counters for one segmenter instance."""
    active_midi: Optional[int] = None
    active_onset: Optional[float] = None
    frequency_sum: float = 0.0
    frequency_count: int = 0

    pending_midi: Optional[int] = None
    pending_count: int = 0

    silence_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.active_midi is not None

    def clear_pending(self) -> None:
        self.pending_midi = None
        self.pending_count = 0

    def clear_active(self) -> None:
        self.active_midi = None
        self.active_onset = None
        self.frequency_sum = 0.0
        self.frequency_count = 0


class NoteSegmenter:
    """
    Streams NoteEvents out of PitchObservations, at most one per call.
    """

    def __init__(self, config: Optional[SegmenterConfig] = None):
        self.config = config or SegmenterConfig()
        self.state = SegmenterState()

    @property
    def phase(self) -> str:
        if self.state.is_active:
            return 'active'
        if self.state.pending_midi is not None:
            return 'pending'
        return 'idle'

    def is_silent(self, observation: PitchObservation) -> bool:
        return observation.frequency is None or observation.confidence < self.config.min_confidence

    def process_frame(self, observation: PitchObservation) -> Optional[NoteEvent]:
        state = self.state
        config = self.config

        if self.is_silent(observation):
            state.silence_count += 1
            state.clear_pending()
            if state.is_active and state.silence_count >= config.silence_frames:
                return self._finalize(observation.timestamp)
            return None

        state.silence_count = 0
        frequency = observation.frequency
        midi = frequency_to_midi(frequency)

        if state.is_active:
            distance = abs(midi - state.active_midi)
            if distance <= config.same_note_tolerance:
                # Only exact matches feed the representative frequency
                if distance == 0:
                    state.frequency_sum += frequency
                    state.frequency_count += 1
                state.clear_pending()
                return None

        # New note candidate - use hysteresis
        if midi == state.pending_midi:
            state.pending_count += 1
        else:
            state.pending_midi = midi
            state.pending_count = 1

        if state.pending_count < config.confirmation_frames:
            return None

        finished = self._finalize(observation.timestamp) if state.is_active else None
        self._open(midi, frequency, observation.timestamp)
        return finished

    def _open(self, midi: int, frequency: float, timestamp: float) -> None:
        state = self.state
        state.active_midi = midi
        state.active_onset = timestamp
        state.frequency_sum = frequency
        state.frequency_count = 1
        state.clear_pending()
        logger.debug("Note opened: MIDI %d at t=%.3fs", midi, timestamp)

    def _finalize(self, end_time: float) -> Optional[NoteEvent]:
        """
        Close the active note. Returns None when there is no active note or
        the note is shorter than the minimum duration.
        """
        state = self.state
        if not state.is_active:
            state.clear_active()
            return None

        midi = state.active_midi
        onset = state.active_onset
        duration = end_time - onset

        if state.frequency_count > 0:
            frequency = state.frequency_sum / state.frequency_count
        else:
            frequency = midi_to_frequency(midi)
        state.clear_active()

        if duration < self.config.min_duration_sec:
            logger.debug("Discarded MIDI %d: %.3fs is below minimum duration", midi, duration)
            return None

        note = NoteEvent.from_frequency(frequency, onset_sec=max(0.0, onset), duration_sec=duration)
        logger.debug("Note finalized: %r", note)
        return note

    def flush(self, end_time: float) -> Optional[NoteEvent]:
        """
        Force out any active note. Call once, after the frame source has stopped.
        """
        return self._finalize(end_time)

    def reset(self) -> None:
        self.state = SegmenterState()
