"""
This module defines the core data structures used throughout the pipeline for musical note representation.
Formula used for MIDI pitch: MIDI_pitch = 12 * log2(f / 440) + 69 rounded half up, so A4 = 440 Hz = MIDI 69.
Octave numbering follows scientific pitch notation where octave 4 holds middle C (MIDI 60).
"""

import math
from dataclasses import dataclass, replace
from typing import List, NamedTuple, Optional

# Semitone offsets, sharps only (no enharmonic spelling in the notation output)
SEMITONE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

A4_FREQUENCY = 440.0
A4_MIDI = 69

# An ordered melody, ascending onset
Melody = List['NoteEvent']


def round_half_up(value: float) -> int:
    """Nearest integer, with exact halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


class NoteInfo(NamedTuple):
    """Nearest equal-tempered note for a frequency, with the deviation in cents."""
    name: str
    octave: int
    midi: int
    cents: int


def frequency_to_midi(frequency: float) -> int:
    """Nearest MIDI number for a frequency in Hz."""
    return round_half_up(12 * math.log2(frequency / A4_FREQUENCY) + A4_MIDI)


def midi_to_frequency(midi: int) -> float:
    """
    Equal-tempered frequency in Hz.
    Formula used: f = 440 * 2^((midi - 69) / 12) based on A4 = 440 Hz (MIDI 69) as the reference pitch.
    """
    return A4_FREQUENCY * (2.0 ** ((midi - A4_MIDI) / 12.0))


def midi_to_name(midi: int) -> str:
    return SEMITONE_NAMES[midi % 12]


def midi_to_octave(midi: int) -> int:
    return (midi // 12) - 1  # -1 because MIDI octave 0 starts at C-1


def midi_to_note_name(midi: int) -> str:
    """Convert MIDI number to a note name string such as 'C#5'."""
    return f"{midi_to_name(midi)}{midi_to_octave(midi)}"


def frequency_to_note_info(frequency: float) -> NoteInfo:
    """
    Map a frequency to its nearest note.
    440.0 Hz gives NoteInfo('A', 4, 69, 0).
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive: {frequency}")

    midi_float = 12 * math.log2(frequency / A4_FREQUENCY) + A4_MIDI
    midi = round_half_up(midi_float)
    cents = round_half_up((midi_float - midi) * 100)

    return NoteInfo(
        name=midi_to_name(midi),
        octave=midi_to_octave(midi),
        midi=midi,
        cents=cents,
    )


@dataclass(frozen=True)
class NoteEvent:
    """
    Represents a single sung note with timing and its measured pitch.
    Core unit of musical information used in pipeline. Events are immutable once
    emitted by the segmenter; quantization and normalization produce new ones.
    """
    pitch: int           # MIDI number
    onset_sec: float
    duration_sec: float
    frequency_hz: float  # mean over the stable frames of the note

    def __post_init__(self):
        """Validate note event data."""
        if self.onset_sec < 0:
            raise ValueError(f"Onset time cannot be negative: {self.onset_sec}")
        if self.duration_sec <= 0:
            raise ValueError(f"Duration must be positive: {self.duration_sec}")
        if self.frequency_hz <= 0:
            raise ValueError(f"Frequency must be positive: {self.frequency_hz}")

    @classmethod
    def from_frequency(cls, frequency_hz: float, onset_sec: float, duration_sec: float) -> 'NoteEvent':
        return cls(
            pitch=frequency_to_midi(frequency_hz),
            onset_sec=onset_sec,
            duration_sec=duration_sec,
            frequency_hz=frequency_hz,
        )

    @property
    def name(self) -> str:
        """Pitch letter with optional sharp, e.g. 'F#'."""
        return midi_to_name(self.pitch)

    @property
    def octave(self) -> int:
        return midi_to_octave(self.pitch)

    @property
    def pitch_name(self) -> str:
        return midi_to_note_name(self.pitch)

    @property
    def offset_sec(self) -> float:
        """Get note end time"""
        return self.onset_sec + self.duration_sec

    def shifted(self, onset_sec: float, duration_sec: Optional[float] = None) -> 'NoteEvent':
        """Copy of this note at a new onset (and optionally a new duration)."""
        if duration_sec is None:
            duration_sec = self.duration_sec
        return replace(self, onset_sec=onset_sec, duration_sec=duration_sec)

    def __repr__(self) -> str:
        return (
            f"NoteEvent({self.pitch_name}, "
            f"onset={self.onset_sec:.3f}s, "
            f"dur={self.duration_sec:.3f}s, "
            f"freq={self.frequency_hz:.1f}Hz)"
        )


def normalize_times(notes: Melody) -> Melody:
    """
    Shift every onset so the first note starts at 0. Durations are untouched.
    Used when quantization is disabled.
    """
    if not notes:
        return []
    first_onset = notes[0].onset_sec
    return [n.shifted(max(0.0, n.onset_sec - first_onset)) for n in notes]
