"""
Convert a melody to ABC notation text.

The header declares 4/4, an eighth-note base length, the tempo and C major.
Durations are bucketed coarsely into eighth, quarter, half and whole notes by
duration_to_eighths(), which is also what bar placement and playback timing use.
"""

from typing import List

from .note_events import Melody, NoteEvent

DEFAULT_TITLE = "Recorded Melody"
BASE_NOTE_LENGTH = 8  # L:1/8
EIGHTHS_PER_MEASURE = 8  # 4/4

# Upper bounds on duration / eighth-note length for each bucket, in eighth notes
DURATION_BUCKETS = [
    (1.5, 1),
    (3.0, 2),
    (6.0, 4),
]
WHOLE_NOTE_EIGHTHS = 8

DURATION_SUFFIXES = {1: '', 2: '2', 4: '4', 8: '8'}

SHARP_PREFIX = '^'
OCTAVE_UP_MARK = "'"
OCTAVE_DOWN_MARK = ','


def eighth_note_sec(tempo_bpm: float) -> float:
    return 60.0 / tempo_bpm / 2


def duration_to_eighths(duration_sec: float, tempo_bpm: float) -> int:
    """
    Bucket a duration into 1, 2, 4 or 8 eighth notes.
    Single source of truth for note lengths in text, bar lines and playback.
    """
    ratio = duration_sec / eighth_note_sec(tempo_bpm)
    for upper, eighths in DURATION_BUCKETS:
        if ratio <= upper:
            return eighths
    return WHOLE_NOTE_EIGHTHS


def playback_duration(notes: Melody, tempo_bpm: float) -> float:
    """
    Total length in seconds when the notes are played back-to-back at their bucketed lengths.
    """
    eighths = sum(duration_to_eighths(n.duration_sec, tempo_bpm) for n in notes)
    return eighths * eighth_note_sec(tempo_bpm)


def pitch_to_abc(note: NoteEvent) -> str:
    """
    ABC pitch token. Middle-C octave (4) is uppercase: C4 -> 'C', C5 -> 'c',
    C6 -> "c'", C3 -> 'C,', C2 -> 'C,,'. Sharps are written with '^', never flats.
    """
    letter = note.name[0]
    accidental = SHARP_PREFIX if note.name.endswith('#') else ''
    octave = note.octave

    if octave >= 5:
        return f"{accidental}{letter.lower()}{OCTAVE_UP_MARK * (octave - 5)}"
    if octave < 4:
        return f"{accidental}{letter}{OCTAVE_DOWN_MARK * (4 - octave)}"
    return f"{accidental}{letter}"


class AbcEncoder:
    """
    Renders a time-normalized melody as an ABC tune. Stateless between calls.
    """

    def __init__(self, title: str = DEFAULT_TITLE):
        self.title = title

    def encode(self, notes: Melody, tempo_bpm: float) -> str:
        """Empty input gives an empty string, with no header."""
        if not notes:
            return ''
        return self.header(tempo_bpm) + self.body(notes, tempo_bpm)

    def header(self, tempo_bpm: float) -> str:
        return (
            "X:1\n"
            f"T:{self.title}\n"
            "M:4/4\n"
            f"L:1/{BASE_NOTE_LENGTH}\n"
            f"Q:1/4={tempo_bpm:g}\n"
            "K:C\n"
        )

    def body(self, notes: Melody, tempo_bpm: float) -> str:
        tokens: List[str] = []
        measure_eighths = 0

        for note in notes:
            eighths = duration_to_eighths(note.duration_sec, tempo_bpm)
            tokens.append(pitch_to_abc(note) + DURATION_SUFFIXES[eighths])

            measure_eighths += eighths
            if measure_eighths >= EIGHTHS_PER_MEASURE:
                tokens.append('|')
                measure_eighths %= EIGHTHS_PER_MEASURE

        if tokens[-1] == '|':
            tokens[-1] = '|]'
        else:
            tokens.append('|]')
        return ' '.join(tokens)


def encode_to_abc(notes: Melody, tempo_bpm: float, title: str = DEFAULT_TITLE) -> str:
    """Convenience function for one-shot encoding."""
    return AbcEncoder(title=title).encode(notes, tempo_bpm)
