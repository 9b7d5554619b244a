"""
Convert a melody to MusicXML or MIDI using music21.
Note lengths use the same eighth-note buckets as the ABC text so every output agrees.
"""

from pathlib import Path

from music21 import stream, note, meter, tempo, metadata, clef, instrument, key

from .encoder import DEFAULT_TITLE, duration_to_eighths
from .note_events import Melody, NoteEvent


class MusicXMLExporter:
    """
    Converts a melody to a music21 Score object and exports to MusicXML or MIDI.
    Notes are laid out back-to-back, as in the ABC body.
    """

    def __init__(self, title: str = DEFAULT_TITLE, composer: str = "humscribe"):
        self.title = title
        self.composer = composer

    def encode(self, notes: Melody, tempo_bpm: float) -> stream.Score:
        """
        Convert a melody to a music21 Score object.

        Returns a music21 Score that can be:
        - Written to MusicXML: score.write('musicxml', 'output.musicxml')
        - Written to MIDI: score.write('midi', 'output.mid')
        """
        m21_score = stream.Score()

        m21_score.metadata = metadata.Metadata()
        m21_score.metadata.title = self.title
        m21_score.metadata.composer = self.composer

        voice_part = stream.Part()
        voice_part.insert(0, instrument.Vocalist())
        voice_part.insert(0, clef.TrebleClef())
        voice_part.insert(0, key.Key('C'))
        voice_part.insert(0, meter.TimeSignature('4/4'))
        voice_part.insert(0, tempo.MetronomeMark(
            number=tempo_bpm,
            referent=note.Note(type='quarter'),
        ))

        for event in notes:
            voice_part.append(self._create_note(event, tempo_bpm))

        m21_score.append(voice_part)
        return m21_score

    def _create_note(self, event: NoteEvent, tempo_bpm: float) -> note.Note:
        """Convert a NoteEvent to a music21 Note."""
        m21_note = note.Note()
        m21_note.pitch.midi = event.pitch

        # quarterLength is in quarter-note units, two eighths each
        m21_note.quarterLength = duration_to_eighths(event.duration_sec, tempo_bpm) / 2

        m21_note.addLyric(event.pitch_name)
        return m21_note

    def to_musicxml(self, notes: Melody, tempo_bpm: float, output_path: str | Path) -> Path:
        """
        Encode and write to MusicXML file. Returns path to written file.
        """
        output_path = Path(output_path)
        m21_score = self.encode(notes, tempo_bpm)
        m21_score.write('musicxml', fp=str(output_path))
        return output_path

    def to_midi(self, notes: Melody, tempo_bpm: float, output_path: str | Path) -> Path:
        """
        Encode and write to MIDI file (useful for playback verification).
        """
        output_path = Path(output_path)
        m21_score = self.encode(notes, tempo_bpm)
        m21_score.write('midi', fp=str(output_path))
        return output_path


def export_musicxml(
    notes: Melody,
    tempo_bpm: float,
    output_path: str | Path,
    title: str = DEFAULT_TITLE,
) -> Path:
    """Convenience function for one-shot export."""
    exporter = MusicXMLExporter(title=title)
    return exporter.to_musicxml(notes, tempo_bpm, output_path)
