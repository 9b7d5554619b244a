from music21 import tempo

from humscribe.export import MusicXMLExporter, export_musicxml


class TestMusicXMLExporter:
    def test_encode_uses_shared_duration_buckets(self, make_note):
        notes = [
            make_note(pitch=69, onset=0.0, duration=0.5),   # quarter
            make_note(pitch=72, onset=0.5, duration=0.25),  # eighth
            make_note(pitch=64, onset=1.0, duration=1.2),   # half
        ]
        score = MusicXMLExporter(title="Test").encode(notes, 120)

        m21_notes = list(score.recurse().notes)
        assert [n.pitch.midi for n in m21_notes] == [69, 72, 64]
        assert [float(n.quarterLength) for n in m21_notes] == [1.0, 0.5, 2.0]
        assert score.metadata.title == "Test"

    def test_tempo_mark(self, make_note):
        score = MusicXMLExporter().encode([make_note()], 90)
        marks = list(score.recurse().getElementsByClass(tempo.MetronomeMark))
        assert marks[0].number == 90

    def test_write_musicxml(self, make_note, tmp_path):
        out = export_musicxml([make_note(), make_note(pitch=71, onset=0.5)], 120, tmp_path / "melody.musicxml")
        assert out.exists()
        assert "<score-partwise" in out.read_text(encoding="utf-8")

    def test_write_midi(self, make_note, tmp_path):
        out = MusicXMLExporter().to_midi([make_note()], 120, tmp_path / "melody.mid")
        assert out.exists()
        assert out.read_bytes()[:4] == b"MThd"
