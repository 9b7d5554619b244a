import pytest

from humscribe.encoder import (
    AbcEncoder,
    duration_to_eighths,
    encode_to_abc,
    pitch_to_abc,
    playback_duration,
)
from humscribe.quantizer import quantize_notes

HEADER_120 = "X:1\nT:Recorded Melody\nM:4/4\nL:1/8\nQ:1/4=120\nK:C\n"


def body(abc):
    return abc.split("K:C\n", 1)[1]


class TestDurationBuckets:
    @pytest.mark.parametrize("duration, eighths", [
        (0.1, 1),
        (0.25, 1),
        (0.375, 1),
        (0.5, 2),
        (0.75, 2),
        (1.0, 4),
        (1.5, 4),
        (1.6, 8),
        (4.0, 8),
    ])
    def test_buckets_at_120(self, duration, eighths):
        assert duration_to_eighths(duration, 120) == eighths

    def test_buckets_scale_with_tempo(self):
        # at 60 BPM an eighth note lasts 0.5s
        assert duration_to_eighths(0.5, 60) == 1
        assert duration_to_eighths(1.0, 60) == 2

    def test_playback_duration_uses_buckets(self, make_note):
        notes = [make_note(onset=0.0, duration=0.5), make_note(onset=1.0, duration=0.3)]
        # 2 + 1 eighths at 0.25s
        assert playback_duration(notes, 120) == pytest.approx(0.75)
        assert playback_duration([], 120) == 0.0


class TestPitchTokens:
    @pytest.mark.parametrize("midi, token", [
        (60, "C"),
        (69, "A"),
        (72, "c"),
        (84, "c'"),
        (96, "c''"),
        (48, "C,"),
        (36, "C,,"),
        (66, "^F"),
        (78, "^f"),
        (58, "^A,"),
        (71, "B"),
    ])
    def test_octave_and_sharp_marks(self, make_note, midi, token):
        assert pitch_to_abc(make_note(pitch=midi)) == token


class TestAbcEncoder:
    def test_empty_melody_gives_empty_string(self):
        assert encode_to_abc([], 120) == ''

    def test_header(self, make_note):
        abc = encode_to_abc([make_note()], 120)
        assert abc.startswith(HEADER_120)

    def test_custom_title_and_fractional_tempo(self, make_note):
        abc = AbcEncoder(title="Humming").encode([make_note()], 96.5)
        assert "T:Humming\n" in abc
        assert "Q:1/4=96.5\n" in abc

    def test_quarter_note_scenario(self, make_note):
        notes = [make_note(pitch=69, onset=1.0, duration=0.5), make_note(pitch=71, onset=2.0, duration=0.5)]
        quantized = quantize_notes(notes, tempo_bpm=120, subdivision=8)
        assert body(encode_to_abc(quantized, 120)) == "A2 B2 |]"

    def test_bar_after_eight_eighths(self, make_note):
        notes = [make_note(onset=i * 0.25, duration=0.25) for i in range(9)]
        assert body(encode_to_abc(notes, 120)) == "A A A A A A A A | A |]"

    def test_final_bar_replaces_trailing_separator(self, make_note):
        notes = [make_note(onset=i * 0.25, duration=0.25) for i in range(8)]
        assert body(encode_to_abc(notes, 120)) == "A A A A A A A A |]"

    def test_remainder_carries_into_next_bar(self, make_note):
        durations = [0.5, 0.5, 0.5, 1.0, 0.5, 0.5, 0.5]
        notes = [make_note(onset=i * 1.0, duration=d) for i, d in enumerate(durations)]
        assert body(encode_to_abc(notes, 120)) == "A2 A2 A2 A4 | A2 A2 A2 |]"

    def test_whole_note(self, make_note):
        notes = [make_note(pitch=72, duration=2.0)]
        assert body(encode_to_abc(notes, 120)) == "c8 |]"

    def test_deterministic(self, make_note):
        notes = [make_note(pitch=60 + i, onset=i * 0.6, duration=0.2 + 0.1 * i) for i in range(10)]
        encoder = AbcEncoder()
        assert encoder.encode(notes, 90) == encoder.encode(notes, 90)
