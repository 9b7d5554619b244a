import numpy as np
import pytest

from humscribe.note_events import NoteEvent, midi_to_frequency
from humscribe.pitch_stabilizer import PitchObservation

SAMPLE_RATE = 44100
BLOCK_SIZE = 2048


@pytest.fixture
def loud_block():
    # rms 0.05 * gain 150 -> confidence clamps to 1.0
    return np.full(BLOCK_SIZE, 0.05, dtype=np.float32)


@pytest.fixture
def quiet_block():
    # rms 1e-5 * 150 = 0.0015, below the 0.01 confidence floor
    return np.full(BLOCK_SIZE, 1e-5, dtype=np.float32)


@pytest.fixture
def make_note():
    def _make(pitch=69, onset=0.0, duration=0.5):
        return NoteEvent(
            pitch=pitch,
            onset_sec=onset,
            duration_sec=duration,
            frequency_hz=midi_to_frequency(pitch),
        )
    return _make


@pytest.fixture
def observe():
    def _observe(frequency, timestamp, confidence=1.0):
        return PitchObservation(frequency=frequency, confidence=confidence, timestamp=timestamp)
    return _observe


def sine(frequency, seconds, sample_rate=SAMPLE_RATE, amplitude=0.3):
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def silence(seconds, sample_rate=SAMPLE_RATE):
    return np.zeros(int(seconds * sample_rate), dtype=np.float32)


@pytest.fixture
def two_note_wav(tmp_path):
    """A4 then C5, one second each, separated and followed by silence."""
    import soundfile as sf

    y = np.concatenate([
        silence(0.3),
        sine(440.0, 1.0),
        silence(0.5),
        sine(midi_to_frequency(72), 1.0),
        silence(0.5),
    ])
    path = tmp_path / "two_notes.wav"
    sf.write(str(path), y, SAMPLE_RATE)
    return path


@pytest.fixture
def silent_wav(tmp_path):
    import soundfile as sf

    path = tmp_path / "silence.wav"
    sf.write(str(path), silence(1.0), SAMPLE_RATE)
    return path
