import numpy as np
import pytest

from humscribe.note_events import midi_to_frequency
from humscribe.pitch_stabilizer import (
    PitchStabilizer,
    StabilizerConfig,
    compute_confidence,
    median_frequency,
)

A4 = 440.0
A_SHARP4 = midi_to_frequency(70)
C5 = midi_to_frequency(72)
FRAME = 0.02


class TestStabilizer:
    @pytest.fixture
    def stabilizer(self):
        return PitchStabilizer()

    @pytest.fixture
    def feed(self, stabilizer, loud_block):
        clock = {'t': 0.0}

        def _feed(frequency, frames=1, block=None):
            obs = None
            for _ in range(frames):
                obs = stabilizer.process(frequency, loud_block if block is None else block, clock['t'])
                clock['t'] += FRAME
            return obs
        return _feed

    def test_lock_requires_five_confirmations(self, stabilizer, feed):
        for _ in range(4):
            assert feed(A4).frequency is None
        obs = feed(A4)
        assert obs.frequency == pytest.approx(A4)
        assert stabilizer.locked_midi == 69

    def test_same_note_is_smoothed(self, stabilizer, feed):
        feed(A4, frames=5)
        obs = feed(444.0, frames=7)
        assert stabilizer.locked_midi == 69
        assert A4 < obs.frequency < 444.0

    def test_semitone_wobble_under_eight_frames_keeps_lock(self, stabilizer, feed):
        feed(A4, frames=12)
        obs = feed(A_SHARP4, frames=7)
        assert stabilizer.locked_midi == 69
        assert obs.frequency == pytest.approx(A4)

    def test_semitone_switch_after_eight_confirmations(self, stabilizer, feed):
        feed(A4, frames=12)
        feed(A_SHARP4, frames=7)
        obs = feed(A_SHARP4)
        assert stabilizer.locked_midi == 70
        assert obs.frequency == pytest.approx(A_SHARP4)

    def test_jump_switch_after_six_confirmations(self, stabilizer, feed):
        feed(A4, frames=12)
        feed(C5, frames=5)
        assert stabilizer.locked_midi == 69
        feed(C5, frames=2)
        assert stabilizer.locked_midi == 72
        assert stabilizer.state.smoothed_frequency == pytest.approx(C5)

    def test_silence_reset_after_six_nulls(self, stabilizer, feed):
        feed(A4, frames=12)
        assert feed(None, frames=5).frequency is not None
        obs = feed(None)
        assert obs.frequency is None
        assert stabilizer.locked_midi is None

    def test_out_of_range_estimates_are_silence(self, stabilizer, feed):
        for frequency in (50.0, 2000.0, float('nan')):
            obs = feed(frequency, frames=12)
            assert obs.frequency is None
        assert all(f is None for f in stabilizer.state.history)

    def test_quiet_input_never_locks(self, stabilizer, feed, quiet_block):
        obs = feed(A4, frames=12, block=quiet_block)
        assert obs.frequency is None
        assert obs.confidence < 0.01

    def test_history_is_bounded(self, stabilizer, feed):
        feed(A4, frames=30)
        assert len(stabilizer.state.history) == 12

    def test_reset(self, stabilizer, feed):
        feed(A4, frames=12)
        stabilizer.reset()
        assert stabilizer.locked_midi is None
        assert len(stabilizer.state.history) == 0

    def test_instances_do_not_share_state(self, loud_block):
        first, second = PitchStabilizer(), PitchStabilizer()
        for i in range(6):
            first.process(A4, loud_block, i * FRAME)
        assert first.locked_midi == 69
        assert second.locked_midi is None
        assert len(second.state.history) == 0

    def test_custom_config(self, loud_block):
        stabilizer = PitchStabilizer(StabilizerConfig(lock_confirmations=2))
        stabilizer.process(A4, loud_block, 0.0)
        obs = stabilizer.process(A4, loud_block, FRAME)
        assert obs.frequency == pytest.approx(A4)


class TestHelpers:
    def test_confidence_is_clamped(self, loud_block):
        assert compute_confidence(loud_block) == 1.0
        assert compute_confidence(np.zeros(16)) == 0.0
        assert compute_confidence(np.array([])) == 0.0

    def test_confidence_scales_rms(self):
        block = np.full(64, 0.002)
        assert compute_confidence(block) == pytest.approx(0.3)

    def test_median_fallbacks(self):
        assert median_frequency([None, None]) is None
        assert median_frequency([300.0, None, 310.0]) == 310.0
        assert median_frequency([300.0, 320.0, 310.0]) == 310.0
        assert median_frequency([300.0, 320.0, 310.0, 330.0]) == pytest.approx(315.0)
