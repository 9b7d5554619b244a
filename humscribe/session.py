"""
Recording session: wires the live stages (estimator -> stabilizer -> segmenter) to
the snapshot stages (tempo -> quantizer -> ABC encoder).

The raw melody buffered during recording is never modified afterwards. Changing
the tempo or toggling quantization rebuilds the displayed melody and the ABC
text from it, so switching back and forth loses nothing.

Frames must be fed from a single thread, and stop() called once after the last frame.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

import numpy as np

from .audio_loader import CAPTURE_SAMPLE_RATE, DEFAULT_BLOCK_SIZE, AudioData, iter_blocks, load_audio
from .encoder import DEFAULT_TITLE, AbcEncoder, playback_duration
from .note_events import Melody, NoteEvent, normalize_times
from .pitch_detector import FrequencyEstimator, YinPitchEstimator
from .pitch_stabilizer import PitchObservation, PitchStabilizer, StabilizerConfig
from .quantizer import DEFAULT_BPM, DEFAULT_SUBDIVISION, QuantizationConfig, Quantizer, clamp_bpm
from .segmenter import NoteSegmenter, SegmenterConfig

logger = logging.getLogger(__name__)


class RecordingStatus(Enum):
    IDLE = 'idle'
    RECORDING = 'recording'
    PROCESSING = 'processing'
    COMPLETE = 'complete'


@dataclass
class SessionConfig:
    """Everything a session needs besides the estimator."""
    sample_rate: int = CAPTURE_SAMPLE_RATE
    block_size: int = DEFAULT_BLOCK_SIZE
    hop_size: Optional[int] = None
    tempo_bpm: float = DEFAULT_BPM
    subdivision: int = DEFAULT_SUBDIVISION
    quantize: bool = False
    title: str = DEFAULT_TITLE
    stabilizer: StabilizerConfig = field(default_factory=StabilizerConfig)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)


@dataclass
class Transcription:
    """Read-only view of a session's results for display or export."""
    raw_notes: List[NoteEvent]
    notes: List[NoteEvent]
    tempo_bpm: float
    quantized: bool
    abc: str

    @property
    def num_notes(self) -> int:
        return len(self.notes)

    @property
    def is_empty(self) -> bool:
        return not self.notes

    def __repr__(self) -> str:
        mode = "quantized" if self.quantized else "raw"
        return f"Transcription({self.num_notes} notes, {mode} @ {self.tempo_bpm:g} BPM)"


class TranscriptionSession:
    """
    One recording from start() to stop(), plus interactive re-quantization afterwards.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        estimator: Optional[FrequencyEstimator] = None,
    ):
        self.config = config or SessionConfig()
        self.estimator = estimator or YinPitchEstimator()
        self.stabilizer = PitchStabilizer(self.config.stabilizer)
        self.segmenter = NoteSegmenter(self.config.segmenter)
        self.quantizer = Quantizer(QuantizationConfig(
            tempo_bpm=clamp_bpm(self.config.tempo_bpm),
            subdivision=self.config.subdivision,
        ))
        self.encoder = AbcEncoder(title=self.config.title)

        self.status = RecordingStatus.IDLE
        self.quantize_enabled = self.config.quantize
        self.tempo_bpm = self.quantizer.config.tempo_bpm
        self.current_pitch: Optional[PitchObservation] = None
        self.raw_notes: List[NoteEvent] = []
        self.normalized_notes: List[NoteEvent] = []
        self.quantized_notes: List[NoteEvent] = []
        self.abc = ''

    @property
    def notes(self) -> Melody:
        """The melody currently on display: quantized or just time-normalized."""
        return self.quantized_notes if self.quantize_enabled else self.normalized_notes

    @property
    def has_notes(self) -> bool:
        return bool(self.raw_notes)

    def start(self) -> None:
        if self.status == RecordingStatus.RECORDING:
            return
        self._clear()
        self.status = RecordingStatus.RECORDING
        logger.info("Recording started")

    def process_block(self, samples: np.ndarray, timestamp: float) -> Optional[PitchObservation]:
        """
        Run one audio block through estimator, stabilizer and segmenter.
        Returns the live observation for display, or None when not recording.
        """
        if self.status != RecordingStatus.RECORDING:
            return None

        raw_frequency = self.estimator(samples, self.config.sample_rate)
        observation = self.stabilizer.process(raw_frequency, samples, timestamp)
        self.current_pitch = observation

        note = self.segmenter.process_frame(observation)
        if note is not None:
            self.raw_notes.append(note)
        return observation

    def stop(self, end_time: float) -> 'Transcription':
        """
        Flush the last note and build the displayed melody. With quantization on,
        the tempo is detected from the recording.
        """
        if self.status != RecordingStatus.RECORDING:
            return self.snapshot()

        self.status = RecordingStatus.PROCESSING
        final_note = self.segmenter.flush(end_time)
        if final_note is not None:
            self.raw_notes.append(final_note)
        self.current_pitch = None

        self.normalized_notes = normalize_times(self.raw_notes)
        if self.quantize_enabled and self.raw_notes:
            self.quantized_notes = self.quantizer.quantize(self.raw_notes, auto_tempo=True)
            self.tempo_bpm = self.quantizer.config.tempo_bpm
        self._encode()

        self.status = RecordingStatus.COMPLETE
        logger.info("Recording stopped: %d notes @ %g BPM", len(self.raw_notes), self.tempo_bpm)
        return self.snapshot()

    def run(self, audio: AudioData) -> Transcription:
        """Record a whole loaded clip, block by block, and stop at its end."""
        self.start()
        blocks = iter_blocks(audio.samples, audio.sample_rate, self.config.block_size, self.config.hop_size)
        for block, timestamp in blocks:
            self.process_block(block, timestamp)
        return self.stop(audio.duration_sec)

    def set_bpm(self, bpm: float) -> None:
        """Manual tempo, clamped to 40-240. Rebuilds the quantized melody without auto-detection."""
        self.tempo_bpm = clamp_bpm(bpm)
        self.quantizer.config.tempo_bpm = self.tempo_bpm
        self._regenerate()

    def toggle_quantize(self) -> bool:
        self.set_quantize(not self.quantize_enabled)
        return self.quantize_enabled

    def set_quantize(self, enabled: bool) -> None:
        self.quantize_enabled = enabled
        self._regenerate()

    def _regenerate(self) -> None:
        if not self.raw_notes:
            return
        self.normalized_notes = normalize_times(self.raw_notes)
        if self.quantize_enabled:
            self.quantized_notes = self.quantizer.quantize(self.raw_notes)
        self._encode()

    def _encode(self) -> None:
        self.abc = self.encoder.encode(self.notes, self.tempo_bpm)

    def playback_duration(self) -> float:
        """Length of the displayed melody when played back at its notated durations."""
        return playback_duration(self.notes, self.tempo_bpm)

    def snapshot(self) -> Transcription:
        return Transcription(
            raw_notes=list(self.raw_notes),
            notes=list(self.notes),
            tempo_bpm=self.tempo_bpm,
            quantized=self.quantize_enabled,
            abc=self.abc,
        )

    def _clear(self) -> None:
        self.stabilizer.reset()
        self.segmenter.reset()
        self.current_pitch = None
        self.raw_notes = []
        self.normalized_notes = []
        self.quantized_notes = []
        self.abc = ''

    def reset(self) -> None:
        self._clear()
        self.status = RecordingStatus.IDLE


def transcribe_file(
    audio_path: str | Path,
    config: Optional[SessionConfig] = None,
    estimator: Optional[FrequencyEstimator] = None,
    normalize: bool = False,
) -> Transcription:
    """
    Convenience function: run a whole audio file through a session, block by block.
    """
    config = config or SessionConfig()
    audio = load_audio(audio_path, target_sr=config.sample_rate, normalize=normalize)
    return TranscriptionSession(config=config, estimator=estimator).run(audio)
