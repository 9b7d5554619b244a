__version__ = '0.1.0'

from .note_events import (
    NoteEvent,
    NoteInfo,
    frequency_to_midi,
    frequency_to_note_info,
    midi_to_frequency,
    normalize_times,
)
from .pitch_stabilizer import PitchObservation, PitchStabilizer, StabilizerConfig
from .segmenter import NoteSegmenter, SegmenterConfig
from .quantizer import (
    Quantizer,
    QuantizationConfig,
    clamp_bpm,
    estimate_tempo,
    quantize_notes,
)
from .encoder import AbcEncoder, duration_to_eighths, encode_to_abc, playback_duration
from .export import MusicXMLExporter, export_musicxml
from .audio_loader import AudioData, load_audio, iter_blocks
from .pitch_detector import YinPitchEstimator
from .session import (
    RecordingStatus,
    SessionConfig,
    Transcription,
    TranscriptionSession,
    transcribe_file,
)

__all__ = [
    # Note representation
    'NoteEvent',
    'NoteInfo',
    'frequency_to_midi',
    'frequency_to_note_info',
    'midi_to_frequency',
    'normalize_times',
    # Live pipeline
    'PitchObservation',
    'PitchStabilizer',
    'StabilizerConfig',
    'NoteSegmenter',
    'SegmenterConfig',
    'YinPitchEstimator',
    # Tempo and quantization
    'Quantizer',
    'QuantizationConfig',
    'clamp_bpm',
    'estimate_tempo',
    'quantize_notes',
    # Encoding
    'AbcEncoder',
    'duration_to_eighths',
    'encode_to_abc',
    'playback_duration',
    'MusicXMLExporter',
    'export_musicxml',
    # Audio loading
    'AudioData',
    'load_audio',
    'iter_blocks',
    # Session
    'RecordingStatus',
    'SessionConfig',
    'Transcription',
    'TranscriptionSession',
    'transcribe_file',
]
