"""
note_tracker - Real-time note and chord detection from magnitude spectra
"""

from .chord_identifier import CHORD_SHAPES, ChordEvent, ChordIdentifier, identify_chord
from .config import PRESETS, DetectionConfig, load_config, save_config
from .constants import A4_REFERENCE, FFT_SIZE, NOTE_NAMES, SAMPLE_RATE, UNPITCHED
from .debounce import NoteBufferEntry, NoteDebouncer, NoteState
from .engine import DetectedNote, DetectionResult, NoteDetectionEngine
from .exceptions import ConfigurationError, InvalidFrequencyError
from .harmonic_filter import HarmonicFilter
from .history import HistoryEntry, LevelSample, MelodicEntry, MelodicLine, NoteHistory, NoteSegment
from .logging_setup import setup_logging
from .note_mapper import (
    NoteMapper,
    NoteRecord,
    TuningHint,
    frequency_to_midi,
    frequency_to_note,
    midi_to_frequency,
    midi_to_note_name,
    note_name_to_midi,
    tuning_hint,
)
from .peak_extractor import MagnitudeFrame, Peak, SpectralPeakExtractor
from .temporal_smoother import SmoothedNote, TemporalSmoother

__version__ = "0.1.0"
__all__ = [
    "NoteDetectionEngine",
    "DetectionResult",
    "DetectedNote",
    "DetectionConfig",
    "PRESETS",
    "load_config",
    "save_config",
    "MagnitudeFrame",
    "Peak",
    "SpectralPeakExtractor",
    "HarmonicFilter",
    "SmoothedNote",
    "TemporalSmoother",
    "NoteMapper",
    "NoteRecord",
    "TuningHint",
    "frequency_to_note",
    "frequency_to_midi",
    "midi_to_frequency",
    "midi_to_note_name",
    "note_name_to_midi",
    "tuning_hint",
    "NoteDebouncer",
    "NoteBufferEntry",
    "NoteState",
    "ChordIdentifier",
    "ChordEvent",
    "CHORD_SHAPES",
    "identify_chord",
    "NoteHistory",
    "HistoryEntry",
    "NoteSegment",
    "MelodicLine",
    "MelodicEntry",
    "LevelSample",
    "setup_logging",
    "ConfigurationError",
    "InvalidFrequencyError",
    "A4_REFERENCE",
    "NOTE_NAMES",
    "SAMPLE_RATE",
    "FFT_SIZE",
    "UNPITCHED",
]
