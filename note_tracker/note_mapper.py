"""
Frequency to note conversion.

Maps a frequency to the nearest equal-tempered note, its MIDI number, octave
and the deviation from that note in cents. Rounding is half-up, so cents are
always within [-50, 50].
"""

import math
import re
from dataclasses import dataclass
from enum import Enum

from .constants import A4_MIDI, A4_REFERENCE, NOTE_NAMES, OCTAVE, UNPITCHED
from .exceptions import InvalidFrequencyError

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")

_LETTER_SEMITONES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTALS = {"": 0, "#": 1, "b": -1}


@dataclass(frozen=True)
class NoteRecord:
    """A frequency resolved to its nearest note."""

    name: str  # e.g. "A4", or the unpitched sentinel
    cents: int  # Deviation from the nearest note, -50..50
    midi_note: int
    frequency: float
    octave: int
    pitch_class: str  # e.g. "A"
    ref_frequency: float  # Equal-tempered frequency of midi_note


class TuningHint(Enum):
    """Coarse direction for a performer to correct pitch."""

    IN_TUNE = "in_tune"
    SHARP = "sharp"
    VERY_SHARP = "very_sharp"
    FLAT = "flat"
    VERY_FLAT = "very_flat"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _semitones_from_a4(frequency: float, reference: float) -> float:
    if not math.isfinite(frequency) or frequency <= 0:
        raise InvalidFrequencyError(frequency)
    return OCTAVE * math.log2(frequency / reference)


def frequency_to_midi(frequency: float, reference: float = A4_REFERENCE) -> int:
    """Nearest MIDI note number for a frequency."""
    return _round_half_up(_semitones_from_a4(frequency, reference)) + A4_MIDI


def midi_to_frequency(midi_note: int, reference: float = A4_REFERENCE) -> float:
    """Equal-tempered frequency of a MIDI note."""
    return reference * 2 ** ((midi_note - A4_MIDI) / OCTAVE)


def midi_to_note_name(midi_note: int) -> str:
    """Convert a MIDI number to a name with octave, e.g. 69 -> "A4"."""
    octave = midi_note // OCTAVE - 1
    return f"{NOTE_NAMES[midi_note % OCTAVE]}{octave}"


def note_name_to_midi(name: str) -> int:
    """
    Convert a note name with octave to a MIDI number.

    Accepts sharps and flats ("F#5", "Bb3").

    Raises:
        ValueError: If the name cannot be parsed
    """
    match = _NOTE_PATTERN.match(name.strip())
    if not match:
        raise ValueError(f"Invalid note name: {name!r}")

    letter, accidental, octave = match.groups()
    semitone = _LETTER_SEMITONES[letter.upper()] + _ACCIDENTALS[accidental]
    # Cb and B# cross the octave boundary through the plain sum
    return (int(octave) + 1) * OCTAVE + semitone


def frequency_to_note(
    frequency: float,
    reference: float = A4_REFERENCE,
    unpitched_tolerance: float | None = None,
) -> NoteRecord:
    """
    Map a frequency to its nearest note.

    Args:
        frequency: Frequency in Hz, must be positive and finite
        reference: Frequency of A4 in Hz
        unpitched_tolerance: When set, notes deviating by more than this many
            cents are named with the unpitched sentinel

    Returns:
        NoteRecord for the nearest semitone

    Raises:
        InvalidFrequencyError: If the frequency is not positive and finite
    """
    semitones = _semitones_from_a4(frequency, reference)
    nearest = _round_half_up(semitones)
    cents = _round_half_up((semitones - nearest) * 100)
    midi_note = nearest + A4_MIDI
    octave = midi_note // OCTAVE - 1
    pitch_class = NOTE_NAMES[midi_note % OCTAVE]

    name = f"{pitch_class}{octave}"
    if unpitched_tolerance is not None and abs(cents) > unpitched_tolerance:
        name = UNPITCHED

    return NoteRecord(
        name=name,
        cents=cents,
        midi_note=midi_note,
        frequency=frequency,
        octave=octave,
        pitch_class=pitch_class,
        ref_frequency=midi_to_frequency(midi_note, reference),
    )


def tuning_hint(cents: float) -> TuningHint:
    """Classify a cents deviation for performer feedback."""
    if abs(cents) < 5:
        return TuningHint.IN_TUNE
    if cents > 0:
        return TuningHint.VERY_SHARP if cents > 20 else TuningHint.SHARP
    return TuningHint.VERY_FLAT if cents < -20 else TuningHint.FLAT


class NoteMapper:
    """Note mapping bound to a reference pitch and unpitched policy."""

    def __init__(
        self,
        reference: float = A4_REFERENCE,
        unpitched_tolerance: float | None = None,
    ):
        self.reference = reference
        self.unpitched_tolerance = unpitched_tolerance

    def set_reference(self, reference: float):
        self.reference = reference

    def set_unpitched_tolerance(self, tolerance: float | None):
        self.unpitched_tolerance = tolerance

    def map(self, frequency: float) -> NoteRecord:
        return frequency_to_note(frequency, self.reference, self.unpitched_tolerance)

    def midi_for(self, frequency: float) -> int:
        return frequency_to_midi(frequency, self.reference)
