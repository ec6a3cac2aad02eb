"""
Chord naming from simultaneously confirmed notes.

Notes are sorted by pitch and reduced to intervals above the lowest note
(mod 12). The ordered interval signature is looked up in a fixed table of
chord shapes; anything else gets a generic label listing its pitch classes.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Protocol

from .constants import NOTE_NAMES, OCTAVE

logger = logging.getLogger(__name__)

MIN_CHORD_NOTES = 3
RECENT_CHORDS = 10

# Ordered interval signature -> name suffix
CHORD_SHAPES: dict[tuple[int, ...], str] = {
    (4, 7): "Major",
    (4, 7, 11): "Major 7",
    (4, 7, 10): "Dominant 7",
    (3, 7): "Minor",
    (3, 7, 10): "Minor 7",
    (3, 7, 11): "Minor Major 7",
    (3, 6): "Diminished",
    (3, 6, 9): "Diminished 7",
    (4, 8): "Augmented",
    (2, 7): "Sus2",
    (5, 7): "Sus4",
    (4, 7, 10, 2): "9",
    (3, 7, 10, 2): "Minor 9",
}
POWER_CHORD = (7,)


class ChordNote(Protocol):
    name: str
    midi_note: int


@dataclass(frozen=True)
class ChordEvent:
    """A chord recognised at a point in the session."""
    name: str
    notes: tuple[str, ...] = field(default_factory=tuple)  # Note names, lowest first
    timestamp: float = 0.0  # Seconds since session start


def identify_chord(midi_notes: list[int]) -> str:
    """
    Name the chord formed by a set of MIDI notes.

    Args:
        midi_notes: MIDI numbers in any order

    Returns:
        Chord name such as "C Major", or a generic "<root> Chord (...)" label
    """
    ordered = sorted(midi_notes)
    root_midi = ordered[0]
    root = NOTE_NAMES[root_midi % OCTAVE]
    intervals = tuple((m - root_midi) % OCTAVE for m in ordered[1:])

    if intervals == POWER_CHORD:
        return f"{root}5 (Power)"

    suffix = CHORD_SHAPES.get(intervals)
    if suffix is not None:
        return f"{root} {suffix}"

    pitch_classes = " ".join(NOTE_NAMES[m % OCTAVE] for m in ordered)
    return f"{root} Chord ({pitch_classes})"


class ChordIdentifier:
    """
    Rate-limited chord recognition.

    Chords are evaluated at most once per `interval` seconds, and an
    evaluation producing the same name as the last emitted chord is
    suppressed.
    """

    def __init__(self, interval: float = 0.5, min_notes: int = MIN_CHORD_NOTES):
        self.interval = interval
        self.min_notes = min_notes
        self._last_eval_time: float | None = None
        self._recent: deque[ChordEvent] = deque(maxlen=RECENT_CHORDS)

    def update(self, notes: list[ChordNote], now: float, timestamp: float = 0.0) -> ChordEvent | None:
        """
        Evaluate the currently reported notes.

        Args:
            notes: Confirmed and observed notes this tick
            now: Current time in seconds, used for rate limiting
            timestamp: Session-relative time stored on the event

        Returns:
            A new ChordEvent, or None when rate limited, too few notes, or
            unchanged from the previous chord
        """
        if len(notes) < self.min_notes:
            return None
        if self._last_eval_time is not None and now - self._last_eval_time < self.interval:
            return None

        ordered = sorted(notes, key=lambda n: n.midi_note)
        name = identify_chord([n.midi_note for n in ordered])
        self._last_eval_time = now

        if self._recent and self._recent[-1].name == name:
            return None

        event = ChordEvent(
            name=name,
            notes=tuple(n.name for n in ordered),
            timestamp=timestamp,
        )
        self._recent.append(event)
        logger.info("Chord %s (%s)", name, " ".join(event.notes))
        return event

    def set_interval(self, interval: float):
        self.interval = interval

    def clear(self):
        self._last_eval_time = None
        self._recent.clear()

    @property
    def recent_chords(self) -> list[ChordEvent]:
        """Last emitted chords, oldest first."""
        return list(self._recent)

    @property
    def last_chord(self) -> ChordEvent | None:
        return self._recent[-1] if self._recent else None
