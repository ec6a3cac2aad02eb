"""
Per-note confirmation and silence timeout.

A note must be observed for min_note_duration before it is reported, and is
forgotten once it has gone unobserved for longer than silence_timeout.
Confirmation and timeout are independent: a confirmed note that is silent
for one tick is not reported that tick but keeps its confirmed state.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .note_mapper import midi_to_note_name

logger = logging.getLogger(__name__)


class NoteState(Enum):
    ABSENT = "absent"
    PENDING = "pending"
    CONFIRMED = "confirmed"


@dataclass
class NoteBufferEntry:
    """Debounce state for one MIDI note."""
    start_time: float
    last_seen_time: float
    confirmed: bool = False

    @property
    def state(self) -> NoteState:
        return NoteState.CONFIRMED if self.confirmed else NoteState.PENDING


class NoteDebouncer:
    """Tracks pending and confirmed notes keyed by MIDI number."""

    def __init__(self, min_note_duration: float = 0.1, silence_timeout: float = 0.3):
        """
        Initialize debouncer.

        Args:
            min_note_duration: Seconds a note must persist before confirmation
            silence_timeout: Seconds of absence after which a note is dropped
        """
        self.min_note_duration = min_note_duration
        self.silence_timeout = silence_timeout
        self._entries: dict[int, NoteBufferEntry] = {}

    def update(self, observed: list[int], now: float) -> set[int]:
        """
        Advance the state machine by one tick.

        Args:
            observed: MIDI notes observed this tick
            now: Current time in seconds

        Returns:
            MIDI notes that are both confirmed and observed this tick
        """
        reported = set()
        for midi in observed:
            entry = self._entries.get(midi)
            if entry is None:
                entry = NoteBufferEntry(start_time=now, last_seen_time=now)
                self._entries[midi] = entry
            else:
                entry.last_seen_time = now

            if not entry.confirmed and now - entry.start_time >= self.min_note_duration:
                entry.confirmed = True
                logger.debug("Confirmed %s after %.0f ms",
                             midi_to_note_name(midi), (now - entry.start_time) * 1000)

            if entry.confirmed:
                reported.add(midi)

        self.expire(now)
        return reported

    def expire(self, now: float):
        """Drop notes unobserved for longer than the silence timeout."""
        expired = [
            midi for midi, entry in self._entries.items()
            if now - entry.last_seen_time > self.silence_timeout
        ]
        for midi in expired:
            del self._entries[midi]
            logger.debug("Expired %s", midi_to_note_name(midi))

    def state(self, midi_note: int) -> NoteState:
        entry = self._entries.get(midi_note)
        return entry.state if entry is not None else NoteState.ABSENT

    def set_min_note_duration(self, duration: float):
        self.min_note_duration = duration

    def set_silence_timeout(self, timeout: float):
        self.silence_timeout = timeout

    def clear(self):
        self._entries.clear()

    @property
    def entries(self) -> dict[int, NoteBufferEntry]:
        """Current debounce table (read-only view by convention)."""
        return dict(self._entries)
