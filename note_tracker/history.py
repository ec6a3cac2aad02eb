"""
Time-ordered logs of reported notes for timeline display.
"""

from collections import deque
from dataclasses import dataclass, field

# Entries of the same note closer than this join one timeline bar
SEGMENT_GAP = 0.15
# Identical melodic notes closer than this extend the previous entry
MELODIC_CONTINUATION = 0.2
MAX_MELODIC_ENTRIES = 50


@dataclass(frozen=True)
class HistoryEntry:
    """A reported note at one tick."""
    note_name: str
    frequency: float
    cents: int
    amplitude: float
    timestamp: float  # Seconds since session start
    midi_note: int


@dataclass(frozen=True)
class LevelSample:
    """Average frame magnitude at one tick."""
    timestamp: float
    level: float


@dataclass
class NoteSegment:
    """A run of consecutive history entries for one note."""
    midi_note: int
    note_name: str
    start: float
    end: float
    cents: int  # Cents of the latest entry in the run

    @property
    def duration(self) -> float:
        return self.end - self.start


class NoteHistory:
    """
    Bounded note log.

    Entries and level samples older than `duration` seconds are pruned on
    every append and on prune(now), which the engine calls every tick.
    """

    def __init__(self, duration: float = 10.0):
        self.duration = duration
        self._entries: deque[HistoryEntry] = deque()
        self._levels: deque[LevelSample] = deque()

    def add(self, entry: HistoryEntry):
        self._entries.append(entry)
        self._prune(self._entries, entry.timestamp)

    def add_level(self, timestamp: float, level: float):
        self._levels.append(LevelSample(timestamp, level))
        self.prune(timestamp)

    def prune(self, now: float):
        """Drop note entries and level samples older than `duration` at `now`."""
        self._prune(self._entries, now)
        self._prune(self._levels, now)

    def _prune(self, log: deque, now: float):
        while log and now - log[0].timestamp >= self.duration:
            log.popleft()

    def set_duration(self, duration: float):
        self.duration = duration
        if self._entries:
            self._prune(self._entries, self._entries[-1].timestamp)
        if self._levels:
            self._prune(self._levels, self._levels[-1].timestamp)

    def clear(self):
        self._entries.clear()
        self._levels.clear()

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @property
    def levels(self) -> list[LevelSample]:
        return list(self._levels)

    def __len__(self) -> int:
        return len(self._entries)

    def segments(self, gap: float = SEGMENT_GAP) -> list[NoteSegment]:
        """
        Group entries into per-note bars for a piano-roll view.

        Consecutive entries of the same MIDI note join a bar while they are
        less than `gap` seconds apart.

        Returns:
            Segments ordered by start time
        """
        open_segments: dict[int, NoteSegment] = {}
        segments: list[NoteSegment] = []

        for entry in self._entries:
            current = open_segments.get(entry.midi_note)
            if current is not None and entry.timestamp - current.end < gap:
                current.end = entry.timestamp
                current.cents = entry.cents
                continue

            current = NoteSegment(
                midi_note=entry.midi_note,
                note_name=entry.note_name,
                start=entry.timestamp,
                end=entry.timestamp,
                cents=entry.cents,
            )
            open_segments[entry.midi_note] = current
            segments.append(current)

        return segments

    def to_tsv(self) -> str:
        """Render the log as tab-separated text with a header row."""
        lines = ["\t".join(["Time", "Note", "Hz", "Cents", "Amplitude"])]
        for entry in self._entries:
            cents_str = f"{entry.cents:+d}" if entry.cents != 0 else "0"
            lines.append("\t".join([
                f"{entry.timestamp:.3f}",
                entry.note_name,
                f"{entry.frequency:.2f}",
                cents_str,
                f"{entry.amplitude:.1f}",
            ]))
        return "\n".join(lines)


@dataclass
class MelodicEntry:
    """One or two notes played as a melody step."""
    notes: tuple[str, ...] = field(default_factory=tuple)
    timestamp: float = 0.0
    duration: float = 0.0


class MelodicLine:
    """Sequence of single notes and double stops, separate from chords."""

    def __init__(self, max_entries: int = MAX_MELODIC_ENTRIES):
        self._entries: deque[MelodicEntry] = deque(maxlen=max_entries)

    def add(self, notes: tuple[str, ...], timestamp: float) -> MelodicEntry:
        """
        Record notes heard at `timestamp`.

        Returns:
            The new entry, or the previous one when it was extended
        """
        last = self._entries[-1] if self._entries else None
        if (
            last is not None
            and last.notes == notes
            and timestamp - last.timestamp < MELODIC_CONTINUATION
        ):
            last.duration = timestamp - last.timestamp
            return last

        entry = MelodicEntry(notes=notes, timestamp=timestamp)
        self._entries.append(entry)
        return entry

    def clear(self):
        self._entries.clear()

    @property
    def entries(self) -> list[MelodicEntry]:
        return list(self._entries)
