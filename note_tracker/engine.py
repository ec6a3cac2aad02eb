"""
Note detection engine.

Runs the full pipeline once per magnitude frame:

    frame -> peaks -> fundamentals -> smoothed notes -> note records
          -> debounce -> {chord identifier, history} -> result

The engine owns all mutable state. It never schedules itself; an external
driver calls process() once per analysis tick.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .chord_identifier import ChordEvent, ChordIdentifier
from .config import DetectionConfig
from .debounce import NoteDebouncer
from .exceptions import ConfigurationError
from .harmonic_filter import HarmonicFilter
from .history import HistoryEntry, MelodicLine, NoteHistory
from .note_mapper import NoteMapper, TuningHint, tuning_hint
from .peak_extractor import MagnitudeFrame, Peak, SpectralPeakExtractor
from .temporal_smoother import SmoothedNote, TemporalSmoother

logger = logging.getLogger(__name__)

SESSION_FIXED = ("sample_rate", "fft_size")


@dataclass(frozen=True)
class DetectedNote:
    """A confirmed note reported for one tick."""

    note_name: str  # e.g. "A4"
    frequency: float  # Smoothed frequency in Hz
    cents: int  # Deviation from the nearest note
    midi_note: int
    amplitude: float  # Smoothed magnitude (0-255)
    confidence: float  # Fraction of smoothing frames containing the note
    octave: int
    pitch_class: str  # e.g. "A"

    @property
    def name(self) -> str:
        return self.note_name


@dataclass
class DetectionResult:
    """Output of one pipeline pass."""

    notes: list[DetectedNote] = field(default_factory=list)  # Loudest first
    chord: ChordEvent | None = None
    timestamp: float = 0.0  # Seconds since session start
    latency_ms: float = 0.0  # Wall time spent in the pass
    peaks: list[Peak] = field(default_factory=list)
    fundamentals: list[Peak] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.notes) > 0

    @property
    def primary(self) -> DetectedNote | None:
        """Loudest reported note."""
        return self.notes[0] if self.notes else None

    @property
    def note_names(self) -> list[str]:
        return [n.note_name for n in self.notes]

    @property
    def hint(self) -> TuningHint | None:
        """Tuning direction for the loudest note."""
        primary = self.primary
        return tuning_hint(primary.cents) if primary is not None else None


class NoteDetectionEngine:
    """
    Turns magnitude frames into stable notes and chords.

    Ticks are strictly sequential. Configuration changes are applied between
    ticks through configure() or apply_preset(); invalid changes raise
    ConfigurationError and leave the engine untouched.
    """

    def __init__(
        self,
        config: DetectionConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize engine.

        Args:
            config: Detection settings, defaults to the balanced preset
            clock: Monotonic time source in seconds
        """
        self._config = config or DetectionConfig()
        self._clock = clock

        self._extractor = SpectralPeakExtractor()
        self._harmonic_filter = HarmonicFilter()
        self._smoother = TemporalSmoother()
        self._mapper = NoteMapper()
        self._debouncer = NoteDebouncer()
        self._chords = ChordIdentifier()
        self._history = NoteHistory()
        self._melodic_line = MelodicLine()
        self._apply_config(self._config)

        self._running = False
        self._session_start: float | None = None
        self._active_notes: set[int] = set()
        self._seen_notes: set[int] = set()
        self._last_logged: tuple[str, ...] = ()
        self._idle_logged = False

    # Session control

    def start(self):
        """Begin a session with clean state."""
        self._reset_state()
        self._running = True
        self._idle_logged = False
        self._session_start = self._clock()
        logger.info("Detection started (%d Hz, window %d)",
                    self._config.sample_rate, self._config.fft_size)

    def stop(self):
        """End the session and clear all state."""
        self._reset_state()
        self._running = False
        self._idle_logged = False
        self._session_start = None
        logger.info("Detection stopped")

    def reset(self):
        """Clear all state without ending the session."""
        self._reset_state()
        if self._running:
            self._session_start = self._clock()

    def _reset_state(self):
        self._smoother.clear()
        self._debouncer.clear()
        self._chords.clear()
        self._history.clear()
        self._melodic_line.clear()
        self._active_notes = set()
        self._seen_notes = set()
        self._last_logged = ()

    @property
    def is_running(self) -> bool:
        return self._running

    # Configuration

    @property
    def config(self) -> DetectionConfig:
        return self._config

    def configure(self, **changes) -> DetectionConfig:
        """
        Change settings between ticks.

        Raises:
            ConfigurationError: If any value is invalid, or a session-fixed
                setting changes while running
        """
        new_config = self._config.with_changes(**changes)
        if self._running:
            for name in SESSION_FIXED:
                if getattr(new_config, name) != getattr(self._config, name):
                    raise ConfigurationError(f"{name} cannot change during a session")

        self._set_config(new_config)
        logger.info("Configuration updated: %s",
                    ", ".join(f"{k}={v}" for k, v in sorted(changes.items())))
        return new_config

    def apply_preset(self, name: str) -> DetectionConfig:
        """Apply a named preset ("sensitive", "balanced", "aggressive")."""
        new_config = DetectionConfig.from_preset(name, base=self._config)
        self._set_config(new_config)
        logger.info(
            "Preset applied: %s (amplitude %d, confidence %.0f%%, duration %.0f ms, smoothing %d)",
            name.upper(),
            new_config.amplitude_threshold,
            new_config.confidence_threshold * 100,
            new_config.min_note_duration * 1000,
            new_config.smoothing_size,
        )
        return new_config

    def _set_config(self, config: DetectionConfig):
        self._config = config
        self._apply_config(config)

    def _apply_config(self, config: DetectionConfig):
        # Resizing the smoother discards its buffered frames
        self._extractor.set_amplitude_threshold(config.amplitude_threshold)
        self._extractor.set_frequency_range(config.min_frequency, config.max_frequency)
        self._extractor.set_peak_window(config.peak_window)

        self._harmonic_filter.set_enabled(config.harmonic_filter_enabled)
        self._harmonic_filter.set_tolerance(config.harmonic_tolerance)
        self._harmonic_filter.set_limits(config.max_fundamentals, config.max_unfiltered_peaks)

        if self._smoother.size != config.smoothing_size:
            self._smoother.set_size(config.smoothing_size)
        self._smoother.set_min_confidence(config.confidence_threshold)
        self._smoother.set_reference(config.reference)

        self._mapper.set_reference(config.reference)
        self._mapper.set_unpitched_tolerance(config.unpitched_tolerance)

        self._debouncer.set_min_note_duration(config.min_note_duration)
        self._debouncer.set_silence_timeout(config.silence_timeout)

        self._chords.set_interval(config.chord_interval)
        self._history.set_duration(config.history_duration)

    def set_harmonic_filter(self, enabled: bool):
        """Toggle harmonic filtering (off for chords with octaves or fifths)."""
        self.configure(harmonic_filter_enabled=enabled)

    # Processing

    def process(self, frame: MagnitudeFrame) -> DetectionResult:
        """
        Run one pipeline pass.

        Args:
            frame: Magnitude frame for this tick

        Returns:
            DetectionResult with confirmed notes and an optional new chord
        """
        if not self._running:
            if not self._idle_logged:
                logger.debug("Frame ignored, detection not started")
                self._idle_logged = True
            return DetectionResult()

        started = time.perf_counter()
        now = frame.timestamp if frame.timestamp is not None else self._clock()
        elapsed = now - self._session_start

        if frame.is_degenerate or not self._matches_session(frame):
            logger.debug("Skipping frame at %.3fs (bins=%d, rate=%s)",
                         elapsed, frame.bin_count, frame.sample_rate)
            self._debouncer.expire(now)
            self._history.prune(elapsed)
            self._active_notes = set()
            return DetectionResult(timestamp=elapsed)

        peaks = self._extractor.extract(frame)
        fundamentals = self._harmonic_filter.filter(peaks)
        smoothed = self._smoother.update(fundamentals)

        reported_midi = self._debouncer.update([s.midi_note for s in smoothed], now)
        notes = [self._to_detected(s) for s in smoothed if s.midi_note in reported_midi]

        self._active_notes = {n.midi_note for n in notes}
        self._seen_notes |= self._active_notes

        chord = self._chords.update(notes, now, elapsed)
        if 1 <= len(notes) <= 2:
            self._melodic_line.add(tuple(n.note_name for n in notes), elapsed)

        for note in notes:
            self._history.add(
                HistoryEntry(
                    note_name=note.note_name,
                    frequency=note.frequency,
                    cents=note.cents,
                    amplitude=note.amplitude,
                    timestamp=elapsed,
                    midi_note=note.midi_note,
                )
            )
        self._history.add_level(elapsed, frame.level)

        self._log_note_change(notes)

        return DetectionResult(
            notes=notes,
            chord=chord,
            timestamp=elapsed,
            latency_ms=(time.perf_counter() - started) * 1000,
            peaks=peaks,
            fundamentals=fundamentals,
        )

    def _matches_session(self, frame: MagnitudeFrame) -> bool:
        """True when the frame was analysed at the session sample rate and window size."""
        return (
            frame.sample_rate == self._config.sample_rate
            and frame.bin_count == self._config.fft_size // 2
        )

    def _to_detected(self, smoothed: SmoothedNote) -> DetectedNote:
        record = self._mapper.map(smoothed.frequency)
        return DetectedNote(
            note_name=record.name,
            frequency=smoothed.frequency,
            cents=record.cents,
            midi_note=smoothed.midi_note,
            amplitude=smoothed.amplitude,
            confidence=smoothed.confidence,
            octave=record.octave,
            pitch_class=record.pitch_class,
        )

    def _log_note_change(self, notes: list[DetectedNote]):
        names = tuple(n.note_name for n in notes)
        if names == self._last_logged:
            return
        self._last_logged = names
        if names:
            logger.info("Notes %s (%s)", " ".join(names),
                        ", ".join(f"{n.frequency:.1f}Hz" for n in notes))

    # State for display layers

    @property
    def active_notes(self) -> set[int]:
        """MIDI notes reported on the last tick."""
        return set(self._active_notes)

    @property
    def seen_notes(self) -> set[int]:
        """MIDI notes reported since the session started."""
        return set(self._seen_notes)

    @property
    def history(self) -> NoteHistory:
        return self._history

    @property
    def melodic_line(self) -> MelodicLine:
        return self._melodic_line

    @property
    def recent_chords(self) -> list[ChordEvent]:
        return self._chords.recent_chords

    @property
    def debouncer(self) -> NoteDebouncer:
        return self._debouncer
