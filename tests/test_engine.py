"""
End-to-end tests for NoteDetectionEngine.

Frames use 1024 bins at a 10240 Hz sample rate (5 Hz per bin) and ticks are
spaced 1/16 s apart so every timing comparison is exact.
"""

import logging

import numpy as np
import pytest

from note_tracker.config import DetectionConfig
from note_tracker.debounce import NoteState
from note_tracker.engine import DetectedNote, NoteDetectionEngine
from note_tracker.exceptions import ConfigurationError
from note_tracker.note_mapper import TuningHint
from note_tracker.peak_extractor import MagnitudeFrame

SAMPLE_RATE = 10240
BINS = 1024
BIN_HZ = SAMPLE_RATE / 2 / BINS
TICK = 0.0625


def make_frame(peaks: dict[float, int], timestamp: float | None = None) -> MagnitudeFrame:
    mags = np.zeros(BINS, dtype=np.uint8)
    for freq, amp in peaks.items():
        i = int(round(freq / BIN_HZ))
        for offset, value in ((2, amp * 0.25), (1, amp * 0.6), (0, amp)):
            mags[i - offset] = max(mags[i - offset], int(value))
            mags[i + offset] = max(mags[i + offset], int(value))
    return MagnitudeFrame(mags, SAMPLE_RATE, timestamp)


SILENCE = make_frame({})
A4 = make_frame({440.0: 200})
C_MAJOR = make_frame({260.0: 200, 330.0: 180, 390.0: 160})
A3_WITH_HARMONICS = make_frame({220.0: 200, 440.0: 150, 660.0: 100})


@pytest.fixture
def engine(clock):
    engine = NoteDetectionEngine(
        DetectionConfig(sample_rate=SAMPLE_RATE, fft_size=2 * BINS),
        clock=clock,
    )
    engine.start()
    return engine


def run(engine, clock, frame, ticks, start_tick=0):
    """Process `frame` on consecutive ticks, returning the results."""
    results = []
    for k in range(start_tick, start_tick + ticks):
        clock.set(k * TICK)
        results.append(engine.process(frame))
    return results


class TestSingleTone:

    def test_confirmed_after_min_duration(self, engine, clock):
        """The tone enters the smoother at tick 2 and is reported 100 ms later."""
        results = run(engine, clock, A4, 6)

        assert [r.valid for r in results] == [False, False, False, False, True, True]
        assert engine.debouncer.state(69) == NoteState.CONFIRMED

    def test_reported_note(self, engine, clock):
        """Reported note carries smoothed frequency and tuning data."""
        result = run(engine, clock, A4, 5)[-1]

        note = result.primary
        assert note.note_name == "A4"
        assert note.midi_note == 69
        assert note.frequency == pytest.approx(440.0)
        assert note.cents == 0
        assert note.amplitude == pytest.approx(200.0)
        assert note.confidence == pytest.approx(1.0)
        assert note.octave == 4
        assert result.hint == TuningHint.IN_TUNE
        assert result.timestamp == pytest.approx(4 * TICK)
        assert result.latency_ms >= 0.0

    def test_tone_stops(self, engine, clock):
        """The note fades from the smoother, then expires after the silence timeout."""
        run(engine, clock, A4, 10)
        after = run(engine, clock, SILENCE, 6, start_tick=10)

        assert [r.valid for r in after] == [True, True, False, False, False, False]
        # Last observed at tick 11; still buffered at tick 15, gone at tick 16
        assert engine.debouncer.state(69) == NoteState.CONFIRMED
        clock.set(16 * TICK)
        engine.process(SILENCE)
        assert engine.debouncer.state(69) == NoteState.ABSENT

    def test_single_frame_transient_ignored(self, engine, clock):
        """A one-frame blip never reaches the debouncer."""
        run(engine, clock, A4, 1)
        results = run(engine, clock, SILENCE, 10, start_tick=1)

        assert not any(r.valid for r in results)
        assert engine.seen_notes == set()

    def test_harmonics_removed(self, engine, clock):
        """Overtones of A3 are filtered out."""
        result = run(engine, clock, A3_WITH_HARMONICS, 5)[-1]
        assert result.note_names == ["A3"]


class TestChords:

    def test_chord_with_filter_disabled(self, engine, clock):
        """A sustained triad produces one chord event."""
        engine.set_harmonic_filter(False)
        results = run(engine, clock, C_MAJOR, 20)

        chords = [r.chord for r in results if r.chord is not None]
        assert len(chords) == 1
        assert chords[0].name == "C Major"
        assert chords[0].notes == ("C4", "E4", "G4")
        assert chords[0].timestamp == pytest.approx(4 * TICK)
        assert engine.recent_chords == chords

    def test_filter_drops_fifth(self, engine, clock):
        """The fifth sits at 1.5x the root and is treated as an overtone."""
        result = run(engine, clock, C_MAJOR, 5)[-1]

        assert sorted(result.note_names) == ["C4", "E4"]
        assert result.chord is None

    def test_chord_notes_sorted_loudest_first(self, engine, clock):
        """Reported notes are ordered by amplitude."""
        engine.set_harmonic_filter(False)
        result = run(engine, clock, C_MAJOR, 5)[-1]

        assert result.note_names == ["C4", "E4", "G4"]


class TestSessionState:

    def test_not_running_logged_once(self, clock, caplog):
        """Frames before start() are reported once at DEBUG."""
        caplog.set_level(logging.DEBUG, logger="note_tracker.engine")
        engine = NoteDetectionEngine(clock=clock)
        engine.process(A4)
        engine.process(A4)

        ignored = [r for r in caplog.records if "not started" in r.getMessage()]
        assert len(ignored) == 1
        assert ignored[0].levelno == logging.DEBUG

    def test_wrong_sample_rate_skipped(self, engine, clock):
        """Frames analysed at a different sample rate report nothing."""
        frame = MagnitudeFrame(A4.magnitudes, 2 * SAMPLE_RATE)
        results = run(engine, clock, frame, 6)

        assert not any(r.valid for r in results)
        assert engine.seen_notes == set()

    def test_wrong_window_size_skipped(self, engine, clock):
        """Frames with a bin count other than fft_size / 2 report nothing."""
        frame = MagnitudeFrame(np.concatenate([A4.magnitudes, A4.magnitudes]), SAMPLE_RATE)
        results = run(engine, clock, frame, 6)

        assert not any(r.valid for r in results)

    def test_history_pruned_during_silence(self, engine, clock):
        """Note entries expire after the retention window even with no new notes."""
        run(engine, clock, A4, 8)
        assert len(engine.history.entries) == 4

        # Last entry at tick 7; tick 177 is 10.625 s later
        run(engine, clock, SILENCE, 170, start_tick=8)

        assert engine.history.entries == []
        assert engine.history.levels[0].timestamp > 1.0

    def test_detected_note_requires_all_fields(self):
        """Octave and pitch class have no placeholder defaults."""
        with pytest.raises(TypeError):
            DetectedNote(
                note_name="A4",
                frequency=440.0,
                cents=0,
                midi_note=69,
                amplitude=200.0,
                confidence=1.0,
            )

    def test_not_running_returns_empty(self, clock):
        """Frames are ignored before start()."""
        engine = NoteDetectionEngine(clock=clock)
        result = engine.process(A4)

        assert not engine.is_running
        assert result.notes == []
        assert result.chord is None

    def test_degenerate_frame(self, engine, clock):
        """Empty frames report nothing but keep debounce state."""
        run(engine, clock, A4, 6)
        clock.set(6 * TICK)
        result = engine.process(MagnitudeFrame(np.zeros(0, dtype=np.uint8), SAMPLE_RATE))

        assert result.notes == []
        assert engine.active_notes == set()
        assert engine.debouncer.state(69) == NoteState.CONFIRMED

    def test_zero_sample_rate_is_degenerate(self, engine, clock):
        """A zero sample rate is treated as degenerate."""
        result = engine.process(MagnitudeFrame(np.full(BINS, 100, dtype=np.uint8), 0))
        assert result.notes == []

    def test_history_and_seen_notes(self, engine, clock):
        """Reported notes feed the history and melodic line."""
        run(engine, clock, A4, 8)

        entries = engine.history.entries
        assert len(entries) == 4
        assert {e.note_name for e in entries} == {"A4"}
        assert entries[0].timestamp == pytest.approx(4 * TICK)
        assert len(engine.history.levels) == 8
        assert engine.seen_notes == {69}
        assert engine.active_notes == {69}
        assert engine.melodic_line.entries[0].notes == ("A4",)

    def test_frame_timestamp_overrides_clock(self, engine, clock):
        """Frame timestamps take precedence over the clock."""
        result = engine.process(make_frame({440.0: 200}, timestamp=5.0))
        assert result.timestamp == pytest.approx(5.0)

    def test_stop_clears_state(self, engine, clock):
        """Stop clears all state and a restart begins fresh."""
        run(engine, clock, A4, 8)
        engine.stop()

        assert not engine.is_running
        assert engine.history.entries == []
        assert engine.seen_notes == set()
        assert engine.debouncer.entries == {}

        engine.start()
        assert run(engine, clock, A4, 1, start_tick=8)[0].notes == []

    def test_reset_keeps_running(self, engine, clock):
        """Reset clears state without ending the session."""
        run(engine, clock, A4, 8)
        engine.reset()

        assert engine.is_running
        assert engine.history.entries == []
        assert engine.active_notes == set()


class TestConfiguration:

    def test_invalid_change_leaves_config(self, engine, clock):
        """Rejected changes leave config and state intact."""
        before = engine.config
        run(engine, clock, A4, 6)

        with pytest.raises(ConfigurationError):
            engine.configure(smoothing_size=0)

        assert engine.config == before
        assert run(engine, clock, A4, 1, start_tick=6)[0].valid

    def test_session_fixed_while_running(self, engine):
        """Sample rate cannot change mid-session."""
        with pytest.raises(ConfigurationError, match="sample_rate"):
            engine.configure(sample_rate=44100)
        assert engine.config.sample_rate == SAMPLE_RATE

    def test_session_fixed_when_stopped(self, engine):
        """Session-fixed settings change freely while stopped."""
        engine.stop()
        engine.configure(fft_size=4096)
        assert engine.config.fft_size == 4096

    def test_apply_preset(self, engine):
        """Presets apply without touching session settings."""
        config = engine.apply_preset("aggressive")

        assert config.smoothing_size == 8
        assert engine.config.amplitude_threshold == 50
        assert engine.config.sample_rate == SAMPLE_RATE

    def test_unknown_preset_leaves_config(self, engine):
        """Unknown presets leave config intact."""
        before = engine.config
        with pytest.raises(ConfigurationError):
            engine.apply_preset("loud")
        assert engine.config == before

    def test_threshold_change_applies_next_tick(self, engine, clock):
        """A new threshold takes effect as buffered frames age out."""
        run(engine, clock, A4, 6)
        engine.configure(amplitude_threshold=250)

        results = run(engine, clock, A4, 3, start_tick=6)
        # Buffered frames keep the note above the confidence threshold briefly
        assert results[0].valid
        assert not results[-1].valid
