"""Tests for chord naming and chord event rate limiting."""

import pytest

from note_tracker.chord_identifier import ChordEvent, ChordIdentifier, identify_chord
from note_tracker.note_mapper import midi_to_frequency, note_name_to_midi, frequency_to_note


def notes(*names: str):
    """NoteRecords for note names such as "C4"."""
    return [frequency_to_note(midi_to_frequency(note_name_to_midi(n))) for n in names]


class TestIdentifyChord:

    def test_c_major(self):
        """Root position major triad."""
        assert identify_chord([60, 64, 67]) == "C Major"

    def test_a_minor(self):
        """Root position minor triad."""
        assert identify_chord([57, 60, 64]) == "A Minor"

    def test_order_independent(self):
        """Input order does not affect the name."""
        assert identify_chord([67, 60, 64]) == "C Major"

    @pytest.mark.parametrize(
        "midi_notes, name",
        [
            ([60, 64, 67, 71], "C Major 7"),
            ([60, 64, 67, 70], "C Dominant 7"),
            ([60, 63, 67, 70], "C Minor 7"),
            ([60, 63, 67, 71], "C Minor Major 7"),
            ([60, 63, 66], "C Diminished"),
            ([60, 63, 66, 69], "C Diminished 7"),
            ([60, 64, 68], "C Augmented"),
            ([60, 62, 67], "C Sus2"),
            ([60, 65, 67], "C Sus4"),
            ([60, 64, 67, 70, 74], "C 9"),
            ([60, 63, 67, 70, 74], "C Minor 9"),
            ([60, 67], "C5 (Power)"),
            ([62, 66, 69], "D Major"),
            ([66, 70, 73], "F# Major"),
        ],
    )
    def test_chord_shapes(self, midi_notes, name):
        """Each table shape is named with its root."""
        assert identify_chord(midi_notes) == name

    def test_spread_voicing(self):
        """Intervals are taken mod 12, so an open voicing still matches."""
        assert identify_chord([48, 64, 67]) == "C Major"

    def test_inversion_is_generic(self):
        """First inversion C/E has a different signature."""
        assert identify_chord([64, 67, 72]) == "E Chord (E G C)"

    def test_unknown_shape_lists_pitch_classes(self):
        """Unknown shapes list their pitch classes lowest first."""
        assert identify_chord([60, 61, 62]) == "C Chord (C C# D)"


class TestChordIdentifier:

    def setup_method(self):
        self.identifier = ChordIdentifier(interval=0.5)

    def test_emits_event(self):
        """First evaluation emits an event with the given timestamp."""
        event = self.identifier.update(notes("C4", "E4", "G4"), now=0.0, timestamp=1.25)

        assert event == ChordEvent(name="C Major", notes=("C4", "E4", "G4"), timestamp=1.25)

    def test_notes_ordered_lowest_first(self):
        """Event notes are ordered by pitch."""
        event = self.identifier.update(notes("E4", "C4", "A3"), now=0.0)

        assert event.name == "A Minor"
        assert event.notes == ("A3", "C4", "E4")

    def test_needs_three_notes(self):
        """Two notes never form a chord."""
        assert self.identifier.update(notes("C4", "G4"), now=0.0) is None
        # Too few notes does not use up the rate limit
        assert self.identifier.update(notes("C4", "E4", "G4"), now=0.1) is not None

    def test_rate_limited(self):
        """Identical chords within 500 ms produce exactly one event."""
        events = [
            self.identifier.update(notes("C4", "E4", "G4"), now=t)
            for t in (0.0, 0.1, 0.2, 0.3, 0.4)
        ]

        assert len([e for e in events if e is not None]) == 1

    def test_different_chord_rate_limited(self):
        """A new chord waits for the interval to pass."""
        self.identifier.update(notes("C4", "E4", "G4"), now=0.0)
        assert self.identifier.update(notes("A3", "C4", "E4"), now=0.2) is None
        assert self.identifier.update(notes("A3", "C4", "E4"), now=0.5).name == "A Minor"

    def test_repeat_suppressed_after_interval(self):
        """The same chord is not emitted twice in a row."""
        self.identifier.update(notes("C4", "E4", "G4"), now=0.0)
        assert self.identifier.update(notes("C4", "E4", "G4"), now=1.0) is None

    def test_repeat_evaluation_resets_timer(self):
        """A suppressed repeat still counts as an evaluation for rate limiting."""
        self.identifier.update(notes("C4", "E4", "G4"), now=0.0)
        self.identifier.update(notes("C4", "E4", "G4"), now=1.0)

        assert self.identifier.update(notes("A3", "C4", "E4"), now=1.25) is None
        assert self.identifier.update(notes("A3", "C4", "E4"), now=1.5) is not None

    def test_chord_returns_after_change(self):
        """A chord can be emitted again once another chord came between."""
        self.identifier.update(notes("C4", "E4", "G4"), now=0.0)
        self.identifier.update(notes("A3", "C4", "E4"), now=0.5)

        assert self.identifier.update(notes("C4", "E4", "G4"), now=1.0).name == "C Major"

    def test_recent_chords_bounded(self):
        """Only the last ten chords are kept."""
        for i in range(12):
            chord = notes("C4", "E4", "G4") if i % 2 == 0 else notes("A3", "C4", "E4")
            self.identifier.update(chord, now=i * 1.0)

        recent = self.identifier.recent_chords
        assert len(recent) == 10
        assert recent[-1].name == "A Minor"
        assert self.identifier.last_chord == recent[-1]

    def test_clear(self):
        """Clear forgets chords and the rate limit."""
        self.identifier.update(notes("C4", "E4", "G4"), now=0.0)
        self.identifier.clear()

        assert self.identifier.recent_chords == []
        assert self.identifier.update(notes("C4", "E4", "G4"), now=0.1) is not None
