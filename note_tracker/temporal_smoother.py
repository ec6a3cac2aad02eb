"""
Cross-frame smoothing of fundamentals.

Keeps the fundamentals of the last few frames, groups them by nearest MIDI
note and averages each group. A note's confidence is the fraction of frames
in the window that contained it, so single-frame transients are dropped
while sustained notes come through within a handful of frames.
"""

from collections import defaultdict, deque
from dataclasses import dataclass

import numpy as np

from .constants import A4_REFERENCE
from .note_mapper import frequency_to_midi
from .peak_extractor import Peak


@dataclass
class SmoothedNote:
    """Averaged observation of one note across the smoothing window."""
    midi_note: int
    frequency: float  # Mean frequency in Hz
    amplitude: float  # Mean magnitude (0-255)
    confidence: float  # 0.0 to 1.0, fraction of frames containing the note


class TemporalSmoother:
    """
    Rolling window of fundamentals.

    Every frame is pushed, including frames with no fundamentals, so a note
    that stops decays out of the window.
    """

    def __init__(
        self,
        size: int = 5,
        min_confidence: float = 0.5,
        reference: float = A4_REFERENCE,
    ):
        """
        Initialize smoother.

        Args:
            size: Number of frames kept in the window
            min_confidence: Minimum confidence for a note to be emitted
            reference: Frequency of A4 used for note grouping
        """
        self.size = size
        self.min_confidence = min_confidence
        self.reference = reference
        self._frames: deque[list[Peak]] = deque(maxlen=size)

    def update(self, fundamentals: list[Peak]) -> list[SmoothedNote]:
        """
        Push one frame's fundamentals and return the smoothed notes.

        Args:
            fundamentals: Fundamentals of the current frame

        Returns:
            SmoothedNotes meeting min_confidence, loudest first
        """
        self._frames.append(list(fundamentals))
        return self.get_smoothed()

    def get_smoothed(self) -> list[SmoothedNote]:
        """Smoothed notes for the current window without pushing a frame."""
        groups: dict[int, list[Peak]] = defaultdict(list)
        frames_seen: dict[int, set[int]] = defaultdict(set)

        for frame_idx, frame in enumerate(self._frames):
            for peak in frame:
                midi = frequency_to_midi(peak.frequency, self.reference)
                groups[midi].append(peak)
                frames_seen[midi].add(frame_idx)

        smoothed = []
        for midi, peaks in groups.items():
            confidence = len(frames_seen[midi]) / self.size
            if confidence < self.min_confidence:
                continue

            smoothed.append(
                SmoothedNote(
                    midi_note=midi,
                    frequency=float(np.mean([p.frequency for p in peaks])),
                    amplitude=float(np.mean([p.amplitude for p in peaks])),
                    confidence=confidence,
                )
            )

        smoothed.sort(key=lambda n: n.amplitude, reverse=True)
        return smoothed

    def set_size(self, size: int):
        """Change the window size. Clears buffered frames."""
        self.size = size
        self._frames = deque(maxlen=size)

    def set_min_confidence(self, confidence: float):
        self.min_confidence = confidence

    def set_reference(self, reference: float):
        self.reference = reference

    def clear(self):
        """Clear all buffered frames."""
        self._frames.clear()

    @property
    def frame_count(self) -> int:
        """Number of frames currently buffered."""
        return len(self._frames)
