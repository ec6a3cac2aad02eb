"""
Spectral peak extraction from 8-bit magnitude frames.

Peaks are local maxima that stand strictly above every neighbor within a
window, refined to a fractional bin with parabolic interpolation.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
from scipy.signal import find_peaks

from .constants import MAX_FREQUENCY, MIN_FREQUENCY, PEAK_WINDOW

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MagnitudeFrame:
    """
    One analysis snapshot.

    magnitudes holds one unsigned 8-bit value per frequency bin, covering
    0 Hz up to the Nyquist frequency.
    """

    magnitudes: np.ndarray
    sample_rate: float
    timestamp: float | None = None  # Seconds on the engine clock

    @property
    def bin_count(self) -> int:
        return int(np.size(self.magnitudes))

    @property
    def bin_resolution(self) -> float:
        """Hz per bin."""
        if self.bin_count == 0:
            return 0.0
        return (self.sample_rate / 2) / self.bin_count

    @property
    def is_degenerate(self) -> bool:
        """True when the frame cannot be analysed."""
        return (
            np.ndim(self.magnitudes) != 1
            or self.bin_count == 0
            or not self.sample_rate > 0
        )

    @property
    def level(self) -> float:
        """Average magnitude across all bins (0-255)."""
        if self.bin_count == 0:
            return 0.0
        return float(np.mean(self.magnitudes))


class Peak(NamedTuple):
    """A spectral peak. Surviving peaks are the frame's fundamentals."""
    frequency: float
    amplitude: int
    bin_index: int


def parabolic_offset(y1: float, y2: float, y3: float) -> float:
    """
    Fractional bin offset of a peak from three neighboring magnitudes.

    Returns 0.0 when the three points are collinear so the caller falls
    back to the bin center.
    """
    denom = 2 * y2 - y1 - y3
    if denom == 0:
        return 0.0
    return 0.5 * (y3 - y1) / denom


class SpectralPeakExtractor:
    """
    Finds peaks in a magnitude frame.

    A bin is a peak when it reaches the amplitude threshold and is strictly
    greater than all bins within `peak_window` on either side. An equal
    neighbor disqualifies it.
    """

    def __init__(
        self,
        amplitude_threshold: int = 30,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
        peak_window: int = PEAK_WINDOW,
    ):
        """
        Initialize extractor.

        Args:
            amplitude_threshold: Minimum magnitude for a peak (0-255)
            min_frequency: Lowest frequency searched in Hz
            max_frequency: Highest frequency searched in Hz
            peak_window: Neighbors on each side a peak must exceed
        """
        self.amplitude_threshold = amplitude_threshold
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency
        self.peak_window = peak_window

    def set_amplitude_threshold(self, threshold: int):
        self.amplitude_threshold = threshold

    def set_frequency_range(self, min_frequency: float, max_frequency: float):
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    def set_peak_window(self, window: int):
        self.peak_window = window

    def _search_range(self, frame: MagnitudeFrame) -> tuple[int, int]:
        """Bin indices [start, stop) where a full window fits inside the bounds."""
        nyquist = frame.sample_rate / 2
        bins = frame.bin_count
        min_index = int(np.floor(self.min_frequency / nyquist * bins))
        max_bound = min(int(np.floor(self.max_frequency / nyquist * bins)), bins)
        start = max(min_index, 0) + self.peak_window
        stop = max_bound - self.peak_window
        return start, stop

    def extract(self, frame: MagnitudeFrame) -> list[Peak]:
        """
        Find peaks in a frame.

        Args:
            frame: Magnitude frame to analyse

        Returns:
            Peaks sorted by descending amplitude, empty for degenerate frames
        """
        if frame.is_degenerate:
            logger.debug("Skipping degenerate frame (bins=%d, rate=%s)",
                         frame.bin_count, frame.sample_rate)
            return []

        start, stop = self._search_range(frame)
        if start >= stop:
            return []

        mags = np.asarray(frame.magnitudes, dtype=np.float64)
        bin_hz = frame.bin_resolution
        w = self.peak_window

        # find_peaks gives strict immediate maxima; the window test narrows them
        candidates, _ = find_peaks(mags, height=self.amplitude_threshold)
        candidates = candidates[(candidates >= start) & (candidates < stop)]

        peaks = []
        for i in candidates:
            value = mags[i]
            neighbors = np.concatenate((mags[i - w:i], mags[i + 1:i + w + 1]))
            if np.any(neighbors >= value):
                continue

            delta = parabolic_offset(mags[i - 1], value, mags[i + 1])
            peaks.append(
                Peak(
                    frequency=float((i + delta) * bin_hz),
                    amplitude=int(value),
                    bin_index=int(i),
                )
            )

        # Stable sort keeps ascending frequency among equal amplitudes
        peaks.sort(key=lambda p: p.amplitude, reverse=True)
        return peaks
