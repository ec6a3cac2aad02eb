"""
Harmonic overtone rejection.

A single pitched tone produces peaks at f, 2f, 3f... which look identical to
a chord. The filter walks peaks loudest first and keeps only those that are
not overtones of an already accepted fundamental. Because a real chord can
contain octaves and fifths, the filter can be switched off.
"""

from .constants import (
    HARMONIC_RANGE,
    HARMONIC_TOLERANCE,
    MAX_FUNDAMENTALS,
    MAX_UNFILTERED_PEAKS,
    OVERTONE_RATIOS,
)
from .peak_extractor import Peak


def _near_integer_multiple(ratio: float, tolerance: float) -> bool:
    nearest = int(ratio + 0.5)
    low, high = HARMONIC_RANGE
    return low <= nearest <= high and abs(ratio - nearest) < tolerance


class HarmonicFilter:
    """Keeps fundamentals, drops their harmonics."""

    def __init__(
        self,
        enabled: bool = True,
        tolerance: float = HARMONIC_TOLERANCE,
        max_fundamentals: int = MAX_FUNDAMENTALS,
        max_unfiltered: int = MAX_UNFILTERED_PEAKS,
    ):
        """
        Initialize filter.

        Args:
            enabled: Reject harmonics; when False peaks are only truncated
            tolerance: Allowed distance of a frequency ratio from a harmonic
            max_fundamentals: Cap on fundamentals when enabled
            max_unfiltered: Cap on peaks passed through when disabled
        """
        self.enabled = enabled
        self.tolerance = tolerance
        self.max_fundamentals = max_fundamentals
        self.max_unfiltered = max_unfiltered

    def set_enabled(self, enabled: bool):
        self.enabled = enabled

    def set_tolerance(self, tolerance: float):
        self.tolerance = tolerance

    def set_limits(self, max_fundamentals: int, max_unfiltered: int):
        self.max_fundamentals = max_fundamentals
        self.max_unfiltered = max_unfiltered

    def filter(self, peaks: list[Peak]) -> list[Peak]:
        """
        Reduce amplitude-sorted peaks to fundamentals.

        For each candidate, accepted fundamentals are checked in acceptance
        order. The candidate is dropped when it sits near 2x..8x or near
        1.5x/2.5x/3.5x of a fundamental. When instead the fundamental sits
        near 2x..8x of the candidate, that fundamental is removed, the scan
        stops and the candidate is accepted.

        Args:
            peaks: Peaks sorted by descending amplitude

        Returns:
            Fundamentals in acceptance order
        """
        if not self.enabled:
            return list(peaks[:self.max_unfiltered])

        fundamentals: list[Peak] = []
        for peak in peaks:
            if self._is_overtone(peak, fundamentals):
                continue

            fundamentals.append(peak)
            if len(fundamentals) >= self.max_fundamentals:
                break

        return fundamentals

    def _is_overtone(self, peak: Peak, fundamentals: list[Peak]) -> bool:
        """Test a candidate, removing a fundamental it turns out to be the root of."""
        for j, fundamental in enumerate(fundamentals):
            ratio = peak.frequency / fundamental.frequency
            if _near_integer_multiple(ratio, self.tolerance):
                return True

            if _near_integer_multiple(fundamental.frequency / peak.frequency, self.tolerance):
                del fundamentals[j]
                return False

            if any(abs(ratio - r) < self.tolerance for r in OVERTONE_RATIOS):
                return True

        return False
