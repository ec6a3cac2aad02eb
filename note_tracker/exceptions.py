"""
Exceptions raised by the detection pipeline.
"""


class ConfigurationError(ValueError):
    """A detection setting is out of range or of the wrong type."""


class InvalidFrequencyError(ValueError):
    """A frequency cannot be mapped to a note (non-positive or not finite)."""

    def __init__(self, frequency):
        super().__init__(f"Cannot map frequency to a note: {frequency!r}")
        self.frequency = frequency
