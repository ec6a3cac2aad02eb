"""
Detection settings, named presets and INI persistence.

All settings live in one DetectionConfig. Values are validated when a config
is built or changed; out-of-range values raise ConfigurationError and are
never clamped.
"""

import configparser
import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import (
    A4_REFERENCE,
    FFT_SIZE,
    HARMONIC_TOLERANCE,
    MAX_FREQUENCY,
    MAX_FUNDAMENTALS,
    MAX_MAGNITUDE,
    MAX_UNFILTERED_PEAKS,
    MIN_FREQUENCY,
    PEAK_WINDOW,
    SAMPLE_RATE,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_SECTION = "detection"

# amplitude (0-255), confidence (0-1), min duration (s), smoothing (frames)
PRESETS: dict[str, dict[str, Any]] = {
    "sensitive": {
        "amplitude_threshold": 15,
        "confidence_threshold": 0.30,
        "min_note_duration": 0.050,
        "smoothing_size": 3,
    },
    "balanced": {
        "amplitude_threshold": 30,
        "confidence_threshold": 0.50,
        "min_note_duration": 0.100,
        "smoothing_size": 5,
    },
    "aggressive": {
        "amplitude_threshold": 50,
        "confidence_threshold": 0.70,
        "min_note_duration": 0.150,
        "smoothing_size": 8,
    },
}


@dataclass(frozen=True)
class DetectionConfig:
    """Tunable parameters for the detection pipeline."""

    # Peak extraction
    amplitude_threshold: int = 30  # Minimum bin magnitude (0-255)
    min_frequency: float = MIN_FREQUENCY
    max_frequency: float = MAX_FREQUENCY
    peak_window: int = PEAK_WINDOW  # Neighbors on each side a peak must exceed

    # Harmonic filtering
    harmonic_filter_enabled: bool = True
    harmonic_tolerance: float = HARMONIC_TOLERANCE
    max_fundamentals: int = MAX_FUNDAMENTALS
    max_unfiltered_peaks: int = MAX_UNFILTERED_PEAKS

    # Temporal smoothing
    smoothing_size: int = 5  # Frames
    confidence_threshold: float = 0.5

    # Debounce (seconds)
    min_note_duration: float = 0.1
    silence_timeout: float = 0.3

    # Chords and history (seconds)
    chord_interval: float = 0.5
    history_duration: float = 10.0

    # Note naming
    reference: float = A4_REFERENCE
    unpitched_tolerance: float | None = None  # Cents; None disables the sentinel

    # Fixed for a session
    sample_rate: int = SAMPLE_RATE
    fft_size: int = FFT_SIZE

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check every field.

        Raises:
            ConfigurationError: On the first invalid field
        """
        _require_int("amplitude_threshold", self.amplitude_threshold, 0, MAX_MAGNITUDE)
        _require_number("min_frequency", self.min_frequency, low_exclusive=0.0)
        _require_number("max_frequency", self.max_frequency, low_exclusive=self.min_frequency)
        _require_int("peak_window", self.peak_window, 1)

        if not isinstance(self.harmonic_filter_enabled, bool):
            raise ConfigurationError(
                f"harmonic_filter_enabled must be a bool, got {self.harmonic_filter_enabled!r}"
            )
        _require_number("harmonic_tolerance", self.harmonic_tolerance, low_exclusive=0.0, high=0.5)
        _require_int("max_fundamentals", self.max_fundamentals, 1)
        _require_int("max_unfiltered_peaks", self.max_unfiltered_peaks, 1)

        _require_int("smoothing_size", self.smoothing_size, 1)
        _require_number("confidence_threshold", self.confidence_threshold, low=0.0, high=1.0)

        _require_number("min_note_duration", self.min_note_duration, low=0.0)
        _require_number("silence_timeout", self.silence_timeout, low=0.0)
        _require_number("chord_interval", self.chord_interval, low=0.0)
        _require_number("history_duration", self.history_duration, low_exclusive=0.0)

        _require_number("reference", self.reference, low_exclusive=0.0)
        if self.unpitched_tolerance is not None:
            _require_number(
                "unpitched_tolerance", self.unpitched_tolerance, low=0.0, high=50.0
            )

        _require_int("sample_rate", self.sample_rate, 1)
        _require_int("fft_size", self.fft_size, 32, 32768)
        if self.fft_size & (self.fft_size - 1):
            raise ConfigurationError(f"fft_size must be a power of two, got {self.fft_size}")

    def with_changes(self, **changes) -> "DetectionConfig":
        """Return a validated copy with the given fields replaced."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_preset(cls, name: str, base: "DetectionConfig | None" = None) -> "DetectionConfig":
        """
        Build a config from a named preset.

        Args:
            name: "sensitive", "balanced" or "aggressive"
            base: Config supplying the settings the preset does not cover

        Raises:
            ConfigurationError: If the preset is unknown
        """
        settings = PRESETS.get(name.lower())
        if settings is None:
            raise ConfigurationError(
                f"Unknown preset {name!r}, expected one of {', '.join(PRESETS)}"
            )
        return (base or cls()).with_changes(**settings)

    @property
    def bin_resolution(self) -> float:
        """Hz per magnitude bin for the session analysis window."""
        return self.sample_rate / self.fft_size


def _require_number(name, value, low=None, high=None, low_exclusive=None):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if value != value:
        raise ConfigurationError(f"{name} must not be NaN")
    if low is not None and value < low:
        raise ConfigurationError(f"{name} must be >= {low}, got {value}")
    if low_exclusive is not None and value <= low_exclusive:
        raise ConfigurationError(f"{name} must be > {low_exclusive}, got {value}")
    if high is not None and value > high:
        raise ConfigurationError(f"{name} must be <= {high}, got {value}")


def _require_int(name, value, low=None, high=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    _require_number(name, value, low=low, high=high)


def load_config(path: str | Path) -> DetectionConfig:
    """
    Load detection settings from an INI file.

    Missing files and missing keys fall back to defaults. Settings live in
    the [detection] section.

    Raises:
        ConfigurationError: If a value cannot be parsed or is out of range
    """
    config_path = Path(path)
    defaults = DetectionConfig()
    if not config_path.exists():
        logger.info("Config file %s not found, using defaults", config_path)
        return defaults

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    if not parser.has_section(CONFIG_SECTION):
        return defaults

    section = parser[CONFIG_SECTION]
    changes: dict[str, Any] = {}
    for f in dataclasses.fields(DetectionConfig):
        if f.name not in section:
            continue
        raw = section[f.name].strip()
        default = getattr(defaults, f.name)
        try:
            if f.name == "unpitched_tolerance":
                changes[f.name] = None if raw.lower() in ("", "none", "off") else float(raw)
            elif isinstance(default, bool):
                changes[f.name] = section.getboolean(f.name)
            elif isinstance(default, int):
                changes[f.name] = int(raw)
            else:
                changes[f.name] = float(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {f.name}: {raw!r}") from e

    config = defaults.with_changes(**changes)
    logger.info("Loaded detection config from %s", config_path)
    return config


def save_config(config: DetectionConfig, path: str | Path):
    """Write detection settings to an INI file."""
    parser = configparser.ConfigParser()
    parser[CONFIG_SECTION] = {
        f.name: "none" if getattr(config, f.name) is None else str(getattr(config, f.name))
        for f in dataclasses.fields(config)
    }
    with open(path, "w", encoding="utf-8") as fh:
        parser.write(fh)
    logger.info("Saved detection config to %s", path)
