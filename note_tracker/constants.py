"""
Shared constants for note detection.
"""

# Equal temperament anchor
A4_REFERENCE = 440.0
A4_MIDI = 69
OCTAVE = 12

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Name reported instead of a note when unpitched substitution is enabled
UNPITCHED = "--"

# Session defaults for the analysis window
SAMPLE_RATE = 48000
FFT_SIZE = 8192

# Search bounds cover C2 (65.4 Hz) up to just below C8
MIN_FREQUENCY = 65.0
MAX_FREQUENCY = 4000.0

MAX_MAGNITUDE = 255
PEAK_WINDOW = 7

HARMONIC_TOLERANCE = 0.20
HARMONIC_RANGE = (2, 8)
OVERTONE_RATIOS = (1.5, 2.5, 3.5)
MAX_FUNDAMENTALS = 3
MAX_UNFILTERED_PEAKS = 5
