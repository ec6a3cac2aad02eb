"""
Live note and chord detection from the default microphone.

Captures mono audio with sounddevice, converts each analysis window into an
8-bit magnitude spectrum the way a browser AnalyserNode does, and feeds it to
the detection engine at the capture block rate.

Usage:
    python scripts/live_notes.py [--preset balanced] [--no-harmonic-filter]
                                 [--device N] [--config detection.ini]
                                 [--log-dir logs]
"""

import argparse
import logging
import queue

import numpy as np
import sounddevice as sd

from note_tracker.config import DetectionConfig, load_config
from note_tracker.engine import NoteDetectionEngine
from note_tracker.logging_setup import setup_logging
from note_tracker.peak_extractor import MagnitudeFrame

logger = logging.getLogger("live_notes")

MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0
TIME_SMOOTHING = 0.8
HOP_SIZE = 800  # 60 frames per second at 48 kHz


class ByteSpectrum:
    """
    Windowed FFT reduced to unsigned bytes.

    Magnitudes are blended with the previous frame, converted to dB and
    mapped linearly from [MIN_DECIBELS, MAX_DECIBELS] onto 0..255.
    """

    def __init__(self, fft_size: int):
        self.fft_size = fft_size
        self._window = np.blackman(fft_size)
        self._previous = np.zeros(fft_size // 2)

    def __call__(self, samples: np.ndarray) -> np.ndarray:
        spectrum = np.fft.rfft(samples * self._window)[: self.fft_size // 2]
        magnitude = np.abs(spectrum) / self.fft_size
        self._previous = TIME_SMOOTHING * self._previous + (1 - TIME_SMOOTHING) * magnitude

        with np.errstate(divide="ignore"):
            decibels = 20 * np.log10(self._previous)
        scaled = 255 / (MAX_DECIBELS - MIN_DECIBELS) * (decibels - MIN_DECIBELS)
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)


def build_config(args) -> DetectionConfig:
    config = load_config(args.config) if args.config else DetectionConfig()
    if args.preset:
        config = DetectionConfig.from_preset(args.preset, base=config)
    if args.no_harmonic_filter:
        config = config.with_changes(harmonic_filter_enabled=False)
    return config


def run(config: DetectionConfig, device=None):
    engine = NoteDetectionEngine(config)
    to_bytes = ByteSpectrum(config.fft_size)
    blocks: queue.Queue = queue.Queue()

    def callback(indata, frames, time_info, status):
        if status:
            logger.warning("Input status: %s", status)
        blocks.put(indata[:, 0].copy())

    buffer = np.zeros(config.fft_size)
    engine.start()
    try:
        with sd.InputStream(
            channels=1,
            samplerate=config.sample_rate,
            blocksize=HOP_SIZE,
            device=device,
            callback=callback,
        ):
            logger.info("Listening. Press Ctrl+C to stop.")
            while True:
                block = blocks.get()
                buffer = np.concatenate([buffer[len(block):], block])
                frame = MagnitudeFrame(to_bytes(buffer), config.sample_rate)
                result = engine.process(frame)

                if result.chord is not None:
                    print(f"\nChord: {result.chord.name}  [{' '.join(result.chord.notes)}]")
                if result.valid:
                    primary = result.primary
                    line = "  ".join(f"{n.note_name} {n.cents:+d}c" for n in result.notes)
                    print(f"\r{line:<40} {primary.frequency:7.1f} Hz  {result.hint.value:<10}",
                          end="", flush=True)
    finally:
        engine.stop()


def main():
    parser = argparse.ArgumentParser(description="Live note and chord detection")
    parser.add_argument("--preset", choices=["sensitive", "balanced", "aggressive"])
    parser.add_argument("--no-harmonic-filter", action="store_true",
                        help="Keep octaves and fifths (for chords)")
    parser.add_argument("--device", type=int, default=None, help="Input device index")
    parser.add_argument("--list-devices", action="store_true")
    parser.add_argument("--config", help="INI file with a [detection] section")
    parser.add_argument("--log-dir", help="Directory for a rotating log file")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    if args.list_devices:
        print(sd.query_devices())
        return

    setup_logging(args.log_dir, level=logging.DEBUG if args.debug else logging.INFO)
    try:
        run(build_config(args), device=args.device)
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
