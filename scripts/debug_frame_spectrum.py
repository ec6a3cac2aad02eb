"""
Debug script: Plot what the engine sees in a sequence of magnitude frames.

Each frame is drawn with the extracted peaks and the fundamentals that
survive the harmonic filter, titled with the notes reported on that tick.

Usage:
    python scripts/debug_frame_spectrum.py frames.npy [output_prefix]

frames.npy holds a 2-D uint8 array, one magnitude frame per row.
"""

import sys

import matplotlib
import numpy as np

matplotlib.use('Agg')
import matplotlib.pyplot as plt

from note_tracker.config import DetectionConfig
from note_tracker.engine import NoteDetectionEngine
from note_tracker.peak_extractor import MagnitudeFrame

TICK = 1 / 60


def plot_frames(frames: np.ndarray, output_prefix: str, config: DetectionConfig):
    """Run frames through the engine and save one spectrum plot per frame."""
    engine = NoteDetectionEngine(config, clock=lambda: 0.0)
    engine.start()

    bins = frames.shape[1]
    freqs = np.arange(bins) * (config.sample_rate / 2) / bins
    valid = (freqs >= config.min_frequency) & (freqs <= config.max_frequency)

    for frame_num, mags in enumerate(frames):
        result = engine.process(MagnitudeFrame(mags, config.sample_rate, timestamp=frame_num * TICK))

        fig, ax = plt.subplots(figsize=(12, 5))
        ax.plot(freqs[valid], mags[valid], 'b-', linewidth=0.7)
        ax.axhline(config.amplitude_threshold, color='gray', linestyle=':', label='Threshold')

        fundamentals = {p.bin_index for p in result.fundamentals}
        for peak in result.peaks:
            kept = peak.bin_index in fundamentals
            ax.plot(peak.frequency, peak.amplitude, 'o' if kept else 'x',
                    color='red' if kept else 'orange')

        notes = ', '.join(result.note_names) or '-'
        chord = f' | {result.chord.name}' if result.chord else ''
        ax.set_title(f'Frame {frame_num} ({result.timestamp:.3f}s) - Notes: [{notes}]{chord}')
        ax.set_xlabel('Frequency (Hz)')
        ax.set_ylabel('Magnitude (0-255)')
        ax.set_ylim(0, 260)
        ax.legend(loc='upper right')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        filename = f'{output_prefix}_frame_{frame_num:03d}.png'
        plt.savefig(filename, dpi=100)
        plt.close()
        print(f'Saved: {filename}')


if __name__ == '__main__':
    frames = np.load(sys.argv[1])
    prefix = sys.argv[2] if len(sys.argv) > 2 else 'debug_spectrum'
    plot_frames(frames, prefix, DetectionConfig(fft_size=2 * frames.shape[1]))
    print('Done!')
