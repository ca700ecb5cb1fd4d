"""Waveform summaries for audio visualization.

The summary is a short list of per-window peak amplitudes in [0, 1]. Peaks
rather than RMS keep percussive transients visible at glance size.
"""

import math
from pathlib import Path

import numpy as np
from loguru import logger
from pydub import AudioSegment


DEFAULT_POINTS = 200
DEFAULT_SAMPLE_RATE = 8000
MAX_AUDIO_SIZE_MB = 100  # Prevent OOM


def summarize_peaks(samples: np.ndarray, points: int = DEFAULT_POINTS) -> list[float]:
    """Pure function - peak absolute amplitude per window, rounded to 2 places.

    Windows are contiguous and ceil(len / points) samples long, so the result
    has at most `points` entries. The last window may be shorter.

    Args:
        samples: Mono float samples, nominally in [-1, 1]
        points: Target number of windows

    Returns:
        List of floats in [0, 1]; empty for empty input
    """
    total = len(samples)
    if total == 0 or points <= 0:
        return []

    window = math.ceil(total / points)
    num_windows = math.ceil(total / window)

    # Zero padding never raises a peak, since values are absolute
    padded = np.zeros(num_windows * window, dtype=np.float64)
    padded[:total] = np.abs(np.asarray(samples, dtype=np.float64))

    peaks = padded.reshape(num_windows, window).max(axis=1)
    peaks = np.clip(np.round(peaks, 2), 0.0, 1.0)
    return [float(p) for p in peaks]


def decode_mono_pcm(audio_path: str, sample_rate: int = DEFAULT_SAMPLE_RATE) -> np.ndarray:
    """Decode audio to mono float PCM at the given sample rate.

    Raises:
        Whatever pydub/ffmpeg raises for undecodable input
    """
    audio = AudioSegment.from_file(audio_path)
    audio = audio.set_frame_rate(sample_rate).set_channels(1)

    samples = np.array(audio.get_array_of_samples(), dtype=np.float64)
    full_scale = float(1 << (8 * audio.sample_width - 1))
    return samples / full_scale


def generate_waveform(
    audio_path: str,
    points: int = DEFAULT_POINTS,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> list[float]:
    """Build the waveform summary for an audio file.

    Any failure (missing ffmpeg, undecodable file, oversized input) yields an
    empty list; an empty waveform is a valid track state.
    """
    try:
        file_size_mb = Path(audio_path).stat().st_size / (1024 * 1024)
        if file_size_mb > MAX_AUDIO_SIZE_MB:
            logger.warning(
                f"Skipping waveform, file too large: {file_size_mb:.1f}MB > {MAX_AUDIO_SIZE_MB}MB"
            )
            return []

        samples = decode_mono_pcm(audio_path, sample_rate)
    except Exception as e:
        logger.warning(
            f"Waveform generation failed for {audio_path}: {type(e).__name__}: {e}"
        )
        return []

    return summarize_peaks(samples, points)
