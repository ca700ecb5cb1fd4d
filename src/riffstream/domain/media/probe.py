"""
Technical metadata extraction for uploaded audio.

Best-effort enrichment: a file Mutagen cannot read still ingests, with
duration falling back to the client's estimate (or 0 = unknown).
"""

from typing import Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from .models import ProbeResult


def probe_audio(local_path: str, duration_hint: Optional[float] = None) -> ProbeResult:
    """Read duration, bitrate and sample rate from an audio file.

    Args:
        local_path: Path to the audio file
        duration_hint: Duration reported by the uploader, preferred when given

    Returns:
        ProbeResult; never raises
    """
    hinted = _clean_duration(duration_hint)

    try:
        audio_file = MutagenFile(local_path)
    except (MutagenError, OSError) as e:
        logger.warning(f"Metadata extraction failed for {local_path}: {e}")
        return ProbeResult(duration_seconds=hinted or 0)

    if audio_file is None or getattr(audio_file, "info", None) is None:
        logger.warning(f"Unrecognized audio container: {local_path}")
        return ProbeResult(duration_seconds=hinted or 0)

    info = audio_file.info
    probed = _clean_duration(getattr(info, "length", None))

    bitrate = getattr(info, "bitrate", None)
    bitrate_kbps = round(bitrate / 1000) if bitrate else None

    sample_rate = getattr(info, "sample_rate", None)
    sample_rate_hz = int(sample_rate) if sample_rate else None

    return ProbeResult(
        duration_seconds=hinted or probed or 0,
        bitrate_kbps=bitrate_kbps,
        sample_rate_hz=sample_rate_hz,
    )


def _clean_duration(value: Optional[float]) -> Optional[int]:
    """Round to whole seconds; None for missing, negative or non-numeric."""
    if value is None:
        return None
    try:
        seconds = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return seconds if seconds > 0 else None
