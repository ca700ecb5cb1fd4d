"""Rendition transcoding with ffmpeg, and the read-side quality fallback chain.

Each tier is encoded independently: a failing tier is logged and left out of
the result, never retried, and never blocks the other tiers.
"""

import os
import subprocess
from pathlib import Path
from typing import Optional

from loguru import logger

from riffstream.core.config import TranscodeConfig
from riffstream.core.path_security import resolve_media_path

from .models import Quality, RENDITION_TIERS, Track


RENDITION_EXTENSION = ".mp3"
RENDITION_CHANNELS = 2
RENDITION_SAMPLE_RATE = 44100

# Requested tier -> tiers to try, in order. LOSSLESS is the original upload.
FALLBACK_CHAIN: dict[Quality, tuple[Quality, ...]] = {
    Quality.LOW: (Quality.LOW, Quality.MEDIUM, Quality.LOSSLESS),
    Quality.MEDIUM: (Quality.MEDIUM, Quality.LOSSLESS),
    Quality.HIGH: (Quality.HIGH, Quality.LOSSLESS),
    Quality.LOSSLESS: (Quality.LOSSLESS,),
}

# Bitrate order, lowest first
TIER_RANK: dict[Quality, int] = {
    Quality.LOW: 0,
    Quality.MEDIUM: 1,
    Quality.HIGH: 2,
    Quality.LOSSLESS: 3,
}


def build_ffmpeg_command(
    ffmpeg_path: str, source: Path, output: Path, bitrate_kbps: int
) -> list[str]:
    """Pure function - ffmpeg argv for one MP3 rendition."""
    return [
        ffmpeg_path,
        "-y",
        "-i",
        str(source),
        "-vn",  # Drop embedded cover art streams
        "-c:a",
        "libmp3lame",
        "-b:a",
        f"{bitrate_kbps}k",
        "-ac",
        str(RENDITION_CHANNELS),
        "-ar",
        str(RENDITION_SAMPLE_RATE),
        "-f",
        "mp3",  # Output name ends in .part, so the muxer must be explicit
        str(output),
        "-loglevel",
        "error",
    ]


def transcode_tier(
    source: Path, output: Path, bitrate_kbps: int, config: TranscodeConfig
) -> bool:
    """Encode one rendition, publishing it only once fully written.

    ffmpeg writes to `<output>.part`; the file is renamed into place with
    os.replace after a clean exit, so `output` never exists half-written.

    Returns:
        True if `output` now holds the rendition
    """
    partial = output.with_name(output.name + ".part")
    command = build_ffmpeg_command(config.ffmpeg_path, source, partial, bitrate_kbps)

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            timeout=config.timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Transcode timed out after {config.timeout_seconds}s: {output.name}")
        partial.unlink(missing_ok=True)
        return False
    except OSError as e:
        # Includes FileNotFoundError when ffmpeg is not installed
        logger.error(f"Could not run {config.ffmpeg_path}: {e}")
        partial.unlink(missing_ok=True)
        return False

    if result.returncode != 0 or not partial.exists():
        stderr = result.stderr.decode(errors="replace")[:200] if result.stderr else ""
        logger.warning(f"Transcode failed ({output.name}): {stderr}")
        partial.unlink(missing_ok=True)
        return False

    os.replace(partial, output)
    return True


def transcode_renditions(
    source: Path,
    output_dir: Path,
    base_name: str,
    config: TranscodeConfig,
    upload_dir: Path,
) -> dict[str, str]:
    """Produce low/medium/high renditions of a source file.

    Args:
        source: Original upload
        output_dir: Directory the renditions are written to
        base_name: Unique stem for this run's output files
        config: Bitrates and ffmpeg settings
        upload_dir: Root that returned paths are made relative to

    Returns:
        Tier name -> path relative to upload_dir, for tiers that succeeded
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    bitrates = config.bitrates()
    results: dict[str, str] = {}

    for tier in RENDITION_TIERS:
        output = output_dir / f"{base_name}_{tier.value}{RENDITION_EXTENSION}"
        kbps = bitrates[tier.value]
        logger.debug(f"Transcoding {source.name} -> {output.name} at {kbps}kbps")

        if transcode_tier(source, output, kbps, config):
            results[tier.value] = output.relative_to(upload_dir).as_posix()

    missing = [t.value for t in RENDITION_TIERS if t.value not in results]
    if missing:
        logger.warning(f"Renditions unavailable for {source.name}: {', '.join(missing)}")
    else:
        logger.info(f"Transcoded {source.name} into {len(results)} renditions")

    return results


def resolve_quality_path(
    track: Track, quality: Quality, upload_dir: Path
) -> Optional[Path]:
    """Pick the file to serve for a requested tier.

    Walks FALLBACK_CHAIN, taking the first candidate that is recorded on the
    track and exists inside upload_dir. When the whole chain is missing, any
    other rendition still on disk is served, closest bitrate first, ties going
    to the higher tier.

    Returns:
        Absolute path to serve, or None if no file of the track resolves
    """
    for candidate in FALLBACK_CHAIN[quality]:
        resolved = resolve_media_path(track.rendition_path(candidate), upload_dir)
        if resolved is not None:
            if candidate is not quality:
                logger.debug(
                    f"Track {track.id}: {quality.value} unavailable, serving {candidate.value}"
                )
            return resolved

    for candidate in last_resort_tiers(quality):
        resolved = resolve_media_path(track.rendition_path(candidate), upload_dir)
        if resolved is not None:
            logger.warning(
                f"Track {track.id}: no file in the {quality.value} chain, serving {candidate.value}"
            )
            return resolved
    return None


def last_resort_tiers(quality: Quality) -> list[Quality]:
    """Renditions outside the fallback chain of quality, closest bitrate first."""
    chain = FALLBACK_CHAIN[quality]
    rank = TIER_RANK[quality]
    remaining = [tier for tier in RENDITION_TIERS if tier not in chain]
    return sorted(remaining, key=lambda tier: (abs(TIER_RANK[tier] - rank), -TIER_RANK[tier]))
