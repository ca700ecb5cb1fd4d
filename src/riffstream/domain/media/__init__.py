"""
Media domain module.

Turns uploads into streamable tracks: probing, waveform summaries,
multi-bitrate renditions, and resolution of a requested quality to a file.
"""

from .ingest import (
    IngestError,
    UploadTooLargeError,
    delete_track,
    ingest_upload,
    retranscode_track,
    save_upload,
)
from .models import (
    CONTENT_TYPES,
    DEFAULT_QUALITY,
    ProbeResult,
    Quality,
    Track,
    content_type_for,
    parse_quality,
)
from .probe import probe_audio
from .renditions import RenditionStore
from .transcode import FALLBACK_CHAIN, resolve_quality_path, transcode_renditions
from .waveform import generate_waveform, summarize_peaks
