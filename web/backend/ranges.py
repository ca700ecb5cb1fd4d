"""HTTP byte-range planning for audio responses."""

from dataclasses import dataclass
from typing import Optional


class RangeNotSatisfiable(Exception):
    """Requested range lies outside the file (HTTP 416)."""

    def __init__(self, file_size: int) -> None:
        super().__init__(f"Range not satisfiable for {file_size} bytes")
        self.file_size = file_size


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte interval to serve."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_size}"


def parse_range_header(
    header: Optional[str], file_size: int, chunk_size: int
) -> Optional[ByteRange]:
    """Pure function - plan the slice to serve for a Range header.

    An open-ended range (`bytes=<start>-`) is capped at `chunk_size` bytes, so
    clients fetch long files incrementally. An explicit end is clamped to the
    last byte. Only the first range of a multi-range header is honored.

    Args:
        header: Raw Range header value (None or malformed -> None)
        file_size: Size of the file being served
        chunk_size: Maximum bytes for an open-ended range

    Returns:
        The ByteRange to serve, or None to serve the whole file

    Raises:
        RangeNotSatisfiable: The range starts past the end of the file
    """
    if not header:
        return None

    unit, _, ranges = header.strip().partition("=")
    if unit.strip().lower() != "bytes" or not ranges:
        return None

    first = ranges.split(",", 1)[0].strip()
    start_str, sep, end_str = first.partition("-")
    if not sep:
        return None
    start_str, end_str = start_str.strip(), end_str.strip()

    if (start_str and not start_str.isdigit()) or (end_str and not end_str.isdigit()):
        return None

    if not start_str:
        # Suffix range: the last N bytes
        if not end_str:
            return None
        suffix_length = int(end_str)
        if suffix_length == 0 or file_size == 0:
            raise RangeNotSatisfiable(file_size)
        return ByteRange(max(0, file_size - suffix_length), file_size - 1)

    start = int(start_str)
    if start >= file_size:
        raise RangeNotSatisfiable(file_size)

    if end_str:
        end = int(end_str)
        if end < start:
            raise RangeNotSatisfiable(file_size)
        end = min(end, file_size - 1)
    else:
        end = min(start + chunk_size - 1, file_size - 1)

    return ByteRange(start, end)


def is_playback_start(start: int, threshold: int) -> bool:
    """Heuristic: a request near byte 0 means the listener started the track.

    Tied to how players probe files; an explicit play-start call from the
    client would replace it.
    """
    return start < threshold
