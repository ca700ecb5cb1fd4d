"""
Path security validation utilities for riffstream.

Stored media paths are relative to the upload directory. These pure functions
turn them into absolute paths only when they stay inside that directory,
preventing directory traversal and symlink escapes.
"""

from pathlib import Path
from typing import Optional


def is_path_within_root(file_path: Path, root: Path) -> bool:
    """Pure function - validates path is inside the root directory.

    Uses Path.resolve() to handle symlinks and relative paths, then checks if the
    resolved path is a child of the resolved root.

    Args:
        file_path: The file path to validate
        root: Allowed root directory

    Returns:
        True if path is within the root, False otherwise
    """
    try:
        resolved_path = file_path.resolve()
        resolved_root = root.resolve()
        if not resolved_root.exists():
            return False
        resolved_path.relative_to(resolved_root)
        return True
    except ValueError:
        # relative_to raises ValueError if path is not a subpath
        return False
    except (OSError, RuntimeError):
        # Path.resolve() can raise OSError for invalid paths or RuntimeError for recursion
        return False


def resolve_media_path(stored_path: Optional[str], upload_dir: Path) -> Optional[Path]:
    """Pure function - returns the absolute file for a stored path, or None.

    None is returned for empty values, paths escaping upload_dir, and files
    that do not exist.

    Args:
        stored_path: Path as recorded on the track (relative to upload_dir)
        upload_dir: Upload root directory

    Returns:
        The validated absolute Path if usable, None otherwise
    """
    if not stored_path or not stored_path.strip():
        return None

    candidate = upload_dir / stored_path
    if not candidate.is_file():
        return None

    if not is_path_within_root(candidate, upload_dir):
        return None

    return candidate
