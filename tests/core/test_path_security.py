"""Tests for path security validation utilities."""

import tempfile
from pathlib import Path

from riffstream.core.path_security import is_path_within_root, resolve_media_path


class TestIsPathWithinRoot:
    """Test path boundary validation."""

    def test_valid_path_within_root(self):
        """Test that valid paths within the root are accepted."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir) / "uploads"
            root.mkdir()
            test_file = root / "song.mp3"
            test_file.write_text("fake audio")

            assert is_path_within_root(test_file, root)

    def test_directory_traversal_blocked(self):
        """Test that directory traversal attacks are blocked."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir) / "uploads"
            root.mkdir()
            outside_file = Path(temp_dir) / "outside.mp3"
            outside_file.write_text("fake audio")

            assert not is_path_within_root(root / ".." / "outside.mp3", root)

    def test_symlink_escape_blocked(self):
        """Test that symlinks pointing outside the root are blocked."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir) / "uploads"
            root.mkdir()
            outside_file = Path(temp_dir) / "outside.mp3"
            outside_file.write_text("fake audio")
            symlink = root / "evil_link.mp3"
            symlink.symlink_to(outside_file)

            assert not is_path_within_root(symlink, root)

    def test_missing_root_rejected(self):
        """Test that a nonexistent root accepts nothing."""
        assert not is_path_within_root(Path("/nonexistent/a.mp3"), Path("/nonexistent"))


class TestResolveMediaPath:
    """Test stored relative path resolution."""

    def test_resolves_existing_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            (root / "audio").mkdir()
            (root / "audio" / "a.mp3").write_bytes(b"x")

            assert resolve_media_path("audio/a.mp3", root) == root / "audio" / "a.mp3"

    def test_empty_values_rejected(self):
        """Test that None, empty and whitespace paths resolve to None."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            assert resolve_media_path(None, root) is None
            assert resolve_media_path("", root) is None
            assert resolve_media_path("   ", root) is None

    def test_missing_file_rejected(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            assert resolve_media_path("audio/gone.mp3", Path(temp_dir)) is None

    def test_traversal_rejected(self):
        """Test that a stored path escaping the upload dir is refused."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir) / "uploads"
            root.mkdir()
            (Path(temp_dir) / "secret.txt").write_text("secret")

            assert resolve_media_path("../secret.txt", root) is None

    def test_directory_rejected(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            (root / "audio").mkdir()
            assert resolve_media_path("audio", root) is None
