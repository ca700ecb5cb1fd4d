"""
Configuration management for riffstream
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger


@dataclass
class StorageConfig:
    """Configuration for uploaded audio storage."""

    upload_dir: str = field(default_factory=lambda: str(get_data_dir() / "uploads"))
    database_path: Optional[str] = None  # Default: <data_dir>/riffstream.db
    max_file_size: int = 50 * 1024 * 1024  # 50MB
    allowed_formats: List[str] = field(
        default_factory=lambda: ["mp3", "wav", "flac", "aac", "ogg", "m4a"]
    )

    @property
    def audio_dir(self) -> Path:
        return Path(self.upload_dir) / "audio"

    @property
    def database_file(self) -> Optional[Path]:
        """Configured database file, or None for the default location."""
        return Path(self.database_path) if self.database_path else None


@dataclass
class TranscodeConfig:
    """Configuration for rendition transcoding (bitrates in kbps)."""

    low_kbps: int = 64
    medium_kbps: int = 128
    high_kbps: int = 256
    ffmpeg_path: str = "ffmpeg"
    timeout_seconds: int = 300

    def bitrates(self) -> dict[str, int]:
        return {
            "low": self.low_kbps,
            "medium": self.medium_kbps,
            "high": self.high_kbps,
        }

    def validate(self) -> None:
        """Validate transcode configuration values.

        Raises:
            ValueError: If a bitrate is not a positive integer
        """
        for tier, kbps in self.bitrates().items():
            if not isinstance(kbps, int) or kbps <= 0:
                raise ValueError(f"Invalid {tier} bitrate: {kbps!r}")


@dataclass
class WaveformConfig:
    """Configuration for waveform summaries."""

    points: int = 200
    sample_rate: int = 8000


@dataclass
class StreamingConfig:
    """Configuration for the range streamer."""

    chunk_size: int = 64 * 1024  # Max bytes per open-ended range response
    cache_max_age: int = 86400  # 24 hours, renditions are immutable
    play_start_threshold: int = 1000  # Range starts below this count as a play
    metadata_ttl: int = 3600  # Track metadata cache TTL in seconds


@dataclass
class PlaysConfig:
    """Configuration for play counting."""

    debounce_seconds: float = 30.0
    max_entries: int = 10000
    prune_age_seconds: float = 60.0


@dataclass
class AuthConfig:
    """Configuration for bearer token verification."""

    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/riffstream/riffstream.log)
    )


@dataclass
class Config:
    """Main configuration object."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)
    waveform: WaveformConfig = field(default_factory=WaveformConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    plays: PlaysConfig = field(default_factory=PlaysConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "riffstream"
    return Path.home() / ".config" / "riffstream"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "riffstream"
    return Path.home() / ".local" / "share" / "riffstream"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/riffstream (or ~/.config/riffstream)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# riffstream configuration

[storage]
# Root directory for uploads (audio files live under <upload_dir>/audio)
# upload_dir = "~/.local/share/riffstream/uploads"

# SQLite database file
# database_path = "~/.local/share/riffstream/riffstream.db"

# Maximum upload size in bytes
max_file_size = 52428800

# Accepted upload extensions
allowed_formats = ["mp3", "wav", "flac", "aac", "ogg", "m4a"]

[transcode]
# Rendition bitrates in kbps
low_kbps = 64
medium_kbps = 128
high_kbps = 256

# ffmpeg binary and per-rendition timeout
ffmpeg_path = "ffmpeg"
timeout_seconds = 300

[waveform]
# Number of peaks in the waveform summary
points = 200

# Decode sample rate used for the summary
sample_rate = 8000

[streaming]
# Maximum bytes returned for an open-ended range request
chunk_size = 65536

# Cache-Control max-age for audio responses (seconds)
cache_max_age = 86400

# Range requests starting below this byte offset count as a play start
play_start_threshold = 1000

# Track metadata cache TTL (seconds)
metadata_ttl = 3600

[plays]
# Minimum seconds between counted plays of the same track by the same user
debounce_seconds = 30

# Prune the debounce map once it holds this many entries
max_entries = 10000
prune_age_seconds = 60

[auth]
jwt_secret = "dev-secret-change-me"
jwt_algorithm = "HS256"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/riffstream/riffstream.log)
# log_file = "/path/to/riffstream.log"
""".strip()


def _apply_env_overrides(config: Config) -> None:
    """Environment variables win over TOML values."""
    upload_dir = os.environ.get("UPLOAD_DIR")
    if upload_dir:
        config.storage.upload_dir = str(Path(upload_dir).expanduser())

    for tier in ("low", "medium", "high"):
        value = os.environ.get(f"AUDIO_QUALITY_{tier.upper()}")
        if value:
            try:
                setattr(config.transcode, f"{tier}_kbps", int(value))
            except ValueError:
                logger.warning(f"Ignoring invalid AUDIO_QUALITY_{tier.upper()}={value!r}")

    jwt_secret = os.environ.get("JWT_SECRET")
    if jwt_secret:
        config.auth.jwt_secret = jwt_secret

    origins = os.environ.get("ALLOWED_ORIGINS")
    if origins:
        config.allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]


def load_config() -> Config:
    """Load configuration from file, falling back to defaults.

    Environment variables override TOML values:
    - UPLOAD_DIR
    - AUDIO_QUALITY_LOW / AUDIO_QUALITY_MEDIUM / AUDIO_QUALITY_HIGH
    - JWT_SECRET
    - ALLOWED_ORIGINS (comma-separated)
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config = Config()
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            _apply_toml(config, toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError) as e:
            logger.error(f"Error loading configuration from {config_path}: {e}")
            logger.warning("Using default configuration.")
            config = Config()

    _apply_env_overrides(config)

    try:
        config.transcode.validate()
    except ValueError as e:
        logger.warning(f"Invalid transcode configuration: {e}. Using defaults.")
        config.transcode = TranscodeConfig()

    return config


def _apply_toml(config: Config, toml_data: dict) -> None:
    """Parse configuration sections onto a default Config."""
    if "storage" in toml_data:
        storage_data = toml_data["storage"]
        config.storage = StorageConfig(
            upload_dir=str(
                Path(
                    storage_data.get("upload_dir", config.storage.upload_dir)
                ).expanduser()
            ),
            database_path=(
                str(Path(storage_data["database_path"]).expanduser())
                if storage_data.get("database_path")
                else None
            ),
            max_file_size=storage_data.get(
                "max_file_size", config.storage.max_file_size
            ),
            allowed_formats=[
                fmt.lower().lstrip(".")
                for fmt in storage_data.get(
                    "allowed_formats", config.storage.allowed_formats
                )
            ],
        )

    if "transcode" in toml_data:
        transcode_data = toml_data["transcode"]
        config.transcode = TranscodeConfig(
            low_kbps=transcode_data.get("low_kbps", config.transcode.low_kbps),
            medium_kbps=transcode_data.get(
                "medium_kbps", config.transcode.medium_kbps
            ),
            high_kbps=transcode_data.get("high_kbps", config.transcode.high_kbps),
            ffmpeg_path=transcode_data.get(
                "ffmpeg_path", config.transcode.ffmpeg_path
            ),
            timeout_seconds=transcode_data.get(
                "timeout_seconds", config.transcode.timeout_seconds
            ),
        )

    if "waveform" in toml_data:
        waveform_data = toml_data["waveform"]
        config.waveform = WaveformConfig(
            points=waveform_data.get("points", config.waveform.points),
            sample_rate=waveform_data.get(
                "sample_rate", config.waveform.sample_rate
            ),
        )

    if "streaming" in toml_data:
        streaming_data = toml_data["streaming"]
        config.streaming = StreamingConfig(
            chunk_size=streaming_data.get(
                "chunk_size", config.streaming.chunk_size
            ),
            cache_max_age=streaming_data.get(
                "cache_max_age", config.streaming.cache_max_age
            ),
            play_start_threshold=streaming_data.get(
                "play_start_threshold", config.streaming.play_start_threshold
            ),
            metadata_ttl=streaming_data.get(
                "metadata_ttl", config.streaming.metadata_ttl
            ),
        )

    if "plays" in toml_data:
        plays_data = toml_data["plays"]
        config.plays = PlaysConfig(
            debounce_seconds=plays_data.get(
                "debounce_seconds", config.plays.debounce_seconds
            ),
            max_entries=plays_data.get("max_entries", config.plays.max_entries),
            prune_age_seconds=plays_data.get(
                "prune_age_seconds", config.plays.prune_age_seconds
            ),
        )

    if "auth" in toml_data:
        auth_data = toml_data["auth"]
        config.auth = AuthConfig(
            jwt_secret=auth_data.get("jwt_secret", config.auth.jwt_secret),
            jwt_algorithm=auth_data.get("jwt_algorithm", config.auth.jwt_algorithm),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
        )


def ensure_directories(config: Config) -> None:
    """Ensure all necessary directories exist."""
    get_data_dir().mkdir(parents=True, exist_ok=True)
    config.storage.audio_dir.mkdir(parents=True, exist_ok=True)
