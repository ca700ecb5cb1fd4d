"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database operations (SQLite)
- Metadata caching
- Logging (Loguru)
"""

from .cache import TTLCache, track_meta_key
from .config import (
    Config,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
    migrate_database,
)
from .path_security import is_path_within_root, resolve_media_path
