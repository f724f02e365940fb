"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Database operations (SQLite, PostgreSQL via DATABASE_URL)
- Logging setup (Loguru)
- Injected clocks

Clean architecture principle: The core layer has no dependencies on
the domain layer.
"""

# Configuration
from .config import (
    Config,
    LoggingConfig,
    PlaybackConfig,
    SchedulerConfig,
    StoreConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
    parse_config,
)

# Database
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
    migrate_database,
    set_database_path,
)
from .db_adapter import (
    generate_id,
    get_store_connection,
    init_schema,
    is_postgres,
)

# Clock
from .clock import Clock, FixedClock, SystemClock

# Logging
from .output import setup_from_config, setup_loguru

__all__ = [
    # Configuration
    "Config",
    "LoggingConfig",
    "PlaybackConfig",
    "SchedulerConfig",
    "StoreConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "parse_config",
    # Database
    "get_database_path",
    "get_db_connection",
    "init_database",
    "migrate_database",
    "set_database_path",
    "generate_id",
    "get_store_connection",
    "init_schema",
    "is_postgres",
    # Clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # Logging
    "setup_from_config",
    "setup_loguru",
]
