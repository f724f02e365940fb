"""
Configuration management for Airtime Scheduler
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass
class SchedulerConfig:
    """Configuration for the scheduling tick loop."""

    tick_interval_seconds: float = 1.0
    snapshot_timeout_seconds: float = 2.0
    timezone: Optional[str] = None  # IANA name, e.g. "Africa/Lubumbashi"; None = local time

    def validate(self) -> None:
        """Validate scheduler configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.tick_interval_seconds <= 0:
            raise ValueError(
                f"tick_interval_seconds must be positive, got {self.tick_interval_seconds}"
            )
        if self.snapshot_timeout_seconds <= 0:
            raise ValueError(
                f"snapshot_timeout_seconds must be positive, got {self.snapshot_timeout_seconds}"
            )
        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone {self.timezone!r}") from e


@dataclass
class StoreConfig:
    """Configuration for the entity store."""

    database_path: Optional[str] = None  # Default: ~/.local/share/airtime/airtime.db


@dataclass
class PlaybackConfig:
    """Configuration for playback state handling."""

    persist_state: bool = True  # Save cursor/controller state on shutdown
    default_playlist: Optional[str] = None  # Playlist name to queue when nothing selected


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/airtime/airtime.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "airtime"
    return Path.home() / ".config" / "airtime"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            # Found project root but no config.toml there
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/airtime (or ~/.config/airtime)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "airtime"
    return Path.home() / ".local" / "share" / "airtime"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Airtime Scheduler Configuration

[scheduler]
# Seconds between scheduling evaluations
tick_interval_seconds = 1.0

# Maximum seconds to wait for the entity store before reusing the last snapshot
snapshot_timeout_seconds = 2.0

# Station timezone (IANA name). Leave unset to use the host's local time.
# timezone = "Africa/Lubumbashi"

[store]
# SQLite database file (default: ~/.local/share/airtime/airtime.db)
# Set DATABASE_URL=postgresql://... in the environment to use PostgreSQL instead.
# database_path = "/var/lib/airtime/airtime.db"

[playback]
# Save cursor and interruption state on shutdown, restore it on start
persist_state = true

# Playlist to queue when none has been selected yet
# default_playlist = "Morning Praise"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/airtime/airtime.log)
# log_file = "/var/log/airtime/airtime.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - AIRTIME_LOG_LEVEL
    - AIRTIME_TIMEZONE
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return _apply_env_overrides(Config())

    return _apply_env_overrides(parse_config(toml_data))


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, keeping defaults for missing keys."""
    config = Config()

    if "scheduler" in toml_data:
        scheduler_data = toml_data["scheduler"]
        try:
            scheduler = SchedulerConfig(
                tick_interval_seconds=float(
                    scheduler_data.get(
                        "tick_interval_seconds", config.scheduler.tick_interval_seconds
                    )
                ),
                snapshot_timeout_seconds=float(
                    scheduler_data.get(
                        "snapshot_timeout_seconds",
                        config.scheduler.snapshot_timeout_seconds,
                    )
                ),
                timezone=scheduler_data.get("timezone", config.scheduler.timezone),
            )
            scheduler.validate()
            config.scheduler = scheduler
        except (TypeError, ValueError) as e:
            print(f"Warning: Invalid scheduler configuration: {e}")
            print("Using default scheduler configuration.")
            config.scheduler = SchedulerConfig()

    if "store" in toml_data:
        database_path = toml_data["store"].get("database_path")
        if database_path:
            database_path = str(Path(database_path).expanduser())
        config.store = StoreConfig(database_path=database_path)

    if "playback" in toml_data:
        playback_data = toml_data["playback"]
        config.playback = PlaybackConfig(
            persist_state=playback_data.get(
                "persist_state", config.playback.persist_state
            ),
            default_playlist=playback_data.get(
                "default_playlist", config.playback.default_playlist
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to a loaded config."""
    log_level = os.environ.get("AIRTIME_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    timezone = os.environ.get("AIRTIME_TIMEZONE")
    if timezone:
        previous = config.scheduler.timezone
        config.scheduler.timezone = timezone
        try:
            config.scheduler.validate()
        except ValueError as e:
            print(f"Warning: Ignoring AIRTIME_TIMEZONE: {e}")
            config.scheduler.timezone = previous

    return config


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
