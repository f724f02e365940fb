"""
Logging output using Loguru.
Routes scheduler logs to a rotating file and, optionally, to stderr.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir


def get_log_file_path() -> Path:
    """Get the default path to the log file."""
    return get_data_dir() / "airtime.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    console_output: bool = False,
) -> None:
    """
    Configure loguru for file logging with optional console output.

    Args:
        log_file: Path to log file (default: ~/.local/share/airtime/airtime.log)
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        max_file_size_mb: Rotate the file once it reaches this size
        backup_count: Number of rotated files to keep
        console_output: Also log to stderr
    """
    log_file = log_file or get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{max_file_size_mb} MB",
        retention=backup_count,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if console_output:
        logger.add(
            sys.stderr,
            level=level,
            format="<level>{level}</level>: {message}",
        )

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def setup_from_config(logging_config: LoggingConfig) -> None:
    """Configure loguru from the [logging] config section."""
    setup_loguru(
        log_file=Path(logging_config.log_file) if logging_config.log_file else None,
        level=logging_config.level,
        max_file_size_mb=logging_config.max_file_size_mb,
        backup_count=logging_config.backup_count,
        console_output=logging_config.console_output,
    )
