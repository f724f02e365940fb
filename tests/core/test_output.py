"""Tests for loguru setup."""

import sys

import pytest
from loguru import logger

from airtime.core.config import LoggingConfig
from airtime.core.output import setup_from_config, setup_loguru


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_writes_to_log_file(tmp_path):
    log_file = tmp_path / "logs" / "airtime.log"

    setup_loguru(log_file=log_file, level="DEBUG")
    logger.debug("tick evaluated")

    assert "tick evaluated" in log_file.read_text()


def test_level_filters_messages(tmp_path):
    log_file = tmp_path / "airtime.log"

    setup_loguru(log_file=log_file, level="WARNING")
    logger.info("routine detail")
    logger.warning("dangling reference")

    content = log_file.read_text()
    assert "dangling reference" in content
    assert "routine detail" not in content


def test_setup_from_config(tmp_path):
    log_file = tmp_path / "configured.log"

    setup_from_config(LoggingConfig(level="INFO", log_file=str(log_file)))
    logger.info("configured")

    assert "configured" in log_file.read_text()
