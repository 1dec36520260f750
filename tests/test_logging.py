"""Tests for the loguru sink setup."""

import sys

import pytest
from loguru import logger

from veritas.config.loader import load_config
from veritas.config.schema import LoggingConfig
from veritas.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_file_sink_respects_level(tmp_path):
    log_file = tmp_path / "logs" / "veritas.log"
    level = setup_logging(LoggingConfig(level="warning", file=str(log_file)))
    assert level == "WARNING"

    logger.info("store reloaded")
    logger.warning("skill module skipped")
    logger.remove()

    text = log_file.read_text()
    assert "skill module skipped" in text
    assert "store reloaded" not in text


def test_explicit_level_wins_over_config(tmp_path):
    log_file = tmp_path / "veritas.log"
    assert setup_logging(LoggingConfig(level="ERROR", file=str(log_file)), level="debug") == "DEBUG"

    logger.debug("parser fallback")
    logger.remove()

    assert "parser fallback" in log_file.read_text()


def test_defaults_apply_without_config():
    assert setup_logging() == "INFO"


def test_level_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VERITAS_LOGGING__LEVEL", "DEBUG")
    config = load_config(tmp_path / "missing.json")
    assert config.logging.level == "DEBUG"
