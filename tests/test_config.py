"""Tests for settings and logging helpers."""

import logging

import pytest
from pydantic import ValidationError

from size_snapshot.config import Settings
from size_snapshot.logging_config import PACKAGE_LOGGER, get_logger, setup_logging


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("SIZE_SNAPSHOT_ENVIRONMENT", raising=False)
    monkeypatch.delenv("SIZE_SNAPSHOT_MINIFIER", raising=False)
    settings = Settings(_env_file=None)
    assert settings.is_production
    assert settings.max_concurrency == 4
    assert settings.log_format == "text"
    assert settings.minifier == "builtin"
    assert settings.terser_command == "npx terser"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SIZE_SNAPSHOT_ENVIRONMENT", "development")
    monkeypatch.setenv("SIZE_SNAPSHOT_LOG_LEVEL", "debug")
    monkeypatch.setenv("SIZE_SNAPSHOT_MAX_CONCURRENCY", "2")
    monkeypatch.setenv("SIZE_SNAPSHOT_MINIFIER", "terser")
    settings = Settings(_env_file=None)
    assert settings.is_development
    assert settings.log_level == "DEBUG"
    assert settings.max_concurrency == 2
    assert settings.minifier == "terser"


def test_settings_is_testing_under_pytest():
    assert Settings(_env_file=None).is_testing


def test_invalid_settings_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, max_concurrency=0)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, minifier="uglify")


def test_get_logger_nests_under_package():
    assert get_logger("reporter").name == f"{PACKAGE_LOGGER}.reporter"
    assert get_logger("size_snapshot.cli").name == "size_snapshot.cli"
    assert get_logger(PACKAGE_LOGGER).name == PACKAGE_LOGGER


def test_setup_logging_applies_level():
    setup_logging("warning")
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.WARNING
    setup_logging("info")
