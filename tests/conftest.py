"""Shared fixtures for size snapshot tests."""

import logging
from pathlib import Path

import pytest

from size_snapshot.logging_config import PACKAGE_LOGGER

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def fixture_code():
    """Return a loader for JavaScript fixtures by file name."""
    return read_fixture


@pytest.fixture(autouse=True)
def isolate_package_logger(monkeypatch):
    """Let caplog see package records and drop handlers installed by the CLI."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    monkeypatch.setattr(logger, "propagate", True)
    monkeypatch.setattr(logger, "handlers", [])
