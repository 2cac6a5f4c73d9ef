"""Tests for plugin option validation."""

import pytest

from size_snapshot.errors import InvalidOptionsError
from size_snapshot.schemas.options import DEFAULT_SNAPSHOT_PATH, validate_options


def test_defaults():
    options = validate_options()
    assert options.snapshot_path == DEFAULT_SNAPSHOT_PATH
    assert options.match_snapshot is False
    assert options.threshold == 0
    assert options.print_info is True


def test_camel_and_snake_case_keys_are_accepted():
    camel = validate_options({"snapshotPath": "a.json", "matchSnapshot": True, "printInfo": False})
    snake = validate_options({"snapshot_path": "a.json", "match_snapshot": True, "print_info": False})
    assert camel == snake


def test_single_unknown_key():
    with pytest.raises(InvalidOptionsError) as exc_info:
        validate_options({"minify": True})
    assert str(exc_info.value) == 'Option "minify" is invalid'
    assert exc_info.value.invalid_keys == ("minify",)


def test_all_unknown_keys_reported_sorted():
    with pytest.raises(InvalidOptionsError) as exc_info:
        validate_options({"snapshot": "x", "minify": True, "threshold": 10})
    assert str(exc_info.value) == 'Options "minify", "snapshot" are invalid'


def test_negative_threshold_rejected():
    with pytest.raises(InvalidOptionsError) as exc_info:
        validate_options({"threshold": -1})
    assert "threshold" in str(exc_info.value)


def test_invalid_options_error_is_value_error():
    with pytest.raises(ValueError):
        validate_options({"unknownOption": 1})
