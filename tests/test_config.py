# Tests for runtime settings and logging setup
import logging

import pytest

from alph.config import (
    DEFAULT_IO_TIMEOUT_MS,
    configure_logging,
    is_debug_enabled,
    load_settings,
)


@pytest.fixture
def alph_logger():
    """Remove handlers added by configure_logging() after each test."""
    logger = logging.getLogger("alph")
    before = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in before:
            logger.removeHandler(handler)
    logger.setLevel(level)


def test_defaults_from_empty_environment():
    """Test that an empty environment yields the documented defaults."""
    settings = load_settings({})
    assert settings.io_timeout_ms == DEFAULT_IO_TIMEOUT_MS == 15000
    assert settings.atomic_mode == "auto"
    assert settings.debug is False


def test_timeout_override():
    """Test that ALPH_IO_TIMEOUT_MS is parsed as milliseconds."""
    settings = load_settings({"ALPH_IO_TIMEOUT_MS": "500"})
    assert settings.io_timeout_ms == 500
    assert settings.io_timeout_seconds == 0.5


@pytest.mark.parametrize("raw", ["abc", "-1", "0", ""])
def test_invalid_timeout_falls_back_to_default(raw):
    """Test that unusable timeout values are ignored."""
    assert load_settings({"ALPH_IO_TIMEOUT_MS": raw}).io_timeout_ms == DEFAULT_IO_TIMEOUT_MS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("copy", "copy"), ("RENAME", "rename"), (" auto ", "auto"), ("bogus", "auto")],
)
def test_atomic_mode(raw, expected):
    """Test ALPH_ATOMIC_MODE parsing, including the fallback for unknown values."""
    assert load_settings({"ALPH_ATOMIC_MODE": raw}).atomic_mode == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("true", True), ("YES", True), ("0", False), ("no", False)],
)
def test_debug_flag(raw, expected):
    """Test the accepted truthy spellings of ALPH_DEBUG."""
    assert is_debug_enabled({"ALPH_DEBUG": raw}) is expected


def test_settings_read_os_environ(monkeypatch):
    """Test that load_settings() re-reads os.environ on every call."""
    monkeypatch.setenv("ALPH_IO_TIMEOUT_MS", "1234")
    assert load_settings().io_timeout_ms == 1234
    monkeypatch.setenv("ALPH_IO_TIMEOUT_MS", "4321")
    assert load_settings().io_timeout_ms == 4321


def test_configure_logging_is_idempotent(alph_logger):
    """Test that repeated calls install a single handler."""
    configure_logging(debug=False)
    configure_logging(debug=False)

    marked = [h for h in alph_logger.handlers if getattr(h, "_alph_handler", False)]
    assert len(marked) == 1
    assert alph_logger.level == logging.WARNING


def test_configure_logging_debug_from_env(alph_logger, monkeypatch):
    """Test that ALPH_DEBUG switches the alph logger to DEBUG."""
    monkeypatch.setenv("ALPH_DEBUG", "1")
    logger = configure_logging()
    assert logger is alph_logger
    assert logger.level == logging.DEBUG
