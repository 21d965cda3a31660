# Runtime settings and logging setup for alph
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

AtomicMode = Literal["auto", "copy", "rename"]

# ABOUTME: Environment variable names read by load_settings()
IO_TIMEOUT_ENV = "ALPH_IO_TIMEOUT_MS"
ATOMIC_MODE_ENV = "ALPH_ATOMIC_MODE"
DEBUG_ENV = "ALPH_DEBUG"

# ABOUTME: Default budget for a single file operation (15 seconds)
DEFAULT_IO_TIMEOUT_MS = 15000

ATOMIC_MODES: tuple[AtomicMode, ...] = ("auto", "copy", "rename")

_TRUTHY = {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings derived from the environment.

    ABOUTME: Re-read on every load_settings() call so tests can monkeypatch the env
    """
    io_timeout_ms: int = DEFAULT_IO_TIMEOUT_MS
    atomic_mode: AtomicMode = "auto"
    debug: bool = False

    @property
    def io_timeout_seconds(self) -> float:
        return self.io_timeout_ms / 1000


def _parse_timeout(raw: str | None) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_IO_TIMEOUT_MS
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {IO_TIMEOUT_ENV}={raw!r}")
        return DEFAULT_IO_TIMEOUT_MS
    if value <= 0:
        logger.warning(f"Ignoring non-positive {IO_TIMEOUT_ENV}={raw!r}")
        return DEFAULT_IO_TIMEOUT_MS
    return value


def _parse_atomic_mode(raw: str | None) -> AtomicMode:
    if raw is None or raw.strip() == "":
        return "auto"
    mode = raw.strip().lower()
    for candidate in ATOMIC_MODES:
        if mode == candidate:
            return candidate
    logger.warning(f"Unknown {ATOMIC_MODE_ENV}={raw!r}, using 'auto'")
    return "auto"


def is_debug_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(DEBUG_ENV, "").strip().lower() in _TRUTHY


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    ABOUTME: Invalid values fall back to defaults with a logged warning
    ABOUTME: Never raises for bad input

    Args:
        environ: Mapping to read instead of os.environ

    Returns:
        Settings instance

    Examples:
        >>> load_settings({"ALPH_IO_TIMEOUT_MS": "500"}).io_timeout_ms
        500
        >>> load_settings({"ALPH_ATOMIC_MODE": "COPY"}).atomic_mode
        'copy'
    """
    env = os.environ if environ is None else environ
    return Settings(
        io_timeout_ms=_parse_timeout(env.get(IO_TIMEOUT_ENV)),
        atomic_mode=_parse_atomic_mode(env.get(ATOMIC_MODE_ENV)),
        debug=is_debug_enabled(env),
    )


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """Attach a stderr handler to the ``alph`` logger.

    ABOUTME: Safe to call repeatedly; only one handler is ever installed
    ABOUTME: Level is DEBUG when ALPH_DEBUG is set, WARNING otherwise
    """
    if debug is None:
        debug = is_debug_enabled()

    root = logging.getLogger("alph")
    if not any(getattr(h, "_alph_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handler._alph_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    return root
