# ABOUTME: Config path discovery shared by the agent providers
# ABOUTME: Env overrides, per-OS base directories, project roots and candidate probing
import asyncio
import logging
import os
import sys
from pathlib import Path

from alph.errors import AlphError, PermissionDeniedError
from alph.utils import file_ops
from alph.utils.file_ops import Codec

logger = logging.getLogger(__name__)

# ABOUTME: Candidates larger than this are skipped during detection (5 MiB)
MAX_CONFIG_BYTES = 5 * 1024 * 1024

# ABOUTME: Upper bound for the git toplevel lookup
GIT_TIMEOUT_SECONDS = 5


def env_override_var(agent: str) -> str:
    """Name of the override variable for ``agent``, e.g. ``ALPH_CLAUDE_CONFIG``."""
    return f"ALPH_{agent.upper()}_CONFIG"


def env_override_path(agent: str) -> Path | None:
    raw = os.environ.get(env_override_var(agent), "").strip()
    return Path(raw).expanduser() if raw else None


def home() -> Path:
    return Path.home()


def app_support_dir() -> Path:
    """Get the per-user application data directory for the current OS.

    ABOUTME: macOS ~/Library/Application Support, Windows %APPDATA%, Linux $XDG_CONFIG_HOME or ~/.config
    """
    if sys.platform == "darwin":
        return home() / "Library" / "Application Support"
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA") or home() / "AppData" / "Roaming")
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else home() / ".config"


async def git_root(cwd: Path | None = None) -> Path | None:
    """Top level of the git repository containing ``cwd``, or None."""
    try:
        process = await asyncio.create_subprocess_exec(
            "git", "rev-parse", "--show-toplevel",
            cwd=cwd or Path.cwd(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug(f"git root lookup failed: {e}")
        return None

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=GIT_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.debug(f"git root lookup timed out after {GIT_TIMEOUT_SECONDS}s")
        return None

    if process.returncode != 0:
        return None
    output = stdout.decode("utf-8", errors="replace").strip()
    return Path(output) if output else None


def absolute_dir(path: Path | str) -> Path:
    """Absolute, normalized form of ``path`` (symlinks are not resolved)."""
    return Path(os.path.abspath(Path(path).expanduser()))


async def project_roots(config_dir: Path | None = None) -> list[Path]:
    """Project directories a removal should search.

    ABOUTME: An explicit config_dir wins; otherwise cwd then the git toplevel
    ABOUTME: Paths are absolute and deduplicated, order preserved
    """
    if config_dir is not None:
        return [absolute_dir(config_dir)]

    roots: list[Path] = []
    cwd = absolute_dir(Path.cwd())
    roots.append(cwd)
    top = await git_root(cwd)
    if top is not None and absolute_dir(top) not in roots:
        roots.append(absolute_dir(top))
    return roots


async def is_usable_config(path: Path, codec: Codec = "json") -> bool:
    """Whether ``path`` exists, is readable, is small enough and parses.

    ABOUTME: Raises PermissionDeniedError when the file exists but cannot be read
    """
    if not await file_ops.file_exists(path):
        return False
    if not await file_ops.is_readable(path):
        raise PermissionDeniedError(
            f"Configuration file exists but is not readable: {path}", path
        )

    stats = await file_ops.stat_file(path)
    if stats.st_size > MAX_CONFIG_BYTES:
        logger.debug(f"Skipping oversized config candidate {path} ({stats.st_size} bytes)")
        return False

    try:
        await file_ops.read_document(path, codec)
    except PermissionDeniedError:
        raise
    except AlphError as e:
        logger.debug(f"Skipping unusable config candidate {path}: {e}")
        return False
    return True


async def detect_config_file(candidates: list[Path], codec: Codec = "json") -> Path | None:
    """Return the first usable candidate, or None if none exist.

    ABOUTME: Candidates are probed strictly in order
    ABOUTME: An existing-but-unreadable candidate fails loudly
    """
    for candidate in candidates:
        if await is_usable_config(candidate, codec):
            logger.debug(f"Detected config file: {candidate}")
            return candidate
    return None
