# ABOUTME: Primitive file operations with timeout guards and atomic writes.
# ABOUTME: Every call runs in a worker thread and races the ALPH_IO_TIMEOUT_MS budget.
import asyncio
import errno
import json
import logging
import os
import secrets
import shutil
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal, TypeVar

import tomli
import tomli_w

from alph.config import AtomicMode, load_settings
from alph.errors import (
    IOTimeoutError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Codec = Literal["json", "toml"]

# ABOUTME: rename() failures that trigger the copy fallback in "auto" mode
_COPY_FALLBACK_ERRNOS = {errno.EXDEV, errno.EPERM, errno.EACCES}


async def run_blocking(operation: str, func: Callable[..., T], *args: Any) -> T:
    """Run blocking ``func`` in a thread, bounded by the configured timeout.

    ABOUTME: Raises IOTimeoutError("Timeout after {ms}ms: {operation}") on expiry
    """
    settings = load_settings()
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args), timeout=settings.io_timeout_seconds
        )
    except asyncio.TimeoutError as e:
        raise IOTimeoutError(
            f"Timeout after {settings.io_timeout_ms}ms: {operation}"
        ) from e


def _read_error(path: Path, e: OSError) -> Exception:
    if isinstance(e, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
        return NotFoundError(f"File not found: {path}", path)
    if isinstance(e, PermissionError) or e.errno in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(f"Permission denied reading file: {path}", path)
    return PermissionDeniedError(f"Unable to read file: {path} - {e.strerror or e}", path)


def _write_error(path: Path, e: OSError) -> Exception:
    if e.errno == errno.ENOSPC:
        return WriteFailedError(f"Insufficient disk space writing file: {path}", path)
    if isinstance(e, PermissionError) or e.errno in (errno.EACCES, errno.EPERM):
        return WriteFailedError(f"Permission denied writing file: {path}", path)
    if e.errno == errno.EXDEV:
        return WriteFailedError(f"Cross-device rename failed for file: {path}", path)
    return WriteFailedError(f"Failed to write file: {path} - {e.strerror or e}", path)


# --- codecs -----------------------------------------------------------------


def dumps_json(data: Any) -> str:
    """Serialize like ``JSON.stringify(doc, null, 2)``: 2-space indent, key order kept."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def loads_json(text: str, path: Path | str = "<string>") -> dict[str, Any]:
    """Parse a JSON object document.

    ABOUTME: Empty or whitespace-only text is treated as an empty object
    ABOUTME: Raises ParseError for invalid JSON or a non-object top level
    """
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in file: {path} - {e}", path) from e
    if not isinstance(data, dict):
        raise ParseError(
            f"Invalid JSON in file: {path} - top-level value must be an object", path
        )
    return data


def dumps_toml(data: dict[str, Any]) -> str:
    return tomli_w.dumps(data)


def loads_toml(text: str, path: Path | str = "<string>") -> dict[str, Any]:
    if not text.strip():
        return {}
    try:
        return tomli.loads(text)
    except tomli.TOMLDecodeError as e:
        raise ParseError(f"Invalid TOML in file: {path} - {e}", path) from e


def dumps(data: dict[str, Any], codec: Codec = "json") -> str:
    return dumps_toml(data) if codec == "toml" else dumps_json(data)


def loads(text: str, path: Path | str = "<string>", codec: Codec = "json") -> dict[str, Any]:
    return loads_toml(text, path) if codec == "toml" else loads_json(text, path)


# --- blocking primitives (run through run_blocking) ----------------------------------


def _read_text_sync(path: Path) -> str:
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise _read_error(path, e) from e


def _read_bytes_sync(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise _read_error(path, e) from e


def _is_readable_sync(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def _is_writable_sync(path: Path) -> bool:
    if path.exists():
        return os.access(path, os.W_OK)
    # Nearest existing ancestor decides whether the file could be created
    parent = path.parent
    while not parent.exists() and parent != parent.parent:
        parent = parent.parent
    return os.access(parent, os.W_OK)


def _stat_sync(path: Path) -> os.stat_result:
    try:
        return path.stat()
    except OSError as e:
        raise _read_error(path, e) from e


def _ensure_directory_sync(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise _write_error(path, e) from e


def _delete_sync(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise _write_error(path, e) from e


def _copy_sync(source: Path, destination: Path) -> None:
    try:
        shutil.copy2(source, destination)
    except FileNotFoundError as e:
        raise NotFoundError(f"File not found: {source}", source) from e
    except OSError as e:
        raise _write_error(destination, e) from e


def _fsync_path(path: Path) -> None:
    with open(path, "rb+") as f:
        os.fsync(f.fileno())


def _copy_into_place(tmp: Path, path: Path) -> None:
    shutil.copyfile(tmp, path)
    _fsync_path(path)
    tmp.unlink()


def _finalize(tmp: Path, path: Path, mode: AtomicMode) -> None:
    if mode == "copy":
        _copy_into_place(tmp, path)
        return
    try:
        os.replace(tmp, path)
    except OSError as e:
        if mode == "rename" or e.errno not in _COPY_FALLBACK_ERRNOS:
            raise
        logger.debug(f"rename failed for {path} ({e}), falling back to copy")
        _copy_into_place(tmp, path)


def _write_temp(tmp: Path, content: bytes) -> None:
    with open(tmp, "wb") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def _atomic_write_sync(
    path: Path,
    tmp: Path,
    content: bytes,
    mode: AtomicMode,
    abandoned: threading.Event | None = None,
) -> None:
    """Write ``tmp`` then move it over ``path``.

    ABOUTME: Once ``abandoned`` is set (the caller timed out), the temp file is dropped
    ABOUTME: and ``path`` is left untouched
    """
    try:
        _write_temp(tmp, content)
        if abandoned is not None and abandoned.is_set():
            logger.debug(f"Abandoned write to {path}; discarding {tmp}")
            _discard_temp(tmp)
            return
        _finalize(tmp, path, mode)
        logger.debug(f"Atomically wrote {path} (mode={mode})")
    except OSError as e:
        _discard_temp(tmp)
        raise _write_error(path, e) from e


def _discard_temp(tmp: Path) -> None:
    try:
        tmp.unlink(missing_ok=True)
    except OSError as cleanup_error:
        # Best effort
        logger.debug(f"Could not remove temp file {tmp}: {cleanup_error}")


# --- public coroutine API ----------------------------------------------------


def temp_path_for(path: Path) -> Path:
    """Return ``<path>.tmp.<16 hex chars>`` in the same directory."""
    return path.with_name(f"{path.name}.tmp.{secrets.token_hex(8)}")


async def file_exists(path: Path) -> bool:
    return await run_blocking(f"fileExists {path}", os.path.exists, path)


async def is_readable(path: Path) -> bool:
    return await run_blocking(f"isReadable {path}", _is_readable_sync, path)


async def is_writable(path: Path) -> bool:
    return await run_blocking(f"isWritable {path}", _is_writable_sync, path)


async def stat_file(path: Path) -> os.stat_result:
    return await run_blocking(f"stat {path}", _stat_sync, path)


async def ensure_directory(path: Path) -> None:
    await run_blocking(f"ensureDirectory {path}", _ensure_directory_sync, path)


async def delete_file(path: Path) -> None:
    """Delete ``path``; a missing file is not an error."""
    await run_blocking(f"deleteFile {path}", _delete_sync, path)


async def copy_file(source: Path, destination: Path) -> None:
    await run_blocking(f"copyFile {source} -> {destination}", _copy_sync, source, destination)


async def read_text(path: Path) -> str:
    return await run_blocking(f"readFile {path}", _read_text_sync, path)


async def read_bytes(path: Path) -> bytes:
    return await run_blocking(f"readFile {path}", _read_bytes_sync, path)


async def read_document(path: Path, codec: Codec = "json") -> dict[str, Any]:
    return loads(await read_text(path), path, codec)


async def read_json(path: Path) -> dict[str, Any]:
    """Read and parse a JSON object document.

    ABOUTME: Raises NotFoundError, PermissionDeniedError or ParseError

    Args:
        path: File to read

    Returns:
        Parsed document (always a dict)
    """
    return await read_document(path, "json")


async def read_toml(path: Path) -> dict[str, Any]:
    return await read_document(path, "toml")


async def atomic_write(
    path: Path, content: str | bytes, mode: AtomicMode | None = None
) -> None:
    """Write ``content`` so readers never observe a partial file.

    ABOUTME: Writes <path>.tmp.<hex> in the same directory, then renames over path
    ABOUTME: "auto" falls back to copy + fsync when rename fails (EXDEV/EPERM/EACCES)
    ABOUTME: ALPH_ATOMIC_MODE (or ``mode``) can force "copy" or "rename"
    ABOUTME: The temp file never survives, whether the write succeeds or fails
    ABOUTME: After a timeout the worker thread may still run, but it never replaces path

    Raises:
        WriteFailedError: disk full, permission or cross-device problems
        IOTimeoutError: the operation exceeded ALPH_IO_TIMEOUT_MS
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    mode = mode or load_settings().atomic_mode
    await ensure_directory(path.parent)

    tmp = temp_path_for(path)
    abandoned = threading.Event()
    try:
        await run_blocking(
            f"atomicWrite {path}", _atomic_write_sync, path, tmp, content, mode, abandoned
        )
    except IOTimeoutError:
        abandoned.set()
        _discard_temp(tmp)
        raise


async def write_document(path: Path, data: dict[str, Any], codec: Codec = "json") -> None:
    await atomic_write(path, dumps(data, codec))


async def write_json(path: Path, data: Any) -> None:
    """Pretty-print ``data`` with 2-space indentation and write atomically."""
    await atomic_write(path, dumps_json(data))


async def write_toml(path: Path, data: dict[str, Any]) -> None:
    await atomic_write(path, dumps_toml(data))
