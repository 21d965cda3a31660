# ABOUTME: Backup utilities for agent configuration files.
# ABOUTME: Timestamped sibling copies (name.bak.YYYYMMDDTHHMMSSZ.ext) with age/count pruning.
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

from alph.errors import AlphError, BackupFailedError, RollbackFailedError
from alph.models import BackupInfo
from alph.utils import file_ops

logger = logging.getLogger(__name__)

# ABOUTME: strftime format embedded in backup file names (always UTC)
BACKUP_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

DEFAULT_MAX_AGE = timedelta(days=30)
DEFAULT_MAX_COUNT = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def generate_backup_path(original_path: Path, timestamp: datetime) -> Path:
    """Build the backup path for ``original_path`` at ``timestamp``.

    ABOUTME: Backup format: {stem}.bak.{YYYYMMDDTHHMMSSZ}{suffix}
    ABOUTME: Lives in the same directory as the original

    Examples:
        >>> ts = datetime(2026, 1, 8, 14, 30, 22, tzinfo=timezone.utc)
        >>> generate_backup_path(Path("/home/u/.claude.json"), ts).name
        '.claude.bak.20260108T143022Z.json'
    """
    stamp = timestamp.astimezone(timezone.utc).strftime(BACKUP_TIMESTAMP_FORMAT)
    return original_path.with_name(f"{original_path.stem}.bak.{stamp}{original_path.suffix}")


def _backup_pattern(original_path: Path) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(original_path.stem)}\.bak\.(\d{{8}}T\d{{6}}Z){re.escape(original_path.suffix)}$"
    )


def parse_backup_timestamp(raw: str) -> datetime | None:
    """Parse a YYYYMMDDTHHMMSSZ stamp; returns None for impossible dates."""
    try:
        return datetime.strptime(raw, BACKUP_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _scan_backups(original_path: Path) -> list[BackupInfo]:
    directory = original_path.parent
    if not directory.is_dir():
        return []

    pattern = _backup_pattern(original_path)
    backups: list[BackupInfo] = []

    for entry in directory.iterdir():
        match = pattern.match(entry.name)
        if not match or not entry.is_file():
            continue

        timestamp = parse_backup_timestamp(match.group(1))
        if timestamp is None:
            logger.debug(f"Skipping backup with invalid timestamp: {entry}")
            continue

        backups.append(
            BackupInfo(original_path=original_path, backup_path=entry, timestamp=timestamp)
        )

    # Newest first, independent of directory listing order
    backups.sort(key=lambda b: b.timestamp, reverse=True)
    return backups


async def create_backup(original_path: Path) -> BackupInfo:
    """Create a timestamped, byte-identical backup of a file.

    ABOUTME: Uses shutil.copy2() (via file_ops) to preserve file metadata
    ABOUTME: Advances the timestamp one second at a time if the name is taken
    ABOUTME: Verifies the copy exists before returning

    Args:
        original_path: File to back up

    Returns:
        BackupInfo describing the new copy

    Raises:
        BackupFailedError: If the original is missing, unreadable or the copy fails
    """
    try:
        if not await file_ops.file_exists(original_path):
            raise BackupFailedError(
                f"Failed to create backup of {original_path}: original file does not exist",
                original_path,
            )
        if not await file_ops.is_readable(original_path):
            raise BackupFailedError(
                f"Failed to create backup of {original_path}: original file is not readable",
                original_path,
            )

        timestamp = _utcnow()
        backup_path = generate_backup_path(original_path, timestamp)
        while await file_ops.file_exists(backup_path):
            timestamp += timedelta(seconds=1)
            backup_path = generate_backup_path(original_path, timestamp)

        await file_ops.copy_file(original_path, backup_path)

        if not await file_ops.file_exists(backup_path):
            raise BackupFailedError(
                f"Failed to create backup of {original_path}: backup file was not created",
                original_path,
            )
    except BackupFailedError:
        raise
    except AlphError as e:
        raise BackupFailedError(
            f"Failed to create backup of {original_path}: {e}", original_path
        ) from e

    logger.debug(f"Created backup: {backup_path}")
    return BackupInfo(original_path=original_path, backup_path=backup_path, timestamp=timestamp)


async def restore_backup(backup_info: BackupInfo) -> None:
    """Copy a backup's bytes back over its original path.

    ABOUTME: Recreates the original's directory if it disappeared
    ABOUTME: The write is atomic, so a failed restore never leaves a partial file

    Raises:
        RollbackFailedError: If the backup is missing/unreadable or the restore fails
    """
    original_path = backup_info.original_path
    backup_path = backup_info.backup_path
    try:
        if not await file_ops.is_readable(backup_path):
            raise RollbackFailedError(
                f"Failed to restore backup {backup_path}: backup file is missing or unreadable",
                backup_path,
            )

        content = await file_ops.read_bytes(backup_path)
        await file_ops.ensure_directory(original_path.parent)
        await file_ops.atomic_write(original_path, content)

        if not await file_ops.file_exists(original_path):
            raise RollbackFailedError(
                f"Failed to restore backup {backup_path}: {original_path} missing after restore",
                original_path,
            )
    except RollbackFailedError:
        raise
    except AlphError as e:
        raise RollbackFailedError(
            f"Failed to restore backup {backup_path}: {e}", original_path
        ) from e

    logger.debug(f"Restored {original_path} from {backup_path}")


async def list_backups(original_path: Path) -> list[BackupInfo]:
    """List backups of ``original_path``, newest first.

    ABOUTME: Invalid timestamps are silently excluded
    ABOUTME: Returns an empty list when the directory does not exist
    """
    return await file_ops.run_blocking(
        f"listBackups {original_path}", _scan_backups, original_path
    )


async def latest_backup(original_path: Path) -> BackupInfo | None:
    backups = await list_backups(original_path)
    return backups[0] if backups else None


async def cleanup_old_backups(
    original_path: Path,
    max_age: timedelta = DEFAULT_MAX_AGE,
    max_count: int = DEFAULT_MAX_COUNT,
    now: datetime | None = None,
) -> int:
    """Remove backups older than ``max_age`` or beyond the ``max_count`` newest.

    ABOUTME: Ordering comes from the parsed timestamps, not the directory listing
    ABOUTME: Logs warnings on per-file errors but keeps sweeping

    Args:
        original_path: File whose backups should be pruned
        max_age: Backups older than this are deleted (default 30 days)
        max_count: Number of most recent backups to retain (default 10)
        now: Reference time, defaults to the current UTC time

    Returns:
        Number of backups deleted

    Examples:
        >>> deleted = await cleanup_old_backups(Path("~/.cursor/mcp.json").expanduser())
        >>> deleted
        3
    """
    reference = now or _utcnow()
    deleted = 0

    for index, backup in enumerate(await list_backups(original_path)):
        expired = reference - backup.timestamp > max_age
        if not expired and index < max_count:
            continue

        try:
            await file_ops.delete_file(backup.backup_path)
            deleted += 1
            logger.debug(f"Deleted old backup: {backup.backup_path}")
        except AlphError as e:
            logger.warning(f"Failed to delete old backup {backup.backup_path}: {e}")

    return deleted
