# ABOUTME: Safe-edit lifecycle shared by every provider:
# ABOUTME: backup -> parse -> modify -> validate -> atomic write -> re-validate -> rollback on failure.
import copy
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

from alph.errors import (
    AlphError,
    ParseError,
    RollbackFailedError,
    ValidationFailedError,
)
from alph.models import BackupInfo
from alph.utils import backup, file_ops
from alph.utils.file_ops import Codec
from alph.utils.validation import Violation, has_errors

logger = logging.getLogger(__name__)

Document = dict[str, Any]
ValidatorResult = Union[bool, list[Violation]]
Modifier = Callable[[Document], Union[Document, Awaitable[Document]]]
Validator = Callable[[Document], Union[ValidatorResult, Awaitable[ValidatorResult]]]


class EditState(str, Enum):
    START = "start"
    BACKED_UP = "backed_up"
    PARSED = "parsed"
    MODIFIED = "modified"
    VALIDATED_PRE_WRITE = "validated_pre_write"
    WRITTEN = "written"
    VALIDATED_POST_WRITE = "validated_post_write"
    DONE = "done"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass(frozen=True)
class SafeEditResult:
    """Outcome of one safe_edit() call.

    ABOUTME: Transient; success=False always carries the error that caused it
    ABOUTME: state is the terminal state (DONE, ROLLED_BACK or FAILED)
    """
    success: bool
    backup_info: BackupInfo | None = None
    error: Exception | None = None
    state: EditState = EditState.DONE

    @property
    def backup_path(self) -> Path | None:
        return self.backup_info.backup_path if self.backup_info else None

    def raise_for_error(self) -> None:
        """Re-raise the captured error of a failed edit."""
        if not self.success and self.error is not None:
            raise self.error


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _run_validator(
    validator: Validator, document: Document
) -> tuple[bool, list[Violation]]:
    result = await _maybe_await(validator(document))
    if isinstance(result, list):
        return not has_errors(result), result
    return bool(result), []


def _describe(violations: list[Violation]) -> str:
    return "; ".join(str(v) for v in violations if v.severity == "error")


def _decode(raw: bytes, path: Path) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8: {path}", path) from e


class _Snapshot:
    """Pre-edit bytes kept in memory so a failed write can be undone without a backup."""

    def __init__(self, path: Path, content: bytes | None) -> None:
        self.path = path
        self.content = content

    async def restore(self) -> None:
        if self.content is None:
            await file_ops.delete_file(self.path)
        else:
            await file_ops.atomic_write(self.path, self.content)


async def safe_edit(
    path: Path,
    modifier: Modifier,
    validator: Validator | None = None,
    create_backup: bool = True,
    auto_rollback: bool = True,
    codec: Codec = "json",
) -> SafeEditResult:
    """Apply ``modifier`` to the document at ``path`` without risking corruption.

    ABOUTME: A missing file starts from {} so first-time configuration creates it
    ABOUTME: A failed backup aborts before anything is read or written
    ABOUTME: Pre-write validation failure leaves the file untouched
    ABOUTME: Post-write failures restore the backup, or the in-memory snapshot when no backup was made
    ABOUTME: Never raises for operational failures; inspect SafeEditResult instead

    Args:
        path: Configuration file to edit
        modifier: Receives a private copy of the document, returns the new document
        validator: Optional structural check, returning bool or a list of Violations
        create_backup: Back up the file first when it exists
        auto_rollback: Undo the write when anything fails after it
        codec: "json" or "toml"

    Returns:
        SafeEditResult with success flag, backup info, error and terminal state

    Examples:
        >>> result = await safe_edit(path, lambda doc: {**doc, "theme": "dark"})
        >>> result.success
        True
    """
    state = EditState.START
    backup_info: BackupInfo | None = None
    snapshot: _Snapshot | None = None
    write_attempted = False

    try:
        existed = await file_ops.file_exists(path)

        if create_backup and existed:
            backup_info = await backup.create_backup(path)
            state = EditState.BACKED_UP

        if existed:
            raw = await file_ops.read_bytes(path)
            snapshot = _Snapshot(path, raw)
            document = file_ops.loads(_decode(raw, path), path, codec)
        else:
            snapshot = _Snapshot(path, None)
            document = {}
        state = EditState.PARSED
        logger.debug(f"safe_edit {path}: parsed (existed={existed})")

        candidate = await _maybe_await(modifier(copy.deepcopy(document)))
        if not isinstance(candidate, dict):
            raise ValidationFailedError(
                f"Modifier returned {type(candidate).__name__}, expected an object", path
            )
        state = EditState.MODIFIED

        if validator is not None:
            valid, violations = await _run_validator(validator, candidate)
            if not valid:
                raise ValidationFailedError(
                    "Configuration validation failed after modification", path, violations
                )
        state = EditState.VALIDATED_PRE_WRITE

        write_attempted = True
        await file_ops.write_document(path, candidate, codec)
        state = EditState.WRITTEN
        logger.debug(f"safe_edit {path}: written")

        if validator is not None:
            try:
                written = await file_ops.read_document(path, codec)
                valid, violations = await _run_validator(validator, written)
                detail = _describe(violations)
            except AlphError as reread_error:
                valid, violations, detail = False, [], str(reread_error)
            if not valid:
                return await _post_write_failure(
                    path, detail, violations, backup_info, snapshot, auto_rollback
                )
            state = EditState.VALIDATED_POST_WRITE

        logger.debug(f"safe_edit {path}: done")
        return SafeEditResult(success=True, backup_info=backup_info, state=EditState.DONE)

    except Exception as e:
        logger.debug(f"safe_edit {path}: failed in state {state.value}: {e}")
        if not (auto_rollback and write_attempted):
            return SafeEditResult(
                success=False, backup_info=backup_info, error=e, state=EditState.FAILED
            )

        try:
            await _undo(backup_info, snapshot)
        except AlphError as rollback_error:
            combined = RollbackFailedError(
                f"Original error: {e}. Rollback also failed: {rollback_error}", path
            )
            combined.__cause__ = e
            return SafeEditResult(
                success=False, backup_info=backup_info, error=combined, state=EditState.FAILED
            )
        return SafeEditResult(
            success=False, backup_info=backup_info, error=e, state=EditState.ROLLED_BACK
        )


async def _undo(backup_info: BackupInfo | None, snapshot: _Snapshot | None) -> None:
    if backup_info is not None:
        await backup.restore_backup(backup_info)
    elif snapshot is not None:
        await snapshot.restore()


async def _post_write_failure(
    path: Path,
    detail: str,
    violations: list[Violation],
    backup_info: BackupInfo | None,
    snapshot: _Snapshot | None,
    auto_rollback: bool,
) -> SafeEditResult:
    suffix = f": {detail}" if detail else ""

    if not auto_rollback:
        error = ValidationFailedError(
            f"Configuration validation failed after write{suffix}", path, violations
        )
        return SafeEditResult(
            success=False, backup_info=backup_info, error=error, state=EditState.FAILED
        )

    source = "backup" if backup_info is not None else "previous content"
    try:
        await _undo(backup_info, snapshot)
    except AlphError as rollback_error:
        error = RollbackFailedError(
            f"Validation failed and rollback failed: validation failed after write{suffix}. "
            f"Rollback error: {rollback_error}",
            path,
        )
        return SafeEditResult(
            success=False, backup_info=backup_info, error=error, state=EditState.FAILED
        )

    logger.debug(f"safe_edit {path}: post-write validation failed, restored {source}")
    error = ValidationFailedError(
        f"Configuration validation failed, rolled back to {source}{suffix}", path, violations
    )
    return SafeEditResult(
        success=False, backup_info=backup_info, error=error, state=EditState.ROLLED_BACK
    )


def deep_merge(base: Document, updates: Document) -> Document:
    """Recursively merge ``updates`` into a copy of ``base``.

    ABOUTME: Nested dicts merge key by key; lists and scalars are replaced
    """
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def set_dot_path(document: Document, dot_path: str, value: Any) -> Document:
    """Return a copy of ``document`` with ``value`` stored at ``a.b.c``.

    ABOUTME: Missing or non-object intermediate nodes are replaced by new objects
    """
    keys = [k for k in dot_path.split(".") if k]
    if not keys:
        raise ValueError(f"Invalid configuration path: {dot_path!r}")

    root = dict(document)
    node = root
    for key in keys[:-1]:
        child = node.get(key)
        child = dict(child) if isinstance(child, dict) else {}
        node[key] = child
        node = child
    node[keys[-1]] = value
    return root


def get_dot_path(document: Document, dot_path: str) -> Any:
    node: Any = document
    for key in (k for k in dot_path.split(".") if k):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


async def safe_merge(path: Path, updates: Document, **options: Any) -> SafeEditResult:
    """Shallow-merge ``updates`` into the document at ``path``."""
    return await safe_edit(path, lambda doc: {**doc, **updates}, **options)


async def safe_deep_merge(path: Path, updates: Document, **options: Any) -> SafeEditResult:
    return await safe_edit(path, lambda doc: deep_merge(doc, updates), **options)


async def safe_update_path(
    path: Path, dot_path: str, value: Any, **options: Any
) -> SafeEditResult:
    """Set one dotted key (``"a.b.c"``) in the document at ``path``."""
    return await safe_edit(path, lambda doc: set_dot_path(doc, dot_path, value), **options)


async def rollback(backup_info: BackupInfo) -> SafeEditResult:
    """Restore ``backup_info`` over its original file.

    ABOUTME: Reports failure through the result instead of raising
    """
    try:
        await backup.restore_backup(backup_info)
    except AlphError as e:
        return SafeEditResult(
            success=False, backup_info=backup_info, error=e, state=EditState.FAILED
        )
    return SafeEditResult(success=True, backup_info=backup_info, state=EditState.ROLLED_BACK)
