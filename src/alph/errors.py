# Error taxonomy for alph
# ABOUTME: Every failure surfaced by the core carries an ErrorKind
# ABOUTME: Callers branch on kind or class, never on message text
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(str, Enum):
    """Failure categories shared by file operations, backups and providers."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    PARSE_ERROR = "parse_error"
    VALIDATION_FAILED = "validation_failed"
    TIMEOUT = "timeout"
    BACKUP_FAILED = "backup_failed"
    ROLLBACK_FAILED = "rollback_failed"
    WRITE_FAILED = "write_failed"


class AlphError(Exception):
    """Base class for all errors raised by alph.

    ABOUTME: Holds a contextual message plus the path involved (if any)
    ABOUTME: The underlying exception is chained via ``raise ... from``
    """

    kind: ErrorKind

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    @property
    def cause(self) -> BaseException | None:
        """The wrapped lower-level exception, if any."""
        return self.__cause__

    def __str__(self) -> str:
        return self.message


class NotFoundError(AlphError):
    """A file or MCP server entry is absent."""

    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(AlphError):
    kind = ErrorKind.PERMISSION_DENIED


class ParseError(AlphError):
    """A configuration document is not valid JSON or TOML."""

    kind = ErrorKind.PARSE_ERROR


class ValidationFailedError(AlphError):
    """A structural check rejected a configuration document.

    ABOUTME: violations holds the per-field findings when a schema validator produced them
    """

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        violations: list[Any] | None = None,
    ) -> None:
        super().__init__(message, path)
        self.violations = list(violations or [])


class IOTimeoutError(AlphError):
    kind = ErrorKind.TIMEOUT


class BackupFailedError(AlphError):
    kind = ErrorKind.BACKUP_FAILED


class RollbackFailedError(AlphError):
    kind = ErrorKind.ROLLBACK_FAILED


class WriteFailedError(AlphError):
    """Disk full, cross-device rename or permission problem while writing."""

    kind = ErrorKind.WRITE_FAILED
