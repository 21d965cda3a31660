# ABOUTME: Validation utilities for agent configs and MCP server entries
# ABOUTME: Validators return lists of Violations (field path + reason) instead of bare booleans
import shutil
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

from alph.models import TRANSPORTS, AgentConfig

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class Violation:
    """Represents a validation error or warning.

    ABOUTME: Uses frozen dataclass for immutability
    ABOUTME: path is a dotted field path such as "mcpServers.github.command"
    ABOUTME: Severity level distinguishes between blocking errors and warnings
    """
    path: str
    message: str
    severity: Severity = "error"

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


def has_errors(violations: list[Violation]) -> bool:
    return any(v.severity == "error" for v in violations)


def validate_command_exists(command: str) -> Violation | None:
    """Validate that a command exists on the system.

    ABOUTME: Uses shutil.which() for cross-platform command lookup
    ABOUTME: Returns None if command found, a warning Violation otherwise

    Examples:
        >>> validate_command_exists("nonexistent_cmd")
        Violation(path='command', message='Command not found: nonexistent_cmd', severity='warning')
    """
    if shutil.which(command) is None:
        return Violation("command", f"Command not found: {command}", "warning")
    return None


def validate_url(url: str, path: str = "url") -> Violation | None:
    """Validate that a URL is properly formatted.

    ABOUTME: Uses urllib.parse for URL parsing
    ABOUTME: Requires HTTP or HTTPS scheme and a host
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return Violation(path, f"Invalid URL format '{url}': {e}")
    if parsed.scheme not in ("http", "https"):
        return Violation(path, f"URL must use HTTP or HTTPS scheme: {url}")
    if not parsed.netloc:
        return Violation(path, f"URL missing host/domain: {url}")
    return None


def validate_agent_config(config: AgentConfig) -> list[Violation]:
    """Check a write intent before any provider touches disk.

    ABOUTME: stdio needs a command; http/sse need an http(s) URL
    ABOUTME: A missing local command is only a warning (it may be installed later)
    """
    violations: list[Violation] = []

    if not config.mcp_server_id or not config.mcp_server_id.strip():
        violations.append(Violation("mcpServerId", "server id must be a non-empty string"))

    if config.transport not in TRANSPORTS:
        violations.append(
            Violation("transport", f"unsupported transport '{config.transport}'")
        )
        return violations

    if config.transport == "stdio":
        if not config.command:
            violations.append(Violation("command", "stdio transport requires a command"))
        else:
            missing = validate_command_exists(config.command)
            if missing:
                violations.append(missing)
    else:
        if not config.mcp_server_url:
            violations.append(
                Violation("mcpServerUrl", f"{config.transport} transport requires a URL")
            )
        else:
            bad_url = validate_url(config.mcp_server_url, "mcpServerUrl")
            if bad_url:
                violations.append(bad_url)

    if config.timeout is not None and config.timeout <= 0:
        violations.append(Violation("timeout", "timeout must be a positive number"))

    return violations


# --- partial-schema helpers used by the per-agent validators --------------------


def check_object(value: Any, path: str, violations: list[Violation], required: bool = False) -> bool:
    """Append a Violation unless ``value`` is a dict; returns whether it is one."""
    if value is None and not required:
        return False
    if not isinstance(value, dict):
        violations.append(Violation(path, "must be an object"))
        return False
    return True


def check_string(
    value: Any, path: str, violations: list[Violation], required: bool = False
) -> None:
    if value is None:
        if required:
            violations.append(Violation(path, "is required"))
        return
    if not isinstance(value, str) or (required and not value.strip()):
        violations.append(Violation(path, "must be a non-empty string"))


def check_string_list(value: Any, path: str, violations: list[Violation]) -> None:
    if value is None:
        return
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        violations.append(Violation(path, "must be an array of strings"))


def check_string_map(value: Any, path: str, violations: list[Violation]) -> None:
    if value is None:
        return
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        violations.append(Violation(path, "must be an object of string values"))
