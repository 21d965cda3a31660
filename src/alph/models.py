# Core data models for alph
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from alph.errors import AlphError

Transport = Literal["http", "sse", "stdio"]
RemovalScope = Literal["auto", "global", "project", "all"]

TRANSPORTS: tuple[Transport, ...] = ("http", "sse", "stdio")


@dataclass(frozen=True)
class AgentConfig:
    """Write intent for one MCP server entry.

    ABOUTME: Uses frozen dataclass; one instance describes a single configure call
    ABOUTME: Remote transports use mcp_server_url, stdio uses command/args
    ABOUTME: mcp_access_key becomes a Bearer Authorization header when none is given
    """
    mcp_server_id: str
    transport: Transport = "http"
    mcp_server_url: str | None = None
    mcp_access_key: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    command: str | None = None
    args: list[str] | None = None
    cwd: str | None = None
    timeout: int | None = None
    config_dir: Path | None = None


@dataclass(frozen=True)
class RemovalConfig:
    """Removal intent for one MCP server id.

    ABOUTME: scope selects which config locations are searched
    """
    mcp_server_id: str
    config_dir: Path | None = None
    scope: RemovalScope = "auto"
    backup: bool = True


@dataclass(frozen=True)
class BackupInfo:
    """A backup copy made right before a destructive edit."""
    original_path: Path
    backup_path: Path
    timestamp: datetime


@runtime_checkable
class AgentProvider(Protocol):
    """Uniform contract every agent adapter implements.

    ABOUTME: Defines interface the registry and command layer call
    ABOUTME: All operations are coroutines so the registry can fan out
    ABOUTME: Uses @runtime_checkable for isinstance() support
    """

    @property
    def name(self) -> str:
        """Human-readable agent name."""
        ...

    async def detect(self, config_dir: Path | None = None) -> Path | None:
        """Return the active config path, or None when the agent is absent."""
        ...

    async def configure(self, config: AgentConfig, backup: bool = True) -> Path | None:
        """Inject one server entry; return the backup path if one was made."""
        ...

    async def remove(self, removal: RemovalConfig, backup: bool = True) -> Path | None:
        """Delete one server entry; raise NotFoundError if it is absent everywhere."""
        ...

    async def list_mcp_servers(self, config_dir: Path | None = None) -> list[str]:
        ...

    async def has_mcp_server(self, server_id: str, config_dir: Path | None = None) -> bool:
        ...

    async def validate(self) -> bool:
        """Re-read the config and run the structural check; never raises."""
        ...

    async def rollback(self) -> Path | None:
        """Restore the most recent backup and return its path."""
        ...


@dataclass
class ProviderDetectionResult:
    provider: AgentProvider
    detected: bool
    config_path: Path | None = None
    error: str | None = None


@dataclass
class ProviderConfigurationResult:
    provider: AgentProvider
    success: bool
    backup_path: Path | None = None
    error: str | None = None
    exception: "AlphError | Exception | None" = None


@dataclass
class ProviderRemovalResult:
    """Outcome of removing one server from one provider.

    ABOUTME: found=False with success=True means the provider never had the server
    """
    provider: AgentProvider
    success: bool
    server_id: str
    found: bool = True
    backup_path: Path | None = None
    error: str | None = None
    exception: "AlphError | Exception | None" = None
