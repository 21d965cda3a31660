# alph - safe MCP server configuration for local AI coding agents
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models and errors
from alph.errors import (
    AlphError,
    BackupFailedError,
    ErrorKind,
    IOTimeoutError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    RollbackFailedError,
    ValidationFailedError,
    WriteFailedError,
)
from alph.models import AgentConfig, AgentProvider, BackupInfo, RemovalConfig

# ABOUTME: Export rendering, providers and the registry
from alph.renderer import RenderInput, render_mcp_server
from alph.providers import get_builtin_providers
from alph.registry import AgentRegistry

__all__ = [
    "__version__",
    "AgentConfig",
    "AgentProvider",
    "AgentRegistry",
    "AlphError",
    "BackupFailedError",
    "BackupInfo",
    "ErrorKind",
    "IOTimeoutError",
    "NotFoundError",
    "ParseError",
    "PermissionDeniedError",
    "RemovalConfig",
    "RenderInput",
    "RollbackFailedError",
    "ValidationFailedError",
    "WriteFailedError",
    "get_builtin_providers",
    "render_mcp_server",
]
