# ABOUTME: Tests for the Kiro provider.
# ABOUTME: Kiro only runs stdio servers, so remotes are wrapped in npx mcp-remote.
import json
from pathlib import Path

import pytest

from alph.models import AgentConfig
from alph.providers.kiro import KiroProvider, uses_mcp_remote


def _config_file(home: Path) -> Path:
    return home / ".kiro" / "settings" / "mcp.json"


@pytest.mark.asyncio
async def test_configure_sse_with_access_key(home: Path) -> None:
    """Test that the access key reaches mcp-remote through AUTH_HEADER."""
    await KiroProvider().configure(
        AgentConfig(
            mcp_server_id="docs", transport="sse",
            mcp_server_url="https://x/sse", mcp_access_key="secret",
        )
    )

    entry = json.loads(_config_file(home).read_text())["mcpServers"]["docs"]
    assert entry == {
        "command": "npx",
        "args": [
            "mcp-remote", "https://x/sse", "--transport", "sse-only",
            "--header", "Authorization:${AUTH_HEADER}",
        ],
        "env": {"AUTH_HEADER": "Bearer secret"},
        "disabled": False,
        "autoApprove": [],
    }


@pytest.mark.asyncio
async def test_configure_stdio_without_args(home: Path) -> None:
    """Test that a stdio entry without args passes the schema check."""
    await KiroProvider().configure(
        AgentConfig(mcp_server_id="local", transport="stdio", command="my-server")
    )
    entry = json.loads(_config_file(home).read_text())["mcpServers"]["local"]
    assert entry == {"command": "my-server", "disabled": False, "autoApprove": []}


@pytest.mark.asyncio
async def test_project_scope(project: Path) -> None:
    """Test that config_dir writes <dir>/.kiro/settings/mcp.json."""
    await KiroProvider().configure(
        AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp", config_dir=project)
    )
    data = json.loads((project / ".kiro" / "settings" / "mcp.json").read_text())
    assert data["mcpServers"]["docs"]["args"][:4] == [
        "mcp-remote", "https://x/mcp", "--transport", "http-only",
    ]


@pytest.mark.asyncio
async def test_validate(home: Path) -> None:
    """Test the Kiro partial schema."""
    path = _config_file(home)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({
        "mcpServers": {
            "bad_command": {"command": 5},
            "bad_flag": {"command": "x", "disabled": "no"},
            "bad_args": {"command": "x", "args": "--flag"},
        }
    }))

    provider = KiroProvider()
    assert not await provider.validate()
    assert {v.path for v in provider.last_violations} == {
        "mcpServers.bad_command.command",
        "mcpServers.bad_flag.disabled",
        "mcpServers.bad_args.args",
    }


def test_uses_mcp_remote():
    """Test detection of the mcp-remote wrapper."""
    assert uses_mcp_remote({"command": "npx", "args": ["mcp-remote", "https://x"]})
    assert uses_mcp_remote({"command": "/opt/mcp-remote"})
    assert not uses_mcp_remote({"command": "npx", "args": ["-y", "server"]})
    assert not uses_mcp_remote({"command": "npx"})


@pytest.mark.asyncio
async def test_configure_keeps_remote_neighbour(home: Path) -> None:
    """Test that a url-only entry written by Kiro itself does not block an edit."""
    path = _config_file(home)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"mcpServers": {"hosted": {"url": "https://h/mcp"}}}))

    await KiroProvider().configure(
        AgentConfig(mcp_server_id="fs", transport="stdio", command="uvx", args=["mcp-fs"])
    )

    servers = json.loads(path.read_text())["mcpServers"]
    assert servers["hosted"] == {"url": "https://h/mcp"}
    assert servers["fs"]["command"] == "uvx"
