# ABOUTME: Tests for the Codex CLI provider.
# ABOUTME: Codex keeps stdio servers in ~/.codex/config.toml under mcp_servers.
from pathlib import Path

import pytest
import tomli

from alph.errors import NotFoundError, ValidationFailedError
from alph.models import AgentConfig, RemovalConfig
from alph.providers.codex import (
    PACKAGE_RUNNER_TIMEOUT_MS,
    CodexProvider,
    is_package_runner,
    normalize_command,
)


def _config_file(home: Path) -> Path:
    return home / ".codex" / "config.toml"


def _read(path: Path) -> dict:
    return tomli.loads(path.read_text())


@pytest.mark.asyncio
async def test_configure_writes_toml(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a stdio server lands under mcp_servers."""
    monkeypatch.setattr("alph.providers.codex.sys.platform", "linux")
    await CodexProvider().configure(
        AgentConfig(
            mcp_server_id="fs", transport="stdio", command="uvx", args=["mcp-fs"],
            env={"ROOT": "/srv"},
        )
    )
    assert _read(_config_file(home)) == {
        "mcp_servers": {"fs": {"command": "uvx", "args": ["mcp-fs"], "env": {"ROOT": "/srv"}}}
    }


@pytest.mark.asyncio
async def test_package_runner_gets_startup_timeout(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the minimum startup timeout for npx launches."""
    monkeypatch.setattr("alph.providers.codex.sys.platform", "linux")
    await CodexProvider().configure(
        AgentConfig(mcp_server_id="fs", transport="stdio", command="npx", args=["-y", "fs"])
    )
    entry = _read(_config_file(home))["mcp_servers"]["fs"]
    assert entry["startup_timeout_ms"] == PACKAGE_RUNNER_TIMEOUT_MS


@pytest.mark.asyncio
async def test_preserves_other_toml_settings(home: Path) -> None:
    """Test that existing keys and servers survive a configure."""
    path = _config_file(home)
    path.parent.mkdir()
    path.write_text('model = "o3"\n\n[mcp_servers.old]\ncommand = "old"\n')

    backup_path = await CodexProvider().configure(
        AgentConfig(mcp_server_id="fs", transport="stdio", command="uvx")
    )

    data = _read(path)
    assert data["model"] == "o3"
    assert set(data["mcp_servers"]) == {"old", "fs"}
    assert backup_path is not None
    assert backup_path.name.startswith("config.bak.") and backup_path.suffix == ".toml"


@pytest.mark.asyncio
async def test_remote_transport_rejected(home: Path) -> None:
    """Test that Codex refuses http/sse servers without writing anything."""
    with pytest.raises(ValidationFailedError, match="only supports local MCP servers"):
        await CodexProvider().configure(
            AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp")
        )
    assert not _config_file(home).exists()


@pytest.mark.asyncio
async def test_remove(home: Path) -> None:
    """Test removal from the TOML document."""
    path = _config_file(home)
    path.parent.mkdir()
    path.write_text('[mcp_servers.fs]\ncommand = "uvx"\n\n[mcp_servers.keep]\ncommand = "k"\n')

    provider = CodexProvider()
    assert await provider.list_mcp_servers() == ["fs", "keep"]
    await provider.remove(RemovalConfig(mcp_server_id="fs"))

    assert _read(path) == {"mcp_servers": {"keep": {"command": "k"}}}
    with pytest.raises(NotFoundError):
        await provider.remove(RemovalConfig(mcp_server_id="fs"))


@pytest.mark.asyncio
async def test_detect_and_validate(home: Path) -> None:
    """Test TOML-aware detection and validation."""
    path = _config_file(home)
    path.parent.mkdir()
    path.write_text('[mcp_servers.fs]\ncommand = "uvx"\nargs = "not-a-list"\n')

    provider = CodexProvider()
    assert await provider.detect() == path
    assert not await provider.validate()
    assert provider.last_violations[0].path == "mcp_servers.fs.args"


def test_normalize_command():
    """Test the Windows .cmd shim for package runners."""
    assert normalize_command("npx", "win32") == "npx.cmd"
    assert normalize_command("PNPM", "win32") == "pnpm.cmd"
    assert normalize_command("npx", "linux") == "npx"
    assert normalize_command("uvx", "win32") == "uvx"


def test_is_package_runner():
    """Test package-runner detection."""
    assert is_package_runner("npx", [])
    assert is_package_runner("npx.cmd", ["-y"])
    assert is_package_runner("pnpm", ["dlx", "pkg"])
    assert not is_package_runner("pnpm", ["install"])
    assert not is_package_runner("uvx", ["pkg"])
