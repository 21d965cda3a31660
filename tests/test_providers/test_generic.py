# Tests for the generic JSON provider
import json
from pathlib import Path

import pytest

from alph.errors import ValidationFailedError
from alph.models import AgentConfig, RemovalConfig
from alph.providers.generic import GenericProvider
from alph.utils.validation import Violation

DOCS = AgentConfig(
    mcp_server_id="docs", mcp_server_url="https://x/mcp", mcp_access_key="secret",
)


def _read(path: Path) -> dict:
    return json.loads(path.read_text())


@pytest.mark.asyncio
async def test_simple_format(tmp_path: Path) -> None:
    """Test the default flat entry."""
    path = tmp_path / "agent.json"
    provider = GenericProvider("My Agent", path)

    await provider.configure(DOCS)

    assert provider.agent == "my_agent"
    assert _read(path) == {
        "mcpServers": {"docs": {"url": "https://x/mcp", "accessKey": "secret", "transport": "http"}}
    }


@pytest.mark.asyncio
async def test_jetbrains_format_nested_path(tmp_path: Path) -> None:
    """Test a nested servers path and the jetbrains entry shape."""
    path = tmp_path / "ide.json"
    path.write_text(json.dumps({"plugins": {"other": True}}))
    provider = GenericProvider.create_with_format("IDE", path, "jetbrains")

    await provider.configure(DOCS)

    assert _read(path) == {
        "plugins": {
            "other": True,
            "mcp": {
                "servers": {
                    "docs": {
                        "endpoint": "https://x/mcp",
                        "authentication": {"type": "bearer", "token": "secret"},
                        "transport": "http",
                        "enabled": True,
                    }
                }
            },
        }
    }
    assert await provider.list_mcp_servers() == ["docs"]


@pytest.mark.asyncio
async def test_vscode_format_stdio(tmp_path: Path) -> None:
    """Test the vscode flavour of a stdio entry."""
    path = tmp_path / "settings.json"
    provider = GenericProvider.create_with_format("Code", path, "vscode")

    await provider.configure(
        AgentConfig(mcp_server_id="fs", transport="stdio", command="npx", args=["fs"])
    )

    assert _read(path)["mcpServers"]["fs"] == {
        "command": "npx", "args": ["fs"], "transport": "stdio", "disabled": False,
    }


@pytest.mark.asyncio
async def test_custom_validator_blocks_write(tmp_path: Path) -> None:
    """Test that a rejecting custom validator leaves the file alone."""
    path = tmp_path / "agent.json"
    path.write_text('{"mcpServers": {}}')
    original = path.read_bytes()

    def only_https_on_corp(document, expected):
        return [Violation("mcpServers", "only corp.example hosts are allowed")]

    provider = GenericProvider("Corp", path, validator=only_https_on_corp)

    with pytest.raises(ValidationFailedError):
        await provider.configure(DOCS)
    assert path.read_bytes() == original


@pytest.mark.asyncio
async def test_remove(tmp_path: Path) -> None:
    """Test removal from a nested servers path."""
    path = tmp_path / "agent.json"
    path.write_text(json.dumps({"a": {"b": {"docs": {"url": "https://x"}, "keep": {"command": "k"}}}}))
    provider = GenericProvider("Nested", path, servers_path="a.b")

    await provider.remove(RemovalConfig(mcp_server_id="docs", scope="global"))

    assert _read(path) == {"a": {"b": {"keep": {"command": "k"}}}}


@pytest.mark.asyncio
async def test_validate_flags_mistyped_target_keys(tmp_path: Path) -> None:
    """Test that url, endpoint or command of the wrong type is invalid."""
    path = tmp_path / "agent.json"
    path.write_text(json.dumps({"mcpServers": {"x": {"endpoint": 8080}}}))

    provider = GenericProvider("Agent", path)
    assert not await provider.validate()
    assert provider.last_violations[0].path == "mcpServers.x.endpoint"


@pytest.mark.asyncio
async def test_configure_keeps_incomplete_neighbour(tmp_path: Path) -> None:
    """Test that only the written entry must carry a url or command."""
    path = tmp_path / "agent.json"
    path.write_text(json.dumps({"mcpServers": {"x": {"transport": "http"}}}))

    await GenericProvider("Agent", path).configure(DOCS)

    assert _read(path)["mcpServers"]["x"] == {"transport": "http"}
    assert "docs" in _read(path)["mcpServers"]

