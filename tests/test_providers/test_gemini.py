# ABOUTME: Tests for the Gemini CLI provider.
# ABOUTME: Covers transport-specific URL fields, binary-based detection and validation.
import json
from pathlib import Path

import pytest

from alph.models import AgentConfig
from alph.providers import gemini
from alph.providers.gemini import GeminiProvider, infer_gemini_transport


@pytest.fixture
def no_gemini_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gemini.shutil, "which", lambda name: None)


def _settings(home: Path) -> Path:
    return home / ".gemini" / "settings.json"


class TestGeminiConfigure:
    """Tests for GeminiProvider.configure()."""

    @pytest.mark.asyncio
    async def test_http_uses_http_url(self, home: Path) -> None:
        """Test that http servers are written with httpUrl."""
        await GeminiProvider().configure(
            AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp", timeout=5000)
        )
        assert json.loads(_settings(home).read_text()) == {
            "mcpServers": {"docs": {"httpUrl": "https://x/mcp", "timeout": 5000}}
        }

    @pytest.mark.asyncio
    async def test_sse_uses_url(self, home: Path) -> None:
        """Test that sse servers carry transport and url."""
        await GeminiProvider().configure(
            AgentConfig(mcp_server_id="docs", transport="sse", mcp_server_url="https://x/sse")
        )
        entry = json.loads(_settings(home).read_text())["mcpServers"]["docs"]
        assert entry == {"transport": "sse", "url": "https://x/sse"}

    @pytest.mark.asyncio
    async def test_keeps_other_settings(self, home: Path) -> None:
        """Test that unrelated Gemini settings are preserved."""
        path = _settings(home)
        path.parent.mkdir()
        path.write_text(json.dumps({"theme": "GitHub", "mcpServers": {"old": {"command": "o"}}}))

        await GeminiProvider().configure(
            AgentConfig(mcp_server_id="fs", transport="stdio", command="node", cwd="/srv")
        )

        data = json.loads(path.read_text())
        assert data["theme"] == "GitHub"
        assert data["mcpServers"] == {
            "old": {"command": "o"},
            "fs": {"transport": "stdio", "command": "node", "cwd": "/srv"},
        }

    @pytest.mark.asyncio
    async def test_project_scope(self, home: Path, project: Path) -> None:
        """Test that config_dir writes <dir>/.gemini/settings.json."""
        await GeminiProvider().configure(
            AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp", config_dir=project)
        )
        assert (project / ".gemini" / "settings.json").exists()
        assert not _settings(home).exists()


class TestGeminiDetect:
    """Tests for GeminiProvider.detect()."""

    @pytest.mark.asyncio
    async def test_binary_without_settings(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an installed CLI is detected before settings.json exists."""
        monkeypatch.setattr(gemini.shutil, "which", lambda name: "/usr/local/bin/gemini")
        assert await GeminiProvider().detect() == _settings(home)

    @pytest.mark.asyncio
    async def test_nothing_installed(self, no_gemini_binary: None) -> None:
        """Test that no binary and no file means not detected."""
        assert await GeminiProvider().detect() is None

    @pytest.mark.asyncio
    async def test_settings_file(self, home: Path, no_gemini_binary: None) -> None:
        """Test detection of an existing settings.json."""
        _settings(home).parent.mkdir()
        _settings(home).write_text("{}")
        assert await GeminiProvider().detect() == _settings(home)


class TestGeminiValidate:
    """Tests for the Gemini partial schema."""

    @pytest.mark.asyncio
    async def test_bad_timeout(self, home: Path) -> None:
        """Test that a non-positive timeout is reported."""
        _settings(home).parent.mkdir()
        _settings(home).write_text(json.dumps(
            {"mcpServers": {"a": {"httpUrl": "https://x", "timeout": -5}}}
        ))
        provider = GeminiProvider()
        assert not await provider.validate()
        assert provider.last_violations[0].path == "mcpServers.a.timeout"

    @pytest.mark.asyncio
    async def test_uninferable_neighbour_is_kept(self, home: Path) -> None:
        """Test that an entry with no command or URL does not block an edit."""
        _settings(home).parent.mkdir()
        _settings(home).write_text(json.dumps({"mcpServers": {"a": {"env": {}}}}))

        assert await GeminiProvider().validate()
        await GeminiProvider().configure(
            AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp")
        )
        servers = json.loads(_settings(home).read_text())["mcpServers"]
        assert servers == {"a": {"env": {}}, "docs": {"httpUrl": "https://x/mcp"}}

    def test_schema_expectation_checks_url(self) -> None:
        """Test that the expected URL must be the one written."""
        expected = AgentConfig(mcp_server_id="docs", mcp_server_url="https://x/mcp")
        provider = GeminiProvider()
        location = provider.global_locations()[0]
        document = {"mcpServers": {"docs": {"httpUrl": "https://other/mcp"}}}

        violations = provider.schema_violations(document, expected, [location])
        assert {v.path for v in violations} == {"mcpServers.docs", "mcpServers.docs.httpUrl"}


def test_infer_gemini_transport():
    """Test transport inference from entry fields."""
    assert infer_gemini_transport({"transport": "sse", "httpUrl": "x"}) == "sse"
    assert infer_gemini_transport({"command": "node"}) == "stdio"
    assert infer_gemini_transport({"httpUrl": "https://x"}) == "http"
    assert infer_gemini_transport({"url": "https://x"}) == "sse"
    assert infer_gemini_transport({}) is None
