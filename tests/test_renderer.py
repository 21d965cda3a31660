# ABOUTME: Tests for the protocol-aware renderer.
# ABOUTME: One expectation per (agent, transport) shape plus the omission rules.
import pytest

from alph.models import AgentConfig
from alph.renderer import (
    AGENTS,
    RENDERERS,
    RenderInput,
    effective_headers,
    render_entry,
    render_mcp_server,
)


def _entry(**kwargs) -> dict:
    return render_entry(RenderInput(server_id="srv", **kwargs))


class TestStdio:
    """Tests for stdio entries."""

    def test_cursor_stdio(self):
        """Test the Cursor stdio shape."""
        rendered = render_mcp_server(
            RenderInput(
                agent="cursor", server_id="fs", transport="stdio",
                command="npx", args=["-y", "@modelcontextprotocol/server-filesystem"],
            )
        )
        assert rendered == {
            "mcpServers": {
                "fs": {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-filesystem"]}
            }
        }

    def test_empty_args_and_env_are_omitted(self):
        """Test that empty optional fields never appear."""
        assert _entry(agent="claude", transport="stdio", command="srv") == {"command": "srv"}

    def test_env_included_when_present(self):
        """Test that env is copied into the entry."""
        entry = _entry(agent="warp", transport="stdio", command="srv", env={"TOKEN": "x"})
        assert entry == {"command": "srv", "env": {"TOKEN": "x"}}

    def test_gemini_stdio(self):
        """Test the Gemini stdio shape with cwd and timeout."""
        entry = _entry(
            agent="gemini", transport="stdio", command="node", args=["srv.js"],
            cwd="/work", timeout=30000,
        )
        assert entry == {
            "transport": "stdio", "command": "node", "args": ["srv.js"],
            "cwd": "/work", "timeout": 30000,
        }

    def test_windsurf_stdio(self):
        """Test that Windsurf marks stdio entries explicitly."""
        assert _entry(agent="windsurf", transport="stdio", command="srv") == {
            "transport": "stdio", "command": "srv",
        }

    def test_kiro_stdio(self):
        """Test that Kiro entries always carry disabled and autoApprove."""
        assert _entry(agent="kiro", transport="stdio", command="srv") == {
            "command": "srv", "disabled": False, "autoApprove": [],
        }


class TestRemote:
    """Tests for sse and http entries."""

    def test_cursor_remote(self):
        """Test Cursor: sse is typed, http is a bare url."""
        assert _entry(agent="cursor", transport="sse", url="https://x/sse") == {
            "type": "sse", "url": "https://x/sse",
        }
        assert _entry(agent="cursor", transport="http", url="https://x/mcp") == {
            "url": "https://x/mcp",
        }

    def test_claude_http_with_headers(self):
        """Test the Claude http shape."""
        entry = _entry(
            agent="claude", transport="http", url="https://x/mcp",
            headers={"Authorization": "Bearer t"},
        )
        assert entry == {
            "type": "http", "url": "https://x/mcp", "headers": {"Authorization": "Bearer t"},
        }

    def test_gemini_remote(self):
        """Test httpUrl for http and url for sse; non-positive timeout omitted."""
        assert _entry(agent="gemini", transport="http", url="https://x/mcp", timeout=0) == {
            "httpUrl": "https://x/mcp",
        }
        assert _entry(agent="gemini", transport="sse", url="https://x/sse") == {
            "transport": "sse", "url": "https://x/sse",
        }

    def test_windsurf_remote(self):
        """Test that Windsurf uses serverUrl for both remote transports."""
        for transport in ("sse", "http"):
            assert _entry(agent="windsurf", transport=transport, url="https://x") == {
                "serverUrl": "https://x",
            }

    def test_warp_remote(self):
        """Test that Warp writes both url and serverUrl."""
        assert _entry(agent="warp", transport="http", url="https://x") == {
            "url": "https://x", "serverUrl": "https://x",
        }

    def test_kiro_sse_moves_authorization_to_env(self):
        """Test the mcp-remote wrapper with an Authorization header."""
        entry = _entry(
            agent="kiro", transport="sse", url="https://x/sse",
            headers={"Authorization": "Bearer t"},
        )
        assert entry == {
            "command": "npx",
            "args": [
                "mcp-remote", "https://x/sse", "--transport", "sse-only",
                "--header", "Authorization:${AUTH_HEADER}",
            ],
            "env": {"AUTH_HEADER": "Bearer t"},
            "disabled": False,
            "autoApprove": [],
        }
        assert "Bearer t" not in " ".join(entry["args"])

    def test_kiro_http_other_headers_are_literal(self):
        """Test non-authorization headers become --header "K: V" pairs."""
        entry = _entry(
            agent="kiro", transport="http", url="https://x/mcp", headers={"X-Key": "abc"},
        )
        assert entry["args"] == [
            "mcp-remote", "https://x/mcp", "--transport", "http-only", "--header", "X-Key: abc",
        ]
        assert "env" not in entry


class TestRenderContract:
    """Tests for the renderer table and purity."""

    def test_unknown_agent_raises(self):
        """Test that unsupported pairs raise ValueError."""
        with pytest.raises(ValueError, match="No renderer for agent 'vim'"):
            _entry(agent="vim", transport="stdio", command="x")

    def test_every_agent_has_every_transport(self):
        """Test the table is complete for all known agents."""
        for agent in AGENTS:
            for transport in ("stdio", "sse", "http"):
                assert (agent, transport) in RENDERERS

    def test_outputs_are_fresh_objects(self):
        """Test that mutating one result never affects the input or another result."""
        render_input = RenderInput(
            agent="cursor", server_id="fs", transport="stdio", command="npx", args=["a"],
        )
        first = render_mcp_server(render_input)
        second = render_mcp_server(render_input)

        assert first == second
        first["mcpServers"]["fs"]["args"].append("b")
        assert render_input.args == ["a"]
        assert second["mcpServers"]["fs"]["args"] == ["a"]


class TestFromAgentConfig:
    """Tests for building RenderInput from AgentConfig."""

    def test_access_key_becomes_bearer_header(self):
        """Test that mcp_access_key adds an Authorization header."""
        config = AgentConfig(
            mcp_server_id="docs", mcp_server_url="https://x", mcp_access_key="secret"
        )
        assert effective_headers(config) == {"Authorization": "Bearer secret"}

    def test_explicit_authorization_wins(self):
        """Test that an explicit header (any case) is not overridden."""
        config = AgentConfig(
            mcp_server_id="docs", mcp_server_url="https://x",
            mcp_access_key="secret", headers={"authorization": "Token abc"},
        )
        assert effective_headers(config) == {"authorization": "Token abc"}

    def test_from_agent_config(self):
        """Test field mapping from AgentConfig."""
        config = AgentConfig(
            mcp_server_id="fs", transport="stdio", command="npx", args=["-y", "fs"],
            env={"A": "1"},
        )
        render_input = RenderInput.from_agent_config("claude", config)
        assert render_input.server_id == "fs"
        assert render_input.args == ["-y", "fs"]
        assert render_entry(render_input) == {
            "command": "npx", "args": ["-y", "fs"], "env": {"A": "1"},
        }
