# Protocol-aware rendering of MCP server entries
# ABOUTME: Pure strategy table keyed by (agent, transport); no I/O, no shared state
# ABOUTME: Optional fields appear only when non-empty (Kiro's autoApprove: [] is the exception)
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from alph.models import AgentConfig, Transport

Entry = dict[str, Any]

# ABOUTME: mcp-remote --transport values for Kiro's wrapper invocation
KIRO_REMOTE_TRANSPORTS = {"sse": "sse-only", "http": "http-only"}

# ABOUTME: Env var carrying the Authorization value for Kiro remotes
KIRO_AUTH_ENV = "AUTH_HEADER"


@dataclass(frozen=True)
class RenderInput:
    """Everything a renderer needs for one entry.

    ABOUTME: Built from an AgentConfig via from_agent_config()
    """
    agent: str
    server_id: str
    transport: Transport
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    command: str | None = None
    args: list[str] = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    timeout: int | None = None

    @classmethod
    def from_agent_config(cls, agent: str, config: AgentConfig) -> "RenderInput":
        return cls(
            agent=agent,
            server_id=config.mcp_server_id,
            transport=config.transport,
            url=config.mcp_server_url,
            headers=effective_headers(config),
            command=config.command,
            args=list(config.args or []),
            cwd=config.cwd,
            env=dict(config.env),
            timeout=config.timeout,
        )


def effective_headers(config: AgentConfig) -> dict[str, str]:
    """Headers from ``config`` plus a Bearer Authorization built from the access key.

    ABOUTME: An explicit Authorization header (any case) wins over mcp_access_key
    """
    headers = dict(config.headers)
    if config.mcp_access_key and not any(k.lower() == "authorization" for k in headers):
        headers["Authorization"] = f"Bearer {config.mcp_access_key}"
    return headers


def _optional(entry: Entry, key: str, value: Any) -> None:
    if not value:
        return
    if isinstance(value, list):
        entry[key] = list(value)
    elif isinstance(value, dict):
        entry[key] = dict(value)
    else:
        entry[key] = value


def _command_entry(i: RenderInput) -> Entry:
    entry: Entry = {}
    _optional(entry, "command", i.command)
    _optional(entry, "args", i.args)
    _optional(entry, "env", i.env)
    return entry


def _typed_url_entry(kind: str) -> Callable[[RenderInput], Entry]:
    def render(i: RenderInput) -> Entry:
        entry: Entry = {"type": kind}
        _optional(entry, "url", i.url)
        _optional(entry, "headers", i.headers)
        return entry
    return render


def _url_entry(i: RenderInput) -> Entry:
    entry: Entry = {}
    _optional(entry, "url", i.url)
    _optional(entry, "headers", i.headers)
    return entry


def _positive_timeout(entry: Entry, timeout: int | None) -> None:
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        entry["timeout"] = timeout


def _gemini_stdio(i: RenderInput) -> Entry:
    entry: Entry = {"transport": "stdio"}
    _optional(entry, "command", i.command)
    _optional(entry, "args", i.args)
    _optional(entry, "cwd", i.cwd)
    _optional(entry, "env", i.env)
    _positive_timeout(entry, i.timeout)
    return entry


def _gemini_sse(i: RenderInput) -> Entry:
    entry: Entry = {"transport": "sse"}
    _optional(entry, "url", i.url)
    _optional(entry, "headers", i.headers)
    _optional(entry, "env", i.env)
    _positive_timeout(entry, i.timeout)
    return entry


def _gemini_http(i: RenderInput) -> Entry:
    entry: Entry = {}
    _optional(entry, "httpUrl", i.url)
    _optional(entry, "headers", i.headers)
    _optional(entry, "env", i.env)
    _positive_timeout(entry, i.timeout)
    return entry


def _windsurf_stdio(i: RenderInput) -> Entry:
    return {"transport": "stdio", **_command_entry(i)}


def _windsurf_remote(i: RenderInput) -> Entry:
    entry: Entry = {}
    _optional(entry, "serverUrl", i.url)
    _optional(entry, "headers", i.headers)
    _optional(entry, "env", i.env)
    return entry


def _warp_remote(i: RenderInput) -> Entry:
    entry: Entry = {}
    if i.url:
        entry["url"] = i.url
        entry["serverUrl"] = i.url
    _optional(entry, "headers", i.headers)
    return entry


def _kiro_stdio(i: RenderInput) -> Entry:
    return {**_command_entry(i), "disabled": False, "autoApprove": []}


def _kiro_remote(i: RenderInput) -> Entry:
    """Wrap a remote endpoint in ``npx mcp-remote`` (Kiro only runs stdio servers).

    ABOUTME: Authorization travels through the AUTH_HEADER env var, never literally in argv
    ABOUTME: Other headers become "--header", "K: V" pairs
    """
    args = ["mcp-remote"]
    if i.url:
        args.append(i.url)
    args += ["--transport", KIRO_REMOTE_TRANSPORTS[i.transport]]

    env = dict(i.env)
    for key, value in i.headers.items():
        if key.lower() == "authorization":
            args += ["--header", "Authorization:${" + KIRO_AUTH_ENV + "}"]
            env[KIRO_AUTH_ENV] = value
        else:
            args += ["--header", f"{key}: {value}"]

    entry: Entry = {"command": "npx", "args": args}
    _optional(entry, "env", env)
    entry["disabled"] = False
    entry["autoApprove"] = []
    return entry


RENDERERS: dict[tuple[str, Transport], Callable[[RenderInput], Entry]] = {
    ("cursor", "stdio"): _command_entry,
    ("cursor", "sse"): _typed_url_entry("sse"),
    ("cursor", "http"): _url_entry,
    ("claude", "stdio"): _command_entry,
    ("claude", "sse"): _typed_url_entry("sse"),
    ("claude", "http"): _typed_url_entry("http"),
    ("gemini", "stdio"): _gemini_stdio,
    ("gemini", "sse"): _gemini_sse,
    ("gemini", "http"): _gemini_http,
    ("windsurf", "stdio"): _windsurf_stdio,
    ("windsurf", "sse"): _windsurf_remote,
    ("windsurf", "http"): _windsurf_remote,
    ("kiro", "stdio"): _kiro_stdio,
    ("kiro", "sse"): _kiro_remote,
    ("kiro", "http"): _kiro_remote,
    ("warp", "stdio"): _command_entry,
    ("warp", "sse"): _warp_remote,
    ("warp", "http"): _warp_remote,
}

AGENTS: tuple[str, ...] = tuple(dict.fromkeys(agent for agent, _ in RENDERERS))


def render_entry(render_input: RenderInput) -> Entry:
    """Render just the server entry for ``render_input``.

    Raises:
        ValueError: If no renderer exists for the (agent, transport) pair
    """
    key = (render_input.agent, render_input.transport)
    renderer = RENDERERS.get(key)
    if renderer is None:
        raise ValueError(
            f"No renderer for agent '{render_input.agent}' "
            f"with transport '{render_input.transport}'"
        )
    return renderer(render_input)


def render_mcp_server(render_input: RenderInput) -> dict[str, dict[str, Entry]]:
    """Map one server descriptor to ``{"mcpServers": {id: entry}}``.

    ABOUTME: Referentially transparent: same input, same output, fresh objects every call

    Examples:
        >>> render_mcp_server(RenderInput(agent="claude", server_id="docs",
        ...     transport="http", url="https://example.com/mcp"))
        {'mcpServers': {'docs': {'type': 'http', 'url': 'https://example.com/mcp'}}}
    """
    return {"mcpServers": {render_input.server_id: render_entry(render_input)}}
