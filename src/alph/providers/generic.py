# Generic JSON provider for agents without a dedicated adapter
import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Literal

from alph.models import AgentConfig
from alph.providers.base import ConfigFileProvider, ConfigLocation, get_in
from alph.renderer import effective_headers
from alph.utils.validation import Violation, check_string

Formatter = Callable[[AgentConfig], dict[str, Any]]
GenericValidator = Callable[[dict[str, Any], AgentConfig | None], bool | list[Violation]]
GenericFormat = Literal["simple", "vscode", "jetbrains"]

# ABOUTME: A written entry is usable when it has at least one of these keys
ENTRY_TARGET_KEYS = ("url", "httpUrl", "endpoint", "command")


def _compact(entry: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in entry.items() if v is not None and v != {} and v != []}


def _stdio_entry(config: AgentConfig) -> dict[str, Any]:
    return _compact({
        "command": config.command,
        "args": list(config.args or []),
        "env": dict(config.env),
        "transport": "stdio",
    })


def simple_formatter(config: AgentConfig) -> dict[str, Any]:
    """Flat entry: url, accessKey and transport."""
    if config.transport == "stdio":
        return _stdio_entry(config)
    return _compact({
        "url": config.mcp_server_url,
        "accessKey": config.mcp_access_key,
        "headers": dict(config.headers),
        "transport": config.transport,
    })


def vscode_formatter(config: AgentConfig) -> dict[str, Any]:
    if config.transport == "stdio":
        return {**_stdio_entry(config), "disabled": False}
    return _compact({
        "url": config.mcp_server_url,
        "headers": effective_headers(config),
        "transport": config.transport,
    }) | {"disabled": False}


def jetbrains_formatter(config: AgentConfig) -> dict[str, Any]:
    if config.transport == "stdio":
        return {**_stdio_entry(config), "enabled": True}
    authentication = (
        {"type": "bearer", "token": config.mcp_access_key} if config.mcp_access_key else None
    )
    return _compact({
        "endpoint": config.mcp_server_url,
        "authentication": authentication,
        "transport": config.transport,
    }) | {"enabled": True}


FORMATS: dict[str, tuple[str, Formatter]] = {
    "simple": ("mcpServers", simple_formatter),
    "vscode": ("mcpServers", vscode_formatter),
    "jetbrains": ("plugins.mcp.servers", jetbrains_formatter),
}


class GenericProvider(ConfigFileProvider):
    """Provider for any JSON config that keeps servers under a (dotted) key.

    ABOUTME: servers_path may be nested, e.g. "plugins.mcp.servers"
    ABOUTME: No project scope; one explicit config file
    """

    def __init__(
        self,
        name: str,
        config_path: Path,
        servers_path: str = "mcpServers",
        formatter: Formatter | None = None,
        validator: GenericValidator | None = None,
    ) -> None:
        super().__init__(config_path)
        self._path = Path(config_path)
        self.name = name
        self.agent = re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_").lower()
        self.servers_path = servers_path
        self.servers_key = servers_path
        self._keys = tuple(k for k in servers_path.split(".") if k)
        self._formatter = formatter or simple_formatter
        self._validator = validator

    @classmethod
    def create_with_format(
        cls, name: str, config_path: Path, format: GenericFormat = "simple"
    ) -> "GenericProvider":
        """Build a provider for a known config dialect.

        Examples:
            >>> provider = GenericProvider.create_with_format("IDE", Path("mcp.json"), "jetbrains")
            >>> provider.servers_path
            'plugins.mcp.servers'
        """
        servers_path, formatter = FORMATS.get(format, FORMATS["simple"])
        return cls(name, config_path, servers_path=servers_path, formatter=formatter)

    def default_config_path(self) -> Path:
        return self._path

    def global_locations(self) -> list[ConfigLocation]:
        return [ConfigLocation(self.config_path, self._keys, "global")]

    def render(self, config: AgentConfig) -> dict[str, Any]:
        return self._formatter(config)

    def server_maps(self, document: dict[str, Any]) -> list[tuple[str, Any]]:
        return [(self.servers_path, get_in(document, self._keys))]

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        for key in ENTRY_TARGET_KEYS:
            check_string(entry.get(key), f"{path}.{key}", violations)
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        if not any(entry.get(key) for key in ENTRY_TARGET_KEYS):
            return [Violation(path, "needs one of url, httpUrl, endpoint or command")]
        return []

    def schema_violations(
        self,
        document: dict[str, Any],
        expected: AgentConfig | None = None,
        targets: Iterable[ConfigLocation] = (),
    ) -> list[Violation]:
        violations = super().schema_violations(document, expected, targets)
        if self._validator is None:
            return violations

        outcome = self._validator(document, expected)
        if isinstance(outcome, list):
            violations.extend(outcome)
        elif not outcome:
            violations.append(Violation(self.servers_path, "custom validation failed"))
        return violations
