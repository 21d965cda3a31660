# Claude Code provider
import sys
from pathlib import Path
from typing import Any

from alph.models import TRANSPORTS, AgentConfig
from alph.providers.base import ConfigFileProvider, ConfigLocation
from alph.utils.paths import home
from alph.utils.validation import (
    Violation,
    check_string,
    check_string_list,
    check_string_map,
)


def infer_claude_transport(entry: dict[str, Any]) -> str | None:
    """transport, then type, then command (stdio) or url (http)."""
    explicit = entry.get("transport") or entry.get("type")
    if explicit:
        return str(explicit)
    if entry.get("command"):
        return "stdio"
    if entry.get("url"):
        return "http"
    return None


class ClaudeProvider(ConfigFileProvider):
    """Provider for Claude Code (~/.claude.json).

    ABOUTME: Global servers live under mcpServers
    ABOUTME: Project servers live under projects[<absolute dir>].mcpServers in the same file
    """

    name = "Claude Code"
    agent = "claude"

    def default_config_path(self) -> Path:
        if sys.platform == "win32":
            return home() / ".claude" / ".claude.json"
        return home() / ".claude.json"

    def legacy_config_paths(self) -> list[Path]:
        claude_dir = home() / ".claude"
        return [
            home() / ".claude.json",
            claude_dir / ".claude.json",
            claude_dir / "claude.json",
            claude_dir / "settings.json",
            claude_dir / "settings.local.json",
            claude_dir / "mcp_servers.json",
        ]

    def project_locations(self, project_dir: Path) -> list[ConfigLocation]:
        return [
            ConfigLocation(
                self.config_path, ("projects", str(project_dir), self.servers_key), "project"
            )
        ]

    def configure_locations(self, config: AgentConfig) -> list[ConfigLocation]:
        """Global entry always; the project node too when a project dir is given."""
        locations = self.global_locations()
        if config.config_dir is not None:
            locations += super().configure_locations(config)
        return locations

    def server_maps(self, document: dict[str, Any]) -> list[tuple[str, Any]]:
        maps = super().server_maps(document)
        projects = document.get("projects")
        if isinstance(projects, dict):
            for project_path, project in projects.items():
                if isinstance(project, dict) and self.servers_key in project:
                    maps.append(
                        (f"projects.{project_path}.{self.servers_key}", project[self.servers_key])
                    )
        return maps

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        for key in ("transport", "type"):
            value = entry.get(key)
            if value is not None and value not in TRANSPORTS:
                violations.append(Violation(f"{path}.{key}", f"unsupported transport '{value}'"))

        check_string(entry.get("command"), f"{path}.command", violations)
        check_string_list(entry.get("args"), f"{path}.args", violations)
        check_string_map(entry.get("env"), f"{path}.env", violations)
        check_string(entry.get("url"), f"{path}.url", violations)
        check_string_map(entry.get("headers"), f"{path}.headers", violations)
        if "disabled" in entry and not isinstance(entry["disabled"], bool):
            violations.append(Violation(f"{path}.disabled", "must be a boolean"))
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        transport = infer_claude_transport(entry)
        if transport != expected.transport:
            return [
                Violation(path, f"transport is '{transport}', expected '{expected.transport}'")
            ]
        violations: list[Violation] = []
        field = "command" if transport == "stdio" else "url"
        check_string(entry.get(field), f"{path}.{field}", violations, required=True)
        return violations
