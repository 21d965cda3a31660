# Windsurf provider
from pathlib import Path
from typing import Any

from alph.models import AgentConfig
from alph.providers.base import ConfigFileProvider
from alph.utils.paths import home
from alph.utils.validation import (
    Violation,
    check_string,
    check_string_list,
    check_string_map,
)


class WindsurfProvider(ConfigFileProvider):
    """Provider for Windsurf (~/.codeium/windsurf/mcp_config.json).

    ABOUTME: Remote servers use serverUrl; stdio servers carry transport: "stdio"
    """

    name = "Windsurf"
    agent = "windsurf"

    def default_config_path(self) -> Path:
        return home() / ".codeium" / "windsurf" / "mcp_config.json"

    def project_config_path(self, project_dir: Path) -> Path | None:
        return project_dir / ".codeium" / "windsurf" / "mcp_config.json"

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations)
        check_string_list(entry.get("args"), f"{path}.args", violations)
        check_string(entry.get("serverUrl"), f"{path}.serverUrl", violations)
        check_string(entry.get("url"), f"{path}.url", violations)
        check_string_map(entry.get("headers"), f"{path}.headers", violations)
        check_string_map(entry.get("env"), f"{path}.env", violations)
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        if expected.transport == "stdio":
            if entry.get("command") != expected.command:
                return [Violation(f"{path}.command", "does not match the requested command")]
        elif entry.get("serverUrl") != expected.mcp_server_url:
            return [Violation(f"{path}.serverUrl", "does not match the requested URL")]
        return []
