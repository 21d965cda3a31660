# Kiro provider
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


def uses_mcp_remote(entry: dict[str, Any]) -> bool:
    command = entry.get("command")
    args = entry.get("args")
    if isinstance(command, str) and "mcp-remote" in command:
        return True
    return isinstance(args, list) and bool(args) and args[0] == "mcp-remote"


class KiroProvider(ConfigFileProvider):
    """Provider for Kiro (~/.kiro/settings/mcp.json).

    ABOUTME: Kiro only runs stdio servers; remotes are wrapped in npx mcp-remote
    ABOUTME: The written entry needs a non-empty command; args, when present, must be an array
    """

    name = "Kiro"
    agent = "kiro"

    def default_config_path(self) -> Path:
        return home() / ".kiro" / "settings" / "mcp.json"

    def project_config_path(self, project_dir: Path) -> Path | None:
        return project_dir / ".kiro" / "settings" / "mcp.json"

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations)

        check_string_list(entry.get("args"), f"{path}.args", violations)

        check_string_map(entry.get("env"), f"{path}.env", violations)
        if "disabled" in entry and not isinstance(entry["disabled"], bool):
            violations.append(Violation(f"{path}.disabled", "must be a boolean"))
        if "autoApprove" in entry and not isinstance(entry["autoApprove"], list):
            violations.append(Violation(f"{path}.autoApprove", "must be an array"))
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations, required=True)
        if violations:
            return violations
        if expected.transport == "stdio":
            if expected.command and entry.get("command") != expected.command:
                return [Violation(f"{path}.command", "does not match the requested command")]
            return []
        if not uses_mcp_remote(entry):
            return [Violation(path, "remote transport should use the mcp-remote wrapper")]
        return []
