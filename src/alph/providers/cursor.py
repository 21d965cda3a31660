# Cursor provider
import os
import sys
from pathlib import Path
from typing import Any

from alph.models import AgentConfig
from alph.providers.base import ConfigFileProvider
from alph.utils.paths import app_support_dir, home
from alph.utils.validation import (
    Violation,
    check_string,
    check_string_list,
    check_string_map,
)


# ABOUTME: Any of these marks an entry as remote
URL_FIELDS = ("url", "httpUrl", "serverUrl")


def is_cursor_stdio(entry: dict[str, Any]) -> bool:
    """Cursor reads an entry as stdio when it says so, or has a command and no URL field."""
    declared = entry.get("type") or entry.get("transport")
    if declared:
        return declared == "stdio"
    return "command" in entry and not any(field in entry for field in URL_FIELDS)


class CursorProvider(ConfigFileProvider):
    """Provider for Cursor (~/.cursor/mcp.json).

    ABOUTME: Project servers live in <project>/.cursor/mcp.json
    ABOUTME: Editor settings.json files are detection hints only; writes go to mcp.json
    """

    name = "Cursor"
    agent = "cursor"
    writes_detected_path = False

    def default_config_path(self) -> Path:
        return home() / ".cursor" / "mcp.json"

    def project_config_path(self, project_dir: Path) -> Path | None:
        return project_dir / ".cursor" / "mcp.json"

    def legacy_config_paths(self) -> list[Path]:
        if sys.platform == "win32":
            local = Path(os.environ.get("LOCALAPPDATA") or home() / "AppData" / "Local")
            return [
                app_support_dir() / "Cursor" / "User" / "settings.json",
                local / "Cursor" / "User" / "settings.json",
                app_support_dir() / "Cursor" / "settings.json",
                home() / ".cursor" / "User" / "settings.json",
            ]
        if sys.platform == "darwin":
            return [
                app_support_dir() / "Cursor" / "User" / "settings.json",
                app_support_dir() / "Cursor" / "settings.json",
                home() / "Library" / "Preferences" / "Cursor" / "settings.json",
            ]
        return [
            app_support_dir() / "Cursor" / "User" / "settings.json",
            app_support_dir() / "Cursor" / "settings.json",
            home() / ".cursor" / "settings.json",
            home() / "snap" / "cursor" / "current" / ".config" / "Cursor" / "User" / "settings.json",
        ]

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations)
        check_string_list(entry.get("args"), f"{path}.args", violations)
        check_string_map(entry.get("env"), f"{path}.env", violations)
        for field in URL_FIELDS:
            check_string(entry.get(field), f"{path}.{field}", violations)
        check_string_map(entry.get("headers"), f"{path}.headers", violations)
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        violations: list[Violation] = []
        if (expected.transport == "stdio") != is_cursor_stdio(entry):
            violations.append(Violation(path, f"entry does not read as {expected.transport}"))
        if expected.transport == "stdio":
            check_string(entry.get("command"), f"{path}.command", violations, required=True)
        else:
            check_string(entry.get("url"), f"{path}.url", violations, required=True)
        return violations
