# Gemini CLI provider
import shutil
from pathlib import Path
from typing import Any

from alph.models import TRANSPORTS, AgentConfig
from alph.providers.base import ConfigFileProvider
from alph.utils.paths import home
from alph.utils.validation import (
    Violation,
    check_string,
    check_string_list,
    check_string_map,
)

# ABOUTME: Which URL field each remote transport uses in settings.json
URL_FIELDS = {"http": "httpUrl", "sse": "url"}


def infer_gemini_transport(entry: dict[str, Any]) -> str | None:
    """Explicit transport key, else command -> stdio, httpUrl -> http, url -> sse."""
    if entry.get("transport"):
        return str(entry["transport"])
    if entry.get("command"):
        return "stdio"
    if entry.get("httpUrl"):
        return "http"
    if entry.get("url"):
        return "sse"
    return None


class GeminiProvider(ConfigFileProvider):
    """Provider for Gemini CLI (~/.gemini/settings.json).

    ABOUTME: Project servers live in <project>/.gemini/settings.json
    ABOUTME: Falls back to the default path when only the gemini binary is installed
    """

    name = "Gemini CLI"
    agent = "gemini"

    def default_config_path(self) -> Path:
        return home() / ".gemini" / "settings.json"

    def project_config_path(self, project_dir: Path) -> Path | None:
        return project_dir / ".gemini" / "settings.json"

    async def detect(self, config_dir: Path | None = None) -> Path | None:
        path = await super().detect(config_dir)
        if path is None and shutil.which("gemini") is not None:
            # Installed but never configured: settings.json is created on first write
            return self.default_config_path()
        return path

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        declared = entry.get("transport")
        if declared is not None and declared not in TRANSPORTS:
            violations.append(Violation(f"{path}.transport", f"unsupported transport '{declared}'"))

        check_string(entry.get("command"), f"{path}.command", violations)
        check_string_list(entry.get("args"), f"{path}.args", violations)
        check_string(entry.get("cwd"), f"{path}.cwd", violations)
        for field in URL_FIELDS.values():
            check_string(entry.get(field), f"{path}.{field}", violations)
        check_string_map(entry.get("headers"), f"{path}.headers", violations)
        check_string_map(entry.get("env"), f"{path}.env", violations)

        timeout = entry.get("timeout")
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            violations.append(Violation(f"{path}.timeout", "must be a positive number"))
        return violations

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        transport = infer_gemini_transport(entry)
        if transport != expected.transport:
            return [
                Violation(path, f"inferred transport '{transport}', expected '{expected.transport}'")
            ]
        if transport in URL_FIELDS:
            field = URL_FIELDS[transport]
            if entry.get(field) != expected.mcp_server_url:
                return [Violation(f"{path}.{field}", "does not match the requested URL")]
            return []
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations, required=True)
        return violations
