# Codex CLI provider
import sys
from pathlib import Path
from typing import Any

from alph.errors import ValidationFailedError
from alph.models import AgentConfig
from alph.providers.base import ConfigFileProvider
from alph.utils.paths import home
from alph.utils.validation import (
    Violation,
    check_string,
    check_string_list,
    check_string_map,
)

# ABOUTME: Package runners shipped as .cmd shims on Windows
WINDOWS_CMD_SHIMS = {"npx", "yarn", "pnpm"}

# ABOUTME: Minimum startup timeout for package-runner launches (first run downloads)
PACKAGE_RUNNER_TIMEOUT_MS = 60000


def normalize_command(command: str, platform: str | None = None) -> str:
    """Append .cmd to npx/yarn/pnpm on Windows, where no shell resolves them."""
    command = command.strip()
    if (platform or sys.platform) == "win32" and command.lower() in WINDOWS_CMD_SHIMS:
        return f"{command.lower()}.cmd"
    return command


def is_package_runner(command: str, args: list[str]) -> bool:
    cmd = command.lower()
    first_arg = args[0].lower() if args else ""
    if cmd.endswith("npx") or cmd.endswith("npx.cmd"):
        return True
    runners = ("yarn", "yarn.cmd", "pnpm", "pnpm.cmd")
    return any(cmd.endswith(r) for r in runners) and first_arg == "dlx"


class CodexProvider(ConfigFileProvider):
    """Provider for Codex CLI (~/.codex/config.toml).

    ABOUTME: Uses snake_case mcp_servers key (not mcpServers)
    ABOUTME: TOML read with tomli, written with tomli_w, through the same safe-edit lifecycle
    ABOUTME: Only stdio servers are supported
    """

    name = "Codex CLI"
    agent = "codex"
    servers_key = "mcp_servers"
    codec = "toml"

    def default_config_path(self) -> Path:
        return home() / ".codex" / "config.toml"

    def render(self, config: AgentConfig) -> dict[str, Any]:
        if config.transport != "stdio":
            raise ValidationFailedError(
                "Codex CLI only supports local MCP servers via stdio; "
                f"'{config.transport}' endpoints cannot be written to config.toml",
                violations=[Violation("transport", "Codex CLI requires stdio")],
            )
        if not config.command or not config.command.strip():
            raise ValidationFailedError(
                "stdio transport for Codex requires a command",
                violations=[Violation("command", "is required")],
            )

        command = normalize_command(config.command)
        args = list(config.args or [])
        entry: dict[str, Any] = {"command": command}
        if args:
            entry["args"] = args
        if config.env:
            entry["env"] = dict(config.env)
        if config.timeout and config.timeout > 0:
            entry["startup_timeout_ms"] = config.timeout

        if is_package_runner(command, args) and entry.get("startup_timeout_ms", 0) < PACKAGE_RUNNER_TIMEOUT_MS:
            entry["startup_timeout_ms"] = PACKAGE_RUNNER_TIMEOUT_MS
        return entry

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        check_string(entry.get("command"), f"{path}.command", violations)
        check_string_list(entry.get("args"), f"{path}.args", violations)
        check_string_map(entry.get("env"), f"{path}.env", violations)
        timeout = entry.get("startup_timeout_ms")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
            violations.append(Violation(f"{path}.startup_timeout_ms", "must be a number"))
        return violations
