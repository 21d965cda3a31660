# Warp provider
import asyncio
import logging
import secrets
import shutil
import tempfile
from pathlib import Path

from alph.config import load_settings
from alph.errors import IOTimeoutError, NotFoundError, WriteFailedError
from alph.models import AgentConfig, RemovalConfig
from alph.renderer import RenderInput, render_mcp_server
from alph.utils import file_ops

logger = logging.getLogger(__name__)

# ABOUTME: Binary names probed in order
WARP_BINARIES = ("warp", "warp-terminal")


class WarpProvider:
    """Provider for Warp, which manages MCP servers through its own CLI.

    ABOUTME: No config file is edited; configure/remove shell out to `warp mcp ...`
    ABOUTME: Warp exposes no listing command, so list_mcp_servers() is always []
    """

    name = "Warp"
    agent = "warp"

    def __init__(self) -> None:
        self._binary: str | None = None

    def _find_binary(self) -> str | None:
        for candidate in WARP_BINARIES:
            found = shutil.which(candidate)
            if found:
                return found
        return None

    async def _run_cli(self, *args: str) -> None:
        binary = self._binary or self._find_binary()
        if binary is None:
            raise NotFoundError("Warp CLI not found (tried: warp, warp-terminal)")

        settings = load_settings()
        try:
            process = await asyncio.create_subprocess_exec(
                binary, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise NotFoundError(f"Warp CLI not found: {binary}", binary) from e
        except OSError as e:
            raise WriteFailedError(
                f"Unable to run Warp CLI {binary}: {e.strerror or e}", binary
            ) from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=settings.io_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise IOTimeoutError(
                f"Timeout after {settings.io_timeout_ms}ms: {Path(binary).name} {' '.join(args)}"
            ) from e

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise WriteFailedError(
                f"Warp CLI exited with status {process.returncode}: {detail}"
            )

    async def detect(self, config_dir: Path | None = None) -> Path | None:
        """Path of the Warp CLI binary, or None when Warp is not installed."""
        self._binary = self._find_binary()
        return Path(self._binary) if self._binary else None

    async def configure(self, config: AgentConfig, backup: bool = True) -> Path | None:
        """Register the rendered server via `warp mcp add-server --config <file>`.

        ABOUTME: The rendered JSON goes through a temp file that is always deleted
        """
        rendered = render_mcp_server(RenderInput.from_agent_config(self.agent, config))
        temp_path = Path(tempfile.gettempdir()) / f"alph-warp-mcp-{secrets.token_hex(8)}.json"
        try:
            await file_ops.write_json(temp_path, rendered)
            try:
                await self._run_cli("mcp", "add-server", "--config", str(temp_path))
            except WriteFailedError as e:
                raise WriteFailedError(
                    f"Failed to register MCP server with Warp CLI: {e}"
                ) from e
        finally:
            await file_ops.delete_file(temp_path)
        logger.debug(f"Warp: registered '{config.mcp_server_id}'")
        return None

    async def remove(self, removal: RemovalConfig, backup: bool = True) -> Path | None:
        try:
            await self._run_cli("mcp", "remove-server", "--name", removal.mcp_server_id)
        except WriteFailedError as e:
            raise WriteFailedError(
                "Failed to remove MCP server from Warp CLI. "
                f"You can remove it from Warp > MCP Servers UI. Details: {e}"
            ) from e
        return None

    async def list_mcp_servers(self, config_dir: Path | None = None) -> list[str]:
        return []

    async def has_mcp_server(self, server_id: str, config_dir: Path | None = None) -> bool:
        return False

    async def validate(self) -> bool:
        return self._find_binary() is not None

    async def rollback(self) -> Path | None:
        return None
