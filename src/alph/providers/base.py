# Shared machinery for file-backed agent providers
# ABOUTME: Detection, scope resolution, configure/remove through safe_edit, listing, validate and rollback
# ABOUTME: Subclasses supply paths, the agent key and their partial-schema rules
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from alph.errors import AlphError, NotFoundError, RollbackFailedError, ValidationFailedError
from alph.models import AgentConfig, BackupInfo, RemovalConfig
from alph.renderer import RenderInput, render_entry
from alph.utils import backup, file_ops
from alph.utils.file_ops import Codec
from alph.utils.paths import (
    absolute_dir,
    detect_config_file,
    env_override_path,
    project_roots,
)
from alph.utils.safe_edit import Modifier, SafeEditResult, Validator, safe_edit
from alph.utils.validation import (
    Violation,
    check_object,
    has_errors,
    validate_agent_config,
)

logger = logging.getLogger(__name__)

Keys = tuple[str, ...]
Scope = Literal["global", "project"]


@dataclass(frozen=True)
class ConfigLocation:
    """One servers map inside one config file.

    ABOUTME: keys walks from the document root to the servers map
    ABOUTME: e.g. ("mcpServers",) or ("projects", "/abs/dir", "mcpServers")
    """
    path: Path
    keys: Keys
    scope: Scope

    @property
    def label(self) -> str:
        return ".".join(self.keys)


def get_in(document: dict[str, Any], keys: Keys) -> Any:
    node: Any = document
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def set_in(document: dict[str, Any], keys: Keys, value: Any) -> dict[str, Any]:
    """Copy-on-write assignment; every dict along ``keys`` is a fresh object."""
    head, *rest = keys
    updated = dict(document)
    if rest:
        child = document.get(head)
        updated[head] = set_in(child if isinstance(child, dict) else {}, tuple(rest), value)
    else:
        updated[head] = value
    return updated


def with_server(document: dict[str, Any], keys: Keys, server_id: str, entry: dict[str, Any]) -> dict[str, Any]:
    servers = get_in(document, keys)
    servers = dict(servers) if isinstance(servers, dict) else {}
    servers[server_id] = entry
    return set_in(document, keys, servers)


def without_server(document: dict[str, Any], keys: Keys, server_id: str) -> dict[str, Any]:
    servers = get_in(document, keys)
    if not isinstance(servers, dict) or server_id not in servers:
        return document
    remaining = {k: v for k, v in servers.items() if k != server_id}
    return set_in(document, keys, remaining)


class ConfigFileProvider:
    """Base class for providers whose configuration is a JSON (or TOML) file.

    ABOUTME: Implements the AgentProvider protocol on top of safe_edit
    ABOUTME: The last backup is an instance field; it lives exactly as long as the provider
    """

    name: str = ""
    agent: str = ""
    servers_key: str = "mcpServers"
    codec: Codec = "json"
    # ABOUTME: Whether configure() writes to the path found by detect()
    writes_detected_path: bool = True

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize provider with optional custom config path.

        ABOUTME: An explicit path disables detection-based path selection
        """
        self._explicit_path = Path(config_path) if config_path else None
        self._detected_path: Path | None = None
        self._last_backup: BackupInfo | None = None
        self.last_violations: list[Violation] = []

    # --- paths ---------------------------------------------------------------

    def default_config_path(self) -> Path:
        raise NotImplementedError

    def legacy_config_paths(self) -> list[Path]:
        return []

    def project_config_path(self, project_dir: Path) -> Path | None:
        """Project-scoped config file, or None when the agent has no project files."""
        return None

    def candidate_paths(self, config_dir: Path | None = None) -> list[Path]:
        """Detection order: explicit, env override, project, default, legacy."""
        candidates: list[Path] = []
        if self._explicit_path is not None:
            candidates.append(self._explicit_path)
        override = env_override_path(self.agent)
        if override is not None:
            candidates.append(override)
        if config_dir is not None:
            project_path = self.project_config_path(absolute_dir(config_dir))
            if project_path is not None:
                candidates.append(project_path)
        candidates.append(self.default_config_path())
        candidates.extend(self.legacy_config_paths())
        return list(dict.fromkeys(candidates))

    @property
    def config_path(self) -> Path:
        """Global config file that configure() and remove() edit."""
        if self._explicit_path is not None:
            return self._explicit_path
        override = env_override_path(self.agent)
        if override is not None:
            return override
        if self.writes_detected_path and self._detected_path is not None:
            return self._detected_path
        return self.default_config_path()

    @property
    def last_backup(self) -> BackupInfo | None:
        return self._last_backup

    # --- scopes --------------------------------------------------------------

    def global_locations(self) -> list[ConfigLocation]:
        return [ConfigLocation(self.config_path, (self.servers_key,), "global")]

    def project_locations(self, project_dir: Path) -> list[ConfigLocation]:
        path = self.project_config_path(project_dir)
        if path is None:
            return []
        return [ConfigLocation(path, (self.servers_key,), "project")]

    def configure_locations(self, config: AgentConfig) -> list[ConfigLocation]:
        """Where configure() injects the entry; all locations share one file."""
        if config.config_dir is not None:
            project = self.project_locations(absolute_dir(config.config_dir))
            if project:
                return project
        return self.global_locations()

    async def removal_locations(self, removal: RemovalConfig) -> list[ConfigLocation]:
        """Locations searched for ``removal.scope``; project roots are only resolved when needed."""
        if removal.scope == "global":
            return self.global_locations()
        projects = [
            location
            for root in await project_roots(removal.config_dir)
            for location in self.project_locations(root)
        ]
        if removal.scope == "project":
            return projects
        return self.global_locations() + projects

    # --- rendering and schema ------------------------------------------------

    def render(self, config: AgentConfig) -> dict[str, Any]:
        return render_entry(RenderInput.from_agent_config(self.agent, config))

    def server_maps(self, document: dict[str, Any]) -> list[tuple[str, Any]]:
        """(label, node) for every servers map the schema check should visit."""
        return [(self.servers_key, document.get(self.servers_key))]

    def entry_violations(self, path: str, entry: dict[str, Any]) -> list[Violation]:
        """Type checks on the fields an entry carries; applied to every entry.

        ABOUTME: Only fields that are present are checked; nothing is required
        """
        return []

    def expectation_violations(
        self, path: str, entry: dict[str, Any], expected: AgentConfig
    ) -> list[Violation]:
        """Presence and transport rules for the entry this edit wrote."""
        return []

    def schema_violations(
        self,
        document: dict[str, Any],
        expected: AgentConfig | None = None,
        targets: Iterable[ConfigLocation] = (),
    ) -> list[Violation]:
        """Partial-schema check of a whole document.

        ABOUTME: Every servers map must be an object of objects
        ABOUTME: With ``expected``, each target must hold exactly the rendered entry
        """
        violations: list[Violation] = []

        for label, node in self.server_maps(document):
            if not check_object(node, label, violations):
                continue
            for server_id, entry in node.items():
                entry_path = f"{label}.{server_id}"
                if check_object(entry, entry_path, violations, required=True):
                    violations.extend(self.entry_violations(entry_path, entry))

        if expected is not None:
            rendered = self.render(expected)
            for location in targets:
                entry_path = f"{location.label}.{expected.mcp_server_id}"
                entry = get_in(document, location.keys + (expected.mcp_server_id,))
                if not isinstance(entry, dict):
                    violations.append(Violation(entry_path, "server entry is missing"))
                    continue
                if entry != rendered:
                    violations.append(
                        Violation(entry_path, "does not match the rendered entry")
                    )
                violations.extend(self.expectation_violations(entry_path, entry, expected))

        return violations

    def _schema_validator(
        self, expected: AgentConfig | None = None, targets: Iterable[ConfigLocation] = ()
    ) -> Validator:
        targets = list(targets)

        def validator(document: dict[str, Any]) -> list[Violation]:
            self.last_violations = self.schema_violations(document, expected, targets)
            return self.last_violations

        return validator

    # --- I/O helpers ---------------------------------------------------------

    async def _read_optional(self, path: Path) -> dict[str, Any]:
        """Parsed document, or {} when the file does not exist."""
        if not await file_ops.file_exists(path):
            return {}
        return await file_ops.read_document(path, self.codec)

    def _finish(self, result: SafeEditResult) -> Path | None:
        if result.backup_info is not None:
            self._last_backup = result.backup_info
        result.raise_for_error()
        return result.backup_path

    # --- AgentProvider contract ----------------------------------------------

    async def detect(self, config_dir: Path | None = None) -> Path | None:
        """Probe candidate paths in order.

        ABOUTME: Returns the first existing, readable and parseable candidate, else None
        ABOUTME: Raises PermissionDeniedError when a candidate exists but is unreadable
        """
        path = await detect_config_file(self.candidate_paths(config_dir), self.codec)
        project_path = (
            self.project_config_path(absolute_dir(config_dir)) if config_dir is not None else None
        )
        if path is not None and path != project_path:
            self._detected_path = path
        logger.debug(f"{self.name}: detect -> {path}")
        return path

    async def configure(self, config: AgentConfig, backup: bool = True) -> Path | None:
        """Render and inject one server entry.

        ABOUTME: All other document content is preserved verbatim
        ABOUTME: Raises the underlying AlphError when the safe edit fails

        Returns:
            Backup path if a backup was made, else None
        """
        problems = validate_agent_config(config)
        if has_errors(problems):
            raise ValidationFailedError(
                f"Invalid MCP server configuration for {self.name}: "
                + "; ".join(str(p) for p in problems if p.severity == "error"),
                violations=problems,
            )

        locations = self.configure_locations(config)
        path = locations[0].path
        entry = self.render(config)

        def modifier(document: dict[str, Any]) -> dict[str, Any]:
            for location in locations:
                document = with_server(document, location.keys, config.mcp_server_id, dict(entry))
            return document

        await file_ops.ensure_directory(path.parent)
        result = await safe_edit(
            path,
            modifier,
            validator=self._schema_validator(config, locations),
            create_backup=backup,
            codec=self.codec,
        )
        logger.debug(f"{self.name}: configured '{config.mcp_server_id}' in {path}")
        return self._finish(result)

    async def remove(self, removal: RemovalConfig, backup: bool = True) -> Path | None:
        """Remove one server id from the scopes selected by ``removal.scope``.

        ABOUTME: "auto" removes from the first location holding the id (global first)
        ABOUTME: "global", "project" and "all" remove from every matching location in scope
        ABOUTME: Raises NotFoundError without touching any file when nothing matches
        """
        server_id = removal.mcp_server_id
        matches: list[ConfigLocation] = []

        for location in await self.removal_locations(removal):
            servers = get_in(await self._read_optional(location.path), location.keys)
            if isinstance(servers, dict) and server_id in servers:
                matches.append(location)
                if removal.scope == "auto":
                    break

        if not matches:
            raise NotFoundError(
                f"MCP server '{server_id}' not found in {self.name} configuration",
                self.config_path,
            )

        by_file: dict[Path, list[ConfigLocation]] = {}
        for location in matches:
            by_file.setdefault(location.path, []).append(location)

        first_backup: Path | None = None
        for path, locations in by_file.items():
            result = await safe_edit(
                path,
                self._removal_modifier(server_id, locations),
                validator=self._removal_validator(server_id, locations),
                create_backup=backup,
                codec=self.codec,
            )
            backup_path = self._finish(result)
            first_backup = first_backup or backup_path
            logger.debug(f"{self.name}: removed '{server_id}' from {path}")

        return first_backup

    @staticmethod
    def _removal_modifier(server_id: str, locations: list[ConfigLocation]) -> Modifier:
        def modifier(document: dict[str, Any]) -> dict[str, Any]:
            present = [
                loc for loc in locations
                if isinstance(get_in(document, loc.keys), dict)
                and server_id in get_in(document, loc.keys)
            ]
            if not present:
                raise NotFoundError(f"MCP server '{server_id}' not found", locations[0].path)
            for location in present:
                document = without_server(document, location.keys, server_id)
            return document

        return modifier

    def _removal_validator(self, server_id: str, locations: list[ConfigLocation]) -> Validator:
        def validator(document: dict[str, Any]) -> list[Violation]:
            violations: list[Violation] = []
            for location in locations:
                servers = get_in(document, location.keys)
                if not isinstance(servers, dict):
                    violations.append(Violation(location.label, "must be an object"))
                elif server_id in servers:
                    violations.append(
                        Violation(f"{location.label}.{server_id}", "entry was not removed")
                    )
            self.last_violations = violations
            return violations

        return validator

    async def list_mcp_servers(self, config_dir: Path | None = None) -> list[str]:
        """Server ids in the project scope for ``config_dir`` if it exists, else global.

        ABOUTME: Missing file or section yields []
        """
        if config_dir is not None:
            root = absolute_dir(config_dir)
            for location in self.project_locations(root):
                servers = get_in(await self._read_optional(location.path), location.keys)
                if isinstance(servers, dict):
                    return list(servers)

        for location in self.global_locations():
            servers = get_in(await self._read_optional(location.path), location.keys)
            if isinstance(servers, dict):
                return list(servers)
        return []

    async def has_mcp_server(self, server_id: str, config_dir: Path | None = None) -> bool:
        return server_id in await self.list_mcp_servers(config_dir)

    async def _validate_file(self, path: Path) -> bool:
        try:
            if not await file_ops.file_exists(path):
                self.last_violations = [Violation("", f"Configuration file not found: {path}")]
                return False
            document = await file_ops.read_document(path, self.codec)
            self.last_violations = self.schema_violations(document)
        except AlphError as e:
            logger.debug(f"{self.name}: validation of {path} failed: {e}")
            self.last_violations = [Violation("", str(e))]
            return False
        return not has_errors(self.last_violations)

    async def validate(self) -> bool:
        """Re-read the config and run the partial-schema check; never raises."""
        try:
            return await self._validate_file(self.config_path)
        except Exception as e:
            logger.debug(f"{self.name}: validate raised {e}")
            return False

    async def rollback(self) -> Path | None:
        """Restore the most recent backup of this provider's config.

        ABOUTME: Prefers the in-memory last backup, then the newest on-disk backup
        ABOUTME: Raises RollbackFailedError if the restored file fails validation

        Returns:
            Path of the backup that was restored, or None if there was none
        """
        backup_info = self._last_backup or await backup.latest_backup(self.config_path)
        if backup_info is None:
            logger.debug(f"{self.name}: no backup available for rollback")
            return None

        await backup.restore_backup(backup_info)

        if not await self._validate_file(backup_info.original_path):
            raise RollbackFailedError(
                f"Rollback verification failed for {backup_info.original_path}",
                backup_info.original_path,
            )

        logger.debug(f"{self.name}: rolled back {backup_info.original_path}")
        return backup_info.backup_path
