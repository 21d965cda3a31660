# Provider registry and fan-out orchestration for alph
# ABOUTME: Runs detect/configure/remove across providers concurrently and aggregates the results
# ABOUTME: Per-provider failures are recorded, never raised; the batch always completes
import asyncio
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from alph.errors import NotFoundError
from alph.models import (
    AgentConfig,
    AgentProvider,
    ProviderConfigurationResult,
    ProviderDetectionResult,
    ProviderRemovalResult,
    RemovalConfig,
)
from alph.providers import get_builtin_providers

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ABOUTME: Default per-provider budgets in seconds
DEFAULT_DETECTION_TIMEOUT = 5.0
DEFAULT_CONFIGURATION_TIMEOUT = 10.0


@dataclass
class DetectionSummary:
    total: int
    detected: int
    failed: int
    detected_providers: list[str] = field(default_factory=list)
    failed_providers: list[str] = field(default_factory=list)


@dataclass
class ConfigurationSummary:
    """Report from a configure fan-out.

    ABOUTME: Tracks success/failure across providers plus any backups made
    """
    total: int
    successful: int
    failed: int
    successful_providers: list[str] = field(default_factory=list)
    failed_providers: list[tuple[str, str | None]] = field(default_factory=list)
    backup_paths: dict[str, Path] = field(default_factory=dict)


@dataclass
class ValidationReport:
    provider: AgentProvider
    valid: bool
    error: str | None = None


@dataclass
class RollbackReport:
    provider: AgentProvider
    success: bool
    backup_path: Path | None = None
    error: str | None = None


@dataclass
class ServerListing:
    provider: AgentProvider
    servers: list[str]
    error: str | None = None


class AgentRegistry:
    """Registry of agent providers keyed by name.

    ABOUTME: Duplicate names are rejected at registration
    ABOUTME: No cross-provider transaction: each file is independently safe
    """

    def __init__(
        self,
        providers: Iterable[AgentProvider] | None = None,
        include_builtin: bool = True,
        parallel: bool = True,
        detection_timeout: float = DEFAULT_DETECTION_TIMEOUT,
        configuration_timeout: float = DEFAULT_CONFIGURATION_TIMEOUT,
    ) -> None:
        self._providers: dict[str, AgentProvider] = {}
        self.parallel = parallel
        self.detection_timeout = detection_timeout
        self.configuration_timeout = configuration_timeout

        if include_builtin:
            for provider in get_builtin_providers():
                self.register_provider(provider)
        for provider in providers or []:
            self.register_provider(provider)

    # --- registration -------------------------------------------------------

    def register_provider(self, provider: AgentProvider) -> None:
        if provider.name in self._providers:
            raise ValueError(f"Provider with name '{provider.name}' is already registered")
        self._providers[provider.name] = provider

    def unregister_provider(self, name: str) -> bool:
        return self._providers.pop(name, None) is not None

    def get_provider(self, name: str) -> AgentProvider | None:
        return self._providers.get(name)

    @property
    def providers(self) -> list[AgentProvider]:
        return list(self._providers.values())

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    def clear(self) -> None:
        self._providers.clear()

    def _filter(self, names: Iterable[str] | None) -> list[AgentProvider]:
        wanted = list(names or [])
        if not wanted:
            return self.providers
        return [p for p in self.providers if p.name in wanted]

    # --- fan-out helpers ------------------------------------------------------

    async def _gather(self, coroutines: list[Awaitable[T]]) -> list[T]:
        if self.parallel:
            return list(await asyncio.gather(*coroutines))
        return [await coroutine for coroutine in coroutines]

    # --- detection ------------------------------------------------------------

    async def _detect_one(
        self, provider: AgentProvider, config_dir: Path | None
    ) -> ProviderDetectionResult:
        try:
            path = await asyncio.wait_for(
                provider.detect(config_dir), timeout=self.detection_timeout
            )
        except asyncio.TimeoutError:
            return ProviderDetectionResult(provider, False, error="Detection timeout")
        except Exception as e:
            logger.debug(f"{provider.name}: detection failed: {e}")
            return ProviderDetectionResult(provider, False, error=str(e))
        return ProviderDetectionResult(provider, path is not None, config_path=path)

    async def detect_available_agents(
        self, provider_filter: Iterable[str] | None = None, config_dir: Path | None = None
    ) -> list[ProviderDetectionResult]:
        """Run detect() across all (or the named) providers.

        ABOUTME: One result per provider, in registration order
        ABOUTME: An unreadable config is reported as detected=False with its error
        """
        providers = self._filter(provider_filter)
        return await self._gather([self._detect_one(p, config_dir) for p in providers])

    @staticmethod
    def get_detected_providers(results: list[ProviderDetectionResult]) -> list[AgentProvider]:
        return [r.provider for r in results if r.detected]

    @staticmethod
    def get_failed_detections(
        results: list[ProviderDetectionResult],
    ) -> list[ProviderDetectionResult]:
        return [r for r in results if not r.detected]

    @staticmethod
    def summarize_detection_results(results: list[ProviderDetectionResult]) -> DetectionSummary:
        detected = [r.provider.name for r in results if r.detected]
        failed = [r.provider.name for r in results if not r.detected]
        return DetectionSummary(
            total=len(results),
            detected=len(detected),
            failed=len(failed),
            detected_providers=detected,
            failed_providers=failed,
        )

    async def _resolve(
        self, providers: list[AgentProvider] | None, config_dir: Path | None = None
    ) -> list[AgentProvider]:
        if providers is not None:
            return providers
        results = await self.detect_available_agents(config_dir=config_dir)
        return self.get_detected_providers(results)

    # --- configuration --------------------------------------------------------

    async def _configure_one(
        self, provider: AgentProvider, config: AgentConfig, backup: bool
    ) -> ProviderConfigurationResult:
        try:
            backup_path = await asyncio.wait_for(
                provider.configure(config, backup), timeout=self.configuration_timeout
            )
        except asyncio.TimeoutError:
            return ProviderConfigurationResult(provider, False, error="Configuration timeout")
        except Exception as e:
            logger.debug(f"{provider.name}: configure failed: {e}")
            return ProviderConfigurationResult(provider, False, error=str(e), exception=e)
        return ProviderConfigurationResult(provider, True, backup_path=backup_path)

    async def _rollback_successful(self, providers: list[AgentProvider]) -> None:
        """Best-effort rollback of providers that already succeeded; logs each failure."""

        async def rollback_one(provider: AgentProvider) -> None:
            try:
                await provider.rollback()
            except Exception as e:
                logger.warning(f"Failed to rollback {provider.name}: {e}")

        await self._gather([rollback_one(p) for p in providers])

    async def configure_all_detected_agents(
        self,
        config: AgentConfig,
        providers: list[AgentProvider] | None = None,
        rollback_on_any_failure: bool = False,
        backup: bool = True,
    ) -> list[ProviderConfigurationResult]:
        """Configure ``config`` on every detected (or given) provider.

        ABOUTME: With rollback_on_any_failure, successful providers are rolled back one by one
        ABOUTME: if any provider failed; there is no all-or-nothing guarantee across files

        Args:
            config: Server entry to write
            providers: Providers to use instead of running detection
            rollback_on_any_failure: Undo successful providers when one fails
            backup: Ask each provider to back up before editing

        Returns:
            One ProviderConfigurationResult per provider
        """
        targets = await self._resolve(providers, config.config_dir)
        if not targets:
            return []

        results = await self._gather([self._configure_one(p, config, backup) for p in targets])

        if rollback_on_any_failure and any(not r.success for r in results):
            await self._rollback_successful([r.provider for r in results if r.success])
        return results

    async def configure_specific_providers(
        self, provider_names: Iterable[str], config: AgentConfig, backup: bool = True
    ) -> list[ProviderConfigurationResult]:
        providers = [p for p in (self.get_provider(n) for n in provider_names) if p is not None]
        if not providers:
            return []
        return await self.configure_all_detected_agents(config, providers, backup=backup)

    @staticmethod
    def summarize_configuration_results(
        results: list[ProviderConfigurationResult],
    ) -> ConfigurationSummary:
        summary = ConfigurationSummary(total=len(results), successful=0, failed=0)
        for result in results:
            if result.success:
                summary.successful += 1
                summary.successful_providers.append(result.provider.name)
            else:
                summary.failed += 1
                summary.failed_providers.append((result.provider.name, result.error))
            if result.backup_path is not None:
                summary.backup_paths[result.provider.name] = result.backup_path
        return summary

    # --- removal --------------------------------------------------------------

    async def _remove_one(
        self, provider: AgentProvider, removal: RemovalConfig
    ) -> ProviderRemovalResult:
        server_id = removal.mcp_server_id
        try:
            if not await provider.has_mcp_server(server_id, removal.config_dir):
                return ProviderRemovalResult(provider, True, server_id, found=False)

            backup_path = await asyncio.wait_for(
                provider.remove(removal, removal.backup), timeout=self.configuration_timeout
            )
        except asyncio.TimeoutError:
            return ProviderRemovalResult(provider, False, server_id, error="Removal timeout")
        except Exception as e:
            logger.debug(f"{provider.name}: remove failed: {e}")
            return ProviderRemovalResult(
                provider, False, server_id,
                found=not isinstance(e, NotFoundError), error=str(e), exception=e,
            )
        return ProviderRemovalResult(provider, True, server_id, backup_path=backup_path)

    async def remove_from_all_detected_agents(
        self,
        removal: RemovalConfig,
        providers: list[AgentProvider] | None = None,
        rollback_on_any_failure: bool = False,
    ) -> list[ProviderRemovalResult]:
        """Remove one server id from every detected (or given) provider.

        ABOUTME: A provider without the server reports success with found=False
        ABOUTME: Backups follow removal.backup (default True)
        """
        targets = await self._resolve(providers, removal.config_dir)
        if not targets:
            return []

        results = await self._gather([self._remove_one(p, removal) for p in targets])

        if rollback_on_any_failure and any(not r.success and r.found for r in results):
            await self._rollback_successful(
                [r.provider for r in results if r.success and r.found]
            )
        return results

    async def remove_from_specific_providers(
        self, provider_names: Iterable[str], removal: RemovalConfig
    ) -> list[ProviderRemovalResult]:
        providers = [p for p in (self.get_provider(n) for n in provider_names) if p is not None]
        if not providers:
            return []
        return await self.remove_from_all_detected_agents(removal, providers)

    # --- validation, rollback, listing ------------------------------------------

    async def validate_all_detected_agents(
        self, providers: list[AgentProvider] | None = None
    ) -> list[ValidationReport]:
        async def validate_one(provider: AgentProvider) -> ValidationReport:
            try:
                return ValidationReport(provider, await provider.validate())
            except Exception as e:
                return ValidationReport(provider, False, error=str(e))

        targets = await self._resolve(providers)
        return await self._gather([validate_one(p) for p in targets])

    async def rollback_all_detected_agents(
        self, providers: list[AgentProvider] | None = None
    ) -> list[RollbackReport]:
        async def rollback_one(provider: AgentProvider) -> RollbackReport:
            try:
                return RollbackReport(provider, True, backup_path=await provider.rollback())
            except Exception as e:
                return RollbackReport(provider, False, error=str(e))

        targets = await self._resolve(providers)
        return await self._gather([rollback_one(p) for p in targets])

    async def list_all_mcp_servers(
        self, providers: list[AgentProvider] | None = None, config_dir: Path | None = None
    ) -> list[ServerListing]:
        async def list_one(provider: AgentProvider) -> ServerListing:
            try:
                return ServerListing(provider, await provider.list_mcp_servers(config_dir))
            except Exception as e:
                return ServerListing(provider, [], error=str(e))

        targets = await self._resolve(providers, config_dir)
        return await self._gather([list_one(p) for p in targets])

    async def find_mcp_server_in_agents(
        self,
        server_id: str,
        providers: list[AgentProvider] | None = None,
        config_dir: Path | None = None,
    ) -> list[AgentProvider]:
        """Providers whose config contains ``server_id``; lookup errors count as absent."""

        async def check(provider: AgentProvider) -> AgentProvider | None:
            try:
                found = await provider.has_mcp_server(server_id, config_dir)
            except Exception as e:
                logger.debug(f"{provider.name}: lookup of '{server_id}' failed: {e}")
                return None
            return provider if found else None

        targets = await self._resolve(providers, config_dir)
        return [p for p in await self._gather([check(p) for p in targets]) if p is not None]


def create_registry_with_providers(provider_names: Iterable[str]) -> AgentRegistry:
    """Registry holding only the named built-in providers (unknown names are ignored)."""
    wanted = set(provider_names)
    return AgentRegistry(
        providers=[p for p in get_builtin_providers() if p.name in wanted],
        include_builtin=False,
    )
