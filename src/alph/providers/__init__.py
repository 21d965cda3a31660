# Agent provider registry
from alph.models import AgentProvider
from alph.providers.base import ConfigFileProvider, ConfigLocation
from alph.providers.claude import ClaudeProvider
from alph.providers.codex import CodexProvider
from alph.providers.cursor import CursorProvider
from alph.providers.gemini import GeminiProvider
from alph.providers.generic import GenericProvider
from alph.providers.kiro import KiroProvider
from alph.providers.warp import WarpProvider
from alph.providers.windsurf import WindsurfProvider

# Built-in providers, in detection/report order
BUILTIN_PROVIDERS: list[type] = [
    GeminiProvider,
    CursorProvider,
    ClaudeProvider,
    WindsurfProvider,
    KiroProvider,
    WarpProvider,
    CodexProvider,
]

__all__ = [
    "AgentProvider",
    "ConfigFileProvider",
    "ConfigLocation",
    "ClaudeProvider",
    "CodexProvider",
    "CursorProvider",
    "GeminiProvider",
    "GenericProvider",
    "KiroProvider",
    "WarpProvider",
    "WindsurfProvider",
    "BUILTIN_PROVIDERS",
    "get_builtin_providers",
]


def get_builtin_providers() -> list[AgentProvider]:
    """Instantiate and return all built-in providers.

    ABOUTME: Creates fresh instances, so no backup state is shared between callers
    """
    return [provider_cls() for provider_cls in BUILTIN_PROVIDERS]
