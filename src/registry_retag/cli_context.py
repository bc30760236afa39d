"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings, the
registry client and the tagger, avoiding global state and enabling proper
dependency injection.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional

import httpx

from .settings import Settings, create_settings_from_env
from .storage.registry_http import RegistryHTTP
from .tagger import ImageTagger, RetryPolicy


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies (settings, registry client,
    tagger) that are initialized once per CLI command execution.
    ``client`` lets tests hand in an httpx client with a mock transport.
    """
    settings: Settings
    client: Optional[httpx.Client] = None
    _registry: Optional[RegistryHTTP] = None

    @classmethod
    def from_env(cls, **overrides) -> CLIContext:
        """
        Create CLI context from environment variables.

        Args:
            **overrides: Settings fields to replace (None values are ignored)

        Returns:
            CLIContext with settings loaded from environment
        """
        settings = create_settings_from_env()
        changes = {k: v for k, v in overrides.items() if v is not None}
        if changes:
            settings = dataclasses.replace(settings, **changes)
        return cls(settings=settings)

    @property
    def registry(self) -> RegistryHTTP:
        """Get or create the registry client (lazy initialization)."""
        if self._registry is None:
            self._registry = RegistryHTTP.from_settings(self.settings, client=self.client)
        return self._registry

    @property
    def tagger(self) -> ImageTagger:
        return ImageTagger(self.registry, RetryPolicy.from_settings(self.settings))

    def close(self) -> None:
        if self._registry is not None:
            self._registry.close()
