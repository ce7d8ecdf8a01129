"""Provider registry: one lazily created, process-lifetime instance per provider kind."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import httpx

from newsdesk.core.config import Settings

from .providers import BaseProvider, ProviderKind, build_provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Holds the shared provider instances and resolves the active one.

    The active provider is whatever ``Settings.ai_provider`` names; it is
    never inferred from availability.  ``providers`` pre-seeds instances
    (tests pass fakes here).
    """

    def __init__(
        self,
        settings: Settings,
        *,
        providers: Mapping[ProviderKind, BaseProvider] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._instances: dict[ProviderKind, BaseProvider] = dict(providers or {})

    @property
    def kinds(self) -> tuple[ProviderKind, ...]:
        return tuple(ProviderKind)

    @property
    def active_kind(self) -> ProviderKind:
        return ProviderKind(self._settings.ai_provider)

    def get(self, kind: ProviderKind | str) -> BaseProvider:
        kind = ProviderKind(kind)
        instance = self._instances.get(kind)
        if instance is None:
            # No await between lookup and insert: first call wins.
            instance = build_provider(kind, self._settings, transport=self._transport)
            self._instances[kind] = instance
        return instance

    def get_active(self) -> BaseProvider:
        return self.get(self.active_kind)

    async def initialize_all(self) -> None:
        """Initialize every provider concurrently; failures are logged per provider."""

        async def _init(kind: ProviderKind) -> None:
            try:
                await self.get(kind).initialize()
            except Exception as exc:
                logger.warning("%s provider initialization failed: %s", kind.value, exc)

        await asyncio.gather(*(_init(kind) for kind in self.kinds))

    def status(self) -> dict[ProviderKind, bool]:
        return {kind: self.get(kind).is_available() for kind in self.kinds}
