"""Provider factory: maps a provider kind to its implementation."""

from __future__ import annotations

import enum
import logging

import httpx

from newsdesk.core.config import Settings

from .base import BaseProvider, GenerateOptions, ProviderResult
from .base44 import Base44Provider
from .gemini import GeminiProvider

logger = logging.getLogger(__name__)

__all__ = [
    "Base44Provider",
    "BaseProvider",
    "GeminiProvider",
    "GenerateOptions",
    "ProviderKind",
    "ProviderResult",
    "build_provider",
]


class ProviderKind(str, enum.Enum):
    GEMINI = "gemini"
    BASE44 = "base44"


_PROVIDERS: dict[ProviderKind, type[BaseProvider]] = {
    ProviderKind.GEMINI: GeminiProvider,
    ProviderKind.BASE44: Base44Provider,
}


def build_provider(
    kind: ProviderKind,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseProvider:
    """Return a new, not yet initialized provider for *kind*."""
    provider_class = _PROVIDERS[ProviderKind(kind)]
    logger.debug("Creating %s provider", provider_class.display_name)
    return provider_class(settings, transport=transport)
