"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from newsdesk.core.config import Settings

from ..errors import (
    ExtractionError,
    MalformedResponse,
    ProviderTimeout,
    ProviderUnavailable,
    RateLimitExceeded,
    RateLimitScope,
    UpstreamError,
)
from ..json_tools import extract_json

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429

JSON_ONLY_INSTRUCTION = (
    "IMPORTANT: Respond with valid JSON only. Output a single raw JSON object "
    "with no explanation and no markdown code fences."
)


@dataclass(frozen=True)
class GenerateOptions:
    """Per-call generation settings; never mutated, copy with ``dataclasses.replace``."""

    max_tokens: int = 1000
    temperature: float = 0.7
    system_prompt: str | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement.

    Instances are long-lived and shared by concurrent requests: after
    ``initialize()`` they only hold read-mostly configuration, every call
    opens its own HTTP client.
    """

    name: str = "base"
    display_name: str = "Base"

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport
        self._api_key = ""
        self.initialized = False

    @abc.abstractmethod
    def _read_api_key(self) -> str:
        """Return the credential from configuration (may be empty)."""

    @abc.abstractmethod
    async def _request(self, client: httpx.AsyncClient, prompt: str, options: GenerateOptions) -> ProviderResult:
        """Issue one upstream call and unwrap the provider envelope."""

    @abc.abstractmethod
    def _rate_limit(self, response: httpx.Response) -> tuple[int | None, RateLimitScope]:
        """Read ``(retry_after_seconds, scope)`` from a throttled response."""

    async def initialize(self) -> None:
        """Load the credential; a missing key is logged, never raised."""
        self._api_key = (self._read_api_key() or "").strip()
        if not self._api_key:
            logger.warning("%s API key is not configured", self.display_name)
            self.initialized = False
            return
        self.initialized = True
        logger.info("%s provider initialized", self.display_name)

    def is_available(self) -> bool:
        return self.initialized and bool(self._api_key)

    def default_options(self) -> GenerateOptions:
        s = self._settings
        return GenerateOptions(
            max_tokens=s.ai_max_tokens,
            temperature=s.ai_temperature,
            timeout_seconds=s.ai_timeout_seconds,
        )

    async def generate_text(self, prompt: str, options: GenerateOptions | None = None) -> str:
        result = await self.complete(prompt, options)
        return result.raw_text

    async def complete(self, prompt: str, options: GenerateOptions | None = None) -> ProviderResult:
        """Like ``generate_text`` but keeps model, usage and latency."""
        if not self.is_available():
            raise ProviderUnavailable(self.display_name)

        options = options or self.default_options()
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=options.timeout_seconds, transport=self._transport) as client:
                result = await asyncio.wait_for(
                    self._request(client, prompt, options),
                    timeout=options.timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ProviderTimeout(self.display_name, options.timeout_seconds) from exc
        except httpx.TransportError as exc:
            raise UpstreamError(
                self.display_name, None, str(exc) or type(exc).__name__, limit=self._settings.ai_error_snippet_chars
            ) from exc

        elapsed = (time.monotonic() - t0) * 1000
        logger.debug(
            "%s call: prompt=%d chars, tokens=%d/%d, %.0fms",
            self.name,
            len(prompt),
            result.prompt_tokens,
            result.completion_tokens,
            elapsed,
        )
        return dataclasses.replace(result, latency_ms=round(elapsed, 2))

    async def generate_json(self, prompt: str, options: GenerateOptions | None = None) -> dict[str, Any]:
        json_prompt = f"{prompt}\n\n{JSON_ONLY_INSTRUCTION}"
        options = dataclasses.replace(
            options or self.default_options(),
            temperature=self._settings.ai_json_temperature,
        )
        text = await self.generate_text(json_prompt, options)
        try:
            return extract_json(text, snippet_chars=self._settings.ai_error_snippet_chars)
        except ExtractionError as exc:
            raise exc.with_context(provider=self.display_name, prompt_chars=len(prompt)) from exc

    def _check_response(self, response: httpx.Response) -> None:
        """Raise the typed error for any non-2xx *response*."""
        if response.is_success:
            return

        if response.status_code == RATE_LIMIT_STATUS:
            retry_after, scope = self._rate_limit(response)
            if retry_after is None:
                retry_after = self._settings.ai_rate_limit_default_retry_seconds
            logger.warning(
                "%s rate limit hit (scope=%s, retry_after=%ss)", self.display_name, scope.value, retry_after
            )
            raise RateLimitExceeded(self.display_name, retry_after, scope)

        raise UpstreamError(
            self.display_name,
            response.status_code,
            response.text,
            limit=self._settings.ai_error_snippet_chars,
        )

    def _malformed(self, detail: str) -> MalformedResponse:
        return MalformedResponse(self.display_name, detail)


def retry_after_header(response: httpx.Response) -> int | None:
    """Seconds from a numeric ``Retry-After`` header, if present."""
    raw = response.headers.get("retry-after", "").strip()
    if not raw:
        return None
    try:
        return max(0, int(float(raw)))
    except ValueError:
        return None


def json_body(response: httpx.Response) -> dict[str, Any]:
    """Response JSON as a dict, ``{}`` when the body is not a JSON object."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
