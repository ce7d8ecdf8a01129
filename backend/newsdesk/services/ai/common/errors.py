"""Error taxonomy shared by providers, JSON extraction and the feature invoker.

Every error carries a machine-readable ``code`` so the route layer and the
editor UI can branch on fields instead of parsing messages.
"""

from __future__ import annotations

import enum

DEFAULT_BODY_CHARS = 800


def truncate(text: str, limit: int = DEFAULT_BODY_CHARS) -> str:
    """Bound *text* to *limit* characters, marking the cut."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}… [truncated {len(text) - limit} chars]"


def format_wait(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    minutes, rest = divmod(seconds, 60)
    return f"{minutes}m {rest}s" if rest else f"{minutes}m"


class RateLimitScope(str, enum.Enum):
    PER_MINUTE = "per-minute"
    PER_DAY = "per-day"
    UNKNOWN = "unknown"


class AIError(Exception):
    """Base class for every failure raised below the feature invoker."""

    code = "ai_error"


class ProviderUnavailable(AIError):
    code = "provider_unavailable"

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} provider is not available. Check the API key configuration.")


class ProviderTimeout(AIError):
    code = "timeout"

    def __init__(self, provider: str, timeout_seconds: float) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{provider} API request timed out after {timeout_seconds:g}s")


class RateLimitExceeded(AIError):
    code = "rate_limited"

    def __init__(self, provider: str, retry_after_seconds: int, scope: RateLimitScope) -> None:
        self.provider = provider
        self.retry_after_seconds = retry_after_seconds
        self.scope = scope
        super().__init__(self._describe())

    def _describe(self) -> str:
        wait = format_wait(self.retry_after_seconds)
        if self.scope is RateLimitScope.PER_DAY:
            limit = "daily request quota"
            when = f"after the daily quota resets (retry hint: {wait})"
        elif self.scope is RateLimitScope.PER_MINUTE:
            limit = "per-minute request quota"
            when = f"in {wait}"
        else:
            limit = "request quota"
            when = f"in {wait}"
        return (
            f"{self.provider} API {limit} exceeded. "
            f"Retry {when}. "
            "Check current usage in the provider console or upgrade the plan."
        )


class UpstreamError(AIError):
    code = "upstream_error"

    def __init__(self, provider: str, status: int | None, body: str, *, limit: int = DEFAULT_BODY_CHARS) -> None:
        self.provider = provider
        self.status = status
        self.body = truncate(body, limit)
        if status is None:
            super().__init__(f"{provider} API request failed: {self.body}")
        else:
            super().__init__(f"{provider} API error: {status} {self.body}")


class MalformedResponse(AIError):
    code = "malformed_response"

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"Invalid response format from {provider} API: {detail}")


class ExtractionError(AIError):
    """No JSON object could be recovered from generated text."""

    code = "extraction_failed"

    def __init__(
        self,
        reason: str,
        snippet: str,
        *,
        offset: int | None = None,
        provider: str | None = None,
        prompt_chars: int | None = None,
    ) -> None:
        self.reason = reason
        self.snippet = snippet
        self.offset = offset
        self.provider = provider
        self.prompt_chars = prompt_chars
        super().__init__(self._describe())

    def _describe(self) -> str:
        source = f" from {self.provider}" if self.provider else ""
        parts = [f"Failed to parse JSON response{source}: {self.reason}"]
        if self.offset is not None:
            parts.append(f"Error position: {self.offset}")
        if self.prompt_chars is not None:
            parts.append(f"Prompt length: {self.prompt_chars} chars")
        parts.append(f"Response (first {len(self.snippet)} chars): {self.snippet}")
        return "\n".join(parts)

    def with_context(self, *, provider: str, prompt_chars: int) -> ExtractionError:
        return ExtractionError(
            self.reason,
            self.snippet,
            offset=self.offset,
            provider=provider,
            prompt_chars=prompt_chars,
        )


class ResponseShapeError(AIError):
    code = "invalid_shape"

    def __init__(self, feature: str, detail: str) -> None:
        self.feature = feature
        self.detail = truncate(detail)
        super().__init__(f"Response for {feature!r} does not match the expected shape: {self.detail}")


class UnknownFeature(AIError):
    code = "unknown_feature"

    def __init__(self, feature: str) -> None:
        self.feature = feature
        super().__init__(f"Unknown feature: {feature}")
