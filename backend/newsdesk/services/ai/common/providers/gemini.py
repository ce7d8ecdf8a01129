"""Google Gemini provider (``generateContent`` REST API)."""

from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from ..errors import RateLimitScope
from .base import BaseProvider, GenerateOptions, ProviderResult, json_body, retry_after_header

logger = logging.getLogger(__name__)

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"
QUOTA_FAILURE_TYPE = "type.googleapis.com/google.rpc.QuotaFailure"


def parse_retry_delay(value: Any) -> int | None:
    """``"17s"`` / ``"17.5s"`` -> whole seconds, rounded up."""
    if not isinstance(value, str):
        return None
    raw = value.strip().removesuffix("s")
    try:
        return max(0, math.ceil(float(raw)))
    except ValueError:
        return None


def classify_quota(details: list[Any]) -> RateLimitScope:
    """Best-effort per-day / per-minute split from ``QuotaFailure`` violations."""
    markers: list[str] = []
    for detail in details:
        if not isinstance(detail, dict) or detail.get("@type") != QUOTA_FAILURE_TYPE:
            continue
        for violation in detail.get("violations") or []:
            if isinstance(violation, dict):
                markers.append(str(violation.get("quotaMetric", "")))
                markers.append(str(violation.get("quotaId", "")))

    if any("PerDay" in m for m in markers):
        return RateLimitScope.PER_DAY
    if any("PerMinute" in m for m in markers):
        return RateLimitScope.PER_MINUTE
    return RateLimitScope.UNKNOWN


class GeminiProvider(BaseProvider):
    name = "gemini"
    display_name = "Gemini"

    def _read_api_key(self) -> str:
        return self._settings.gemini_api_key

    async def initialize(self) -> None:
        await super().initialize()
        if self._api_key and not self._api_key.startswith("AIza"):
            logger.warning("Gemini API key format may be invalid")

    @property
    def model(self) -> str:
        return self._settings.gemini_model

    async def _request(self, client: httpx.AsyncClient, prompt: str, options: GenerateOptions) -> ProviderResult:
        base_url = self._settings.gemini_base_url.rstrip("/")
        full_prompt = f"{options.system_prompt}\n\n{prompt}" if options.system_prompt else prompt

        resp = await client.post(
            f"{base_url}/models/{self.model}:generateContent",
            headers={
                "x-goog-api-key": self._api_key,
                "Content-Type": "application/json",
            },
            json={
                "contents": [{"parts": [{"text": full_prompt}]}],
                "generationConfig": {
                    "maxOutputTokens": options.max_tokens,
                    "temperature": options.temperature,
                },
            },
        )
        self._check_response(resp)

        data = json_body(resp)
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise self._malformed("missing candidates[0].content.parts[0].text") from None
        if not isinstance(text, str):
            raise self._malformed("candidate text is not a string")

        usage = data.get("usageMetadata") or {}
        return ProviderResult(
            raw_text=text,
            model=self.model,
            provider=self.name,
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
        )

    def _rate_limit(self, response: httpx.Response) -> tuple[int | None, RateLimitScope]:
        error = json_body(response).get("error")
        details = error.get("details") if isinstance(error, dict) else None
        if not isinstance(details, list):
            details = []

        retry_after = None
        for detail in details:
            if isinstance(detail, dict) and detail.get("@type") == RETRY_INFO_TYPE:
                retry_after = parse_retry_delay(detail.get("retryDelay"))
                break
        if retry_after is None:
            retry_after = retry_after_header(response)

        return retry_after, classify_quota(details)
