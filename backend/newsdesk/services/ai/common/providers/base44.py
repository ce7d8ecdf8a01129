"""Base44 platform provider (AI functions ``/ai/generate`` endpoint)."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ..errors import RateLimitScope
from .base import BaseProvider, GenerateOptions, ProviderResult, json_body, retry_after_header

logger = logging.getLogger(__name__)

_DAY_RE = re.compile(r"per[_\- ]?day|daily|\bday\b", re.IGNORECASE)
_MINUTE_RE = re.compile(r"per[_\- ]?minute|\bminute\b", re.IGNORECASE)


def classify_limit(*markers: Any) -> RateLimitScope:
    text = " ".join(str(m) for m in markers if m)
    if _DAY_RE.search(text):
        return RateLimitScope.PER_DAY
    if _MINUTE_RE.search(text):
        return RateLimitScope.PER_MINUTE
    return RateLimitScope.UNKNOWN


class Base44Provider(BaseProvider):
    name = "base44"
    display_name = "Base44"

    def _read_api_key(self) -> str:
        return self._settings.base44_api_key

    async def _request(self, client: httpx.AsyncClient, prompt: str, options: GenerateOptions) -> ProviderResult:
        s = self._settings
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if s.base44_project_id:
            headers["X-Project-Id"] = s.base44_project_id

        payload: dict[str, Any] = {
            "prompt": prompt,
            "maxTokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if options.system_prompt:
            payload["systemPrompt"] = options.system_prompt
        if s.base44_model:
            payload["model"] = s.base44_model

        resp = await client.post(f"{s.base44_base_url.rstrip('/')}/ai/generate", headers=headers, json=payload)
        self._check_response(resp)

        data = json_body(resp)
        text = data.get("text")
        if not isinstance(text, str):
            raise self._malformed("missing text")

        usage = data.get("usage") or {}
        return ProviderResult(
            raw_text=text,
            model=data.get("model") or s.base44_model or "base44-default",
            provider=self.name,
            prompt_tokens=usage.get("promptTokens", 0),
            completion_tokens=usage.get("completionTokens", 0),
        )

    def _rate_limit(self, response: httpx.Response) -> tuple[int | None, RateLimitScope]:
        error = json_body(response).get("error")
        if not isinstance(error, dict):
            error = {}

        retry_after = retry_after_header(response)
        if retry_after is None:
            try:
                retry_after = max(0, int(float(error["retryAfter"])))
            except (KeyError, TypeError, ValueError):
                retry_after = None

        return retry_after, classify_limit(error.get("limit"), error.get("message"))
