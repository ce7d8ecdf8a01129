"""Editorial feature invocation.

``FeatureInvoker.invoke`` is the error boundary of the AI layer: whatever
goes wrong below (missing key, timeout, quota, unparseable or mis-shaped
output) comes back as a failed ``FeatureResult``, never as an exception.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Literal

from pydantic import ValidationError

from ..common.errors import ResponseShapeError, UnknownFeature
from ..common.prompts import PROMPT_CATALOG, PromptTemplate, fill_template
from ..common.providers import BaseProvider, GenerateOptions
from ..common.registry import ProviderRegistry
from .contracts import FEATURE_CONTRACTS, FeatureResult, ProviderStatus, ServiceStatus

logger = logging.getLogger(__name__)

# Features that read the title and subtitle together with the body.
HEADLINE_FEATURES = frozenset({"fact-check", "spell-check"})

SummaryType = Literal["brief", "detailed", "sns", "seo"]
Variables = Mapping[str, str | int | float]


def join_article(content: str, title: str | None = None, subtitle: str | None = None) -> str:
    """Non-empty title, subtitle and body separated by blank lines."""
    return "\n\n".join(part for part in (title, subtitle, content) if part)


def validate_shape(feature: str, data: dict) -> dict:
    """Check *data* against the feature contract; return the normalized payload."""
    contract = FEATURE_CONTRACTS.get(feature)
    if contract is None:
        return data
    try:
        parsed = contract.model_validate(data)
    except ValidationError as exc:
        raise ResponseShapeError(feature, str(exc)) from exc
    return parsed.model_dump(mode="json", by_alias=True, exclude_none=True)


class FeatureInvoker:
    def __init__(
        self,
        registry: ProviderRegistry,
        catalog: Mapping[str, PromptTemplate] | None = None,
    ) -> None:
        self._registry = registry
        self._catalog = PROMPT_CATALOG if catalog is None else catalog

    @property
    def features(self) -> tuple[str, ...]:
        return tuple(self._catalog)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def status(self) -> ServiceStatus:
        """Active provider plus availability of every known provider."""
        providers = {}
        for kind in self._registry.kinds:
            provider = self._registry.get(kind)
            providers[kind.value] = ProviderStatus(available=provider.is_available(), name=provider.display_name)
        return ServiceStatus(active_provider=self._registry.active_kind.value, providers=providers)

    def render(
        self,
        template: PromptTemplate,
        content: str,
        *,
        title: str | None = None,
        subtitle: str | None = None,
        variables: Variables | None = None,
    ) -> str:
        values: dict[str, object] = {**template.defaults, **(variables or {})}
        if template.name in HEADLINE_FEATURES:
            values["title"] = title or ""
            values["subtitle"] = subtitle or ""
            values["full_text"] = join_article(content, title, subtitle)
        values["content"] = content
        return fill_template(template.user_prompt_template, values)

    async def invoke(
        self,
        feature: str,
        content: str,
        *,
        title: str | None = None,
        subtitle: str | None = None,
        variables: Variables | None = None,
        options: GenerateOptions | None = None,
    ) -> FeatureResult:
        t0 = time.monotonic()
        provider: BaseProvider | None = None

        try:
            template = self._catalog.get(feature)
            if template is None:
                raise UnknownFeature(feature)

            prompt = self.render(template, content, title=title, subtitle=subtitle, variables=variables)
            provider = self._registry.get_active()
            base = options or provider.default_options()
            call_options = GenerateOptions(
                max_tokens=base.max_tokens,
                temperature=base.temperature,
                system_prompt=template.system_prompt,
                timeout_seconds=base.timeout_seconds,
            )
            raw = await provider.generate_json(prompt, call_options)
            data = validate_shape(feature, raw)
        except Exception as exc:
            elapsed = (time.monotonic() - t0) * 1000
            code = getattr(exc, "code", "internal_error")
            if code == "internal_error":
                logger.exception("Feature %s failed unexpectedly", feature)
            else:
                logger.warning("Feature %s failed (%s) after %.0fms", feature, code, elapsed)
            return FeatureResult.failed(
                feature,
                exc,
                provider=provider.name if provider else None,
                elapsed_ms=elapsed,
            )

        elapsed = (time.monotonic() - t0) * 1000
        logger.info("Feature %s completed via %s in %.0fms", feature, provider.name, elapsed)
        return FeatureResult.ok(feature, data, provider=provider.name, elapsed_ms=elapsed)

    # --- named features ---

    async def generate_tags(self, content: str, max_tags: int = 10) -> FeatureResult:
        return await self.invoke("auto-tag", content, variables={"maxTags": max_tags})

    async def check_facts(self, content: str, title: str | None = None, subtitle: str | None = None) -> FeatureResult:
        return await self.invoke("fact-check", content, title=title, subtitle=subtitle)

    async def unify_style(self, content: str) -> FeatureResult:
        return await self.invoke("style-unify", content)

    async def check_duplicates(self, content: str) -> FeatureResult:
        return await self.invoke("duplicate-check", content)

    async def summarize(self, content: str, summary_type: SummaryType = "brief") -> FeatureResult:
        return await self.invoke("summarize", content, variables={"type": summary_type})

    async def suggest_category(self, content: str) -> FeatureResult:
        return await self.invoke("category-suggest", content)

    async def check_sensitivity(self, content: str) -> FeatureResult:
        return await self.invoke("sensitivity-check", content)

    async def check_spelling(
        self, content: str, title: str | None = None, subtitle: str | None = None
    ) -> FeatureResult:
        return await self.invoke("spell-check", content, title=title, subtitle=subtitle)
