"""Editorial feature contracts: per-feature response shapes and FeatureResult."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..common.errors import AIError, RateLimitExceeded, RateLimitScope, truncate


def _unit_interval(v: float) -> float:
    if not 0.0 <= v <= 1.0:
        msg = f"Confidence must be 0.0–1.0, got {v}"
        raise ValueError(msg)
    return v


class _Contract(BaseModel):
    """Upstream JSON uses camelCase keys; unknown keys are dropped."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TextPosition(_Contract):
    start: int
    end: int


# --- auto-tag ---


class AutoTagResult(_Contract):
    tags: list[str]
    confidence: list[float]

    @field_validator("confidence")
    @classmethod
    def confidence_range(cls, v: list[float]) -> list[float]:
        return [_unit_interval(c) for c in v]

    @model_validator(mode="after")
    def one_confidence_per_tag(self) -> AutoTagResult:
        if len(self.tags) != len(self.confidence):
            msg = f"{len(self.tags)} tags but {len(self.confidence)} confidence values"
            raise ValueError(msg)
        return self


# --- fact-check ---


class FactCheckIssue(_Contract):
    type: str
    severity: Literal["warning", "error"]
    message: str
    suggestion: str | None = None
    position: TextPosition | None = None


class FactCheckResult(_Contract):
    is_valid: bool
    issues: list[FactCheckIssue] = Field(default_factory=list)


# --- style-unify ---


class StyleSuggestion(_Contract):
    original: str
    suggested: str
    reason: str
    position: TextPosition | None = None


class StyleAnalysisResult(_Contract):
    is_consistent: bool
    suggestions: list[StyleSuggestion] = Field(default_factory=list)


# --- duplicate-check ---


class DuplicateItem(_Contract):
    text: str
    occurrences: int
    positions: list[TextPosition] = Field(default_factory=list)


class DuplicateCheckResult(_Contract):
    has_duplicates: bool
    duplicates: list[DuplicateItem] = Field(default_factory=list)
    similar_articles: list[dict[str, Any]] = Field(default_factory=list)


# --- summarize ---


class SummarizeResult(_Contract):
    summary: str
    key_points: list[str] = Field(default_factory=list)
    sns_version: str | None = None
    seo_version: str | None = None


# --- category-suggest ---


class CategoryAlternative(_Contract):
    category: str
    confidence: float

    @field_validator("confidence")
    @classmethod
    def confidence_range(cls, v: float) -> float:
        return _unit_interval(v)


class CategorySuggestResult(_Contract):
    category: str
    sub_category: str | None = None
    confidence: float
    alternatives: list[CategoryAlternative] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def confidence_range(cls, v: float) -> float:
        return _unit_interval(v)


# --- sensitivity-check ---


class SensitivityItem(_Contract):
    type: str
    severity: Literal["low", "medium", "high"]
    text: str
    suggestion: str | None = None
    position: TextPosition | None = None


class SensitivityResult(_Contract):
    has_sensitive_content: bool
    items: list[SensitivityItem] = Field(default_factory=list)


# --- spell-check ---


class SpellingError(_Contract):
    original: str
    corrected: str | None = None
    reason: str | None = None
    severity: str = "warning"


class SpellCheckResult(_Contract):
    errors: list[SpellingError] = Field(default_factory=list)
    total_errors: int | None = None

    @model_validator(mode="after")
    def default_total(self) -> SpellCheckResult:
        if self.total_errors is None:
            self.total_errors = len(self.errors)
        return self


FEATURE_CONTRACTS: dict[str, type[_Contract]] = {
    "auto-tag": AutoTagResult,
    "fact-check": FactCheckResult,
    "style-unify": StyleAnalysisResult,
    "duplicate-check": DuplicateCheckResult,
    "summarize": SummarizeResult,
    "category-suggest": CategorySuggestResult,
    "sensitivity-check": SensitivityResult,
    "spell-check": SpellCheckResult,
}


# --- invocation result ---


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RateLimitInfo(_Wire):
    retry_after_seconds: int
    scope: RateLimitScope


class FeatureResult(_Wire):
    """Outcome of one feature invocation; ``success`` iff ``data`` is present."""

    feature: str
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    error_code: str | None = None
    rate_limit: RateLimitInfo | None = None
    provider: str | None = None
    processing_time_ms: float

    @model_validator(mode="after")
    def success_matches_payload(self) -> FeatureResult:
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful result must carry data and no error")
        if not self.success and (self.data is not None or not self.error):
            raise ValueError("failed result must carry an error and no data")
        return self

    @classmethod
    def ok(cls, feature: str, data: dict[str, Any], *, provider: str | None, elapsed_ms: float) -> FeatureResult:
        return cls(
            feature=feature,
            success=True,
            data=data,
            provider=provider,
            processing_time_ms=round(elapsed_ms, 2),
        )

    @classmethod
    def failed(
        cls,
        feature: str,
        exc: Exception,
        *,
        provider: str | None,
        elapsed_ms: float,
    ) -> FeatureResult:
        rate_limit = None
        if isinstance(exc, RateLimitExceeded):
            rate_limit = RateLimitInfo(retry_after_seconds=exc.retry_after_seconds, scope=exc.scope)
        return cls(
            feature=feature,
            success=False,
            error=truncate(str(exc) or type(exc).__name__),
            error_code=exc.code if isinstance(exc, AIError) else "internal_error",
            rate_limit=rate_limit,
            provider=provider,
            processing_time_ms=round(elapsed_ms, 2),
        )


# --- provider status ---


class ProviderStatus(_Wire):
    available: bool
    name: str


class ServiceStatus(_Wire):
    active_provider: str
    providers: dict[str, ProviderStatus]
