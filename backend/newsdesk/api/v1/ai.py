"""AI editorial endpoints: provider status, smoke test, single features, full validation."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from newsdesk.core.dependencies import get_invoker, get_orchestrator, get_registry
from newsdesk.services.ai.common.errors import AIError
from newsdesk.services.ai.common.registry import ProviderRegistry
from newsdesk.services.ai.editorial.contracts import FeatureResult, ServiceStatus
from newsdesk.services.ai.editorial.service import FeatureInvoker
from newsdesk.services.ai.validation.service import ValidationOrchestrator
from newsdesk.utils.rate_limit import enforce_ai_rate_limit

router = APIRouter()

DEFAULT_TEST_PROMPT = "Reply with one short Korean sentence confirming the connection works."
DEFAULT_JSON_TEST_PROMPT = 'Reply with {"status": "ok", "message": "<one short Korean sentence>"}.'


class ArticleRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=100_000)
    title: str | None = Field(default=None, max_length=500)
    subtitle: str | None = Field(default=None, max_length=1000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v


class FeatureRequest(ArticleRequest):
    options: dict[str, str | int | float] | None = None


class ProviderTestRequest(BaseModel):
    test_type: Literal["text", "json"] = "text"
    prompt: str | None = Field(default=None, max_length=4000)


class ProviderTestResponse(BaseModel):
    success: bool
    provider: str
    test_type: str
    result: str | dict


def _feature_response(result: FeatureResult) -> JSONResponse:
    body = result.model_dump(mode="json", by_alias=True)
    if result.rate_limit is not None:
        return JSONResponse(
            status_code=429,
            content=body,
            headers={"Retry-After": str(result.rate_limit.retry_after_seconds)},
        )
    return JSONResponse(status_code=200, content=body)


def _ensure_known_feature(feature: str, invoker: FeatureInvoker) -> None:
    if feature not in invoker.features:
        raise HTTPException(400, f"Unknown feature: {feature}")


@router.get("/ai/status", response_model=ServiceStatus)
async def ai_status(invoker: FeatureInvoker = Depends(get_invoker)):
    return invoker.status()


@router.post(
    "/ai/test",
    response_model=ProviderTestResponse,
    summary="Live smoke test of the active provider",
    dependencies=[Depends(enforce_ai_rate_limit)],
)
async def ai_test(
    payload: ProviderTestRequest,
    registry: ProviderRegistry = Depends(get_registry),
):
    provider = registry.get_active()
    if not provider.is_available():
        raise HTTPException(400, f"{provider.display_name} provider is not available. Check the API key configuration.")

    try:
        if payload.test_type == "json":
            result: str | dict = await provider.generate_json(payload.prompt or DEFAULT_JSON_TEST_PROMPT)
        else:
            result = await provider.generate_text(payload.prompt or DEFAULT_TEST_PROMPT)
    except AIError as exc:
        raise HTTPException(502, str(exc)) from exc

    return ProviderTestResponse(success=True, provider=provider.name, test_type=payload.test_type, result=result)


@router.post(
    "/ai/full-validation",
    summary="Run fact, style, duplicate and sensitivity checks together",
    dependencies=[Depends(enforce_ai_rate_limit)],
)
async def ai_full_validation(
    payload: ArticleRequest,
    orchestrator: ValidationOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.run_full(payload.content, title=payload.title, subtitle=payload.subtitle)
    return {"success": True, "data": result.model_dump(mode="json", by_alias=True)}


@router.get("/ai/{feature}", dependencies=[Depends(enforce_ai_rate_limit)])
async def ai_feature_get(
    feature: str,
    content: str = Query(..., min_length=1, max_length=100_000),
    title: str | None = Query(default=None, max_length=500),
    subtitle: str | None = Query(default=None, max_length=1000),
    max_tags: int | None = Query(default=None, alias="maxTags", ge=1, le=50),
    summary_type: Literal["brief", "detailed", "sns", "seo"] | None = Query(default=None, alias="type"),
    invoker: FeatureInvoker = Depends(get_invoker),
):
    _ensure_known_feature(feature, invoker)
    if not content.strip():
        raise HTTPException(422, "content must not be blank")

    variables: dict[str, str | int | float] = {}
    if max_tags is not None:
        variables["maxTags"] = max_tags
    if summary_type is not None:
        variables["type"] = summary_type

    result = await invoker.invoke(feature, content, title=title, subtitle=subtitle, variables=variables)
    return _feature_response(result)


@router.post("/ai/{feature}", dependencies=[Depends(enforce_ai_rate_limit)])
async def ai_feature_post(
    feature: str,
    payload: FeatureRequest,
    invoker: FeatureInvoker = Depends(get_invoker),
):
    _ensure_known_feature(feature, invoker)
    result = await invoker.invoke(
        feature,
        payload.content,
        title=payload.title,
        subtitle=payload.subtitle,
        variables=payload.options,
    )
    return _feature_response(result)
