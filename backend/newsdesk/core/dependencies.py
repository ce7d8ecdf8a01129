from fastapi import Request

from newsdesk.services.ai.common.registry import ProviderRegistry
from newsdesk.services.ai.editorial.service import FeatureInvoker
from newsdesk.services.ai.validation.service import ValidationOrchestrator


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} is not configured; the application startup hook has not run")
    return value


def get_registry(request: Request) -> ProviderRegistry:
    return _state(request, "ai_registry")


def get_invoker(request: Request) -> FeatureInvoker:
    return _state(request, "ai_invoker")


def get_orchestrator(request: Request) -> ValidationOrchestrator:
    return _state(request, "ai_orchestrator")
