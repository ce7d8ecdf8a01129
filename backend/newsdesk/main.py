import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from newsdesk.api.v1.ai import router as ai_router
from newsdesk.core.config import Settings, get_settings
from newsdesk.services.ai.common.registry import ProviderRegistry
from newsdesk.services.ai.editorial.service import FeatureInvoker
from newsdesk.services.ai.validation.service import ValidationOrchestrator

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "Internal server error"


def wire_ai_services(app: FastAPI, settings: Settings, *, registry: ProviderRegistry | None = None) -> None:
    """Build the process-wide registry, invoker and orchestrator on ``app.state``."""
    registry = registry or ProviderRegistry(settings)
    invoker = FeatureInvoker(registry)
    app.state.ai_registry = registry
    app.state.ai_invoker = invoker
    app.state.ai_orchestrator = ValidationOrchestrator(invoker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if getattr(app.state, "ai_registry", None) is None:
        wire_ai_services(app, settings)
    await app.state.ai_registry.initialize_all()
    logger.info(
        "AI providers ready (active=%s): %s",
        settings.ai_provider,
        {kind.value: ok for kind, ok in app.state.ai_registry.status().items()},
    )
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Newsdesk AI API",
        version="1.0.0",
        docs_url="/docs" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.openapi_enabled else None,
        lifespan=lifespan,
    )

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )

    app.include_router(ai_router, prefix="/api/v1", tags=["ai"])

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Hide internal details for 5xx unless explicitly enabled; upstream 502s carry a bounded message.
        if exc.status_code >= 500 and exc.status_code != 502 and not settings.expose_error_details:
            return JSONResponse(status_code=exc.status_code, content={"detail": INTERNAL_ERROR_DETAIL})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        if settings.expose_error_details:
            return JSONResponse(status_code=500, content={"detail": str(exc)})
        return JSONResponse(status_code=500, content={"detail": INTERNAL_ERROR_DETAIL})

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
