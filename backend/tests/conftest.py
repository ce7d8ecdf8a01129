from collections.abc import Callable

import httpx
import pytest

from newsdesk.core.config import Settings, get_settings
from newsdesk.services.ai.common.errors import RateLimitScope
from newsdesk.services.ai.common.providers import BaseProvider, GenerateOptions, ProviderKind, ProviderResult
from newsdesk.services.ai.common.registry import ProviderRegistry
from newsdesk.utils.rate_limit import rate_limiter


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests mutate env vars; never leak a cached Settings instance across tests.
    get_settings.cache_clear()
    rate_limiter.reset()
    yield
    get_settings.cache_clear()
    rate_limiter.reset()


def make_settings(**overrides) -> Settings:
    values = {
        "ai_provider": "gemini",
        "gemini_api_key": "AIza-test-key",
        "base44_api_key": "b44-test-key",
        "base44_project_id": "proj-1",
    }
    values.update(overrides)
    return Settings(**values)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def calls(self) -> int:
        return len(self.requests)


Handler = Callable[[str, GenerateOptions], str]


class ScriptedProvider(BaseProvider):
    """In-process provider whose reply is produced by *handler* (text or raised error)."""

    name = "scripted"
    display_name = "Scripted"

    def __init__(self, settings: Settings, handler: Handler, *, api_key: str = "scripted-key") -> None:
        super().__init__(settings)
        self._handler = handler
        self._key = api_key
        self.prompts: list[str] = []
        self.options: list[GenerateOptions] = []

    def _read_api_key(self) -> str:
        return self._key

    async def _request(self, client: httpx.AsyncClient, prompt: str, options: GenerateOptions) -> ProviderResult:
        self.prompts.append(prompt)
        self.options.append(options)
        text = self._handler(prompt, options)
        return ProviderResult(raw_text=text, model="scripted-model", provider=self.name)

    def _rate_limit(self, response: httpx.Response) -> tuple[int | None, RateLimitScope]:
        return None, RateLimitScope.UNKNOWN


def replying(text: str) -> Handler:
    return lambda _prompt, _options: text


async def scripted_registry(handler: Handler, settings: Settings | None = None) -> tuple[ProviderRegistry, ScriptedProvider]:
    """Registry whose active (gemini) slot is an initialized scripted provider."""
    settings = settings or make_settings()
    provider = ScriptedProvider(settings, handler)
    await provider.initialize()
    registry = ProviderRegistry(settings, providers={ProviderKind.GEMINI: provider})
    return registry, provider
