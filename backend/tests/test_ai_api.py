"""HTTP route tests for /api/v1/ai/* with injected services."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from conftest import make_settings, replying, scripted_registry
from newsdesk.core.dependencies import get_invoker, get_orchestrator, get_registry
from newsdesk.main import app
from newsdesk.services.ai.common.errors import RateLimitExceeded, RateLimitScope, UpstreamError
from newsdesk.services.ai.common.registry import ProviderRegistry
from newsdesk.services.ai.editorial.service import FeatureInvoker
from newsdesk.services.ai.validation.service import ValidationOrchestrator

TAGS_REPLY = '{"tags": ["A", "B"], "confidence": [0.9, 0.8]}'


def _install(registry: ProviderRegistry) -> None:
    invoker = FeatureInvoker(registry)
    orchestrator = ValidationOrchestrator(invoker)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_invoker] = lambda: invoker
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def scripted(client):
    def _wire(handler):
        registry, provider = asyncio.run(scripted_registry(handler))
        _install(registry)
        return provider

    return _wire


def test_status(client, scripted):
    scripted(replying("{}"))
    resp = client.get("/api/v1/ai/status")

    assert resp.status_code == 200
    assert resp.json() == {
        "activeProvider": "gemini",
        "providers": {
            "gemini": {"available": True, "name": "Scripted"},
            "base44": {"available": False, "name": "Base44"},
        },
    }


def test_feature_post(client, scripted):
    scripted(replying(TAGS_REPLY))
    resp = client.post("/api/v1/ai/auto-tag", json={"content": "짧은 기사"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["feature"] == "auto-tag"
    assert body["data"] == {"tags": ["A", "B"], "confidence": [0.9, 0.8]}
    assert "processingTimeMs" in body


def test_feature_post_options_become_variables(client, scripted):
    provider = scripted(replying('{"summary": "s", "keyPoints": []}'))
    resp = client.post("/api/v1/ai/summarize", json={"content": "본문", "options": {"type": "seo"}})

    assert resp.status_code == 200
    assert "Summary type: seo" in provider.prompts[0]


def test_feature_get(client, scripted):
    provider = scripted(replying(TAGS_REPLY))
    resp = client.get("/api/v1/ai/auto-tag", params={"content": "본문", "maxTags": 3})

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert "at most 3 tags" in provider.prompts[0]


def test_unknown_feature_is_400(client, scripted):
    provider = scripted(replying("{}"))
    resp = client.post("/api/v1/ai/translate", json={"content": "본문"})

    assert resp.status_code == 400
    assert provider.prompts == []


@pytest.mark.parametrize("content", ["", "   "])
def test_empty_content_is_422(client, scripted, content):
    scripted(replying("{}"))
    assert client.post("/api/v1/ai/auto-tag", json={"content": content}).status_code == 422
    assert client.get("/api/v1/ai/auto-tag", params={"content": content}).status_code == 422


def test_rate_limited_feature_is_429_with_retry_after(client, scripted):
    def quota(_prompt, _options):
        raise RateLimitExceeded("Gemini", 60, RateLimitScope.PER_MINUTE)

    scripted(quota)
    resp = client.post("/api/v1/ai/fact-check", json={"content": "본문", "title": "제목"})

    assert resp.status_code == 429
    assert resp.headers["retry-after"] == "60"
    body = resp.json()
    assert body["success"] is False
    assert body["errorCode"] == "rate_limited"
    assert body["rateLimit"] == {"retryAfterSeconds": 60, "scope": "per-minute"}


def test_other_failures_are_200_with_success_false(client, scripted):
    scripted(replying("not json"))
    resp = client.post("/api/v1/ai/auto-tag", json={"content": "본문"})

    assert resp.status_code == 200
    assert resp.json()["errorCode"] == "extraction_failed"


def test_full_validation(client, scripted):
    scripted(replying(json.dumps({"isValid": True, "issues": []})))
    resp = client.post("/api/v1/ai/full-validation", json={"content": "본문", "title": "제목"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert set(body["data"]) == {"factCheck", "styleAnalysis", "duplicateCheck", "sensitivityCheck"}
    assert body["data"]["factCheck"]["success"] is True
    # Same reply for every check: only fact-check matches its contract.
    assert body["data"]["styleAnalysis"]["errorCode"] == "invalid_shape"


def test_provider_test_unavailable_is_400(client):
    _install(ProviderRegistry(make_settings(gemini_api_key="")))
    resp = client.post("/api/v1/ai/test", json={})

    assert resp.status_code == 400
    assert "not available" in resp.json()["detail"]


def test_provider_test_text_and_json(client, scripted):
    provider = scripted(replying('{"status": "ok"}'))

    text = client.post("/api/v1/ai/test", json={"test_type": "text", "prompt": "핑"})
    assert text.status_code == 200
    assert text.json() == {"success": True, "provider": "scripted", "test_type": "text", "result": '{"status": "ok"}'}
    assert provider.prompts[0] == "핑"

    as_json = client.post("/api/v1/ai/test", json={"test_type": "json"})
    assert as_json.status_code == 200
    assert as_json.json()["result"] == {"status": "ok"}


def test_provider_test_failure_is_502(client, scripted):
    def down(_prompt, _options):
        raise UpstreamError("Scripted", 503, "overloaded")

    scripted(down)
    resp = client.post("/api/v1/ai/test", json={})

    assert resp.status_code == 502
    assert "503" in resp.json()["detail"]


def test_request_throttle(client, scripted, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_AI_ENABLED", "true")
    monkeypatch.setenv("RATE_LIMIT_AI_PER_MIN", "2")
    scripted(replying(TAGS_REPLY))

    codes = [client.post("/api/v1/ai/auto-tag", json={"content": "본문"}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]

    blocked = client.post("/api/v1/ai/full-validation", json={"content": "본문"})
    assert blocked.status_code == 429
    assert blocked.headers["retry-after"] == "60"

    assert client.get("/api/v1/ai/status").status_code == 200


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
