"""Tests for HttpProviderCaller, the HTTP call-out to AI providers.

httpx responses are served by ``httpx.MockTransport``; no network access.
"""

import json

import httpx
import pytest

from failover_guard.core.config import Settings
from failover_guard.core.errors import ProviderTimeoutError, ProviderUnavailableError
from failover_guard.models.provider import ProviderConfig, default_providers
from failover_guard.provider_dispatcher import HttpProviderCaller

PROVIDERS = {p.id: p for p in default_providers()}


def caller_with(handler, **kwargs) -> HttpProviderCaller:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpProviderCaller("Sorry, try later.", client=client, **kwargs)


class TestInternalFallback:
    async def test_internal_endpoint_returns_canned_text_without_http(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("fallback must not hit the network")

        caller = caller_with(handler)
        result = await caller(PROVIDERS["fallback"], "hello")
        assert result.success is True
        assert result.response == "Sorry, try later."


class TestResponseParsing:
    @pytest.mark.parametrize(
        "body,expected",
        [
            ({"choices": [{"message": {"role": "assistant", "content": "openai says hi"}}]}, "openai says hi"),
            ({"content": [{"type": "text", "text": "claude says hi"}]}, "claude says hi"),
            ({"response": "plain says hi"}, "plain says hi"),
        ],
    )
    async def test_extracts_reply_text(self, body, expected):
        caller = caller_with(lambda request: httpx.Response(200, json=body))
        result = await caller(PROVIDERS["openai"], "hello")
        assert result.success is True
        assert result.response == expected
        assert result.latency_hint is not None

    @pytest.mark.parametrize("body", [{}, {"choices": [{}]}, {"response": 42}, ["not", "a", "dict"]])
    async def test_body_without_text_is_unsuccessful(self, body):
        caller = caller_with(lambda request: httpx.Response(200, json=body))
        result = await caller(PROVIDERS["openai"], "hello")
        assert result.success is False

    async def test_non_json_body_is_unsuccessful(self):
        caller = caller_with(lambda request: httpx.Response(200, text="<html>oops</html>"))
        result = await caller(PROVIDERS["local"], "hello")
        assert result.success is False

    @pytest.mark.parametrize("status", [400, 429, 500, 503])
    async def test_http_error_is_unsuccessful(self, status):
        caller = caller_with(lambda request: httpx.Response(status, json={"error": "nope"}))
        result = await caller(PROVIDERS["openai"], "hello")
        assert result.success is False
        assert result.response is None


class TestRequestShape:
    async def test_posts_chat_payload_to_endpoint(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["method"] = request.method
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "ok"})

        caller = caller_with(handler)
        await caller(PROVIDERS["openai"], "What are your hours?")

        assert captured["url"] == "https://api.openai.com/v1/chat/completions"
        assert captured["method"] == "POST"
        assert captured["body"]["messages"] == [{"role": "user", "content": "What are your hours?"}]
        assert captured["body"]["model"] == "gpt-4"

    async def test_model_omitted_when_not_configured(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "ok"})

        caller = caller_with(handler)
        await caller(PROVIDERS["local"], "hi")
        assert "model" not in captured["body"]

    async def test_per_provider_headers(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured[request.url.host] = request.headers
            return httpx.Response(200, json={"response": "ok"})

        caller = caller_with(handler, headers={"anthropic": {"x-api-key": "k-123"}})
        await caller(PROVIDERS["anthropic"], "hi")
        await caller(PROVIDERS["openai"], "hi")

        assert captured["api.anthropic.com"]["x-api-key"] == "k-123"
        assert "x-api-key" not in captured["api.openai.com"]


class TestTransportErrors:
    async def test_timeout_raises_provider_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        caller = caller_with(handler)
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await caller(PROVIDERS["local"], "hi")
        assert exc_info.value.provider_id == "local"
        assert exc_info.value.timeout_seconds == 5.0

    async def test_connect_error_raises_provider_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        caller = caller_with(handler)
        with pytest.raises(ProviderUnavailableError, match="local"):
            await caller(PROVIDERS["local"], "hi")


class TestFromSettings:
    def test_builds_auth_headers_from_keys(self):
        settings = Settings(OPENAI_API_KEY="sk-test", ANTHROPIC_API_KEY="ak-test")
        caller = HttpProviderCaller.from_settings(settings)
        assert caller._headers["openai"] == {"Authorization": "Bearer sk-test"}
        assert caller._headers["anthropic"]["x-api-key"] == "ak-test"
        assert caller._headers["anthropic"]["anthropic-version"] == "2023-06-01"
        assert caller.fallback_response == settings.FALLBACK_RESPONSE

    def test_no_keys_no_headers(self):
        caller = HttpProviderCaller.from_settings(Settings())
        assert caller._headers == {}

    async def test_aclose_releases_client(self):
        caller = HttpProviderCaller("x")
        caller._get_client()
        await caller.aclose()
        assert caller._client is None


class TestWithGuard:
    async def test_guard_fails_over_from_http_error_to_internal_fallback(self):
        from failover_guard.orchestrator import FailoverGuard

        caller = caller_with(lambda request: httpx.Response(503, json={"error": "down"}))
        guard = FailoverGuard(
            caller,
            providers=[
                ProviderConfig(id="openai", name="OpenAI", endpoint="https://api.openai.com/v1/chat/completions", priority=2),
                PROVIDERS["fallback"],
            ],
        )
        result = await guard.execute_with_failover("hello")
        assert result.provider == "fallback"
        assert result.response == "Sorry, try later."
        assert result.failover_chain == ("openai", "fallback")
