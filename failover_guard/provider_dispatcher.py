"""Provider dispatcher: HTTP call-out to AI backends.

Implements the single-call contract the orchestrator consumes::

    async caller(provider, request_text) -> ProviderResponse

``HttpProviderCaller`` posts a chat-completion style payload over a
pooled ``httpx.AsyncClient`` and extracts the reply text from
OpenAI-style, Anthropic-style or plain ``{"response": ...}`` bodies.
Endpoints using the ``internal://`` scheme never touch the network and
answer with the configured canned fallback text.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import httpx

from failover_guard.core.config import Settings
from failover_guard.core.errors import ProviderTimeoutError, ProviderUnavailableError
from failover_guard.models.provider import INTERNAL_SCHEME, ProviderConfig, ProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024


class ProviderCaller(Protocol):
    """Async callable sending one request to one provider."""

    async def __call__(self, provider: ProviderConfig, request: str) -> ProviderResponse: ...


def _build_payload(provider: ProviderConfig, request: str) -> dict:
    """Chat-completion body understood by vLLM, OpenAI and Anthropic."""
    payload: dict[str, Any] = {
        "messages": [{"role": "user", "content": request}],
        "max_tokens": DEFAULT_MAX_TOKENS,
    }
    if provider.model:
        payload["model"] = provider.model
    return payload


def _extract_text(body: Any) -> str | None:
    """Pull the reply text out of a provider response body."""
    if not isinstance(body, dict):
        return None
    try:
        # OpenAI / vLLM
        if body.get("choices"):
            return body["choices"][0]["message"]["content"]
        # Anthropic messages API
        if body.get("content"):
            return body["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    text = body.get("response")
    return text if isinstance(text, str) else None


class HttpProviderCaller:
    """Calls providers over HTTP with one pooled ``AsyncClient``.

    Args:
        fallback_response: Text returned by ``internal://`` providers.
        headers:           Extra request headers per provider id
                           (API keys, version pins).
        client:            Optional preconfigured client; tests inject one
                           with an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        fallback_response: str,
        headers: dict[str, dict[str, str]] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.fallback_response = fallback_response
        self._headers = headers or {}
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpProviderCaller:
        headers: dict[str, dict[str, str]] = {}
        if settings.OPENAI_API_KEY:
            headers["openai"] = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}
        if settings.ANTHROPIC_API_KEY:
            headers["anthropic"] = {
                "x-api-key": settings.ANTHROPIC_API_KEY,
                "anthropic-version": settings.ANTHROPIC_API_VERSION,
            }
        return cls(settings.FALLBACK_RESPONSE, headers=headers)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def __call__(self, provider: ProviderConfig, request: str) -> ProviderResponse:
        """Send *request* to *provider*.

        Returns:
            A ``ProviderResponse``; ``success`` is ``False`` for HTTP errors
            and bodies without reply text.

        Raises:
            ProviderTimeoutError: If the request exceeds ``provider.timeout``.
            ProviderUnavailableError: If the endpoint cannot be reached.
        """
        if provider.endpoint.startswith(INTERNAL_SCHEME):
            return ProviderResponse(success=True, response=self.fallback_response, latency_hint=0.0)

        start = time.monotonic()
        try:
            response = await self._get_client().post(
                provider.endpoint,
                json=_build_payload(provider, request),
                headers=self._headers.get(provider.id),
                timeout=provider.timeout,
            )
        except httpx.TimeoutException:
            raise ProviderTimeoutError(provider.id, provider.timeout) from None
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(provider.id, str(exc) or "connection failed") from exc
        elapsed = time.monotonic() - start

        if response.status_code >= 400:
            logger.warning("Provider %s returned HTTP %d", provider.id, response.status_code)
            return ProviderResponse(success=False, latency_hint=elapsed)

        try:
            text = _extract_text(response.json())
        except ValueError:
            text = None
        if text is None:
            logger.warning("Provider %s returned no reply text", provider.id)
            return ProviderResponse(success=False, latency_hint=elapsed)
        return ProviderResponse(success=True, response=text, latency_hint=elapsed)

    async def aclose(self) -> None:
        """Close the pooled httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
