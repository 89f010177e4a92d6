"""Provider, call-out and result data classes.

``ProviderConfig`` is mutable (availability is toggled in place); the
result and statistics types are immutable snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from failover_guard.core.config import Settings
from failover_guard.core.errors import ErrorDetail

# Reported as FailoverResult.provider when no provider produced a response
NO_PROVIDER = "none"

FALLBACK_PROVIDER_ID = "fallback"
INTERNAL_SCHEME = "internal://"


@dataclass
class ProviderConfig:
    """Static description of one AI backend.

    Attributes:
        id:           Stable identity (``local``, ``openai``, ...).
        name:         Display name.
        endpoint:     Network endpoint, opaque to the orchestrator.
        priority:     Lower is tried first.
        is_available: Toggled by health checks or operators.
        timeout:      Max seconds per attempt.
        max_retries:  Attempts allowed within this provider.
        is_local:     Local vs. cloud, informational only.
        model:        Optional model name forwarded by the HTTP transport.
    """

    id: str
    name: str
    endpoint: str
    priority: int
    is_available: bool = True
    timeout: float = 30.0
    max_retries: int = 1
    is_local: bool = False
    model: str | None = None


@dataclass(frozen=True)
class ProviderResponse:
    """Outcome of a single provider call."""

    success: bool
    response: str | None = None
    latency_hint: float | None = None


@dataclass(frozen=True)
class FailoverResult:
    """Outcome of one orchestrated request.

    Attributes:
        success:        Whether any provider produced a response.
        provider:       Provider that answered, or ``NO_PROVIDER``.
        response:       Text payload on success.
        error:          Structured failure reason on failure.
        latency:        Wall-clock seconds for the whole orchestration.
        retry_count:    Total attempts made across all providers.
        failover_chain: Providers attempted, in order.
    """

    success: bool
    provider: str
    latency: float
    retry_count: int
    failover_chain: tuple[str, ...] = ()
    response: str | None = None
    error: ErrorDetail | None = None


@dataclass(frozen=True)
class FailoverStats:
    total_requests: int
    successful_requests: int
    failed_requests: int
    failover_events: int
    average_latency: float


@dataclass
class StatsCounters:
    """Running counters behind ``FailoverStats``."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    failover_events: int = 0
    total_latency: float = 0.0

    def snapshot(self) -> FailoverStats:
        average = self.total_latency / self.total_requests if self.total_requests else 0.0
        return FailoverStats(
            total_requests=self.total_requests,
            successful_requests=self.successful_requests,
            failed_requests=self.failed_requests,
            failover_events=self.failover_events,
            average_latency=average,
        )


def default_providers(settings: Settings | None = None) -> list[ProviderConfig]:
    """Build the seed provider set: local first, cloud next, static fallback last."""
    settings = settings or Settings()
    return [
        ProviderConfig(
            id="local",
            name="Local LLM (vLLM)",
            endpoint=settings.LOCAL_LLM_URL,
            priority=1,
            timeout=5.0,
            max_retries=2,
            is_local=True,
            model=settings.LOCAL_LLM_MODEL or None,
        ),
        ProviderConfig(
            id="openai",
            name="OpenAI GPT-4",
            endpoint=settings.OPENAI_URL,
            priority=2,
            timeout=30.0,
            max_retries=3,
            model=settings.OPENAI_MODEL or None,
        ),
        ProviderConfig(
            id="anthropic",
            name="Anthropic Claude",
            endpoint=settings.ANTHROPIC_URL,
            priority=3,
            timeout=30.0,
            max_retries=3,
            model=settings.ANTHROPIC_MODEL or None,
        ),
        ProviderConfig(
            id=FALLBACK_PROVIDER_ID,
            name="Static Fallback",
            endpoint=f"{INTERNAL_SCHEME}fallback",
            priority=99,
            timeout=0.1,
            max_retries=1,
            is_local=True,
        ),
    ]
