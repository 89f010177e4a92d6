"""Request/response Pydantic models for the HTTP service surface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from failover_guard.core.errors import ErrorDetail
from failover_guard.models.provider import FailoverResult, FailoverStats, ProviderConfig
from failover_guard.resilience.circuit_breaker import CircuitBreakerState


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    service: str
    version: str
    status: str
    uptime_seconds: float


class GenerateRequest(BaseModel):
    """Input for POST /v1/generate."""

    request: str = Field(..., max_length=50000)
    preferred_provider: str | None = Field(default=None, max_length=100)


class GenerateResponse(BaseModel):
    success: bool
    provider: str
    response: str | None = None
    error: ErrorDetail | None = None
    latency: float
    retry_count: int
    failover_chain: list[str]

    @classmethod
    def from_result(cls, result: FailoverResult) -> GenerateResponse:
        return cls(
            success=result.success,
            provider=result.provider,
            response=result.response,
            error=result.error,
            latency=result.latency,
            retry_count=result.retry_count,
            failover_chain=list(result.failover_chain),
        )


class ProviderModel(BaseModel):
    id: str
    name: str
    endpoint: str
    priority: int
    is_available: bool
    timeout: float
    max_retries: int
    is_local: bool

    @classmethod
    def from_config(cls, config: ProviderConfig) -> ProviderModel:
        return cls(
            id=config.id,
            name=config.name,
            endpoint=config.endpoint,
            priority=config.priority,
            is_available=config.is_available,
            timeout=config.timeout,
            max_retries=config.max_retries,
            is_local=config.is_local,
        )


class AvailabilityUpdate(BaseModel):
    """Input for PUT /v1/providers/{provider_id}/availability."""

    available: bool


class CircuitStateModel(BaseModel):
    provider: str
    state: str
    failures: int
    last_failure_time: float | None = None
    open_until: float | None = None

    @classmethod
    def from_state(cls, state: CircuitBreakerState) -> CircuitStateModel:
        return cls(
            provider=state.provider,
            state=state.state.value,
            failures=state.failures,
            last_failure_time=state.last_failure_time,
            open_until=state.open_until,
        )


class StatsResponse(BaseModel):
    total_requests: int
    successful_requests: int
    failed_requests: int
    failover_events: int
    average_latency: float

    @classmethod
    def from_stats(cls, stats: FailoverStats) -> StatsResponse:
        return cls(
            total_requests=stats.total_requests,
            successful_requests=stats.successful_requests,
            failed_requests=stats.failed_requests,
            failover_events=stats.failover_events,
            average_latency=stats.average_latency,
        )


class ConfigUpdate(BaseModel):
    """Partial policy update for PATCH /v1/config; omitted fields are kept."""

    max_total_retries: int | None = None
    circuit_breaker_threshold: int | None = None
    circuit_breaker_timeout: float | None = None
    health_check_interval: float | None = None

    model_config = {"extra": "forbid"}
