"""FastAPI application entrypoint.

Exposes the ``FailoverGuard`` operations to a hosting chat/service layer:
request execution, provider availability, circuit state, health checks,
statistics and policy.  ``create_app`` builds the app around an injected
guard; the module-level ``app`` uses one built from ``Settings``.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response

from failover_guard.core.config import FailoverConfig, Settings
from failover_guard.core.errors import ConfigurationError
from failover_guard.models.schemas import (
    AvailabilityUpdate,
    CircuitStateModel,
    ConfigUpdate,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    ProviderModel,
    StatsResponse,
)
from failover_guard.orchestrator import FailoverGuard

logger = logging.getLogger(__name__)


def create_app(guard: FailoverGuard | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the service around *guard* (constructed from *settings* if omitted)."""
    settings = settings or Settings()
    guard = guard or FailoverGuard.from_settings(settings)
    logging.getLogger("failover_guard").setLevel(settings.LOG_LEVEL.upper())

    start_time = time.monotonic()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.HEALTH_CHECKS_ENABLED:
            guard.start_health_checks()
            logger.info(
                "Health checks running every %.1fs",
                guard.get_config().health_check_interval,
            )
        yield
        await guard.aclose()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.guard = guard

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        """Assign or preserve a unique request ID on every request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Return service health with name, version, status, and uptime."""
        return HealthResponse(
            service=settings.SERVICE_NAME,
            version=settings.SERVICE_VERSION,
            status="healthy",
            uptime_seconds=round(time.monotonic() - start_time, 2),
        )

    # ── Execution ───────────────────────────────────────────────────

    @app.post("/v1/generate", response_model=GenerateResponse)
    async def generate(body: GenerateRequest) -> GenerateResponse:
        result = await guard.execute_with_failover(body.request, body.preferred_provider)
        return GenerateResponse.from_result(result)

    # ── Providers ───────────────────────────────────────────────────

    @app.get("/v1/providers", response_model=list[ProviderModel])
    async def list_providers() -> list[ProviderModel]:
        return [ProviderModel.from_config(p) for p in guard.get_all_providers()]

    @app.put("/v1/providers/{provider_id}/availability", response_model=ProviderModel)
    async def set_availability(provider_id: str, body: AvailabilityUpdate) -> ProviderModel:
        if not guard.set_provider_availability(provider_id, body.available):
            raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_id}")
        return ProviderModel.from_config(guard.get_provider(provider_id))

    # ── Circuits ────────────────────────────────────────────────────

    @app.get("/v1/circuits", response_model=list[CircuitStateModel])
    async def list_circuits() -> list[CircuitStateModel]:
        return [CircuitStateModel.from_state(s) for s in guard.get_all_circuit_states()]

    @app.get("/v1/circuits/{provider_id}", response_model=CircuitStateModel)
    async def get_circuit(provider_id: str) -> CircuitStateModel:
        return CircuitStateModel.from_state(guard.get_circuit_state(provider_id))

    @app.post("/v1/circuits/{provider_id}/reset", response_model=CircuitStateModel)
    async def reset_circuit(provider_id: str) -> CircuitStateModel:
        await guard.reset_circuit(provider_id)
        logger.info("Circuit for %s reset by operator", provider_id)
        return CircuitStateModel.from_state(guard.get_circuit_state(provider_id))

    # ── Health checks, stats, config ────────────────────────────────

    @app.post("/v1/health-checks", response_model=dict[str, bool])
    async def run_health_checks() -> dict[str, bool]:
        return await guard.run_health_checks()

    @app.get("/v1/stats", response_model=StatsResponse)
    async def stats() -> StatsResponse:
        return StatsResponse.from_stats(guard.get_failover_stats())

    @app.get("/v1/config", response_model=FailoverConfig)
    async def get_config() -> FailoverConfig:
        return guard.get_config()

    @app.patch("/v1/config", response_model=FailoverConfig)
    async def update_config(body: ConfigUpdate) -> FailoverConfig:
        try:
            return guard.set_config(**body.model_dump(exclude_none=True))
        except ConfigurationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return app


app = create_app()
