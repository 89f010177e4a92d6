"""Settings and failover policy.

Centralized configuration for the failover guard service.
All settings are loaded from environment variables with the
``FAILOVER_GUARD_`` prefix.  The tunable failover policy lives in
``FailoverConfig`` and is derived from ``Settings`` at startup.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from failover_guard.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Failover guard configuration.

    All fields can be overridden by environment variables prefixed with
    ``FAILOVER_GUARD_``.  For example, ``FAILOVER_GUARD_PORT=9999``
    overrides the default port.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "ai-failover-guard"
    SERVICE_VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8090
    LOG_LEVEL: str = "INFO"

    # ── Provider endpoints ──────────────────────────────────────────
    LOCAL_LLM_URL: str = "http://localhost:8000/v1/chat"
    LOCAL_LLM_MODEL: str = ""
    OPENAI_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-4"
    OPENAI_API_KEY: str = ""
    ANTHROPIC_URL: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_API_VERSION: str = "2023-06-01"

    # Canned reply served by the internal fallback provider
    FALLBACK_RESPONSE: str = (
        "Sorry, our assistant is temporarily unavailable. A team member will get back to you shortly."
    )

    # ── Failover policy ─────────────────────────────────────────────
    MAX_TOTAL_RETRIES: int = 3  # Attempt ceiling across all providers per request
    CIRCUIT_BREAKER_THRESHOLD: int = 5  # Consecutive failures before OPEN
    CIRCUIT_BREAKER_TIMEOUT_SECONDS: float = 30.0  # Seconds before HALF_OPEN probe
    HEALTH_CHECK_INTERVAL_SECONDS: float = 10.0
    HEALTH_CHECKS_ENABLED: bool = False  # Background probing from the app lifespan

    model_config = {
        "env_prefix": "FAILOVER_GUARD_",
    }


class FailoverConfig(BaseModel):
    """Tunable failover policy, read by the orchestrator on every call.

    Attributes:
        max_total_retries:         Global attempt ceiling for one request.
        circuit_breaker_threshold: Consecutive failures before a circuit opens.
        circuit_breaker_timeout:   Seconds an open circuit stays open.
        health_check_interval:     Seconds between periodic health checks.
    """

    max_total_retries: int = Field(default=3, ge=1)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_timeout: float = Field(default=30.0, gt=0)
    health_check_interval: float = Field(default=10.0, gt=0)

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @classmethod
    def from_settings(cls, settings: Settings) -> FailoverConfig:
        return cls(
            max_total_retries=settings.MAX_TOTAL_RETRIES,
            circuit_breaker_threshold=settings.CIRCUIT_BREAKER_THRESHOLD,
            circuit_breaker_timeout=settings.CIRCUIT_BREAKER_TIMEOUT_SECONDS,
            health_check_interval=settings.HEALTH_CHECK_INTERVAL_SECONDS,
        )

    def merged(self, **overrides: object) -> FailoverConfig:
        """Return a validated copy with *overrides* applied.

        Raises ``ConfigurationError`` for unknown keys or invalid values.
        The receiver is never mutated.
        """
        try:
            return FailoverConfig.model_validate({**self.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
