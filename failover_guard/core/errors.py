"""Error taxonomy for the failover guard.

Provider-level failures are raised by the transport and absorbed by the
orchestrator, which converts them into breaker updates and failover
transitions.  ``ErrorDetail`` is the structured failure reason carried by
a ``FailoverResult``.
"""

from pydantic import BaseModel


class FailoverGuardError(Exception):
    """Base exception for all failover guard errors."""


class ProviderCallError(FailoverGuardError):
    """Raised (or recorded) when a provider answers without a usable response."""

    def __init__(self, provider_id: str, detail: str = "") -> None:
        self.provider_id = provider_id
        self.detail = detail
        msg = f"Provider call failed: {provider_id}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ProviderUnavailableError(ProviderCallError):
    """Raised when the connection to a provider endpoint fails."""

    def __init__(self, provider_id: str, detail: str = "") -> None:
        super().__init__(provider_id, detail or "connection failed")


class ProviderTimeoutError(ProviderCallError):
    """Raised when a provider attempt exceeds its configured timeout."""

    def __init__(self, provider_id: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(provider_id, f"timed out after {timeout_seconds}s")


class CircuitOpenError(FailoverGuardError):
    """Raised when a call is rejected because the provider's circuit is open."""

    def __init__(self, provider_id: str, retry_after: float) -> None:
        self.provider_id = provider_id
        self.retry_after = max(0.0, retry_after)
        super().__init__(f"Circuit open for '{provider_id}', retry after {self.retry_after:.1f}s")


class ProvidersExhaustedError(FailoverGuardError):
    """Every candidate provider failed or the retry budget ran out."""

    def __init__(self, attempted: list[str] | tuple[str, ...] = (), last_error: Exception | None = None) -> None:
        self.attempted = tuple(attempted)
        self.last_error = last_error
        msg = "All providers failed"
        if self.attempted:
            msg += f" (tried: {', '.join(self.attempted)})"
        super().__init__(msg)


class ConfigurationError(FailoverGuardError, ValueError):
    """Raised when a policy update contains unknown keys or invalid values."""


class ErrorDetail(BaseModel):
    """Structured failure reason: ``{"code": str, "message": str}``."""

    code: str
    message: str

    model_config = {"frozen": True}

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorDetail":
        """Create from an exception, mapping to machine-readable codes.

        Never leaks internal details for unknown exceptions.
        """
        if isinstance(exc, ProvidersExhaustedError):
            return cls(code="ALL_PROVIDERS_FAILED", message=str(exc))
        if isinstance(exc, CircuitOpenError):
            return cls(code="CIRCUIT_OPEN", message=str(exc))
        if isinstance(exc, ProviderTimeoutError):
            return cls(code="PROVIDER_TIMEOUT", message=str(exc))
        if isinstance(exc, ProviderUnavailableError):
            return cls(code="PROVIDER_UNAVAILABLE", message=str(exc))
        if isinstance(exc, ProviderCallError):
            return cls(code="PROVIDER_ERROR", message=str(exc))
        if isinstance(exc, ConfigurationError):
            return cls(code="INVALID_CONFIG", message=str(exc))
        if isinstance(exc, FailoverGuardError):
            return cls(code="GUARD_ERROR", message=str(exc))
        return cls(code="INTERNAL_ERROR", message="An internal error occurred")
