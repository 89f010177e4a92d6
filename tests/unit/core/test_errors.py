"""Error taxonomy and ErrorDetail mapping tests."""

import pytest

from failover_guard.core.errors import (
    CircuitOpenError,
    ConfigurationError,
    ErrorDetail,
    FailoverGuardError,
    ProviderCallError,
    ProvidersExhaustedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

# ── Error hierarchy ────────────────────────────────────────────────────


class TestErrorHierarchy:
    """All custom errors inherit from FailoverGuardError."""

    @pytest.mark.parametrize(
        "cls",
        [ProviderCallError, ProviderUnavailableError, ProviderTimeoutError, CircuitOpenError, ProvidersExhaustedError],
    )
    def test_inherits_base(self, cls) -> None:
        assert issubclass(cls, FailoverGuardError)

    def test_transport_errors_are_call_errors(self) -> None:
        assert issubclass(ProviderTimeoutError, ProviderCallError)
        assert issubclass(ProviderUnavailableError, ProviderCallError)

    def test_provider_call_message(self) -> None:
        err = ProviderCallError("openai", "unsuccessful response")
        assert str(err) == "Provider call failed: openai (unsuccessful response)"
        assert err.provider_id == "openai"

    def test_unavailable_default_detail(self) -> None:
        err = ProviderUnavailableError("local")
        assert err.detail == "connection failed"

    def test_timeout_message(self) -> None:
        err = ProviderTimeoutError("local", 5.0)
        assert "local" in str(err)
        assert err.timeout_seconds == 5.0

    def test_circuit_open_clamps_retry_after(self) -> None:
        err = CircuitOpenError("openai", -3.0)
        assert err.retry_after == 0.0

    def test_exhausted_lists_attempts(self) -> None:
        last = ProviderCallError("fallback")
        err = ProvidersExhaustedError(["local", "fallback"], last)
        assert str(err) == "All providers failed (tried: local, fallback)"
        assert err.attempted == ("local", "fallback")
        assert err.last_error is last

    def test_exhausted_without_attempts(self) -> None:
        assert str(ProvidersExhaustedError()) == "All providers failed"


# ── ErrorDetail ────────────────────────────────────────────────────────


class TestErrorDetail:
    @pytest.mark.parametrize(
        "exc,code",
        [
            (ProvidersExhaustedError(["local"]), "ALL_PROVIDERS_FAILED"),
            (CircuitOpenError("local", 10.0), "CIRCUIT_OPEN"),
            (ProviderTimeoutError("local", 5.0), "PROVIDER_TIMEOUT"),
            (ProviderUnavailableError("local"), "PROVIDER_UNAVAILABLE"),
            (ProviderCallError("local"), "PROVIDER_ERROR"),
            (ConfigurationError("bad"), "INVALID_CONFIG"),
            (FailoverGuardError("misc"), "GUARD_ERROR"),
        ],
    )
    def test_code_mapping(self, exc, code) -> None:
        detail = ErrorDetail.from_exception(exc)
        assert detail.code == code
        assert detail.message == str(exc)

    def test_unknown_exception_hides_details(self) -> None:
        detail = ErrorDetail.from_exception(RuntimeError("secret db password in trace"))
        assert detail.code == "INTERNAL_ERROR"
        assert "secret" not in detail.message

    def test_serializes_to_code_and_message(self) -> None:
        detail = ErrorDetail(code="CIRCUIT_OPEN", message="open")
        assert detail.model_dump() == {"code": "CIRCUIT_OPEN", "message": "open"}
