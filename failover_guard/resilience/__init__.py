"""Per-provider circuit breakers.

Keeps a consistently failing AI backend out of the candidate pool until
its recovery timeout elapses and a probe succeeds.
"""

from failover_guard.resilience.circuit_breaker import (
    Admission,
    CircuitBreaker,
    CircuitBreakerBank,
    CircuitBreakerState,
    CircuitState,
)

__all__ = [
    "Admission",
    "CircuitBreaker",
    "CircuitBreakerBank",
    "CircuitBreakerState",
    "CircuitState",
]
