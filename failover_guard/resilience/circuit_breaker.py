"""Async circuit breaker bank for AI providers.

Implements the standard three-state circuit breaker:

    CLOSED  →  (failure_threshold reached)  →  OPEN
    OPEN    →  (now > open_until)           →  HALF_OPEN
    HALF_OPEN → (probe succeeds)            →  CLOSED
    HALF_OPEN → (probe fails)               →  OPEN

The OPEN → HALF_OPEN transition is evaluated lazily in
``allow_request()`` against an injectable clock; there is no timer.
The caller admitted as the half-open probe receives a ticket; only
outcomes reported with that ticket close or reopen the circuit.
Each provider gets its own ``CircuitBreaker`` via ``CircuitBreakerBank``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
OpenListener = Callable[[str], None]


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerState:
    """Point-in-time view of one provider's breaker."""

    provider: str
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    last_failure_time: float | None = None
    open_until: float | None = None


@dataclass(frozen=True)
class Admission:
    """Result of ``allow_request``; truthy when the call may go through.

    ``ticket`` is set only for the caller holding the half-open probe slot.
    """

    allowed: bool
    ticket: int | None = None

    @property
    def is_probe(self) -> bool:
        return self.ticket is not None

    def __bool__(self) -> bool:
        return self.allowed


DENIED = Admission(allowed=False)
ALLOWED = Admission(allowed=True)


class CircuitBreaker:
    """Async-safe circuit breaker for a single provider.

    Args:
        name:              Provider identity.
        failure_threshold: Consecutive failures before opening the circuit.
        recovery_timeout:  Seconds the circuit stays OPEN before probing.
        clock:             Monotonic time source, injectable for tests.
        on_open:           Called with *name* on every transition to OPEN.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        clock: Clock = time.monotonic,
        on_open: OpenListener | None = None,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._on_open = on_open

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._open_until: float | None = None
        self._probe_ticket: int | None = None
        self._tickets = itertools.count(1)
        self._lock = asyncio.Lock()

    # ── Public properties ────────────────────────────────────────────

    @property
    def state(self) -> CircuitState:
        """Stored state; OPEN → HALF_OPEN only happens in ``allow_request``."""
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def retry_after(self) -> float:
        """Seconds until an OPEN circuit may be probed (0 otherwise)."""
        if self._state != CircuitState.OPEN or self._open_until is None:
            return 0.0
        return max(0.0, self._open_until - self._clock())

    # ── State machine ────────────────────────────────────────────────

    async def allow_request(self) -> Admission:
        """Return whether an attempt may go through right now.

        An OPEN circuit whose ``open_until`` has passed flips to HALF_OPEN
        and admits the caller as the single probe.  A HALF_OPEN circuit
        admits a new probe only once the previous ticket is settled.
        """
        async with self._lock:
            if self._state == CircuitState.CLOSED:
                return ALLOWED

            if self._state == CircuitState.OPEN:
                if self._open_until is None or self._clock() <= self._open_until:
                    return DENIED
                logger.info("Circuit '%s' transitioning to half-open", self.name)
                self._state = CircuitState.HALF_OPEN

            if self._probe_ticket is not None:
                return DENIED
            self._probe_ticket = next(self._tickets)
            return Admission(allowed=True, ticket=self._probe_ticket)

    def _holds_probe(self, ticket: int | None) -> bool:
        return ticket is not None and ticket == self._probe_ticket

    async def record_success(self, ticket: int | None = None) -> None:
        """Record a successful call.

        The probe's success closes the circuit.  Without a valid ticket a
        success only resets the count of a CLOSED circuit.
        """
        async with self._lock:
            if self._holds_probe(ticket):
                logger.info("Circuit '%s' closing after successful probe", self.name)
                self._state = CircuitState.CLOSED
                self._open_until = None
                self._probe_ticket = None
                self._failure_count = 0
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    async def record_failure(self, ticket: int | None = None) -> None:
        """Record a failed call, opening the circuit at the threshold.

        The probe's failure reopens the circuit immediately.
        """
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._holds_probe(ticket):
                logger.warning("Circuit '%s' reopening after failed probe", self.name)
                self._probe_ticket = None
                self._open()
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                logger.warning(
                    "Circuit '%s' opening after %d consecutive failures",
                    self.name,
                    self._failure_count,
                )
                self._open()

    def release_probe(self, ticket: int) -> None:
        """Give up the half-open probe slot without recording an outcome."""
        if self._holds_probe(ticket):
            self._probe_ticket = None

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._open_until = self._clock() + self.recovery_timeout
        if self._on_open is not None:
            self._on_open(self.name)

    async def reset(self) -> None:
        """Force-reset the circuit breaker to CLOSED state."""
        async with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._open_until = None
            self._probe_ticket = None
        logger.info("Circuit '%s' reset to closed", self.name)

    def snapshot(self) -> CircuitBreakerState:
        return CircuitBreakerState(
            provider=self.name,
            state=self._state,
            failures=self._failure_count,
            last_failure_time=self._last_failure_time,
            open_until=self._open_until,
        )


class CircuitBreakerBank:
    """Manages per-provider ``CircuitBreaker`` instances.

    Usage::

        bank = CircuitBreakerBank(failure_threshold=5, recovery_timeout=30.0)
        cb = bank.get("openai")
        admission = await cb.allow_request()
        if admission:
            # ... call provider ...
            await cb.record_success(admission.ticket)
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        clock: Clock = time.monotonic,
        on_open: OpenListener | None = None,
    ) -> None:
        self._threshold = failure_threshold
        self._recovery = recovery_timeout
        self._clock = clock
        self._on_open = on_open
        self._breakers: dict[str, CircuitBreaker] = {}

    def _create(self, provider_id: str) -> CircuitBreaker:
        return CircuitBreaker(
            name=provider_id,
            failure_threshold=self._threshold,
            recovery_timeout=self._recovery,
            clock=self._clock,
            on_open=self._on_open,
        )

    def get(self, provider_id: str) -> CircuitBreaker:
        """Return (or create) the circuit breaker for *provider_id*."""
        if provider_id not in self._breakers:
            self._breakers[provider_id] = self._create(provider_id)
        return self._breakers[provider_id]

    def reinitialize(self, provider_id: str) -> CircuitBreaker:
        """Replace the breaker for *provider_id* with a fresh CLOSED one."""
        self._breakers[provider_id] = self._create(provider_id)
        return self._breakers[provider_id]

    def snapshot(self, provider_id: str) -> CircuitBreakerState:
        """Return the breaker state; unknown providers read as CLOSED."""
        breaker = self._breakers.get(provider_id)
        if breaker is None:
            return CircuitBreakerState(provider=provider_id)
        return breaker.snapshot()

    async def reset(self, provider_id: str) -> None:
        breaker = self._breakers.get(provider_id)
        if breaker is not None:
            await breaker.reset()

    def update_policy(self, failure_threshold: int, recovery_timeout: float) -> None:
        """Apply new thresholds to existing and future breakers."""
        self._threshold = failure_threshold
        self._recovery = recovery_timeout
        for cb in self._breakers.values():
            cb.failure_threshold = failure_threshold
            cb.recovery_timeout = recovery_timeout

    def all_snapshots(self) -> list[CircuitBreakerState]:
        """Return snapshots for every known breaker."""
        return [cb.snapshot() for cb in self._breakers.values()]
