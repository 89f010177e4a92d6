"""FailoverGuard: ordered multi-provider execution with circuit breakers.

Routes one generation request across the registered AI providers in
priority order.  Each candidate gets its own retry budget, bounded by a
global attempt ceiling; consistently failing providers are skipped via
their circuit breaker; the static ``fallback`` provider sits last in the
default order.  ``execute_with_failover`` never raises for provider
failures; every outcome is encoded in the returned ``FailoverResult``.

Candidates and retries are attempted one at a time, never in parallel.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable

from failover_guard.core.config import FailoverConfig, Settings
from failover_guard.core.errors import (
    CircuitOpenError,
    ErrorDetail,
    ProviderCallError,
    ProvidersExhaustedError,
    ProviderTimeoutError,
)
from failover_guard.events import CircuitOpenListener, FailoverListener, ListenerRegistry
from failover_guard.health_checker import HealthChecker
from failover_guard.models.provider import (
    NO_PROVIDER,
    FailoverResult,
    FailoverStats,
    ProviderConfig,
    ProviderResponse,
    StatsCounters,
    default_providers,
)
from failover_guard.provider_dispatcher import HttpProviderCaller, ProviderCaller
from failover_guard.provider_registry import ProviderRegistry
from failover_guard.resilience.circuit_breaker import (
    CircuitBreakerBank,
    CircuitBreakerState,
    Clock,
)

logger = logging.getLogger(__name__)


class FailoverGuard:
    """Service object owning the registry, breakers, listeners and stats.

    Construct once per process and share the instance with every caller.

    Args:
        caller:    Provider call-out (see ``ProviderCaller``).
        config:    Initial failover policy (defaults to ``FailoverConfig()``).
        providers: Seed providers; ``None`` registers ``default_providers()``.
        clock:     Monotonic time source for the circuit breakers.
    """

    def __init__(
        self,
        caller: ProviderCaller,
        *,
        config: FailoverConfig | None = None,
        providers: Iterable[ProviderConfig] | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._caller = caller
        self._config = config or FailoverConfig()
        self._stats = StatsCounters()

        self._failover_listeners = ListenerRegistry("failover")
        self._circuit_open_listeners = ListenerRegistry("circuit_open")

        self._registry = ProviderRegistry()
        self._breakers = CircuitBreakerBank(
            failure_threshold=self._config.circuit_breaker_threshold,
            recovery_timeout=self._config.circuit_breaker_timeout,
            clock=clock,
            on_open=self._circuit_open_listeners.emit,
        )
        self._health = HealthChecker(
            self._registry,
            caller,
            interval=lambda: self._config.health_check_interval,
        )

        for provider in default_providers() if providers is None else providers:
            self.register_provider(provider)

    @classmethod
    def from_settings(cls, settings: Settings, caller: ProviderCaller | None = None) -> FailoverGuard:
        """Build a guard whose policy, seed providers and transport come from *settings*."""
        return cls(
            caller or HttpProviderCaller.from_settings(settings),
            config=FailoverConfig.from_settings(settings),
            providers=default_providers(settings),
        )

    # ── Provider management ─────────────────────────────────────────

    def register_provider(self, config: ProviderConfig) -> None:
        """Insert or replace a provider; its breaker starts CLOSED."""
        self._registry.register(config)
        self._breakers.reinitialize(config.id)

    def get_provider(self, provider_id: str) -> ProviderConfig | None:
        return self._registry.get(provider_id)

    def get_all_providers(self) -> list[ProviderConfig]:
        """Providers in default failover order (ascending priority)."""
        return self._registry.list_all()

    def set_provider_availability(self, provider_id: str, available: bool) -> bool:
        """Toggle availability without touching circuit state."""
        return self._registry.set_availability(provider_id, available)

    # ── Circuit breakers ────────────────────────────────────────────

    def get_circuit_state(self, provider_id: str) -> CircuitBreakerState:
        return self._breakers.snapshot(provider_id)

    def get_all_circuit_states(self) -> list[CircuitBreakerState]:
        return self._breakers.all_snapshots()

    async def reset_circuit(self, provider_id: str) -> None:
        """Force the provider's circuit CLOSED with zero failures."""
        await self._breakers.reset(provider_id)

    # ── Health checks ───────────────────────────────────────────────

    async def check_provider_health(self, provider_id: str) -> bool:
        return await self._health.check_provider_health(provider_id)

    async def run_health_checks(self) -> dict[str, bool]:
        return await self._health.run_health_checks()

    def start_health_checks(self) -> None:
        """Probe all providers every ``health_check_interval`` seconds."""
        self._health.start()

    async def stop_health_checks(self) -> None:
        await self._health.stop()

    # ── Events ──────────────────────────────────────────────────────

    def on_failover(self, callback: FailoverListener) -> Callable[[], None]:
        """Subscribe to ``(from_provider, to_provider, reason)``; returns a disposer."""
        return self._failover_listeners.subscribe(callback)

    def on_circuit_open(self, callback: CircuitOpenListener) -> Callable[[], None]:
        """Subscribe to ``(provider)`` circuit openings; returns a disposer."""
        return self._circuit_open_listeners.subscribe(callback)

    # ── Stats & config ──────────────────────────────────────────────

    def get_failover_stats(self) -> FailoverStats:
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        self._stats = StatsCounters()

    def get_config(self) -> FailoverConfig:
        return self._config

    def set_config(self, **overrides: object) -> FailoverConfig:
        """Merge *overrides* into the policy.

        Raises ``ConfigurationError`` for unknown keys or invalid values,
        in which case the current policy is kept.
        """
        self._config = self._config.merged(**overrides)
        self._breakers.update_policy(
            self._config.circuit_breaker_threshold,
            self._config.circuit_breaker_timeout,
        )
        return self._config

    # ── Execution ───────────────────────────────────────────────────

    def _candidates(self, preferred_provider: str | None) -> list[ProviderConfig]:
        """Available providers allowing at least one attempt, *preferred_provider* first."""
        candidates = [p for p in self._registry.list_all() if p.is_available and p.max_retries > 0]
        if preferred_provider is not None:
            for index, provider in enumerate(candidates):
                if provider.id == preferred_provider:
                    candidates.insert(0, candidates.pop(index))
                    break
        return candidates

    async def _call_provider(self, provider: ProviderConfig, request: str) -> ProviderResponse:
        try:
            return await asyncio.wait_for(self._caller(provider, request), timeout=provider.timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(provider.id, provider.timeout) from None

    async def execute_with_failover(
        self,
        request: str,
        preferred_provider: str | None = None,
    ) -> FailoverResult:
        """Run *request* against the providers with ordered fallback.

        Args:
            request: Prompt text, passed to the provider caller as-is.
            preferred_provider: Provider to try first when it is available.

        Returns:
            A ``FailoverResult``.  On total exhaustion ``provider`` is
            ``"none"`` and ``error.code`` is ``ALL_PROVIDERS_FAILED``.
        """
        self._stats.total_requests += 1
        start = time.perf_counter()
        config = self._config

        retry_count = 0
        chain: list[str] = []
        last_failed: str | None = None
        last_error: Exception | None = None

        for provider in self._candidates(preferred_provider):
            if retry_count >= config.max_total_retries:
                break

            breaker = self._breakers.get(provider.id)
            admission = await breaker.allow_request()
            if not admission:
                logger.debug("Skipping %s: circuit open", provider.id)
                if last_error is None:
                    last_error = CircuitOpenError(provider.id, breaker.retry_after())
                continue

            if last_failed is not None:
                reason = str(last_error) if last_error else "Provider failed"
                self._stats.failover_events += 1
                logger.info("Failing over from %s to %s: %s", last_failed, provider.id, reason)
                self._failover_listeners.emit(last_failed, provider.id, reason)

            chain.append(provider.id)
            ticket = admission.ticket

            for attempt in range(provider.max_retries):
                if retry_count >= config.max_total_retries:
                    break
                retry_count += 1

                try:
                    reply = await self._call_provider(provider, request)
                except asyncio.CancelledError:
                    if ticket is not None:
                        breaker.release_probe(ticket)
                    raise
                except Exception as exc:
                    last_error = exc
                else:
                    if reply.success:
                        await breaker.record_success(ticket)
                        latency = time.perf_counter() - start
                        self._stats.successful_requests += 1
                        self._stats.total_latency += latency
                        return FailoverResult(
                            success=True,
                            provider=provider.id,
                            response=reply.response,
                            latency=latency,
                            retry_count=retry_count,
                            failover_chain=tuple(chain),
                        )
                    last_error = ProviderCallError(provider.id, "unsuccessful response")

                await breaker.record_failure(ticket)
                ticket = None
                logger.warning(
                    "Attempt %d/%d on %s failed: %s",
                    attempt + 1,
                    provider.max_retries,
                    provider.id,
                    last_error,
                )

            last_failed = provider.id

        latency = time.perf_counter() - start
        self._stats.failed_requests += 1
        self._stats.total_latency += latency
        logger.error(
            "All providers failed after %d attempts (chain: %s, last error: %s)",
            retry_count,
            chain,
            last_error,
        )
        return FailoverResult(
            success=False,
            provider=NO_PROVIDER,
            error=ErrorDetail.from_exception(ProvidersExhaustedError(chain, last_error)),
            latency=latency,
            retry_count=retry_count,
            failover_chain=tuple(chain),
        )

    async def aclose(self) -> None:
        """Stop background probing and close the caller if it holds resources."""
        await self._health.stop()
        close = getattr(self._caller, "aclose", None)
        if close is not None:
            await close()
