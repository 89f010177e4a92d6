"""Out-of-band liveness probing for registered providers.

Probes go through the same caller contract as real requests; their
results only update ``ProviderConfig.is_available`` and are never
returned to ``execute_with_failover`` callers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from failover_guard.provider_dispatcher import ProviderCaller
from failover_guard.provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)

PROBE_REQUEST = "ping"


class HealthChecker:
    """Probe-and-update for provider availability.

    Args:
        registry: Provider registry whose availability flags are updated.
        caller:   Provider call-out used for probes.
        interval: Returns the current probe cadence in seconds; read
                  before every sleep so policy changes apply live.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        caller: ProviderCaller,
        interval: Callable[[], float],
    ) -> None:
        self._registry = registry
        self._caller = caller
        self._interval = interval
        self._task: asyncio.Task | None = None

    async def check_provider_health(self, provider_id: str) -> bool:
        """Send one probe; any failure, timeout or exception is unhealthy."""
        provider = self._registry.get(provider_id)
        if provider is None:
            return False
        try:
            result = await asyncio.wait_for(self._caller(provider, PROBE_REQUEST), timeout=provider.timeout)
        except Exception as exc:
            logger.debug("Health probe for %s failed: %s", provider_id, exc)
            return False
        return result.success

    async def run_health_checks(self) -> dict[str, bool]:
        """Probe every registered provider and update its availability."""
        ids = self._registry.provider_ids()
        outcomes = await asyncio.gather(*(self.check_provider_health(pid) for pid in ids))
        results = dict(zip(ids, outcomes))
        for provider_id, healthy in results.items():
            provider = self._registry.get(provider_id)
            if provider is not None and provider.is_available != healthy:
                logger.info(
                    "Provider %s is now %s",
                    provider_id,
                    "available" if healthy else "unavailable",
                )
            self._registry.set_availability(provider_id, healthy)
        return results

    # ── Periodic loop ───────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background probe loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_health_checks()
            except Exception:
                logger.exception("Periodic health check failed")
            await asyncio.sleep(self._interval())
