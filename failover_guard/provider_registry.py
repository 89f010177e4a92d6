"""Provider registry.

Holds the canonical set of AI backends keyed by identity.  Enumeration
is sorted by priority; ties keep insertion order, which makes
``list_all()`` the default failover sequence.
"""

from __future__ import annotations

from collections.abc import Iterable

from failover_guard.models.provider import ProviderConfig


class ProviderRegistry:
    """In-memory registry of ``ProviderConfig`` objects.

    Args:
        providers: Optional seed configs, registered in order.
    """

    def __init__(self, providers: Iterable[ProviderConfig] = ()) -> None:
        self._providers: dict[str, ProviderConfig] = {}
        for config in providers:
            self.register(config)

    def register(self, config: ProviderConfig) -> None:
        """Insert *config*, or replace the provider with the same id.

        A replaced provider keeps its original insertion slot.
        """
        self._providers[config.id] = config

    def get(self, provider_id: str) -> ProviderConfig | None:
        """Return the ``ProviderConfig`` for *provider_id*, or ``None``."""
        return self._providers.get(provider_id)

    def list_all(self) -> list[ProviderConfig]:
        """Return all providers, ascending by priority."""
        return sorted(self._providers.values(), key=lambda p: p.priority)

    def set_availability(self, provider_id: str, available: bool) -> bool:
        """Toggle ``is_available`` in place; return ``False`` if unknown."""
        config = self._providers.get(provider_id)
        if config is None:
            return False
        config.is_available = available
        return True

    def provider_ids(self) -> list[str]:
        return list(self._providers)
