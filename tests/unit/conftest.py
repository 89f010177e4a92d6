"""Shared fixtures: scripted provider caller and a manual clock."""

from __future__ import annotations

import asyncio

import pytest

from failover_guard.core.config import FailoverConfig
from failover_guard.models.provider import ProviderConfig, ProviderResponse, default_providers
from failover_guard.orchestrator import FailoverGuard


class StubCaller:
    """Provider caller scripted per provider id.

    An outcome is ``True``/``False``, a ``ProviderResponse``, an exception
    instance (raised), a number (seconds to hang), or a list of those
    consumed one per call (the last entry repeats).
    """

    def __init__(self, **outcomes) -> None:
        self.outcomes: dict[str, object] = dict(outcomes)
        self.calls: list[tuple[str, str]] = []

    def set(self, provider_id: str, outcome: object) -> None:
        self.outcomes[provider_id] = outcome

    def calls_to(self, provider_id: str) -> int:
        return sum(1 for pid, _ in self.calls if pid == provider_id)

    async def __call__(self, provider: ProviderConfig, request: str) -> ProviderResponse:
        self.calls.append((provider.id, request))
        outcome = self.outcomes.get(provider.id, True)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, ProviderResponse):
            return outcome
        if isinstance(outcome, bool):
            if outcome:
                return ProviderResponse(success=True, response=f"Response from {provider.name}")
            return ProviderResponse(success=False)
        await asyncio.sleep(float(outcome))
        return ProviderResponse(success=True, response="late")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def _make_provider(provider_id: str, priority: int, **kwargs) -> ProviderConfig:
    kwargs.setdefault("max_retries", 1)
    kwargs.setdefault("timeout", 1.0)
    return ProviderConfig(
        id=provider_id,
        name=provider_id.title(),
        endpoint=f"http://{provider_id}.test/v1/chat",
        priority=priority,
        **kwargs,
    )


@pytest.fixture
def make_provider():
    """Factory for test providers with a 1s timeout and one attempt."""
    return _make_provider


@pytest.fixture
def stub() -> StubCaller:
    return StubCaller()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def guard(stub: StubCaller, clock: FakeClock) -> FailoverGuard:
    """Guard with the default seed providers and a generous retry budget."""
    return FailoverGuard(
        stub,
        config=FailoverConfig(max_total_retries=20),
        providers=default_providers(),
        clock=clock,
    )
