"""AI provider failover guard.

Routes generation requests across local and cloud AI providers with
per-provider circuit breakers, retry budgets and ordered fallback.
"""

from failover_guard.core.config import FailoverConfig, Settings
from failover_guard.core.errors import ErrorDetail
from failover_guard.models.provider import (
    NO_PROVIDER,
    FailoverResult,
    FailoverStats,
    ProviderConfig,
    ProviderResponse,
    default_providers,
)
from failover_guard.orchestrator import FailoverGuard
from failover_guard.provider_dispatcher import HttpProviderCaller, ProviderCaller
from failover_guard.resilience import CircuitBreakerState, CircuitState

__all__ = [
    "NO_PROVIDER",
    "CircuitBreakerState",
    "CircuitState",
    "ErrorDetail",
    "FailoverConfig",
    "FailoverGuard",
    "FailoverResult",
    "FailoverStats",
    "HttpProviderCaller",
    "ProviderCaller",
    "ProviderConfig",
    "ProviderResponse",
    "Settings",
    "default_providers",
]
