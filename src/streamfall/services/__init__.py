"""Infrastructure services for streamfall.

Public API:
    CredentialStore - Active and fallback credentials per provider
    SchedulerRegistry, RequestScheduler - Priority-aware request pacing
    RetryPolicy - Retry classification and backoff
    ProxyGateway - Relay routing for outbound requests
    EventBus - User-facing notifications

Protocols (for dependency injection):
    TokenStorage - Host-owned key-value store for credentials
    TokenProbe - Coroutine function checking a token

The fallback chain lives in ``streamfall.services.resolver``. It depends
on the provider clients, which depend on this package, so it is not
re-exported here.
"""

from streamfall.services.credentials import CredentialStore
from streamfall.services.events import EventBus
from streamfall.services.protocols import (
    InMemoryTokenStorage,
    TokenProbe,
    TokenStorage,
)
from streamfall.services.proxy import ProxyGateway
from streamfall.services.retry import RetryPolicy
from streamfall.services.scheduler import RequestScheduler, SchedulerRegistry

__all__ = [
    "CredentialStore",
    "EventBus",
    "InMemoryTokenStorage",
    "ProxyGateway",
    "RequestScheduler",
    "RetryPolicy",
    "SchedulerRegistry",
    "TokenProbe",
    "TokenStorage",
]
