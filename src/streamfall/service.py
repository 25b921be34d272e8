"""Public facade over the resolution core."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from types import TracebackType

from streamfall.models.enums import Platform
from streamfall.models.events import Notification
from streamfall.models.track import ResolutionResult, Track
from streamfall.providers.base import ProviderClient
from streamfall.services.credentials import CredentialStore
from streamfall.services.events import EventBus
from streamfall.services.proxy import ProxyGateway
from streamfall.services.resolver import FallbackResolver
from streamfall.services.scheduler import SchedulerRegistry

logger = logging.getLogger(__name__)


def _platform(provider: str | Platform) -> Platform:
    try:
        return Platform(provider)
    except ValueError as e:
        raise ValueError(f"Unknown provider: {provider}") from e


class StreamService:
    """Resolution and search API consumed by the host application.

    Build one with ``streamfall.create_service()`` and close it with
    ``aclose()`` (or use it as an async context manager) so the
    dispatch loops and the HTTP client are released.
    """

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        schedulers: SchedulerRegistry,
        gateway: ProxyGateway,
        providers: Mapping[Platform, ProviderClient],
        resolver: FallbackResolver,
        events: EventBus,
    ) -> None:
        self._credentials = credentials
        self._schedulers = schedulers
        self._gateway = gateway
        self._providers = dict(providers)
        self._resolver = resolver
        self._events = events

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    @property
    def gateway(self) -> ProxyGateway:
        return self._gateway

    @property
    def events(self) -> EventBus:
        return self._events

    def provider(self, provider: str | Platform) -> ProviderClient | None:
        """Get the client for a provider, if one exists."""
        return self._providers.get(_platform(provider))

    # ------------------------------------------------------------------
    # Resolution and search
    # ------------------------------------------------------------------

    async def resolve_stream(self, track: Track) -> ResolutionResult:
        """Resolve a track to a playable stream. Never raises provider errors."""
        return await self._resolver.resolve(track)

    async def search(
        self,
        query: str,
        providers: Iterable[str | Platform] | None = None,
        limit: int = 20,
    ) -> list[Track]:
        """Search several providers concurrently.

        Args:
            query: Free-text query.
            providers: Providers to search. All available ones by default.
            limit: Maximum results per provider.

        Returns:
            Results grouped by provider, in the requested provider order.
            Providers that fail or are unavailable contribute nothing.
        """
        if providers is None:
            clients = [c for c in self._providers.values() if c.is_available()]
        else:
            clients = [
                client
                for p in providers
                if (client := self._providers.get(_platform(p))) is not None
            ]
        if not clients:
            return []

        results = await asyncio.gather(*(c.search(query, limit) for c in clients))
        tracks = [track for batch in results for track in batch]
        logger.debug(
            "Search '%s' returned %d tracks from %d providers",
            query,
            len(tracks),
            len(clients),
        )
        return tracks

    # ------------------------------------------------------------------
    # Credentials and providers
    # ------------------------------------------------------------------

    def set_credential(self, provider: str | Platform, token: str) -> None:
        """Set a user-supplied credential, preferred over builtins.

        Raises:
            ValueError: If the provider is unknown or the token is empty.
        """
        platform = _platform(provider)
        self._credentials.set_user_token(platform, token)
        self._events.notify_credential_updated(platform.value)

    def clear_credential(self, provider: str | Platform) -> None:
        """Forget a user-supplied credential."""
        self._credentials.clear_user_token(_platform(provider))

    def is_provider_available(self, provider: str | Platform) -> bool:
        """Whether a provider is enabled and has a credential.

        Unknown provider names are reported unavailable.
        """
        try:
            platform = _platform(provider)
        except ValueError:
            return False
        client = self._providers.get(platform)
        return client is not None and client.is_available()

    def set_provider_enabled(self, provider: str | Platform, enabled: bool) -> None:
        self._credentials.set_enabled(_platform(provider), enabled)

    async def verify_credential(self, provider: str | Platform) -> bool:
        """Check the provider's active credential (cached for a short while)."""
        platform = _platform(provider)
        client = self._providers.get(platform)
        if client is None:
            return False
        return await self._credentials.verify(platform, client.verify_token)

    def set_service_proxy(self, provider: str | Platform, enabled: bool) -> None:
        """Route a provider's requests through relay proxies."""
        self._gateway.set_service_proxy(_platform(provider).value, enabled)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_listener(
        self, listener: Callable[[Notification], None]
    ) -> Callable[[], None]:
        """Register a notification listener. Returns its remover."""
        return self._events.add_listener(listener)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[Notification]]:
        """Subscribe to notifications through a queue."""
        async with self._events.subscribe() as queue:
            yield queue

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop the dispatch loops and close the HTTP client."""
        await self._schedulers.close()
        await self._gateway.aclose()

    async def __aenter__(self) -> StreamService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
