"""streamfall - Resolve tracks from many streaming backends into playable streams.

This library turns an abstract track reference into a playable stream URL
despite expiring credentials, per-provider rate limits, content
restrictions and outages. It rotates credentials, paces requests per
provider, routes through relay proxies and, when the original provider
cannot serve a track, finds the same song on another provider.

Designed for use as a library inside a player application. Rendering of
notifications, persistence and playback stay with the host.

Examples:
    Resolve a track:
    ```python
    from streamfall import Platform, Track, create_service

    async with create_service() as service:
        track = Track(id="yt-abc123", title="Midnight", artist="Nova",
                      duration=200, platform=Platform.YOUTUBE)
        result = await service.resolve_stream(track)
        if result.ok:
            play(result.stream_url)
    ```

    Search several providers:
    ```python
    tracks = await service.search("nova midnight", providers=["soundcloud", "vk"])
    ```
"""

from functools import partial

import httpx

from streamfall.config import (
    ProviderConfig,
    ProxyConfig,
    ResolverConfig,
    RetryConfig,
    SchedulerConfig,
    StreamfallConfig,
    TimeoutConfig,
)
from streamfall.exceptions import (
    AuthError,
    ContentUnavailableError,
    NetworkError,
    NoCredentialError,
    NoMatchError,
    RateLimitedError,
    StreamfallError,
    UpstreamError,
)
from streamfall.lib.matching import MatchScorer
from streamfall.models import (
    Credential,
    CredentialKind,
    FailureKind,
    Notification,
    NotificationKind,
    NotificationLevel,
    Platform,
    Priority,
    ResolutionResult,
    ResolutionSource,
    Track,
    TrackMetadata,
)
from streamfall.providers import ProviderClient, ProviderContext, create_providers
from streamfall.service import StreamService
from streamfall.services import (
    CredentialStore,
    EventBus,
    InMemoryTokenStorage,
    ProxyGateway,
    RetryPolicy,
    SchedulerRegistry,
    TokenStorage,
)
from streamfall.services.resolver import FallbackResolver
from streamfall.settings import Settings, configure_logging, get_settings


def create_service(
    settings: Settings | None = None,
    storage: TokenStorage | None = None,
    http_client: httpx.AsyncClient | None = None,
    *,
    config: StreamfallConfig | None = None,
) -> StreamService:
    """Create a fully wired stream service.

    This is the recommended way to use streamfall as a library. It builds
    the credential store, schedulers, proxy gateway, provider clients and
    fallback resolver, sharing one HTTP client between them.

    Args:
        settings: Environment settings. Loaded from ``STREAMFALL_*``
            variables when omitted.
        storage: Host key-value store for user tokens and rotation
            positions. In-memory when omitted.
        http_client: Shared HTTP client. Created (and closed by
            ``aclose()``) when omitted.
        config: Explicit configuration, overriding the one derived from
            settings.

    Returns:
        A configured StreamService. Must be closed with ``aclose()``.

    Examples:
        >>> service = create_service(storage=my_storage)
        >>> service.set_credential("yandex", token)
    """
    settings = settings or get_settings()
    config = config or settings.to_config()
    configure_logging(settings.log_level)

    credentials = CredentialStore(
        {platform: p.fallback_tokens for platform, p in config.providers.items()},
        storage,
        verify_cache_seconds=config.verify_cache_seconds,
        verify_timeout=config.timeouts.verify,
    )
    for platform, provider_config in config.providers.items():
        if not provider_config.enabled:
            credentials.set_enabled(platform, False)
    for platform, token in settings.user_tokens().items():
        active = credentials.get_active_credential(platform)
        # A token the user set at runtime (kept in storage) wins over the env
        if active is None or active.kind != CredentialKind.USER_SUPPLIED:
            credentials.set_user_token(platform, token)

    schedulers = SchedulerRegistry(
        config.scheduler.min_interval, session_for=credentials.session
    )
    gateway = ProxyGateway(
        http_client, config.proxy, default_timeout=config.timeouts.search
    )
    context = ProviderContext(
        credentials=credentials,
        schedulers=schedulers,
        gateway=gateway,
        retry=RetryPolicy(config.retry),
        timeouts=config.timeouts,
    )
    providers = create_providers(context)
    events = EventBus(config.resolver.locale)
    resolver = FallbackResolver(
        providers,
        probe=partial(gateway.probe, timeout=config.timeouts.probe),
        scorer=MatchScorer(config.resolver.match_threshold),
        events=events,
        config=config.resolver,
    )
    return StreamService(
        credentials=credentials,
        schedulers=schedulers,
        gateway=gateway,
        providers=providers,
        resolver=resolver,
        events=events,
    )


__all__ = [
    "AuthError",
    "ContentUnavailableError",
    "Credential",
    "CredentialKind",
    "CredentialStore",
    "EventBus",
    "FailureKind",
    "FallbackResolver",
    "InMemoryTokenStorage",
    "MatchScorer",
    "NetworkError",
    "NoCredentialError",
    "NoMatchError",
    "Notification",
    "NotificationKind",
    "NotificationLevel",
    "Platform",
    "Priority",
    "ProviderClient",
    "ProviderConfig",
    "ProxyConfig",
    "ProxyGateway",
    "RateLimitedError",
    "ResolutionResult",
    "ResolutionSource",
    "ResolverConfig",
    "RetryConfig",
    "RetryPolicy",
    "SchedulerConfig",
    "SchedulerRegistry",
    "Settings",
    "StreamService",
    "StreamfallConfig",
    "StreamfallError",
    "TimeoutConfig",
    "TokenStorage",
    "Track",
    "TrackMetadata",
    "UpstreamError",
    "create_service",
]
