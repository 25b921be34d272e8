"""Configuration for streamfall."""

from dataclasses import dataclass, field

from streamfall.models.enums import Platform

DEFAULT_LOCAL_RELAY = "http://localhost:5002/proxy?url="
DEFAULT_PUBLIC_RELAYS = (
    "https://corsproxy.io/?",
    "https://api.allorigins.win/raw?url=",
)


@dataclass(frozen=True)
class SchedulerConfig:
    """Request pacing configuration.

    Attributes:
        min_interval: Minimum seconds between two dispatches to one provider.
    """

    min_interval: float = 0.3


@dataclass(frozen=True)
class RetryConfig:
    """Retry and backoff configuration shared by every provider client.

    Attributes:
        max_attempts: Attempts per request before giving up.
        rate_limit_base_high: Base 429 delay for playback (high priority) calls.
        rate_limit_base_low: Base 429 delay for background (low priority) calls.
        server_error_step: Linear delay step for 5xx responses.
        network_error_step: Linear delay step for timeouts and connection errors.
        max_delay: Upper bound for any single backoff sleep.
    """

    max_attempts: int = 4
    rate_limit_base_high: float = 2.0
    rate_limit_base_low: float = 5.0
    server_error_step: float = 1.0
    network_error_step: float = 0.5
    max_delay: float = 30.0


@dataclass(frozen=True)
class TimeoutConfig:
    """Per-call-type request timeouts in seconds."""

    probe: float = 5.0
    verify: float = 5.0
    stream: float = 10.0
    search: float = 15.0


@dataclass(frozen=True)
class ProxyConfig:
    """Relay proxy configuration.

    Attributes:
        proxied_services: Services whose requests go through relays.
        local_relay: Local relay URL prefix, or None to skip it.
        public_relays: Ordered public relay URL prefixes.
    """

    proxied_services: frozenset[str] = frozenset()
    local_relay: str | None = DEFAULT_LOCAL_RELAY
    public_relays: tuple[str, ...] = DEFAULT_PUBLIC_RELAYS


@dataclass(frozen=True)
class ProviderConfig:
    """Builtin credentials and enablement for one provider.

    Attributes:
        fallback_tokens: Builtin fallback credentials, in rotation order.
        enabled: Whether the provider starts enabled.
    """

    fallback_tokens: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class ResolverConfig:
    """Fallback chain configuration.

    Attributes:
        fallback_provider: Richest-catalog provider searched first.
        secondary_provider: Provider searched for the two-hop fallback.
        match_threshold: Minimum accepted match score (0-100).
        search_limit: Candidates requested per fallback search.
        locale: Language of notification messages.
    """

    fallback_provider: Platform = Platform.SOUNDCLOUD
    secondary_provider: Platform = Platform.YOUTUBE
    match_threshold: float = 30.0
    search_limit: int = 5
    locale: str = "en"


# Public web client id shipped with the SoundCloud web player.
_SOUNDCLOUD_BUILTIN = ("EnTrn2ZjaZXfOU7iRsFicZvTOi1Pl3rK",)


def _default_providers() -> dict[Platform, ProviderConfig]:
    return {
        Platform.SOUNDCLOUD: ProviderConfig(fallback_tokens=_SOUNDCLOUD_BUILTIN),
        Platform.YOUTUBE: ProviderConfig(),
        Platform.YANDEX: ProviderConfig(),
        Platform.VK: ProviderConfig(),
    }


@dataclass(frozen=True)
class StreamfallConfig:
    """Top-level configuration combining every component's settings."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    providers: dict[Platform, ProviderConfig] = field(
        default_factory=_default_providers
    )
    verify_cache_seconds: float = 30.0

    def provider(self, platform: Platform) -> ProviderConfig:
        """Get a provider's configuration (defaults when not configured)."""
        return self.providers.get(platform, ProviderConfig())
