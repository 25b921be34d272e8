"""Environment settings using pydantic-settings."""

import logging
from functools import cache
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from streamfall.config import (
    DEFAULT_LOCAL_RELAY,
    DEFAULT_PUBLIC_RELAYS,
    ProviderConfig,
    ProxyConfig,
    ResolverConfig,
    RetryConfig,
    SchedulerConfig,
    StreamfallConfig,
    TimeoutConfig,
)
from streamfall.messages import SUPPORTED_LOCALES
from streamfall.models.enums import Platform

LogLevel = Annotated[
    Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    BeforeValidator(lambda v: v.upper() if isinstance(v, str) else v),
]


def _split_csv(v: Any) -> Any:
    """Accept comma-separated strings for list settings."""
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


def _validate_locale(v: Any) -> Any:
    if isinstance(v, str):
        v = v.lower()
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"Unsupported locale: {v}")
    return v


CsvList = Annotated[list[str], NoDecode, BeforeValidator(_split_csv)]
Locale = Annotated[str, BeforeValidator(_validate_locale)]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STREAMFALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: LogLevel = Field(default="INFO", description="Log level")
    locale: Locale = Field(default="en", description="Notification language")

    # Scheduling and retries
    min_request_interval: float = Field(
        default=0.3, ge=0, description="Seconds between requests to one provider"
    )
    max_attempts: int = Field(default=4, ge=1, description="Attempts per request")

    # Timeouts
    probe_timeout: float = Field(default=5.0, gt=0, description="HEAD probe timeout")
    stream_timeout: float = Field(
        default=10.0, gt=0, description="Stream resolution request timeout"
    )
    search_timeout: float = Field(default=15.0, gt=0, description="Search timeout")

    # Proxy settings
    proxied_services: CsvList = Field(
        default_factory=list, description="Services routed through relays"
    )
    local_relay: str | None = Field(
        default=DEFAULT_LOCAL_RELAY, description="Local relay URL prefix"
    )
    public_relays: CsvList = Field(
        default_factory=lambda: list(DEFAULT_PUBLIC_RELAYS),
        description="Public relay URL prefixes",
    )

    # Fallback chain
    fallback_provider: Platform = Field(
        default=Platform.SOUNDCLOUD, description="Richest-catalog provider"
    )
    secondary_provider: Platform = Field(
        default=Platform.YOUTUBE, description="Two-hop search provider"
    )
    match_threshold: float = Field(
        default=30.0, ge=0, le=100, description="Minimum match score"
    )

    # Builtin fallback credentials (rotated on auth failure)
    soundcloud_fallback_tokens: CsvList | None = Field(
        default=None, description="SoundCloud client ids (defaults to builtin)"
    )
    youtube_api_keys: CsvList = Field(
        default_factory=list, description="YouTube Data API keys"
    )

    # User credentials (preferred over builtins)
    soundcloud_token: str | None = Field(default=None, description="SoundCloud")
    youtube_token: str | None = Field(default=None, description="YouTube API key")
    yandex_token: str | None = Field(default=None, description="Yandex OAuth token")
    vk_token: str | None = Field(default=None, description="VK access token")

    def to_config(self) -> StreamfallConfig:
        """Build the library configuration from these settings."""
        defaults = StreamfallConfig()
        soundcloud = defaults.provider(Platform.SOUNDCLOUD)
        if self.soundcloud_fallback_tokens is not None:
            soundcloud = ProviderConfig(
                fallback_tokens=tuple(self.soundcloud_fallback_tokens)
            )
        return StreamfallConfig(
            scheduler=SchedulerConfig(min_interval=self.min_request_interval),
            retry=RetryConfig(max_attempts=self.max_attempts),
            timeouts=TimeoutConfig(
                probe=self.probe_timeout,
                verify=self.probe_timeout,
                stream=self.stream_timeout,
                search=self.search_timeout,
            ),
            proxy=ProxyConfig(
                proxied_services=frozenset(self.proxied_services),
                local_relay=self.local_relay or None,
                public_relays=tuple(self.public_relays),
            ),
            resolver=ResolverConfig(
                fallback_provider=self.fallback_provider,
                secondary_provider=self.secondary_provider,
                match_threshold=self.match_threshold,
                locale=self.locale,
            ),
            providers={
                Platform.SOUNDCLOUD: soundcloud,
                Platform.YOUTUBE: ProviderConfig(
                    fallback_tokens=tuple(self.youtube_api_keys)
                ),
                Platform.YANDEX: ProviderConfig(),
                Platform.VK: ProviderConfig(),
            },
        )

    def user_tokens(self) -> dict[Platform, str]:
        """User-supplied tokens configured through the environment."""
        tokens = {
            Platform.SOUNDCLOUD: self.soundcloud_token,
            Platform.YOUTUBE: self.youtube_token,
            Platform.YANDEX: self.yandex_token,
            Platform.VK: self.vk_token,
        }
        return {platform: token for platform, token in tokens.items() if token}


def configure_logging(level: str) -> None:
    """Apply a log level to the library's logger hierarchy.

    The library never installs handlers; hosts that want output attach
    their own (or call ``logging.basicConfig``).
    """
    logging.getLogger("streamfall").setLevel(level)


@cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
