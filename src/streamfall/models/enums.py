"""Enumerations for streamfall domain models."""

from enum import StrEnum


class Platform(StrEnum):
    """Streaming backend a track originates from."""

    SOUNDCLOUD = "soundcloud"
    YOUTUBE = "youtube"
    YANDEX = "yandex"
    VK = "vk"
    SPOTIFY = "spotify"
    LOCAL = "local"
    OFFLINE = "offline"
    UNKNOWN = "unknown"

    @property
    def id_prefix(self) -> str | None:
        """Prefix used on track ids created by this platform's client."""
        match self:
            case Platform.SOUNDCLOUD:
                return "sc-"
            case Platform.YOUTUBE:
                return "yt-"
            case Platform.YANDEX:
                return "yandex-"
            case Platform.VK:
                return "vk-"
            case _:
                return None


class Priority(StrEnum):
    """Dispatch lane of a scheduled request.

    HIGH is used for playback-triggering calls, LOW for background
    work such as search.
    """

    HIGH = "high"
    LOW = "low"


class CredentialKind(StrEnum):
    """Origin of a provider credential."""

    USER_SUPPLIED = "user-supplied"
    BUILTIN_FALLBACK = "builtin-fallback"


class ResolutionSource(StrEnum):
    """Where a resolved stream came from."""

    ORIGINAL = "original"  # The track's own provider
    FALLBACK_PROVIDER = "fallback-provider"  # A substituted match elsewhere
    FALLBACK = "fallback"  # Every strategy was exhausted


class RetryDecision(StrEnum):
    """What the retry policy does with a failed attempt."""

    ROTATE = "rotate"
    BACKOFF = "backoff"
    FAIL_FAST = "fail-fast"


class FailureKind(StrEnum):
    """Classification of a failed resolution."""

    NO_CREDENTIAL = "no_credential"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    CONTENT_UNAVAILABLE = "content_unavailable"
    NETWORK = "network"
    UPSTREAM = "upstream"
    NO_MATCH = "no_match"

    @property
    def label(self) -> str:
        """Human-readable label for logs."""
        match self:
            case FailureKind.NO_CREDENTIAL:
                return "no credential"
            case FailureKind.AUTH:
                return "authentication failed"
            case FailureKind.RATE_LIMITED:
                return "rate limited"
            case FailureKind.CONTENT_UNAVAILABLE:
                return "content unavailable"
            case FailureKind.NETWORK:
                return "network error"
            case FailureKind.UPSTREAM:
                return "upstream error"
            case FailureKind.NO_MATCH:
                return "no match"


class NotificationKind(StrEnum):
    """Kinds of user-facing notifications published by the core."""

    RESOLUTION_FAILED = "resolution_failed"
    TRACK_SUBSTITUTED = "track_substituted"
    CREDENTIAL_UPDATED = "credential_updated"


class NotificationLevel(StrEnum):
    """Severity of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
