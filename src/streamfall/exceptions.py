"""Custom exceptions for streamfall.

All exceptions include an HTTP status_code attribute for easy
integration with web frameworks, and a failure kind used to tag
null-stream resolution results.

Provider-level errors never escape the public API: clients and the
fallback resolver catch them and return tagged results instead.
"""

from streamfall.models.enums import FailureKind


class StreamfallError(Exception):
    """Base exception for streamfall.

    Attributes:
        status_code: HTTP status code for API error responses.
        failure_kind: Failure classification used on resolution results.
        provider: Provider that raised the error, if known.
    """

    status_code: int = 500
    failure_kind: FailureKind = FailureKind.UPSTREAM

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        self.message = message
        self.provider = provider
        super().__init__(message)


class NoCredentialError(StreamfallError):
    """No credential is configured for a provider.

    Raised when neither a user-supplied token nor a builtin fallback
    exists for the provider.
    """

    status_code: int = 401  # Unauthorized
    failure_kind = FailureKind.NO_CREDENTIAL


class AuthError(StreamfallError):
    """Provider rejected the credential (401/403) after rotation."""

    status_code: int = 401  # Unauthorized
    failure_kind = FailureKind.AUTH


class RateLimitedError(StreamfallError):
    """Provider kept answering 429 until retries were exhausted.

    Attributes:
        retry_after: Seconds suggested by the Retry-After header, if any.
    """

    status_code: int = 429  # Too Many Requests
    failure_kind = FailureKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class ContentUnavailableError(StreamfallError):
    """Content does not exist or has no playable variant.

    Raised for 404 responses, geo-restricted tracks without transcodings,
    and providers that never expose direct streams. Never retried.
    """

    status_code: int = 404  # Not Found
    failure_kind = FailureKind.CONTENT_UNAVAILABLE


class NetworkError(StreamfallError):
    """Request timed out or the connection failed."""

    status_code: int = 504  # Gateway Timeout
    failure_kind = FailureKind.NETWORK


class UpstreamError(StreamfallError):
    """Provider answered with a server error or an unexpected status.

    Attributes:
        http_status: Status code returned by the provider.
    """

    status_code: int = 502  # Bad Gateway (upstream failure)
    failure_kind = FailureKind.UPSTREAM

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.http_status = http_status

    @property
    def is_server_error(self) -> bool:
        """Whether the provider failed on its side (5xx)."""
        return self.http_status is not None and self.http_status >= 500


class NoMatchError(StreamfallError):
    """Fallback search found no candidate above the match threshold."""

    status_code: int = 404  # Not Found
    failure_kind = FailureKind.NO_MATCH
